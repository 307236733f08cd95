"""
Subtrip lifecycle service.

State machine: in-queue -> loaded -> {received | error} -> received -> billed.
Only the reversal path of a settlement document moves billed back to
received; that lives in the settlement engine, not here.
"""
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from fleetledger.core.config import settings
from fleetledger.core.exceptions import ConflictError, LockedError, NotFoundError, ValidationError
from fleetledger.core.utils import money, to_decimal
from fleetledger.db.session import atomic
from fleetledger.models.customer import Customer
from fleetledger.models.driver import Driver
from fleetledger.models.route import Route
from fleetledger.models.subtrip import Subtrip, SubtripStatus
from fleetledger.models.subtrip_event import SubtripEventType
from fleetledger.models.trip import Trip, TripStatus
from fleetledger.models.vehicle import Vehicle
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.subtrip import (
    SubtripCloseEmpty,
    SubtripCreate,
    SubtripMaterialInfo,
    SubtripPatch,
    SubtripReceive,
)
from fleetledger.services.expense_service import build_route_expenses, find_route_config
from fleetledger.services.sequence_service import next_sequence
from fleetledger.services.subtrip_event_service import record_subtrip_event

logger = logging.getLogger(__name__)

# Material fields copied straight onto the subtrip
MATERIAL_FIELDS = (
    "material_type", "loading_weight", "rate", "commission_rate", "quantity", "grade",
    "start_km", "invoice_no", "shipment_no", "order_no", "consignee",
    "eway_bill", "eway_expiry_date", "di_number",
)

# Patchable fields backed by NOT NULL columns
REQUIRED_PATCH_FIELDS = ("start_date", "subtrip_status")

# Status corrections a patch may make; forward moves go through their own operations
STATUS_CORRECTIONS = {
    SubtripStatus.LOADED: (SubtripStatus.IN_QUEUE,),
    SubtripStatus.ERROR: (SubtripStatus.LOADED,),
    SubtripStatus.RECEIVED: (SubtripStatus.LOADED, SubtripStatus.ERROR),
}


def get_subtrip(db: Session, tenant_id: int, subtrip_id: int, for_update: bool = False) -> Subtrip:
    """Fetch a subtrip of the tenant or raise NotFoundError."""
    query = db.query(Subtrip).filter(
        Subtrip.id == subtrip_id,
        Subtrip.tenant_id == tenant_id,
    )
    if for_update:
        query = query.with_for_update()
    subtrip = query.first()
    if not subtrip:
        raise NotFoundError("Subtrip not found", {"subtrip_id": subtrip_id})
    return subtrip


def _require_reference(db: Session, model, tenant_id: int, ref_id: Optional[int], label: str):
    if ref_id is None:
        return None
    obj = db.query(model).filter(model.id == ref_id, model.tenant_id == tenant_id).first()
    if not obj:
        raise ValidationError(f"{label} {ref_id} does not exist", {f"{label.lower()}_id": ref_id})
    return obj


def _ensure_not_billed(subtrip: Subtrip) -> None:
    if subtrip.subtrip_status == SubtripStatus.BILLED:
        raise LockedError(
            f"Subtrip {subtrip.subtrip_no} is billed and cannot be modified",
            {"subtrip_id": subtrip.id},
        )


def _ensure_status(subtrip: Subtrip, *allowed: SubtripStatus) -> None:
    _ensure_not_billed(subtrip)
    if subtrip.subtrip_status not in allowed:
        raise ConflictError(
            f"Subtrip {subtrip.subtrip_no} is {subtrip.subtrip_status.value}, "
            f"expected {' or '.join(s.value for s in allowed)}",
            {"subtrip_id": subtrip.id, "subtrip_status": subtrip.subtrip_status.value},
        )


def _resolve_trip(db: Session, tenant_id: int, vehicle: Vehicle, driver: Driver,
                  trip_id: Optional[int], start_date: date) -> Trip:
    """Trip for an own-vehicle subtrip: the given one, the vehicle's open one, or a new one."""
    if trip_id is not None:
        trip = _require_reference(db, Trip, tenant_id, trip_id, "Trip")
        if trip.vehicle_id != vehicle.id:
            raise ValidationError("Trip belongs to a different vehicle", {"trip_id": trip_id})
        if trip.trip_status != TripStatus.OPEN:
            raise ValidationError("Trip is closed", {"trip_id": trip_id})
        return trip

    trip = db.query(Trip).filter(
        Trip.tenant_id == tenant_id,
        Trip.vehicle_id == vehicle.id,
        Trip.trip_status == TripStatus.OPEN,
    ).order_by(Trip.id.desc()).first()
    if trip:
        return trip

    seq = next_sequence(db, tenant_id, "Trip")
    trip = Trip(
        tenant_id=tenant_id,
        trip_no=f"{settings.TRIP_NO_PREFIX}{seq}",
        vehicle_id=vehicle.id,
        driver_id=driver.id,
        trip_status=TripStatus.OPEN,
        from_date=start_date,
    )
    db.add(trip)
    db.flush()
    logger.info(f"Opened trip {trip.trip_no} for vehicle {vehicle.vehicle_no}")
    return trip


def _apply_material(db: Session, subtrip: Subtrip, material: SubtripMaterialInfo) -> int:
    """
    Copy material data, move to loaded and generate route expenses for own vehicles.

    Returns the number of expenses generated.
    """
    for field in MATERIAL_FIELDS:
        value = getattr(material, field)
        if value is not None:
            setattr(subtrip, field, value)
    subtrip.subtrip_status = SubtripStatus.LOADED

    vehicle = subtrip.vehicle
    if not vehicle:
        raise NotFoundError("Vehicle not found", {"vehicle_id": subtrip.vehicle_id})
    if not vehicle.is_own:
        return 0

    if subtrip.route_id is None:
        raise NotFoundError("Route is required to load an own-vehicle subtrip", {"subtrip_id": subtrip.id})
    route = db.query(Route).filter(
        Route.id == subtrip.route_id,
        Route.tenant_id == subtrip.tenant_id,
    ).first()
    if not route:
        raise NotFoundError("Route not found", {"route_id": subtrip.route_id})

    config = find_route_config(db, route.id, vehicle.vehicle_type, vehicle.no_of_tyres)
    expenses = build_route_expenses(subtrip, config, material.driver_advance, material.paid_through)
    for expense in expenses:
        db.add(expense)
    return len(expenses)


def _material_details(subtrip: Subtrip, generated: int) -> Dict[str, Any]:
    return {
        "material_type": subtrip.material_type,
        "loading_weight": subtrip.loading_weight,
        "rate": subtrip.rate,
        "generated_expenses": generated,
    }


def create_subtrip(db: Session, tenant_id: int, data: SubtripCreate, user: Optional[CurrentUser] = None) -> Subtrip:
    """
    Create a subtrip in-queue, or loaded when material data comes with it.

    Market vehicles skip trips entirely and must be created as loaded jobs.
    """
    with atomic(db):
        vehicle = _require_reference(db, Vehicle, tenant_id, data.vehicle_id, "Vehicle")
        driver = _require_reference(db, Driver, tenant_id, data.driver_id, "Driver")
        _require_reference(db, Route, tenant_id, data.route_id, "Route")
        _require_reference(db, Customer, tenant_id, data.customer_id, "Customer")

        trip = None
        if vehicle.is_own:
            trip = _resolve_trip(db, tenant_id, vehicle, driver, data.trip_id, data.start_date)
        else:
            if data.trip_id is not None:
                raise ValidationError("Market vehicles cannot be attached to a trip", {"trip_id": data.trip_id})
            if data.material is None:
                raise ValidationError("Material details are required for market vehicle subtrips")

        seq = next_sequence(db, tenant_id, "Subtrip")
        subtrip = Subtrip(
            tenant_id=tenant_id,
            subtrip_no=f"{settings.SUBTRIP_NO_PREFIX}{seq}",
            is_empty=data.is_empty,
            trip_id=trip.id if trip else None,
            driver_id=driver.id,
            vehicle_id=vehicle.id,
            route_id=data.route_id,
            customer_id=data.customer_id,
            loading_point=data.loading_point,
            unloading_point=data.unloading_point,
            start_date=data.start_date,
            start_km=data.start_km,
            remarks=data.remarks,
            subtrip_status=SubtripStatus.IN_QUEUE,
        )
        subtrip.vehicle = vehicle
        db.add(subtrip)
        db.flush()

        record_subtrip_event(
            db, subtrip.id, SubtripEventType.CREATED,
            {"subtrip_no": subtrip.subtrip_no, "trip_id": subtrip.trip_id},
            user, tenant_id,
        )

        if data.material is not None:
            generated = _apply_material(db, subtrip, data.material)
            record_subtrip_event(
                db, subtrip.id, SubtripEventType.MATERIAL_ADDED,
                _material_details(subtrip, generated), user, tenant_id,
            )

    db.refresh(subtrip)
    logger.info(f"Created subtrip {subtrip.subtrip_no} ({subtrip.subtrip_status.value})")
    return subtrip


def add_material_info(
    db: Session,
    tenant_id: int,
    subtrip_id: int,
    material: SubtripMaterialInfo,
    user: Optional[CurrentUser] = None,
) -> Subtrip:
    """Record material data and move the subtrip to loaded, with its route expenses."""
    with atomic(db):
        subtrip = get_subtrip(db, tenant_id, subtrip_id, for_update=True)
        _ensure_not_billed(subtrip)
        if subtrip.driver_salary_id is not None or subtrip.transporter_payment_receipt_id is not None:
            raise ConflictError(
                f"Subtrip {subtrip.subtrip_no} is settled in a payout receipt",
                {"subtrip_id": subtrip.id},
            )

        generated = _apply_material(db, subtrip, material)
        record_subtrip_event(
            db, subtrip.id, SubtripEventType.MATERIAL_ADDED,
            _material_details(subtrip, generated), user, tenant_id,
        )

    db.refresh(subtrip)
    return subtrip


def receive_subtrip(
    db: Session,
    tenant_id: int,
    subtrip_id: int,
    receipt: SubtripReceive,
    user: Optional[CurrentUser] = None,
) -> Subtrip:
    """Receive a loaded subtrip; a reported error parks it in the error state."""
    with atomic(db):
        subtrip = get_subtrip(db, tenant_id, subtrip_id, for_update=True)
        _ensure_status(subtrip, SubtripStatus.LOADED)

        shortage_weight = receipt.shortage_weight
        if shortage_weight is None:
            shortage_weight = max(to_decimal(subtrip.loading_weight) - receipt.unloading_weight, Decimal("0"))

        subtrip.unloading_weight = receipt.unloading_weight
        subtrip.end_date = receipt.end_date
        subtrip.end_km = receipt.end_km
        subtrip.shortage_weight = shortage_weight
        subtrip.shortage_amount = money(receipt.shortage_amount)
        if receipt.remarks is not None:
            subtrip.remarks = receipt.remarks

        if receipt.has_error:
            subtrip.subtrip_status = SubtripStatus.ERROR
            subtrip.has_error = True
            subtrip.error_remarks = receipt.error_remarks
            record_subtrip_event(
                db, subtrip.id, SubtripEventType.ERROR_REPORTED,
                {"remarks": receipt.error_remarks, "unloading_weight": receipt.unloading_weight},
                user, tenant_id,
            )
        else:
            subtrip.subtrip_status = SubtripStatus.RECEIVED
            record_subtrip_event(
                db, subtrip.id, SubtripEventType.RECEIVED,
                {
                    "unloading_weight": receipt.unloading_weight,
                    "shortage_weight": shortage_weight,
                    "end_date": receipt.end_date,
                },
                user, tenant_id,
            )

    db.refresh(subtrip)
    return subtrip


def resolve_subtrip_error(
    db: Session,
    tenant_id: int,
    subtrip_id: int,
    remarks: str,
    user: Optional[CurrentUser] = None,
) -> Subtrip:
    """Resolve an error and move the subtrip to received."""
    with atomic(db):
        subtrip = get_subtrip(db, tenant_id, subtrip_id, for_update=True)
        _ensure_status(subtrip, SubtripStatus.ERROR)

        subtrip.subtrip_status = SubtripStatus.RECEIVED
        subtrip.has_error = False
        subtrip.remarks = remarks
        record_subtrip_event(
            db, subtrip.id, SubtripEventType.ERROR_RESOLVED,
            {"remarks": remarks, "error_remarks": subtrip.error_remarks},
            user, tenant_id,
        )

    db.refresh(subtrip)
    return subtrip


def close_empty_subtrip(
    db: Session,
    tenant_id: int,
    subtrip_id: int,
    data: SubtripCloseEmpty,
    user: Optional[CurrentUser] = None,
) -> Subtrip:
    """Close an empty own-vehicle leg straight to billed; there is nothing to invoice."""
    with atomic(db):
        subtrip = get_subtrip(db, tenant_id, subtrip_id, for_update=True)
        _ensure_status(subtrip, SubtripStatus.IN_QUEUE, SubtripStatus.LOADED)
        if not subtrip.is_empty:
            raise ValidationError("Only empty subtrips can be closed this way", {"subtrip_id": subtrip.id})
        if not subtrip.vehicle.is_own:
            raise ValidationError("Only own-vehicle subtrips can be closed empty", {"subtrip_id": subtrip.id})

        previous = subtrip.subtrip_status
        subtrip.end_date = data.end_date
        subtrip.end_km = data.end_km
        subtrip.subtrip_status = SubtripStatus.BILLED
        record_subtrip_event(
            db, subtrip.id, SubtripEventType.STATUS_CHANGED,
            {"from_status": previous.value, "to_status": SubtripStatus.BILLED.value, "end_date": data.end_date},
            user, tenant_id,
        )

    db.refresh(subtrip)
    logger.info(f"Closed empty subtrip {subtrip.subtrip_no}")
    return subtrip


def _diff(subtrip: Subtrip, changes: Dict[str, Any]) -> Dict[str, Dict[str, Any]]:
    """Field-level diff {field: {from, to}} for the values that actually change."""
    diff = {}
    for field, new_value in changes.items():
        old_value = getattr(subtrip, field)
        if isinstance(old_value, Decimal) or isinstance(new_value, Decimal):
            if old_value is not None and new_value is not None and to_decimal(old_value) == to_decimal(new_value):
                continue
        elif old_value == new_value:
            continue
        diff[field] = {"from": old_value, "to": new_value}
    return diff


def update_subtrip(
    db: Session,
    tenant_id: int,
    subtrip_id: int,
    patch: SubtripPatch,
    user: Optional[CurrentUser] = None,
) -> Subtrip:
    """Apply a typed patch and audit the field-level diff."""
    changes = patch.model_dump(exclude_unset=True)
    cleared = [field for field in REQUIRED_PATCH_FIELDS if field in changes and changes[field] is None]
    if cleared:
        raise ValidationError(f"{', '.join(cleared)} cannot be cleared", {"fields": cleared})
    if changes.get("subtrip_status") == SubtripStatus.BILLED:
        raise ValidationError("A subtrip can only become billed through a settlement or by closing it empty")

    with atomic(db):
        subtrip = get_subtrip(db, tenant_id, subtrip_id, for_update=True)
        _ensure_not_billed(subtrip)

        target = changes.get("subtrip_status")
        if target is not None and target != subtrip.subtrip_status:
            if target not in STATUS_CORRECTIONS.get(subtrip.subtrip_status, ()):
                raise ConflictError(
                    f"Subtrip {subtrip.subtrip_no} cannot move from "
                    f"{subtrip.subtrip_status.value} to {target.value} by update",
                    {"subtrip_id": subtrip.id, "from_status": subtrip.subtrip_status.value, "to_status": target.value},
                )

        if "customer_id" in changes:
            _require_reference(db, Customer, tenant_id, changes["customer_id"], "Customer")
        if "route_id" in changes:
            _require_reference(db, Route, tenant_id, changes["route_id"], "Route")

        diff = _diff(subtrip, changes)
        if not diff:
            return subtrip

        if "subtrip_status" in diff:
            record_subtrip_event(
                db, subtrip.id, SubtripEventType.STATUS_CHANGED,
                {
                    "from_status": diff["subtrip_status"]["from"].value,
                    "to_status": diff["subtrip_status"]["to"].value,
                },
                user, tenant_id,
            )

        for field, change in diff.items():
            setattr(subtrip, field, change["to"])

        record_subtrip_event(db, subtrip.id, SubtripEventType.UPDATED, {"changes": diff}, user, tenant_id)

    db.refresh(subtrip)
    return subtrip


def delete_subtrip(db: Session, tenant_id: int, subtrip_id: int, user: Optional[CurrentUser] = None) -> None:
    """Delete an unbilled, unclaimed subtrip together with its expenses."""
    with atomic(db):
        subtrip = get_subtrip(db, tenant_id, subtrip_id, for_update=True)
        if subtrip.subtrip_status == SubtripStatus.BILLED or subtrip.is_claimed:
            raise ConflictError(
                f"Subtrip {subtrip.subtrip_no} is billed or settled and cannot be deleted",
                {
                    "subtrip_id": subtrip.id,
                    "invoice_id": subtrip.invoice_id,
                    "driver_salary_id": subtrip.driver_salary_id,
                    "transporter_payment_receipt_id": subtrip.transporter_payment_receipt_id,
                },
            )
        subtrip_no = subtrip.subtrip_no
        subtrip.trip = None
        db.delete(subtrip)

    logger.info(f"Deleted subtrip {subtrip_no}")


def list_subtrips(
    db: Session,
    tenant_id: int,
    statuses: Optional[List[SubtripStatus]] = None,
    vehicle_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    skip: int = 0,
    limit: int = 100,
) -> List[Subtrip]:
    """Subtrips of the tenant, newest first."""
    query = db.query(Subtrip).filter(Subtrip.tenant_id == tenant_id)
    if statuses:
        query = query.filter(Subtrip.subtrip_status.in_(statuses))
    if vehicle_id is not None:
        query = query.filter(Subtrip.vehicle_id == vehicle_id)
    if customer_id is not None:
        query = query.filter(Subtrip.customer_id == customer_id)
    return query.order_by(Subtrip.id.desc()).offset(skip).limit(limit).all()
