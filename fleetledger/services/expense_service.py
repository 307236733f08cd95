"""
Expense service for subtrip expenses and route-based auto expenses.
"""
import logging
from decimal import Decimal
from typing import List, Optional

from sqlalchemy.orm import Session
from fleetledger.core.exceptions import ConflictError, NotFoundError
from fleetledger.core.utils import money, to_decimal
from fleetledger.db.session import atomic
from fleetledger.models.expense import Expense, ExpenseType, ExpenseCategory
from fleetledger.models.route import RouteVehicleConfig
from fleetledger.models.subtrip import Subtrip
from fleetledger.models.subtrip_event import SubtripEventType
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.expense import ExpenseCreate
from fleetledger.services.subtrip_event_service import record_subtrip_event

logger = logging.getLogger(__name__)

SYSTEM_AUTHORISER = "System"


def find_route_config(db: Session, route_id: int, vehicle_type: str, no_of_tyres: Optional[int]) -> RouteVehicleConfig:
    """Route configuration for a vehicle type; an exact tyre match wins over a generic row."""
    configs = db.query(RouteVehicleConfig).filter(
        RouteVehicleConfig.route_id == route_id,
        RouteVehicleConfig.vehicle_type == vehicle_type,
    ).all()

    exact = [c for c in configs if c.no_of_tyres is not None and c.no_of_tyres == no_of_tyres]
    generic = [c for c in configs if c.no_of_tyres is None]
    if exact:
        return exact[0]
    if generic:
        return generic[0]

    raise NotFoundError(
        f"No route configuration for vehicle type {vehicle_type}",
        {"route_id": route_id, "vehicle_type": vehicle_type, "no_of_tyres": no_of_tyres},
    )


def driver_salary_for_route(config: RouteVehicleConfig, freight_amount: Decimal) -> Decimal:
    """Percentage of freight when a percentage is configured, otherwise the fixed salary."""
    percentage = to_decimal(config.percentage_salary)
    if percentage > 0:
        return money(freight_amount * percentage / Decimal("100"))
    return money(config.fixed_salary)


def build_route_expenses(
    subtrip: Subtrip,
    config: RouteVehicleConfig,
    driver_advance: Optional[Decimal] = None,
    paid_through: Optional[str] = None,
) -> List[Expense]:
    """Auto-generated expenses for an own-vehicle subtrip at loading time."""
    freight_amount = to_decimal(subtrip.rate) * to_decimal(subtrip.loading_weight)
    planned = [
        (ExpenseType.DRIVER_SALARY, driver_salary_for_route(config, freight_amount), "Route driver salary"),
        (ExpenseType.TOLL, money(config.toll_amt), "Route toll"),
        (ExpenseType.TRIP_ADVANCE, money(config.advance_amt), "Route advance"),
        (ExpenseType.TRIP_ADVANCE, money(driver_advance), "Advance paid to driver"),
    ]

    expenses = []
    for expense_type, amount, remarks in planned:
        if amount <= 0:
            continue
        expenses.append(Expense(
            tenant_id=subtrip.tenant_id,
            subtrip_id=subtrip.id,
            trip_id=subtrip.trip_id,
            vehicle_id=subtrip.vehicle_id,
            date=subtrip.start_date,
            expense_type=expense_type.value,
            expense_category=ExpenseCategory.SUBTRIP.value,
            amount=amount,
            paid_through=paid_through,
            authorised_by=SYSTEM_AUTHORISER,
            remarks=remarks,
        ))
    return expenses


def _ensure_expenses_editable(subtrip: Subtrip) -> None:
    """Payout receipts froze this subtrip's expenses."""
    if subtrip.driver_salary_id is not None or subtrip.transporter_payment_receipt_id is not None:
        raise ConflictError(
            f"Expenses of subtrip {subtrip.subtrip_no} are settled in a payout receipt",
            {"subtrip_id": subtrip.id},
        )


def _get_subtrip(db: Session, tenant_id: int, subtrip_id: int) -> Subtrip:
    subtrip = db.query(Subtrip).filter(
        Subtrip.id == subtrip_id,
        Subtrip.tenant_id == tenant_id,
    ).with_for_update().first()
    if not subtrip:
        raise NotFoundError("Subtrip not found", {"subtrip_id": subtrip_id})
    return subtrip


def add_expense(
    db: Session,
    tenant_id: int,
    subtrip_id: int,
    data: ExpenseCreate,
    user: Optional[CurrentUser] = None,
) -> Expense:
    """Add a manual expense to a subtrip."""
    with atomic(db):
        subtrip = _get_subtrip(db, tenant_id, subtrip_id)
        _ensure_expenses_editable(subtrip)

        expense = Expense(
            tenant_id=tenant_id,
            subtrip_id=subtrip.id,
            trip_id=subtrip.trip_id,
            vehicle_id=subtrip.vehicle_id,
            date=data.date or subtrip.start_date,
            expense_type=data.expense_type.value,
            expense_category=data.expense_category.value,
            amount=money(data.amount),
            paid_through=data.paid_through,
            authorised_by=data.authorised_by,
            remarks=data.remarks,
        )
        db.add(expense)
        db.flush()

        record_subtrip_event(
            db, subtrip.id, SubtripEventType.EXPENSE_ADDED,
            {"expense_id": expense.id, "expense_type": expense.expense_type, "amount": expense.amount},
            user, tenant_id,
        )

    db.refresh(expense)
    logger.info(f"Added {expense.expense_type} expense {expense.amount} to subtrip {subtrip.subtrip_no}")
    return expense


def delete_expense(
    db: Session,
    tenant_id: int,
    subtrip_id: int,
    expense_id: int,
    user: Optional[CurrentUser] = None,
) -> None:
    """Delete an expense from a subtrip."""
    with atomic(db):
        subtrip = _get_subtrip(db, tenant_id, subtrip_id)
        _ensure_expenses_editable(subtrip)

        expense = db.query(Expense).filter(
            Expense.id == expense_id,
            Expense.subtrip_id == subtrip.id,
            Expense.tenant_id == tenant_id,
        ).first()
        if not expense:
            raise NotFoundError("Expense not found", {"expense_id": expense_id})

        record_subtrip_event(
            db, subtrip.id, SubtripEventType.EXPENSE_DELETED,
            {"expense_id": expense.id, "expense_type": expense.expense_type, "amount": expense.amount},
            user, tenant_id,
        )
        db.delete(expense)

    logger.info(f"Deleted expense {expense_id} from subtrip {subtrip_id}")


def list_expenses(db: Session, tenant_id: int, subtrip_id: int) -> List[Expense]:
    """Expenses of a subtrip in insertion order."""
    return db.query(Expense).filter(
        Expense.tenant_id == tenant_id,
        Expense.subtrip_id == subtrip_id,
    ).order_by(Expense.id).all()
