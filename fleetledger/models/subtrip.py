"""
Subtrip model: one loaded or empty leg, the unit of billing.
"""
from sqlalchemy import (
    Column, String, Date, Boolean, Integer, Numeric, Text, ForeignKey,
    Enum as SQLEnum, UniqueConstraint, event, inspect,
)
from sqlalchemy.orm import relationship, Session
from fleetledger.core.exceptions import LockedError
from fleetledger.db.base import BaseModel, TenantScoped
import enum


class SubtripStatus(str, enum.Enum):
    """Subtrip lifecycle states."""
    IN_QUEUE = "in-queue"
    LOADED = "loaded"
    ERROR = "error"
    RECEIVED = "received"
    BILLED = "billed"


# Claim fields, one per settlement type
CLAIM_FIELDS = ("invoice_id", "driver_salary_id", "transporter_payment_receipt_id")

# Attributes that may still change on a billed subtrip (transition bookkeeping)
BILLED_MUTABLE_FIELDS = frozenset(CLAIM_FIELDS + ("subtrip_status", "updated_at"))


class Subtrip(TenantScoped, BaseModel):
    """Subtrip model representing a single logistics leg."""
    __tablename__ = "subtrips"
    __table_args__ = (
        UniqueConstraint("tenant_id", "subtrip_no", name="uq_subtrip_tenant_no"),
    )

    subtrip_no = Column(String(30), nullable=False)
    is_empty = Column(Boolean, default=False, nullable=False)

    # Trip is only present for own vehicles
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    route_id = Column(Integer, ForeignKey("routes.id"), nullable=True, index=True)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=True, index=True)

    # Route and logistics details
    loading_point = Column(String(200), nullable=True)
    unloading_point = Column(String(200), nullable=True)
    start_date = Column(Date, nullable=False, index=True)
    end_date = Column(Date, nullable=True)
    start_km = Column(Numeric(12, 2), nullable=True)
    end_km = Column(Numeric(12, 2), nullable=True)

    # Shipment details
    invoice_no = Column(String(50), nullable=True)  # Customer's own invoice/LR reference
    shipment_no = Column(String(50), nullable=True)
    consignee = Column(String(200), nullable=True)
    order_no = Column(String(50), nullable=True)
    eway_bill = Column(String(50), nullable=True)
    eway_expiry_date = Column(Date, nullable=True)
    di_number = Column(String(50), nullable=True)

    # Material details
    material_type = Column(String(100), nullable=True)
    quantity = Column(Numeric(12, 3), nullable=True)
    grade = Column(String(50), nullable=True)

    # Weights
    loading_weight = Column(Numeric(12, 3), nullable=True)
    unloading_weight = Column(Numeric(12, 3), nullable=True)
    shortage_weight = Column(Numeric(12, 3), nullable=True)
    shortage_amount = Column(Numeric(15, 2), nullable=True)

    # Financials
    rate = Column(Numeric(15, 2), nullable=True)
    commission_rate = Column(Numeric(15, 2), nullable=True)

    # Status
    subtrip_status = Column(SQLEnum(SubtripStatus), default=SubtripStatus.IN_QUEUE, nullable=False, index=True)
    has_error = Column(Boolean, default=False, nullable=False)
    error_remarks = Column(Text, nullable=True)
    remarks = Column(Text, nullable=True)

    # Settlement claims
    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=True, index=True)
    driver_salary_id = Column(Integer, ForeignKey("driver_salaries.id"), nullable=True, index=True)
    transporter_payment_receipt_id = Column(
        Integer, ForeignKey("transporter_payments.id"), nullable=True, index=True
    )

    # Relationships
    trip = relationship("Trip", back_populates="subtrips")
    driver = relationship("Driver")
    vehicle = relationship("Vehicle")
    route = relationship("Route")
    customer = relationship("Customer")
    expenses = relationship("Expense", back_populates="subtrip", cascade="all, delete-orphan", order_by="Expense.id")

    @property
    def is_claimed(self) -> bool:
        """True when any settlement document holds this subtrip."""
        return any(getattr(self, field) is not None for field in CLAIM_FIELDS)


@event.listens_for(Session, "before_flush")
def _reject_billed_subtrip_edits(session, flush_context, instances):
    """Block flushes that change a billed subtrip beyond transition bookkeeping."""
    for obj in session.dirty:
        if not isinstance(obj, Subtrip):
            continue
        state = inspect(obj)
        status_history = state.attrs.subtrip_status.history
        previous = status_history.deleted[0] if status_history.deleted else obj.subtrip_status
        if previous != SubtripStatus.BILLED:
            continue
        changed = {
            attr.key for attr in state.attrs
            if attr.key not in BILLED_MUTABLE_FIELDS and attr.history.has_changes()
        }
        if changed:
            raise LockedError(
                f"Subtrip {obj.subtrip_no} is billed and cannot be modified",
                {"subtrip_id": obj.id, "fields": sorted(changed)},
            )
