"""
Transporter payment receipt model.
"""
from sqlalchemy import (
    Column, String, Date, DateTime, Integer, Numeric, Text, JSON, ForeignKey,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped
import enum


class PayoutStatus(str, enum.Enum):
    """Status of driver and transporter payout receipts."""
    GENERATED = "generated"
    PAID = "paid"


class TransporterPayment(TenantScoped, BaseModel):
    """Payment receipt claiming market-vehicle subtrips of one transporter."""
    __tablename__ = "transporter_payments"
    __table_args__ = (
        UniqueConstraint("tenant_id", "payment_id", name="uq_transporter_payment_tenant_payment"),
    )

    payment_id = Column(String(30), nullable=False)
    transporter_id = Column(Integer, ForeignKey("transporters.id"), nullable=False, index=True)
    status = Column(SQLEnum(PayoutStatus), default=PayoutStatus.GENERATED, nullable=False, index=True)
    issue_date = Column(Date, nullable=False, index=True)
    billing_period_start = Column(Date, nullable=True)
    billing_period_end = Column(Date, nullable=True)
    remarks = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    associated_subtrips = Column(JSON, nullable=False)
    subtrip_snapshot = Column(JSON, nullable=False)
    additional_charges = Column(JSON, nullable=False, default=list)
    tax_breakup = Column(JSON, nullable=False)
    summary = Column(JSON, nullable=False)
    net_income = Column(Numeric(15, 2), nullable=False)

    # Relationships
    transporter = relationship("Transporter")
