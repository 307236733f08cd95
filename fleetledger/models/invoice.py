"""
Invoice model: the customer settlement document.
"""
from datetime import datetime
from sqlalchemy import (
    Column, String, Date, DateTime, Integer, Numeric, Text, JSON, ForeignKey,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped
import enum


class InvoiceStatus(str, enum.Enum):
    """Invoice status enumeration."""
    PENDING = "pending"
    PARTIAL_RECEIVED = "partial_received"
    RECEIVED = "received"
    OVERDUE = "overdue"
    CANCELLED = "cancelled"


class Invoice(TenantScoped, BaseModel):
    """Invoice freezing a batch of received subtrips for one customer."""
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("tenant_id", "invoice_no", name="uq_invoice_tenant_no"),
    )

    invoice_no = Column(String(50), nullable=False)
    customer_id = Column(Integer, ForeignKey("customers.id"), nullable=False, index=True)
    invoice_status = Column(SQLEnum(InvoiceStatus), default=InvoiceStatus.PENDING, nullable=False, index=True)
    issue_date = Column(Date, nullable=False, index=True)
    due_date = Column(Date, nullable=False)
    notes = Column(Text, nullable=True)
    cancellation_remarks = Column(Text, nullable=True)
    cancelled_at = Column(DateTime, nullable=True)

    # Frozen at creation, never recomputed
    associated_subtrips = Column(JSON, nullable=False)  # Ordered subtrip ids
    subtrip_snapshot = Column(JSON, nullable=False)
    additional_charges = Column(JSON, nullable=False, default=list)
    tax_breakup = Column(JSON, nullable=False)
    summary = Column(JSON, nullable=False)

    net_total = Column(Numeric(15, 2), nullable=False)
    total_received = Column(Numeric(15, 2), nullable=False, default=0)

    # Relationships
    customer = relationship("Customer")
    payments = relationship(
        "InvoicePayment", back_populates="invoice",
        cascade="all, delete-orphan", order_by="InvoicePayment.id",
    )


class InvoicePayment(BaseModel):
    """One (possibly partial) payment recorded against an invoice."""
    __tablename__ = "invoice_payments"

    invoice_id = Column(Integer, ForeignKey("invoices.id"), nullable=False, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    paid_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    paid_by = Column(String(200), nullable=True)
    reference_number = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)

    invoice = relationship("Invoice", back_populates="payments")
