"""
Append-only audit trail of subtrip transitions and settlement actions.
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, DateTime, JSON
from fleetledger.db.base import BaseModel, TenantScoped
import enum


class SubtripEventType(str, enum.Enum):
    """Event types recorded against a subtrip."""
    CREATED = "CREATED"
    MATERIAL_ADDED = "MATERIAL_ADDED"
    RECEIVED = "RECEIVED"
    ERROR_REPORTED = "ERROR_REPORTED"
    ERROR_RESOLVED = "ERROR_RESOLVED"
    EXPENSE_ADDED = "EXPENSE_ADDED"
    EXPENSE_DELETED = "EXPENSE_DELETED"
    INVOICE_GENERATED = "INVOICE_GENERATED"
    INVOICE_CANCELLED = "INVOICE_CANCELLED"
    INVOICE_DELETED = "INVOICE_DELETED"
    INVOICE_PAID = "INVOICE_PAID"
    DRIVER_SALARY_GENERATED = "DRIVER_SALARY_GENERATED"
    DRIVER_SALARY_DELETED = "DRIVER_SALARY_DELETED"
    TRANSPORTER_PAYMENT_GENERATED = "TRANSPORTER_PAYMENT_GENERATED"
    TRANSPORTER_PAYMENT_DELETED = "TRANSPORTER_PAYMENT_DELETED"
    STATUS_CHANGED = "STATUS_CHANGED"
    UPDATED = "UPDATED"


class SubtripEvent(TenantScoped, BaseModel):
    """One immutable audit row. Never updated or deleted."""
    __tablename__ = "subtrip_events"

    # No foreign key: events outlive deleted subtrips
    subtrip_id = Column(Integer, nullable=False, index=True)
    event_type = Column(String(50), nullable=False, index=True)
    timestamp = Column(DateTime, default=datetime.utcnow, nullable=False, index=True)
    details = Column(JSON, nullable=True)
    user_id = Column(String(50), nullable=True)
    user_name = Column(String(200), nullable=True)
