"""
Audit trail for subtrips: append-only event records and their display text.
"""
from datetime import date, datetime, time, timedelta
from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session
from fleetledger.core.utils import jsonable
from fleetledger.models.subtrip_event import SubtripEvent, SubtripEventType
from fleetledger.schemas.common import CurrentUser


EVENT_TEMPLATES = {
    SubtripEventType.CREATED: "Subtrip created",
    SubtripEventType.MATERIAL_ADDED: "Material {material_type} loaded ({loading_weight} t)",
    SubtripEventType.RECEIVED: "Subtrip received with unloading weight {unloading_weight}",
    SubtripEventType.ERROR_REPORTED: "Error reported: {remarks}",
    SubtripEventType.ERROR_RESOLVED: "Error resolved: {remarks}",
    SubtripEventType.EXPENSE_ADDED: "Expense {expense_type} of {amount} added",
    SubtripEventType.EXPENSE_DELETED: "Expense {expense_type} of {amount} deleted",
    SubtripEventType.INVOICE_GENERATED: "Invoice {invoice_no} generated for {amount}",
    SubtripEventType.INVOICE_CANCELLED: "Invoice {invoice_no} cancelled",
    SubtripEventType.INVOICE_DELETED: "Invoice {invoice_no} deleted",
    SubtripEventType.INVOICE_PAID: "Payment of {amount} received on invoice {invoice_no}",
    SubtripEventType.DRIVER_SALARY_GENERATED: "Driver salary {payment_id} generated",
    SubtripEventType.DRIVER_SALARY_DELETED: "Driver salary {payment_id} deleted",
    SubtripEventType.TRANSPORTER_PAYMENT_GENERATED: "Transporter payment {payment_id} generated",
    SubtripEventType.TRANSPORTER_PAYMENT_DELETED: "Transporter payment {payment_id} deleted",
    SubtripEventType.STATUS_CHANGED: "Status changed from {from_status} to {to_status}",
    SubtripEventType.UPDATED: "Subtrip updated: {fields}",
}


def record_subtrip_event(
    db: Session,
    subtrip_id: int,
    event_type: SubtripEventType,
    details: Optional[Dict[str, Any]],
    user: Optional[CurrentUser],
    tenant_id: int,
) -> SubtripEvent:
    """
    Append one audit event.

    Does not commit: the event belongs to the caller's transaction so it
    lands together with the change it describes, or not at all.
    """
    event = SubtripEvent(
        subtrip_id=subtrip_id,
        event_type=SubtripEventType(event_type).value,
        timestamp=datetime.utcnow(),
        details=jsonable(details or {}),
        user_id=user.user_id if user else None,
        user_name=user.name if user else None,
        tenant_id=tenant_id,
    )
    db.add(event)
    return event


class _MissingAsBlank(dict):
    def __missing__(self, key):
        return "-"


def render_event(event: SubtripEvent) -> str:
    """Human-readable message for an event. Display only."""
    try:
        event_type = SubtripEventType(event.event_type)
    except ValueError:
        return event.event_type

    details = dict(event.details or {})
    if event_type == SubtripEventType.UPDATED:
        details["fields"] = ", ".join(sorted((details.get("changes") or {}).keys())) or "-"

    message = EVENT_TEMPLATES[event_type].format_map(_MissingAsBlank(details))
    if event.user_name:
        message = f"{message} by {event.user_name}"
    return message


def list_events_for_subtrip(db: Session, tenant_id: int, subtrip_id: int) -> List[SubtripEvent]:
    """Events of one subtrip, oldest first."""
    return db.query(SubtripEvent).filter(
        SubtripEvent.tenant_id == tenant_id,
        SubtripEvent.subtrip_id == subtrip_id,
    ).order_by(SubtripEvent.timestamp, SubtripEvent.id).all()


def list_events_between(
    db: Session,
    tenant_id: int,
    from_date: date,
    to_date: date,
    event_types: Optional[List[SubtripEventType]] = None,
) -> List[SubtripEvent]:
    """Events in an inclusive date range, for day-wise summaries."""
    start = datetime.combine(from_date, time.min)
    end = datetime.combine(to_date + timedelta(days=1), time.min)

    query = db.query(SubtripEvent).filter(
        SubtripEvent.tenant_id == tenant_id,
        SubtripEvent.timestamp >= start,
        SubtripEvent.timestamp < end,
    )
    if event_types:
        query = query.filter(SubtripEvent.event_type.in_([SubtripEventType(t).value for t in event_types]))

    return query.order_by(SubtripEvent.timestamp, SubtripEvent.id).all()
