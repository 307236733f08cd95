"""
Invoice service: customer settlement documents and their payments.
"""
import logging
from datetime import date, datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session
from fleetledger.core.config import settings
from fleetledger.core.exceptions import ConflictError, OverpaymentError, ValidationError
from fleetledger.core.utils import jsonable, money, to_decimal
from fleetledger.db.session import atomic
from fleetledger.models.customer import Customer
from fleetledger.models.invoice import Invoice, InvoicePayment, InvoiceStatus
from fleetledger.models.subtrip import Subtrip, SubtripStatus
from fleetledger.models.subtrip_event import SubtripEventType
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.invoice import InvoiceCreate, InvoicePaymentCreate
from fleetledger.schemas.settlement import TaxProfile
from fleetledger.schemas.snapshot import InvoiceSubtripSnapshot
from fleetledger.services.settlement_calc import SettlementKind, invoice_summary, per_subtrip_totals
from fleetledger.services.settlement_engine import SettlementContext, SettlementEngine
from fleetledger.services.subtrip_event_service import record_subtrip_event

logger = logging.getLogger(__name__)


def customer_tax_profile(customer: Customer) -> TaxProfile:
    return TaxProfile(gst_enabled=bool(customer.gst_enabled), state=customer.state)


class InvoiceEngine(SettlementEngine):
    """Invoices claim received subtrips and move them to billed."""
    kind = SettlementKind.INVOICE
    label = "Invoice"
    document_model = Invoice
    counterparty_model = Customer
    counter_model = "Invoice"
    claim_field = "invoice_id"
    eligible_statuses = (SubtripStatus.RECEIVED,)
    claimed_status = SubtripStatus.BILLED
    released_status = SubtripStatus.RECEIVED
    generated_event = SubtripEventType.INVOICE_GENERATED
    deleted_event = SubtripEventType.INVOICE_DELETED

    def counterparty_id(self, payload: InvoiceCreate) -> int:
        return payload.customer_id

    def build_snapshot(self, db: Session, subtrip: Subtrip, customer: Customer) -> InvoiceSubtripSnapshot:
        totals = per_subtrip_totals(subtrip, self.kind)
        return InvoiceSubtripSnapshot(
            subtrip_id=subtrip.id,
            subtrip_no=subtrip.subtrip_no,
            consignee=subtrip.consignee,
            unloading_point=subtrip.unloading_point,
            di_number=subtrip.di_number,
            vehicle_no=subtrip.vehicle.vehicle_no if subtrip.vehicle else None,
            material_type=subtrip.material_type,
            start_date=subtrip.start_date,
            invoice_no=subtrip.invoice_no,
            rate=to_decimal(subtrip.rate),
            loading_weight=to_decimal(subtrip.loading_weight),
            shortage_weight=to_decimal(subtrip.shortage_weight),
            shortage_amount=totals.shortage_amount,
            freight_amount=totals.freight_amount,
            total_amount=totals.total_amount,
        )

    def format_number(self, seq: int, customer: Customer) -> str:
        prefix = customer.invoice_prefix or settings.INVOICE_PREFIX
        return f"{prefix}{seq}{customer.invoice_suffix or ''}"

    def build_document(self, db: Session, tenant_id: int, number: str, payload: InvoiceCreate,
                       context: SettlementContext, subtrips: List[Subtrip],
                       snapshots: List[InvoiceSubtripSnapshot]) -> Invoice:
        customer = context.counterparty
        summary = invoice_summary(
            snapshots,
            customer_tax_profile(customer),
            context.own_state,
            settings.CUSTOMER_INVOICE_TAX_RATE,
            payload.additional_charges,
        )
        issue_date = payload.issue_date or date.today()
        pay_within = customer.invoice_pay_within or settings.DEFAULT_INVOICE_PAY_WITHIN_DAYS

        return Invoice(
            tenant_id=tenant_id,
            invoice_no=number,
            customer_id=customer.id,
            invoice_status=InvoiceStatus.PENDING,
            issue_date=issue_date,
            due_date=issue_date + timedelta(days=pay_within),
            notes=payload.notes,
            associated_subtrips=[s.subtrip_id for s in snapshots],
            subtrip_snapshot=jsonable([s.model_dump() for s in snapshots]),
            additional_charges=jsonable([c.model_dump() for c in payload.additional_charges]),
            tax_breakup=jsonable(summary.tax_breakup.model_dump()),
            summary=jsonable(summary.model_dump()),
            net_total=money(summary.net_total),
            total_received=Decimal("0.00"),
        )

    def event_details(self, invoice: Invoice) -> Dict:
        return {"invoice_no": invoice.invoice_no, "amount": invoice.net_total}

    def document_number(self, invoice: Invoice) -> str:
        return invoice.invoice_no


invoice_engine = InvoiceEngine()


def get_invoice(db: Session, tenant_id: int, invoice_id: int) -> Invoice:
    """Fetch an invoice of the tenant."""
    return invoice_engine.get_document(db, tenant_id, invoice_id)


def create_invoice(db: Session, tenant_id: int, payload: InvoiceCreate,
                   user: Optional[CurrentUser] = None) -> Invoice:
    """Invoice the given received subtrips of one customer."""
    return invoice_engine.create(db, tenant_id, payload, user)


def create_bulk_invoices(db: Session, tenant_id: int, payloads: List[InvoiceCreate],
                         user: Optional[CurrentUser] = None) -> List[Invoice]:
    """Create several invoices, all or nothing."""
    return invoice_engine.create_bulk(db, tenant_id, payloads, user)


def cancel_invoice(db: Session, tenant_id: int, invoice_id: int, remarks: Optional[str] = None,
                   user: Optional[CurrentUser] = None) -> Invoice:
    """
    Cancel an invoice: the document and its payments stay, the subtrips go
    back to received and become invoiceable again.
    """
    with atomic(db):
        invoice = invoice_engine.get_document(db, tenant_id, invoice_id, for_update=True)
        if invoice.invoice_status == InvoiceStatus.CANCELLED:
            raise ConflictError(f"Invoice {invoice.invoice_no} is already cancelled", {"invoice_id": invoice.id})

        invoice.invoice_status = InvoiceStatus.CANCELLED
        invoice.cancellation_remarks = remarks
        invoice.cancelled_at = datetime.utcnow()
        invoice_engine.release(db, tenant_id, invoice, user, SubtripEventType.INVOICE_CANCELLED)

    db.refresh(invoice)
    logger.info(f"Cancelled invoice {invoice.invoice_no}")
    return invoice


def delete_invoice(db: Session, tenant_id: int, invoice_id: int, user: Optional[CurrentUser] = None) -> None:
    """Delete an invoice that has no payments, releasing its subtrips."""
    with atomic(db):
        invoice = invoice_engine.get_document(db, tenant_id, invoice_id, for_update=True)
        if invoice.payments:
            raise ConflictError(
                f"Invoice {invoice.invoice_no} has payments; cancel it instead",
                {"invoice_id": invoice.id, "payments": len(invoice.payments)},
            )
        if invoice.invoice_status != InvoiceStatus.CANCELLED:
            invoice_engine.release(db, tenant_id, invoice, user)
        invoice_no = invoice.invoice_no
        db.delete(invoice)

    logger.info(f"Deleted invoice {invoice_no}")


def invoice_status_for(net_total: Decimal, total_received: Decimal, current: InvoiceStatus,
                       due_date: date, today: date) -> InvoiceStatus:
    """Status implied by the amounts received so far."""
    if total_received >= net_total:
        return InvoiceStatus.RECEIVED
    if total_received > 0:
        return InvoiceStatus.PARTIAL_RECEIVED
    if current == InvoiceStatus.OVERDUE or due_date < today:
        return InvoiceStatus.OVERDUE
    return InvoiceStatus.PENDING


def record_payment(db: Session, tenant_id: int, invoice_id: int, data: InvoicePaymentCreate,
                   user: Optional[CurrentUser] = None) -> Invoice:
    """Record a (partial) payment; paying more than the outstanding balance is rejected."""
    amount = money(data.amount)
    if amount <= 0:
        raise ValidationError("Payment amount must be greater than zero")

    with atomic(db):
        invoice = invoice_engine.get_document(db, tenant_id, invoice_id, for_update=True)
        if invoice.invoice_status == InvoiceStatus.CANCELLED:
            raise ConflictError(f"Invoice {invoice.invoice_no} is cancelled", {"invoice_id": invoice.id})

        net_total = money(invoice.net_total)
        total_received = money(invoice.total_received)
        pending = net_total - total_received
        if amount > pending:
            raise OverpaymentError(
                f"Payment of {amount} exceeds the outstanding balance of {pending}",
                {"invoice_id": invoice.id, "amount": str(amount), "pending": str(pending)},
            )

        invoice.payments.append(InvoicePayment(
            amount=amount,
            paid_at=data.paid_at or datetime.utcnow(),
            paid_by=user.name if user else None,
            reference_number=data.reference_number,
            remarks=data.remarks,
        ))
        invoice.total_received = total_received + amount
        invoice.invoice_status = invoice_status_for(
            net_total, invoice.total_received, invoice.invoice_status, invoice.due_date, date.today()
        )

        for subtrip_id in invoice.associated_subtrips:
            record_subtrip_event(
                db, subtrip_id, SubtripEventType.INVOICE_PAID,
                {"invoice_no": invoice.invoice_no, "amount": amount, "reference_number": data.reference_number},
                user, tenant_id,
            )

    db.refresh(invoice)
    logger.info(f"Recorded payment {amount} on invoice {invoice.invoice_no} ({invoice.invoice_status.value})")
    return invoice


def mark_overdue_invoices(db: Session, tenant_id: int, today: Optional[date] = None) -> int:
    """Flip open, unpaid-in-full invoices past their due date to overdue. Returns the count."""
    today = today or date.today()
    with atomic(db):
        updated = db.query(Invoice).filter(
            Invoice.tenant_id == tenant_id,
            Invoice.invoice_status.in_((InvoiceStatus.PENDING, InvoiceStatus.PARTIAL_RECEIVED)),
            Invoice.due_date < today,
        ).update({Invoice.invoice_status: InvoiceStatus.OVERDUE}, synchronize_session=False)

    if updated:
        logger.info(f"Marked {updated} invoices overdue for tenant {tenant_id}")
    return updated


def list_invoices(
    db: Session,
    tenant_id: int,
    customer_id: Optional[int] = None,
    statuses: Optional[List[InvoiceStatus]] = None,
    subtrip_id: Optional[int] = None,
    issue_from: Optional[date] = None,
    issue_to: Optional[date] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[List[Invoice], int, Dict[str, Decimal]]:
    """Invoices matching the filters, the match count and net totals per status."""
    query = db.query(Invoice).filter(Invoice.tenant_id == tenant_id)
    if customer_id is not None:
        query = query.filter(Invoice.customer_id == customer_id)
    if statuses:
        query = query.filter(Invoice.invoice_status.in_(statuses))
    if issue_from is not None:
        query = query.filter(Invoice.issue_date >= issue_from)
    if issue_to is not None:
        query = query.filter(Invoice.issue_date <= issue_to)
    if subtrip_id is not None:
        # Frozen id list, so cancelled invoices still match
        ids = [invoice.id for invoice in query.all() if subtrip_id in (invoice.associated_subtrips or [])]
        query = query.filter(Invoice.id.in_(ids))

    total = query.count()
    totals = {
        status.value: money(amount)
        for status, amount in query.with_entities(
            Invoice.invoice_status, func.coalesce(func.sum(Invoice.net_total), 0)
        ).group_by(Invoice.invoice_status).all()
    }
    invoices = query.order_by(Invoice.issue_date.desc(), Invoice.id.desc()).offset(skip).limit(limit).all()
    return invoices, total, totals
