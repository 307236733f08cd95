"""
Transporter payment service: payouts to market transporters.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload
from fleetledger.core.config import settings
from fleetledger.core.exceptions import ConflictError
from fleetledger.core.utils import jsonable, money, to_decimal
from fleetledger.db.session import atomic
from fleetledger.models.subtrip import Subtrip, SubtripStatus
from fleetledger.models.subtrip_event import SubtripEventType
from fleetledger.models.transporter import Transporter
from fleetledger.models.transporter_payment import PayoutStatus, TransporterPayment
from fleetledger.models.vehicle import Vehicle
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.settlement import TaxProfile
from fleetledger.schemas.snapshot import ExpenseLine, TransporterSubtripSnapshot
from fleetledger.schemas.transporter_payment import PayableTransporterGroup, TransporterPaymentCreate
from fleetledger.services.settlement_calc import (
    SettlementKind,
    per_subtrip_totals,
    sum_expenses,
    transporter_payment_summary,
)
from fleetledger.services.settlement_engine import SettlementContext, SettlementEngine

logger = logging.getLogger(__name__)

PAYABLE_STATUSES = (SubtripStatus.RECEIVED, SubtripStatus.BILLED)


def transporter_tax_profile(transporter: Transporter) -> TaxProfile:
    return TaxProfile(
        gst_enabled=bool(transporter.gst_enabled),
        state=transporter.state,
        tds_percentage=to_decimal(transporter.tds_percentage),
    )


def effective_freight_rate(subtrip: Subtrip) -> Decimal:
    """Rate the transporter is paid on: customer rate less our commission."""
    return to_decimal(subtrip.rate) - to_decimal(subtrip.commission_rate)


class TransporterPaymentEngine(SettlementEngine):
    """Transporter payments claim market-vehicle subtrips; subtrip status is left alone."""
    kind = SettlementKind.TRANSPORTER_PAYMENT
    label = "Transporter payment"
    document_model = TransporterPayment
    counterparty_model = Transporter
    counter_model = "TransporterPayment"
    claim_field = "transporter_payment_receipt_id"
    eligible_statuses = PAYABLE_STATUSES
    generated_event = SubtripEventType.TRANSPORTER_PAYMENT_GENERATED
    deleted_event = SubtripEventType.TRANSPORTER_PAYMENT_DELETED

    def counterparty_id(self, payload: TransporterPaymentCreate) -> int:
        return payload.transporter_id

    def eligibility_filters(self, transporter: Transporter) -> list:
        return [Vehicle.is_own.is_(False)]

    def build_snapshot(self, db: Session, subtrip: Subtrip, transporter: Transporter) -> TransporterSubtripSnapshot:
        rate = effective_freight_rate(subtrip)
        totals = per_subtrip_totals(subtrip, self.kind, rate=rate)
        expenses = [
            ExpenseLine(expense_type=e.expense_type, amount=money(e.amount), remarks=e.remarks)
            for e in subtrip.expenses
        ]
        total_expense = sum_expenses([e.amount for e in expenses])

        return TransporterSubtripSnapshot(
            subtrip_id=subtrip.id,
            subtrip_no=subtrip.subtrip_no,
            loading_point=subtrip.loading_point,
            unloading_point=subtrip.unloading_point,
            vehicle_no=subtrip.vehicle.vehicle_no if subtrip.vehicle else None,
            start_date=subtrip.start_date,
            invoice_no=subtrip.invoice_no,
            customer_name=subtrip.customer.customer_name if subtrip.customer else None,
            rate=to_decimal(subtrip.rate),
            commission_rate=to_decimal(subtrip.commission_rate),
            effective_freight_rate=rate,
            loading_weight=to_decimal(subtrip.loading_weight),
            freight_amount=totals.freight_amount,
            shortage_weight=to_decimal(subtrip.shortage_weight),
            shortage_amount=totals.shortage_amount,
            expenses=expenses,
            total_expense=total_expense,
            total_transporter_payment=totals.total_amount - total_expense,
        )

    def format_number(self, seq: int, transporter: Transporter) -> str:
        return f"{settings.TRANSPORTER_PAYMENT_PREFIX}{seq}"

    def build_document(self, db: Session, tenant_id: int, number: str, payload: TransporterPaymentCreate,
                       context: SettlementContext, subtrips: List[Subtrip],
                       snapshots: List[TransporterSubtripSnapshot]) -> TransporterPayment:
        transporter = context.counterparty
        summary = transporter_payment_summary(
            snapshots,
            transporter_tax_profile(transporter),
            context.own_state,
            settings.TRANSPORTER_PAYMENT_TAX_RATE,
            payload.additional_charges,
        )

        return TransporterPayment(
            tenant_id=tenant_id,
            payment_id=number,
            transporter_id=transporter.id,
            status=PayoutStatus.GENERATED,
            issue_date=payload.issue_date or date.today(),
            billing_period_start=payload.billing_period_start,
            billing_period_end=payload.billing_period_end,
            remarks=payload.remarks,
            associated_subtrips=[s.subtrip_id for s in snapshots],
            subtrip_snapshot=jsonable([s.model_dump() for s in snapshots]),
            additional_charges=jsonable([c.model_dump() for c in payload.additional_charges]),
            tax_breakup=jsonable(summary.tax_breakup.model_dump()),
            summary=jsonable(summary.model_dump()),
            net_income=money(summary.net_income),
        )

    def event_details(self, payment: TransporterPayment) -> Dict:
        return {"payment_id": payment.payment_id, "amount": payment.net_income}


transporter_payment_engine = TransporterPaymentEngine()


def get_transporter_payment(db: Session, tenant_id: int, payment_id: int) -> TransporterPayment:
    """Fetch a transporter payment of the tenant."""
    return transporter_payment_engine.get_document(db, tenant_id, payment_id)


def create_transporter_payment(db: Session, tenant_id: int, payload: TransporterPaymentCreate,
                               user: Optional[CurrentUser] = None) -> TransporterPayment:
    """Settle market-vehicle subtrips with their transporter."""
    return transporter_payment_engine.create(db, tenant_id, payload, user)


def create_bulk_transporter_payments(db: Session, tenant_id: int, payloads: List[TransporterPaymentCreate],
                                     user: Optional[CurrentUser] = None) -> List[TransporterPayment]:
    """Create several transporter payments, all or nothing."""
    return transporter_payment_engine.create_bulk(db, tenant_id, payloads, user)


def mark_transporter_payment_paid(db: Session, tenant_id: int, payment_id: int,
                                  user: Optional[CurrentUser] = None) -> TransporterPayment:
    """Move a generated receipt to paid."""
    with atomic(db):
        payment = transporter_payment_engine.get_document(db, tenant_id, payment_id, for_update=True)
        if payment.status == PayoutStatus.PAID:
            raise ConflictError(f"Transporter payment {payment.payment_id} is already paid", {"id": payment.id})
        payment.status = PayoutStatus.PAID
        payment.paid_at = datetime.utcnow()

    db.refresh(payment)
    logger.info(f"Transporter payment {payment.payment_id} marked paid")
    return payment


def delete_transporter_payment(db: Session, tenant_id: int, payment_id: int,
                               user: Optional[CurrentUser] = None) -> None:
    """Delete a generated (unpaid) receipt and release its subtrips."""
    with atomic(db):
        payment = transporter_payment_engine.get_document(db, tenant_id, payment_id, for_update=True)
        if payment.status == PayoutStatus.PAID:
            raise ConflictError(
                f"Transporter payment {payment.payment_id} is paid and cannot be deleted",
                {"id": payment.id},
            )
        transporter_payment_engine.release(db, tenant_id, payment, user)
        number = payment.payment_id
        db.delete(payment)

    logger.info(f"Deleted transporter payment {number}")


def list_transporter_payments(
    db: Session,
    tenant_id: int,
    transporter_id: Optional[int] = None,
    statuses: Optional[List[PayoutStatus]] = None,
    has_tds: Optional[bool] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[List[TransporterPayment], int, Dict[str, Decimal]]:
    """Transporter payments matching the filters, the match count and net totals per status."""
    query = db.query(TransporterPayment).filter(TransporterPayment.tenant_id == tenant_id)
    if transporter_id is not None:
        query = query.filter(TransporterPayment.transporter_id == transporter_id)
    if statuses:
        query = query.filter(TransporterPayment.status.in_(statuses))
    if has_tds is not None:
        ids = [
            p.id for p in query.all()
            if (to_decimal(((p.tax_breakup or {}).get("tds") or {}).get("amount")) > 0) == has_tds
        ]
        query = query.filter(TransporterPayment.id.in_(ids))

    total = query.count()
    totals = {
        status.value: money(amount)
        for status, amount in query.with_entities(
            TransporterPayment.status, func.coalesce(func.sum(TransporterPayment.net_income), 0)
        ).group_by(TransporterPayment.status).all()
    }
    payments = query.order_by(TransporterPayment.issue_date.desc(), TransporterPayment.id.desc()) \
        .offset(skip).limit(limit).all()
    return payments, total, totals


def fetch_payable_subtrips_by_transporter(
    db: Session,
    tenant_id: int,
    start_date: date,
    end_date: date,
) -> List[PayableTransporterGroup]:
    """Unsettled, non-empty market subtrips started in the period, grouped by transporter."""
    subtrips = db.query(Subtrip).join(Vehicle, Subtrip.vehicle_id == Vehicle.id).options(
        joinedload(Subtrip.vehicle).joinedload(Vehicle.transporter)
    ).filter(
        Subtrip.tenant_id == tenant_id,
        Subtrip.transporter_payment_receipt_id.is_(None),
        Subtrip.subtrip_status.in_(PAYABLE_STATUSES),
        Subtrip.is_empty.is_(False),
        Subtrip.start_date >= start_date,
        Subtrip.start_date <= end_date,
        Vehicle.is_own.is_(False),
        Vehicle.transporter_id.isnot(None),
    ).order_by(Subtrip.start_date, Subtrip.id).all()

    groups: Dict[int, PayableTransporterGroup] = {}
    for subtrip in subtrips:
        transporter = subtrip.vehicle.transporter
        freight = per_subtrip_totals(
            subtrip, SettlementKind.TRANSPORTER_PAYMENT, rate=effective_freight_rate(subtrip)
        ).freight_amount

        group = groups.get(transporter.id)
        if group is None:
            group = groups[transporter.id] = PayableTransporterGroup(
                transporter_id=transporter.id,
                transport_name=transporter.transport_name,
                subtrip_ids=[],
                total_freight_amount=Decimal("0"),
            )
        group.subtrip_ids.append(subtrip.id)
        group.total_freight_amount += freight

    return list(groups.values())
