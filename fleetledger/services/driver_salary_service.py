"""
Driver salary service: salary receipts for drivers of own vehicles.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from sqlalchemy import func
from sqlalchemy.orm import Session
from fleetledger.core.config import settings
from fleetledger.core.exceptions import ConflictError
from fleetledger.core.utils import jsonable, money, to_decimal
from fleetledger.db.session import atomic
from fleetledger.models.driver import Driver
from fleetledger.models.driver_salary import DriverSalary
from fleetledger.models.expense import ExpenseType
from fleetledger.models.loan import Loan
from fleetledger.models.subtrip import Subtrip, SubtripStatus
from fleetledger.models.subtrip_event import SubtripEventType
from fleetledger.models.transporter_payment import PayoutStatus
from fleetledger.models.vehicle import Vehicle
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.driver_salary import DriverSalaryCreate
from fleetledger.schemas.snapshot import DriverSalarySubtripSnapshot, ExpenseLine
from fleetledger.services.loan_service import apply_repayments, prepare_repayments, reverse_repayments
from fleetledger.services.settlement_calc import (
    SettlementKind,
    driver_salary_summary,
    per_subtrip_totals,
    sum_expenses,
)
from fleetledger.services.settlement_engine import SettlementContext, SettlementEngine

logger = logging.getLogger(__name__)


class DriverSalaryEngine(SettlementEngine):
    """Driver salaries claim the driver's own-vehicle subtrips; subtrip status is left alone."""
    kind = SettlementKind.DRIVER_SALARY
    label = "Driver salary"
    document_model = DriverSalary
    counterparty_model = Driver
    counter_model = "DriverSalary"
    claim_field = "driver_salary_id"
    eligible_statuses = (SubtripStatus.RECEIVED, SubtripStatus.BILLED)
    generated_event = SubtripEventType.DRIVER_SALARY_GENERATED
    deleted_event = SubtripEventType.DRIVER_SALARY_DELETED

    def counterparty_id(self, payload: DriverSalaryCreate) -> int:
        return payload.driver_id

    def eligibility_filters(self, driver: Driver) -> list:
        return [Vehicle.is_own.is_(True), Subtrip.driver_id == driver.id]

    def build_snapshot(self, db: Session, subtrip: Subtrip, driver: Driver) -> DriverSalarySubtripSnapshot:
        totals = per_subtrip_totals(subtrip, self.kind)
        salary_lines = [
            ExpenseLine(expense_type=e.expense_type, amount=money(e.amount), remarks=e.remarks)
            for e in subtrip.expenses
            if e.expense_type == ExpenseType.DRIVER_SALARY.value
        ]

        return DriverSalarySubtripSnapshot(
            subtrip_id=subtrip.id,
            subtrip_no=subtrip.subtrip_no,
            loading_point=subtrip.loading_point,
            unloading_point=subtrip.unloading_point,
            vehicle_no=subtrip.vehicle.vehicle_no if subtrip.vehicle else None,
            customer_name=subtrip.customer.customer_name if subtrip.customer else None,
            start_date=subtrip.start_date,
            end_date=subtrip.end_date,
            loading_weight=to_decimal(subtrip.loading_weight),
            freight_amount=totals.freight_amount,
            shortage_amount=totals.shortage_amount,
            total_amount=totals.total_amount,
            expenses=salary_lines,
            total_driver_salary=sum_expenses([line.amount for line in salary_lines]),
        )

    def format_number(self, seq: int, driver: Driver) -> str:
        return f"{settings.DRIVER_SALARY_PREFIX}{seq}"

    def build_document(self, db: Session, tenant_id: int, number: str, payload: DriverSalaryCreate,
                       context: SettlementContext, subtrips: List[Subtrip],
                       snapshots: List[DriverSalarySubtripSnapshot]) -> DriverSalary:
        driver = context.counterparty
        _, loan_lines = prepare_repayments(db, tenant_id, driver.id, payload.loan_repayments)
        deductions = list(payload.additional_deductions) + loan_lines
        summary = driver_salary_summary(snapshots, payload.additional_payments, deductions)

        return DriverSalary(
            tenant_id=tenant_id,
            payment_id=number,
            driver_id=driver.id,
            status=PayoutStatus.GENERATED,
            issue_date=payload.issue_date or date.today(),
            billing_period_start=payload.billing_period_start,
            billing_period_end=payload.billing_period_end,
            remarks=payload.remarks,
            associated_subtrips=[s.subtrip_id for s in snapshots],
            subtrip_snapshot=jsonable([s.model_dump() for s in snapshots]),
            additional_payments=jsonable([c.model_dump() for c in payload.additional_payments]),
            additional_deductions=jsonable([c.model_dump() for c in deductions]),
            summary=jsonable(summary.model_dump()),
            net_income=money(summary.net_income),
        )

    def after_persist(self, db: Session, tenant_id: int, salary: DriverSalary, payload: DriverSalaryCreate,
                      context: SettlementContext, user: Optional[CurrentUser]) -> None:
        if not payload.loan_repayments:
            return
        loan_ids = [r.loan_id for r in payload.loan_repayments]
        loans = {loan.id: loan for loan in db.query(Loan).filter(Loan.id.in_(loan_ids)).all()}
        apply_repayments(db, loans, payload.loan_repayments, driver_salary_id=salary.id)

    def event_details(self, salary: DriverSalary) -> Dict:
        return {"payment_id": salary.payment_id, "amount": salary.net_income}


driver_salary_engine = DriverSalaryEngine()


def get_driver_salary(db: Session, tenant_id: int, salary_id: int) -> DriverSalary:
    """Fetch a driver salary of the tenant."""
    return driver_salary_engine.get_document(db, tenant_id, salary_id)


def create_driver_salary(db: Session, tenant_id: int, payload: DriverSalaryCreate,
                         user: Optional[CurrentUser] = None) -> DriverSalary:
    """Settle a driver's own-vehicle subtrips into a salary receipt."""
    return driver_salary_engine.create(db, tenant_id, payload, user)


def create_bulk_driver_salaries(db: Session, tenant_id: int, payloads: List[DriverSalaryCreate],
                                user: Optional[CurrentUser] = None) -> List[DriverSalary]:
    """Create several salary receipts, all or nothing."""
    return driver_salary_engine.create_bulk(db, tenant_id, payloads, user)


def mark_driver_salary_paid(db: Session, tenant_id: int, salary_id: int,
                            user: Optional[CurrentUser] = None) -> DriverSalary:
    """Move a generated receipt to paid."""
    with atomic(db):
        salary = driver_salary_engine.get_document(db, tenant_id, salary_id, for_update=True)
        if salary.status == PayoutStatus.PAID:
            raise ConflictError(f"Driver salary {salary.payment_id} is already paid", {"id": salary.id})
        salary.status = PayoutStatus.PAID
        salary.paid_at = datetime.utcnow()

    db.refresh(salary)
    logger.info(f"Driver salary {salary.payment_id} marked paid")
    return salary


def delete_driver_salary(db: Session, tenant_id: int, salary_id: int,
                         user: Optional[CurrentUser] = None) -> None:
    """Delete a generated (unpaid) receipt, releasing its subtrips and reversing loan repayments."""
    with atomic(db):
        salary = driver_salary_engine.get_document(db, tenant_id, salary_id, for_update=True)
        if salary.status == PayoutStatus.PAID:
            raise ConflictError(
                f"Driver salary {salary.payment_id} is paid and cannot be deleted",
                {"id": salary.id},
            )
        reversed_count = reverse_repayments(db, salary.id)
        driver_salary_engine.release(db, tenant_id, salary, user)
        number = salary.payment_id
        db.delete(salary)

    logger.info(f"Deleted driver salary {number} ({reversed_count} loan repayments reversed)")


def list_driver_salaries(
    db: Session,
    tenant_id: int,
    driver_id: Optional[int] = None,
    statuses: Optional[List[PayoutStatus]] = None,
    skip: int = 0,
    limit: int = 100,
) -> Tuple[List[DriverSalary], int, Dict[str, Decimal]]:
    """Driver salaries matching the filters, the match count and net totals per status."""
    query = db.query(DriverSalary).filter(DriverSalary.tenant_id == tenant_id)
    if driver_id is not None:
        query = query.filter(DriverSalary.driver_id == driver_id)
    if statuses:
        query = query.filter(DriverSalary.status.in_(statuses))

    total = query.count()
    totals = {
        status.value: money(amount)
        for status, amount in query.with_entities(
            DriverSalary.status, func.coalesce(func.sum(DriverSalary.net_income), 0)
        ).group_by(DriverSalary.status).all()
    }
    salaries = query.order_by(DriverSalary.issue_date.desc(), DriverSalary.id.desc()).offset(skip).limit(limit).all()
    return salaries, total, totals
