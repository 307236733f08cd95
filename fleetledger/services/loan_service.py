"""
Loan service: driver loans repaid through salary deductions.

Repayments adjust the loan schedule only; they never touch subtrip claims.
"""
import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session
from fleetledger.core.exceptions import NotFoundError, OverpaymentError, ValidationError
from fleetledger.core.utils import money
from fleetledger.db.session import atomic
from fleetledger.models.driver import Driver
from fleetledger.models.loan import Loan, LoanRepayment, LoanStatus
from fleetledger.schemas.common import ChargeLine
from fleetledger.schemas.driver_salary import LoanRepaymentIn
from fleetledger.schemas.loan import LoanCreate

logger = logging.getLogger(__name__)


def create_loan(db: Session, tenant_id: int, data: LoanCreate) -> Loan:
    """Give a loan to a driver."""
    with atomic(db):
        driver = db.query(Driver).filter(Driver.id == data.driver_id, Driver.tenant_id == tenant_id).first()
        if not driver:
            raise NotFoundError("Driver not found", {"driver_id": data.driver_id})

        loan = Loan(
            tenant_id=tenant_id,
            driver_id=driver.id,
            principal_amount=money(data.principal_amount),
            installment_amount=money(data.installment_amount) if data.installment_amount else None,
            remaining_balance=money(data.principal_amount),
            status=LoanStatus.ACTIVE,
            disbursement_date=data.disbursement_date,
            remarks=data.remarks,
        )
        db.add(loan)

    db.refresh(loan)
    logger.info(f"Created loan {loan.id} of {loan.principal_amount} for driver {driver.id}")
    return loan


def get_loan(db: Session, tenant_id: int, loan_id: int) -> Loan:
    """Fetch a loan of the tenant."""
    loan = db.query(Loan).filter(Loan.id == loan_id, Loan.tenant_id == tenant_id).first()
    if not loan:
        raise NotFoundError("Loan not found", {"loan_id": loan_id})
    return loan


def prepare_repayments(
    db: Session,
    tenant_id: int,
    driver_id: int,
    repayments: Sequence[LoanRepaymentIn],
) -> Tuple[Dict[int, Loan], List[ChargeLine]]:
    """
    Lock and validate the loans to be repaid from a salary.

    Returns the loans by id and one deduction line per repayment.
    """
    loans: Dict[int, Loan] = {}
    lines: List[ChargeLine] = []
    requested: Dict[int, object] = {}

    for repayment in repayments:
        loan = loans.get(repayment.loan_id)
        if loan is None:
            loan = db.query(Loan).filter(
                Loan.id == repayment.loan_id,
                Loan.tenant_id == tenant_id,
            ).with_for_update().first()
            if not loan:
                raise NotFoundError("Loan not found", {"loan_id": repayment.loan_id})
            if loan.driver_id != driver_id:
                raise ValidationError("Loan belongs to a different driver", {"loan_id": loan.id})
            if loan.status != LoanStatus.ACTIVE:
                raise ValidationError("Loan is closed", {"loan_id": loan.id})
            loans[loan.id] = loan

        amount = money(repayment.amount)
        total = money(requested.get(loan.id, 0)) + amount
        if total > money(loan.remaining_balance):
            raise OverpaymentError(
                f"Repayment of {total} exceeds the remaining loan balance of {money(loan.remaining_balance)}",
                {"loan_id": loan.id, "amount": str(total), "remaining_balance": str(money(loan.remaining_balance))},
            )
        requested[loan.id] = total
        lines.append(ChargeLine(label=f"Loan repayment #{loan.id}", amount=amount))

    return loans, lines


def apply_repayments(
    db: Session,
    loans: Dict[int, Loan],
    repayments: Sequence[LoanRepaymentIn],
    driver_salary_id: Optional[int] = None,
) -> List[LoanRepayment]:
    """Record repayments and reduce balances. Runs inside the caller's transaction."""
    records = []
    for repayment in repayments:
        loan = loans[repayment.loan_id]
        amount = money(repayment.amount)
        loan.remaining_balance = money(loan.remaining_balance) - amount
        if loan.remaining_balance <= 0:
            loan.status = LoanStatus.CLOSED

        record = LoanRepayment(
            loan_id=loan.id,
            driver_salary_id=driver_salary_id,
            amount=amount,
            paid_at=datetime.utcnow(),
        )
        db.add(record)
        records.append(record)
    return records


def reverse_repayments(db: Session, driver_salary_id: int) -> int:
    """Undo the repayments taken through a salary receipt. Returns how many were reversed."""
    records = db.query(LoanRepayment).filter(LoanRepayment.driver_salary_id == driver_salary_id).all()
    for record in records:
        loan = db.query(Loan).filter(Loan.id == record.loan_id).with_for_update().one()
        loan.remaining_balance = money(loan.remaining_balance) + money(record.amount)
        loan.status = LoanStatus.ACTIVE
        db.delete(record)
    return len(records)
