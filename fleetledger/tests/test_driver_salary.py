"""
Tests for driver salary receipts and loan repayments.
"""
from decimal import Decimal

import pytest
from fleetledger.core.exceptions import (
    BatchItemError,
    ConflictError,
    OverpaymentError,
    PartialEligibilityError,
    ValidationError,
)
from fleetledger.models.driver_salary import DriverSalary
from fleetledger.models.expense import ExpenseType
from fleetledger.models.loan import LoanStatus
from fleetledger.models.subtrip import SubtripStatus
from fleetledger.models.subtrip_event import SubtripEventType
from fleetledger.models.transporter_payment import PayoutStatus
from fleetledger.schemas.common import ChargeLine
from fleetledger.schemas.driver_salary import DriverSalaryCreate, LoanRepaymentIn
from fleetledger.schemas.expense import ExpenseCreate
from fleetledger.schemas.invoice import InvoiceCreate
from fleetledger.schemas.loan import LoanCreate
from fleetledger.services import driver_salary_service, loan_service
from fleetledger.services.expense_service import add_expense
from fleetledger.services.invoice_service import create_invoice
from fleetledger.services.subtrip_event_service import list_events_for_subtrip
from fleetledger.services.subtrip_service import get_subtrip


def _salary(db, seed, subtrip_ids, driver=None, **extra):
    driver = driver or seed.driver
    return driver_salary_service.create_driver_salary(
        db, seed.tenant.id, DriverSalaryCreate(driver_id=driver.id, subtrip_ids=subtrip_ids, **extra), seed.user,
    )


def _loan(db, seed, principal="1000", driver=None):
    driver = driver or seed.driver
    return loan_service.create_loan(
        db, seed.tenant.id, LoanCreate(driver_id=driver.id, principal_amount=Decimal(principal)),
    )


def test_salary_with_payments_deductions_and_loan(db, seed, make_subtrip):
    subtrip = make_subtrip()
    loan = _loan(db, seed)

    salary = _salary(
        db, seed, [subtrip.id],
        additional_payments=[ChargeLine(label="Bonus", amount=Decimal("500"))],
        additional_deductions=[ChargeLine(label="Fine", amount=Decimal("100"))],
        loan_repayments=[LoanRepaymentIn(loan_id=loan.id, amount=Decimal("300"))],
    )

    assert salary.payment_id == "DSR-1"
    assert salary.status == PayoutStatus.GENERATED
    assert salary.summary["total_trip_wise_income"] == 1000.0
    assert salary.summary["total_deductions"] == 400.0
    assert salary.net_income == Decimal("1100.00")
    assert salary.additional_deductions[-1] == {"label": f"Loan repayment #{loan.id}", "amount": 300.0}

    snapshot = salary.subtrip_snapshot[0]
    assert snapshot["total_driver_salary"] == 1000.0
    assert [line["expense_type"] for line in snapshot["expenses"]] == [ExpenseType.DRIVER_SALARY.value]

    loan = loan_service.get_loan(db, seed.tenant.id, loan.id)
    assert loan.remaining_balance == Decimal("700.00")
    assert [r.driver_salary_id for r in loan.repayments] == [salary.id]

    subtrip = get_subtrip(db, seed.tenant.id, subtrip.id)
    assert subtrip.driver_salary_id == salary.id
    assert subtrip.subtrip_status == SubtripStatus.RECEIVED
    events = list_events_for_subtrip(db, seed.tenant.id, subtrip.id)
    assert events[-1].event_type == SubtripEventType.DRIVER_SALARY_GENERATED.value


def test_full_repayment_closes_loan(db, seed, make_subtrip):
    subtrip = make_subtrip()
    loan = _loan(db, seed, principal="400")

    _salary(db, seed, [subtrip.id], loan_repayments=[LoanRepaymentIn(loan_id=loan.id, amount=Decimal("400"))])

    loan = loan_service.get_loan(db, seed.tenant.id, loan.id)
    assert loan.remaining_balance == Decimal("0")
    assert loan.status == LoanStatus.CLOSED


def test_loan_overpayment_rolls_back(db, seed, make_subtrip):
    subtrip = make_subtrip()
    loan = _loan(db, seed)

    with pytest.raises(OverpaymentError):
        _salary(db, seed, [subtrip.id], loan_repayments=[LoanRepaymentIn(loan_id=loan.id, amount=Decimal("1500"))])

    assert get_subtrip(db, seed.tenant.id, subtrip.id).driver_salary_id is None
    assert loan_service.get_loan(db, seed.tenant.id, loan.id).remaining_balance == Decimal("1000.00")
    assert db.query(DriverSalary).count() == 0


def test_loan_of_another_driver_is_rejected(db, seed, make_subtrip):
    subtrip = make_subtrip()
    loan = _loan(db, seed, driver=seed.driver_two)

    with pytest.raises(ValidationError):
        _salary(db, seed, [subtrip.id], loan_repayments=[LoanRepaymentIn(loan_id=loan.id, amount=Decimal("100"))])


def test_only_own_vehicle_subtrips_of_the_driver(db, seed, make_subtrip):
    own = make_subtrip()
    market = make_subtrip(kind="market", driver=seed.driver)
    other_driver = make_subtrip(vehicle=seed.own_vehicle_two, driver=seed.driver_two)

    with pytest.raises(PartialEligibilityError) as exc_info:
        _salary(db, seed, [own.id, market.id, other_driver.id])

    assert exc_info.value.failed_subtrips == [market.id, other_driver.id]


def test_billed_subtrips_are_payable(db, seed, make_subtrip):
    subtrip = make_subtrip()
    create_invoice(db, seed.tenant.id, InvoiceCreate(customer_id=seed.customer_intra.id, subtrip_ids=[subtrip.id]))

    salary = _salary(db, seed, [subtrip.id])

    subtrip = get_subtrip(db, seed.tenant.id, subtrip.id)
    assert subtrip.subtrip_status == SubtripStatus.BILLED
    assert subtrip.driver_salary_id == salary.id


def test_claimed_subtrip_expenses_are_frozen(db, seed, make_subtrip):
    subtrip = make_subtrip()
    _salary(db, seed, [subtrip.id])

    with pytest.raises(ConflictError):
        add_expense(db, seed.tenant.id, subtrip.id, ExpenseCreate(expense_type=ExpenseType.TOLL, amount=Decimal("50")))


def test_delete_reverses_repayments_and_releases(db, seed, make_subtrip):
    subtrip = make_subtrip()
    loan = _loan(db, seed)
    salary = _salary(db, seed, [subtrip.id], loan_repayments=[LoanRepaymentIn(loan_id=loan.id, amount=Decimal("300"))])

    driver_salary_service.delete_driver_salary(db, seed.tenant.id, salary.id, seed.user)

    assert db.query(DriverSalary).count() == 0
    loan = loan_service.get_loan(db, seed.tenant.id, loan.id)
    assert loan.remaining_balance == Decimal("1000.00")
    assert loan.repayments == []
    assert get_subtrip(db, seed.tenant.id, subtrip.id).driver_salary_id is None

    types = [e.event_type for e in list_events_for_subtrip(db, seed.tenant.id, subtrip.id)]
    assert types[-2:] == [
        SubtripEventType.DRIVER_SALARY_GENERATED.value,
        SubtripEventType.DRIVER_SALARY_DELETED.value,
    ]


def test_paid_salary_cannot_be_deleted(db, seed, make_subtrip):
    subtrip = make_subtrip()
    salary = _salary(db, seed, [subtrip.id])

    salary = driver_salary_service.mark_driver_salary_paid(db, seed.tenant.id, salary.id)
    assert salary.status == PayoutStatus.PAID
    assert salary.paid_at is not None

    with pytest.raises(ConflictError):
        driver_salary_service.mark_driver_salary_paid(db, seed.tenant.id, salary.id)
    with pytest.raises(ConflictError):
        driver_salary_service.delete_driver_salary(db, seed.tenant.id, salary.id)


def test_bulk_creation(db, seed, make_subtrip):
    first = make_subtrip()
    second = make_subtrip(vehicle=seed.own_vehicle_two, driver=seed.driver_two)

    salaries = driver_salary_service.create_bulk_driver_salaries(db, seed.tenant.id, [
        DriverSalaryCreate(driver_id=seed.driver.id, subtrip_ids=[first.id]),
        DriverSalaryCreate(driver_id=seed.driver_two.id, subtrip_ids=[second.id]),
    ], seed.user)

    assert [s.payment_id for s in salaries] == ["DSR-1", "DSR-2"]


def test_bulk_failure_names_the_payload_and_rolls_back(db, seed, make_subtrip):
    subtrip = make_subtrip()

    with pytest.raises(BatchItemError) as exc_info:
        driver_salary_service.create_bulk_driver_salaries(db, seed.tenant.id, [
            DriverSalaryCreate(driver_id=seed.driver.id, subtrip_ids=[subtrip.id]),
            DriverSalaryCreate(driver_id=seed.driver.id, subtrip_ids=[subtrip.id]),
        ])

    error = exc_info.value
    assert error.index == 1
    assert error.message.startswith("Payload #2:")
    assert error.details["error"] == "PartialEligibilityError"
    assert error.details["failed_subtrips"] == [subtrip.id]
    assert db.query(DriverSalary).count() == 0
    assert get_subtrip(db, seed.tenant.id, subtrip.id).driver_salary_id is None


def test_list_driver_salaries(db, seed, make_subtrip):
    first = make_subtrip()
    second = make_subtrip()
    paid = _salary(db, seed, [first.id])
    _salary(db, seed, [second.id], additional_payments=[ChargeLine(label="Bonus", amount=Decimal("250"))])
    driver_salary_service.mark_driver_salary_paid(db, seed.tenant.id, paid.id)

    salaries, total, totals = driver_salary_service.list_driver_salaries(db, seed.tenant.id, driver_id=seed.driver.id)
    assert total == 2
    assert totals == {"paid": Decimal("1000.00"), "generated": Decimal("1250.00")}

    generated, total, _ = driver_salary_service.list_driver_salaries(
        db, seed.tenant.id, statuses=[PayoutStatus.GENERATED],
    )
    assert total == 1
    assert generated[0].net_income == Decimal("1250.00")
