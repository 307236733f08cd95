"""
Tests for the tax and totals calculator.
"""
from decimal import Decimal
from types import SimpleNamespace

import pytest
from fleetledger.core.exceptions import ValidationError
from fleetledger.schemas.common import ChargeLine
from fleetledger.schemas.settlement import TaxProfile
from fleetledger.schemas.snapshot import (
    DriverSalarySubtripSnapshot,
    InvoiceSubtripSnapshot,
    TransporterSubtripSnapshot,
)
from fleetledger.services.settlement_calc import (
    SettlementKind,
    driver_salary_summary,
    invoice_summary,
    is_same_state,
    per_subtrip_totals,
    tax_breakup,
    transporter_payment_summary,
)


def _subtrip(rate="500", loading_weight="20", shortage_amount="200"):
    return SimpleNamespace(
        rate=Decimal(rate),
        loading_weight=Decimal(loading_weight),
        shortage_amount=Decimal(shortage_amount),
    )


def test_invoice_bills_full_freight_but_payouts_subtract_shortage():
    """Shortage is shown on invoices but deducted on payouts."""
    subtrip = _subtrip()

    invoice = per_subtrip_totals(subtrip, SettlementKind.INVOICE)
    payout = per_subtrip_totals(subtrip, SettlementKind.TRANSPORTER_PAYMENT)

    assert invoice.freight_amount == Decimal("10000.00")
    assert invoice.shortage_amount == Decimal("200.00")
    assert invoice.total_amount == Decimal("10000.00")
    assert payout.total_amount == Decimal("9800.00")


def test_rate_override_for_commission():
    totals = per_subtrip_totals(_subtrip(), SettlementKind.TRANSPORTER_PAYMENT, rate=Decimal("450"))
    assert totals.freight_amount == Decimal("9000.00")
    assert totals.total_amount == Decimal("8800.00")


def test_missing_shortage_counts_as_zero():
    subtrip = SimpleNamespace(rate=Decimal("100"), loading_weight=Decimal("3"), shortage_amount=None)
    totals = per_subtrip_totals(subtrip, SettlementKind.DRIVER_SALARY)
    assert totals.total_amount == Decimal("300.00")


def test_state_comparison_ignores_case_and_whitespace():
    assert is_same_state(" karnataka ", "Karnataka")
    assert not is_same_state("Kerala", "Karnataka")


def test_intra_state_splits_cgst_and_sgst():
    """6% base rate on 10000 within the same state."""
    breakup = tax_breakup(TaxProfile(gst_enabled=True, state="karnataka"), Decimal("10000"), "Karnataka", 6)

    assert breakup.cgst.rate == Decimal("6")
    assert breakup.cgst.amount == Decimal("600.00")
    assert breakup.sgst.amount == Decimal("600.00")
    assert breakup.igst.amount == Decimal("0")
    assert breakup.total_tax == Decimal("1200.00")
    assert breakup.tds is None


def test_inter_state_charges_igst_at_double_rate():
    breakup = tax_breakup(TaxProfile(gst_enabled=True, state="Tamil Nadu"), Decimal("10000"), "Karnataka", 6)

    assert breakup.cgst.amount == Decimal("0")
    assert breakup.sgst.amount == Decimal("0")
    assert breakup.igst.rate == Decimal("12")
    assert breakup.igst.amount == Decimal("1200.00")
    assert breakup.total_tax == Decimal("1200.00")


def test_gst_disabled_gives_zero_tax():
    breakup = tax_breakup(TaxProfile(gst_enabled=False), Decimal("10000"), None, 6)
    assert breakup.total_tax == Decimal("0")
    assert breakup.cgst.amount == breakup.sgst.amount == breakup.igst.amount == Decimal("0")


def test_missing_counterparty_state_is_an_error():
    with pytest.raises(ValidationError) as exc_info:
        tax_breakup(TaxProfile(gst_enabled=True, state="  "), Decimal("10000"), "Karnataka", 6, party="Customer")
    assert "Customer state is required" in exc_info.value.message


def test_missing_tenant_state_is_an_error():
    with pytest.raises(ValidationError) as exc_info:
        tax_breakup(TaxProfile(gst_enabled=True, state="Karnataka"), Decimal("10000"), None, 6)
    assert "Tenant state is required" in exc_info.value.message


def test_tds_applies_without_gst():
    profile = TaxProfile(gst_enabled=False, tds_percentage=Decimal("1"))
    breakup = tax_breakup(profile, Decimal("7800"), None, 6, with_tds=True)

    assert breakup.tds.rate == Decimal("1")
    assert breakup.tds.amount == Decimal("78.00")
    assert breakup.total_tax == Decimal("78.00")


def test_invoice_summary_adds_tax_and_charges():
    snapshot = InvoiceSubtripSnapshot(
        subtrip_id=1, subtrip_no="st-1", rate=Decimal("500"), loading_weight=Decimal("20"),
        shortage_weight=Decimal("0.4"), shortage_amount=Decimal("200"),
        freight_amount=Decimal("10000"), total_amount=Decimal("10000"),
    )
    summary = invoice_summary(
        [snapshot], TaxProfile(gst_enabled=True, state="Karnataka"), "Karnataka", 6,
        [ChargeLine(label="Loading charges", amount=Decimal("250"))],
    )

    assert summary.total_freight_amount == Decimal("10000")
    assert summary.total_shortage_amount == Decimal("200")
    assert summary.total_amount_before_tax == Decimal("10000")
    assert summary.total_tax == Decimal("1200.00")
    assert summary.total_after_tax == Decimal("11200.00")
    assert summary.total_additional_charges == Decimal("250.00")
    assert summary.net_total == Decimal("11450.00")


def test_empty_input_gives_zero_summaries():
    """No snapshots means zero totals, even when tax inputs are missing."""
    profile = TaxProfile(gst_enabled=True, state=None)

    assert invoice_summary([], profile, None, 6).net_total == Decimal("0")
    assert transporter_payment_summary([], profile, None, 6).net_income == Decimal("0")
    assert driver_salary_summary([]).net_income == Decimal("0")


def test_transporter_summary_taxes_income_after_expenses_and_shortage():
    snapshot = TransporterSubtripSnapshot(
        subtrip_id=1, subtrip_no="st-1", freight_amount=Decimal("9000"),
        shortage_amount=Decimal("200"), total_expense=Decimal("1000"),
    )
    profile = TaxProfile(gst_enabled=True, state="Kerala", tds_percentage=Decimal("2"))
    summary = transporter_payment_summary(
        [snapshot], profile, "Karnataka", 6, [ChargeLine(label="Penalty", amount=Decimal("100"))],
    )

    assert summary.total_trip_wise_income == Decimal("7800")
    assert summary.tax_breakup.igst.amount == Decimal("936.00")
    assert summary.tax_breakup.tds.amount == Decimal("156.00")
    assert summary.total_tax == Decimal("1092.00")
    assert summary.net_income == Decimal("6608.00")


def test_transporter_summary_requires_state_only_with_gst():
    snapshot = TransporterSubtripSnapshot(subtrip_id=1, subtrip_no="st-1", freight_amount=Decimal("1000"))

    summary = transporter_payment_summary(
        [snapshot], TaxProfile(gst_enabled=False, tds_percentage=Decimal("1")), None, 6,
    )
    assert summary.net_income == Decimal("990.00")

    with pytest.raises(ValidationError):
        transporter_payment_summary([snapshot], TaxProfile(gst_enabled=True), "Karnataka", 6)


def test_driver_salary_summary():
    snapshots = [
        DriverSalarySubtripSnapshot(subtrip_id=1, subtrip_no="st-1", total_driver_salary=Decimal("1000")),
        DriverSalarySubtripSnapshot(subtrip_id=2, subtrip_no="st-2", total_driver_salary=Decimal("1500")),
    ]
    summary = driver_salary_summary(
        snapshots,
        [ChargeLine(label="Bonus", amount=Decimal("500"))],
        [ChargeLine(label="Fine", amount=Decimal("100")), ChargeLine(label="Loan", amount=Decimal("300"))],
    )

    assert summary.total_trip_wise_income == Decimal("2500")
    assert summary.total_additional_payments == Decimal("500.00")
    assert summary.total_deductions == Decimal("400.00")
    assert summary.net_income == Decimal("2600.00")
