"""
Tax and totals calculator for settlement documents.

Pure functions: no database access, no side effects. Inputs are subtrip-like
objects or frozen snapshots plus a counterparty tax profile; outputs are
value types from fleetledger.schemas.settlement.
"""
import enum
from decimal import Decimal
from typing import Any, Iterable, List, NamedTuple, Optional, Sequence

from fleetledger.core.exceptions import ValidationError
from fleetledger.core.utils import money, to_decimal
from fleetledger.schemas.common import ChargeLine
from fleetledger.schemas.settlement import (
    DriverSalarySummary,
    InvoiceSummary,
    TaxBreakup,
    TaxComponent,
    TaxProfile,
    TransporterPaymentSummary,
)
from fleetledger.schemas.snapshot import (
    DriverSalarySubtripSnapshot,
    InvoiceSubtripSnapshot,
    TransporterSubtripSnapshot,
)

ZERO = Decimal("0")
HUNDRED = Decimal("100")


class SettlementKind(str, enum.Enum):
    """Which settlement document the totals are computed for."""
    INVOICE = "invoice"
    DRIVER_SALARY = "driver_salary"
    TRANSPORTER_PAYMENT = "transporter_payment"


class SubtripTotals(NamedTuple):
    freight_amount: Decimal
    shortage_amount: Decimal
    total_amount: Decimal


def per_subtrip_totals(subtrip: Any, kind: SettlementKind, rate: Optional[Any] = None) -> SubtripTotals:
    """
    Freight, shortage and total for one subtrip.

    Customer invoices show shortage separately and bill the full freight.
    Payouts to drivers and transporters subtract the shortage.
    `rate` overrides the subtrip rate (transporters are paid on the rate
    net of commission).
    """
    effective_rate = to_decimal(subtrip.rate if rate is None else rate)
    freight_amount = money(effective_rate * to_decimal(subtrip.loading_weight))
    shortage_amount = money(subtrip.shortage_amount)

    if kind == SettlementKind.INVOICE:
        total_amount = freight_amount
    else:
        total_amount = freight_amount - shortage_amount

    return SubtripTotals(freight_amount, shortage_amount, total_amount)


def is_same_state(first: str, second: str) -> bool:
    """Case-insensitive, whitespace-trimmed state comparison."""
    return first.strip().lower() == second.strip().lower()


def tax_breakup(
    profile: TaxProfile,
    amount_before_tax: Any,
    own_state: Optional[str],
    base_rate: Any,
    with_tds: bool = False,
    party: str = "Counterparty",
) -> TaxBreakup:
    """
    Jurisdiction-aware tax breakup.

    GST disabled gives zero GST heads. Otherwise the counterparty state is
    compared to the tenant's registered state: intra-state charges CGST and
    SGST at the base rate each, inter-state charges IGST at twice the base
    rate. A missing state on either side is an error, never a default.
    TDS (transporters only) is computed whether or not GST applies.
    """
    amount = to_decimal(amount_before_tax)
    rate = to_decimal(base_rate)
    cgst = TaxComponent()
    sgst = TaxComponent()
    igst = TaxComponent()

    if profile.gst_enabled:
        if not profile.state or not profile.state.strip():
            raise ValidationError(f"{party} state is required to calculate tax breakup.")
        if not own_state or not own_state.strip():
            raise ValidationError("Tenant state is required to calculate tax breakup.")

        if is_same_state(profile.state, own_state):
            half = money(amount * rate / HUNDRED)
            cgst = TaxComponent(rate=rate, amount=half)
            sgst = TaxComponent(rate=rate, amount=half)
        else:
            igst_rate = rate * 2
            igst = TaxComponent(rate=igst_rate, amount=money(amount * igst_rate / HUNDRED))

    total_tax = cgst.amount + sgst.amount + igst.amount
    tds = None
    if with_tds:
        tds_rate = to_decimal(profile.tds_percentage)
        tds = TaxComponent(rate=tds_rate, amount=money(amount * tds_rate / HUNDRED))
        total_tax += tds.amount

    return TaxBreakup(cgst=cgst, sgst=sgst, igst=igst, tds=tds, total_tax=total_tax)


def sum_charges(charges: Iterable[ChargeLine]) -> Decimal:
    """Total of manual charge lines."""
    return money(sum((to_decimal(charge.amount) for charge in charges), ZERO))


def invoice_summary(
    snapshots: Sequence[InvoiceSubtripSnapshot],
    profile: TaxProfile,
    own_state: Optional[str],
    base_rate: Any,
    additional_charges: Sequence[ChargeLine] = (),
) -> InvoiceSummary:
    """Aggregate invoice totals: net = total after tax + additional charges."""
    if not snapshots:
        return InvoiceSummary()

    total_amount_before_tax = sum((s.total_amount for s in snapshots), ZERO)
    breakup = tax_breakup(profile, total_amount_before_tax, own_state, base_rate, party="Customer")
    total_after_tax = total_amount_before_tax + breakup.total_tax
    total_additional_charges = sum_charges(additional_charges)

    return InvoiceSummary(
        total_freight_wt=sum((s.loading_weight for s in snapshots), ZERO),
        total_shortage_wt=sum((s.shortage_weight for s in snapshots), ZERO),
        total_freight_amount=sum((s.freight_amount for s in snapshots), ZERO),
        total_shortage_amount=sum((s.shortage_amount for s in snapshots), ZERO),
        total_amount_before_tax=total_amount_before_tax,
        total_tax=breakup.total_tax,
        total_after_tax=total_after_tax,
        total_additional_charges=total_additional_charges,
        net_total=total_after_tax + total_additional_charges,
        tax_breakup=breakup,
    )


def transporter_payment_summary(
    snapshots: Sequence[TransporterSubtripSnapshot],
    profile: TaxProfile,
    own_state: Optional[str],
    base_rate: Any,
    additional_charges: Sequence[ChargeLine] = (),
) -> TransporterPaymentSummary:
    """
    Aggregate transporter payout totals.

    Pre-tax income is freight less expenses and shortage; tax (GST and TDS)
    is computed on it and, with the additional charges, deducted from it.
    """
    if not snapshots:
        return TransporterPaymentSummary()

    total_freight_amount = sum((s.freight_amount for s in snapshots), ZERO)
    total_expense = sum((s.total_expense for s in snapshots), ZERO)
    total_shortage_amount = sum((s.shortage_amount for s in snapshots), ZERO)
    pre_tax_income = total_freight_amount - total_expense - total_shortage_amount

    breakup = tax_breakup(
        profile, pre_tax_income, own_state, base_rate, with_tds=True, party="Transporter"
    )
    total_additional_charges = sum_charges(additional_charges)

    return TransporterPaymentSummary(
        total_freight_amount=total_freight_amount,
        total_expense=total_expense,
        total_shortage_amount=total_shortage_amount,
        total_trip_wise_income=pre_tax_income,
        total_tax=breakup.total_tax,
        total_additional_charges=total_additional_charges,
        net_income=pre_tax_income - breakup.total_tax - total_additional_charges,
        tax_breakup=breakup,
    )


def driver_salary_summary(
    snapshots: Sequence[DriverSalarySubtripSnapshot],
    additional_payments: Sequence[ChargeLine] = (),
    additional_deductions: Sequence[ChargeLine] = (),
) -> DriverSalarySummary:
    """Aggregate driver salary: trip-wise salary + payments - deductions."""
    total_trip_wise_income = sum((s.total_driver_salary for s in snapshots), ZERO)
    total_additional_payments = sum_charges(additional_payments)
    total_deductions = sum_charges(additional_deductions)

    return DriverSalarySummary(
        total_trip_wise_income=total_trip_wise_income,
        total_additional_payments=total_additional_payments,
        total_deductions=total_deductions,
        net_income=total_trip_wise_income + total_additional_payments - total_deductions,
    )


def sum_expenses(amounts: List[Any]) -> Decimal:
    """Total of expense amounts."""
    return money(sum((to_decimal(amount) for amount in amounts), ZERO))
