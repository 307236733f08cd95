"""
Tax and summary value types shared by the settlement documents.
"""
from pydantic import BaseModel, Field
from typing import Optional
from decimal import Decimal


class TaxProfile(BaseModel):
    """Counterparty tax profile read from master data."""
    gst_enabled: bool = False
    state: Optional[str] = None
    tds_percentage: Decimal = Decimal("0")

    model_config = {"frozen": True}


class TaxComponent(BaseModel):
    """Rate (%) and amount of one tax head."""
    rate: Decimal = Decimal("0")
    amount: Decimal = Decimal("0")


class TaxBreakup(BaseModel):
    """GST split plus optional TDS."""
    cgst: TaxComponent = Field(default_factory=TaxComponent)
    sgst: TaxComponent = Field(default_factory=TaxComponent)
    igst: TaxComponent = Field(default_factory=TaxComponent)
    tds: Optional[TaxComponent] = None
    total_tax: Decimal = Decimal("0")


class InvoiceSummary(BaseModel):
    """Invoice totals. Shortage is shown but not subtracted."""
    total_freight_wt: Decimal = Decimal("0")
    total_shortage_wt: Decimal = Decimal("0")
    total_freight_amount: Decimal = Decimal("0")
    total_shortage_amount: Decimal = Decimal("0")
    total_amount_before_tax: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")
    total_after_tax: Decimal = Decimal("0")
    total_additional_charges: Decimal = Decimal("0")
    net_total: Decimal = Decimal("0")
    tax_breakup: TaxBreakup = Field(default_factory=TaxBreakup)


class TransporterPaymentSummary(BaseModel):
    """Transporter payout totals."""
    total_freight_amount: Decimal = Decimal("0")
    total_expense: Decimal = Decimal("0")
    total_shortage_amount: Decimal = Decimal("0")
    total_trip_wise_income: Decimal = Decimal("0")
    total_tax: Decimal = Decimal("0")
    total_additional_charges: Decimal = Decimal("0")
    net_income: Decimal = Decimal("0")
    tax_breakup: TaxBreakup = Field(default_factory=lambda: TaxBreakup(tds=TaxComponent()))


class DriverSalarySummary(BaseModel):
    """Driver salary totals."""
    total_trip_wise_income: Decimal = Decimal("0")
    total_additional_payments: Decimal = Decimal("0")
    total_deductions: Decimal = Decimal("0")
    net_income: Decimal = Decimal("0")
