"""
Frozen per-subtrip facts copied onto settlement documents at claim time.

These are value types, separate from the live Subtrip row. A document's
totals are always derived from its snapshot and never from live data.
"""
from pydantic import BaseModel
from typing import List, Optional
from datetime import date
from decimal import Decimal


class ExpenseLine(BaseModel):
    """One expense as it stood when the payout claimed the subtrip."""
    expense_type: str
    amount: Decimal
    remarks: Optional[str] = None

    model_config = {"frozen": True}


class InvoiceSubtripSnapshot(BaseModel):
    """Customer-facing facts for one invoiced subtrip."""
    subtrip_id: int
    subtrip_no: str
    consignee: Optional[str] = None
    unloading_point: Optional[str] = None
    di_number: Optional[str] = None
    vehicle_no: Optional[str] = None
    material_type: Optional[str] = None
    start_date: Optional[date] = None
    invoice_no: Optional[str] = None
    rate: Decimal = Decimal("0")
    loading_weight: Decimal = Decimal("0")
    shortage_weight: Decimal = Decimal("0")
    shortage_amount: Decimal = Decimal("0")
    freight_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")

    model_config = {"frozen": True}


class TransporterSubtripSnapshot(BaseModel):
    """Payout facts for one market-vehicle subtrip."""
    subtrip_id: int
    subtrip_no: str
    loading_point: Optional[str] = None
    unloading_point: Optional[str] = None
    vehicle_no: Optional[str] = None
    start_date: Optional[date] = None
    invoice_no: Optional[str] = None
    customer_name: Optional[str] = None
    rate: Decimal = Decimal("0")
    commission_rate: Decimal = Decimal("0")
    effective_freight_rate: Decimal = Decimal("0")
    loading_weight: Decimal = Decimal("0")
    freight_amount: Decimal = Decimal("0")
    shortage_weight: Decimal = Decimal("0")
    shortage_amount: Decimal = Decimal("0")
    expenses: List[ExpenseLine] = []
    total_expense: Decimal = Decimal("0")
    total_transporter_payment: Decimal = Decimal("0")

    model_config = {"frozen": True}


class DriverSalarySubtripSnapshot(BaseModel):
    """Salary facts for one own-vehicle subtrip."""
    subtrip_id: int
    subtrip_no: str
    loading_point: Optional[str] = None
    unloading_point: Optional[str] = None
    vehicle_no: Optional[str] = None
    customer_name: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    loading_weight: Decimal = Decimal("0")
    freight_amount: Decimal = Decimal("0")
    shortage_amount: Decimal = Decimal("0")
    total_amount: Decimal = Decimal("0")
    expenses: List[ExpenseLine] = []
    total_driver_salary: Decimal = Decimal("0")

    model_config = {"frozen": True}
