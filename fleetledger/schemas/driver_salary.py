"""
Pydantic schemas for DriverSalary entity.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from fleetledger.models.transporter_payment import PayoutStatus
from fleetledger.schemas.common import ChargeLine
from fleetledger.schemas.settlement import DriverSalarySummary
from fleetledger.schemas.snapshot import DriverSalarySubtripSnapshot


class LoanRepaymentIn(BaseModel):
    """Loan installment deducted from this salary."""
    loan_id: int
    amount: Decimal = Field(gt=0)


class DriverSalaryCreate(BaseModel):
    """Schema for driver salary creation."""
    driver_id: int
    subtrip_ids: List[int] = Field(min_length=1)
    additional_payments: List[ChargeLine] = []
    additional_deductions: List[ChargeLine] = []
    loan_repayments: List[LoanRepaymentIn] = []
    billing_period_start: Optional[date] = None
    billing_period_end: Optional[date] = None
    issue_date: Optional[date] = None
    remarks: Optional[str] = None


class DriverSalaryBulkCreate(BaseModel):
    """Schema for bulk driver salary creation."""
    payloads: List[DriverSalaryCreate] = Field(min_length=1)


class DriverSalaryResponse(BaseModel):
    """Schema for driver salary response."""
    id: int
    payment_id: str
    driver_id: int
    status: PayoutStatus
    issue_date: date
    billing_period_start: Optional[date] = None
    billing_period_end: Optional[date] = None
    remarks: Optional[str] = None
    paid_at: Optional[datetime] = None
    associated_subtrips: List[int]
    subtrip_snapshot: List[DriverSalarySubtripSnapshot]
    additional_payments: List[ChargeLine] = []
    additional_deductions: List[ChargeLine] = []
    summary: DriverSalarySummary
    net_income: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class DriverSalaryListResponse(BaseModel):
    """Paged driver salaries with per-status totals."""
    results: List[DriverSalaryResponse]
    total: int
    totals_by_status: Dict[str, Decimal]
