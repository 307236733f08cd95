"""
Pydantic schemas for Loan entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from fleetledger.models.loan import LoanStatus


class LoanCreate(BaseModel):
    """Schema for loan creation."""
    driver_id: int
    principal_amount: Decimal = Field(gt=0)
    installment_amount: Optional[Decimal] = Field(default=None, gt=0)
    disbursement_date: Optional[date] = None
    remarks: Optional[str] = None


class LoanRepaymentResponse(BaseModel):
    """Schema for loan repayment response."""
    id: int
    amount: Decimal
    paid_at: datetime
    driver_salary_id: Optional[int] = None
    remarks: Optional[str] = None

    class Config:
        from_attributes = True


class LoanResponse(BaseModel):
    """Schema for loan response."""
    id: int
    driver_id: int
    principal_amount: Decimal
    installment_amount: Optional[Decimal] = None
    remaining_balance: Decimal
    status: LoanStatus
    disbursement_date: Optional[date] = None
    remarks: Optional[str] = None
    repayments: List[LoanRepaymentResponse] = []
    created_at: datetime

    class Config:
        from_attributes = True
