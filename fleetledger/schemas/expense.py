"""
Pydantic schemas for Expense entity.
"""
from pydantic import BaseModel, Field
from typing import Optional
from datetime import date as date_type, datetime
from decimal import Decimal
from fleetledger.models.expense import ExpenseType, ExpenseCategory


class ExpenseCreate(BaseModel):
    """Schema for expense creation on a subtrip."""
    expense_type: ExpenseType
    amount: Decimal = Field(gt=0)
    expense_category: ExpenseCategory = ExpenseCategory.SUBTRIP
    date: Optional[date_type] = None
    paid_through: Optional[str] = None
    authorised_by: Optional[str] = None
    remarks: Optional[str] = None


class ExpenseResponse(BaseModel):
    """Schema for expense response."""
    id: int
    subtrip_id: Optional[int] = None
    trip_id: Optional[int] = None
    vehicle_id: Optional[int] = None
    date: Optional[date_type] = None
    expense_type: str
    expense_category: str
    amount: Decimal
    paid_through: Optional[str] = None
    authorised_by: Optional[str] = None
    remarks: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True
