"""
Pydantic schemas for Subtrip entity.
"""
from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import date, datetime
from decimal import Decimal
from fleetledger.models.subtrip import SubtripStatus
from fleetledger.schemas.expense import ExpenseResponse


class SubtripMaterialInfo(BaseModel):
    """Material entry; moves the subtrip to loaded."""
    material_type: str
    loading_weight: Decimal = Field(gt=0)
    rate: Decimal = Field(ge=0)
    commission_rate: Optional[Decimal] = None  # Market vehicles only
    quantity: Optional[Decimal] = None
    grade: Optional[str] = None
    start_km: Optional[Decimal] = None
    invoice_no: Optional[str] = None
    shipment_no: Optional[str] = None
    order_no: Optional[str] = None
    consignee: Optional[str] = None
    eway_bill: Optional[str] = None
    eway_expiry_date: Optional[date] = None
    di_number: Optional[str] = None
    driver_advance: Optional[Decimal] = Field(default=None, ge=0)
    paid_through: Optional[str] = None


class SubtripCreate(BaseModel):
    """Schema for subtrip creation."""
    vehicle_id: int
    driver_id: int
    route_id: Optional[int] = None
    customer_id: Optional[int] = None
    trip_id: Optional[int] = None  # Own vehicles; defaults to the vehicle's open trip
    is_empty: bool = False
    loading_point: Optional[str] = None
    unloading_point: Optional[str] = None
    start_date: date
    start_km: Optional[Decimal] = None
    remarks: Optional[str] = None
    material: Optional[SubtripMaterialInfo] = None  # Required for market vehicles


class SubtripReceive(BaseModel):
    """Receipt (LR) data."""
    unloading_weight: Decimal = Field(ge=0)
    end_date: date
    end_km: Optional[Decimal] = None
    shortage_weight: Optional[Decimal] = Field(default=None, ge=0)
    shortage_amount: Optional[Decimal] = Field(default=None, ge=0)
    has_error: bool = False
    error_remarks: Optional[str] = None
    remarks: Optional[str] = None


class SubtripResolve(BaseModel):
    """Resolution of a subtrip reported with an error."""
    remarks: str = Field(min_length=1)


class SubtripCloseEmpty(BaseModel):
    """Closing data for an empty subtrip."""
    end_date: date
    end_km: Optional[Decimal] = None


class SubtripPatch(BaseModel):
    """
    Typed changeset for a subtrip.

    Only fields declared here can be patched; the audit diff is built from
    the fields explicitly set on the instance.
    """
    customer_id: Optional[int] = None
    route_id: Optional[int] = None
    loading_point: Optional[str] = None
    unloading_point: Optional[str] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    start_km: Optional[Decimal] = None
    end_km: Optional[Decimal] = None
    invoice_no: Optional[str] = None
    shipment_no: Optional[str] = None
    order_no: Optional[str] = None
    consignee: Optional[str] = None
    eway_bill: Optional[str] = None
    eway_expiry_date: Optional[date] = None
    di_number: Optional[str] = None
    material_type: Optional[str] = None
    quantity: Optional[Decimal] = None
    grade: Optional[str] = None
    loading_weight: Optional[Decimal] = None
    unloading_weight: Optional[Decimal] = None
    shortage_weight: Optional[Decimal] = None
    shortage_amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    commission_rate: Optional[Decimal] = None
    remarks: Optional[str] = None
    subtrip_status: Optional[SubtripStatus] = None


class SubtripResponse(BaseModel):
    """Schema for subtrip response."""
    id: int
    subtrip_no: str
    is_empty: bool
    trip_id: Optional[int] = None
    driver_id: int
    vehicle_id: int
    route_id: Optional[int] = None
    customer_id: Optional[int] = None
    loading_point: Optional[str] = None
    unloading_point: Optional[str] = None
    start_date: date
    end_date: Optional[date] = None
    start_km: Optional[Decimal] = None
    end_km: Optional[Decimal] = None
    invoice_no: Optional[str] = None
    shipment_no: Optional[str] = None
    consignee: Optional[str] = None
    order_no: Optional[str] = None
    di_number: Optional[str] = None
    material_type: Optional[str] = None
    quantity: Optional[Decimal] = None
    grade: Optional[str] = None
    loading_weight: Optional[Decimal] = None
    unloading_weight: Optional[Decimal] = None
    shortage_weight: Optional[Decimal] = None
    shortage_amount: Optional[Decimal] = None
    rate: Optional[Decimal] = None
    commission_rate: Optional[Decimal] = None
    subtrip_status: SubtripStatus
    has_error: bool
    error_remarks: Optional[str] = None
    remarks: Optional[str] = None
    invoice_id: Optional[int] = None
    driver_salary_id: Optional[int] = None
    transporter_payment_receipt_id: Optional[int] = None
    expenses: List[ExpenseResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True
