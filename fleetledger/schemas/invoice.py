"""
Pydantic schemas for Invoice entity.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from fleetledger.models.invoice import InvoiceStatus
from fleetledger.schemas.common import ChargeLine
from fleetledger.schemas.settlement import InvoiceSummary, TaxBreakup
from fleetledger.schemas.snapshot import InvoiceSubtripSnapshot


class InvoiceCreate(BaseModel):
    """Schema for invoice creation."""
    customer_id: int
    subtrip_ids: List[int] = Field(min_length=1)
    additional_charges: List[ChargeLine] = []
    notes: Optional[str] = None
    issue_date: Optional[date] = None  # Defaults to today


class InvoiceBulkCreate(BaseModel):
    """Schema for bulk invoice creation."""
    payloads: List[InvoiceCreate] = Field(min_length=1)


class InvoiceCancel(BaseModel):
    """Schema for invoice cancellation."""
    remarks: Optional[str] = None


class InvoicePaymentCreate(BaseModel):
    """Schema for recording a payment."""
    amount: Decimal = Field(gt=0)
    reference_number: Optional[str] = None
    paid_at: Optional[datetime] = None
    remarks: Optional[str] = None


class InvoicePaymentResponse(BaseModel):
    """Schema for payment response."""
    id: int
    amount: Decimal
    paid_at: datetime
    paid_by: Optional[str] = None
    reference_number: Optional[str] = None
    remarks: Optional[str] = None

    class Config:
        from_attributes = True


class InvoiceResponse(BaseModel):
    """Schema for invoice response."""
    id: int
    invoice_no: str
    customer_id: int
    invoice_status: InvoiceStatus
    issue_date: date
    due_date: date
    notes: Optional[str] = None
    cancellation_remarks: Optional[str] = None
    cancelled_at: Optional[datetime] = None
    associated_subtrips: List[int]
    subtrip_snapshot: List[InvoiceSubtripSnapshot]
    additional_charges: List[ChargeLine] = []
    tax_breakup: TaxBreakup
    summary: InvoiceSummary
    net_total: Decimal
    total_received: Decimal
    payments: List[InvoicePaymentResponse] = []
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InvoiceListResponse(BaseModel):
    """Paged invoices with per-status totals."""
    results: List[InvoiceResponse]
    total: int
    totals_by_status: Dict[str, Decimal]
