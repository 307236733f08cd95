"""
Pydantic schemas for TransporterPayment entity.
"""
from pydantic import BaseModel, Field
from typing import Dict, List, Optional
from datetime import date, datetime
from decimal import Decimal
from fleetledger.models.transporter_payment import PayoutStatus
from fleetledger.schemas.common import ChargeLine
from fleetledger.schemas.settlement import TaxBreakup, TransporterPaymentSummary
from fleetledger.schemas.snapshot import TransporterSubtripSnapshot


class TransporterPaymentCreate(BaseModel):
    """Schema for transporter payment creation."""
    transporter_id: int
    subtrip_ids: List[int] = Field(min_length=1)
    additional_charges: List[ChargeLine] = []
    billing_period_start: Optional[date] = None
    billing_period_end: Optional[date] = None
    issue_date: Optional[date] = None
    remarks: Optional[str] = None


class TransporterPaymentBulkCreate(BaseModel):
    """Schema for bulk transporter payment creation."""
    payloads: List[TransporterPaymentCreate] = Field(min_length=1)


class PayableSubtripsQuery(BaseModel):
    """Period for grouping payable market subtrips by transporter."""
    start_date: date
    end_date: date


class PayableTransporterGroup(BaseModel):
    """Unsettled market subtrips of one transporter."""
    transporter_id: int
    transport_name: str
    subtrip_ids: List[int]
    total_freight_amount: Decimal


class TransporterPaymentResponse(BaseModel):
    """Schema for transporter payment response."""
    id: int
    payment_id: str
    transporter_id: int
    status: PayoutStatus
    issue_date: date
    billing_period_start: Optional[date] = None
    billing_period_end: Optional[date] = None
    remarks: Optional[str] = None
    paid_at: Optional[datetime] = None
    associated_subtrips: List[int]
    subtrip_snapshot: List[TransporterSubtripSnapshot]
    additional_charges: List[ChargeLine] = []
    tax_breakup: TaxBreakup
    summary: TransporterPaymentSummary
    net_income: Decimal
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class TransporterPaymentListResponse(BaseModel):
    """Paged transporter payments with per-status totals."""
    results: List[TransporterPaymentResponse]
    total: int
    totals_by_status: Dict[str, Decimal]
