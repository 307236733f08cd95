"""
Transporter payment routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from fleetledger.db.session import get_db
from fleetledger.api.dependencies import get_current_user
from fleetledger.models.transporter_payment import PayoutStatus
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.transporter_payment import (
    PayableSubtripsQuery,
    PayableTransporterGroup,
    TransporterPaymentBulkCreate,
    TransporterPaymentCreate,
    TransporterPaymentListResponse,
    TransporterPaymentResponse,
)
from fleetledger.services import transporter_payment_service

router = APIRouter(prefix="/transporter-payments", tags=["transporter-payments"])


@router.post("", response_model=TransporterPaymentResponse, status_code=status.HTTP_201_CREATED)
async def create_transporter_payment(
    payment_data: TransporterPaymentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a payment receipt for a transporter."""
    return transporter_payment_service.create_transporter_payment(
        db, current_user.tenant_id, payment_data, current_user
    )


@router.post("/bulk", response_model=List[TransporterPaymentResponse], status_code=status.HTTP_201_CREATED)
async def create_bulk_transporter_payments(
    bulk_data: TransporterPaymentBulkCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create several payment receipts in one all-or-nothing batch."""
    return transporter_payment_service.create_bulk_transporter_payments(
        db, current_user.tenant_id, bulk_data.payloads, current_user
    )


@router.post("/payable", response_model=List[PayableTransporterGroup])
async def fetch_payable_subtrips(
    query: PayableSubtripsQuery,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Unsettled market subtrips in a period, grouped by transporter."""
    return transporter_payment_service.fetch_payable_subtrips_by_transporter(
        db, current_user.tenant_id, query.start_date, query.end_date
    )


@router.get("", response_model=TransporterPaymentListResponse)
async def list_transporter_payments(
    transporter_id: Optional[int] = None,
    payout_status: Optional[List[PayoutStatus]] = Query(None, alias="status"),
    has_tds: Optional[bool] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List payment receipts with per-status totals."""
    payments, total, totals = transporter_payment_service.list_transporter_payments(
        db, current_user.tenant_id,
        transporter_id=transporter_id,
        statuses=payout_status,
        has_tds=has_tds,
        skip=skip,
        limit=limit,
    )
    return {"results": payments, "total": total, "totals_by_status": totals}


@router.get("/{payment_id}", response_model=TransporterPaymentResponse)
async def get_transporter_payment(
    payment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get payment receipt details."""
    return transporter_payment_service.get_transporter_payment(db, current_user.tenant_id, payment_id)


@router.post("/{payment_id}/paid", response_model=TransporterPaymentResponse)
async def mark_transporter_payment_paid(
    payment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark a payment receipt as paid."""
    return transporter_payment_service.mark_transporter_payment_paid(
        db, current_user.tenant_id, payment_id, current_user
    )


@router.delete("/{payment_id}")
async def delete_transporter_payment(
    payment_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an unpaid payment receipt."""
    transporter_payment_service.delete_transporter_payment(db, current_user.tenant_id, payment_id, current_user)
    return {"message": "Transporter payment deleted successfully"}
