"""
Invoice routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from datetime import date
from fleetledger.db.session import get_db
from fleetledger.api.dependencies import get_current_user
from fleetledger.models.invoice import InvoiceStatus
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.invoice import (
    InvoiceBulkCreate,
    InvoiceCancel,
    InvoiceCreate,
    InvoiceListResponse,
    InvoicePaymentCreate,
    InvoiceResponse,
)
from fleetledger.services import invoice_service

router = APIRouter(prefix="/invoices", tags=["invoices"])


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    invoice_data: InvoiceCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Invoice received subtrips of a customer."""
    return invoice_service.create_invoice(db, current_user.tenant_id, invoice_data, current_user)


@router.post("/bulk", response_model=List[InvoiceResponse], status_code=status.HTTP_201_CREATED)
async def create_bulk_invoices(
    bulk_data: InvoiceBulkCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create several invoices in one all-or-nothing batch."""
    return invoice_service.create_bulk_invoices(db, current_user.tenant_id, bulk_data.payloads, current_user)


@router.get("", response_model=InvoiceListResponse)
async def list_invoices(
    customer_id: Optional[int] = None,
    invoice_status: Optional[List[InvoiceStatus]] = Query(None),
    subtrip_id: Optional[int] = None,
    issue_from_date: Optional[date] = None,
    issue_to_date: Optional[date] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List invoices with per-status totals."""
    invoices, total, totals = invoice_service.list_invoices(
        db, current_user.tenant_id,
        customer_id=customer_id,
        statuses=invoice_status,
        subtrip_id=subtrip_id,
        issue_from=issue_from_date,
        issue_to=issue_to_date,
        skip=skip,
        limit=limit,
    )
    return {"results": invoices, "total": total, "totals_by_status": totals}


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get invoice details."""
    return invoice_service.get_invoice(db, current_user.tenant_id, invoice_id)


@router.post("/{invoice_id}/cancel", response_model=InvoiceResponse)
async def cancel_invoice(
    invoice_id: int,
    cancel_data: InvoiceCancel,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Cancel an invoice and release its subtrips."""
    return invoice_service.cancel_invoice(
        db, current_user.tenant_id, invoice_id, cancel_data.remarks, current_user
    )


@router.post("/{invoice_id}/payments", response_model=InvoiceResponse)
async def record_payment(
    invoice_id: int,
    payment_data: InvoicePaymentCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Record a payment against an invoice."""
    return invoice_service.record_payment(db, current_user.tenant_id, invoice_id, payment_data, current_user)


@router.delete("/{invoice_id}")
async def delete_invoice(
    invoice_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an invoice without payments."""
    invoice_service.delete_invoice(db, current_user.tenant_id, invoice_id, current_user)
    return {"message": "Invoice deleted successfully"}
