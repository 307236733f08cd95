"""
Subtrip lifecycle routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from fleetledger.db.session import get_db
from fleetledger.api.dependencies import get_current_user
from fleetledger.models.subtrip import SubtripStatus
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.expense import ExpenseCreate, ExpenseResponse
from fleetledger.schemas.subtrip import (
    SubtripCloseEmpty,
    SubtripCreate,
    SubtripMaterialInfo,
    SubtripPatch,
    SubtripReceive,
    SubtripResolve,
    SubtripResponse,
)
from fleetledger.services import expense_service, subtrip_service

router = APIRouter(prefix="/subtrips", tags=["subtrips"])


@router.post("", response_model=SubtripResponse, status_code=status.HTTP_201_CREATED)
async def create_subtrip(
    subtrip_data: SubtripCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a subtrip (in-queue, or loaded when material is supplied)."""
    return subtrip_service.create_subtrip(db, current_user.tenant_id, subtrip_data, current_user)


@router.get("", response_model=List[SubtripResponse])
async def list_subtrips(
    subtrip_status: Optional[List[SubtripStatus]] = Query(None),
    vehicle_id: Optional[int] = None,
    customer_id: Optional[int] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List subtrips of the tenant."""
    return subtrip_service.list_subtrips(
        db, current_user.tenant_id, subtrip_status, vehicle_id, customer_id, skip, limit
    )


@router.get("/{subtrip_id}", response_model=SubtripResponse)
async def get_subtrip(
    subtrip_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get subtrip details."""
    return subtrip_service.get_subtrip(db, current_user.tenant_id, subtrip_id)


@router.patch("/{subtrip_id}", response_model=SubtripResponse)
async def update_subtrip(
    subtrip_id: int,
    patch: SubtripPatch,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update subtrip fields. Billed subtrips are locked."""
    return subtrip_service.update_subtrip(db, current_user.tenant_id, subtrip_id, patch, current_user)


@router.delete("/{subtrip_id}")
async def delete_subtrip(
    subtrip_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an unbilled, unsettled subtrip."""
    subtrip_service.delete_subtrip(db, current_user.tenant_id, subtrip_id, current_user)
    return {"message": "Subtrip deleted successfully"}


@router.post("/{subtrip_id}/material", response_model=SubtripResponse)
async def add_material_info(
    subtrip_id: int,
    material: SubtripMaterialInfo,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add material info and move the subtrip to loaded."""
    return subtrip_service.add_material_info(db, current_user.tenant_id, subtrip_id, material, current_user)


@router.post("/{subtrip_id}/receive", response_model=SubtripResponse)
async def receive_subtrip(
    subtrip_id: int,
    receipt: SubtripReceive,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Receive a loaded subtrip (LR)."""
    return subtrip_service.receive_subtrip(db, current_user.tenant_id, subtrip_id, receipt, current_user)


@router.post("/{subtrip_id}/resolve", response_model=SubtripResponse)
async def resolve_subtrip_error(
    subtrip_id: int,
    resolution: SubtripResolve,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Resolve a subtrip in the error state."""
    return subtrip_service.resolve_subtrip_error(
        db, current_user.tenant_id, subtrip_id, resolution.remarks, current_user
    )


@router.post("/{subtrip_id}/close-empty", response_model=SubtripResponse)
async def close_empty_subtrip(
    subtrip_id: int,
    data: SubtripCloseEmpty,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Close an empty subtrip."""
    return subtrip_service.close_empty_subtrip(db, current_user.tenant_id, subtrip_id, data, current_user)


@router.get("/{subtrip_id}/expenses", response_model=List[ExpenseResponse])
async def list_expenses(
    subtrip_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List expenses of a subtrip."""
    subtrip_service.get_subtrip(db, current_user.tenant_id, subtrip_id)
    return expense_service.list_expenses(db, current_user.tenant_id, subtrip_id)


@router.post("/{subtrip_id}/expenses", response_model=ExpenseResponse, status_code=status.HTTP_201_CREATED)
async def add_expense(
    subtrip_id: int,
    expense_data: ExpenseCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Add an expense to a subtrip."""
    return expense_service.add_expense(db, current_user.tenant_id, subtrip_id, expense_data, current_user)


@router.delete("/{subtrip_id}/expenses/{expense_id}")
async def delete_expense(
    subtrip_id: int,
    expense_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an expense from a subtrip."""
    expense_service.delete_expense(db, current_user.tenant_id, subtrip_id, expense_id, current_user)
    return {"message": "Expense deleted successfully"}
