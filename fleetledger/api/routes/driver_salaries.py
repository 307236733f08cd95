"""
Driver salary routes.
"""
from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session
from typing import List, Optional
from fleetledger.db.session import get_db
from fleetledger.api.dependencies import get_current_user
from fleetledger.models.transporter_payment import PayoutStatus
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.driver_salary import (
    DriverSalaryBulkCreate,
    DriverSalaryCreate,
    DriverSalaryListResponse,
    DriverSalaryResponse,
)
from fleetledger.services import driver_salary_service

router = APIRouter(prefix="/driver-salaries", tags=["driver-salaries"])


@router.post("", response_model=DriverSalaryResponse, status_code=status.HTTP_201_CREATED)
async def create_driver_salary(
    salary_data: DriverSalaryCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create a salary receipt for a driver."""
    return driver_salary_service.create_driver_salary(db, current_user.tenant_id, salary_data, current_user)


@router.post("/bulk", response_model=List[DriverSalaryResponse], status_code=status.HTTP_201_CREATED)
async def create_bulk_driver_salaries(
    bulk_data: DriverSalaryBulkCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Create several salary receipts in one all-or-nothing batch."""
    return driver_salary_service.create_bulk_driver_salaries(
        db, current_user.tenant_id, bulk_data.payloads, current_user
    )


@router.get("", response_model=DriverSalaryListResponse)
async def list_driver_salaries(
    driver_id: Optional[int] = None,
    payout_status: Optional[List[PayoutStatus]] = Query(None, alias="status"),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=500),
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """List salary receipts with per-status totals."""
    salaries, total, totals = driver_salary_service.list_driver_salaries(
        db, current_user.tenant_id, driver_id=driver_id, statuses=payout_status, skip=skip, limit=limit
    )
    return {"results": salaries, "total": total, "totals_by_status": totals}


@router.get("/{salary_id}", response_model=DriverSalaryResponse)
async def get_driver_salary(
    salary_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get salary receipt details."""
    return driver_salary_service.get_driver_salary(db, current_user.tenant_id, salary_id)


@router.post("/{salary_id}/paid", response_model=DriverSalaryResponse)
async def mark_driver_salary_paid(
    salary_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Mark a salary receipt as paid."""
    return driver_salary_service.mark_driver_salary_paid(db, current_user.tenant_id, salary_id, current_user)


@router.delete("/{salary_id}")
async def delete_driver_salary(
    salary_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Delete an unpaid salary receipt."""
    driver_salary_service.delete_driver_salary(db, current_user.tenant_id, salary_id, current_user)
    return {"message": "Driver salary deleted successfully"}
