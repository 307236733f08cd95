"""
Driver loan routes.
"""
from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from fleetledger.db.session import get_db
from fleetledger.api.dependencies import get_current_user
from fleetledger.schemas.common import CurrentUser
from fleetledger.schemas.loan import LoanCreate, LoanResponse
from fleetledger.services import loan_service

router = APIRouter(prefix="/loans", tags=["loans"])


@router.post("", response_model=LoanResponse, status_code=status.HTTP_201_CREATED)
async def create_loan(
    loan_data: LoanCreate,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Give a loan to a driver."""
    return loan_service.create_loan(db, current_user.tenant_id, loan_data)


@router.get("/{loan_id}", response_model=LoanResponse)
async def get_loan(
    loan_id: int,
    current_user: CurrentUser = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Get loan details with its repayments."""
    return loan_service.get_loan(db, current_user.tenant_id, loan_id)
