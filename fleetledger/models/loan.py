"""
Driver loans and their installment repayments.
"""
from datetime import datetime
from sqlalchemy import (
    Column, Date, DateTime, Integer, Numeric, Text, ForeignKey, Enum as SQLEnum,
)
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped
import enum


class LoanStatus(str, enum.Enum):
    """Loan status enumeration."""
    ACTIVE = "active"
    CLOSED = "closed"


class Loan(TenantScoped, BaseModel):
    """Loan given to a driver, repaid through salary deductions."""
    __tablename__ = "loans"

    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False, index=True)
    principal_amount = Column(Numeric(15, 2), nullable=False)
    installment_amount = Column(Numeric(15, 2), nullable=True)
    remaining_balance = Column(Numeric(15, 2), nullable=False)
    status = Column(SQLEnum(LoanStatus), default=LoanStatus.ACTIVE, nullable=False, index=True)
    disbursement_date = Column(Date, nullable=True)
    remarks = Column(Text, nullable=True)

    # Relationships
    driver = relationship("Driver")
    repayments = relationship("LoanRepayment", back_populates="loan", order_by="LoanRepayment.id")


class LoanRepayment(BaseModel):
    """One installment, optionally deducted through a driver salary receipt."""
    __tablename__ = "loan_repayments"

    loan_id = Column(Integer, ForeignKey("loans.id"), nullable=False, index=True)
    driver_salary_id = Column(Integer, ForeignKey("driver_salaries.id"), nullable=True, index=True)
    amount = Column(Numeric(15, 2), nullable=False)
    paid_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    remarks = Column(Text, nullable=True)

    loan = relationship("Loan", back_populates="repayments")
    driver_salary = relationship("DriverSalary", back_populates="loan_repayments")
