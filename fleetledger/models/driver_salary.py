"""
Driver salary receipt model.
"""
from sqlalchemy import (
    Column, String, Date, DateTime, Integer, Numeric, Text, JSON, ForeignKey,
    Enum as SQLEnum, UniqueConstraint,
)
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped
from fleetledger.models.transporter_payment import PayoutStatus


class DriverSalary(TenantScoped, BaseModel):
    """Salary receipt claiming own-vehicle subtrips of one driver."""
    __tablename__ = "driver_salaries"
    __table_args__ = (
        UniqueConstraint("tenant_id", "payment_id", name="uq_driver_salary_tenant_payment"),
    )

    payment_id = Column(String(30), nullable=False)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False, index=True)
    status = Column(SQLEnum(PayoutStatus), default=PayoutStatus.GENERATED, nullable=False, index=True)
    issue_date = Column(Date, nullable=False, index=True)
    billing_period_start = Column(Date, nullable=True)
    billing_period_end = Column(Date, nullable=True)
    remarks = Column(Text, nullable=True)
    paid_at = Column(DateTime, nullable=True)

    associated_subtrips = Column(JSON, nullable=False)
    subtrip_snapshot = Column(JSON, nullable=False)
    additional_payments = Column(JSON, nullable=False, default=list)
    additional_deductions = Column(JSON, nullable=False, default=list)
    summary = Column(JSON, nullable=False)
    net_income = Column(Numeric(15, 2), nullable=False)

    # Relationships
    driver = relationship("Driver")
    loan_repayments = relationship("LoanRepayment", back_populates="driver_salary")
