"""
Expense model for subtrip spending.
"""
from sqlalchemy import Column, String, Numeric, Date, ForeignKey, Integer, Text
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped
import enum


class ExpenseType(str, enum.Enum):
    """Subtrip expense types."""
    DIESEL = "diesel"
    ADBLUE = "adblue"
    DRIVER_SALARY = "driver-salary"
    TRIP_ADVANCE = "trip-advance"
    TRIP_EXTRA_ADVANCE = "trip-extra-advance"
    TYRE_PUNCHER = "puncher"
    TYRE_EXPENSE = "tyre-expense"
    POLICE = "police"
    RTO = "rto"
    TOLL = "toll"
    VEHICLE_REPAIR = "vehicle-repair"
    OTHER = "other"


class ExpenseCategory(str, enum.Enum):
    """Whether the expense belongs to a subtrip or to the vehicle."""
    SUBTRIP = "subtrip"
    VEHICLE = "vehicle"


class Expense(TenantScoped, BaseModel):
    """Expense model representing a single spending event on a subtrip."""
    __tablename__ = "expenses"

    subtrip_id = Column(Integer, ForeignKey("subtrips.id"), nullable=True, index=True)
    trip_id = Column(Integer, ForeignKey("trips.id"), nullable=True, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=True, index=True)
    date = Column(Date, nullable=True, index=True)
    expense_type = Column(String(50), nullable=False)
    expense_category = Column(String(20), nullable=False, default=ExpenseCategory.SUBTRIP.value)
    amount = Column(Numeric(15, 2), nullable=False)
    paid_through = Column(String(50), nullable=True)
    authorised_by = Column(String(100), nullable=True)
    remarks = Column(Text, nullable=True)

    # Relationships
    subtrip = relationship("Subtrip", back_populates="expenses")
