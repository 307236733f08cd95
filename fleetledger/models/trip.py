"""
Trip model. A trip groups the subtrips of a tenant-owned vehicle.
"""
from sqlalchemy import Column, String, Date, Integer, Numeric, Enum as SQLEnum, ForeignKey
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped
import enum


class TripStatus(str, enum.Enum):
    """Trip status enumeration."""
    OPEN = "open"
    CLOSED = "closed"


class Trip(TenantScoped, BaseModel):
    """Trip of an own vehicle between open and close events."""
    __tablename__ = "trips"

    trip_no = Column(String(30), nullable=False, index=True)
    vehicle_id = Column(Integer, ForeignKey("vehicles.id"), nullable=False, index=True)
    driver_id = Column(Integer, ForeignKey("drivers.id"), nullable=False, index=True)
    trip_status = Column(SQLEnum(TripStatus), default=TripStatus.OPEN, nullable=False)
    from_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    start_km = Column(Numeric(12, 2), nullable=True)
    end_km = Column(Numeric(12, 2), nullable=True)

    # Relationships
    vehicle = relationship("Vehicle")
    driver = relationship("Driver")
    subtrips = relationship("Subtrip", back_populates="trip")
