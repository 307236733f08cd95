"""
Vehicle master record.
"""
from sqlalchemy import Column, String, Boolean, Integer, ForeignKey
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped


class Vehicle(TenantScoped, BaseModel):
    """Vehicle, either tenant-owned or a market vehicle of a transporter."""
    __tablename__ = "vehicles"

    vehicle_no = Column(String(20), nullable=False, index=True)
    vehicle_type = Column(String(50), nullable=False)
    no_of_tyres = Column(Integer, nullable=True)
    is_own = Column(Boolean, default=True, nullable=False)
    transporter_id = Column(Integer, ForeignKey("transporters.id"), nullable=True, index=True)

    # Relationships
    transporter = relationship("Transporter", back_populates="vehicles")
