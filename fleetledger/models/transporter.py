"""
Transporter master record (owner of market vehicles).
"""
from sqlalchemy import Column, String, Boolean, Numeric
from sqlalchemy.orm import relationship
from fleetledger.db.base import BaseModel, TenantScoped


class Transporter(TenantScoped, BaseModel):
    """Market transporter paid through transporter payment receipts."""
    __tablename__ = "transporters"

    transport_name = Column(String(200), nullable=False)
    gst_enabled = Column(Boolean, default=False, nullable=False)
    gst_no = Column(String(20), nullable=True)
    state = Column(String(100), nullable=True)
    tds_percentage = Column(Numeric(5, 2), nullable=False, default=0)
    cell_no = Column(String(20), nullable=True)

    vehicles = relationship("Vehicle", back_populates="transporter")
