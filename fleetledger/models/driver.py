"""
Driver master record.
"""
from sqlalchemy import Column, String
from fleetledger.db.base import BaseModel, TenantScoped


class Driver(TenantScoped, BaseModel):
    """Driver of a vehicle."""
    __tablename__ = "drivers"

    driver_name = Column(String(200), nullable=False)
    cell_no = Column(String(20), nullable=True)
