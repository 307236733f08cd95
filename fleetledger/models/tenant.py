"""
Tenant model. A tenant is one transport company using the system.
"""
from sqlalchemy import Column, String
from fleetledger.db.base import BaseModel


class Tenant(BaseModel):
    """Tenant with its GST-registered state."""
    __tablename__ = "tenants"

    name = Column(String(200), nullable=False)
    state = Column(String(100), nullable=True)  # Registered state, used for intra/inter-state GST
