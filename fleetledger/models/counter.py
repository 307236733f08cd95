"""
Counter model backing tenant-scoped document numbers.
"""
from sqlalchemy import Column, String, Integer, UniqueConstraint
from fleetledger.db.base import BaseModel, TenantScoped


class Counter(TenantScoped, BaseModel):
    """Monotonic sequence per (model, tenant)."""
    __tablename__ = "counters"
    __table_args__ = (
        UniqueConstraint("model", "tenant_id", name="uq_counter_model_tenant"),
    )

    model = Column(String(50), nullable=False)
    seq = Column(Integer, nullable=False, default=0)
