"""
Customer master record (read-only for the settlement engine).
"""
from sqlalchemy import Column, String, Boolean, Integer
from fleetledger.db.base import BaseModel, TenantScoped


class Customer(TenantScoped, BaseModel):
    """Customer billed through invoices."""
    __tablename__ = "customers"

    customer_name = Column(String(200), nullable=False)
    gst_enabled = Column(Boolean, default=False, nullable=False)
    gst_no = Column(String(20), nullable=True)
    state = Column(String(100), nullable=True)
    cell_no = Column(String(20), nullable=True)

    # Invoice numbering and payment terms
    invoice_prefix = Column(String(20), nullable=True)
    invoice_suffix = Column(String(20), nullable=True)
    invoice_pay_within = Column(Integer, nullable=True)  # days
