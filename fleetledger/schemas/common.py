"""
Shared schemas used across the API.
"""
from pydantic import BaseModel
from typing import Optional
from decimal import Decimal


class CurrentUser(BaseModel):
    """Acting user and tenant decoded from the bearer token."""
    user_id: str
    name: Optional[str] = None
    tenant_id: int

    model_config = {"frozen": True}


class ChargeLine(BaseModel):
    """Manual charge, payment or deduction line on a settlement document."""
    label: str
    amount: Decimal

    model_config = {"frozen": True}
