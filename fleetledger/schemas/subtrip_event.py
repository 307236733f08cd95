"""
Pydantic schemas for SubtripEvent entity.
"""
from pydantic import BaseModel
from typing import Any, Dict, Optional
from datetime import datetime


class SubtripEventResponse(BaseModel):
    """Audit event with its display message."""
    id: int
    subtrip_id: int
    event_type: str
    timestamp: datetime
    details: Dict[str, Any] = {}
    user_id: Optional[str] = None
    user_name: Optional[str] = None
    message: str
