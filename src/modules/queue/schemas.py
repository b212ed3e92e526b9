# src/modules/queue/schemas.py
"""Queue module schemas."""

from typing import List, Optional
from datetime import datetime
from pydantic import BaseModel

from src.modules.tokens.schemas import TokenResponse


class QueueStatusResponse(BaseModel):
    """Point-in-time view of one doctor's queue (or a department's shared queue)."""
    department_id: int
    department_name: Optional[str] = None
    doctor_id: Optional[int] = None  # None = department shared queue
    doctor_name: Optional[str] = None
    room_number: Optional[str] = None
    current_token: Optional[TokenResponse] = None
    total_waiting: int = 0
    average_wait_time_minutes: int = 0
    last_updated: datetime
    waiting_tokens: List[TokenResponse] = []
