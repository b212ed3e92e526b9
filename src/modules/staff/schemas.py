# src/modules/staff/schemas.py
"""Staff module schemas."""

from typing import Dict
from pydantic import BaseModel


class DashboardStatsResponse(BaseModel):
    """Today's counts for the staff dashboard."""
    total_patients_today: int = 0
    total_waiting: int = 0
    total_in_consultation: int = 0
    total_completed: int = 0
    total_cancelled: int = 0  # CANCELLED + NO_SHOW
    average_wait_time: int = 0
    department_wise_count: Dict[str, int] = {}
    status_wise_count: Dict[str, int] = {}
