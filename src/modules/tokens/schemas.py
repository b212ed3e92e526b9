# src/modules/tokens/schemas.py
"""Tokens module Pydantic schemas."""

from typing import Optional
from datetime import date, datetime
from pydantic import BaseModel, Field

from src.models.models import TokenPriority, TokenStatus


# ============================================================================
# REQUEST SCHEMAS
# ============================================================================

class TokenCreateRequest(BaseModel):
    """Register a patient into a doctor's queue or a department pool."""
    patient_id: int
    department_id: int
    doctor_id: Optional[int] = None  # None = any available doctor
    priority: Optional[str] = None  # NORMAL, SENIOR_CITIZEN, PREGNANT, EMERGENCY
    notes: Optional[str] = Field(default=None, max_length=500)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================

class TokenResponse(BaseModel):
    """Token with its reference names and a fresh wait estimate."""
    id: int
    token_number: str
    token_date: date

    patient_id: int
    patient_name: Optional[str] = None
    patient_phone: Optional[str] = None

    department_id: int
    department_name: Optional[str] = None
    department_code: Optional[str] = None

    doctor_id: Optional[int] = None
    doctor_name: Optional[str] = None
    room_number: Optional[str] = None

    priority: TokenPriority
    status: TokenStatus
    skip_count: int = 0

    generated_at: datetime
    called_at: Optional[datetime] = None
    consultation_started_at: Optional[datetime] = None
    consultation_ended_at: Optional[datetime] = None

    notes: Optional[str] = None

    # Queue information, recomputed on every read
    queue_position: Optional[int] = None
    patients_ahead: int = 0
    estimated_wait_minutes: int = 0
    estimated_service_time: Optional[datetime] = None

    class Config:
        from_attributes = True
