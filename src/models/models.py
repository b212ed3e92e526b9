# src/models/models.py

import enum

from sqlalchemy import (
    Boolean, Column, Date, ForeignKey, Index, Integer, String, Text, DateTime,
    Enum as SAEnum, UniqueConstraint,
    func,
)
from sqlalchemy.orm import declarative_base, relationship, backref

Base = declarative_base()


# ============================================================================
# ENUMS
# ============================================================================

class TokenPriority(enum.Enum):
    NORMAL = "NORMAL"
    SENIOR_CITIZEN = "SENIOR_CITIZEN"
    PREGNANT = "PREGNANT"
    EMERGENCY = "EMERGENCY"


class TokenStatus(enum.Enum):
    WAITING = "WAITING"
    CALLED = "CALLED"
    IN_CONSULTATION = "IN_CONSULTATION"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"
    NO_SHOW = "NO_SHOW"


# ============================================================================
# REFERENCE DATA
# ============================================================================

class Department(Base):
    __tablename__ = "departments"

    id = Column(Integer, primary_key=True, autoincrement=True)
    name = Column(String(100), nullable=False)
    code = Column(String(10), unique=True, nullable=False, index=True)  # e.g., OPD, CARD
    description = Column(Text, nullable=True)
    floor_number = Column(Integer, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<Department(id={self.id}, code={self.code})>"


class Doctor(Base):
    __tablename__ = "doctors"

    id = Column(Integer, primary_key=True, autoincrement=True)
    employee_id = Column(String(20), unique=True, nullable=False)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=False)
    specialization = Column(String(100), nullable=True)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="CASCADE"), nullable=False)
    room_number = Column(String(20), nullable=True)
    consultation_duration_minutes = Column(Integer, default=15, nullable=False)
    max_patients_per_day = Column(Integer, default=50, nullable=False)
    is_available = Column(Boolean, default=True, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    # Relationships
    department = relationship("Department", backref=backref("doctors", lazy="selectin"))

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}"

    def __repr__(self):
        return f"<Doctor(id={self.id}, employee_id={self.employee_id})>"


class Patient(Base):
    __tablename__ = "patients"

    id = Column(Integer, primary_key=True, autoincrement=True)
    first_name = Column(String(50), nullable=False)
    last_name = Column(String(50), nullable=True)
    phone = Column(String(15), unique=True, nullable=False, index=True)
    email = Column(String(255), nullable=True)  # queue notifications go here when set
    age = Column(Integer, nullable=True)
    gender = Column(String(10), nullable=True)
    is_senior_citizen = Column(Boolean, default=False, nullable=False)
    is_pregnant = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, nullable=False, server_default=func.now())

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name or ''}".strip()

    def __repr__(self):
        return f"<Patient(id={self.id})>"


# ============================================================================
# QUEUE MODELS
# ============================================================================

class Token(Base):
    """Persisted copy of a queue token. Never deleted; terminal rows feed statistics."""
    __tablename__ = "tokens"

    # Ids are issued by the queue engine, not the database
    id = Column(Integer, primary_key=True, autoincrement=False)
    token_number = Column(String(32), nullable=False)
    token_date = Column(Date, nullable=False)
    patient_id = Column(Integer, ForeignKey("patients.id", ondelete="CASCADE"), nullable=False)
    department_id = Column(Integer, ForeignKey("departments.id", ondelete="CASCADE"), nullable=False)
    doctor_id = Column(Integer, ForeignKey("doctors.id", ondelete="SET NULL"), nullable=True)
    priority = Column(SAEnum(TokenPriority), nullable=False, default=TokenPriority.NORMAL)
    status = Column(SAEnum(TokenStatus), nullable=False, default=TokenStatus.WAITING)
    generated_at = Column(DateTime, nullable=False)
    called_at = Column(DateTime, nullable=True)
    consultation_started_at = Column(DateTime, nullable=True)
    consultation_ended_at = Column(DateTime, nullable=True)
    queued_at = Column(DateTime, nullable=False)
    requeue_serial = Column(Integer, default=0, nullable=False)
    skip_count = Column(Integer, default=0, nullable=False)
    notes = Column(String(500), nullable=True)

    __table_args__ = (
        UniqueConstraint("token_number", "token_date", name="uq_token_number_date"),
        Index("ix_tokens_doctor_date_status", "doctor_id", "token_date", "status"),
    )

    def __repr__(self):
        return f"<Token(id={self.id}, token_number={self.token_number}, status={self.status.value})>"
