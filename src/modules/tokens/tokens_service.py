# src/modules/tokens/tokens_service.py
"""Tokens service: registration, self-service lookups and response building."""

from typing import Dict, Iterable, List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.common.queue import NotFoundError, QueueEngine, QueueToken, ValidationError, derive_priority
from src.common.queue import projection
from src.models.models import Department, Doctor, Patient

from .schemas import TokenCreateRequest, TokenResponse


async def _by_id(session: AsyncSession, model, ids: Iterable[int]) -> Dict[int, object]:
    ids = {item for item in ids if item is not None}
    if not ids:
        return {}
    result = await session.execute(select(model).where(model.id.in_(ids)))
    return {row.id: row for row in result.scalars().all()}


async def ensure_doctor(session: AsyncSession, engine: QueueEngine, doctor_id: int) -> Doctor:
    """Load a doctor and refresh its registration with the engine."""
    doctor = await session.get(Doctor, doctor_id)
    if doctor is None or not doctor.is_active:
        raise NotFoundError("Doctor", "id", doctor_id)
    engine.register_doctor(
        doctor.id,
        doctor.department_id,
        consultation_minutes=doctor.consultation_duration_minutes,
        max_patients_per_day=doctor.max_patients_per_day,
        is_available=doctor.is_available,
    )
    return doctor


async def build_token_responses(
    session: AsyncSession,
    engine: QueueEngine,
    tokens: List[QueueToken],
) -> List[TokenResponse]:
    """Convert engine tokens to responses, fetching names in one query per table."""
    patients = await _by_id(session, Patient, (token.patient_id for token in tokens))
    departments = await _by_id(session, Department, (token.department_id for token in tokens))
    doctors = await _by_id(session, Doctor, (token.doctor_id for token in tokens))

    responses = []
    for token in tokens:
        patient = patients.get(token.patient_id)
        department = departments.get(token.department_id)
        doctor = doctors.get(token.doctor_id)
        estimate = engine.estimate(token.id)
        responses.append(TokenResponse(
            id=token.id,
            token_number=token.token_number,
            token_date=token.token_date,
            patient_id=token.patient_id,
            patient_name=patient.full_name if patient else None,
            patient_phone=patient.phone if patient else None,
            department_id=token.department_id,
            department_name=department.name if department else None,
            department_code=department.code if department else None,
            doctor_id=token.doctor_id,
            doctor_name=doctor.full_name if doctor else None,
            room_number=doctor.room_number if doctor else None,
            priority=token.priority,
            status=token.status,
            skip_count=token.skip_count,
            generated_at=token.generated_at,
            called_at=token.called_at,
            consultation_started_at=token.consultation_started_at,
            consultation_ended_at=token.consultation_ended_at,
            notes=token.notes,
            queue_position=estimate.queue_position,
            patients_ahead=estimate.patients_ahead,
            estimated_wait_minutes=estimate.estimated_wait_minutes,
            estimated_service_time=estimate.estimated_service_time,
        ))
    return responses


async def build_token_response(
    session: AsyncSession,
    engine: QueueEngine,
    token: Optional[QueueToken],
) -> Optional[TokenResponse]:
    if token is None:
        return None
    return (await build_token_responses(session, engine, [token]))[0]


async def create_token(
    session: AsyncSession,
    engine: QueueEngine,
    request: TokenCreateRequest,
) -> TokenResponse:
    """Issue a token; priority is derived from the patient's flags and the request."""
    patient = await session.get(Patient, request.patient_id)
    if patient is None:
        raise NotFoundError("Patient", "id", request.patient_id)

    department = await session.get(Department, request.department_id)
    if department is None:
        raise NotFoundError("Department", "id", request.department_id)
    if not department.is_active:
        raise ValidationError(f"Department {department.code} is not accepting patients")

    if request.doctor_id is not None:
        doctor = await ensure_doctor(session, engine, request.doctor_id)
        if doctor.department_id != department.id:
            raise ValidationError("Doctor does not belong to the selected department")

    priority = derive_priority(
        request.priority,
        is_pregnant=bool(patient.is_pregnant),
        is_senior_citizen=bool(patient.is_senior_citizen),
    )
    token = await engine.create_token(
        patient_id=patient.id,
        department_id=department.id,
        department_code=department.code,
        doctor_id=request.doctor_id,
        priority=priority,
        notes=request.notes,
    )
    return await build_token_response(session, engine, token)


async def get_token(session: AsyncSession, engine: QueueEngine, token_id: int) -> TokenResponse:
    return await build_token_response(session, engine, engine.get(token_id))


async def get_token_by_number(session: AsyncSession, engine: QueueEngine, token_number: str) -> TokenResponse:
    """Self-service lookup; tokens outside the retention window are not found."""
    return await build_token_response(session, engine, engine.find_by_number(token_number))


async def get_patient_tokens(session: AsyncSession, engine: QueueEngine, patient_id: int) -> List[TokenResponse]:
    return await build_token_responses(session, engine, projection.patient_tokens(engine, patient_id))


async def get_today_tokens(session: AsyncSession, engine: QueueEngine) -> List[TokenResponse]:
    return await build_token_responses(session, engine, projection.tokens_for_day(engine))


def get_estimated_wait_time(engine: QueueEngine, token_id: int) -> int:
    return engine.estimate(token_id).estimated_wait_minutes


async def cancel_token(session: AsyncSession, engine: QueueEngine, token_id: int) -> TokenResponse:
    token = await engine.cancel_waiting_token(token_id)
    return await build_token_response(session, engine, token)
