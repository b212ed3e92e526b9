# src/modules/queue/queue_service.py
"""Queue service: read-only queue views for displays and staff screens."""

from typing import List, Optional

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.common.queue import NotFoundError, QueueEngine
from src.common.queue import projection
from src.common.queue.projection import DoctorQueueSnapshot
from src.models.models import Department, Doctor
from src.modules.tokens.schemas import TokenResponse
from src.modules.tokens.tokens_service import build_token_response, build_token_responses, ensure_doctor

from .schemas import QueueStatusResponse


async def _queue_response(
    session: AsyncSession,
    engine: QueueEngine,
    snapshot: DoctorQueueSnapshot,
) -> QueueStatusResponse:
    department = await session.get(Department, snapshot.department_id)
    doctor = await session.get(Doctor, snapshot.doctor_id) if snapshot.doctor_id is not None else None
    return QueueStatusResponse(
        department_id=snapshot.department_id,
        department_name=department.name if department else None,
        doctor_id=snapshot.doctor_id,
        doctor_name=doctor.full_name if doctor else None,
        room_number=doctor.room_number if doctor else None,
        current_token=await build_token_response(session, engine, snapshot.current_token),
        total_waiting=snapshot.total_waiting,
        average_wait_time_minutes=snapshot.average_wait_time_minutes,
        last_updated=snapshot.last_updated,
        waiting_tokens=await build_token_responses(session, engine, list(snapshot.waiting_tokens)),
    )


async def get_queue_by_doctor(
    session: AsyncSession,
    engine: QueueEngine,
    doctor_id: int,
    include_pool: bool = True,
) -> QueueStatusResponse:
    await ensure_doctor(session, engine, doctor_id)
    snapshot = projection.doctor_queue(engine, doctor_id, include_pool=include_pool)
    return await _queue_response(session, engine, snapshot)


async def get_queue_by_department(
    session: AsyncSession,
    engine: QueueEngine,
    department_id: int,
) -> List[QueueStatusResponse]:
    """One entry per active doctor of the department, then its shared queue if anyone is in it."""
    department = await session.get(Department, department_id)
    if department is None:
        raise NotFoundError("Department", "id", department_id)

    result = await session.execute(
        select(Doctor.id)
        .where(Doctor.department_id == department_id, Doctor.is_active.is_(True))
        .order_by(Doctor.id)
    )
    responses = [
        await get_queue_by_doctor(session, engine, doctor_id, include_pool=False)
        for doctor_id in result.scalars().all()
    ]

    engine.register_department(department.id, department.code)
    pool = projection.department_pool(engine, department_id)
    if pool.waiting_tokens:
        responses.append(await _queue_response(session, engine, pool))
    return responses


async def get_current_token(
    session: AsyncSession,
    engine: QueueEngine,
    doctor_id: int,
) -> Optional[TokenResponse]:
    await ensure_doctor(session, engine, doctor_id)
    return await build_token_response(session, engine, engine.active_token(doctor_id))


async def get_waiting_tokens(session: AsyncSession, engine: QueueEngine, doctor_id: int) -> List[TokenResponse]:
    await ensure_doctor(session, engine, doctor_id)
    return await build_token_responses(session, engine, list(engine.waiting_list(doctor_id)))


async def get_all_queues(session: AsyncSession, engine: QueueEngine) -> List[QueueStatusResponse]:
    return [
        await _queue_response(session, engine, snapshot)
        for snapshot in projection.all_queues(engine)
    ]


async def get_live_board(session: AsyncSession, engine: QueueEngine) -> List[TokenResponse]:
    return await build_token_responses(session, engine, projection.live_board(engine))
