# src/modules/staff/staff_service.py
"""Staff service: consultation actions and dashboard figures."""

import logging
from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.schemas import StaffPrincipal
from src.common.queue import QueueEngine
from src.common.queue import projection
from src.models.models import Department
from src.modules.tokens.schemas import TokenResponse
from src.modules.tokens.tokens_service import build_token_response, build_token_responses, ensure_doctor

from .schemas import DashboardStatsResponse

logger = logging.getLogger(__name__)


async def call_next(
    session: AsyncSession,
    engine: QueueEngine,
    staff: StaffPrincipal,
    doctor_id: int,
) -> TokenResponse:
    await ensure_doctor(session, engine, doctor_id)
    token = await engine.call_next(doctor_id)
    logger.info("%s called %s for doctor %s", staff.username, token.token_number, doctor_id)
    return await build_token_response(session, engine, token)


async def start_consultation(session: AsyncSession, engine: QueueEngine, token_id: int) -> TokenResponse:
    return await build_token_response(session, engine, await engine.start_consultation(token_id))


async def end_consultation(session: AsyncSession, engine: QueueEngine, token_id: int) -> TokenResponse:
    return await build_token_response(session, engine, await engine.end_consultation(token_id))


async def cancel_consultation(session: AsyncSession, engine: QueueEngine, token_id: int) -> TokenResponse:
    return await build_token_response(session, engine, await engine.cancel_consultation(token_id))


async def mark_no_show(session: AsyncSession, engine: QueueEngine, token_id: int) -> TokenResponse:
    return await build_token_response(session, engine, await engine.mark_no_show(token_id))


async def skip_patient(session: AsyncSession, engine: QueueEngine, token_id: int) -> TokenResponse:
    return await build_token_response(session, engine, await engine.skip(token_id))


async def mark_priority(
    session: AsyncSession,
    engine: QueueEngine,
    token_id: int,
    priority: str,
) -> TokenResponse:
    return await build_token_response(session, engine, await engine.escalate_priority(token_id, priority))


async def get_active_consultations(session: AsyncSession, engine: QueueEngine) -> List[TokenResponse]:
    return await build_token_responses(session, engine, projection.active_consultations(engine))


async def get_dashboard_stats(
    session: AsyncSession,
    engine: QueueEngine,
    doctor_id: Optional[int] = None,
) -> DashboardStatsResponse:
    if doctor_id is not None:
        await ensure_doctor(session, engine, doctor_id)
    stats = projection.dashboard_stats(engine, doctor_id=doctor_id)

    department_names = {}
    for department_id in stats.department_wise_count:
        department = await session.get(Department, department_id)
        department_names[department_id] = department.name if department else str(department_id)

    return DashboardStatsResponse(
        total_patients_today=stats.total_patients_today,
        total_waiting=stats.total_waiting,
        total_in_consultation=stats.total_in_consultation,
        total_completed=stats.total_completed,
        total_cancelled=stats.total_cancelled,
        average_wait_time=stats.average_wait_time,
        department_wise_count={
            department_names[department_id]: count
            for department_id, count in stats.department_wise_count.items()
        },
        status_wise_count=stats.status_wise_count,
    )


async def get_doctor_queue(session: AsyncSession, engine: QueueEngine, doctor_id: int) -> List[TokenResponse]:
    """Doctor's active token followed by everyone waiting for them."""
    await ensure_doctor(session, engine, doctor_id)
    return await build_token_responses(session, engine, projection.doctor_board(engine, doctor_id))
