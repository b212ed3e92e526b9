# src/modules/staff/staff_controller.py
"""Staff controller: consultation room actions. Every route needs staff credentials."""

from typing import List, Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from src.auth.dependencies import get_current_staff
from src.auth.schemas import StaffPrincipal
from src.common.database.database import get_db_session
from src.common.queue import QueueEngine
from src.common.queue.dependencies import get_queue_engine
from src.common.schemas import ApiResponse
from src.common.utils.global_messages import GlobalMessages
from src.modules.tokens.schemas import TokenResponse

from . import staff_service as service
from .schemas import DashboardStatsResponse


router = APIRouter(prefix="/staff", tags=["Staff"], dependencies=[Depends(get_current_staff)])


@router.post("/call-next/{doctor_id}", response_model=ApiResponse[TokenResponse])
async def call_next_patient(
    doctor_id: int,
    current_staff: StaffPrincipal = Depends(get_current_staff),
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    """
    Call the highest-priority waiting patient for a doctor.
    Fails while the doctor still has a called or in-consultation patient.
    """
    token = await service.call_next(db, engine, current_staff, doctor_id)
    return ApiResponse(data=token, message=GlobalMessages.PATIENT_CALLED)


@router.post("/start-consultation/{token_id}", response_model=ApiResponse[TokenResponse])
async def start_consultation(
    token_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    token = await service.start_consultation(db, engine, token_id)
    return ApiResponse(data=token, message=GlobalMessages.CONSULTATION_STARTED)


@router.post("/end-consultation/{token_id}", response_model=ApiResponse[TokenResponse])
async def end_consultation(
    token_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    token = await service.end_consultation(db, engine, token_id)
    return ApiResponse(data=token, message=GlobalMessages.CONSULTATION_COMPLETED)


@router.post("/cancel-consultation/{token_id}", response_model=ApiResponse[TokenResponse])
async def cancel_consultation(
    token_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    token = await service.cancel_consultation(db, engine, token_id)
    return ApiResponse(data=token, message=GlobalMessages.CONSULTATION_CANCELLED)


@router.post("/no-show/{token_id}", response_model=ApiResponse[TokenResponse])
async def mark_no_show(
    token_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    token = await service.mark_no_show(db, engine, token_id)
    return ApiResponse(data=token, message=GlobalMessages.MARKED_NO_SHOW)


@router.post("/skip/{token_id}", response_model=ApiResponse[TokenResponse])
async def skip_patient(
    token_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    """
    Send the patient to the back of their priority band.
    """
    token = await service.skip_patient(db, engine, token_id)
    return ApiResponse(data=token, message=GlobalMessages.PATIENT_SKIPPED)


@router.post("/mark-priority/{token_id}", response_model=ApiResponse[TokenResponse])
async def mark_priority(
    token_id: int,
    priority: str = Query(..., description="NORMAL, SENIOR_CITIZEN, PREGNANT or EMERGENCY"),
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    token = await service.mark_priority(db, engine, token_id, priority)
    return ApiResponse(data=token, message=GlobalMessages.PRIORITY_UPDATED)


@router.get("/active-consultations", response_model=ApiResponse[List[TokenResponse]])
async def get_active_consultations(
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_active_consultations(db, engine))


@router.get("/dashboard", response_model=ApiResponse[DashboardStatsResponse])
async def get_dashboard(
    doctor_id: Optional[int] = Query(None),
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_dashboard_stats(db, engine, doctor_id))


@router.get("/doctor-queue/{doctor_id}", response_model=ApiResponse[List[TokenResponse]])
async def get_doctor_queue(
    doctor_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_doctor_queue(db, engine, doctor_id))
