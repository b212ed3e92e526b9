# src/modules/queue/queue_controller.py
"""Queue controller: public, read-only queue displays."""

from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.common.database.database import get_db_session
from src.common.queue import QueueEngine
from src.common.queue.dependencies import get_queue_engine
from src.common.schemas import ApiResponse
from src.modules.tokens.schemas import TokenResponse

from . import queue_service as service
from .schemas import QueueStatusResponse


router = APIRouter(prefix="/queue", tags=["Queue"])


@router.get("/doctor/{doctor_id}", response_model=ApiResponse[QueueStatusResponse])
async def get_queue_by_doctor(
    doctor_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_queue_by_doctor(db, engine, doctor_id))


@router.get("/department/{department_id}", response_model=ApiResponse[List[QueueStatusResponse]])
async def get_queue_by_department(
    department_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_queue_by_department(db, engine, department_id))


@router.get("/current/{doctor_id}", response_model=ApiResponse[Optional[TokenResponse]])
async def get_current_token(
    doctor_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    """
    Token the doctor is currently serving, or null.
    """
    return ApiResponse(data=await service.get_current_token(db, engine, doctor_id))


@router.get("/waiting/{doctor_id}", response_model=ApiResponse[List[TokenResponse]])
async def get_waiting_tokens(
    doctor_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_waiting_tokens(db, engine, doctor_id))


@router.get("/all", response_model=ApiResponse[List[QueueStatusResponse]])
async def get_all_queues(
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    """
    Every queue with someone waiting or in consultation. Displays poll this.
    """
    return ApiResponse(data=await service.get_all_queues(db, engine))


@router.get("/live-board", response_model=ApiResponse[List[TokenResponse]])
async def get_live_board(
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_live_board(db, engine))
