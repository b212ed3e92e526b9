# src/modules/tokens/tokens_controller.py
"""Tokens controller: registration desk and patient self-service."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from src.common.database.database import get_db_session
from src.common.queue import QueueEngine
from src.common.queue.dependencies import get_queue_engine
from src.common.schemas import ApiResponse
from src.common.utils.global_messages import GlobalMessages

from . import tokens_service as service
from .schemas import TokenCreateRequest, TokenResponse


router = APIRouter(prefix="/tokens", tags=["Tokens"])


@router.post("", response_model=ApiResponse[TokenResponse])
async def generate_token(
    request: TokenCreateRequest,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    """
    Generate a queue token for a registered patient.
    Leave doctor_id empty to join the department's shared queue.
    """
    token = await service.create_token(db, engine, request)
    return ApiResponse(data=token, message=GlobalMessages.TOKEN_GENERATED)


@router.get("/today", response_model=ApiResponse[List[TokenResponse]])
async def get_today_tokens(
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_today_tokens(db, engine))


@router.get("/number/{token_number}", response_model=ApiResponse[TokenResponse])
async def get_token_by_number(
    token_number: str,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_token_by_number(db, engine, token_number))


@router.get("/queue-position/{token_number}", response_model=ApiResponse[TokenResponse])
async def get_queue_position(
    token_number: str,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    """
    Current status plus queue position and wait estimate for a token number.
    """
    return ApiResponse(data=await service.get_token_by_number(db, engine, token_number))


@router.get("/patient/{patient_id}", response_model=ApiResponse[List[TokenResponse]])
async def get_patient_tokens(
    patient_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_patient_tokens(db, engine, patient_id))


@router.get("/waiting-time/{token_id}", response_model=ApiResponse[int])
async def get_waiting_time(
    token_id: int,
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=service.get_estimated_wait_time(engine, token_id))


@router.post("/{token_id}/cancel", response_model=ApiResponse[TokenResponse])
async def cancel_token(
    token_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    token = await service.cancel_token(db, engine, token_id)
    return ApiResponse(data=token, message=GlobalMessages.TOKEN_CANCELLED)


@router.get("/{token_id}", response_model=ApiResponse[TokenResponse])
async def get_token(
    token_id: int,
    db: AsyncSession = Depends(get_db_session),
    engine: QueueEngine = Depends(get_queue_engine),
):
    return ApiResponse(data=await service.get_token(db, engine, token_id))
