# src/auth/auth_controller.py

from fastapi import APIRouter, Depends

from src.auth.dependencies import get_current_staff
from src.auth.schemas import StaffPrincipal
from src.common.schemas import ApiResponse

router = APIRouter(prefix="/auth", tags=["auth"])


@router.get("/me", response_model=ApiResponse[StaffPrincipal])
async def get_me(current_staff: StaffPrincipal = Depends(get_current_staff)):
    """
    Check staff credentials and return who they belong to.
    """
    return ApiResponse(data=current_staff)
