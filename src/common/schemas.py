# src/common/schemas.py
"""Response envelope shared by every router."""

from typing import Generic, Optional, TypeVar

from pydantic import BaseModel

from src.common.utils.global_messages import GlobalMessages

T = TypeVar("T")


class ApiResponse(BaseModel, Generic[T]):
    data: Optional[T] = None
    message: str = GlobalMessages.SUCCESS
