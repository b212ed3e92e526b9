# src/auth/dependencies.py

import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBasic, HTTPBasicCredentials

from src.auth.auth_service import authenticate_staff
from src.auth.schemas import StaffPrincipal
from src.common.utils.global_messages import GlobalMessages

logger = logging.getLogger(__name__)

basic_scheme = HTTPBasic(auto_error=False)


async def get_current_staff(
    credentials: HTTPBasicCredentials = Depends(basic_scheme),
) -> StaffPrincipal:
    """
    Dependency guarding staff-only routes with HTTP Basic credentials.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=GlobalMessages.AUTH_HEADER_MISSING,
            headers={"WWW-Authenticate": "Basic"},
        )

    staff = authenticate_staff(credentials.username, credentials.password)
    if staff is None:
        logger.warning("Rejected staff credentials for %r", credentials.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=GlobalMessages.INVALID_CREDENTIALS,
            headers={"WWW-Authenticate": "Basic"},
        )
    return staff
