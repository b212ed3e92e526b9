# common/utils/global_functions.py
from typing import Any, Dict, Optional

from fastapi import status
from fastapi.responses import JSONResponse


def envelope(data: Any = None, message: str = "Success") -> Dict[str, Any]:
    return {"data": data, "message": message}


def error_response(
    status_code: int = status.HTTP_400_BAD_REQUEST,
    message: str = "",
    headers: Optional[Dict[str, str]] = None,
) -> JSONResponse:
    """JSON error in the same {data, message} envelope as successful responses."""
    return JSONResponse(status_code=status_code, content=envelope(None, message), headers=headers)
