# src/common/queue/dependencies.py

from fastapi import HTTPException, Request, status

from src.common.utils.global_messages import GlobalMessages

from .engine import QueueEngine


def get_queue_engine(request: Request) -> QueueEngine:
    """FastAPI dependency returning the engine built during startup."""
    engine = getattr(request.app.state, "queue_engine", None)
    if engine is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=GlobalMessages.QUEUE_NOT_READY,
        )
    return engine
