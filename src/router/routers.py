# src/router/routers.py

from fastapi import FastAPI
from src.auth.auth_controller import router as auth_router
from src.modules.tokens.tokens_controller import router as tokens_router
from src.modules.staff.staff_controller import router as staff_router
from src.modules.queue.queue_controller import router as queue_router

def include_routers(app: FastAPI) -> None:
    """Include all API routers in the FastAPI application."""
    app.include_router(auth_router)
    app.include_router(tokens_router)
    app.include_router(staff_router)
    app.include_router(queue_router)
