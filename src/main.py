# src/main.py

import logging
from contextlib import asynccontextmanager
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from src.common.database.database import async_session, connect_to_db, close_db_connection
from src.common.config import settings
from src.common.logging_config import configure_logging
from src.common.queue import QueueError
from src.common.queue.bootstrap import create_queue_engine
from src.common.utils.global_functions import error_response
from src.router.routers import include_routers

configure_logging()
logger = logging.getLogger(__name__)

# Lifespan context manager for startup and shutdown events
@asynccontextmanager
async def lifespan(app: FastAPI):
    await connect_to_db()
    app.state.queue_engine = await create_queue_engine(async_session)
    yield
    await close_db_connection()

# Initialize FastAPI app with lifespan manager
app = FastAPI(
    title="Smart Queue API",
    description="Hospital token and consultation queue service",
    version="1.0.0",
    lifespan=lifespan
)

# Middleware for CORS using allowed origins from settings
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(QueueError)
async def queue_error_handler(request: Request, exc: QueueError):
    if exc.status_code >= 500:
        logger.error("%s on %s %s: %s", type(exc).__name__, request.method, request.url.path, exc.message)
    return error_response(exc.status_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return error_response(exc.status_code, str(exc.detail), headers=getattr(exc, "headers", None))


# Include routers from a separate file
include_routers(app)


@app.get("/health")
async def health():
    return {"status": "ok"}


# Root endpoint
@app.get("/", response_class=HTMLResponse)
async def root():
    html_content = """<!DOCTYPE html>
<html lang="en">
<head>
    <meta charset="UTF-8">
    <title>Smart Queue API</title>
</head>
<body>
    <h1>Smart Queue API</h1>
    <p>Token generation, consultation queues and live boards.</p>
    <ul>
        <li><code>POST /tokens</code> generate a token</li>
        <li><code>GET /tokens/queue-position/{token_number}</code> where am I in the queue</li>
        <li><code>POST /staff/call-next/{doctor_id}</code> call the next patient (staff)</li>
        <li><code>GET /queue/all</code> live queues</li>
    </ul>
    <p><a href="/docs">Swagger UI</a> &middot; <a href="/redoc">ReDoc</a></p>
</body>
</html>
"""
    return html_content
