"""FastAPI application for the intake backend.

Run with ``uvicorn intake.main:app``. Tests build fresh instances through
``create_app()`` so each one picks up its own environment.
"""

import logging
import time
from contextlib import asynccontextmanager
from uuid import uuid4

from fastapi import FastAPI, Request, WebSocket
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from intake import __version__
from intake.api.http.audit import router as audit_router
from intake.api.ws import websocket_endpoint
from intake.config import get_settings
from intake.core.di import get_container
from intake.exceptions import AppError
from intake.infrastructure.database import check_db, close_db, init_db
from intake.infrastructure.logging import clear_request_context, set_request_context, setup_logging
from intake.services.notifications import NotificationHub

logger = logging.getLogger("app")


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings = get_settings()
    settings.log_config_summary()

    app.state.notifications = NotificationHub(ttl=settings.notification_ttl_seconds)
    app.state.voice_service = get_container().create_voice_service()
    await init_db()
    logger.info("Intake backend started", extra={"service": "app"})

    yield

    logger.info("Intake backend stopping", extra={"service": "app"})
    await app.state.notifications.close()
    voice_service = app.state.voice_service
    for provider in (voice_service.stt, voice_service.llm, voice_service.tts):
        await provider.aclose()
    await close_db()


async def app_error_handler(_request: Request, exc: AppError) -> JSONResponse:
    """Render AppError as ``{"error": {...}}``; retryable errors answer 503."""
    status_code = 503 if exc.retryable else 500
    logger.error(
        "Request failed",
        extra={
            "service": "http",
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
        },
    )
    return JSONResponse(status_code=status_code, content=exc.to_dict())


async def request_context_middleware(request: Request, call_next):
    """Bind ``x-request-id`` (generated when absent) for the request's logs and echo it back."""
    request_id = request.headers.get("x-request-id") or str(uuid4())
    set_request_context(request_id=request_id)
    started = time.perf_counter()
    status_code: int | None = None
    try:
        response = await call_next(request)
        status_code = response.status_code
        response.headers["x-request-id"] = request_id
        return response
    finally:
        logger.info(
            f"{request.method} {request.url.path}",
            extra={
                "service": "http",
                "status_code": status_code,
                "duration_ms": int((time.perf_counter() - started) * 1000),
            },
        )
        clear_request_context()


async def health_check():
    return {"status": "healthy", "service": "intake-backend"}


async def readiness_check():
    """503 until the audit database answers."""
    if await check_db():
        return {"status": "ready"}
    return JSONResponse(
        status_code=503,
        content={"status": "unhealthy", "errors": ["Database: unreachable"]},
    )


async def voice_socket(websocket: WebSocket):
    await websocket_endpoint(websocket)


def create_app() -> FastAPI:
    """Build the application from the current settings."""
    settings = get_settings()
    setup_logging(log_level=settings.log_level, debug_namespaces=settings.debug_namespaces)

    app = FastAPI(
        title="Intake API",
        description="Healthcare intake backend: voice assistant and prescription audit trail",
        version=__version__,
        lifespan=lifespan,
    )

    # Any origin in development; an explicit list (with credentials) elsewhere
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.is_development else settings.cors_allow_origins_list,
        allow_credentials=not settings.is_development,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(request_context_middleware)
    app.add_exception_handler(AppError, app_error_handler)

    app.include_router(audit_router)
    app.add_api_route("/health", health_check, methods=["GET"])
    app.add_api_route("/health/ready", readiness_check, methods=["GET"])
    app.add_api_websocket_route("/ws/voice", voice_socket)

    return app


app = create_app()
