"""
Reminder Service API

Exposes the notification trigger and health checks. Reminders are sent
only when a scheduler calls /api/notifications/process; the app itself
runs no background loop.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncGenerator

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from reminder_service.config import settings
from reminder_service.api.routes import health, notifications
from reminder_service.core.reminders.orchestrator import close_orchestrator
from reminder_service.infra.database import close_db, init_db

# Libraries that log every request or SMTP exchange at INFO
NOISY_LOGGERS = ("uvicorn.access", "httpx", "httpcore", "aiosmtplib", "urllib3")


def setup_logging() -> None:
    """Configure root logging; SQL echo follows DEBUG."""
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(
        logging.INFO if settings.debug else logging.WARNING
    )


logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Start up, report channel configuration, and release clients on exit."""
    setup_logging()
    logger.info(f"Starting {settings.app_name} ({settings.app_env})")
    health.set_start_time()

    if settings.is_development:
        try:
            await init_db()
            logger.info("Development database tables ensured")
        except Exception as e:
            logger.warning(f"Database init skipped: {e}")

    for channel, state in health.channel_status(settings).items():
        if state == "configured":
            logger.info(f"{channel} channel ready")
        else:
            logger.warning(f"{channel} channel {state}; its reminders will be skipped")

    yield

    logger.info("Shutting down...")
    await close_orchestrator()
    await close_db()
    logger.info("Provider clients and database connections closed")


app = FastAPI(
    title="Reminder Service API",
    description="""
    Appointment reminder dispatch for the barbershop booking system.

    ## Features
    - ⏰ 24h, 12h, 2h and 30-minute reminders, plus post-visit thank-you
    - 📧 Email, 🔔 Web Push and 📱 SMS channels
    - 🔒 At most one dispatch per appointment, window and channel

    ## Triggering
    `GET` or `POST /api/notifications/process`, from a scheduler or with the
    configured cron secret.
    """,
    version="1.0.0",
    docs_url="/docs" if settings.is_development else None,
    redoc_url=None,
    openapi_url="/openapi.json" if settings.is_development else None,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_methods=["GET", "POST"],
    allow_headers=["Authorization", "Content-Type"],
)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError,
) -> JSONResponse:
    """Return validation errors as a 422 body."""
    logger.warning(f"Invalid request to {request.url.path}: {exc.errors()}")
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={"error": "Validation error", "detail": exc.errors()},
    )


@app.exception_handler(Exception)
async def generic_exception_handler(
    request: Request,
    exc: Exception,
) -> JSONResponse:
    """Log anything unhandled and hide details outside development."""
    logger.exception(f"Unhandled exception on {request.url.path}: {exc}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "Internal server error",
            "detail": str(exc) if settings.is_development else None,
        },
    )


app.include_router(health.router)
app.include_router(notifications.router)


@app.get("/", tags=["Root"])
async def root() -> dict:
    """Service name, environment and the trigger path."""
    return {
        "name": settings.app_name,
        "version": "1.0.0",
        "environment": settings.app_env,
        "trigger": "/api/notifications/process",
        "health": "/health/ready",
    }


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "reminder_service.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
        log_level="debug" if settings.debug else "info",
    )
