import logging
from contextlib import asynccontextmanager
from datetime import datetime
from typing import Callable, Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from .booking_lock import BookingLock, create_booking_lock
from .config import ALLOWED_ORIGINS, SECURITY_HEADERS_ENABLED, SchedulingConfig, load_scheduling_config
from .database import Database
from .domain.appointments.router import router as appointments_router
from .domain.notifications.router import router as notifications_router
from .domain.notifications.service import utc_now
from .domain.practitioners.router import router as practitioners_router
from .domain.therapies.router import router as therapies_router
from .errors import BookingError
from .security_headers import SecurityHeadersMiddleware

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

# Reduce verbosity of third-party libraries
logging.getLogger("httpx").setLevel(logging.WARNING)
logging.getLogger("httpcore").setLevel(logging.WARNING)


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Application starting up...")
    database: Database = app.state.database
    try:
        database.create_all()
        logger.info("Database tables created successfully")
    except SQLAlchemyError as e:
        # Ignore "already exists" errors from race conditions between workers
        error_msg = str(e)
        if "already exists" in error_msg or "duplicate key" in error_msg:
            logger.info("Database tables already exist (created by another worker)")
        else:
            logger.error(f"Failed to create database tables: {e}")
            raise

    yield

    logger.info("Application shutting down...")
    database.dispose()


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(BookingError)
    async def booking_error_handler(request: Request, exc: BookingError):
        if exc.status_code >= 500:
            logger.error(f"{request.method} {request.url.path} - {exc.code}: {exc.message}")
        else:
            logger.info(f"{request.method} {request.url.path} - {exc.status_code} {exc.code}")
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        logger.warning(f"Validation error for {request.url.path}: {exc.errors()}")
        return JSONResponse(status_code=422, content={"detail": jsonable_errors(exc)})

    @app.exception_handler(SQLAlchemyError)
    async def database_error_handler(request: Request, exc: SQLAlchemyError):
        # The request session has already been rolled back by get_db
        logger.error(f"{request.method} {request.url.path} - Database error: {exc}", exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "error": "internal_error"},
        )


def jsonable_errors(exc: RequestValidationError) -> list[dict]:
    """Validation errors without the raw exception objects pydantic attaches in ctx"""
    errors = []
    for error in exc.errors():
        error = dict(error)
        if "ctx" in error:
            error["ctx"] = {key: str(value) for key, value in error["ctx"].items()}
        errors.append(error)
    return errors


def create_app(
    database: Optional[Database] = None,
    booking_lock: Optional[BookingLock] = None,
    scheduling: Optional[SchedulingConfig] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> FastAPI:
    """
    Build the API application.

    Every collaborator can be injected (tests pass an in-memory database,
    a local booking lock and a fixed clock); anything omitted is built from
    environment settings.
    """
    app = FastAPI(title="AyurSutra API", version="1.0.0", lifespan=lifespan)

    app.state.database = database or Database()
    app.state.booking_lock = booking_lock or create_booking_lock()
    app.state.scheduling = scheduling or load_scheduling_config()
    app.state.clock = clock or utc_now

    register_exception_handlers(app)

    if SECURITY_HEADERS_ENABLED:
        app.add_middleware(SecurityHeadersMiddleware, exclude_paths=["/health", "/docs", "/openapi.json"])
        logger.info("Security headers enabled")
    else:
        logger.warning("Security headers DISABLED - only use in development!")

    logger.info(f"CORS allowed origins: {ALLOWED_ORIGINS}")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=ALLOWED_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS", "PATCH"],
        allow_headers=["*"],
    )

    # Routes
    app.include_router(practitioners_router)
    app.include_router(therapies_router)
    app.include_router(appointments_router)
    app.include_router(notifications_router)

    @app.get("/")
    def root():
        return {"message": "AyurSutra API is running"}

    @app.get("/health")
    def health():
        return {"status": "healthy"}

    return app


app = create_app()
