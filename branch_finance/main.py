"""
Branch Finance Back Office: FastAPI application.

This is the entry point for the application.
All routers and error handlers are registered here.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi.errors import RateLimitExceeded
from sqlalchemy.exc import IntegrityError, OperationalError

from branch_finance.config import get_settings
from branch_finance.exceptions import AppError
from branch_finance.init_db import seed_defaults
from branch_finance.logging_config import configure_logging
from branch_finance.models import Base
from branch_finance.models.base import engine, SessionLocal
from branch_finance.rate_limit import limiter
from branch_finance.scheduler import ReminderScheduler
from branch_finance.api.health import router as health_router
from branch_finance.api.auth import router as auth_router
from branch_finance.api.users import router as users_router
from branch_finance.api.reference import router as reference_router
from branch_finance.api.members import router as members_router
from branch_finance.api.finance import router as finance_router
from branch_finance.api.procurement import router as procurement_router
from branch_finance.api.budgets import router as budgets_router
from branch_finance.api.reports import router as reports_router
from branch_finance.api.reminders import router as reminders_router

logger = logging.getLogger(__name__)

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings.validate()
    configure_logging(settings)
    logger.info("Starting %s %s", settings.APP_NAME, settings.APP_VERSION)

    # SQLite has no migration history; PostgreSQL is migrated with Alembic.
    if settings.DATABASE_URL.startswith("sqlite"):
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if seed_defaults(db, settings):
            db.commit()
    finally:
        db.close()

    scheduler = ReminderScheduler(settings)
    scheduler.start()

    yield

    await scheduler.stop()
    logger.info("Shutting down %s", settings.APP_NAME)


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Back office for branch contributions, expenditures and procurement",
    lifespan=lifespan,
)

app.state.limiter = limiter

app.add_middleware(
    CORSMiddleware,
    allow_origins=[o.strip() for o in settings.CORS_ORIGIN.split(",") if o.strip()],
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization"],
)


# --- Error handlers ---

def _error_body(status_code: int, code: str, message: str) -> dict:
    return {
        "status": "fail" if status_code < 500 else "error",
        "code": code,
        "message": message,
    }


@app.exception_handler(AppError)
async def app_error_handler(request: Request, exc: AppError):
    logger.warning(
        "%s %s -> %d %s: %s",
        request.method, request.url.path, exc.status_code, exc.code, exc.message,
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=_error_body(exc.status_code, exc.code, exc.message),
    )


@app.exception_handler(RateLimitExceeded)
async def rate_limit_handler(request: Request, exc: RateLimitExceeded):
    logger.warning(
        "Rate limit %s exceeded by %s on %s",
        exc.detail, request.client.host if request.client else "unknown",
        request.url.path,
    )
    return JSONResponse(
        status_code=429,
        content=_error_body(
            429, "RATE_LIMITED",
            "Too many login attempts from this address, please try again later.",
        ),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        field = ".".join(str(part) for part in first["loc"] if part != "body")
        message = f"{field}: {first['msg']}" if field else first["msg"]
    else:
        message = "Invalid input data."
    return JSONResponse(
        status_code=400,
        content=_error_body(400, "VALIDATION_ERROR", message),
    )


@app.exception_handler(IntegrityError)
async def integrity_error_handler(request: Request, exc: IntegrityError):
    logger.warning("Integrity error on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=409,
        content=_error_body(
            409, "CONFLICT",
            "A unique field value already exists or a referenced record is missing.",
        ),
    )


@app.exception_handler(OperationalError)
async def operational_error_handler(request: Request, exc: OperationalError):
    # 57014 is PostgreSQL's query_canceled, raised by statement_timeout.
    if getattr(exc.orig, "pgcode", None) == "57014":
        logger.error("Query timed out on %s %s", request.method, request.url.path)
        return JSONResponse(
            status_code=408,
            content=_error_body(
                408, "QUERY_TIMEOUT",
                "The database query took too long. Please narrow the request.",
            ),
        )
    logger.error("Database unavailable on %s %s: %s", request.method, request.url.path, exc.orig)
    return JSONResponse(
        status_code=503,
        content=_error_body(
            503, "STORE_UNAVAILABLE",
            "Cannot reach the database server. Please try again later.",
        ),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    message = "Something went very wrong!" if settings.is_production else str(exc)
    return JSONResponse(
        status_code=500,
        content=_error_body(500, "INTERNAL_ERROR", message),
    )


# Register routers
app.include_router(health_router)
app.include_router(auth_router)
app.include_router(users_router)
app.include_router(reference_router)
app.include_router(members_router)
app.include_router(finance_router)
app.include_router(procurement_router)
app.include_router(budgets_router)
app.include_router(reports_router)
app.include_router(reminders_router)
