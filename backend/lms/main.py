"""
FastAPI application entry point.

Configures the application, includes the routes, registers the error
envelope handlers and defines the lifespan (startup/shutdown).
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from starlette.exceptions import HTTPException as StarletteHTTPException

from lms.api.v1.router import api_router
from lms.core.config import get_settings
from lms.core.deps import DbSession
from lms.core.logging import setup_logging, get_logger
from lms.db.session import check_database_connection, engine
from lms.db.redis import init_redis, close_redis, check_redis_connection
from lms.schemas.base import ErrorDetail, ErrorResponse
from lms.schemas.health import HealthResponse

settings = get_settings()
logger = get_logger(__name__)

API_VERSION = "1.0.0"

ERROR_CODES = {
    400: "bad_request",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    409: "conflict",
    422: "validation_error",
    429: "rate_limited",
    502: "bad_gateway",
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifecycle.

    Startup:
        - Configure logging
        - Connect to Redis (rate limiting)
        - Check the database connection

    Shutdown:
        - Close Redis
        - Dispose of the database pool
    """
    # Startup
    setup_logging()
    logger.info(f"Starting {settings.APP_NAME} in {settings.ENVIRONMENT}")

    await init_redis()
    if await check_redis_connection():
        logger.info("Redis connection established")
    else:
        logger.warning("Redis not available - rate limiting disabled")

    success, error = await check_database_connection()
    if success:
        logger.info("Database connection established")
    else:
        logger.warning(f"Database not available: {error}")

    yield

    # Shutdown
    logger.info(f"Shutting down {settings.APP_NAME}")
    await close_redis()
    await engine.dispose()


app = FastAPI(
    title=settings.APP_NAME,
    description="REST API for the library management system",
    version=API_VERSION,
    docs_url="/docs",
    redoc_url="/redoc",
    openapi_url="/openapi.json",
    lifespan=lifespan,
)


# ==========================================
# Error envelope
# ==========================================

@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    body = ErrorResponse(
        error=ERROR_CODES.get(exc.status_code, "error"),
        message=str(exc.detail),
    )
    return JSONResponse(
        status_code=exc.status_code,
        content=body.model_dump(),
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    details = [
        ErrorDetail(
            field=".".join(str(part) for part in err["loc"] if part != "body") or None,
            message=err["msg"],
        )
        for err in exc.errors()
    ]
    body = ErrorResponse(
        error=ERROR_CODES[422],
        message="Request validation failed",
        details=details,
    )
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content=body.model_dump(),
    )


# API v1 routes
app.include_router(api_router)


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["Health"],
    summary="Application status",
    description="Application status, version, database and rate limiter reachability.",
)
async def health_check(db: DbSession) -> HealthResponse:
    """
    Healthcheck for load balancers and monitoring.

    Status is "degraded" when the database does not answer; Redis only
    affects the rate_limiter field.
    """
    try:
        await db.execute(text("SELECT 1"))
        database = True
    except SQLAlchemyError as e:
        logger.warning(f"Health check database failure: {e}")
        database = False

    if not settings.RATE_LIMIT_ENABLED:
        rate_limiter = "disabled"
    elif await check_redis_connection():
        rate_limiter = "up"
    else:
        rate_limiter = "unavailable"

    return HealthResponse(
        status="healthy" if database else "degraded",
        app_name=settings.APP_NAME,
        version=API_VERSION,
        environment=settings.ENVIRONMENT,
        database=database,
        rate_limiter=rate_limiter,
    )
