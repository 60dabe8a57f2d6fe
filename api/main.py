"""
FastAPI API Service Entry Point
"""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError
from redis.exceptions import RedisError
from starlette.exceptions import HTTPException as StarletteHTTPException

from api.middleware.rate_limiting import RateLimitMiddleware
from api.routes import (
    ai,
    appointments,
    auth,
    connect,
    connections,
    horses,
    messages,
    notifications,
    reviews,
    statistics,
    stripe,
    subscription,
    users,
)
from booking.errors import BookingError
from shared.circuit_breaker import get_breaker_status
from shared.config import get_settings
from shared.logging_config import configure_logging
from shared.redis_client import close_redis_client, get_redis_client
from shared.startup_validator import (
    StartupValidationError,
    validate_database_connection,
    validate_startup_config,
)

# Configure structured JSON logging on startup
configure_logging()
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Equine Booking CRM API",
    version="1.0.0",
)

settings = get_settings()
origins = [origin.strip() for origin in settings.CORS_ORIGINS.split(",") if origin.strip()]

# Last added middleware executes first: CORS answers preflight before rate limiting
app.add_middleware(RateLimitMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=origins,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["*"],
)

for module in (
    auth,
    users,
    horses,
    appointments,
    connections,
    messages,
    reviews,
    notifications,
    ai,
    subscription,
    connect,
    statistics,
    stripe,
):
    app.include_router(module.router)


# =========================================================================
# STARTUP VALIDATION
# =========================================================================
@app.on_event("startup")
async def startup_config_validation():
    """
    Validate critical configuration at startup.

    Raises:
        StartupValidationError: If critical configuration is invalid
    """
    logger.info("Running API startup configuration validation...")
    try:
        await validate_startup_config()
        logger.info("API startup configuration validation passed")
    except StartupValidationError as e:
        logger.critical(f"API startup blocked due to configuration errors: {e}")
        raise


@app.on_event("shutdown")
async def close_connections():
    await close_redis_client()


# =========================================================================
# EXCEPTION HANDLERS
# =========================================================================
def error_response(status_code: int, error: str, detail: str, **extra) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "detail": detail, **extra})


HTTP_ERROR_CODES = {
    400: "validation_error",
    401: "unauthorized",
    403: "forbidden",
    404: "not_found",
    405: "method_not_allowed",
    429: "rate_limited",
}


@app.exception_handler(BookingError)
async def booking_exception_handler(request: Request, exc: BookingError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error(
            f"{type(exc).__name__} on {request.url.path}: {exc.message}",
            extra={"request_path": request.url.path},
        )
        return error_response(exc.status_code, exc.error_code, "External service unavailable")
    return error_response(exc.status_code, exc.error_code, exc.message)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    response = error_response(
        exc.status_code,
        HTTP_ERROR_CODES.get(exc.status_code, "server_error" if exc.status_code >= 500 else "error"),
        str(exc.detail),
    )
    if exc.headers:
        response.headers.update(exc.headers)
    return response


@app.exception_handler(RequestValidationError)
async def request_validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Return 400 with validation error details."""
    return error_response(
        400, "validation_error", "Invalid request", details=jsonable_errors(exc.errors())
    )


@app.exception_handler(ValidationError)
async def validation_exception_handler(request: Request, exc: ValidationError) -> JSONResponse:
    return error_response(
        400, "validation_error", "Invalid request", details=jsonable_errors(exc.errors())
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        f"Unhandled error on {request.method} {request.url.path}: {exc}",
        exc_info=exc,
        extra={"request_path": request.url.path},
    )
    return error_response(500, "server_error", "Internal server error")


def jsonable_errors(errors) -> list[dict]:
    """Pydantic error dicts may carry exception objects in ctx."""
    return [
        {key: (str(value) if key == "ctx" else value) for key, value in error.items()}
        for error in errors
    ]


# =========================================================================
# HEALTH
# =========================================================================
@app.get("/health")
async def health_check() -> JSONResponse:
    """
    Health check endpoint for Docker health checks and monitoring.

    Returns:
        200 OK if Redis and PostgreSQL answer
        503 Service Unavailable if degraded
    """
    health_status = {
        "status": "healthy",
        "redis": "unknown",
        "postgres": "unknown",
        "circuit_breakers": get_breaker_status(),
    }
    status_code = 200

    try:
        await get_redis_client().ping()
        health_status["redis"] = "connected"
    except RedisError:
        health_status["redis"] = "disconnected"
        health_status["status"] = "degraded"
        status_code = 503

    if await validate_database_connection():
        health_status["postgres"] = "connected"
    else:
        health_status["postgres"] = "disconnected"
        health_status["status"] = "degraded"
        status_code = 503

    return JSONResponse(status_code=status_code, content=health_status)


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint"""
    return {"message": "Equine Booking CRM API - Use /health for health checks"}
