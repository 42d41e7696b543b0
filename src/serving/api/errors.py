"""
API Error Handlers

Render application errors as ``{"error": {"code", "message", "details"}}``.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import structlog

from src.analytics.exceptions import StorefrontAnalyticsError

logger = structlog.get_logger(__name__)


def error_body(code: str, message: str, details: dict = None) -> dict:
    return {"error": {"code": code, "message": message, "details": details or {}}}


async def application_error_handler(request: Request, exc: StorefrontAnalyticsError) -> JSONResponse:
    log = logger.bind(path=request.url.path, method=request.method, code=exc.code, **exc.details)
    if exc.status_code >= 500:
        log.error("Request failed", message=exc.message)
        # Store internals stay in the logs
        body = error_body(exc.code, exc.message)
    else:
        log.warning("Request rejected", message=exc.message)
        body = error_body(exc.code, exc.message, exc.details)

    headers = {"WWW-Authenticate": "Bearer"} if exc.status_code == 401 else None
    return JSONResponse(status_code=exc.status_code, content=body, headers=headers)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        error_type=type(exc).__name__,
        exc_info=exc,
    )
    return JSONResponse(
        status_code=500,
        content=error_body("INTERNAL_ERROR", "Internal server error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StorefrontAnalyticsError, application_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
