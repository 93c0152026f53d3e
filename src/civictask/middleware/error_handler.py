"""Global error handlers: consistent JSON error responses.

Domain failures come back as ``{"detail": ..., "code": ...}`` so clients can
branch on the code (a lost race is ``conflict``, an illegal action is
``invalid_transition``).
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from civictask.errors import (
    CivicError,
    Conflict,
    DataUnavailable,
    Forbidden,
    InvalidTransition,
    NotFound,
    Timeout,
    ValidationError,
)
from civictask.intake.classifier import ClassificationRejected

logger = structlog.get_logger()

STATUS_BY_ERROR: dict[type[CivicError], int] = {
    ValidationError: 422,
    InvalidTransition: 409,
    Conflict: 409,
    NotFound: 404,
    Forbidden: 403,
    DataUnavailable: 503,
    Timeout: 504,
}


def status_for(exc: CivicError) -> int:
    for cls in type(exc).__mro__:
        if cls in STATUS_BY_ERROR:
            return STATUS_BY_ERROR[cls]
    return 500


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(CivicError)
    async def civic_error_handler(request: Request, exc: CivicError) -> JSONResponse:
        status = status_for(exc)
        log = logger.warning if status >= 500 else logger.info
        log("civic_error", path=request.url.path, code=exc.code, status=status, error=exc.message)
        return JSONResponse(status_code=status, content={"detail": exc.message, "code": exc.code})

    @app.exception_handler(ClassificationRejected)
    async def classification_rejected_handler(_request: Request, exc: ClassificationRejected) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": exc.reason, "code": "classification_rejected"},
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "code": "validation_error", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
