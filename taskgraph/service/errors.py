"""Application errors and their mapping to HTTP responses."""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from taskgraph.service.models import ErrorResponse

logger = logging.getLogger(__name__)


class AppError(Exception):
    """Base class for errors returned to HTTP clients."""

    status_code = 500
    error_type = "INTERNAL_SERVER_ERROR"

    def __init__(self, message: str):
        self.message = message
        super().__init__(message)


class BadRequestError(AppError):
    status_code = 400
    error_type = "BAD_REQUEST"


class ValidationError(AppError):
    status_code = 400
    error_type = "VALIDATION_ERROR"


class InternalServerError(AppError):
    status_code = 500
    error_type = "INTERNAL_SERVER_ERROR"


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """Render an AppError as ``{"error": ..., "message": ...}``."""
    if exc.status_code >= 500:
        logger.error("Internal server error: %s", exc.message)
    body = ErrorResponse(error=exc.error_type, message=exc.message)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render malformed request bodies as BAD_REQUEST."""
    details = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in exc.errors()
    )
    return await app_error_handler(request, BadRequestError(f"Invalid request body: {details}"))
