# college_notes/core/errors.py
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError as PydanticValidationError
from starlette.exceptions import HTTPException

logger = logging.getLogger(__name__)


class AppError(Exception):
    """
    Base of the service error taxonomy.
    Services raise these; the handlers below render the JSON envelope.
    """
    status_code: int = 500
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AppError):
    status_code = 400
    default_message = "Validation error"


class AuthError(AppError):
    status_code = 401
    default_message = "Authentication required"


class AccessDeniedError(AppError, PermissionError):
    status_code = 403
    default_message = "Permission denied"


class NotFoundError(AppError, LookupError):
    status_code = 404
    default_message = "Not found"


class ConflictError(AppError):
    status_code = 409
    default_message = "Conflict"


class StoreError(AppError):
    status_code = 502
    default_message = "Object store operation failed"


class InternalError(AppError):
    status_code = 500


def envelope(data=None, message: str | None = None, success: bool = True) -> dict:
    return {"success": success, "message": message, "data": data}


def _error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content=envelope(message=message, success=False))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request failed", extra={"path": request.url.path, "error": exc.message})
    return _error_response(exc.status_code, exc.message)


async def http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    response = _error_response(exc.status_code, str(exc.detail))
    if exc.headers:
        response.headers.update(exc.headers)
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query", "path"))
    msg = first.get("msg", "Invalid request")
    return _error_response(400, f"{loc}: {msg}" if loc else msg)


async def model_validation_handler(request: Request, exc: PydanticValidationError) -> JSONResponse:
    # query models are built inside dependencies, outside FastAPI's own validation
    errors = exc.errors()
    first = errors[0] if errors else {}
    loc = ".".join(str(p) for p in first.get("loc", ()))
    msg = first.get("msg", "Invalid request")
    return _error_response(400, f"{loc}: {msg}" if loc else msg)


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("unhandled error", extra={"path": request.url.path})
    return _error_response(500, InternalError.default_message)


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(AppError, app_error_handler)
    app.add_exception_handler(HTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PydanticValidationError, model_validation_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
