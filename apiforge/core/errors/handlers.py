"""FastAPI Exception Handlers

Integrates the Result types and the schema engine's ValidationError with
FastAPI's exception handling, so every failure leaves the service as a
structured JSON body.
"""
from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from apiforge.core.logging import get_logger

from .types import AppError, ErrorCode, ErrorContext

log = get_logger("errors.handlers")


class AppErrorException(Exception):
    """Exception wrapper for AppError.
    
    Use this when an AppError must cross code that does not use Result
    (FastAPI dependencies, operation handlers).
    """
    
    def __init__(self, error: AppError):
        self.error = error
        super().__init__(str(error))


def result_to_response(error: AppError) -> JSONResponse:
    """Convert AppError to FastAPI JSONResponse."""
    status_code = error.code.http_status
    
    log_method = log.warning if status_code < 500 else log.error
    log_method(
        "error_response",
        error_code=error.code.name,
        message=error.message,
        category=error.code.category,
        correlation_id=error.context.correlation_id,
        origin=error.context.origin,
    )
    
    return JSONResponse(status_code=status_code, content=error.to_dict())


def _request_context(request: Request, origin: str) -> dict:
    return {
        "correlation_id": request.headers.get("X-Correlation-ID", ""),
        "request_id": request.headers.get("X-Request-ID"),
        "origin": origin,
    }


async def app_error_handler(request: Request, exc: AppErrorException) -> JSONResponse:
    """Handle AppErrorException raised in route handlers."""
    return result_to_response(exc.error.with_context(**_request_context(request, exc.error.context.origin)))


async def http_exception_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """Handle standard HTTP exceptions with structured error response."""
    code_map = {
        400: ErrorCode.E2000_VALIDATION_GENERIC,
        404: ErrorCode.E6001_FILE_NOT_FOUND,
        422: ErrorCode.E2000_VALIDATION_GENERIC,
    }
    code = code_map.get(exc.status_code, ErrorCode.E9000_INTERNAL_GENERIC)
    error = AppError(
        code=code,
        message=str(exc.detail) if exc.detail else f"HTTP {exc.status_code}",
        context=ErrorContext(correlation_id=request.headers.get("X-Correlation-ID", "") or ErrorContext().correlation_id,
            origin="http"),
    )
    response = result_to_response(error)
    response.status_code = exc.status_code
    return response


async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI's own request validation errors (routes outside the operation router)."""
    errors = [
        {"field": ".".join(str(p) for p in e.get("loc", ()) if p != "body"), "message": e.get("msg", "")}
        for e in exc.errors()
    ]
    error = AppError(
        code=ErrorCode.E2000_VALIDATION_GENERIC,
        message="Request validation failed",
        metadata={"errors": errors},
    ).with_context(**_request_context(request, "request_validation"))
    return result_to_response(error)


async def validation_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle a schema ValidationError that escaped as an exception."""
    from apiforge.core.validation.errors import ValidationError
    
    if not isinstance(exc, ValidationError):
        raise exc
    return result_to_response(exc.to_app_error().with_context(**_request_context(request, "validation")))


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Catch-all handler: converts to internal error and logs the traceback."""
    from apiforge.core.validation.errors import ValidationError
    if isinstance(exc, ValidationError):
        return await validation_error_handler(request, exc)
    
    error = AppError(
        code=ErrorCode.E9001_UNEXPECTED_ERROR,
        message="An unexpected error occurred",
        cause=exc,
    ).with_context(**_request_context(request, "unhandled"))
    
    log.exception(
        "unhandled_exception",
        error_type=type(exc).__name__,
        error_message=str(exc),
        correlation_id=error.context.correlation_id,
    )
    return result_to_response(error)


def register_error_handlers(app: FastAPI) -> None:
    """Register all error handlers on a FastAPI app."""
    from apiforge.core.validation.errors import ValidationError
    
    app.add_exception_handler(AppErrorException, app_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(ValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)


def raise_error(error: AppError) -> None:
    """Raise AppError as exception."""
    raise AppErrorException(error)


def raise_result(result) -> None:
    """Raise if Result is Err, otherwise return."""
    if result.is_err():
        error = result.unwrap_err()
        if isinstance(error, AppError):
            raise AppErrorException(error)
        raise error
