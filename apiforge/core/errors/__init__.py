"""Monadic Error Handling

Result/Either types, a hierarchical error code taxonomy and FastAPI
handlers.

Usage:
    from apiforge.core.errors import Ok, Err, Result, AppError, file_not_found

    def load(path: Path) -> Result[str, AppError]:
        if not path.exists():
            return file_not_found(path, origin="combiner")
        return Ok(path.read_text())
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    collect_results,
    sequence_results,
)

from .builders import (
    validation_error,
    invalid_json,
    security_scheme_error,
    file_not_found,
    file_read_error,
    file_write_error,
)

from .handlers import (
    AppErrorException,
    register_error_handlers,
    result_to_response,
    raise_error,
    raise_result,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "collect_results",
    "sequence_results",
    "validation_error",
    "invalid_json",
    "security_scheme_error",
    "file_not_found",
    "file_read_error",
    "file_write_error",
    "AppErrorException",
    "register_error_handlers",
    "result_to_response",
    "raise_error",
    "raise_result",
]
