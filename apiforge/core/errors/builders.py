"""Domain-Specific Error Builders

Ergonomic constructors for the failures raised outside schema evaluation:
document structure, security configuration and spec-file I/O.
"""
from pathlib import Path

from .types import AppError, ErrorCode, ErrorContext, Err


# =============================================================================
# Validation Errors (E2xxx)
# =============================================================================

def validation_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC,
    field: str | None = None,
    origin: str = "",
    **metadata,
) -> Err[AppError]:
    """Create validation error."""
    meta = {"field": field, **metadata}
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in meta.items() if v is not None},
    ))


def invalid_json(reason: str, origin: str = "") -> Err[AppError]:
    return validation_error(reason, code=ErrorCode.E2021_INVALID_JSON, origin=origin)


# =============================================================================
# Security Configuration Errors (E3xxx)
# =============================================================================

def security_scheme_error(message: str, *, scheme: str | None = None, origin: str = "") -> Err[AppError]:
    meta = {"scheme": scheme} if scheme else {}
    return Err(AppError(
        code=ErrorCode.E3030_INVALID_SECURITY_SCHEME,
        message=message,
        context=ErrorContext(origin=origin),
        metadata=meta,
    ))


# =============================================================================
# Resource Errors (E6xxx)
# =============================================================================

def file_not_found(path: str | Path, origin: str = "") -> Err[AppError]:
    return Err(AppError(
        code=ErrorCode.E6001_FILE_NOT_FOUND,
        message=f"File not found: {path}",
        context=ErrorContext(origin=origin),
        metadata={"path": str(path)},
    ))


def file_read_error(path: str | Path, reason: str, origin: str = "", cause: Exception | None = None) -> Err[AppError]:
    return Err(AppError(
        code=ErrorCode.E6002_FILE_READ_ERROR,
        message=f"Failed to read {path}: {reason}",
        context=ErrorContext(origin=origin),
        metadata={"path": str(path)},
        cause=cause,
    ))


def file_write_error(path: str | Path, reason: str, origin: str = "", cause: Exception | None = None) -> Err[AppError]:
    return Err(AppError(
        code=ErrorCode.E6003_FILE_WRITE_ERROR,
        message=f"Failed to write {path}: {reason}",
        context=ErrorContext(origin=origin),
        metadata={"path": str(path)},
        cause=cause,
    ))

