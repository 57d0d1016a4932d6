"""Result Types and Error Taxonomy

Result/Either types for deterministic, composable error propagation across
the schema engine, the OpenAPI tooling and the HTTP adapter.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Callable, Generic, Iterator, NoReturn, TypeVar, Union, final
from uuid import uuid4

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.
    
    E2xxx: Validation errors (schema evaluation, document structure)
    E3xxx: Security configuration errors
    E6xxx: Resource errors (spec files, output files)
    E9xxx: Internal/Unknown errors
    """
    # Validation (E2xxx)
    E2000_VALIDATION_GENERIC = 2000
    E2001_REQUIRED_FIELD_MISSING = 2001
    E2002_INVALID_FORMAT = 2002
    E2003_OUT_OF_RANGE = 2003
    E2004_INVALID_TYPE = 2004
    E2005_CONSTRAINT_VIOLATION = 2005
    E2006_COMPOSITION_MISMATCH = 2006
    E2007_ADDITIONAL_PROPERTY = 2007
    E2010_INVALID_EMAIL = 2010
    E2021_INVALID_JSON = 2021
    
    # Security configuration (E3xxx)
    E3030_INVALID_SECURITY_SCHEME = 3030
    
    # Resource (E6xxx)
    E6000_RESOURCE_GENERIC = 6000
    E6001_FILE_NOT_FOUND = 6001
    E6002_FILE_READ_ERROR = 6002
    E6003_FILE_WRITE_ERROR = 6003
    
    # Internal (E9xxx)
    E9000_INTERNAL_GENERIC = 9000
    E9001_UNEXPECTED_ERROR = 9001

    @property
    def http_status(self) -> int:
        """Map error code to appropriate HTTP status."""
        code = self.value
        if 2000 <= code < 2100:
            return 400
        if code == 6001:
            return 404
        return 500

    @property
    def category(self) -> str:
        """Human-readable error category."""
        code = self.value
        if 2000 <= code < 3000:
            return "validation"
        if 3000 <= code < 4000:
            return "security"
        if 6000 <= code < 7000:
            return "resource"
        return "internal"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Immutable context for error tracing."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""
    request_id: str | None = None


@dataclass(frozen=True, slots=True)
class AppError:
    """Application error with code, message, metadata and tracing context."""
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None
    
    def with_context(self, **kwargs) -> AppError:
        """Create new error with updated context fields."""
        ctx = ErrorContext(
            correlation_id=kwargs.get("correlation_id") or self.context.correlation_id,
            timestamp=self.context.timestamp,
            origin=kwargs.get("origin", self.context.origin),
            request_id=kwargs.get("request_id", self.context.request_id),
        )
        return AppError(code=self.code, message=self.message, context=ctx,
            metadata={**self.metadata, **kwargs.get("metadata", {})}, cause=self.cause)

    def with_metadata(self, **kwargs) -> AppError:
        return AppError(code=self.code, message=self.message, context=self.context,
            metadata={**self.metadata, **kwargs}, cause=self.cause)

    def to_dict(self) -> dict:
        """Serialize error for API responses."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "correlation_id": self.context.correlation_id,
                "timestamp": self.context.timestamp.isoformat(),
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T
    
    def is_ok(self) -> bool: return True
    
    def is_err(self) -> bool: return False

    def unwrap(self) -> T: return self.value
    
    def unwrap_or(self, default: T) -> T: return self.value
    
    def unwrap_err(self) -> NoReturn:
        raise ValueError(f"Called unwrap_err on Ok: {self.value!r}")
    
    def map(self, f: Callable[[T], U]) -> Ok[U]: return Ok(f(self.value))
    
    def map_err(self, f: Callable[[Any], Any]) -> Ok[T]: return self
    
    def and_then(self, f: Callable[[T], Result[U, Any]]) -> Result[U, Any]: return f(self.value)

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result."""
    error: E
    
    def is_ok(self) -> bool: return False
    
    def is_err(self) -> bool: return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")
    
    def unwrap_or(self, default: T) -> T: return default
    
    def unwrap_err(self) -> E: return self.error
    
    def map(self, f: Callable[[Any], Any]) -> Err[E]: return self
    
    def map_err(self, f: Callable[[E], U]) -> Err[U]: return Err(f(self.error))
    
    def and_then(self, f: Callable[[Any], Any]) -> Err[E]: return self

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]


def collect_results(results: list[Result[T, E]]) -> Result[list[T], list[E]]:
    """Collect Results into one: Ok with all values, or Err with every error."""
    values: list[T] = []
    errors: list[E] = []
    for r in results:
        match r:
            case Ok(v):
                values.append(v)
            case Err(e):
                errors.append(e)
    return Err(errors) if errors else Ok(values)


def sequence_results(results: list[Result[T, E]]) -> Result[list[T], E]:
    """Sequence Results, failing fast on the first error."""
    values: list[T] = []
    for r in results:
        match r:
            case Ok(v):
                values.append(v)
            case Err(e):
                return Err(e)
    return Ok(values)
