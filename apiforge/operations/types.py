"""Operation Types

A ``CompiledOperation`` is one HTTP endpoint: method, path template, the four
input schemas (path params, query, headers, body), the response schema, the
success status and the security requirements. Projections are computed once,
when the operation is compiled, so document generators never re-derive them.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any, Awaitable, Callable, Protocol, Union

from apiforge.core.errors import AppError, Result
from apiforge.core.security import SecurityRequirements
from apiforge.core.validation.schema import OpenAPISchema, Schema, ValidationInfo

if TYPE_CHECKING:
    from starlette.requests import Request


class HTTPMethod(str, Enum):
    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    PATCH = "PATCH"
    DELETE = "DELETE"
    HEAD = "HEAD"
    OPTIONS = "OPTIONS"


@dataclass(frozen=True, slots=True)
class OperationRequest:
    """Validated inputs handed to an operation handler.
    
    Sections built from struct schemas hold populated records; the others
    hold plain validated data (with defaults substituted).
    """
    params: Any = None
    query: Any = None
    headers: Any = None
    body: Any = None
    request: Request | None = None


Handler = Callable[[OperationRequest], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True, slots=True)
class ResponseDefinition:
    """An additional documented response beyond the success/400/500 defaults."""
    code: int
    description: str
    schema: Schema | None = None


@dataclass(frozen=True, slots=True)
class CompiledOperation:
    method: HTTPMethod
    path: str
    handler: Handler
    summary: str = ""
    description: str = ""
    tags: tuple[str, ...] = ()
    operation_id: str = ""
    
    params_schema: Schema | None = None
    query_schema: Schema | None = None
    header_schema: Schema | None = None
    body_schema: Schema | None = None
    response_schema: Schema | None = None
    
    params_spec: OpenAPISchema | None = None
    query_spec: OpenAPISchema | None = None
    header_spec: OpenAPISchema | None = None
    body_spec: OpenAPISchema | None = None
    response_spec: OpenAPISchema | None = None
    
    responses: tuple[ResponseDefinition, ...] = ()
    security: SecurityRequirements = field(default_factory=SecurityRequirements)
    success_code: int = 200
    deprecated: bool = False
    
    @property
    def key(self) -> str: return f"{self.method.value} {self.path}"
    
    def info(self) -> OperationInfo:
        def describe(schema: Schema | None) -> ValidationInfo | None:
            return schema.describe() if schema is not None else None
        
        return OperationInfo(
            method=self.method,
            path=self.path,
            summary=self.summary,
            description=self.description,
            tags=self.tags,
            security=self.security,
            operation=self,
            params_info=describe(self.params_schema),
            query_info=describe(self.query_schema),
            header_info=describe(self.header_schema),
            body_info=describe(self.body_schema),
            response_info=describe(self.response_schema),
        )


@dataclass(frozen=True, slots=True)
class OperationInfo:
    """What a document generator sees of an operation: metadata plus ValidationInfo per section."""
    method: HTTPMethod
    path: str
    summary: str
    description: str
    tags: tuple[str, ...]
    security: SecurityRequirements
    operation: CompiledOperation
    params_info: ValidationInfo | None = None
    query_info: ValidationInfo | None = None
    header_info: ValidationInfo | None = None
    body_info: ValidationInfo | None = None
    response_info: ValidationInfo | None = None


class Generator(Protocol):
    """Consumes registered operations (document generators, route inventories)."""
    
    def process(self, info: OperationInfo) -> Result[None, AppError]: ...
