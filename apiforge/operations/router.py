"""FastAPI Operation Router

Registers ``CompiledOperation`` values on a FastAPI application and feeds each
one to the attached generators (for example the OpenAPI document generator).

Request flow for a registered operation:
    1. path, query and header text is coerced per the projected property types
    2. sections are validated in order: path, query, headers, body
    3. the handler receives an ``OperationRequest`` (sync or async handler)
    4. its output is converted to plain data and validated against the response schema

Input failures answer 400, response failures answer 500; both bodies carry
``error``, ``details`` (human rendering) and ``errors`` (flat list).
"""
from __future__ import annotations

import inspect
import json
from typing import Any, Awaitable, Callable

from fastapi import APIRouter, FastAPI
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from apiforge.core.errors import AppError, Ok, Result
from apiforge.core.logging import api_logger
from apiforge.core.validation.coercion import coerce_section
from apiforge.core.validation.errors import ValidationError
from apiforge.core.validation.values import to_plain
from .types import CompiledOperation, Generator, OperationRequest

log = api_logger()


# ============================================================================
# Responses
# ============================================================================

def validation_failure(section: str, error: ValidationError, status_code: int = 400) -> JSONResponse:
    """Error body for a failed section."""
    log.warning("request_validation_failed" if status_code < 500 else "response_validation_failed",
        section=section, error_count=len(error.leaf_paths()))
    return JSONResponse(status_code=status_code,
        content={"error": f"{section} validation failed", "details": str(error), "errors": error.flatten()})


def invalid_body(reason: str) -> JSONResponse:
    log.warning("invalid_request_body", reason=reason)
    return JSONResponse(status_code=400, content={"error": "Invalid request body", "details": reason, "errors": []})


# ============================================================================
# Section Extraction
# ============================================================================

def _path_section(op: CompiledOperation, request: Request) -> dict[str, Any]:
    return coerce_section(dict(request.path_params), op.params_spec)


def _query_section(op: CompiledOperation, request: Request) -> dict[str, Any]:
    qp = request.query_params
    raw = {key: qp.get(key) for key in qp.keys()}
    return coerce_section(raw, op.query_spec, multi={key: qp.getlist(key) for key in qp.keys()})


def _header_section(op: CompiledOperation, request: Request) -> dict[str, Any]:
    # Only declared headers take part; lookup is case-insensitive.
    declared = (op.header_spec.properties if op.header_spec is not None else None) or {}
    raw = {name: request.headers[name] for name in declared if name in request.headers}
    return coerce_section(raw, op.header_spec)


# ============================================================================
# Validated Handler
# ============================================================================

def validated_handler(op: CompiledOperation) -> Callable[[Request], Awaitable[Response]]:
    """Wrap an operation handler with section validation and response validation."""
    
    async def endpoint(request: Request) -> Response:
        sections: dict[str, Any] = {"params": None, "query": None, "headers": None, "body": None}
        
        for key, label, schema, extract in (
            ("params", "Path parameter", op.params_schema, _path_section),
            ("query", "Query parameter", op.query_schema, _query_section),
            ("headers", "Header", op.header_schema, _header_section),
        ):
            if schema is None:
                continue
            result = schema.parse(extract(op, request))
            if result.is_err():
                return validation_failure(label, result.unwrap_err())
            sections[key] = result.unwrap()
        
        if op.body_schema is not None:
            raw = await request.body()
            try:
                payload = json.loads(raw) if raw else None
            except (ValueError, RecursionError) as e:
                return invalid_body(str(e))
            result = op.body_schema.parse(payload)
            if result.is_err():
                return validation_failure("Request body", result.unwrap_err())
            sections["body"] = result.unwrap()
        
        req = OperationRequest(request=request, **sections)
        if inspect.iscoroutinefunction(op.handler):
            output = await op.handler(req)
        else:
            # Plain callables run in the worker pool, off the event loop.
            output = await run_in_threadpool(op.handler, req)
        if inspect.isawaitable(output):
            output = await output
        if isinstance(output, Response):
            return output
        
        plain = to_plain(output)
        if op.response_schema is not None:
            error = op.response_schema.validate(plain)
            if error is not None:
                return validation_failure("Response", error, status_code=500)
        
        if op.success_code == 204 or (plain is None and op.response_schema is None):
            return Response(status_code=op.success_code)
        return JSONResponse(status_code=op.success_code, content=plain)
    
    endpoint.__name__ = op.operation_id or f"{op.method.value.lower()}_{op.path.strip('/').replace('/', '_') or 'root'}"
    return endpoint


# ============================================================================
# Router
# ============================================================================

class Router:
    """Registers operations on a FastAPI app or APIRouter and fans them out to generators.
    
    Usage:
        spec = OpenAPIDocumentGenerator("Users API", "1.0.0")
        router = Router(app, spec)
        router.register(get_user).unwrap()
    """
    
    def __init__(self, app: FastAPI | APIRouter, *generators: Generator):
        self.app = app
        self.generators: list[Generator] = list(generators)
        self._operations: list[CompiledOperation] = []
    
    def add_generator(self, generator: Generator) -> Router:
        self.generators.append(generator)
        return self
    
    def register(self, op: CompiledOperation) -> Result[None, AppError]:
        """Add the route and feed every generator. Returns the first generator failure."""
        self.app.add_api_route(op.path, validated_handler(op), methods=[op.method.value],
            include_in_schema=False, status_code=op.success_code)
        self._operations.append(op)
        
        info = op.info()
        for generator in self.generators:
            result = generator.process(info)
            if result.is_err():
                log.error("operation_generator_failed", operation=op.key, generator=type(generator).__name__,
                    error=result.unwrap_err().message)
                return result
        
        log.debug("operation_registered", operation=op.key, tags=list(op.tags))
        return Ok(None)
    
    def register_all(self, *ops: CompiledOperation) -> Result[None, AppError]:
        for op in ops:
            result = self.register(op)
            if result.is_err():
                return result
        return Ok(None)
    
    def operations(self) -> list[CompiledOperation]:
        return list(self._operations)
