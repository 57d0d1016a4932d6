"""Validation at System Boundaries

Parse-don't-validate helpers for code that talks to the outside world:
- API ingress: validate and parse incoming payloads
- API egress: validate outgoing payloads before they are serialized

Both return ``Result[..., AppError]``; the AppError carries the flat error
list and the human rendering in its metadata.
"""
from __future__ import annotations

import json
from typing import Any, Callable, Generic, TypeVar

from fastapi import Depends, Request

from apiforge.core.errors import AppError, Err, Ok, Result, invalid_json, raise_error
from .schema import Schema
from .values import to_plain

T = TypeVar("T")


# ============================================================================
# Boundary Validators
# ============================================================================

class BoundaryValidator(Generic[T]):
    """Stateless boundary validator for a specific schema.
    
    Usage:
        users = BoundaryValidator(user_schema)
        result = users.parse_ingress(request_data)
    """
    
    __slots__ = ("schema", "name")
    
    def __init__(self, schema: Schema, name: str | None = None):
        self.schema, self.name = schema, name or type(schema).__name__
    
    def parse_ingress(self, data: Any) -> Result[T, AppError]:
        """Parse and validate data entering the system (request bodies, uploaded documents)."""
        return self._parse(data, "ingress")
    
    def parse_egress(self, data: Any) -> Result[T, AppError]:
        """Parse and validate data leaving the system. Records are converted to plain data first."""
        return self._parse(to_plain(data), "egress")
    
    def _parse(self, data: Any, origin: str) -> Result[T, AppError]:
        result = self.schema.parse(data)
        if result.is_err():
            return Err(result.unwrap_err().to_app_error().with_context(origin=origin)
                .with_metadata(schema=self.name))
        return Ok(result.unwrap())


# ============================================================================
# Functional Boundary Parsers
# ============================================================================

def parse_ingress(schema: Schema, data: Any) -> Result[Any, AppError]:
    """Parse and validate incoming data.
    
    Usage:
        result = parse_ingress(user_schema, payload)
        if result.is_err():
            return result_to_response(result.unwrap_err())
        user = result.unwrap()
    """
    return BoundaryValidator(schema).parse_ingress(data)


def parse_egress(schema: Schema, data: Any) -> Result[Any, AppError]:
    return BoundaryValidator(schema).parse_egress(data)


def parse_batch(schema: Schema, items: list[Any], *, max_errors: int = 50) -> Result[list[Any], list[tuple[int, AppError]]]:
    """Parse a list of payloads, stopping after ``max_errors`` failures."""
    validator = BoundaryValidator(schema)
    valid: list[Any] = []
    errors: list[tuple[int, AppError]] = []
    
    for idx, item in enumerate(items):
        if len(errors) >= max_errors:
            break
        result = validator.parse_ingress(item)
        if result.is_ok():
            valid.append(result.unwrap())
        else:
            errors.append((idx, result.unwrap_err().with_metadata(batch_index=idx)))
    
    if errors:
        return Err(errors)
    return Ok(valid)


# ============================================================================
# FastAPI Integration
# ============================================================================

class ValidatedBody(Generic[T]):
    """FastAPI dependency for a request body validated by a schema.
    
    Usage:
        @app.post("/users")
        async def create_user(user: User = Depends(ValidatedBody(user_schema))):
            ...
    """
    
    def __init__(self, schema: Schema):
        self.schema = schema
        self.validator: BoundaryValidator[T] = BoundaryValidator(schema)
    
    async def __call__(self, request: Request) -> T:
        raw = await request.body()
        try:
            body = json.loads(raw) if raw else None
        except (ValueError, RecursionError) as e:
            raise_error(invalid_json(f"Invalid JSON in request body: {e}", origin="ingress").unwrap_err())
        
        result = self.validator.parse_ingress(body)
        if result.is_err():
            raise_error(result.unwrap_err())
        return result.unwrap()


def validated_body(schema: Schema) -> Callable:
    """Dependency factory: ``body: User = validated_body(user_schema)``."""
    return Depends(ValidatedBody(schema))
