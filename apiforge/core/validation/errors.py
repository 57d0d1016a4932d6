"""Validation Error Model

Path-qualified, nestable validation errors. Each node stores a single field
segment; full paths are built only while rendering.

Error Format (human):
    viewport.bearing: value is too large, maximum is 360
    Field: name, Error: string is too short, minimum length is 3

Error Format (flat JSON):
    [{"field": "user", "message": "object validation failed"},
     {"field": "email", "message": "field is required"}]
"""
from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Iterator

from apiforge.core.errors import AppError, ErrorCode
from .values import Held

MAX_LITERAL_ITEMS = 5
MAX_LITERAL_DEPTH = 4


class ErrorKind(Enum):
    LEAF = "leaf"
    NESTED = "nested"


def sanitize_value(value: Any, depth: int = 0) -> Any:
    """Make a value safe to embed in an error.
    
    Held references are dereferenced, records become a type-name placeholder
    and containers above MAX_LITERAL_ITEMS entries or below MAX_LITERAL_DEPTH
    levels become a summary, so no object identity ever reaches a rendered
    error and arbitrarily deep input never exhausts the stack.
    """
    if isinstance(value, Held):
        value = value.value if value.present else None
    if value is None or isinstance(value, (bool, int, float, str, bytes)):
        return value
    if isinstance(value, (dict, list, tuple, set, frozenset)):
        if len(value) > MAX_LITERAL_ITEMS or depth >= MAX_LITERAL_DEPTH:
            return f"<{type(value).__name__} with {len(value)} items>"
        if isinstance(value, dict):
            return {str(k): sanitize_value(v, depth + 1) for k, v in value.items()}
        return [sanitize_value(v, depth + 1) for v in value]
    return f"<{type(value).__name__}>"


def join_path(prefix: str, segment: str) -> str:
    if not prefix:
        return segment
    if not segment:
        return prefix
    if segment.startswith("["):
        return f"{prefix}{segment}"
    return f"{prefix}.{segment}"


@dataclass(eq=False)
class ValidationError(Exception):
    """A Leaf or Nested validation error.
    
    Invariant: a LEAF has no details, a NESTED has at least one. Errors are
    values: validators return them, they are raised only at adapter
    boundaries that prefer exceptions.
    """
    kind: ErrorKind
    field: str
    value: Any
    message: str
    details: tuple[ValidationError, ...] = ()
    code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC
    
    def __post_init__(self):
        super().__init__(self.message)
    
    # ------------------------------------------------------------------
    # Constructors
    # ------------------------------------------------------------------
    
    @classmethod
    def leaf(cls, field: str, value: Any, message: str,
             code: ErrorCode = ErrorCode.E2005_CONSTRAINT_VIOLATION) -> ValidationError:
        return cls(ErrorKind.LEAF, field, sanitize_value(value), message, (), code)
    
    @classmethod
    def nested(cls, field: str, value: Any, message: str, details: list[ValidationError] | tuple[ValidationError, ...],
               code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC) -> ValidationError:
        if not details:
            return cls.leaf(field, value, message, code)
        return cls(ErrorKind.NESTED, field, sanitize_value(value), message, tuple(details), code)
    
    def with_field(self, field: str) -> ValidationError:
        """Copy of this node carrying a new field segment (values are already sanitized)."""
        return ValidationError(self.kind, field, self.value, self.message, self.details, self.code)
    
    @property
    def is_leaf(self) -> bool: return self.kind is ErrorKind.LEAF
    
    # ------------------------------------------------------------------
    # Renderings
    # ------------------------------------------------------------------
    
    def __str__(self) -> str:
        if self.is_leaf:
            return f"Field: {self.field}, Error: {self.message}"
        
        lines: list[str] = []
        # Explicit stack of (path, node, top_level) keeps deep trees off the call stack.
        stack: list[tuple[str, ValidationError, bool]] = [("", d, True) for d in reversed(self.details)]
        while stack:
            prefix, node, top_level = stack.pop()
            path = join_path(prefix, node.field)
            if node.details:
                stack.extend((path, d, False) for d in reversed(node.details))
            elif top_level:
                lines.append(f"Field: {path}, Error: {node.message}" if path else node.message)
            else:
                lines.append(f"{path}: {node.message}" if path else node.message)
        return "\n".join(lines)
    
    def walk(self) -> Iterator[ValidationError]:
        """Depth-first, pre-order traversal of the tree."""
        stack = [self]
        while stack:
            node = stack.pop()
            yield node
            stack.extend(reversed(node.details))
    
    def flatten(self) -> list[dict[str, str]]:
        """Every node with both a field and a message, as {field, message} records."""
        return [{"field": n.field, "message": n.message} for n in self.walk() if n.field and n.message]
    
    def json_payload(self) -> dict[str, str] | list[dict[str, str]]:
        """Single-object form for a leaf, list form for a nested error."""
        if self.is_leaf and self.message:
            return {"field": self.field, "message": self.message}
        return self.flatten()
    
    def to_json(self) -> str:
        return json.dumps(self.json_payload())
    
    def leaf_paths(self) -> list[tuple[str, str]]:
        """(dotted path, message) for every leaf, in declaration order."""
        out: list[tuple[str, str]] = []
        stack: list[tuple[str, ValidationError]] = [("", self)]
        while stack:
            prefix, node = stack.pop()
            path = join_path(prefix, node.field)
            if node.details:
                stack.extend((path, d) for d in reversed(node.details))
            else:
                out.append((path, node.message))
        return out
    
    def to_app_error(self) -> AppError:
        """Convert to AppError for the error handling system."""
        errors = self.flatten()
        if self.is_leaf:
            return AppError(code=self.code, message=str(self),
                metadata={"field": self.field, "value": self.value, "errors": errors})
        return AppError(code=ErrorCode.E2000_VALIDATION_GENERIC, message=self.message,
            metadata={"error_count": len(self.leaf_paths()), "details": str(self), "errors": errors})
    
    def __reduce__(self):
        return (ValidationError, (self.kind, self.field, self.value, self.message, self.details, self.code))


def leaf(field: str, value: Any, message: str, code: ErrorCode = ErrorCode.E2005_CONSTRAINT_VIOLATION) -> ValidationError:
    return ValidationError.leaf(field, value, message, code)


def nested(field: str, value: Any, message: str, details, code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC) -> ValidationError:
    return ValidationError.nested(field, value, message, details, code)
