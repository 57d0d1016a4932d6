"""Explicit Coercion for String Sections

Path parameters, query strings and headers arrive as text. Before they reach
a schema, each value is coerced by an explicit rule chosen from the projected
property type of the section's object schema. Nothing else is coerced.

A value that cannot be coerced is passed through unchanged, so the schema
reports the type error instead of the coercion layer hiding it.

Features:
- Type-safe coercion with Result types
- Rule registry keyed by JSON-Schema type name
- Repeated query keys become arrays when the property is an array
"""
from __future__ import annotations

import math
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, Generic, TypeVar

from apiforge.core.errors import AppError, Err, ErrorCode, Ok, Result
from .schema import OpenAPISchema

S = TypeVar("S")
T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class CoercionRule(ABC, Generic[S, T]):
    """A single explicit conversion from text to a JSON value."""
    
    @property
    @abstractmethod
    def target_type(self) -> type[T]:
        """Type this rule coerces to."""
    
    @abstractmethod
    def coerce(self, value: S) -> Result[T, AppError]:
        """Coerce value to target type. Returns Result."""
    
    def __call__(self, value: S) -> Result[T, AppError]:
        return self.coerce(value)


def _cannot(value: Any, target: str, reason: str = "") -> Err[AppError]:
    message = f"Cannot coerce '{value}' to {target}" + (f": {reason}" if reason else "")
    return Err(AppError(code=ErrorCode.E2002_INVALID_FORMAT, message=message,
        metadata={"value": value, "target": target}))


@dataclass(frozen=True, slots=True)
class StringToInt(CoercionRule[str, int]):
    """Coerce string to integer. ``"12.0"`` is accepted only with ``allow_float_strings``."""
    allow_float_strings: bool = False
    
    @property
    def target_type(self) -> type[int]: return int
    
    def coerce(self, value: str) -> Result[int, AppError]:
        if not isinstance(value, str):
            return Err(AppError(code=ErrorCode.E2004_INVALID_TYPE,
                message=f"Cannot coerce {type(value).__name__} to int"))
        try:
            stripped = value.strip()
            if self.allow_float_strings:
                number = float(stripped)
                return Ok(int(number)) if number.is_integer() else _cannot(value, "int", "not integral")
            return Ok(int(stripped))
        except ValueError as e:
            return _cannot(value, "int", str(e))


@dataclass(frozen=True, slots=True)
class StringToFloat(CoercionRule[str, float]):
    """Coerce string to a number, keeping integral text as ``int``."""
    
    @property
    def target_type(self) -> type[float]: return float
    
    def coerce(self, value: str) -> Result[int | float, AppError]:
        if not isinstance(value, str):
            return Err(AppError(code=ErrorCode.E2004_INVALID_TYPE,
                message=f"Cannot coerce {type(value).__name__} to float"))
        stripped = value.strip()
        try:
            return Ok(int(stripped))
        except ValueError:
            pass
        try:
            number = float(stripped)
        except ValueError as e:
            return _cannot(value, "float", str(e))
        return Ok(number) if math.isfinite(number) else _cannot(value, "float", "not a finite number")


@dataclass(frozen=True, slots=True)
class StringToBool(CoercionRule[str, bool]):
    """Coerce string to boolean.
    
    Truthy: "true", "1", "yes", "on"
    Falsy: "false", "0", "no", "off"
    """
    true_values: frozenset[str] = frozenset({"true", "1", "yes", "on"})
    false_values: frozenset[str] = frozenset({"false", "0", "no", "off"})
    
    @property
    def target_type(self) -> type[bool]: return bool
    
    def coerce(self, value: str) -> Result[bool, AppError]:
        if not isinstance(value, str):
            return Err(AppError(code=ErrorCode.E2004_INVALID_TYPE,
                message=f"Cannot coerce {type(value).__name__} to bool"))
        lowered = value.strip().lower()
        if lowered in self.true_values:
            return Ok(True)
        if lowered in self.false_values:
            return Ok(False)
        return _cannot(value, "bool")


# ============================================================================
# Section Coercion
# ============================================================================

@dataclass(slots=True)
class SectionCoercer:
    """Coerce a text section (path, query, headers) against an object projection."""
    rules: dict[str, CoercionRule] = field(default_factory=lambda: {
        "integer": StringToInt(),
        "number": StringToFloat(),
        "boolean": StringToBool(),
    })
    
    def add_rule(self, type_name: str, rule: CoercionRule) -> SectionCoercer:
        self.rules[type_name] = rule
        return self
    
    def coerce_value(self, value: Any, target: OpenAPISchema | None) -> Any:
        if target is None or not isinstance(value, str):
            return value
        rule = self.rules.get(target.type or "")
        if rule is None:
            return value
        return rule(value).unwrap_or(value)
    
    def coerce_section(self, raw: Mapping[str, Any], projection: OpenAPISchema | None,
                       *, multi: Mapping[str, list[str]] | None = None) -> dict[str, Any]:
        """Coerce every key of ``raw``. ``multi`` supplies repeated values for array properties."""
        properties = (projection.properties if projection is not None else None) or {}
        out: dict[str, Any] = {}
        for key, value in raw.items():
            target = properties.get(key)
            if target is not None and target.type == "array":
                values = list(multi.get(key, [])) if multi is not None else []
                if not values:
                    values = value if isinstance(value, list) else [value]
                out[key] = [self.coerce_value(v, target.items) for v in values]
            else:
                out[key] = self.coerce_value(value, target)
        return out


DEFAULT_COERCER = SectionCoercer()


def coerce_section(raw: Mapping[str, Any], projection: OpenAPISchema | None,
                   *, multi: Mapping[str, list[str]] | None = None) -> dict[str, Any]:
    """Coerce using the default rules."""
    return DEFAULT_COERCER.coerce_section(raw, projection, multi=multi)
