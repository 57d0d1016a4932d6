"""Primitive Validators

String, number and boolean schemas plus the ``email()`` / ``url()`` format
helpers. Checks run in a fixed order and the first failure wins; the error
is a leaf on the empty field so the enclosing object can name it.

Usage:
    username = string().min(3).max(50).pattern(r"^[a-zA-Z0-9_]+$").required()
    port = integer().min(1000).max(9999).required()
    debug = boolean().optional().default(False)
"""
from __future__ import annotations

import math
import re
from dataclasses import dataclass
from fractions import Fraction
from typing import Any
from urllib.parse import urlsplit

from apiforge.core.errors import ErrorCode
from .errors import ValidationError
from .patterns import compiled
from .schema import (
    Configurable,
    Customizable,
    Documented,
    Rules,
    Schema,
    check_bound,
    check_range,
)

EMAIL_PATTERN = re.compile(r"^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$")
MAX_EMAIL_LENGTH = 254


def is_email(value: str) -> bool:
    return len(value) <= MAX_EMAIL_LENGTH and EMAIL_PATTERN.fullmatch(value) is not None


def is_url(value: str) -> bool:
    try:
        parts = urlsplit(value)
    except ValueError:
        return False
    return bool(parts.scheme and parts.netloc)


def _fmt(number: int | float) -> str:
    return f"{number:g}"


# ============================================================================
# String
# ============================================================================

@dataclass(frozen=True, slots=True)
class StringRules(Rules):
    min_length: int | None = None
    max_length: int | None = None
    pattern: str | None = None
    format: str | None = None
    enum: tuple[str, ...] | None = None
    const: str | None = None
    allow_empty: bool = True


class _StringSchema(Schema):
    __slots__ = ()
    kind = "string"
    
    def _check(self, value: Any) -> ValidationError | None:
        r: StringRules = self._rules
        if not isinstance(value, str):
            return self._fail("type", "invalid type, expected string", value, ErrorCode.E2004_INVALID_TYPE)
        
        if value == "":
            p = self._presence
            if p.required:
                return self._fail("required", "string is required", value, ErrorCode.E2001_REQUIRED_FIELD_MISSING)
            if p.has_default and p.default not in (None, ""):
                return self._check(p.default)
            if p.optional and r.allow_empty:
                return None
        
        length = len(value)
        if r.min_length is not None and length < r.min_length:
            return self._fail("minLength", f"string is too short, minimum length is {r.min_length}", value)
        if r.max_length is not None and length > r.max_length:
            return self._fail("maxLength", f"string is too long, maximum length is {r.max_length}", value)
        
        if r.pattern is not None:
            rx = compiled(r.pattern)
            if rx.is_err():
                # An uncompilable pattern never matches.
                return self._fail("pattern", rx.unwrap_err().message, value, ErrorCode.E2002_INVALID_FORMAT)
            if rx.unwrap().fullmatch(value) is None:
                return self._fail("pattern", "string does not match required pattern", value,
                    ErrorCode.E2002_INVALID_FORMAT)
        
        if r.format == "email" and not is_email(value):
            return self._fail("email", "invalid email format", value, ErrorCode.E2010_INVALID_EMAIL)
        if r.format == "uri" and not is_url(value):
            return self._fail("url", "invalid URL format", value, ErrorCode.E2002_INVALID_FORMAT)
        
        if r.enum is not None and value not in r.enum:
            return self._fail("enum", f"value must be one of: {', '.join(r.enum)}", value)
        if r.const is not None and value != r.const:
            return self._fail("const", f"value must be {r.const}", value)
        
        return self._run_customs(value)
    
    def _projection(self) -> dict[str, Any]:
        r: StringRules = self._rules
        return {"type": "string", "min_length": r.min_length, "max_length": r.max_length, "pattern": r.pattern,
            "format": r.format, "enum": list(r.enum) if r.enum is not None else None, "const": r.const}


class StringBuilder(Configurable, Documented, Customizable, _StringSchema):
    """Base string state: every constraint setter is available."""
    __slots__ = ()
    
    def min(self, length: int) -> StringBuilder:
        check_bound("min length", length)
        check_range("min length", length, "max length", self._rules.max_length)
        return self._with_rules(min_length=length)
    
    def max(self, length: int) -> StringBuilder:
        check_bound("max length", length)
        check_range("min length", self._rules.min_length, "max length", length)
        return self._with_rules(max_length=length)
    
    def pattern(self, pattern: str) -> StringBuilder: return self._with_rules(pattern=pattern)
    
    def email(self) -> StringBuilder: return self._with_rules(format="email")
    
    def url(self) -> StringBuilder: return self._with_rules(format="uri")
    
    def enum(self, *values: str) -> StringBuilder: return self._with_rules(enum=tuple(values))
    
    def const(self, value: str) -> StringBuilder: return self._with_rules(const=value)
    
    def required(self) -> RequiredString: return self._to_required(RequiredString)
    
    def optional(self) -> OptionalString: return self._to_optional(OptionalString)


class RequiredString(Documented, Customizable, _StringSchema):
    __slots__ = ()


class OptionalString(Documented, Customizable, _StringSchema):
    __slots__ = ()
    
    def allow_empty(self, flag: bool = True) -> OptionalString: return self._with_rules(allow_empty=flag)
    
    def default(self, value: str) -> DefaultedString: return self._to_defaulted(DefaultedString, value)


class DefaultedString(Documented, _StringSchema):
    __slots__ = ()


def string() -> StringBuilder:
    return StringBuilder(StringRules())


def email() -> StringBuilder:
    """String schema with ``format: email``."""
    return string().email()


def url() -> StringBuilder:
    """String schema with ``format: uri`` (scheme and authority required)."""
    return string().url()


# ============================================================================
# Number
# ============================================================================

@dataclass(frozen=True, slots=True)
class NumberRules(Rules):
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = None
    exclusive_maximum: float | None = None
    multiple_of: float | None = None
    integer_only: bool = False
    positive: bool = False
    negative: bool = False
    enum: tuple[float, ...] | None = None


def _exact(number: int | float) -> Fraction:
    return Fraction(repr(number)) if isinstance(number, float) else Fraction(number)


def _is_multiple(value: int | float, k: int | float) -> bool:
    if isinstance(value, int) and (isinstance(k, int) or k.is_integer()):
        return value % int(k) == 0
    try:
        return abs(math.remainder(value, k)) <= 1e-9
    except OverflowError:
        # Operands beyond float range compare exactly on their decimal text.
        return _exact(value) % _exact(k) == 0


class _NumberSchema(Schema):
    __slots__ = ()
    kind = "number"
    
    def _check(self, value: Any) -> ValidationError | None:
        r: NumberRules = self._rules
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return self._fail("type", "invalid type, expected number", value, ErrorCode.E2004_INVALID_TYPE)
        if isinstance(value, float) and not math.isfinite(value):
            return self._fail("type", "invalid type, expected finite number", value, ErrorCode.E2004_INVALID_TYPE)
        if r.integer_only and not isinstance(value, int) and not value.is_integer():
            return self._fail("integer", "value must be an integer", value, ErrorCode.E2004_INVALID_TYPE)
        
        out_of_range = ErrorCode.E2003_OUT_OF_RANGE
        if r.minimum is not None and value < r.minimum:
            return self._fail("min", f"value is too small, minimum is {_fmt(r.minimum)}", value, out_of_range)
        if r.maximum is not None and value > r.maximum:
            return self._fail("max", f"value is too large, maximum is {_fmt(r.maximum)}", value, out_of_range)
        if r.exclusive_minimum is not None and value <= r.exclusive_minimum:
            return self._fail("exclusiveMin", f"value must be greater than {_fmt(r.exclusive_minimum)}", value,
                out_of_range)
        if r.exclusive_maximum is not None and value >= r.exclusive_maximum:
            return self._fail("exclusiveMax", f"value must be less than {_fmt(r.exclusive_maximum)}", value,
                out_of_range)
        if r.multiple_of is not None and not _is_multiple(value, r.multiple_of):
            return self._fail("multipleOf", f"value must be a multiple of {_fmt(r.multiple_of)}", value)
        if r.positive and value <= 0:
            return self._fail("positive", "value must be positive", value, out_of_range)
        if r.negative and value >= 0:
            return self._fail("negative", "value must be negative", value, out_of_range)
        if r.enum is not None and value not in r.enum:
            return self._fail("enum", f"value must be one of: {', '.join(_fmt(v) for v in r.enum)}", value)
        
        return self._run_customs(value)
    
    def _projection(self) -> dict[str, Any]:
        r: NumberRules = self._rules
        exclusive_min, exclusive_max = r.exclusive_minimum, r.exclusive_maximum
        # positive/negative project as exclusive zero bounds unless a tighter bound exists.
        if r.positive and exclusive_min is None and (r.minimum is None or r.minimum <= 0):
            exclusive_min = 0
        if r.negative and exclusive_max is None and (r.maximum is None or r.maximum >= 0):
            exclusive_max = 0
        return {"type": "integer" if r.integer_only else "number", "minimum": r.minimum, "maximum": r.maximum,
            "exclusive_minimum": exclusive_min, "exclusive_maximum": exclusive_max, "multiple_of": r.multiple_of,
            "enum": list(r.enum) if r.enum is not None else None}


class NumberBuilder(Configurable, Documented, Customizable, _NumberSchema):
    """Base number state: every constraint setter is available."""
    __slots__ = ()
    
    def min(self, value: int | float) -> NumberBuilder:
        check_range("minimum", value, "maximum", self._rules.maximum)
        return self._with_rules(minimum=value)
    
    def max(self, value: int | float) -> NumberBuilder:
        check_range("minimum", self._rules.minimum, "maximum", value)
        return self._with_rules(maximum=value)
    
    def exclusive_min(self, value: int | float) -> NumberBuilder: return self._with_rules(exclusive_minimum=value)
    
    def exclusive_max(self, value: int | float) -> NumberBuilder: return self._with_rules(exclusive_maximum=value)
    
    def multiple_of(self, k: int | float) -> NumberBuilder:
        if k <= 0:
            raise ValueError(f"multiple_of must be positive, got {k}")
        return self._with_rules(multiple_of=k)
    
    def integer(self) -> NumberBuilder: return self._with_rules(integer_only=True)
    
    def positive(self) -> NumberBuilder: return self._with_rules(positive=True, negative=False)
    
    def negative(self) -> NumberBuilder: return self._with_rules(negative=True, positive=False)
    
    def enum(self, *values: int | float) -> NumberBuilder: return self._with_rules(enum=tuple(values))
    
    def required(self) -> RequiredNumber: return self._to_required(RequiredNumber)
    
    def optional(self) -> OptionalNumber: return self._to_optional(OptionalNumber)


class RequiredNumber(Documented, Customizable, _NumberSchema):
    __slots__ = ()


class OptionalNumber(Documented, Customizable, _NumberSchema):
    __slots__ = ()
    
    def default(self, value: int | float) -> DefaultedNumber: return self._to_defaulted(DefaultedNumber, value)


class DefaultedNumber(Documented, _NumberSchema):
    __slots__ = ()


def number() -> NumberBuilder:
    return NumberBuilder(NumberRules())


def integer() -> NumberBuilder:
    """Number schema that rejects non-integral values and projects as ``integer``."""
    return number().integer()


# ============================================================================
# Boolean
# ============================================================================

class _BooleanSchema(Schema):
    __slots__ = ()
    kind = "boolean"
    
    def _check(self, value: Any) -> ValidationError | None:
        if not isinstance(value, bool):
            return self._fail("type", "invalid type, expected boolean", value, ErrorCode.E2004_INVALID_TYPE)
        return self._run_customs(value)
    
    def _projection(self) -> dict[str, Any]: return {"type": "boolean"}


class BooleanBuilder(Configurable, Documented, Customizable, _BooleanSchema):
    __slots__ = ()
    
    def required(self) -> RequiredBoolean: return self._to_required(RequiredBoolean)
    
    def optional(self) -> OptionalBoolean: return self._to_optional(OptionalBoolean)


class RequiredBoolean(Documented, Customizable, _BooleanSchema):
    __slots__ = ()


class OptionalBoolean(Documented, Customizable, _BooleanSchema):
    __slots__ = ()
    
    def default(self, value: bool) -> DefaultedBoolean: return self._to_defaulted(DefaultedBoolean, value)


class DefaultedBoolean(Documented, _BooleanSchema):
    __slots__ = ()


def boolean() -> BooleanBuilder:
    return BooleanBuilder(Rules())
