"""Schema Contract and Builder States

Every validator node is a ``Schema``: ``validate(value)`` returns ``None`` on
success or a ``ValidationError``; ``project()`` returns the OpenAPI 3.1 /
JSON-Schema 2020-12 object; ``describe()`` returns the ``ValidationInfo`` the
document generator reads without supplying a value.

Builder states:
    base      all constraint setters, .required(), .optional()
    required  example / examples / custom
    optional  .default(v), example / examples / custom
    defaulted example / examples

A required schema never carries a default: the transition that would attach
one only exists on the optional state. Every setter returns a new node, so a
schema is immutable once built and safe to share between threads.

Usage:
    name = string().min(3).max(50).pattern(r"^[a-zA-Z0-9_]+$").required()
    name.validate("ab")            # ValidationError(... minimum length is 3)
    name.project().to_dict()       # {"type": "string", "minLength": 3, ...}
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass, field, replace
from typing import Any, Callable, ClassVar, Mapping, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_serializer

from apiforge.core.errors import Err, ErrorCode, Ok, Result
from .errors import ValidationError, leaf
from .values import deref

S = TypeVar("S", bound="Schema")

CustomCheck = Callable[[Any], "str | None"]


# ============================================================================
# Metadata
# ============================================================================

@dataclass(frozen=True, slots=True)
class ValidationInfo:
    """Build-time view of a schema: presence policy plus per-kind constraints."""
    required: bool = False
    optional: bool = False
    has_default: bool = False
    default_value: Any = None
    constraints: Mapping[str, Any] = field(default_factory=dict)


class OpenAPISchema(BaseModel):
    """OpenAPI 3.1 Schema Object. Unset fields are omitted on output."""
    model_config = ConfigDict(populate_by_name=True)
    
    type: str | None = None
    format: str | None = None
    title: str | None = None
    description: str | None = None
    
    properties: dict[str, OpenAPISchema] | None = None
    required: list[str] | None = None
    additional_properties: bool | OpenAPISchema | None = Field(default=None, alias="additionalProperties")
    min_properties: int | None = Field(default=None, alias="minProperties")
    max_properties: int | None = Field(default=None, alias="maxProperties")
    
    items: OpenAPISchema | None = None
    min_items: int | None = Field(default=None, alias="minItems")
    max_items: int | None = Field(default=None, alias="maxItems")
    unique_items: bool | None = Field(default=None, alias="uniqueItems")
    contains: OpenAPISchema | None = None
    
    min_length: int | None = Field(default=None, alias="minLength")
    max_length: int | None = Field(default=None, alias="maxLength")
    pattern: str | None = None
    
    minimum: float | None = None
    maximum: float | None = None
    exclusive_minimum: float | None = Field(default=None, alias="exclusiveMinimum")
    exclusive_maximum: float | None = Field(default=None, alias="exclusiveMaximum")
    multiple_of: float | None = Field(default=None, alias="multipleOf")
    
    enum: list[Any] | None = None
    const: Any = None
    default: Any = None
    example: Any = None
    examples: list[Any] | None = None
    
    one_of: list[OpenAPISchema] | None = Field(default=None, alias="oneOf")
    all_of: list[OpenAPISchema] | None = Field(default=None, alias="allOf")
    any_of: list[OpenAPISchema] | None = Field(default=None, alias="anyOf")
    not_: OpenAPISchema | None = Field(default=None, alias="not")
    
    read_only: bool | None = Field(default=None, alias="readOnly")
    write_only: bool | None = Field(default=None, alias="writeOnly")
    deprecated: bool | None = None
    
    @field_serializer("minimum", "maximum", "exclusive_minimum", "exclusive_maximum", "multiple_of")
    def _serialize_number(self, v: float | None) -> int | float | None:
        if v is None: return None
        return int(v) if float(v).is_integer() else v
    
    @field_serializer("additional_properties")
    def _serialize_additional(self, v: bool | OpenAPISchema | None) -> Any:
        if isinstance(v, OpenAPISchema): return v.to_dict()
        return v
    
    def to_dict(self) -> dict[str, Any]:
        """JSON-ready mapping with aliases applied and unset fields dropped."""
        return self.model_dump(by_alias=True, exclude_none=True)


OpenAPISchema.model_rebuild()


# ============================================================================
# Rule Records
# ============================================================================

@dataclass(frozen=True, slots=True)
class Rules:
    """Constraints shared by every kind. Subclasses add per-kind fields."""
    customs: tuple[CustomCheck, ...] = ()
    messages: Mapping[str, str] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class Presence:
    required: bool = False
    optional: bool = False
    has_default: bool = False
    default: Any = None


@dataclass(frozen=True, slots=True)
class Annotations:
    title: str | None = None
    description: str | None = None
    example: Any = None
    examples: Mapping[str, Any] | None = None
    deprecated: bool = False
    read_only: bool = False
    write_only: bool = False


_REQUIRED = Presence(required=True)
_OPTIONAL = Presence(optional=True)


# ============================================================================
# Schema Contract
# ============================================================================

class Schema(ABC):
    """Root abstraction for every validator node."""
    
    __slots__ = ("_rules", "_presence", "_notes")
    
    kind: ClassVar[str] = ""
    
    def __init__(self, rules: Rules, presence: Presence = Presence(), notes: Annotations = Annotations()):
        self._rules, self._presence, self._notes = rules, presence, notes
    
    # ------------------------------------------------------------------
    # Validation
    # ------------------------------------------------------------------
    
    def validate(self, value: Any) -> ValidationError | None:
        """Validate a dynamic value. Absent input follows the presence policy."""
        value = deref(value)
        if self._is_absent(value):
            return self._validate_absent()
        return self._check(value)
    
    def parse(self, value: Any) -> Result[Any, ValidationError]:
        """Validate and return the accepted value, with the default substituted for absent input."""
        error = self.validate(value)
        if error is not None:
            return Err(error)
        value = deref(value)
        if self._is_absent(value) and self._presence.has_default:
            return Ok(self._presence.default)
        return Ok(value)
    
    def is_valid(self, value: Any) -> bool: return self.validate(value) is None
    
    def _is_absent(self, value: Any) -> bool: return value is None
    
    def _validate_absent(self) -> ValidationError | None:
        p = self._presence
        if p.required:
            return self._fail("required", "field is required", None, ErrorCode.E2001_REQUIRED_FIELD_MISSING)
        if p.has_default:
            return None if p.default is None else self._check(p.default)
        if p.optional:
            return None
        # Unfinalized base schemas behave as required.
        return self._fail("required", "field is required", None, ErrorCode.E2001_REQUIRED_FIELD_MISSING)
    
    @abstractmethod
    def _check(self, value: Any) -> ValidationError | None:
        """Kind-specific checks on a present value."""
    
    def _run_customs(self, value: Any) -> ValidationError | None:
        for check in self._rules.customs:
            message = check(value)
            if message:
                return leaf("", value, self._message("custom", message), ErrorCode.E2005_CONSTRAINT_VIOLATION)
        return None
    
    def _message(self, key: str, default: str) -> str:
        return self._rules.messages.get(key, default)
    
    def _fail(self, key: str, default: str, value: Any,
              code: ErrorCode = ErrorCode.E2005_CONSTRAINT_VIOLATION) -> ValidationError:
        return leaf("", value, self._message(key, default), code)
    
    # ------------------------------------------------------------------
    # Metadata
    # ------------------------------------------------------------------
    
    @property
    def is_required(self) -> bool:
        p = self._presence
        return p.required or not (p.optional or p.has_default)
    
    def describe(self) -> ValidationInfo:
        p = self._presence
        return ValidationInfo(required=self.is_required, optional=p.optional or p.has_default,
            has_default=p.has_default, default_value=p.default, constraints=self._constraints())
    
    def project(self) -> OpenAPISchema:
        n = self._notes
        doc = self._projection()
        doc.update(title=n.title, description=n.description, example=n.example,
            examples=list(n.examples.values()) if n.examples else None,
            deprecated=n.deprecated or None, read_only=n.read_only or None, write_only=n.write_only or None)
        if self._presence.has_default:
            doc["default"] = self._presence.default
        return OpenAPISchema(**doc)
    
    @abstractmethod
    def _projection(self) -> dict[str, Any]:
        """Kind-specific OpenAPISchema fields (python names)."""
    
    def _constraints(self) -> dict[str, Any]:
        """Constraint view for ``describe()``: the projection minus type, in JSON names."""
        doc = OpenAPISchema(**self._projection()).to_dict()
        doc.pop("type", None)
        return doc
    
    # ------------------------------------------------------------------
    # State transitions
    # ------------------------------------------------------------------
    
    def _evolve(self, cls: type[S] | None = None, *, rules: Rules | None = None,
                presence: Presence | None = None, notes: Annotations | None = None) -> S:
        return (cls or type(self))(rules or self._rules, presence or self._presence, notes or self._notes)
    
    def _with_rules(self: S, **changes) -> S:
        return self._evolve(rules=replace(self._rules, **changes))
    
    def _to_required(self, cls: type[S]) -> S: return self._evolve(cls, presence=_REQUIRED)
    
    def _to_optional(self, cls: type[S]) -> S: return self._evolve(cls, presence=_OPTIONAL)
    
    def _to_defaulted(self, cls: type[S], value: Any) -> S:
        return self._evolve(cls, presence=replace(self._presence, has_default=True, default=value))
    
    def __repr__(self) -> str:
        state = "required" if self._presence.required else "defaulted" if self._presence.has_default \
            else "optional" if self._presence.optional else "base"
        return f"<{type(self).__name__} kind={self.kind} state={state}>"


# ============================================================================
# State Mixins
# ============================================================================

class Documented:
    """example / examples: available in every state."""
    __slots__ = ()
    
    def example(self: S, value: Any) -> S:
        return self._evolve(notes=replace(self._notes, example=value))
    
    def examples(self: S, examples: Mapping[str, Any]) -> S:
        return self._evolve(notes=replace(self._notes, examples=dict(examples)))


class Customizable:
    """custom(fn): available in base, required and optional states."""
    __slots__ = ()
    
    def custom(self: S, check: CustomCheck) -> S:
        return self._with_rules(customs=self._rules.customs + (check,))


class Configurable:
    """Documentation and message setters: base state only."""
    __slots__ = ()
    
    def title(self: S, title: str) -> S: return self._evolve(notes=replace(self._notes, title=title))
    
    def description(self: S, description: str) -> S:
        return self._evolve(notes=replace(self._notes, description=description))
    
    def deprecated(self: S, flag: bool = True) -> S: return self._evolve(notes=replace(self._notes, deprecated=flag))
    
    def read_only(self: S, flag: bool = True) -> S: return self._evolve(notes=replace(self._notes, read_only=flag))
    
    def write_only(self: S, flag: bool = True) -> S: return self._evolve(notes=replace(self._notes, write_only=flag))
    
    def with_message(self: S, key: str, message: str) -> S:
        """Override the default message for one check (``minLength``, ``required``, ...)."""
        return self._with_rules(messages={**self._rules.messages, key: message})


def check_bound(name: str, value: int | float | None) -> None:
    """Reject negative counts at construction time."""
    if value is not None and value < 0:
        raise ValueError(f"{name} must be non-negative, got {value}")


def check_range(low_name: str, low: Any, high_name: str, high: Any) -> None:
    if low is not None and high is not None and low > high:
        raise ValueError(f"{low_name} ({low}) cannot exceed {high_name} ({high})")
