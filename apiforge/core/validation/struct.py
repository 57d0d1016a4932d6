"""Struct-Field Validator

Validates a dynamic mapping against a declared dataclass and produces a
populated record. Fields typed ``Held[U]`` stay absent when the input omits
them (or sends null) unless their schema is required.

Usage:
    @dataclass
    class ServerConfig:
        api_key: str
        port: int
        region: Held[str] = field(default_factory=Held.absent)

    schema = (
        for_struct(ServerConfig)
        .field("api_key", string().min(10).required())
        .field("port", integer().min(1000).max(9999).required())
        .field("region", string().optional())
        .build()
    )
    match schema.parse({"api_key": "valid_key_123", "port": 8080}):
        case Ok(config): ...
        case Err(error): print(error)
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import MISSING, dataclass, fields, is_dataclass, replace
from typing import Any, Generic, TypeVar, get_origin, get_type_hints

from apiforge.core.errors import Err, ErrorCode, Ok, Result
from .composites import _ArraySchema, object_
from .errors import ValidationError, leaf, nested
from .schema import Annotations, Presence, Rules, Schema
from .values import ABSENT, Held, deref, to_plain

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class FieldSpec:
    """One declared record field: attribute name, external key and schema."""
    attr: str
    name: str
    schema: Schema
    held: bool = False
    has_default: bool = False


@dataclass(frozen=True, slots=True)
class StructRules(Rules):
    record: type | None = None
    fields: tuple[FieldSpec, ...] = ()
    strict: bool = False


def _held_fields(record: type) -> set[str]:
    try:
        hints = get_type_hints(record)
    except (NameError, TypeError):
        hints = {}
    held = set()
    for f in fields(record):
        hint = hints.get(f.name, f.type)
        if hint is Held or get_origin(hint) is Held:
            held.add(f.name)
        elif isinstance(hint, str) and hint.startswith("Held"):
            held.add(f.name)
    return held


# ============================================================================
# Struct Schema
# ============================================================================

class StructSchema(Schema, Generic[T]):
    """Object schema bound to a record type. ``parse`` returns a populated record."""
    
    __slots__ = ()
    kind = "object"
    
    @property
    def record(self) -> type[T]: return self._rules.record
    
    @property
    def fields(self) -> tuple[FieldSpec, ...]: return self._rules.fields
    
    def _check(self, value: Any) -> ValidationError | None:
        r: StructRules = self._rules
        if is_dataclass(value) and not isinstance(value, type):
            value = to_plain(value)
        if not isinstance(value, Mapping):
            return self._fail("type", "invalid type, expected object", value, ErrorCode.E2004_INVALID_TYPE)
        
        children: list[ValidationError] = []
        for spec in r.fields:
            if spec.name not in value:
                if spec.schema.validate(None) is not None:
                    children.append(leaf(spec.name, None,
                        self._message("missingKey", f"missing required field: {spec.name}"),
                        ErrorCode.E2001_REQUIRED_FIELD_MISSING))
                continue
            error = spec.schema.validate(value[spec.name])
            if error is not None:
                children.append(error.with_field(spec.name))
        
        if r.strict:
            declared = {spec.name for spec in r.fields}
            children.extend(
                leaf(key, item, self._message("unknownKey", f"unexpected property: {key}"),
                    ErrorCode.E2007_ADDITIONAL_PROPERTY)
                for key, item in value.items() if key not in declared)
        
        if children:
            return nested("", value, "struct validation failed", children)
        return self._run_customs(value)
    
    def parse(self, value: Any) -> Result[T | None, ValidationError]:
        """Validate ``value`` and build the record. Never returns a partially populated record."""
        error = self.validate(value)
        if error is not None:
            return Err(error)
        value = deref(value)
        if value is None:
            return Ok(None)
        if is_dataclass(value) and not isinstance(value, type):
            value = to_plain(value)
        return Ok(self._populate(value))
    
    def _populate(self, data: Mapping[str, Any]) -> T:
        kwargs: dict[str, Any] = {}
        for spec in self._rules.fields:
            raw = deref(data.get(spec.name))
            if raw is None:
                raw = spec.schema.parse(None).unwrap_or(None)
                if raw is None:
                    if spec.held:
                        kwargs[spec.attr] = ABSENT
                    elif not spec.has_default:
                        kwargs[spec.attr] = None
                    continue
            converted = _materialize(spec.schema, raw)
            kwargs[spec.attr] = Held.of(converted) if spec.held else converted
        return self._rules.record(**kwargs)
    
    def _projection(self) -> dict[str, Any]:
        r: StructRules = self._rules
        inner = object_({spec.name: spec.schema for spec in r.fields})
        if r.strict:
            inner = inner.strict()
        return inner._projection()


def _materialize(schema: Schema, raw: Any) -> Any:
    """Turn validated plain data into records where the schema declares them."""
    if isinstance(schema, StructSchema) and isinstance(raw, Mapping):
        return schema._populate(raw)
    if isinstance(schema, _ArraySchema) and isinstance(raw, (list, tuple)):
        items = schema._rules.items
        if isinstance(items, StructSchema):
            return [_materialize(items, deref(item)) for item in raw]
    return raw


# ============================================================================
# Builder
# ============================================================================

class StructBuilder(Generic[T]):
    """Fluent, immutable builder for ``StructSchema``."""
    
    __slots__ = ("_record", "_fields", "_strict", "_presence", "_messages", "_notes")
    
    def __init__(self, record: type[T], fields_: tuple[tuple[str, Schema, str | None], ...] = (),
                 strict: bool = False, presence: Presence = Presence(required=True),
                 messages: Mapping[str, str] | None = None, notes: Annotations = Annotations()):
        self._record, self._fields, self._strict = record, fields_, strict
        self._presence, self._messages, self._notes = presence, dict(messages or {}), notes
    
    def _copy(self, **changes) -> StructBuilder[T]:
        state = {"fields_": self._fields, "strict": self._strict, "presence": self._presence,
            "messages": self._messages, "notes": self._notes, **changes}
        return StructBuilder(self._record, **state)
    
    def field(self, attr: str, schema: Schema, *, alias: str | None = None) -> StructBuilder[T]:
        """Declare ``attr`` validated by ``schema``; ``alias`` overrides the input key."""
        kept = tuple(f for f in self._fields if f[0] != attr)
        return self._copy(fields_=kept + ((attr, schema, alias),))
    
    def fields(self, schemas: Mapping[str, Schema]) -> StructBuilder[T]:
        builder = self
        for attr, schema in schemas.items():
            builder = builder.field(attr, schema)
        return builder
    
    def strict(self) -> StructBuilder[T]: return self._copy(strict=True)
    
    def required(self) -> StructBuilder[T]: return self._copy(presence=Presence(required=True))
    
    def optional(self) -> StructBuilder[T]: return self._copy(presence=Presence(optional=True))
    
    def title(self, title: str) -> StructBuilder[T]: return self._copy(notes=replace(self._notes, title=title))
    
    def description(self, text: str) -> StructBuilder[T]:
        return self._copy(notes=replace(self._notes, description=text))
    
    def with_message(self, key: str, message: str) -> StructBuilder[T]:
        return self._copy(messages={**self._messages, key: message})
    
    def build(self) -> StructSchema[T]:
        record = self._record
        if not (isinstance(record, type) and is_dataclass(record)):
            raise TypeError(f"for_struct expects a dataclass type, got {record!r}")
        
        declared = {f.name: f for f in fields(record)}
        held = _held_fields(record)
        specs: list[FieldSpec] = []
        for attr, schema, alias in self._fields:
            if attr not in declared:
                raise ValueError(f"{record.__name__} has no field '{attr}'")
            dc_field = declared[attr]
            has_default = dc_field.default is not MISSING or dc_field.default_factory is not MISSING
            name = alias or dc_field.metadata.get("alias", attr)
            specs.append(FieldSpec(attr, name, schema, held=attr in held, has_default=has_default))
        
        covered = {s.attr for s in specs}
        missing = [name for name, f in declared.items()
            if name not in covered and f.init and f.default is MISSING and f.default_factory is MISSING]
        if missing:
            raise ValueError(f"{record.__name__} fields without a schema or default: {', '.join(missing)}")
        
        rules = StructRules(messages=dict(self._messages), record=record, fields=tuple(specs), strict=self._strict)
        return StructSchema(rules, self._presence, self._notes)


def for_struct(record: type[T]) -> StructBuilder[T]:
    """Start a struct schema for a dataclass type. Structs are required unless ``.optional()``."""
    return StructBuilder(record)
