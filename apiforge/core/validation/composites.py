"""Composite Validators

Array and object schemas. Element and property errors are collected (not
first-failure) and wrapped in one Nested error whose children carry the
``[index]`` or property-name segment.

Properties are visited in the declaration order of the schema, never the
input order, so error output is deterministic.

Usage:
    viewport = object_({
        "bearing": number().min(0).max(360).optional(),
        "zoom": number().min(0).max(24).optional(),
    }).optional()
    tags = array(string().min(1)).max_items(10).unique_items().optional()
"""
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

from apiforge.core.errors import ErrorCode, Ok, Result
from .errors import ValidationError, leaf, nested
from .schema import (
    Configurable,
    Customizable,
    Documented,
    OpenAPISchema,
    Rules,
    Schema,
    check_bound,
    check_range,
)
from .values import deref


def canonical(value: Any) -> Any:
    """Hashable structural key: deep-by-value, with booleans kept apart from numbers."""
    value = deref(value)
    if value is None:
        return ("null",)
    if isinstance(value, bool):
        return ("bool", value)
    if isinstance(value, float):
        return ("number", int(value) if value.is_integer() else value)
    if isinstance(value, int):
        return ("number", value)
    if isinstance(value, str):
        return ("string", value)
    if isinstance(value, Mapping):
        return ("object", tuple(sorted((str(k), canonical(v)) for k, v in value.items())))
    if isinstance(value, (list, tuple)):
        return ("array", tuple(canonical(v) for v in value))
    return ("other", type(value).__name__, repr(value))


# ============================================================================
# Array
# ============================================================================

@dataclass(frozen=True, slots=True)
class ArrayRules(Rules):
    items: Schema | None = None
    min_items: int | None = None
    max_items: int | None = None
    unique_items: bool = False
    contains: Any = None
    has_contains: bool = False


class _ArraySchema(Schema):
    __slots__ = ()
    kind = "array"
    
    def _check(self, value: Any) -> ValidationError | None:
        r: ArrayRules = self._rules
        if not isinstance(value, (list, tuple)):
            return self._fail("type", "invalid type, expected array", value, ErrorCode.E2004_INVALID_TYPE)
        
        count = len(value)
        if r.min_items is not None and count < r.min_items:
            return self._fail("minItems", f"array has too few items, minimum is {r.min_items}", value)
        if r.max_items is not None and count > r.max_items:
            return self._fail("maxItems", f"array has too many items, maximum is {r.max_items}", value)
        
        if r.items is not None:
            children = []
            for i, item in enumerate(value):
                error = r.items.validate(item)
                if error is not None:
                    children.append(error.with_field(f"[{i}]"))
            if children:
                return nested("", value, "array contains invalid items", children)
        
        if r.unique_items:
            seen: set = set()
            for item in value:
                key = canonical(item)
                if key in seen:
                    return self._fail("uniqueItems", "array items must be unique", value)
                seen.add(key)
        
        if r.has_contains:
            target = canonical(r.contains)
            if not any(canonical(item) == target for item in value):
                return self._fail("contains", f"array must contain value: {r.contains}", value)
        
        return self._run_customs(value)
    
    def _projection(self) -> dict[str, Any]:
        r: ArrayRules = self._rules
        return {"type": "array", "items": r.items.project() if r.items is not None else None,
            "min_items": r.min_items, "max_items": r.max_items, "unique_items": r.unique_items or None,
            "contains": OpenAPISchema(const=r.contains) if r.has_contains else None}


class ArrayBuilder(Configurable, Documented, Customizable, _ArraySchema):
    """Base array state."""
    __slots__ = ()
    
    def items(self, schema: Schema) -> ArrayBuilder: return self._with_rules(items=schema)
    
    def min_items(self, count: int) -> ArrayBuilder:
        check_bound("min items", count)
        check_range("min items", count, "max items", self._rules.max_items)
        return self._with_rules(min_items=count)
    
    def max_items(self, count: int) -> ArrayBuilder:
        check_bound("max items", count)
        check_range("min items", self._rules.min_items, "max items", count)
        return self._with_rules(max_items=count)
    
    def unique_items(self, flag: bool = True) -> ArrayBuilder: return self._with_rules(unique_items=flag)
    
    def contains(self, value: Any) -> ArrayBuilder: return self._with_rules(contains=value, has_contains=True)
    
    def required(self) -> RequiredArray: return self._to_required(RequiredArray)
    
    def optional(self) -> OptionalArray: return self._to_optional(OptionalArray)


class RequiredArray(Documented, Customizable, _ArraySchema):
    __slots__ = ()


class OptionalArray(Documented, Customizable, _ArraySchema):
    __slots__ = ()
    
    def default(self, value: list) -> DefaultedArray: return self._to_defaulted(DefaultedArray, list(value))


class DefaultedArray(Documented, _ArraySchema):
    __slots__ = ()


def array(items: Schema | None = None) -> ArrayBuilder:
    return ArrayBuilder(ArrayRules(items=items))


# ============================================================================
# Object
# ============================================================================

@dataclass(frozen=True, slots=True)
class ObjectRules(Rules):
    properties: tuple[tuple[str, Schema], ...] = ()
    strict: bool = False
    additional: Schema | None = None
    partial: bool = False
    min_properties: int | None = None
    max_properties: int | None = None


class _ObjectSchema(Schema):
    __slots__ = ()
    kind = "object"
    
    @property
    def properties(self) -> dict[str, Schema]:
        return dict(self._rules.properties)
    
    def _check(self, value: Any) -> ValidationError | None:
        r: ObjectRules = self._rules
        if not isinstance(value, Mapping):
            return self._fail("type", "invalid type, expected object", value, ErrorCode.E2004_INVALID_TYPE)
        
        children: list[ValidationError] = []
        for name, schema in r.properties:
            if name not in value:
                if not r.partial and schema.validate(None) is not None:
                    children.append(leaf(name, None, self._message("missingKey", f"missing required field: {name}"),
                        ErrorCode.E2001_REQUIRED_FIELD_MISSING))
                continue
            error = schema.validate(value[name])
            if error is not None:
                children.append(error.with_field(name))
        
        if r.strict or r.additional is not None:
            declared = {name for name, _ in r.properties}
            for key, item in value.items():
                if key in declared:
                    continue
                if r.strict:
                    children.append(leaf(key, item, self._message("unknownKey", f"unexpected property: {key}"),
                        ErrorCode.E2007_ADDITIONAL_PROPERTY))
                    continue
                error = r.additional.validate(item)
                if error is not None:
                    children.append(error.with_field(key))
        
        if children:
            return nested("", value, "object validation failed", children)
        
        count = len(value)
        if r.min_properties is not None and count < r.min_properties:
            return self._fail("minProperties", f"object has too few properties, minimum is {r.min_properties}", value)
        if r.max_properties is not None and count > r.max_properties:
            return self._fail("maxProperties", f"object has too many properties, maximum is {r.max_properties}", value)
        
        return self._run_customs(value)
    
    def parse(self, value: Any) -> Result[Any, ValidationError]:
        """Validate, then fill declared properties that are absent but carry a default."""
        result = super().parse(value)
        if result.is_err() or not isinstance(result.unwrap(), Mapping):
            return result
        out = dict(result.unwrap())
        for name, schema in self._rules.properties:
            parsed = schema.parse(out.get(name)).unwrap_or(None)
            if parsed is not None:
                out[name] = parsed
        return Ok(out)

    def _projection(self) -> dict[str, Any]:
        r: ObjectRules = self._rules
        additional: Any = None
        if r.strict:
            additional = False
        elif r.additional is not None:
            additional = r.additional.project()
        required = [name for name, schema in r.properties if schema.describe().required]
        return {"type": "object", "properties": {name: s.project() for name, s in r.properties} or None,
            "required": required or None, "additional_properties": additional,
            "min_properties": r.min_properties, "max_properties": r.max_properties}


class ObjectBuilder(Configurable, Documented, Customizable, _ObjectSchema):
    """Base object state."""
    __slots__ = ()
    
    def with_property(self, name: str, schema: Schema) -> ObjectBuilder:
        props = dict(self._rules.properties)
        props[name] = schema
        return self._with_rules(properties=tuple(props.items()))
    
    def strict(self) -> ObjectBuilder:
        """Reject keys that are not declared properties (``additionalProperties: false``)."""
        return self._with_rules(strict=True, additional=None)
    
    def additional(self, schema: Schema) -> ObjectBuilder:
        """Validate undeclared keys against ``schema``."""
        return self._with_rules(additional=schema, strict=False)
    
    def partial(self) -> ObjectBuilder: return self._with_rules(partial=True)
    
    def min_properties(self, count: int) -> ObjectBuilder:
        check_bound("min properties", count)
        check_range("min properties", count, "max properties", self._rules.max_properties)
        return self._with_rules(min_properties=count)
    
    def max_properties(self, count: int) -> ObjectBuilder:
        check_bound("max properties", count)
        check_range("min properties", self._rules.min_properties, "max properties", count)
        return self._with_rules(max_properties=count)
    
    def required(self) -> RequiredObject: return self._to_required(RequiredObject)
    
    def optional(self) -> OptionalObject: return self._to_optional(OptionalObject)


class RequiredObject(Documented, Customizable, _ObjectSchema):
    __slots__ = ()


class OptionalObject(Documented, Customizable, _ObjectSchema):
    __slots__ = ()
    
    def default(self, value: Mapping[str, Any]) -> DefaultedObject:
        return self._to_defaulted(DefaultedObject, dict(value))


class DefaultedObject(Documented, _ObjectSchema):
    __slots__ = ()


def object_(properties: Mapping[str, Schema] | None = None) -> ObjectBuilder:
    return ObjectBuilder(ObjectRules(properties=tuple((properties or {}).items())))
