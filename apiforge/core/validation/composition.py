"""Schema Composition

JSON-Schema ``oneOf`` / ``allOf`` / ``anyOf`` / ``not`` over child schemas.
Children are evaluated in declaration order; branch errors are kept as
``oneOf[i]`` / ``allOf[i]`` / ``anyOf[i]`` children of the reported error.

An optional composition treats null and empty values (``""``, ``[]``,
``{}``) as absent.

Usage:
    contact = one_of(email().required(), string().pattern(r"^\\+[0-9]{7,15}$").required()).required()
    not_(string().const("admin").required()).optional()
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from apiforge.core.errors import ErrorCode
from .errors import ValidationError, leaf, nested
from .schema import Configurable, Documented, Rules, Schema


class CompositionType(str, Enum):
    ONE_OF = "oneOf"
    ALL_OF = "allOf"
    ANY_OF = "anyOf"
    NOT = "not"


@dataclass(frozen=True, slots=True)
class CompositionRules(Rules):
    composition: CompositionType = CompositionType.ONE_OF
    schemas: tuple[Schema, ...] = ()


def _is_empty(value: Any) -> bool:
    return isinstance(value, (str, list, tuple, dict)) and len(value) == 0


class _CompositionSchema(Schema):
    __slots__ = ()
    kind = "composition"
    
    @property
    def composition(self) -> CompositionType: return self._rules.composition
    
    @property
    def schemas(self) -> tuple[Schema, ...]: return self._rules.schemas
    
    def _is_absent(self, value: Any) -> bool:
        if value is None:
            return True
        p = self._presence
        return (p.optional or p.has_default) and _is_empty(value)
    
    def _check(self, value: Any) -> ValidationError | None:
        r: CompositionRules = self._rules
        mismatch = ErrorCode.E2006_COMPOSITION_MISMATCH
        branch = r.composition.value
        
        if r.composition is CompositionType.NOT:
            if r.schemas[0].validate(value) is None:
                return self._fail("not", "must not match", value, mismatch)
            return None
        
        failures: list[ValidationError] = []
        matched = 0
        for i, schema in enumerate(r.schemas):
            error = schema.validate(value)
            if error is None:
                matched += 1
                if r.composition is CompositionType.ANY_OF:
                    return None
                continue
            error = error.with_field(f"{branch}[{i}]")
            if r.composition is CompositionType.ALL_OF:
                return nested("", value, self._message("allOf", "value does not match all schemas"), [error], mismatch)
            failures.append(error)
        
        if r.composition is CompositionType.ONE_OF:
            if matched == 0:
                return nested("", value, self._message("oneOf", "no variant matched"), failures, mismatch)
            if matched > 1:
                return leaf("", value, self._message("ambiguous", f"ambiguous: matched {matched} variants"), mismatch)
        elif r.composition is CompositionType.ANY_OF:
            return nested("", value, self._message("anyOf", "no variant matched"), failures, mismatch)
        
        return self._run_customs(value)
    
    def _projection(self) -> dict[str, Any]:
        r: CompositionRules = self._rules
        projected = [s.project() for s in r.schemas]
        if r.composition is CompositionType.NOT:
            return {"not_": projected[0]}
        return {{CompositionType.ONE_OF: "one_of", CompositionType.ALL_OF: "all_of",
            CompositionType.ANY_OF: "any_of"}[r.composition]: projected}
    
    def _constraints(self) -> dict[str, Any]:
        return {"compositionType": self._rules.composition.value, "schemaCount": len(self._rules.schemas)}


class CompositionBuilder(Configurable, Documented, _CompositionSchema):
    __slots__ = ()
    
    def required(self) -> RequiredComposition: return self._to_required(RequiredComposition)
    
    def optional(self) -> OptionalComposition: return self._to_optional(OptionalComposition)


class RequiredComposition(Documented, _CompositionSchema):
    __slots__ = ()


class OptionalComposition(Documented, _CompositionSchema):
    __slots__ = ()
    
    def default(self, value: Any) -> DefaultedComposition:
        return self._to_defaulted(DefaultedComposition, value)


class DefaultedComposition(Documented, _CompositionSchema):
    __slots__ = ()


def _compose(composition: CompositionType, schemas: tuple[Schema, ...]) -> CompositionBuilder:
    if not schemas:
        raise ValueError(f"{composition.value} requires at least one schema")
    return CompositionBuilder(CompositionRules(composition=composition, schemas=schemas))


def one_of(*schemas: Schema) -> CompositionBuilder:
    """Exactly one child must accept."""
    return _compose(CompositionType.ONE_OF, schemas)


def all_of(*schemas: Schema) -> CompositionBuilder:
    """Every child must accept; the first failure is reported."""
    return _compose(CompositionType.ALL_OF, schemas)


def any_of(*schemas: Schema) -> CompositionBuilder:
    return _compose(CompositionType.ANY_OF, schemas)


def not_(schema: Schema) -> CompositionBuilder:
    """The child must reject."""
    return _compose(CompositionType.NOT, (schema,))
