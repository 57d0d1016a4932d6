"""Schema Validation Engine

Composable validator tree with path-aware errors and OpenAPI 3.1 projection.
The same schema validates requests at runtime and describes them in the
generated document.

Usage:
    from apiforge.core.validation import object_, string, integer, email

    user = object_({
        "username": string().min(3).max(50).pattern(r"^[a-zA-Z0-9_]+$").required(),
        "email": email().required(),
        "age": integer().min(13).optional(),
    }).required()

    error = user.validate({"username": "ab"})
    print(error)             # one line per failing field
    error.flatten()          # [{"field": ..., "message": ...}, ...]
    user.project().to_dict() # OpenAPI schema object
"""
from .values import ABSENT, Held, Value, deref, is_absent, to_plain
from .errors import ErrorKind, ValidationError, leaf, nested, sanitize_value
from .patterns import PatternCache, compiled, full_match, portability_warnings
from .schema import OpenAPISchema, Schema, ValidationInfo
from .primitives import (
    BooleanBuilder,
    NumberBuilder,
    StringBuilder,
    boolean,
    email,
    integer,
    number,
    string,
    url,
)
from .composites import ArrayBuilder, ObjectBuilder, array, object_
from .composition import CompositionType, all_of, any_of, not_, one_of
from .struct import FieldSpec, StructBuilder, StructSchema, for_struct
from .coercion import (
    CoercionRule,
    SectionCoercer,
    StringToBool,
    StringToFloat,
    StringToInt,
    coerce_section,
)
from .generators import ComponentsGenerator, JSONSchemaGenerator, pattern_report
from .boundaries import (
    BoundaryValidator,
    ValidatedBody,
    parse_batch,
    parse_egress,
    parse_ingress,
    validated_body,
)

__all__ = [
    # Values
    "ABSENT",
    "Held",
    "Value",
    "deref",
    "is_absent",
    "to_plain",
    # Errors
    "ErrorKind",
    "ValidationError",
    "leaf",
    "nested",
    "sanitize_value",
    # Patterns
    "PatternCache",
    "compiled",
    "full_match",
    "portability_warnings",
    # Contract
    "OpenAPISchema",
    "Schema",
    "ValidationInfo",
    # Builders
    "BooleanBuilder",
    "NumberBuilder",
    "StringBuilder",
    "ArrayBuilder",
    "ObjectBuilder",
    "boolean",
    "email",
    "integer",
    "number",
    "string",
    "url",
    "array",
    "object_",
    "CompositionType",
    "all_of",
    "any_of",
    "not_",
    "one_of",
    # Structs
    "FieldSpec",
    "StructBuilder",
    "StructSchema",
    "for_struct",
    # Coercion
    "CoercionRule",
    "SectionCoercer",
    "StringToBool",
    "StringToFloat",
    "StringToInt",
    "coerce_section",
    # Generators
    "ComponentsGenerator",
    "JSONSchemaGenerator",
    "pattern_report",
    # Boundaries
    "BoundaryValidator",
    "ValidatedBody",
    "parse_batch",
    "parse_egress",
    "parse_ingress",
    "validated_body",
]
