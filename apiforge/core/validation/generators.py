"""Schema Generators

Whole-document helpers over ``Schema.project()``: standalone JSON Schema
documents with a ``$schema`` dialect, OpenAPI ``components/schemas``
sections, and a scan for regex constructs that other JSON-Schema engines
may not support.

Features:
- JSON Schema draft 2020-12 by default (dialect configurable)
- Named component registries
- Pattern portability report
"""
from __future__ import annotations

import json
from abc import ABC, abstractmethod
from typing import Any, Iterator

from apiforge.core.config import settings
from .patterns import portability_warnings
from .schema import OpenAPISchema, Schema


class SchemaGenerator(ABC):
    """Base class for schema generators."""
    
    @abstractmethod
    def generate(self, schema: Schema) -> str:
        """Generate schema representation."""
    
    def generate_all(self, *schemas: Schema, separator: str = "\n\n") -> str:
        return separator.join(self.generate(s) for s in schemas)


class JSONSchemaGenerator(SchemaGenerator):
    """Standalone JSON Schema documents."""
    
    def __init__(self, dialect: str | None = None, indent: int = 2):
        self.dialect, self.indent = dialect or settings.OPENAPI_DIALECT, indent
    
    def document(self, schema: Schema) -> dict[str, Any]:
        return {"$schema": self.dialect, **schema.project().to_dict()}
    
    def generate(self, schema: Schema) -> str:
        return json.dumps(self.document(schema), indent=self.indent)


class ComponentsGenerator(SchemaGenerator):
    """OpenAPI ``components/schemas`` from named schemas."""
    
    def generate(self, schema: Schema) -> str:
        return json.dumps(schema.project().to_dict(), indent=2)
    
    def generate_components(self, schemas: dict[str, Schema]) -> dict[str, Any]:
        return {"schemas": {name: schema.project().to_dict() for name, schema in schemas.items()}}


def iter_projection(doc: OpenAPISchema, path: str = "") -> Iterator[tuple[str, OpenAPISchema]]:
    """Every (path, node) in a projected tree, parents before children."""
    stack: list[tuple[str, OpenAPISchema]] = [(path, doc)]
    while stack:
        where, node = stack.pop()
        yield where, node
        children: list[tuple[str, OpenAPISchema]] = []
        for name, child in (node.properties or {}).items():
            children.append((f"{where}.{name}" if where else name, child))
        if node.items is not None:
            children.append((f"{where}[]", node.items))
        if isinstance(node.additional_properties, OpenAPISchema):
            children.append((f"{where}.*" if where else "*", node.additional_properties))
        for key, group in (("oneOf", node.one_of), ("allOf", node.all_of), ("anyOf", node.any_of)):
            children.extend((f"{where}/{key}[{i}]", child) for i, child in enumerate(group or []))
        if node.not_ is not None:
            children.append((f"{where}/not", node.not_))
        stack.extend(reversed(children))


def pattern_report(schema: Schema | OpenAPISchema) -> dict[str, list[str]]:
    """Map of node path to the non-portable constructs in its ``pattern``."""
    doc = schema if isinstance(schema, OpenAPISchema) else schema.project()
    report: dict[str, list[str]] = {}
    for where, node in iter_projection(doc):
        if node.pattern:
            warnings = portability_warnings(node.pattern)
            if warnings:
                report[where or "$"] = warnings
    return report
