"""OpenAPI 3.1 Document Generator

A ``Generator`` that turns registered operations into an OpenAPI 3.1 document.

Features:
- Info metadata (description, summary, terms, contact, license)
- Servers with variables, tags, external docs
- Validated security schemes under ``components.securitySchemes``
- Path/query/header parameters and JSON request bodies from schema projections
- Default 400/500 error responses
- YAML (key order preserved) or JSON output

Usage:
    spec = OpenAPIDocumentGenerator("Users API", "1.0.0")
    spec.add_security_scheme("bearerAuth", bearer_auth()).unwrap()
    router = Router(app, spec)
    ...
    spec.write(Path("openapi.yaml"))
"""
from __future__ import annotations

import json
from dataclasses import replace
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field

from apiforge.core.config import settings
from apiforge.core.errors import AppError, Ok, Result, file_write_error, validation_error
from apiforge.core.logging import openapi_logger
from apiforge.core.security import SecurityRequirements, SecurityScheme, validate_scheme_name
from apiforge.core.validation.generators import pattern_report
from apiforge.core.validation.schema import OpenAPISchema
from .types import OperationInfo

log = openapi_logger()

OutputFormat = Literal["yaml", "json"]


# ============================================================================
# Document Objects
# ============================================================================

class _DocModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)
    
    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class ContactObject(_DocModel):
    name: str | None = None
    url: str | None = None
    email: str | None = None


class LicenseObject(_DocModel):
    name: str
    identifier: str | None = None
    url: str | None = None


class ServerVariableObject(_DocModel):
    default: str
    enum: list[str] | None = None
    description: str | None = None


class ServerObject(_DocModel):
    url: str
    description: str | None = None
    variables: dict[str, ServerVariableObject] | None = None


class ExternalDocsObject(_DocModel):
    url: str
    description: str | None = None


class TagObject(_DocModel):
    name: str
    description: str | None = None
    external_docs: ExternalDocsObject | None = Field(None, alias="externalDocs")


class ParameterObject(_DocModel):
    name: str
    in_: Literal["path", "query", "header"] = Field(alias="in")
    required: bool
    description: str | None = None
    schema_: OpenAPISchema | None = Field(None, alias="schema")


class MediaTypeObject(_DocModel):
    schema_: OpenAPISchema | None = Field(None, alias="schema")
    example: Any = None


class RequestBodyObject(_DocModel):
    content: dict[str, MediaTypeObject]
    required: bool = False


class ResponseObject(_DocModel):
    description: str
    content: dict[str, MediaTypeObject] | None = None


class OperationObject(_DocModel):
    summary: str | None = None
    description: str | None = None
    operation_id: str | None = Field(None, alias="operationId")
    tags: list[str] | None = None
    parameters: list[ParameterObject] | None = None
    request_body: RequestBodyObject | None = Field(None, alias="requestBody")
    responses: dict[str, ResponseObject]
    security: list[dict[str, list[str]]] | None = None
    deprecated: bool | None = None


ERROR_RESPONSE_SCHEMA = OpenAPISchema(
    type="object",
    properties={"error": OpenAPISchema(type="string"), "details": OpenAPISchema(type="string")},
    required=["error"],
)


def _json_content(spec: OpenAPISchema | None) -> dict[str, MediaTypeObject] | None:
    if spec is None:
        return None
    return {"application/json": MediaTypeObject(schema_=spec, example=spec.example)}


# ============================================================================
# Parameter Extraction
# ============================================================================

def extract_parameters(spec: OpenAPISchema | None, location: str, path: str = "") -> list[ParameterObject]:
    """Parameters from an object projection.
    
    Path parameters are kept only when ``{name}`` occurs in ``path`` and are
    always required; query and header parameters follow the object's ``required``.
    """
    if spec is None or spec.type != "object" or not spec.properties:
        return []
    required = set(spec.required or ())
    params = []
    for name, child in spec.properties.items():
        if location == "path":
            if "{" + name + "}" not in path:
                continue
            params.append(ParameterObject(name=name, in_="path", required=True, schema_=child))
        else:
            params.append(ParameterObject(name=name, in_=location, required=name in required, schema_=child,
                description=child.description))
    return params


# ============================================================================
# Generator
# ============================================================================

class OpenAPIDocumentGenerator:
    """Accumulates operations into an OpenAPI 3.1 document."""
    
    def __init__(self, title: str, version: str, *, dialect: str | None = None):
        self.title, self.version = title, version
        self.info: dict[str, Any] = {"title": title, "version": version}
        self.json_schema_dialect = dialect or settings.OPENAPI_DIALECT
        self.servers: list[ServerObject] = []
        self.tags: list[TagObject] = []
        self.external_docs: ExternalDocsObject | None = None
        self.security_schemes: dict[str, SecurityScheme] = {}
        self.global_security: SecurityRequirements | None = None
        self.paths: dict[str, dict[str, OperationObject]] = {}
    
    # ------------------------------------------------------------------
    # Info
    # ------------------------------------------------------------------
    
    def set_description(self, description: str) -> OpenAPIDocumentGenerator:
        self.info["description"] = description
        return self
    
    def set_summary(self, summary: str) -> OpenAPIDocumentGenerator:
        self.info["summary"] = summary
        return self
    
    def set_terms_of_service(self, url: str) -> OpenAPIDocumentGenerator:
        self.info["termsOfService"] = url
        return self
    
    def set_contact(self, name: str | None = None, url: str | None = None,
                    email: str | None = None) -> OpenAPIDocumentGenerator:
        self.info["contact"] = ContactObject(name=name, url=url, email=email).to_dict()
        return self
    
    def set_license(self, name: str, *, identifier: str | None = None,
                    url: str | None = None) -> Result[None, AppError]:
        if not name:
            return validation_error("invalid license: license name is required", field="license.name", origin="openapi")
        if identifier and url:
            return validation_error("invalid license: license identifier and url are mutually exclusive",
                field="license", origin="openapi")
        self.info["license"] = LicenseObject(name=name, identifier=identifier, url=url).to_dict()
        return Ok(None)
    
    # ------------------------------------------------------------------
    # Top-level sections
    # ------------------------------------------------------------------
    
    def add_server(self, url: str, description: str | None = None,
                   variables: dict[str, dict[str, Any]] | None = None) -> OpenAPIDocumentGenerator:
        vars_ = {name: ServerVariableObject(**v) for name, v in variables.items()} if variables else None
        self.servers.append(ServerObject(url=url, description=description, variables=vars_))
        return self
    
    def add_tag(self, name: str, description: str | None = None,
                docs_url: str | None = None) -> OpenAPIDocumentGenerator:
        docs = ExternalDocsObject(url=docs_url) if docs_url else None
        self.tags.append(TagObject(name=name, description=description, external_docs=docs))
        return self
    
    def set_external_docs(self, url: str, description: str | None = None) -> OpenAPIDocumentGenerator:
        self.external_docs = ExternalDocsObject(url=url, description=description)
        return self
    
    def set_json_schema_dialect(self, dialect: str) -> OpenAPIDocumentGenerator:
        self.json_schema_dialect = dialect
        return self
    
    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------
    
    def add_security_scheme(self, name: str, scheme: SecurityScheme) -> Result[None, AppError]:
        """Validate the component name and the scheme, then register it."""
        result = validate_scheme_name(name)
        if result.is_err():
            return result.map_err(lambda e: replace(e, message=f"invalid security scheme name: {e.message}"))
        result = scheme.validate()
        if result.is_err():
            return result.map_err(lambda e: replace(e, message=f"invalid security scheme '{name}': {e.message}")
                .with_metadata(scheme=name))
        self.security_schemes[name] = scheme
        log.debug("security_scheme_added", scheme=name, type=scheme.type.value)
        return Ok(None)
    
    def set_global_security(self, requirements: SecurityRequirements) -> OpenAPIDocumentGenerator:
        self.global_security = requirements
        return self
    
    def security_scheme(self, name: str) -> SecurityScheme | None: return self.security_schemes.get(name)
    
    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    
    def process(self, info: OperationInfo) -> Result[None, AppError]:
        op = info.operation
        
        parameters = [
            *extract_parameters(op.params_spec, "path", info.path),
            *extract_parameters(op.query_spec, "query"),
            *extract_parameters(op.header_spec, "header"),
        ]
        
        request_body = None
        if op.body_spec is not None:
            request_body = RequestBodyObject(content=_json_content(op.body_spec),
                required=info.body_info is not None and info.body_info.required)
        
        responses = {str(op.success_code): ResponseObject(description="Successful response",
            content=_json_content(op.response_spec))}
        for extra in op.responses:
            spec = extra.schema.project() if extra.schema is not None else None
            responses[str(extra.code)] = ResponseObject(description=extra.description, content=_json_content(spec))
        responses.setdefault("400", ResponseObject(description="Bad Request", content=_json_content(ERROR_RESPONSE_SCHEMA)))
        responses.setdefault("500", ResponseObject(description="Internal Server Error",
            content=_json_content(ERROR_RESPONSE_SCHEMA)))
        
        self.paths.setdefault(info.path, {})[info.method.value.lower()] = OperationObject(
            summary=info.summary or None,
            description=info.description or None,
            operation_id=op.operation_id or None,
            tags=list(info.tags) or None,
            parameters=parameters or None,
            request_body=request_body,
            responses=responses,
            security=info.security.to_list() or None,
            deprecated=op.deprecated or None,
        )
        
        for section, spec in (("params", op.params_spec), ("query", op.query_spec), ("headers", op.header_spec),
                              ("body", op.body_spec), ("response", op.response_spec)):
            if spec is None:
                continue
            for where, warnings in pattern_report(spec).items():
                log.warning("non_portable_pattern", operation=op.key, section=section, node=where, constructs=warnings)
        
        log.debug("operation_documented", operation=op.key, parameters=len(parameters))
        return Ok(None)
    
    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------
    
    def to_dict(self) -> dict[str, Any]:
        doc: dict[str, Any] = {
            "openapi": settings.OPENAPI_VERSION,
            "info": dict(self.info),
            "jsonSchemaDialect": self.json_schema_dialect,
        }
        if self.servers:
            doc["servers"] = [s.to_dict() for s in self.servers]
        if self.global_security is not None:
            doc["security"] = self.global_security.to_list()
        doc["paths"] = {path: {method: op.to_dict() for method, op in ops.items()} for path, ops in self.paths.items()}
        if self.security_schemes:
            doc["components"] = {"securitySchemes": {
                name: scheme.project().to_dict() for name, scheme in self.security_schemes.items()}}
        if self.tags:
            doc["tags"] = [t.to_dict() for t in self.tags]
        if self.external_docs is not None:
            doc["externalDocs"] = self.external_docs.to_dict()
        return doc
    
    def to_json(self, indent: int = 2) -> str:
        return json.dumps(self.to_dict(), indent=indent)
    
    def to_yaml(self) -> str:
        return yaml.safe_dump(self.to_dict(), sort_keys=False, allow_unicode=True)
    
    def render(self, fmt: OutputFormat | None = None) -> str:
        return self.to_json() if (fmt or settings.OUTPUT_FORMAT) == "json" else self.to_yaml()
    
    def write(self, path: Path, fmt: OutputFormat | None = None) -> Result[Path, AppError]:
        """Write the document, creating parent directories. Format defaults from the file suffix."""
        if fmt is None:
            fmt = "json" if path.suffix.lower() == ".json" else settings.OUTPUT_FORMAT
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(self.render(fmt), encoding="utf-8")
        except OSError as e:
            return file_write_error(path, str(e), origin="openapi", cause=e)
        log.info("openapi_written", path=str(path), format=fmt, paths=len(self.paths))
        return Ok(path)
