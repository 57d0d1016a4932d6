"""Operation Builder

Fluent construction of ``CompiledOperation`` values:

    get_user = (
        operation()
        .get("/users/{id}")
        .summary("Fetch a user")
        .tags("users")
        .with_params(object_({"id": string().min(1).required()}).required())
        .with_response(user_schema)
        .require_auth("bearerAuth")
        .handler(get_user_handler)
    )

Every setter returns a new builder; ``handler(fn)`` compiles the operation
and projects its schemas.
"""
from __future__ import annotations

from dataclasses import dataclass, field, replace

from apiforge.core.security import SecurityRequirements
from apiforge.core.validation.schema import Schema
from .types import CompiledOperation, Handler, HTTPMethod, ResponseDefinition


@dataclass(frozen=True, slots=True)
class OperationBuilder:
    method: HTTPMethod | None = None
    path: str = ""
    summary_text: str = ""
    description_text: str = ""
    tag_names: tuple[str, ...] = ()
    operation_id_text: str = ""
    params_schema: Schema | None = None
    query_schema: Schema | None = None
    header_schema: Schema | None = None
    body_schema: Schema | None = None
    response_schema: Schema | None = None
    responses: tuple[ResponseDefinition, ...] = ()
    security: SecurityRequirements = field(default_factory=SecurityRequirements)
    code: int = 200
    is_deprecated: bool = False
    
    # ------------------------------------------------------------------
    # Method and path
    # ------------------------------------------------------------------
    
    def route(self, method: HTTPMethod | str, path: str) -> OperationBuilder:
        if not path.startswith("/"):
            raise ValueError(f"operation path must start with '/', got {path!r}")
        method = method if isinstance(method, HTTPMethod) else HTTPMethod(method.upper())
        return replace(self, method=method, path=path)
    
    def get(self, path: str) -> OperationBuilder: return self.route(HTTPMethod.GET, path)
    
    def post(self, path: str) -> OperationBuilder: return self.route(HTTPMethod.POST, path)
    
    def put(self, path: str) -> OperationBuilder: return self.route(HTTPMethod.PUT, path)
    
    def patch(self, path: str) -> OperationBuilder: return self.route(HTTPMethod.PATCH, path)
    
    def delete(self, path: str) -> OperationBuilder: return self.route(HTTPMethod.DELETE, path)
    
    def head(self, path: str) -> OperationBuilder: return self.route(HTTPMethod.HEAD, path)
    
    def options(self, path: str) -> OperationBuilder: return self.route(HTTPMethod.OPTIONS, path)
    
    # ------------------------------------------------------------------
    # Documentation
    # ------------------------------------------------------------------
    
    def summary(self, text: str) -> OperationBuilder: return replace(self, summary_text=text)
    
    def description(self, text: str) -> OperationBuilder: return replace(self, description_text=text)
    
    def tags(self, *names: str) -> OperationBuilder: return replace(self, tag_names=self.tag_names + names)
    
    def operation_id(self, name: str) -> OperationBuilder: return replace(self, operation_id_text=name)
    
    def deprecated(self, flag: bool = True) -> OperationBuilder: return replace(self, is_deprecated=flag)
    
    def success_code(self, code: int) -> OperationBuilder:
        if not 100 <= code <= 599:
            raise ValueError(f"invalid HTTP status code: {code}")
        return replace(self, code=code)
    
    # ------------------------------------------------------------------
    # Schemas
    # ------------------------------------------------------------------
    
    def with_params(self, schema: Schema) -> OperationBuilder: return replace(self, params_schema=schema)
    
    def with_query(self, schema: Schema) -> OperationBuilder: return replace(self, query_schema=schema)
    
    def with_headers(self, schema: Schema) -> OperationBuilder: return replace(self, header_schema=schema)
    
    def with_body(self, schema: Schema) -> OperationBuilder: return replace(self, body_schema=schema)
    
    def with_response(self, schema: Schema) -> OperationBuilder: return replace(self, response_schema=schema)
    
    def response(self, code: int, description: str, schema: Schema | None = None) -> OperationBuilder:
        """Document an additional response (``404``, ``409``, ...)."""
        kept = tuple(r for r in self.responses if r.code != code)
        return replace(self, responses=kept + (ResponseDefinition(code, description, schema),))
    
    # ------------------------------------------------------------------
    # Security
    # ------------------------------------------------------------------
    
    def with_security(self, requirements: SecurityRequirements) -> OperationBuilder:
        return replace(self, security=requirements)
    
    def require_auth(self, scheme: str, *scopes: str) -> OperationBuilder:
        return replace(self, security=self.security.require(scheme, *scopes))
    
    def require_any_of(self, *schemes: str) -> OperationBuilder:
        """Any one of ``schemes`` (no scopes) satisfies the operation."""
        return replace(self, security=self.security.any(*({name: []} for name in schemes)))
    
    def no_auth(self) -> OperationBuilder: return replace(self, security=SecurityRequirements.none())
    
    # ------------------------------------------------------------------
    # Compile
    # ------------------------------------------------------------------
    
    def handler(self, fn: Handler) -> CompiledOperation:
        if self.method is None:
            raise ValueError("operation has no HTTP method; call get()/post()/... first")
        
        def project(schema: Schema | None):
            return schema.project() if schema is not None else None
        
        return CompiledOperation(
            method=self.method,
            path=self.path,
            handler=fn,
            summary=self.summary_text,
            description=self.description_text,
            tags=self.tag_names,
            operation_id=self.operation_id_text,
            params_schema=self.params_schema,
            query_schema=self.query_schema,
            header_schema=self.header_schema,
            body_schema=self.body_schema,
            response_schema=self.response_schema,
            params_spec=project(self.params_schema),
            query_spec=project(self.query_schema),
            header_spec=project(self.header_schema),
            body_spec=project(self.body_schema),
            response_spec=project(self.response_schema),
            responses=self.responses,
            security=self.security,
            success_code=self.code,
            deprecated=self.is_deprecated,
        )


def operation() -> OperationBuilder:
    return OperationBuilder()
