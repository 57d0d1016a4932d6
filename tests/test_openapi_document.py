"""OpenAPI 3.1 document generation."""
from __future__ import annotations

import json

import pytest
import yaml

from apiforge import OpenAPIDocumentGenerator, operation
from apiforge.core.errors import ErrorCode
from apiforge.core.security import APIKeyScheme, SecurityRequirements, bearer_auth
from apiforge.core.validation import email, integer, object_, string
from apiforge.operations import extract_parameters


def noop(req):
    return None


@pytest.fixture
def spec():
    return OpenAPIDocumentGenerator("Users API", "2.0.0")


def user_op():
    return (
        operation()
        .put("/users/{id}")
        .summary("Replace a user")
        .tags("users")
        .operation_id("replaceUser")
        .with_params(object_({"id": integer().min(1).required(), "ghost": string().optional()}).required())
        .with_query(object_({"dry_run": string().optional(), "reason": string().description("why").required()})
            .required())
        .with_body(object_({"email": email().required()}).required())
        .with_response(object_({"id": integer().required()}).required())
        .response(404, "User not found")
        .require_auth("bearerAuth", "users:write")
        .handler(noop)
    )


def test_path_parameters_follow_the_template():
    schema = object_({"id": integer().required(), "ghost": string().optional()}).required().project()
    params = [p.to_dict() for p in extract_parameters(schema, "path", "/users/{id}")]
    assert params == [{"name": "id", "in": "path", "required": True, "schema": {"type": "integer"}}]


def test_query_parameters_follow_object_required():
    schema = object_({"q": string().required(), "limit": integer().optional()}).required().project()
    params = {p.name: p.required for p in extract_parameters(schema, "query")}
    assert params == {"q": True, "limit": False}


def test_operation_document(spec):
    spec.process(user_op().info()).unwrap()
    put = spec.to_dict()["paths"]["/users/{id}"]["put"]
    
    assert put["operationId"] == "replaceUser"
    assert put["tags"] == ["users"]
    assert [(p["name"], p["in"], p["required"]) for p in put["parameters"]] == [
        ("id", "path", True), ("dry_run", "query", False), ("reason", "query", True)]
    assert put["parameters"][2]["description"] == "why"
    
    body = put["requestBody"]
    assert body["required"] is True
    assert body["content"]["application/json"]["schema"]["properties"]["email"] == {"type": "string", "format": "email"}
    
    assert list(put["responses"]) == ["200", "404", "400", "500"]
    assert put["responses"]["200"]["description"] == "Successful response"
    assert "content" not in put["responses"]["404"]
    assert put["responses"]["400"]["content"]["application/json"]["schema"]["required"] == ["error"]
    assert put["security"] == [{"bearerAuth": ["users:write"]}]


def test_documented_error_responses_are_not_overwritten(spec):
    op = operation().post("/things").response(400, "Bad thing").success_code(201).handler(noop)
    spec.process(op.info()).unwrap()
    responses = spec.to_dict()["paths"]["/things"]["post"]["responses"]
    assert responses["400"]["description"] == "Bad thing"
    assert set(responses) == {"201", "400", "500"}


def test_no_auth_clears_global_security(spec):
    spec.set_global_security(SecurityRequirements().require("bearerAuth"))
    spec.process(operation().get("/health").no_auth().handler(noop).info()).unwrap()
    doc = spec.to_dict()
    assert doc["security"] == [{"bearerAuth": []}]
    assert doc["paths"]["/health"]["get"]["security"] == [{}]


def test_operation_without_requirements_inherits(spec):
    spec.process(operation().get("/open").handler(noop).info()).unwrap()
    assert "security" not in spec.to_dict()["paths"]["/open"]["get"]


def test_license_rules(spec):
    missing = spec.set_license("")
    assert missing.unwrap_err().message == "invalid license: license name is required"
    both = spec.set_license("MIT", identifier="MIT", url="https://opensource.org/licenses/MIT")
    assert both.unwrap_err().message == "invalid license: license identifier and url are mutually exclusive"
    assert spec.set_license("MIT", identifier="MIT").is_ok()
    assert spec.to_dict()["info"]["license"] == {"name": "MIT", "identifier": "MIT"}


def test_security_scheme_registration(spec):
    bad_name = spec.add_security_scheme("bad name", bearer_auth())
    assert bad_name.unwrap_err().code == ErrorCode.E3030_INVALID_SECURITY_SCHEME
    assert bad_name.unwrap_err().message.startswith("invalid security scheme name: ")
    
    bad_scheme = spec.add_security_scheme("apiKey", APIKeyScheme(name=""))
    error = bad_scheme.unwrap_err()
    assert error.message == "invalid security scheme 'apiKey': apiKey security scheme requires 'name' field"
    assert error.metadata["scheme"] == "apiKey"
    
    assert spec.add_security_scheme("bearerAuth", bearer_auth()).is_ok()
    assert spec.security_scheme("bearerAuth") == bearer_auth()
    assert spec.to_dict()["components"]["securitySchemes"] == {
        "bearerAuth": {"type": "http", "scheme": "bearer", "bearerFormat": "JWT"}}


def test_top_level_metadata_and_key_order(spec):
    spec.set_description("Manage users").set_contact(name="Team", email="team@example.com")
    spec.add_server("https://{env}.example.com", "main", {"env": {"default": "api", "enum": ["api", "staging"]}})
    spec.add_tag("users", "User operations", docs_url="https://docs.example.com/users")
    spec.set_external_docs("https://docs.example.com")
    spec.add_security_scheme("bearerAuth", bearer_auth()).unwrap()
    spec.set_global_security(SecurityRequirements().require("bearerAuth"))
    spec.process(user_op().info()).unwrap()
    
    doc = yaml.safe_load(spec.to_yaml())
    assert list(doc) == ["openapi", "info", "jsonSchemaDialect", "servers", "security", "paths", "components",
        "tags", "externalDocs"]
    assert doc["openapi"] == "3.1.0"
    assert doc["jsonSchemaDialect"] == "https://json-schema.org/draft/2020-12/schema"
    assert doc["info"] == {"title": "Users API", "version": "2.0.0", "description": "Manage users",
        "contact": {"name": "Team", "email": "team@example.com"}}
    assert doc["servers"][0]["variables"]["env"] == {"default": "api", "enum": ["api", "staging"]}
    assert doc["tags"][0]["externalDocs"] == {"url": "https://docs.example.com/users"}


def test_write_infers_format_from_suffix(spec, tmp_path):
    spec.process(user_op().info()).unwrap()
    
    json_path = spec.write(tmp_path / "out" / "openapi.json").unwrap()
    assert json.loads(json_path.read_text())["info"]["title"] == "Users API"
    
    yaml_path = spec.write(tmp_path / "openapi.yaml").unwrap()
    assert yaml.safe_load(yaml_path.read_text())["paths"]["/users/{id}"]["put"]["summary"] == "Replace a user"
    
    forced = spec.write(tmp_path / "spec.txt", "json").unwrap()
    assert json.loads(forced.read_text())["openapi"] == "3.1.0"


def test_write_failure_is_an_error(spec, tmp_path):
    blocker = tmp_path / "file"
    blocker.write_text("x")
    result = spec.write(blocker / "openapi.yaml")
    assert result.unwrap_err().code == ErrorCode.E6003_FILE_WRITE_ERROR
