"""Validated request handling through the router."""
from __future__ import annotations

import threading
from dataclasses import dataclass

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from starlette.responses import PlainTextResponse

from apiforge import OpenAPIDocumentGenerator, Router, operation
from apiforge.app import create_app
from apiforge.core.errors import Err, ErrorCode, Ok, validation_error
from apiforge.core.validation import array, boolean, for_struct, integer, number, object_, string


@dataclass
class NewItem:
    name: str
    quantity: int


def get_item():
    return (
        operation()
        .get("/items/{id}")
        .operation_id("getItem")
        .with_params(object_({"id": integer().min(1).required()}).required())
        .with_query(object_({
            "verbose": boolean().optional().default(False),
            "tag": array(string()).optional(),
        }).required())
        .with_headers(object_({"x-tenant": string().min(2).required()}).required())
        .with_response(object_({"id": integer().required()}).required())
        .handler(lambda req: {"id": req.params["id"], "verbose": req.query["verbose"],
                              "tags": req.query.get("tag"), "tenant": req.headers["x-tenant"]})
    )


async def create_handler(req):
    return {"name": req.body.name, "quantity": req.body.quantity}


def create_item():
    body = (
        for_struct(NewItem)
        .field("name", string().min(1).required())
        .field("quantity", integer().min(1).required())
        .build()
    )
    return (
        operation()
        .post("/items")
        .with_body(body)
        .with_response(object_({"name": string().required(), "quantity": integer().required()}).required())
        .success_code(201)
        .handler(create_handler)
    )


def list_items():
    return (
        operation()
        .get("/items")
        .with_query(object_({"limit": number().min(0).max(10).optional()}).required())
        .handler(lambda req: {"limit": req.query.get("limit")})
    )


@pytest.fixture
def client():
    app = create_app([get_item(), create_item(), list_items()], title="Items", configure_logs=False)
    return TestClient(app)


HEADERS = {"X-Tenant": "acme"}


def test_path_query_and_headers_are_coerced(client):
    response = client.get("/items/42?verbose=true&tag=a&tag=b", headers=HEADERS)
    assert response.status_code == 200
    assert response.json() == {"id": 42, "verbose": True, "tags": ["a", "b"], "tenant": "acme"}


def test_query_default_is_substituted(client):
    assert client.get("/items/1", headers=HEADERS).json()["verbose"] is False


def test_path_failure_is_400(client):
    response = client.get("/items/0", headers=HEADERS)
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Path parameter validation failed"
    assert body["errors"] == [{"field": "id", "message": "value is too small, minimum is 1"}]
    assert body["details"] == "Field: id, Error: value is too small, minimum is 1"


def test_uncoercible_path_reports_type(client):
    response = client.get("/items/abc", headers=HEADERS)
    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "id", "message": "invalid type, expected number"}]


def test_missing_header_is_400(client):
    response = client.get("/items/1")
    assert response.status_code == 400
    assert response.json()["error"] == "Header validation failed"


def test_struct_body_reaches_async_handler(client):
    response = client.post("/items", json={"name": "widget", "quantity": 3})
    assert response.status_code == 201
    assert response.json() == {"name": "widget", "quantity": 3}


def test_body_failure_lists_every_field(client):
    response = client.post("/items", json={"name": ""})
    assert response.status_code == 400
    body = response.json()
    assert body["error"] == "Request body validation failed"
    assert [e["field"] for e in body["errors"]] == ["name", "quantity"]


def test_invalid_json_body(client):
    response = client.post("/items", content=b"{broken", headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request body"
    assert response.json()["errors"] == []


def test_deeply_nested_json_body_is_400(client):
    depth = 100_000
    raw = b"[" * depth + b"]" * depth
    response = client.post("/items", content=raw, headers={"content-type": "application/json"})
    assert response.status_code == 400
    assert response.json()["error"] == "Invalid request body"


def test_query_number_bounds(client):
    assert client.get("/items?limit=5").json() == {"limit": 5}
    assert client.get("/items?limit=11").status_code == 400


@pytest.mark.parametrize("text", ["nan", "inf", "-Infinity"])
def test_non_finite_query_number_is_400(client, text):
    response = client.get(f"/items?limit={text}")
    assert response.status_code == 400
    assert response.json()["errors"] == [{"field": "limit", "message": "invalid type, expected number"}]


def test_sync_handlers_run_off_the_event_loop():
    threads: dict[str, int] = {}
    
    async def on_loop(req):
        threads["loop"] = threading.get_ident()
        return {}
    
    def blocking(req):
        threads["handler"] = threading.get_ident()
        return {}
    
    app = create_app([operation().get("/loop").handler(on_loop), operation().get("/blocking").handler(blocking)],
        configure_logs=False)
    with TestClient(app) as client:
        assert client.get("/loop").status_code == 200
        assert client.get("/blocking").status_code == 200
    assert threads["handler"] != threads["loop"]


def test_generated_document_is_served(client):
    doc = client.get("/openapi.json").json()
    assert doc["openapi"] == "3.1.0"
    assert doc["info"]["title"] == "Items"
    assert set(doc["paths"]) == {"/items/{id}", "/items"}
    assert doc["paths"]["/items/{id}"]["get"]["operationId"] == "getItem"
    assert "201" in doc["paths"]["/items"]["post"]["responses"]


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy", "version": "1.0.0"}


def test_invalid_response_is_500():
    op = (
        operation()
        .get("/broken")
        .with_response(object_({"id": integer().required()}).required())
        .handler(lambda req: {"id": "not-a-number"})
    )
    client = TestClient(create_app([op], configure_logs=False))
    response = client.get("/broken")
    assert response.status_code == 500
    assert response.json()["error"] == "Response validation failed"


def test_no_content_and_passthrough_responses():
    ops = [
        operation().delete("/things/{id}").success_code(204).handler(lambda req: None),
        operation().get("/plain").handler(lambda req: PlainTextResponse("hello")),
    ]
    client = TestClient(create_app(ops, configure_logs=False))
    deleted = client.delete("/things/7")
    assert deleted.status_code == 204
    assert deleted.content == b""
    assert client.get("/plain").text == "hello"


class RejectingGenerator:
    def process(self, info):
        return validation_error("rejected", origin="test")


class RecordingGenerator:
    def __init__(self):
        self.seen = []
    
    def process(self, info):
        self.seen.append(info.operation.key)
        return Ok(None)


def test_router_feeds_generators_in_order():
    recorder = RecordingGenerator()
    spec = OpenAPIDocumentGenerator("T", "1")
    router = Router(FastAPI(), spec, recorder)
    assert router.register_all(get_item(), create_item()).is_ok()
    assert recorder.seen == ["GET /items/{id}", "POST /items"]
    assert set(spec.paths) == {"/items/{id}", "/items"}
    assert len(router.operations()) == 2


def test_router_returns_first_generator_failure():
    recorder = RecordingGenerator()
    router = Router(FastAPI(), RejectingGenerator(), recorder)
    result = router.register(get_item())
    assert isinstance(result, Err)
    assert result.unwrap_err().code == ErrorCode.E2000_VALIDATION_GENERIC
    assert recorder.seen == []
