"""Combining per-service documents."""
from __future__ import annotations

import json
from pathlib import Path

import pytest
import yaml

from apiforge.core.errors import ErrorCode
from apiforge.operations import Combiner, CombinerConfig, service_name


def write_spec(path: Path, paths: dict, components: dict | None = None) -> Path:
    doc = {"openapi": "3.1.0", "info": {"title": path.stem, "version": "1.0.0"}, "paths": paths}
    if components:
        doc["components"] = components
    path.write_text(yaml.safe_dump(doc), encoding="utf-8")
    return path


def op(*tags: str) -> dict:
    return {"tags": list(tags), "responses": {"200": {"description": "ok"}}}


@pytest.fixture
def specs(tmp_path):
    users = write_spec(tmp_path / "users-service.yaml", {
        "/users": {"get": op("users"), "post": op("users", "internal")},
        "/health": {"get": op("ops")},
    }, {"schemas": {"User": {"type": "object"}}})
    orders = write_spec(tmp_path / "orders.api.yaml", {
        "/orders": {"get": op("orders")},
        "/health": {"get": op("ops"), "parameters": []},
    }, {"schemas": {"Order": {"type": "object"}}})
    return users, orders


def test_service_name_strips_suffixes():
    assert service_name(Path("users-service.yaml")) == "users"
    assert service_name(Path("orders.api.json")) == "orders"
    assert service_name(Path("billing.yaml")) == "billing"


def test_transform_path_collapses_slashes():
    combiner = Combiner(CombinerConfig(base_url="/api/"))
    assert combiner.transform_path("/users", "/v1/") == "/api/v1/users"
    assert combiner.transform_path("/users", "") == "/api/users"


def test_combine_tags_prefixes_and_conflicts(specs, tmp_path):
    users, orders = specs
    combiner = Combiner(CombinerConfig(output_file=tmp_path / "out.yaml", service_prefix={"users": "/u"}))
    combiner.add_input(users).add_input(orders)
    assert combiner.load_specs().is_ok()
    doc = combiner.combine().unwrap()
    
    assert set(doc["paths"]) == {"/u/users", "/u/health", "/orders", "/health"}
    assert doc["paths"]["/u/users"]["get"]["tags"] == ["service:users", "users"]
    assert doc["paths"]["/health"] == {"get": op("service:orders", "ops")}
    assert doc["components"]["schemas"] == {"User": {"type": "object"}, "Order": {"type": "object"}}
    
    stats = combiner.stats
    assert (stats.input_files, stats.services_combined, stats.total_paths, stats.total_operations, stats.conflicts) \
        == (2, 2, 4, 5, 0)


def test_later_inputs_override_conflicts(specs, tmp_path):
    users, orders = specs
    combiner = Combiner(CombinerConfig(output_file=tmp_path / "out.yaml"))
    combiner.add_input(users).add_input(orders)
    combiner.load_specs().unwrap()
    doc = combiner.combine().unwrap()
    assert combiner.stats.conflicts == 1
    assert doc["paths"]["/health"]["get"]["tags"][0] == "service:orders"


def test_tag_filters(specs, tmp_path):
    users, orders = specs
    combiner = Combiner(CombinerConfig(include_tags=["users", "orders"], exclude_tags=["internal"]))
    combiner.add_input(users).add_input(orders)
    combiner.load_specs().unwrap()
    doc = combiner.combine().unwrap()
    assert {path: sorted(methods) for path, methods in doc["paths"].items()} == {
        "/users": ["get"], "/orders": ["get"]}


def test_run_writes_json_and_creates_directories(specs, tmp_path):
    users, orders = specs
    out = tmp_path / "nested" / "dir" / "combined.json"
    combiner = Combiner(CombinerConfig(output_file=out, title="Platform", version="3.0.0"))
    combiner.add_input(users).add_input(orders)
    assert combiner.run().unwrap() == out
    doc = json.loads(out.read_text())
    assert doc["openapi"] == "3.1.0"
    assert doc["info"] == {"title": "Platform", "version": "3.0.0"}


def test_config_file_drives_services(specs, tmp_path):
    config = tmp_path / "services.yaml"
    config.write_text(yaml.safe_dump({
        "title": "Gateway",
        "version": "2.1.0",
        "base_url": "/api",
        "services": [
            {"name": "accounts", "spec_file": "users-service.yaml", "path_prefix": "/accounts"},
            {"name": "orders", "spec_file": "orders.api.yaml"},
        ],
        "settings": {"exclude_tags": ["ops"]},
    }))
    out = tmp_path / "combined.yaml"
    combiner = Combiner(CombinerConfig(output_file=out, config_file=config))
    combiner.run().unwrap()
    
    doc = yaml.safe_load(out.read_text())
    assert doc["info"] == {"title": "Gateway", "version": "2.1.0"}
    assert set(doc["paths"]) == {"/api/accounts/users", "/api/orders"}
    assert doc["paths"]["/api/accounts/users"]["get"]["tags"][0] == "service:accounts"


def test_invalid_config_reports_fields(tmp_path):
    config = tmp_path / "services.yaml"
    config.write_text(yaml.safe_dump({"services": [{"name": "x"}]}))
    error = Combiner(CombinerConfig(config_file=config)).run().unwrap_err()
    assert error.code == ErrorCode.E2002_INVALID_FORMAT
    assert error.metadata["errors"][0]["field"] == "services.0.spec_file"


def test_missing_input_is_not_found(tmp_path):
    combiner = Combiner(CombinerConfig(output_file=tmp_path / "out.yaml"))
    combiner.add_input(tmp_path / "missing.yaml")
    assert combiner.run().unwrap_err().code == ErrorCode.E6001_FILE_NOT_FOUND


def test_validation_rejects_empty_result(specs, tmp_path):
    users, _ = specs
    combiner = Combiner(CombinerConfig(output_file=tmp_path / "out.yaml", include_tags=["nothing"]))
    combiner.add_input(users)
    error = combiner.run().unwrap_err()
    assert error.message == "combined specification has no paths"
    assert not (tmp_path / "out.yaml").exists()


def test_validation_requires_responses(tmp_path):
    spec = write_spec(tmp_path / "bare.yaml", {"/x": {"get": {"summary": "no responses"}}})
    combiner = Combiner(CombinerConfig(output_file=tmp_path / "out.yaml"))
    combiner.add_input(spec)
    assert combiner.run().unwrap_err().message == "operation get /x has no responses"


def test_unsupported_format(specs, tmp_path):
    users, _ = specs
    combiner = Combiner(CombinerConfig(output_file=tmp_path / "out.yaml", format="xml"))
    combiner.add_input(users)
    assert combiner.run().unwrap_err().message == "unsupported format: xml (supported: yaml, json)"
