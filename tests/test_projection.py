"""OpenAPI / JSON-Schema projection and the schema generators."""
from __future__ import annotations

import json

from apiforge.core.validation import (
    ComponentsGenerator,
    JSONSchemaGenerator,
    array,
    boolean,
    email,
    integer,
    number,
    object_,
    one_of,
    pattern_report,
    string,
    url,
)


def test_required_string_projection_and_enclosing_required_list():
    username = string().min(3).max(50).pattern(r"^[a-zA-Z0-9_]+$").required()
    assert username.project().to_dict() == {
        "type": "string", "minLength": 3, "maxLength": 50, "pattern": "^[a-zA-Z0-9_]+$"}
    doc = object_({"username": username, "nickname": string().optional()}).required().project().to_dict()
    assert doc["required"] == ["username"]


def test_unset_fields_are_omitted():
    assert string().required().project().to_dict() == {"type": "string"}
    assert object_({}).required().project().to_dict() == {"type": "object"}


def test_number_projection():
    assert integer().min(1).max(100).multiple_of(5).required().project().to_dict() == {
        "type": "integer", "minimum": 1, "maximum": 100, "multipleOf": 5}
    assert number().exclusive_min(0.5).required().project().to_dict() == {"type": "number", "exclusiveMinimum": 0.5}
    assert number().positive().required().project().to_dict() == {"type": "number", "exclusiveMinimum": 0}


def test_formats_enum_const_and_default():
    assert email().required().project().format == "email"
    assert url().required().project().format == "uri"
    assert string().enum("a", "b").optional().default("a").project().to_dict() == {
        "type": "string", "enum": ["a", "b"], "default": "a"}
    assert string().const("v1").required().project().to_dict()["const"] == "v1"
    assert boolean().optional().default(False).project().to_dict() == {"type": "boolean", "default": False}


def test_documentation_fields_are_copied():
    doc = (
        string().title("Name").description("Display name").deprecated().read_only()
        .required().example("alice").examples({"short": "al", "long": "alexandra"})
    ).project().to_dict()
    assert doc["title"] == "Name"
    assert doc["description"] == "Display name"
    assert doc["deprecated"] is True
    assert doc["readOnly"] is True
    assert doc["example"] == "alice"
    assert doc["examples"] == ["al", "alexandra"]


def test_array_projection():
    doc = array(string().min(1)).min_items(1).max_items(5).unique_items().contains("x").required().project().to_dict()
    assert doc == {"type": "array", "items": {"type": "string", "minLength": 1}, "minItems": 1, "maxItems": 5,
        "uniqueItems": True, "contains": {"const": "x"}}


def test_additional_properties_dual_encoding():
    assert object_({}).strict().required().project().to_dict()["additionalProperties"] is False
    assert object_({}).additional(integer()).required().project().to_dict()["additionalProperties"] == {
        "type": "integer"}


def test_object_property_bounds_and_nesting(deep_schema):
    doc = deep_schema.project().to_dict()
    assert doc["properties"]["user"]["properties"]["profile"]["required"] == ["email"]
    assert object_({}).min_properties(1).max_properties(3).required().project().to_dict() == {
        "type": "object", "minProperties": 1, "maxProperties": 3}


def test_composition_projection():
    doc = one_of(string().required(), integer().required()).required().project().to_dict()
    assert doc == {"oneOf": [{"type": "string"}, {"type": "integer"}]}


def test_required_keys_are_subset_of_accepted_input(user_schema):
    payload = {"username": "alice", "email": "alice@example.com"}
    assert user_schema.validate(payload) is None
    assert set(user_schema.project().required) <= set(payload)


def test_json_schema_generator_adds_dialect(user_schema):
    doc = json.loads(JSONSchemaGenerator().generate(user_schema))
    assert doc["$schema"] == "https://json-schema.org/draft/2020-12/schema"
    assert doc["type"] == "object"


def test_components_generator():
    components = ComponentsGenerator().generate_components({"Name": string().required()})
    assert components == {"schemas": {"Name": {"type": "string"}}}


def test_pattern_report_flags_look_around():
    schema = object_({
        "password": string().pattern(r"^(?=.*[0-9]).{8,}$").required(),
        "tags": array(string().pattern(r"^[a-z]+$")).optional(),
    }).required()
    assert pattern_report(schema) == {"password": ["look-ahead"]}
