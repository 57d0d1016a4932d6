"""Array and object validators."""
from __future__ import annotations

import re

import pytest

from apiforge.core.errors import ErrorCode
from apiforge.core.validation import array, boolean, integer, number, object_, string


# ============================================================================
# Array
# ============================================================================

def test_array_type_check():
    assert array(string()).required().validate("abc").message == "invalid type, expected array"


def test_array_collects_every_element_error():
    schema = array(integer().min(0).required()).required()
    error = schema.validate([1, -1, "x", 3])
    assert error.message == "array contains invalid items"
    assert [d.field for d in error.details] == ["[1]", "[2]"]
    assert error.leaf_paths() == [
        ("[1]", "value is too small, minimum is 0"),
        ("[2]", "invalid type, expected number"),
    ]


def test_array_item_counts():
    schema = array(string()).min_items(1).max_items(2).required()
    assert schema.validate([]).message == "array has too few items, minimum is 1"
    assert schema.validate(["a", "b", "c"]).message == "array has too many items, maximum is 2"


def test_unique_items_uses_deep_equality():
    schema = array().unique_items().required()
    assert schema.validate([{"a": 1, "b": [1, 2]}, {"b": [1, 2], "a": 1}]).message == "array items must be unique"
    assert schema.validate([1, True]) is None
    assert schema.validate([1, 1.0]) is not None


def test_unique_items_handles_integers_beyond_float_range():
    schema = array().unique_items().required()
    huge = 10**400
    assert schema.validate([huge, huge + 1]) is None
    assert schema.validate([huge, huge]).message == "array items must be unique"
    assert array().contains(huge).required().validate([1, huge]) is None


def test_contains():
    schema = array(string()).contains("admin").required()
    assert schema.validate(["user", "admin"]) is None
    assert schema.validate(["user"]).message == "array must contain value: admin"


def test_array_default():
    assert array(string()).optional().default(["x"]).parse(None).unwrap() == ["x"]


# ============================================================================
# Object
# ============================================================================

def test_object_type_check():
    assert object_({}).required().validate([1]).message == "invalid type, expected object"


def test_missing_required_property(user_schema):
    error = user_schema.validate({"username": "alice"})
    assert error.message == "object validation failed"
    [child] = error.details
    assert child.field == "email"
    assert "required" in child.message
    assert child.code is ErrorCode.E2001_REQUIRED_FIELD_MISSING


def test_errors_follow_declaration_order(user_schema):
    error = user_schema.validate({"age": 5, "email": "nope", "username": "a"})
    assert [d.field for d in error.details] == ["username", "email", "age"]


def test_valid_object_passes(user_schema):
    assert user_schema.validate({"username": "alice_1", "email": "alice@example.com", "age": 30}) is None


def test_extra_keys_are_permissive_by_default(user_schema):
    assert user_schema.validate({"username": "alice", "email": "a@example.com", "role": "x"}) is None


def test_strict_rejects_undeclared_keys():
    schema = object_({"a": string().required()}).strict().required()
    error = schema.validate({"a": "x", "b": 1})
    [child] = error.details
    assert (child.field, child.message) == ("b", "unexpected property: b")
    assert child.code is ErrorCode.E2007_ADDITIONAL_PROPERTY


def test_additional_schema_validates_extra_values():
    schema = object_({}).additional(integer().required()).required()
    assert schema.validate({"x": 1, "y": 2}) is None
    error = schema.validate({"x": 1, "y": "two"})
    assert error.leaf_paths() == [("y", "invalid type, expected number")]


def test_partial_skips_absent_members(user_schema):
    schema = object_({"username": string().min(3).required(), "email": string().required()}).partial().required()
    assert schema.validate({"username": "alice"}) is None
    assert schema.validate({"username": "al"}) is not None


def test_property_count_bounds():
    schema = object_({}).min_properties(1).max_properties(2).required()
    assert schema.validate({}).message == "object has too few properties, minimum is 1"
    assert schema.validate({"a": 1, "b": 2, "c": 3}).message == "object has too many properties, maximum is 2"


def test_nested_pointer_field_reads_through_parent(viewport_schema):
    schema = object_({"viewport": viewport_schema}).required()
    error = schema.validate({"viewport": {"bearing": 400}})
    rendered = str(error)
    assert "viewport.bearing: value is too large, maximum is 360" in rendered.splitlines()
    assert not re.search(r"0x[0-9a-f]+|\{0x", rendered + error.to_json())


def test_deep_error_path_flattens_to_leaf_field(deep_schema):
    error = deep_schema.validate({"user": {"profile": {}}})
    entries = [e for e in error.flatten() if e["field"] == "email"]
    assert len(entries) == 1
    assert "required" in entries[0]["message"]
    assert error.leaf_paths() == [("user.profile.email", "missing required field: email")]


def test_input_mapping_is_not_mutated(user_schema):
    payload = {"username": "a", "extra": [1, 2]}
    snapshot = {"username": "a", "extra": [1, 2]}
    user_schema.validate(payload)
    assert payload == snapshot


def test_with_property_replaces_existing():
    schema = object_({"a": string().required()}).with_property("a", integer().required()).required()
    assert schema.validate({"a": 1}) is None
    assert list(schema.properties) == ["a"]


@pytest.mark.parametrize("value", [None, {}])
def test_optional_object_with_only_optional_members(viewport_schema, value):
    assert viewport_schema.validate(value) is None


def test_object_parse_fills_property_defaults():
    schema = object_({
        "page": integer().optional().default(1),
        "size": integer().optional(),
        "inner": object_({"flag": boolean().optional().default(True)}).optional().default({}),
    }).required()
    assert schema.parse({"size": 5}).unwrap() == {"page": 1, "size": 5, "inner": {"flag": True}}
    assert schema.parse({"page": 3, "inner": {"flag": False}}).unwrap() == {"page": 3, "inner": {"flag": False}}
