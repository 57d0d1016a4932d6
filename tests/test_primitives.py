"""String, number and boolean validators and the builder states."""
from __future__ import annotations

import pytest

from apiforge.core.errors import ErrorCode
from apiforge.core.validation import boolean, email, integer, number, string, url


# ============================================================================
# Presence
# ============================================================================

def test_required_rejects_absent():
    error = string().required().validate(None)
    assert error is not None
    assert "required" in error.message
    assert error.code is ErrorCode.E2001_REQUIRED_FIELD_MISSING


def test_optional_accepts_absent():
    assert string().optional().validate(None) is None


def test_default_is_substituted_on_parse():
    schema = integer().min(1).optional().default(20)
    assert schema.parse(None).unwrap() == 20
    assert schema.parse(5).unwrap() == 5


def test_unfinalized_base_behaves_as_required():
    assert string().validate(None) is not None


def test_required_state_has_no_default_transition():
    assert not hasattr(string().required(), "default")
    assert not hasattr(string().optional().default("x"), "custom")
    assert not hasattr(number().required(), "min")


def test_setters_return_new_schemas():
    base = string().min(3)
    longer = base.min(5)
    assert base.validate("abcd") is None
    assert longer.validate("abcd") is not None


def test_contradictory_bounds_fail_at_construction():
    with pytest.raises(ValueError):
        string().min(10).max(5)
    with pytest.raises(ValueError):
        string().min(-1)
    with pytest.raises(ValueError):
        number().multiple_of(0)


# ============================================================================
# String
# ============================================================================

def test_string_type_check():
    error = string().required().validate(42)
    assert error.message == "invalid type, expected string"
    assert error.value == 42


def test_string_length_counts_code_points():
    schema = string().min(3).max(3).required()
    assert schema.validate("héé") is None
    assert schema.validate("日本語") is None
    assert "too long" in schema.validate("abcd").message


def test_required_string_rejects_empty():
    assert string().required().validate("").message == "string is required"


def test_optional_string_allows_empty_by_default():
    schema = string().min(3).optional()
    assert schema.validate("") is None
    assert schema.allow_empty(False).validate("") is not None


def test_pattern_is_full_match():
    schema = string().pattern(r"[a-z]+").required()
    assert schema.validate("abc") is None
    assert schema.validate("abc1").message == "string does not match required pattern"


def test_uncompilable_pattern_never_matches():
    error = string().pattern(r"(unclosed").required().validate("anything")
    assert error.message.startswith("invalid regex pattern:")


@pytest.mark.parametrize("value, ok", [
    ("user@example.com", True),
    ("first.last+tag@sub.example.org", True),
    ("no-at-sign", False),
    ("two@@example.com", False),
    ("user@nodot", False),
])
def test_email_format(value, ok):
    assert (email().required().validate(value) is None) is ok


def test_url_requires_scheme_and_authority():
    schema = url().required()
    assert schema.validate("https://example.com/path") is None
    assert schema.validate("example.com").message == "invalid URL format"
    assert schema.validate("mailto:") is not None


def test_enum_and_const():
    assert string().enum("asc", "desc").required().validate("up").message == "value must be one of: asc, desc"
    assert string().const("v1").required().validate("v2").message == "value must be v1"


def test_custom_checks_run_last():
    schema = string().min(2).custom(lambda v: "must not be admin" if v == "admin" else None).required()
    assert schema.validate("x").message.startswith("string is too short")
    assert schema.validate("admin").message == "must not be admin"
    assert schema.validate("alice") is None


def test_custom_messages_override_defaults():
    schema = string().min(3).with_message("minLength", "too short!").with_message("required", "name please").required()
    assert schema.validate("a").message == "too short!"
    assert schema.validate(None).message == "name please"


# ============================================================================
# Number
# ============================================================================

def test_number_accepts_int_and_float_but_not_bool():
    schema = number().required()
    assert schema.validate(3) is None
    assert schema.validate(3.5) is None
    assert schema.validate(True).message == "invalid type, expected number"
    assert schema.validate("3").message == "invalid type, expected number"


def test_integer_rejects_fractional_values():
    schema = integer().required()
    assert schema.validate(4.0) is None
    assert schema.validate(4.5).message == "value must be an integer"


def test_inclusive_bounds():
    schema = number().min(0).max(360).required()
    assert schema.validate(0) is None
    assert schema.validate(360) is None
    error = schema.validate(400)
    assert error.message == "value is too large, maximum is 360"
    assert error.code is ErrorCode.E2003_OUT_OF_RANGE


def test_exclusive_bounds():
    schema = number().exclusive_min(0).exclusive_max(1).required()
    assert schema.validate(0.5) is None
    assert schema.validate(0).message == "value must be greater than 0"
    assert schema.validate(1).message == "value must be less than 1"


def test_multiple_of_uses_tolerance_for_floats():
    schema = number().multiple_of(0.1).required()
    assert schema.validate(0.3) is None
    assert schema.validate(0.35).message == "value must be a multiple of 0.1"
    assert integer().multiple_of(5).required().validate(12) is not None


def test_non_finite_floats_are_rejected():
    schema = number().min(0).max(10).required()
    for value in (float("nan"), float("inf"), float("-inf")):
        error = schema.validate(value)
        assert error.message == "invalid type, expected finite number"
        assert error.code is ErrorCode.E2004_INVALID_TYPE
    assert integer().required().validate(float("inf")).message == "invalid type, expected finite number"


def test_integers_beyond_float_range_are_checked_exactly():
    huge = 10**400
    assert integer().required().validate(huge) is None
    assert number().max(10).required().validate(huge).message == "value is too large, maximum is 10"
    assert number().multiple_of(5).required().validate(huge) is None
    assert number().multiple_of(5).required().validate(huge + 1).message == "value must be a multiple of 5"
    assert number().multiple_of(2.0).required().validate(huge) is None
    assert number().multiple_of(0.5).required().validate(huge) is None
    assert number().multiple_of(0.3).required().validate(huge) is not None


def test_positive_and_negative():
    assert number().positive().required().validate(0).message == "value must be positive"
    assert number().negative().required().validate(1).message == "value must be negative"
    assert number().positive().negative().required().validate(-1) is None


def test_number_enum():
    assert integer().enum(1, 2, 3).required().validate(4).message == "value must be one of: 1, 2, 3"


# ============================================================================
# Boolean
# ============================================================================

def test_boolean_type_only():
    schema = boolean().required()
    assert schema.validate(False) is None
    assert schema.validate(0).message == "invalid type, expected boolean"


def test_boolean_default_false_is_kept():
    assert boolean().optional().default(False).parse(None).unwrap() is False


def test_describe_reports_presence_and_constraints():
    info = integer().min(1).max(100).optional().default(20).describe()
    assert info.optional and info.has_default and not info.required
    assert info.default_value == 20
    assert info.constraints == {"minimum": 1, "maximum": 100}
