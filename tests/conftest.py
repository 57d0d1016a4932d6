"""Shared fixtures for the apiforge test suite."""
from __future__ import annotations

import pytest

from apiforge.core.validation import email, integer, number, object_, string


@pytest.fixture
def user_schema():
    return object_({
        "username": string().min(3).max(50).pattern(r"^[a-zA-Z0-9_]+$").required(),
        "email": email().required(),
        "age": integer().min(13).max(120).optional(),
    }).required()


@pytest.fixture
def viewport_schema():
    return object_({
        "bearing": number().min(0).max(360).optional(),
        "zoom": number().min(0).max(24).optional(),
    }).optional()


@pytest.fixture
def deep_schema():
    return object_({
        "user": object_({
            "profile": object_({
                "email": string().email().required(),
            }).required(),
        }).required(),
    }).required()
