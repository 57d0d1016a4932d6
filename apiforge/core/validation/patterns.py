"""Compiled Pattern Cache

Process-wide cache of compiled regular expressions keyed by pattern string.
Compilation happens once per pattern behind a single lock; entries are never
evicted. Failed compilations are cached too, so a bad pattern reports the
same error on every call.

Patterns use Python's ``re`` dialect and are matched against the whole
string. Look-around constructs work here but are not portable to every
JSON-Schema consumer, so ``portability_warnings`` flags them for the
document generator.
"""
from __future__ import annotations

import re
import threading

from apiforge.core.errors import AppError, Err, ErrorCode, Ok, Result

_NON_PORTABLE = (
    ("(?=", "look-ahead"),
    ("(?!", "negative look-ahead"),
    ("(?<=", "look-behind"),
    ("(?<!", "negative look-behind"),
    ("(?P<", "python named group"),
    ("(?P=", "python named backreference"),
)


class PatternCache:
    """Thread-safe compile-once regex cache."""
    
    __slots__ = ("_entries", "_lock")
    
    def __init__(self):
        self._entries: dict[str, Result[re.Pattern, AppError]] = {}
        self._lock = threading.Lock()
    
    def get(self, pattern: str) -> Result[re.Pattern, AppError]:
        cached = self._entries.get(pattern)
        if cached is not None:
            return cached
        with self._lock:
            cached = self._entries.get(pattern)
            if cached is None:
                cached = self._entries[pattern] = _compile(pattern)
            return cached
    
    def __len__(self) -> int: return len(self._entries)
    
    def __contains__(self, pattern: str) -> bool: return pattern in self._entries


def _compile(pattern: str) -> Result[re.Pattern, AppError]:
    try:
        return Ok(re.compile(pattern))
    except re.error as e:
        return Err(AppError(code=ErrorCode.E2002_INVALID_FORMAT, message=f"invalid regex pattern: {e}",
            metadata={"pattern": pattern}))


_cache = PatternCache()


def compiled(pattern: str) -> Result[re.Pattern, AppError]:
    """Compiled pattern from the shared cache."""
    return _cache.get(pattern)


def full_match(pattern: str, value: str) -> Result[bool, AppError]:
    return compiled(pattern).map(lambda rx: rx.fullmatch(value) is not None)


def portability_warnings(pattern: str) -> list[str]:
    """Constructs in ``pattern`` that some JSON-Schema validators reject."""
    return [name for token, name in _NON_PORTABLE if token in pattern]
