"""Dynamic Values and Absence-Capable Fields

The dynamic input of every schema is plain decoded JSON: None, bool, int,
float, str, list and dict[str, ...]. Record fields that must tell "no value"
apart from a zero value are declared as ``Held[T]``.

Usage:
    @dataclass
    class Viewport:
        bearing: Held[float] = field(default_factory=Held.absent)

    Held.of(12.5).get()      # 12.5
    deref(Held.absent())     # None
"""
from __future__ import annotations

from dataclasses import dataclass, fields, is_dataclass
from typing import Any, Callable, Generic, TypeVar, Union

T = TypeVar("T")
U = TypeVar("U")

Value = Union[None, bool, int, float, str, list, dict]


@dataclass(frozen=True, slots=True)
class Held(Generic[T]):
    """Explicit present(T) / absent container for record fields."""
    value: T | None = None
    present: bool = False
    
    @classmethod
    def of(cls, value: T) -> Held[T]: return cls(value=value, present=True)
    
    @classmethod
    def absent(cls) -> Held[T]: return ABSENT
    
    @property
    def is_present(self) -> bool: return self.present
    
    def get(self) -> T:
        if not self.present:
            raise LookupError("Held value is absent")
        return self.value
    
    def or_else(self, default: T) -> T: return self.value if self.present else default
    
    def map(self, f: Callable[[T], U]) -> Held[U]:
        return Held.of(f(self.value)) if self.present else ABSENT
    
    def __bool__(self) -> bool: return self.present
    
    def __repr__(self) -> str:
        return f"Held({self.value!r})" if self.present else "Held.absent()"


ABSENT: Held[Any] = Held()


def deref(value: Any) -> Any:
    """A held reference equals its referent when present and None when absent."""
    if isinstance(value, Held):
        return value.value if value.present else None
    return value


def is_absent(value: Any) -> bool:
    return deref(value) is None


def to_plain(value: Any) -> Any:
    """Convert records, held references and tuples into plain JSON-shaped data.
    
    Absent held fields are dropped from the resulting mapping.
    """
    if isinstance(value, Held):
        return to_plain(value.value) if value.present else None
    if is_dataclass(value) and not isinstance(value, type):
        out: dict[str, Any] = {}
        for f in fields(value):
            attr = getattr(value, f.name)
            if isinstance(attr, Held) and not attr.present:
                continue
            out[f.metadata.get("alias", f.name)] = to_plain(attr)
        return out
    if isinstance(value, dict):
        return {str(k): to_plain(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_plain(v) for v in value]
    return value
