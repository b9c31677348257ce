"""
  Runtime helpers called from generated code.

These give fragment code the dialect's semantics where Python's differ:
checked casts, truncating integer division, remainder with the sign of the
dividend, string concatenation with non-strings, and assignments or
increments used as values.
"""

from __future__ import annotations

import math
from typing import Any, Callable

from shard.errors import InvalidCastError


def _type_label(t: Any) -> str:
    return getattr(t, "__name__", str(t))


def cast(target: type, value: Any) -> Any:
    if value is None:
        if target in (int, float, bool):
            raise InvalidCastError(f"Cannot cast null to type '{_type_label(target)}'.")
        return None
    if target is int:
        if isinstance(value, float):
            return int(value)
        if isinstance(value, str) and len(value) == 1:
            return ord(value)
    elif target is float and isinstance(value, int) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, target):
        return value
    raise InvalidCastError(
        f"Unable to cast object of type '{type(value).__name__}' to type '{_type_label(target)}'.")


def as_type(value: Any, target: type) -> Any:
    return value if isinstance(value, target) else None


def to_char(value: Any) -> str:
    if isinstance(value, int) and not isinstance(value, bool):
        return chr(value)
    if isinstance(value, str) and len(value) == 1:
        return value
    raise InvalidCastError(f"Unable to cast object of type '{type(value).__name__}' to type 'char'.")


def to_text(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def add(a: Any, b: Any) -> Any:
    if isinstance(a, str) or isinstance(b, str):
        return to_text(a) + to_text(b)
    return a + b


def _is_int(x: Any) -> bool:
    return isinstance(x, int) and not isinstance(x, bool)


def div(a: Any, b: Any) -> Any:
    if _is_int(a) and _is_int(b):
        q = abs(a) // abs(b)
        return q if (a >= 0) == (b >= 0) else -q
    if isinstance(a, (int, float)) and isinstance(b, (int, float)) and b == 0:
        if a == 0 or math.isnan(a):
            return math.nan
        return math.copysign(math.inf, a) * math.copysign(1.0, b)
    return a / b


def mod(a: Any, b: Any) -> Any:
    if _is_int(a) and _is_int(b):
        return a - b * div(a, b)
    if isinstance(a, (int, float)) and isinstance(b, (int, float)):
        return math.fmod(a, b) if b != 0 else math.nan
    return a % b


def coalesce(value: Any, fallback: Callable[[], Any]) -> Any:
    return value if value is not None else fallback()


def set_attr(obj: Any, name: str, value: Any) -> Any:
    setattr(obj, name, value)
    return value


def set_item(obj: Any, key: Any, value: Any) -> Any:
    obj[key] = value
    return value


def incr_attr(obj: Any, name: str, delta: int, postfix: bool) -> Any:
    old = getattr(obj, name)
    setattr(obj, name, old + delta)
    return old if postfix else old + delta


def incr_item(obj: Any, key: Any, delta: int, postfix: bool) -> Any:
    old = obj[key]
    obj[key] = old + delta
    return old if postfix else old + delta


class Array(list):
    """A list made by an array expression; remembers its element type for display."""

    element_type: type | None = None


def array(element_type: type | None, items: list) -> Array:
    result = Array(items)
    result.element_type = element_type
    return result


def new_array(default: Any, size: int, element_type: type | None = None) -> Array:
    if size < 0:
        raise ValueError("Arithmetic operation resulted in an overflow.")
    return array(element_type, [default] * size)
