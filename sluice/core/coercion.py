"""Text and Scalar Coercion

Chain steps compare and convert values through their textual form the way
loosely-typed clients send them ("1", 1, true and "true" all mean the same
thing), and XML parsing has to turn element text back into typed values.
Both share the rules in this module.
"""
from __future__ import annotations

import math
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass
from enum import Enum
from typing import Any

_INT_PREFIX = re.compile(r"^\s*([+-]?\d+)")
_FLOAT_PREFIX = re.compile(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)")
_CANONICAL_INT = re.compile(r"^-?(?:0|[1-9]\d*)$")

FALSY_TEXT = frozenset({"0", "false", ""})
TRUTHY_STRICT_TEXT = frozenset({"1", "true"})


def to_text(value: Any) -> str:
    """Render ``value`` as text; None and mappings become the empty string."""
    match value:
        case None:
            return ""
        case bool():
            return "true" if value else "false"
        case str():
            return value
        case int():
            return str(value)
        case float():
            if math.isnan(value):
                return "NaN"
            if math.isinf(value):
                return "Infinity" if value > 0 else "-Infinity"
            if value.is_integer():
                return str(int(value))
            return repr(value)
        case Mapping():
            return ""
        case list() | tuple():
            return ",".join(to_text(item) for item in value)
        case _:
            return str(value)


def to_boolean(value: Any) -> bool:
    """False for 0, "0", false, "false", None and ""; True otherwise."""
    return to_text(value) not in FALSY_TEXT


def to_boolean_strict(value: Any) -> bool:
    """True only for 1, true and "true"."""
    return to_text(value) in TRUTHY_STRICT_TEXT


def parse_int(value: Any) -> int | float:
    """Leading-integer parse; NaN when no integer prefix exists."""
    match = _INT_PREFIX.match(to_text(value))
    return int(match.group(1)) if match else math.nan


def parse_float(value: Any) -> float:
    """Leading-float parse; NaN when no numeric prefix exists."""
    text = to_text(value).strip()
    if text.lstrip("+-").startswith("Infinity"):
        return -math.inf if text.startswith("-") else math.inf
    match = _FLOAT_PREFIX.match(text)
    return float(match.group(1)) if match else math.nan


def parse_scalar(text: str | None) -> Any:
    """Turn element text into a bool or number when the text is its canonical form."""
    if text is None:
        return None
    if text == "true":
        return True
    if text == "false":
        return False
    if _CANONICAL_INT.match(text):
        return int(text)
    try:
        number = float(text)
    except ValueError:
        return text
    if math.isfinite(number) and to_text(number) == text:
        return number
    return text


class CoerceTo(str, Enum):
    """Declared coercion for a field's parsed text."""
    ARRAY = "array"
    BOOLEAN = "boolean"


class CoercionRule(ABC):
    """Converts parsed XML text into a field value."""

    @abstractmethod
    def coerce(self, text: str | None, *, in_list: bool = False) -> Any:
        ...

    @abstractmethod
    def empty(self) -> Any:
        """Value for an element that has neither text nor children."""


@dataclass(frozen=True, slots=True)
class ScalarCoercion(CoercionRule):
    def coerce(self, text: str | None, *, in_list: bool = False) -> Any:
        return parse_scalar(text)

    def empty(self) -> Any:
        return None


@dataclass(frozen=True, slots=True)
class BooleanCoercion(CoercionRule):
    def coerce(self, text: str | None, *, in_list: bool = False) -> bool:
        return to_boolean(text)

    def empty(self) -> bool:
        return False


@dataclass(frozen=True, slots=True)
class ArrayCoercion(CoercionRule):
    """Wraps a lone scalar unless the text already came from a list element."""

    def coerce(self, text: str | None, *, in_list: bool = False) -> Any:
        value = parse_scalar(text)
        return value if in_list else [value]

    def empty(self) -> list:
        return []


COERCION_RULES: dict[CoerceTo | None, CoercionRule] = {
    None: ScalarCoercion(),
    CoerceTo.BOOLEAN: BooleanCoercion(),
    CoerceTo.ARRAY: ArrayCoercion(),
}


def rule_for(coerce_to: CoerceTo | None) -> CoercionRule:
    return COERCION_RULES[coerce_to]
