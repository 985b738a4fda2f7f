"""Chain Step Library

Every built-in chain step is a frozen dataclass callable as
``step(value, baton) -> Result``. ``Ok`` carries the (possibly converted)
value on to the next step; ``Err`` carries the message that ends the chain.
Steps that descend into containers are coroutines.

Features:
- Frozen dataclass steps for immutability
- Compiled regex patterns shared at module level
- Textual comparison through ``sluice.core.coercion.to_text`` so "5" and 5
  validate alike
"""
from __future__ import annotations

import asyncio
import html
import math
import re
from abc import ABC, abstractmethod
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Awaitable

from sluice.core.coercion import (
    parse_float, parse_int, to_boolean, to_boolean_strict, to_text,
)
from sluice.core.errors import Err, Ok, Result, sequence_results

from . import net

if TYPE_CHECKING:
    from .chain import Chain

StepResult = Result[Any, str]

INT_PATTERN = re.compile(r"^-?(?:0|[1-9][0-9]*)$")
NUMERIC_PATTERN = re.compile(r"^-?[0-9]+$")
DECIMAL_PATTERN = re.compile(r"^(?:-?[0-9]+)?(?:\.[0-9]*)?(?:[eE][+-]?[0-9]+)?$")
ALPHA_PATTERN = re.compile(r"^[a-zA-Z]+$")
ALPHANUMERIC_PATTERN = re.compile(r"^[a-zA-Z0-9]+$")
EMAIL_PATTERN = re.compile(
    r"^[\w!#$%&'*+/=?^`{|}~-]+(?:\.[\w!#$%&'*+/=?^`{|}~-]+)*"
    r"@(?:[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?\.)+[A-Za-z0-9](?:[A-Za-z0-9-]{0,61}[A-Za-z0-9])?$"
)
URL_PATTERN = re.compile(
    r"^(?:(?:https?|ftp)://)?"
    r"(?:[^\s:@/]+(?::[^\s@/]*)?@)?"
    r"(?:localhost|(?:\d{1,3}\.){3}\d{1,3}|(?:[a-z0-9¡-￿](?:[a-z0-9¡-￿-]{0,62})?\.)+[a-z¡-￿]{2,})"
    r"(?::\d{2,5})?"
    r"(?:[/?#]\S*)?$",
    re.IGNORECASE,
)
UUID_PATTERN = re.compile(r"^[A-Fa-f0-9]{8}-[A-Fa-f0-9]{4}-[A-Fa-f0-9]{4}-[A-Fa-f0-9]{4}-[A-Fa-f0-9]{12}$")
BOOLEAN_FALSE_PATTERN = re.compile(r"^0$|^false$", re.IGNORECASE)
BOOLEAN_TRUE_PATTERN = re.compile(r"^1$|^true$", re.IGNORECASE)
MAX_URL_LENGTH = 2083
PORT_MESSAGE = "Value out of range [1,65535]"


class Step(ABC):
    """Base class for chain steps."""

    @property
    def help(self) -> str | None:
        """Human-readable description used by ``Chain.help``; None hides the step."""
        return None

    @abstractmethod
    def __call__(self, value: Any, baton: Any) -> StepResult | Awaitable[StepResult]:
        ...


def _is_array(value: Any) -> bool:
    return isinstance(value, (list, tuple))


def _as_number(value: Any) -> float:
    if isinstance(value, (int, float)):
        return value
    try:
        return float(to_text(value))
    except ValueError:
        return math.nan


# ============================================================================
# Markers
# ============================================================================

@dataclass(frozen=True, slots=True)
class Marker(Step):
    """Pass-through step recording a chain flag or constraint in the step list."""
    description: str | None = None

    @property
    def help(self) -> str | None: return self.description

    def __call__(self, value: Any, baton: Any) -> StepResult: return Ok(value)


# ============================================================================
# Pattern and String Predicates
# ============================================================================

@dataclass(frozen=True, slots=True)
class TextPattern(Step):
    """Match the textual form of a value against a regex."""
    pattern: re.Pattern[str]
    message: str = "Invalid characters"
    description: str | None = None
    negate: bool = False

    @property
    def help(self) -> str | None: return self.description

    def __call__(self, value: Any, baton: Any) -> StepResult:
        matched = self.pattern.search(to_text(value)) is not None
        return Ok(value) if matched != self.negate else Err(self.message)


@dataclass(frozen=True, slots=True)
class IsDecimal(Step):
    description: str = "Fractional number"

    @property
    def help(self) -> str: return self.description

    def __call__(self, value: Any, baton: Any) -> StepResult:
        text = to_text(value)
        if text in ("", ".", "-", "-.") or not DECIMAL_PATTERN.match(text):
            return Err("Invalid decimal")
        return Ok(value)


@dataclass(frozen=True, slots=True)
class IsUrl(Step):
    @property
    def help(self) -> str: return "URL"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        text = to_text(value)
        if not text or len(text) > MAX_URL_LENGTH or not URL_PATTERN.match(text):
            return Err("Invalid URL")
        return Ok(value)


@dataclass(frozen=True, slots=True)
class CaseCheck(Step):
    upper: bool = False

    @property
    def help(self) -> str: return "Uppercase string" if self.upper else "Lowercase string"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        text = to_text(value)
        expected = text.upper() if self.upper else text.lower()
        return Ok(value) if text == expected else Err("Invalid characters")


@dataclass(frozen=True, slots=True)
class NullCheck(Step):
    """``not_null`` when ``expect_null`` is False, ``is_null`` otherwise."""
    expect_null: bool = False

    @property
    def help(self) -> str: return "Null value or empty string" if self.expect_null else "Non-null value"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        is_empty = to_text(value) == ""
        return Ok(value) if is_empty == self.expect_null else Err("Invalid characters")


@dataclass(frozen=True, slots=True)
class NotEmpty(Step):
    @property
    def help(self) -> str: return "Non-empty string"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        return Err("String is empty") if not to_text(value).strip() else Ok(value)


@dataclass(frozen=True, slots=True)
class Equals(Step):
    expected: Any

    @property
    def help(self) -> str: return f"String equal to '{to_text(self.expected)}'"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        return Ok(value) if to_text(value) == to_text(self.expected) else Err("Not equal")


@dataclass(frozen=True, slots=True)
class Contains(Step):
    substring: str
    negate: bool = False

    @property
    def help(self) -> str:
        verb = "not containing" if self.negate else "containing"
        return f"String {verb} the substring '{self.substring}'"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        found = self.substring in to_text(value)
        return Ok(value) if found != self.negate else Err("Invalid characters")


@dataclass(frozen=True, slots=True)
class Length(Step):
    minimum: int
    maximum: float = math.inf

    @property
    def help(self) -> str:
        if math.isinf(self.maximum):
            return f"String longer than {self.minimum} characters"
        return f"String between {self.minimum} and {to_text(self.maximum)} characters long"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        size = len(to_text(value))
        if size < self.minimum or size > self.maximum:
            return Err(f"String is not in range ({self.minimum}..{to_text(self.maximum)})")
        return Ok(value)


@dataclass(frozen=True, slots=True)
class IsString(Step):
    @property
    def help(self) -> str: return "String"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        return Ok(value) if isinstance(value, str) else Err("Not a string")


# ============================================================================
# Membership
# ============================================================================

@dataclass(frozen=True, slots=True)
class Enumerated(Step):
    """Replace a key of ``mapping`` with its mapped value."""
    mapping: Mapping[str, Any]

    @property
    def help(self) -> str: return f"One of ({', '.join(self.mapping)})"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        key = to_text(value)
        if key in self.mapping:
            return Ok(self.mapping[key])
        return Err(f"Invalid value '{key}'. Should be one of ({', '.join(self.mapping)}).")


@dataclass(frozen=True, slots=True)
class InArray(Step):
    choices: tuple[Any, ...]

    @property
    def help(self) -> str: return f"One of ({', '.join(map(to_text, self.choices))})"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if value in self.choices:
            return Ok(value)
        return Err(f"Invalid value '{to_text(value)}'. Should be one of ({', '.join(map(to_text, self.choices))}).")


@dataclass(frozen=True, slots=True)
class NotIn(Step):
    """Reject a value (or any key/element of it) found in ``denied``."""
    denied: tuple[str, ...]
    case_sensitive: bool = True

    @property
    def help(self) -> str: return f"A value which is not one of: {', '.join(self.denied)}"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if isinstance(value, Mapping):
            candidates = list(value)
        elif _is_array(value):
            candidates = list(value)
        else:
            candidates = [value]
        for candidate in candidates:
            key = to_text(candidate)
            if not self.case_sensitive:
                key = key.lower()
            if key in self.denied:
                return Err(f"Value {key} is blacklisted")
        return Ok(value)


@dataclass(frozen=True, slots=True)
class IsUnique(Step):
    def __call__(self, value: Any, baton: Any) -> StepResult:
        if not _is_array(value):
            return Err("value must be an array")
        seen: set[str] = set()
        for item in value:
            key = to_text(item)
            if key in seen:
                return Err(f"item {key} is repeated more than once")
            seen.add(key)
        return Ok(value)


@dataclass(frozen=True, slots=True)
class ToUnique(Step):
    def __call__(self, value: Any, baton: Any) -> StepResult:
        if not _is_array(value):
            return Err("value must be an array")
        seen: set[str] = set()
        result = []
        for item in value:
            key = to_text(item)
            if key not in seen:
                seen.add(key)
                result.append(item)
        return Ok(result)


# ============================================================================
# Numbers and Booleans
# ============================================================================

@dataclass(frozen=True, slots=True)
class Range(Step):
    """Numeric bounds, or textual bounds when either bound is a string."""
    minimum: float | str
    maximum: float | str

    @property
    def help(self) -> str: return f"Value ({to_text(self.minimum)}..{to_text(self.maximum)})"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if isinstance(self.minimum, str) or isinstance(self.maximum, str):
            text = to_text(value)
            out = text < to_text(self.minimum) or text > to_text(self.maximum)
        else:
            number = _as_number(value)
            out = math.isnan(number) or number < self.minimum or number > self.maximum
        if out:
            return Err(f"Value out of range ({to_text(self.minimum)}..{to_text(self.maximum)})")
        return Ok(value)


@dataclass(frozen=True, slots=True)
class IsBoolean(Step):
    @property
    def help(self) -> str: return "Boolean"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if value is None:
            return Err("Not a boolean")
        text = to_text(value)
        if BOOLEAN_FALSE_PATTERN.match(text):
            return Ok(False)
        if BOOLEAN_TRUE_PATTERN.match(text):
            return Ok(True)
        return Err("Not a boolean")


@dataclass(frozen=True, slots=True)
class IsPort(Step):
    @property
    def help(self) -> str: return "Integer between 1-65535 inclusive"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        port = parse_int(value)
        if isinstance(port, float) or port < 1 or port > 65535:
            return Err(PORT_MESSAGE)
        return Ok(port)


@dataclass(frozen=True, slots=True)
class IsV1UUID(Step):
    @property
    def help(self) -> str: return "Version 1 UUID"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if not isinstance(value, str) or not UUID_PATTERN.match(value):
            return Err("Invalid UUID")
        if int(value[19], 16) & 12 != 8:
            return Err("Unsupported UUID variant")
        if value[14] != "1":
            return Err("UUID is not version 1")
        return Ok(value)


# ============================================================================
# Sanitizers
# ============================================================================

@dataclass(frozen=True, slots=True)
class Convert(Step):
    """Apply a total conversion function; never fails."""
    func: Any = field(compare=False)

    def __call__(self, value: Any, baton: Any) -> StepResult: return Ok(self.func(value))


TO_INT = Convert(parse_int)
TO_FLOAT = Convert(parse_float)
TO_BOOLEAN = Convert(to_boolean)
TO_BOOLEAN_STRICT = Convert(to_boolean_strict)
ENTITY_DECODE = Convert(lambda value: html.unescape(to_text(value)))
ENTITY_ENCODE = Convert(lambda value: html.escape(to_text(value)))


@dataclass(frozen=True, slots=True)
class Trim(Step):
    chars: str | None = None
    side: str = "both"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        text = to_text(value)
        match self.side:
            case "left":
                return Ok(text.lstrip(self.chars))
            case "right":
                return Ok(text.rstrip(self.chars))
            case _:
                return Ok(text.strip(self.chars))


@dataclass(frozen=True, slots=True)
class IfNull(Step):
    replacement: Any

    def __call__(self, value: Any, baton: Any) -> StepResult:
        return Ok(self.replacement if to_text(value) == "" else value)


# ============================================================================
# Network
# ============================================================================

@dataclass(frozen=True, slots=True)
class IsIP(Step):
    @property
    def help(self) -> str: return "IPv4 or IPv6 address"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if isinstance(value, (Mapping, list, tuple)) or not to_text(value).strip():
            return Err("IP address is not a string")
        try:
            return Ok(net.normalize_ip(to_text(value)))
        except net.AddressError as e:
            return Err(e.message)


@dataclass(frozen=True, slots=True)
class IsIPVersion(Step):
    version: int

    @property
    def help(self) -> str: return f"IPv{self.version} address"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if net.ip_version(value) != self.version:
            return Err(f"Invalid IPv{self.version}")
        return Ok(net.normalize_ip(value))


@dataclass(frozen=True, slots=True)
class IsCIDR(Step):
    @property
    def help(self) -> str: return "IPv4 or IPv6 subnet (CIDR notation)"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        parts = to_text(value).split("/")
        if len(parts) != 2:
            return Err("Invalid CIDR (subnet) notation")
        addr, prefix = parts
        version = net.ip_version(addr)
        if not version:
            return Err("Invalid IP")
        if not prefix.isdigit() or int(prefix) > (32 if version == 4 else 128):
            return Err("Invalid subnet length")
        return Ok(f"{net.normalize_ip(addr)}/{int(prefix)}")


@dataclass(frozen=True, slots=True)
class NotIPBlacklisted(Step):
    @property
    def help(self) -> str: return "IP address (not blacklisted)"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if not net.ip_version(value):
            return Err("Invalid IP")
        return Err("IP is blacklisted") if net.is_blacklisted(value) else Ok(value)


@dataclass(frozen=True, slots=True)
class IsHostname(Step):
    @property
    def help(self) -> str: return "Valid hostname"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        return Ok(value) if net.is_hostname(value) else Err("Invalid hostname")


@dataclass(frozen=True, slots=True)
class IsHostnameOrIP(Step):
    """Accept a hostname or IP; with ``fqdn`` the hostname must be an allowed FQDN."""
    fqdn: bool = False
    denylist: tuple[str, ...] = ()

    @property
    def help(self) -> str:
        return "Valid FQDN, IPv4 or IPv6 address" if self.fqdn else "Valid hostname, IPv4 or IPv6 address"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        if net.is_hostname(value):
            violation = net.fqdn_violation(value, self.denylist) if self.fqdn else None
            return Err(violation) if violation else Ok(value)
        if net.ip_version(value):
            return Ok(value)
        return Err("Not a valid hostname, IPv4 or IPv6 address")


@dataclass(frozen=True, slots=True)
class IsAddressPair(Step):
    @property
    def help(self) -> str: return "ip:port pair"

    def __call__(self, value: Any, baton: Any) -> StepResult:
        text = to_text(value)
        addr, sep, port = text.rpartition(":")
        if not sep:
            return Err("Missing colon (:). Address must be in the following format - ip:port")
        if not net.ip_version(addr):
            return Err("IP address in the address pair is not valid")
        match IsPort()(port, baton):
            case Ok(number):
                return Ok(f"{net.normalize_ip(addr)}:{number}")
            case _:
                return Err("Port in the address pair is out of range [1,65535]")


# ============================================================================
# Containers
# ============================================================================

def check_num_items(owner: Chain, value: Any) -> str | None:
    """Message when ``value`` breaks the owner chain's ``num_items`` bound, else None."""
    bounds = owner.num_items_bounds
    if bounds is None:
        return None
    minimum, maximum = bounds
    size = len(value)
    if size < minimum or size > maximum:
        return f"Object needs to have between {minimum} and {to_text(maximum)} items"
    return None


@dataclass(frozen=True, slots=True, eq=False)
class IsArray(Step):
    """Apply ``inner`` to every element; results keep input order."""
    owner: Chain
    inner: Chain

    @property
    def help(self) -> str: return f"Array [{','.join(self.inner.help())}]"

    async def __call__(self, value: Any, baton: Any) -> StepResult:
        if not _is_array(value):
            return Err("Not an array")
        if (message := check_num_items(self.owner, value)) is not None:
            return Err(message)
        return sequence_results(await asyncio.gather(*(self.inner.apply(item, baton) for item in value)))


@dataclass(frozen=True, slots=True, eq=False)
class IsHash(Step):
    """Apply ``key_chain`` to each key and ``value_chain`` to each value."""
    owner: Chain
    key_chain: Chain
    value_chain: Chain

    @property
    def help(self) -> str:
        return f"Hash [{','.join(self.key_chain.help())}:{','.join(self.value_chain.help())}]"

    async def __call__(self, value: Any, baton: Any) -> StepResult:
        if not isinstance(value, Mapping):
            return Err("Not a hash")
        if (message := check_num_items(self.owner, value)) is not None:
            return Err(message)
        cleaned: dict[Any, Any] = {}
        for key, item in value.items():
            match await self.key_chain.apply(key, baton):
                case Err(message):
                    return Err(f"Key {key}: {message}")
                case Ok(cleaned_key):
                    pass
            match await self.value_chain.apply(item, baton):
                case Err(message):
                    return Err(f"Value for key '{key}': {message}")
                case Ok(cleaned_item):
                    cleaned[cleaned_key] = cleaned_item
        return Ok(cleaned)
