"""Validator Chains

A ``Chain`` is an ordered list of steps applied to one value. Every builder
method appends a step and returns the chain, so rules read left to right:

    Chain().is_string().length(1, 64).optional()

Applying a chain threads each step's output into the next step and stops at
the first failure. ``optional``, ``immutable`` and ``update_required`` set a
chain flag and place a marker step first; positions reported by
``get_validator_pos`` are insertion counters, not list indexes.
"""
from __future__ import annotations

import inspect
import math
import re
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, replace
from typing import Any, Callable, Self

from sluice.core.errors import ConfigurationError, Err, ErrorCode, Ok, Result
from sluice.core.logging import validation_logger

from . import validators as v
from .registry import ValidatorRegistry, default_registry

log = validation_logger()

_REGEX_FLAGS = {"i": re.IGNORECASE, "m": re.MULTILINE, "s": re.DOTALL, "x": re.VERBOSE}


@dataclass(frozen=True, slots=True)
class ValidatorStep:
    name: str
    func: Callable[[Any, Any], Any]
    help: str | None
    pos: int


def error_message(error: Any) -> str:
    """Message text of a step failure (plain string, FieldError or AppError)."""
    if isinstance(error, str):
        return error
    return getattr(error, "message", None) or str(error)


def _compile(pattern: str | re.Pattern[str], flags: str | int | None) -> re.Pattern[str]:
    if isinstance(pattern, re.Pattern):
        return pattern
    if not pattern:
        raise ConfigurationError("No pattern provided")
    if isinstance(flags, str):
        flags = sum(_REGEX_FLAGS.get(flag, 0) for flag in set(flags))
    return re.compile(pattern, flags or 0)


def _pattern_help(prefix: str, pattern: str | re.Pattern[str], flags: str | int | None) -> str:
    source = pattern.pattern if isinstance(pattern, re.Pattern) else pattern
    return f"{prefix} /{source}/{flags if isinstance(flags, str) else ''}"


class Chain:
    """Ordered, fluent composition of validation and conversion steps."""

    __slots__ = (
        "validators", "target", "is_optional", "is_immutable", "is_update_required",
        "num_items_bounds", "_count", "_registry",
    )

    def __init__(self, registry: ValidatorRegistry | None = None):
        self.validators: list[ValidatorStep] = []
        self.target: str | None = None
        self.is_optional = False
        self.is_immutable = False
        self.is_update_required = False
        self.num_items_bounds: tuple[int, float] | None = None
        self._count = 0
        self._registry = registry

    # ------------------------------------------------------------------
    # Step bookkeeping and introspection
    # ------------------------------------------------------------------

    def _push(self, name: str, step: Callable[[Any, Any], Any], help: str | None = None) -> Self:
        if help is None and isinstance(step, v.Step):
            help = step.help
        self.validators.append(ValidatorStep(name, step, help, self._count))
        self._count += 1
        return self

    def _unshift(self, name: str, help: str) -> Self:
        self.validators.insert(0, ValidatorStep(name, v.Marker(help), help, self._count))
        self._count += 1
        return self

    def get_validator_pos(self, name: str) -> int:
        """Insertion position of the first step called ``name``, or -1."""
        return next((step.pos for step in self.validators if step.name == name), -1)

    def has_validator(self, name: str) -> bool:
        return self.get_validator_pos(name) >= 0

    def get_validator_at_pos(self, pos: int) -> ValidatorStep | None:
        return next((step for step in self.validators if step.pos == pos), None)

    def help(self) -> list[str]:
        """Help text of every step that has one, in step order."""
        return [step.help for step in self.validators if step.help]

    def clone(self) -> Chain:
        """Copy with its own step list; container steps are bound to the copy."""
        copy = Chain(self._registry)
        copy.validators = [
            replace(step, func=replace(step.func, owner=copy)) if isinstance(step.func, (v.IsArray, v.IsHash)) else step
            for step in self.validators
        ]
        copy.target = self.target
        copy.is_optional = self.is_optional
        copy.is_immutable = self.is_immutable
        copy.is_update_required = self.is_update_required
        copy.num_items_bounds = self.num_items_bounds
        copy._count = self._count
        return copy

    async def apply(self, value: Any, baton: Any = None) -> Result[Any, str]:
        """Run every step over ``value``; the first failure ends the chain."""
        for step in self.validators:
            outcome = step.func(value, baton)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            match outcome:
                case Ok(value):
                    continue
                case Err(error):
                    return Err(error_message(error))
                case _:
                    log.error("validator_bad_return", validator=step.name, returned=type(outcome).__name__)
                    return Err(f"Validator '{step.name}' must return Ok or Err")
        return Ok(value)

    # ------------------------------------------------------------------
    # Flags
    # ------------------------------------------------------------------

    def optional(self) -> Self:
        self.is_optional = True
        return self._unshift("optional", "Optional")

    def immutable(self) -> Self:
        self.is_immutable = True
        return self._unshift("immutable", "Immutable")

    def update_required(self) -> Self:
        self.is_update_required = True
        return self._unshift("update_required", "Required for update")

    def rename(self, target: str) -> Self:
        """Write the cleaned value under ``target`` instead of the schema key."""
        self.target = target
        return self

    # ------------------------------------------------------------------
    # Numbers and booleans
    # ------------------------------------------------------------------

    def is_int(self) -> Self:
        return self._push("is_int", v.TextPattern(v.INT_PATTERN, "Invalid integer", "Integer"))

    def is_numeric(self) -> Self:
        return self._push(
            "is_numeric", v.TextPattern(v.NUMERIC_PATTERN, "Invalid number", "Whole number (may be zero padded)"),
        )

    def is_decimal(self) -> Self:
        return self._push("is_decimal", v.IsDecimal())

    def is_float(self) -> Self:
        return self._push("is_float", v.IsDecimal())

    def is_boolean(self) -> Self:
        return self._push("is_boolean", v.IsBoolean())

    def range(self, minimum: float | str, maximum: float | str) -> Self:
        return self._push("range", v.Range(minimum, maximum))

    def is_port(self) -> Self:
        return self._push("is_port", v.IsPort())

    def to_int(self) -> Self:
        return self._push("to_int", v.TO_INT)

    def to_float(self) -> Self:
        return self._push("to_float", v.TO_FLOAT)

    def to_boolean(self) -> Self:
        return self._push("to_boolean", v.TO_BOOLEAN)

    def to_boolean_strict(self) -> Self:
        return self._push("to_boolean_strict", v.TO_BOOLEAN_STRICT)

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def is_string(self) -> Self:
        return self._push("is_string", v.IsString())

    def is_email(self) -> Self:
        return self._push("is_email", v.TextPattern(v.EMAIL_PATTERN, "Invalid email", "Email address"))

    def is_url(self) -> Self:
        return self._push("is_url", v.IsUrl())

    def is_alpha(self) -> Self:
        return self._push("is_alpha", v.TextPattern(v.ALPHA_PATTERN, description="Alphabetical string"))

    def is_alphanumeric(self) -> Self:
        return self._push(
            "is_alphanumeric", v.TextPattern(v.ALPHANUMERIC_PATTERN, description="Alphanumeric string"),
        )

    def is_lowercase(self) -> Self:
        return self._push("is_lowercase", v.CaseCheck(upper=False))

    def is_uppercase(self) -> Self:
        return self._push("is_uppercase", v.CaseCheck(upper=True))

    def not_null(self) -> Self:
        return self._push("not_null", v.NullCheck(expect_null=False))

    def is_null(self) -> Self:
        return self._push("is_null", v.NullCheck(expect_null=True))

    def not_empty(self) -> Self:
        return self._push("not_empty", v.NotEmpty())

    def equals(self, expected: Any) -> Self:
        return self._push("equals", v.Equals(expected))

    def contains(self, substring: str) -> Self:
        return self._push("contains", v.Contains(substring))

    def not_contains(self, substring: str) -> Self:
        return self._push("not_contains", v.Contains(substring, negate=True))

    def regex(self, pattern: str | re.Pattern[str], flags: str | int | None = None) -> Self:
        step = v.TextPattern(_compile(pattern, flags), description=_pattern_help("String matching the regex", pattern, flags))
        return self._push("regex", step)

    def not_regex(self, pattern: str | re.Pattern[str], flags: str | int | None = None) -> Self:
        step = v.TextPattern(
            _compile(pattern, flags),
            description=_pattern_help("String not matching the regex", pattern, flags),
            negate=True,
        )
        return self._push("not_regex", step)

    def length(self, minimum: int, maximum: int | None = None) -> Self:
        """String length between ``minimum`` and ``maximum``; no maximum when omitted."""
        return self._push("length", v.Length(minimum, math.inf if maximum is None else maximum))

    len = length

    def trim(self, chars: str | None = None) -> Self:
        return self._push("trim", v.Trim(chars))

    def ltrim(self, chars: str | None = None) -> Self:
        return self._push("ltrim", v.Trim(chars, side="left"))

    def rtrim(self, chars: str | None = None) -> Self:
        return self._push("rtrim", v.Trim(chars, side="right"))

    def if_null(self, replacement: Any) -> Self:
        return self._push("if_null", v.IfNull(replacement))

    def entity_decode(self) -> Self:
        return self._push("entity_decode", v.ENTITY_DECODE)

    def entity_encode(self) -> Self:
        return self._push("entity_encode", v.ENTITY_ENCODE)

    def is_v1_uuid(self) -> Self:
        return self._push("is_v1_uuid", v.IsV1UUID())

    # ------------------------------------------------------------------
    # Membership
    # ------------------------------------------------------------------

    def enumerated(self, mapping: Mapping[str, Any]) -> Self:
        """Accept a key of ``mapping`` and replace it with the mapped value."""
        return self._push("enumerated", v.Enumerated(dict(mapping)))

    def in_array(self, choices: Iterable[Any]) -> Self:
        return self._push("in_array", v.InArray(tuple(choices)))

    def not_in(self, denied: Iterable[str], case_sensitive: bool = True) -> Self:
        return self._push("not_in", v.NotIn(tuple(denied), case_sensitive))

    def is_unique(self) -> Self:
        return self._push("is_unique", v.IsUnique())

    def to_unique(self) -> Self:
        return self._push("to_unique", v.ToUnique())

    # ------------------------------------------------------------------
    # Network
    # ------------------------------------------------------------------

    def is_ip(self) -> Self:
        return self._push("is_ip", v.IsIP())

    def is_ipv4(self) -> Self:
        return self._push("is_ipv4", v.IsIPVersion(4))

    def is_ipv6(self) -> Self:
        return self._push("is_ipv6", v.IsIPVersion(6))

    def is_cidr(self) -> Self:
        return self._push("is_cidr", v.IsCIDR())

    def not_ip_blacklisted(self) -> Self:
        return self._push("not_ip_blacklisted", v.NotIPBlacklisted())

    def is_hostname(self) -> Self:
        return self._push("is_hostname", v.IsHostname())

    def is_hostname_or_ip(self) -> Self:
        return self._push("is_hostname_or_ip", v.IsHostnameOrIP())

    def is_allowed_fqdn_or_ip(self, denylist: Iterable[str] = ()) -> Self:
        return self._push("is_allowed_fqdn_or_ip", v.IsHostnameOrIP(fqdn=True, denylist=tuple(denylist)))

    def is_address_pair(self) -> Self:
        return self._push("is_address_pair", v.IsAddressPair())

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def num_items(self, minimum: int, maximum: int | None = None) -> Self:
        """Bound the size of the list or mapping checked by ``is_array``/``is_hash``.

        Raises:
            ConfigurationError: the chain already has a ``num_items`` bound.
        """
        if self.num_items_bounds is not None:
            raise ConfigurationError(
                "Chain can only have a single numItems validator", ErrorCode.E1001_DUPLICATE_NUM_ITEMS,
            )
        if maximum:
            help = f"Array or object with number of items between {minimum} and {maximum}"
        else:
            help = f"Array or objects with at least {minimum} items"
        self.num_items_bounds = (minimum, maximum or math.inf)
        return self._push("num_items", v.Marker(help))

    def is_array(self, inner: Chain) -> Self:
        return self._push("is_array", v.IsArray(self, inner))

    def is_hash(self, key_chain: Chain, value_chain: Chain) -> Self:
        return self._push("is_hash", v.IsHash(self, key_chain, value_chain))

    # ------------------------------------------------------------------
    # Custom
    # ------------------------------------------------------------------

    def custom(self, name: str | None = None) -> Self:
        """Append a validator registered under ``name``.

        Raises:
            ConfigurationError: ``name`` is missing or not registered.
        """
        registry = self._registry if self._registry is not None else default_registry
        entry = registry.get(name)
        return self._push(entry.name, entry.func, entry.description)

    def __repr__(self) -> str:
        return f"Chain({', '.join(step.name for step in self.validators)})"
