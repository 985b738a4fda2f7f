"""Schema Validation

A ``Valve`` checks input mappings against a schema: a mapping from field
name to a ``Chain`` or to a nested schema. Fields are checked one after
another in schema order and the first failing field ends the check, so the
reported error is always the failing field that comes first in the schema.

Every check returns ``Ok(cleaned)`` or ``Err(FieldError)``; nothing but
configuration mistakes raises.

    valve = Valve({"a": Chain().is_int(), "b": {"c": Chain().is_ip()}})
    match await valve.check({"a": 1, "b": {"c": "::1"}}):
        case Ok(cleaned): ...
        case Err(error): print(error.field_path, error.message)
"""
from __future__ import annotations

import asyncio
import inspect
from collections.abc import Mapping
from typing import Any, Awaitable, Callable, Coroutine, Self, Union

from sluice.core.config import get_settings
from sluice.core.errors import (
    AppError, ConfigurationError, Err, ErrorCode, Ok, Result,
)
from sluice.core.logging import validation_logger

from .chain import Chain, error_message
from .errors import FieldError
from .registry import ValidatorFunc, default_registry

log = validation_logger()

Schema = Mapping[str, Union[Chain, "Schema"]]
FinalValidator = Callable[[dict], "Result[dict, Any] | Awaitable[Result[dict, Any]]"]
CheckResult = Result[dict, FieldError]

_MISSING = object()


def _target(rule: Chain | Schema, key: str) -> str:
    return rule.target or key if isinstance(rule, Chain) else key


def _skippable(rule: Chain | Schema, partial: bool) -> bool:
    """Whether a missing key may be left out of the cleaned result."""
    if not isinstance(rule, Chain):
        return partial
    return rule.is_optional or (partial and not rule.is_update_required)


async def check_schema(
    obj: Any,
    schema: Schema,
    parent_keys: tuple[str, ...] = (),
    partial: bool = False,
    baton: Any = None,
) -> CheckResult:
    """Check ``obj`` against ``schema`` field by field, recursing into sub-schemas."""
    source = obj if isinstance(obj, Mapping) else {}
    cleaned: dict[str, Any] = {}

    for key, rule in schema.items():
        if isinstance(rule, Chain) and rule.is_optional and key in source and source[key] is None:
            cleaned[key] = None
        elif key in source and isinstance(rule, Chain):
            match await rule.apply(source[key], baton):
                case Err(message):
                    return Err(FieldError(key, message, parent_keys))
                case Ok(value):
                    cleaned[_target(rule, key)] = value
        elif key in source:
            match await check_schema(source[key], rule, (*parent_keys, key), partial, baton):
                case Err() as failure:
                    return failure
                case Ok(value):
                    cleaned[key] = value
        elif not _skippable(rule, partial):
            return Err(FieldError(key, f"Missing required key ({key})", parent_keys,
                                  ErrorCode.E2001_REQUIRED_FIELD_MISSING))

    return Ok(cleaned)


def _as_field_error(error: Any) -> FieldError:
    if isinstance(error, FieldError):
        return error
    if isinstance(error, Mapping):
        return FieldError(error.get("key"), error_message(error.get("message", "")),
                          tuple(error.get("parentKeys") or ()), ErrorCode.E2004_FINAL_VALIDATION_FAILED)
    code = error.code if isinstance(error, AppError) else ErrorCode.E2004_FINAL_VALIDATION_FAILED
    return FieldError(getattr(error, "key", None), error_message(error), (), code)


class Valve:
    """Validates mappings against a schema of chains."""

    __slots__ = ("schema", "baton", "_final_validator")

    def __init__(self, schema: Schema | None = None, baton: Any = None):
        self.schema = schema
        self.baton = baton
        self._final_validator: FinalValidator | None = None

    def set_schema(self, schema: Schema) -> Self:
        self.schema = schema
        return self

    def add_final_validator(self, func: FinalValidator) -> Self:
        """Run ``func(cleaned) -> Result`` after every successful check or update."""
        if not callable(func):
            raise ConfigurationError("No validator function specified", ErrorCode.E1004_MISSING_VALIDATOR_FUNCTION)
        self._final_validator = func
        return self

    @staticmethod
    def add_chain_validator(name: str, description: str | None, func: ValidatorFunc) -> None:
        """Register a custom validator in the default registry."""
        default_registry.add(name, description, func)

    # ------------------------------------------------------------------
    # Checks
    # ------------------------------------------------------------------

    async def check(self, obj: Mapping[str, Any], *, strict: bool = False, timeout: float | None = None) -> CheckResult:
        """Validate a complete object.

        Args:
            obj: Input mapping.
            strict: Reject keys that the schema does not declare.
            timeout: Seconds before the check is cancelled; defaults to
                ``Settings.DEFAULT_TIMEOUT``.
        """
        return await self._guard("check", self._check(obj, strict), timeout)

    async def check_partial(self, obj: Mapping[str, Any], *, timeout: float | None = None) -> CheckResult:
        """Validate a partial object; only ``update_required`` fields must be present."""
        return await self._guard("check_partial", self._check_partial(obj), timeout)

    async def check_update(
        self,
        existing: Mapping[str, Any],
        obj: Mapping[str, Any],
        *,
        timeout: float | None = None,
    ) -> CheckResult:
        """Merge ``obj`` over ``existing`` unless it changes an immutable field.

        ``existing`` is never modified. Immutable fields are compared by value
        against ``existing[target]``; nested schemas are not compared.
        """
        return await self._guard("check_update", self._check_update(existing, obj), timeout)

    async def _check(self, obj: Mapping[str, Any], strict: bool) -> CheckResult:
        if self.schema is None:
            return self._no_schema()
        if strict:
            for key in obj:
                if key not in self.schema:
                    log.debug("validation_failed", key=key, parent_keys=[], code=ErrorCode.E2002_KEY_NOT_ALLOWED.name)
                    return Err(FieldError(key, "This key is not allowed", (), ErrorCode.E2002_KEY_NOT_ALLOWED))
        result = await check_schema(obj, self.schema, (), False, self.baton)
        match result:
            case Ok(cleaned):
                return await self._finalize(cleaned)
            case Err(error):
                log.debug("validation_failed", key=error.key, parent_keys=list(error.parent_keys), code=error.code.name)
        return result

    async def _check_partial(self, obj: Mapping[str, Any]) -> CheckResult:
        if self.schema is None:
            return self._no_schema()
        result = await check_schema(obj, self.schema, (), True, self.baton)
        if isinstance(result, Err):
            log.debug("validation_failed", key=result.error.key, parent_keys=list(result.error.parent_keys),
                      code=result.error.code.name)
        return result

    async def _check_update(self, existing: Mapping[str, Any], obj: Mapping[str, Any]) -> CheckResult:
        if self.schema is None:
            return self._no_schema()
        for key, value in obj.items():
            rule = self.schema.get(key)
            if isinstance(rule, Chain) and rule.is_immutable and existing.get(_target(rule, key), _MISSING) != value:
                log.info("immutable_field_mutation", key=key)
                return Err(FieldError(key, "Attempted to mutate immutable field", (), ErrorCode.E2003_IMMUTABLE_FIELD))
        merged = {
            key: obj[key] if key in obj else existing.get(_target(rule, key))
            for key, rule in self.schema.items()
        }
        return await self._finalize(merged)

    async def _finalize(self, cleaned: dict) -> CheckResult:
        if self._final_validator is None:
            return Ok(cleaned)
        outcome = self._final_validator(cleaned)
        if inspect.isawaitable(outcome):
            outcome = await outcome
        match outcome:
            case Ok(value):
                return Ok(value)
            case Err(error):
                log.debug("final_validator_failed")
                return Err(_as_field_error(error))
            case _:
                raise ConfigurationError("Final validator must return Ok or Err")

    async def _guard(self, operation: str, coro: Coroutine[Any, Any, CheckResult], timeout: float | None) -> CheckResult:
        timeout = get_settings().DEFAULT_TIMEOUT if timeout is None else timeout
        if timeout is None:
            return await coro
        try:
            async with asyncio.timeout(timeout):
                return await coro
        except TimeoutError:
            log.warning("check_timed_out", operation=operation, timeout=timeout)
            return Err(FieldError(None, f"Operation '{operation}' timed out after {timeout}s", (),
                                  ErrorCode.E5001_CHECK_TIMEOUT))

    @staticmethod
    def _no_schema() -> CheckResult:
        return Err(FieldError(None, "no schema specified", (), ErrorCode.E1005_NO_SCHEMA))

    # ------------------------------------------------------------------
    # Documentation
    # ------------------------------------------------------------------

    def help(self, schema: Schema | None = None) -> dict[str, Any]:
        """Per-field help strings; nested schemas produce nested mappings."""
        schema = schema if schema is not None else self.schema
        if schema is None:
            raise ConfigurationError("No schema specified", ErrorCode.E1005_NO_SCHEMA)
        return {
            key: rule.help() if isinstance(rule, Chain) else self.help(rule)
            for key, rule in schema.items()
        }
