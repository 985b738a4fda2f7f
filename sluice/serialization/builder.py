"""Object Graph Builder

Turns live domain objects into plain structures (dicts, lists, scalars) that
the JSON and XML codecs can render. Each node is classified once into a
``Shape`` and handled by the matching case:

- DEFERRED: a callable (typically a bound method such as ``node.get_name``)
  whose return value, awaited when needed, is built in its place
- SEQUENCE: list or tuple, built element by element in order
- TAGGED: an object exposing ``get_serializer_type()``, built field by field
  from its ``ObjectDefinition``
- MAP: any other mapping, built key by key
- SCALAR: returned unchanged

Tagged objects come out as ``TaggedDict`` instances that remember their
serializer type without adding a key.
"""
from __future__ import annotations

import asyncio
import inspect
from collections.abc import Hashable, Iterable, Mapping
from dataclasses import dataclass
from enum import Enum, auto
from typing import Any, Awaitable

from sluice.core.config import get_settings
from sluice.core.errors import (
    AppError, AppErrorException, Err, ErrorCode, Ok, Result,
    SerializationError, from_exception, timeout_error, unknown_serializer_type,
)
from sluice.core.logging import serialization_logger

from .definitions import DefinitionRegistry

log = serialization_logger()

TYPE_TAG_KEY = "serializerType"

_MISSING = object()


class TaggedDict(dict):
    """A built object: its fields as keys, its serializer type as an attribute."""

    __slots__ = ("serializer_type",)

    def __init__(self, serializer_type: str, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.serializer_type = serializer_type

    def __repr__(self) -> str:
        return f"TaggedDict({self.serializer_type!r}, {dict.__repr__(self)})"


def serializer_type_of(value: Any) -> str | None:
    """Type tag of a domain object, or None when it exposes none."""
    getter = getattr(value, "get_serializer_type", None)
    return getter() if callable(getter) else None


def type_tag_of(node: Any) -> str | None:
    """Type tag of a built node: a TaggedDict's type or a raw ``serializerType`` key."""
    if isinstance(node, TaggedDict):
        return node.serializer_type
    if isinstance(node, Mapping):
        return node.get(TYPE_TAG_KEY)
    return None


class Shape(Enum):
    DEFERRED = auto()
    SEQUENCE = auto()
    TAGGED = auto()
    MAP = auto()
    SCALAR = auto()


def classify(value: Any) -> Shape:
    if callable(value) and not isinstance(value, type) and serializer_type_of(value) is None:
        return Shape.DEFERRED
    if isinstance(value, (list, tuple)):
        return Shape.SEQUENCE
    if serializer_type_of(value) is not None:
        return Shape.TAGGED
    if isinstance(value, Mapping):
        return Shape.MAP
    return Shape.SCALAR


def read_attribute(obj: Any, name: str) -> Any:
    if isinstance(obj, Mapping):
        return obj.get(name, _MISSING)
    return getattr(obj, name, _MISSING)


@dataclass(frozen=True, slots=True)
class FieldPlan:
    """How one visible field of a definition is read and rendered."""
    name: str
    source: str
    enum_keys: Mapping[Any, str] | None = None

    def render(self, value: Any) -> Any:
        if self.enum_keys is not None and isinstance(value, Hashable) and value in self.enum_keys:
            return self.enum_keys[value]
        return value


async def _gather_ordered(awaitables: Iterable[Awaitable[Any]]) -> list[Any]:
    """Run concurrently; re-raise the failure with the lowest index."""
    results = await asyncio.gather(*awaitables, return_exceptions=True)
    for result in results:
        if isinstance(result, BaseException):
            raise result
    return results


class ObjectGraphBuilder:
    """Builds plain structures from domain objects for one audience."""

    __slots__ = ("registry", "audience", "_plans")

    def __init__(self, registry: DefinitionRegistry, audience: str | None = None):
        self.registry = registry
        self.audience = audience
        self._plans: dict[str, tuple[FieldPlan, ...]] = {
            definition.name: tuple(
                FieldPlan(
                    field.name,
                    field.source,
                    {stored: key for key, stored in reversed(field.enumerated.items())} if field.enumerated else None,
                )
                for field in definition.fields
                if not field.hidden_from(audience)
            )
            for definition in registry
        }

    def _plans_for(self, serializer_type: str) -> tuple[FieldPlan, ...]:
        try:
            return self._plans[serializer_type]
        except KeyError:
            log.warning("unknown_serializer_type", serializer_type=serializer_type)
            raise SerializationError(unknown_serializer_type(serializer_type, origin="builder").error) from None

    # ------------------------------------------------------------------
    # Async
    # ------------------------------------------------------------------

    async def build(self, obj: Any, *, timeout: float | None = None) -> Result[Any, AppError]:
        """Resolve ``obj`` (deferred fields included) into a plain structure.

        Args:
            obj: Domain object, sequence, mapping or scalar.
            timeout: Seconds before the build is cancelled; defaults to
                ``Settings.DEFAULT_TIMEOUT``.
        """
        timeout = get_settings().DEFAULT_TIMEOUT if timeout is None else timeout
        try:
            if timeout is None:
                return Ok(await self._resolve(obj))
            async with asyncio.timeout(timeout):
                return Ok(await self._resolve(obj))
        except TimeoutError:
            log.warning("build_timed_out", timeout=timeout)
            return timeout_error("build", timeout, code=ErrorCode.E5002_BUILD_TIMEOUT, origin="builder")
        except AppErrorException as e:
            return Err(e.error)

    async def _resolve(self, value: Any) -> Any:
        match classify(value):
            case Shape.DEFERRED:
                return await self._resolve(await self._call_deferred(value))
            case Shape.SEQUENCE:
                return await _gather_ordered(self._resolve(item) for item in value)
            case Shape.TAGGED:
                return await self._resolve_tagged(value)
            case Shape.MAP:
                keys = list(value)
                values = await _gather_ordered(self._resolve(value[key]) for key in keys)
                return dict(zip(keys, values))
            case _:
                return value

    async def _resolve_tagged(self, obj: Any) -> TaggedDict:
        serializer_type = serializer_type_of(obj)
        plans = self._plans_for(serializer_type)
        values = await _gather_ordered(self._resolve_field(obj, plan) for plan in plans)
        return TaggedDict(serializer_type, (
            (plan.name, value) for plan, value in zip(plans, values) if value is not _MISSING
        ))

    async def _resolve_field(self, obj: Any, plan: FieldPlan) -> Any:
        raw = read_attribute(obj, plan.source)
        if raw is _MISSING:
            return _MISSING
        return plan.render(await self._resolve(raw))

    @staticmethod
    async def _call_deferred(func: Any) -> Any:
        try:
            value = func()
            if inspect.isawaitable(value):
                value = await value
        except AppErrorException:
            raise
        except Exception as e:
            raise SerializationError(from_exception(
                e, ErrorCode.E3005_DEFERRED_FIELD_FAILED, f"Deferred field failed: {e}", origin="builder",
            ).error) from e
        match value:
            case Ok(resolved):
                return resolved
            case Err(error) if isinstance(error, AppError):
                raise SerializationError(error)
            case Err(error):
                raise SerializationError(AppError(ErrorCode.E3005_DEFERRED_FIELD_FAILED, str(error)))
        return value

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def build_sync(self, obj: Any) -> Any:
        """Same structure as ``build`` but deferred fields are left out.

        A deferred value inside a sequence becomes None and a deferred map
        value or object field is omitted.

        Raises:
            SerializationError: a tagged object has no registered definition.
        """
        value = self._resolve_sync(obj)
        return None if value is _MISSING else value

    def _resolve_sync(self, value: Any) -> Any:
        match classify(value):
            case Shape.DEFERRED:
                return _MISSING
            case Shape.SEQUENCE:
                return [None if (item := self._resolve_sync(v)) is _MISSING else item for v in value]
            case Shape.TAGGED:
                serializer_type = serializer_type_of(value)
                result = TaggedDict(serializer_type)
                for plan in self._plans_for(serializer_type):
                    raw = read_attribute(value, plan.source)
                    if raw is _MISSING or (resolved := self._resolve_sync(raw)) is _MISSING:
                        continue
                    result[plan.name] = plan.render(resolved)
                return result
            case Shape.MAP:
                return {
                    key: resolved for key, item in value.items()
                    if (resolved := self._resolve_sync(item)) is not _MISSING
                }
            case _:
                return value
