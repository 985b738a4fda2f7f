"""Boundary operations for collaborators such as an HTTP layer.

Thin functions over ``Valve``, ``ObjectGraphBuilder`` and the codecs for
callers that do not want to hold those objects themselves.
"""
from __future__ import annotations

from collections.abc import Mapping
from typing import Any

from sluice.core.errors import AppError, Result
from sluice.serialization import DefinitionRegistry, ObjectGraphBuilder, XmlCodec, from_json, to_json
from sluice.validation import FieldError, Schema, Valve, compile_schema, describe_schema


async def validate(
    schema: Schema,
    obj: Mapping[str, Any],
    *,
    strict: bool = False,
    baton: Any = None,
    timeout: float | None = None,
) -> Result[dict, FieldError]:
    return await Valve(schema, baton).check(obj, strict=strict, timeout=timeout)


async def validate_partial(
    schema: Schema,
    obj: Mapping[str, Any],
    *,
    baton: Any = None,
    timeout: float | None = None,
) -> Result[dict, FieldError]:
    return await Valve(schema, baton).check_partial(obj, timeout=timeout)


async def validate_update(
    schema: Schema,
    existing: Mapping[str, Any],
    obj: Mapping[str, Any],
    *,
    baton: Any = None,
    timeout: float | None = None,
) -> Result[dict, FieldError]:
    return await Valve(schema, baton).check_update(existing, obj, timeout=timeout)


async def build_structure(
    obj: Any,
    registry: DefinitionRegistry,
    *,
    audience: str | None = None,
    timeout: float | None = None,
) -> Result[Any, AppError]:
    return await ObjectGraphBuilder(registry, audience).build(obj, timeout=timeout)


def build_structure_sync(obj: Any, registry: DefinitionRegistry, *, audience: str | None = None) -> Any:
    """Build without calling deferred fields; they are left out of the result."""
    return ObjectGraphBuilder(registry, audience).build_sync(obj)


def to_xml(structure: Any, registry: DefinitionRegistry, *, strip_nulls: bool | None = None) -> str:
    return XmlCodec(registry, strip_nulls=strip_nulls).to_xml(structure)


def from_xml(text: str | bytes, registry: DefinitionRegistry) -> Any:
    """Parse XML; raises ``SerializationError`` on malformed text or unknown tags."""
    return XmlCodec(registry).from_xml(text)


__all__ = [
    "validate",
    "validate_partial",
    "validate_update",
    "build_structure",
    "build_structure_sync",
    "to_json",
    "from_json",
    "to_xml",
    "from_xml",
    "compile_schema",
    "describe_schema",
]
