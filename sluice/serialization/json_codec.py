"""JSON rendering and parsing of built structures."""
from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

from sluice.core.config import get_settings
from sluice.core.errors import AppError, Ok, Result, invalid_json
from sluice.core.logging import serialization_logger

from .builder import TYPE_TAG_KEY

log = serialization_logger()


def strip_serializer_types(structure: Any) -> Any:
    """Copy of ``structure`` without raw ``serializerType`` keys at any depth."""
    return _clean(structure, strip_nulls=False, strip_type_tag=True)


def _clean(node: Any, *, strip_nulls: bool, strip_type_tag: bool) -> Any:
    if isinstance(node, Mapping):
        return {
            key: _clean(value, strip_nulls=strip_nulls, strip_type_tag=strip_type_tag)
            for key, value in node.items()
            if not (strip_nulls and value is None) and not (strip_type_tag and key == TYPE_TAG_KEY)
        }
    if isinstance(node, (list, tuple)):
        # nulls inside sequences keep their position
        return [_clean(item, strip_nulls=strip_nulls, strip_type_tag=strip_type_tag) for item in node]
    return node


def to_json(
    structure: Any,
    *,
    strip_nulls: bool | None = None,
    strip_type_tag: bool | None = None,
    indent: int | None = None,
) -> str:
    """Render a built structure as JSON text.

    Options default to ``Settings.STRIP_NULLS``, ``Settings.STRIP_SERIALIZER_TYPE``
    and ``Settings.JSON_INDENT``.
    """
    settings = get_settings()
    cleaned = _clean(
        structure,
        strip_nulls=settings.STRIP_NULLS if strip_nulls is None else strip_nulls,
        strip_type_tag=settings.STRIP_SERIALIZER_TYPE if strip_type_tag is None else strip_type_tag,
    )
    return json.dumps(cleaned, indent=settings.JSON_INDENT if indent is None else indent)


def from_json(text: str | bytes) -> Result[Any, AppError]:
    """Parse JSON text; malformed input yields Err rather than raising."""
    try:
        return Ok(json.loads(text))
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        log.info("json_parse_failed", error=str(e))
        return invalid_json(e, origin="json_codec")
