"""Serializer facade: build, render and parse through one definition registry."""
from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from sluice.core.config import get_settings
from sluice.core.errors import (
    AppError, Err, Ok, Result, SerializationError, unsupported_mode,
)
from sluice.core.logging import serialization_logger

from .builder import ObjectGraphBuilder
from .definitions import DefinitionRegistry, FieldDefinition, ObjectDefinition
from .json_codec import from_json, to_json
from .xml_codec import XmlCodec

log = serialization_logger()


class SerializationMode(str, Enum):
    JSON = "json"
    XML = "xml"


PAGINATION_CONTAINER = ObjectDefinition(
    "_paginationContainer",
    fields=(
        FieldDefinition("values", plural="values", singular="value"),
        FieldDefinition("metadata"),
    ),
    singular="container",
)


@dataclass(frozen=True, slots=True)
class SerializerOptions:
    strip_nulls: bool = field(default_factory=lambda: get_settings().STRIP_NULLS)
    strip_serializer_type: bool = field(default_factory=lambda: get_settings().STRIP_SERIALIZER_TYPE)
    audience: str | None = None


@dataclass(frozen=True, slots=True)
class _Page:
    values: Sequence[Any]
    metadata: Mapping[str, Any]

    def get_serializer_type(self) -> str:
        return PAGINATION_CONTAINER.name


def _resolve_mode(mode: Any) -> SerializationMode | None:
    try:
        return SerializationMode(mode)
    except ValueError:
        return None


class Serializer:
    """Builds domain objects and renders them as JSON or XML.

    Usage:
        serializer = Serializer([NODE, NODE_OPTS], SerializerOptions(audience="public"))

        match await serializer.serialize(SerializationMode.XML, node):
            case Ok(text):
                ...
            case Err(error):
                ...
    """

    def __init__(
        self,
        definitions: DefinitionRegistry | Iterable[ObjectDefinition],
        options: SerializerOptions | None = None,
    ):
        registry = definitions if isinstance(definitions, DefinitionRegistry) else DefinitionRegistry(definitions)
        if PAGINATION_CONTAINER.name not in registry:
            registry = registry.extended(PAGINATION_CONTAINER)
        self.registry = registry
        self.options = options or SerializerOptions()
        self._builder = ObjectGraphBuilder(registry, self.options.audience)
        self._xml = XmlCodec(registry, strip_nulls=self.options.strip_nulls)

    # --- building ---

    async def build_object(self, obj: Any, *, timeout: float | None = None) -> Result[Any, AppError]:
        return await self._builder.build(obj, timeout=timeout)

    def build_object_sync(self, obj: Any) -> Any:
        return self._builder.build_sync(obj)

    # --- rendering ---

    def serialize_json(self, structure: Any) -> str:
        return to_json(
            structure,
            strip_nulls=self.options.strip_nulls,
            strip_type_tag=self.options.strip_serializer_type,
        )

    def serialize_xml(self, structure: Any) -> str:
        return self._xml.to_xml(structure)

    def deserialize_xml(self, text: str | bytes) -> Any:
        return self._xml.from_xml(text)

    def _render(self, mode: SerializationMode, structure: Any) -> Result[str, AppError]:
        try:
            if mode is SerializationMode.XML:
                return Ok(self.serialize_xml(structure))
            return Ok(self.serialize_json(structure))
        except SerializationError as e:
            return Err(e.error)

    async def serialize(self, mode: Any, obj: Any, *, timeout: float | None = None) -> Result[str, AppError]:
        """Build ``obj`` and render it in ``mode``."""
        resolved = _resolve_mode(mode)
        if resolved is None:
            log.warning("unsupported_mode", mode=str(mode))
            return unsupported_mode(mode, origin="serializer")
        match await self.build_object(obj, timeout=timeout):
            case Ok(structure):
                return self._render(resolved, structure)
            case Err() as failure:
                return failure

    async def serialize_for_pagination(
        self,
        mode: Any,
        items: Sequence[Any],
        metadata: Mapping[str, Any],
        *,
        timeout: float | None = None,
    ) -> Result[str, AppError]:
        """Render ``items`` wrapped in a container with pagination ``metadata``.

        JSON gives ``{"values": [...], "metadata": {...}}``; XML gives
        ``<container><values>...</values><metadata>...</metadata></container>``.

        Raises:
            TypeError: ``items`` is not a list or tuple.
        """
        if not isinstance(items, (list, tuple)):
            raise TypeError("items must be a list")
        resolved = _resolve_mode(mode)
        if resolved is None:
            log.warning("unsupported_mode", mode=str(mode))
            return unsupported_mode(mode, origin="serializer")
        match await self.build_object(_Page(items, metadata), timeout=timeout):
            case Ok(structure):
                return self._render(resolved, structure)
            case Err() as failure:
                return failure

    # --- parsing ---

    def deserialize(self, mode: Any, text: str | bytes) -> Result[Any, AppError]:
        """Parse ``text`` as ``mode``; malformed input and unknown tags yield Err."""
        match _resolve_mode(mode):
            case SerializationMode.JSON:
                return from_json(text)
            case SerializationMode.XML:
                try:
                    return Ok(self.deserialize_xml(text))
                except SerializationError as e:
                    return Err(e.error)
            case _:
                log.warning("unsupported_mode", mode=str(mode))
                return unsupported_mode(mode, origin="serializer")

    def get_field_definition(self, type_name: str, field_name: str) -> FieldDefinition | None:
        """Field ``field_name`` of ``type_name``.

        Raises:
            SerializationError: ``type_name`` has no definition.
        """
        return self.registry.require(type_name).field(field_name)
