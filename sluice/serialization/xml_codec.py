"""XML Codec

Renders built structures as XML and parses XML back into plain structures,
using the object definitions to decide element names and placement:

    TaggedDict("Node", id=15245, name="gggggg", state="active")
        -> <node id="15245"><name>gggggg</name><state>active</state></node>

Rendering rules:
- a tagged object is an element named by its definition's singular tag
- ``attribute`` fields become XML attributes on that element
- a list field renders as ``<plural><singular>item</singular>...</plural>``
  and must declare a singular tag
- a top-level list of tagged objects is wrapped in the type's plural tag,
  anything else in ``Settings.XML_GROUP_TAG``
- nulls render as empty elements unless nulls are stripped

Parsing reverses those rules. Leaf text is coerced through the field's
``coerce_to`` rule, or generic scalar coercion when no field matches.
"""
from __future__ import annotations

import xml.etree.ElementTree as ET
from collections.abc import Mapping
from typing import Any

from sluice.core.coercion import parse_scalar, to_text
from sluice.core.config import get_settings
from sluice.core.errors import (
    SerializationError, invalid_xml, missing_singular, unknown_element, unknown_serializer_type,
)
from sluice.core.logging import serialization_logger

from .builder import type_tag_of
from .definitions import DefinitionRegistry, FieldDefinition, ObjectDefinition

log = serialization_logger()

XML_DECLARATION = "<?xml version='1.0' encoding='utf-8'?>\n"
CONTAINER_TAG = "container"


def _text(elem: ET.Element) -> str | None:
    """Element text, or None when it is missing or whitespace only."""
    text = elem.text
    return text if text and text.strip() else None


def _add_element(parent: ET.Element | None, tag: str, text: str | None = None) -> ET.Element:
    elem = ET.Element(tag) if parent is None else ET.SubElement(parent, tag)
    if text:
        elem.text = text
    return elem


def _field_for_tag(definition: ObjectDefinition, tag: str) -> FieldDefinition | None:
    field = definition.field(tag)
    if field is not None:
        return field
    return next((f for f in definition.fields if f.is_list and f.plural_tag == tag), None)


class XmlCodec:
    """XML rendering and parsing against a definition registry."""

    __slots__ = ("registry", "strip_nulls", "group_tag")

    def __init__(
        self,
        registry: DefinitionRegistry,
        *,
        strip_nulls: bool | None = None,
        group_tag: str | None = None,
    ):
        settings = get_settings()
        self.registry = registry
        self.strip_nulls = settings.STRIP_NULLS if strip_nulls is None else strip_nulls
        self.group_tag = group_tag or settings.XML_GROUP_TAG

    # ==========================================================================
    # Rendering
    # ==========================================================================

    def to_xml(self, structure: Any) -> str:
        """Render a built structure as an XML document.

        Raises:
            SerializationError: a tagged node has no definition, or a list
                field declares no singular tag.
        """
        root = None
        is_list = isinstance(structure, (list, tuple))
        if is_list:
            # items of a top-level list share one type
            type_name = type_tag_of(structure[0]) if structure else None
            root = ET.Element(self._require(type_name).plural_tag if type_name else self.group_tag)
        root = self._render(None, root, structure, is_list, None)
        return XML_DECLARATION + ET.tostring(root, encoding="unicode")

    def _require(self, type_name: str) -> ObjectDefinition:
        definition = self.registry.get(type_name)
        if definition is None:
            log.warning("unknown_serializer_type", serializer_type=type_name)
            raise SerializationError(unknown_serializer_type(type_name, origin="xml_codec").error)
        return definition

    def _render(
        self,
        type_name: str | None,
        parent: ET.Element | None,
        value: Any,
        array_item: bool,
        key: str | None,
    ) -> ET.Element:
        if isinstance(value, (list, tuple)):
            container = parent
            if type_name:
                field = self.registry.field(type_name, key)
                if field is None or field.singular is None:
                    raise SerializationError(missing_singular(key or "", origin="xml_codec").error)
                container = _add_element(parent, field.plural_tag)
                key = field.singular
            for item in value:
                self._render(type_name, container, item, True, key)
            return parent if parent is not None else container

        tag = type_tag_of(value)
        if tag:
            definition = self._require(tag)
            if key is None or array_item:
                elem = _add_element(parent, definition.singular_tag)
                target = elem
            else:
                elem = _add_element(parent, key)
                target = elem if key == definition.singular_tag else ET.SubElement(elem, definition.singular_tag)
            for field in definition.fields:
                if field.name in value:
                    self._render(definition.name, target, value[field.name], False, field.name)
            return elem

        if isinstance(value, Mapping):
            elem = _add_element(parent, key or self.group_tag)
            for child_key, child in value.items():
                self._render(None, elem, child, False, child_key)
            return elem

        tag_name = key or self.group_tag
        if value is None:
            if self.strip_nulls and parent is not None:
                return parent
            return _add_element(parent, tag_name)
        text = to_text(value)
        field = self.registry.field(type_name, key)
        if field is not None and field.attribute and parent is not None:
            parent.set(key, text)
            return parent
        return _add_element(parent, tag_name, text)

    # ==========================================================================
    # Parsing
    # ==========================================================================

    def from_xml(self, text: str | bytes) -> Any:
        """Parse an XML document into a plain structure.

        Raises:
            SerializationError: malformed XML (E4002), an unknown root tag
                (E3001) or a nested element with no matching field (E3002).
        """
        try:
            root = ET.fromstring(text)
        except ET.ParseError as e:
            log.info("xml_parse_failed", error=str(e))
            raise SerializationError(invalid_xml(e, origin="xml_codec").error) from e
        return self._decode(root)

    def _decode(self, elem: ET.Element) -> Any:
        if elem.tag == CONTAINER_TAG:
            return self._decode_container(elem)
        definition = self.registry.def_for_tag(elem.tag)
        if definition is None:
            if len(elem) == 0:
                return parse_scalar(_text(elem))
            log.warning("unknown_serializer_type", serializer_type=elem.tag)
            raise SerializationError(unknown_serializer_type(elem.tag, origin="xml_codec").error)
        if elem.tag == definition.plural_tag:
            return [self._emit(child, definition) for child in elem]
        return self._emit(elem, definition)

    def _decode_container(self, elem: ET.Element) -> dict[str, Any]:
        values = elem.find("values")
        return {
            "values": [self._decode(child) for child in values] if values is not None else [],
            "metadata": {child.tag: parse_scalar(_text(child)) for child in elem.findall("metadata/*")},
        }

    def _emit(self, elem: ET.Element, definition: ObjectDefinition) -> dict[str, Any]:
        """Decode one element as an object of ``definition``."""
        obj: dict[str, Any] = {}
        for name, raw in elem.attrib.items():
            field = definition.field(name)
            obj[name] = field.coerce(raw) if field else parse_scalar(raw)

        text = _text(elem)
        if text is not None:
            field = definition.field(elem.tag)
            obj[elem.tag] = field.coerce(text) if field else parse_scalar(text)
            return obj

        for child in elem:
            field = _field_for_tag(definition, child.tag)
            name = field.name if field else child.tag
            if len(child) == 0:
                child_text = _text(child)
                if child_text is None:
                    obj[name] = field.empty_value() if field else None
                else:
                    obj[name] = field.coerce(child_text) if field else parse_scalar(child_text)
                continue

            if field is None:
                log.warning("unknown_element", tag=child.tag, serializer_type=definition.name)
                raise SerializationError(unknown_element(child.tag, origin="xml_codec").error)

            if field.is_list and child.tag == field.plural_tag:
                obj[name] = [self._decode_item(item, field, definition, in_list=True) for item in child]
            elif len(child) == 1 and self.registry.def_for_tag(child[0].tag) is not None:
                # a lone typed child of a non-list field is a nested object
                obj[name] = self._decode(child[0])
            else:
                obj[name] = {item.tag: self._decode_item(item, field, definition) for item in child}
        return obj

    def _decode_item(
        self,
        item: ET.Element,
        field: FieldDefinition,
        definition: ObjectDefinition,
        *,
        in_list: bool = False,
    ) -> Any:
        if len(item) == 0:
            text = _text(item)
            if text is not None:
                return field.coerce(text, in_list=in_list)
            item_definition = self.registry.def_for_tag(item.tag)
            if item.attrib or item_definition is not None:
                return self._emit(item, item_definition or definition)
            return None
        if self.registry.def_for_tag(item.tag) is not None:
            return self._decode(item)
        return self._emit(item, definition)
