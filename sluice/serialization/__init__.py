"""Serialization: object definitions, the object-graph builder and codecs.

Usage:
    from sluice.serialization import Serializer, SerializationMode

    serializer = Serializer([NODE, NODE_OPTS])
    result = await serializer.serialize(SerializationMode.JSON, node)
"""
from .definitions import DefinitionRegistry, FieldDefinition, ObjectDefinition
from .builder import TYPE_TAG_KEY, ObjectGraphBuilder, TaggedDict, serializer_type_of, type_tag_of
from .json_codec import from_json, strip_serializer_types, to_json
from .xml_codec import XmlCodec
from .serializer import PAGINATION_CONTAINER, SerializationMode, Serializer, SerializerOptions

__all__ = [
    "DefinitionRegistry",
    "FieldDefinition",
    "ObjectDefinition",
    "TYPE_TAG_KEY",
    "ObjectGraphBuilder",
    "TaggedDict",
    "serializer_type_of",
    "type_tag_of",
    "from_json",
    "strip_serializer_types",
    "to_json",
    "XmlCodec",
    "PAGINATION_CONTAINER",
    "SerializationMode",
    "Serializer",
    "SerializerOptions",
]
