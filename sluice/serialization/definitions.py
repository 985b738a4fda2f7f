"""Object and Field Definitions

One declarative description per domain type drives validation (through
``compile_schema``), object-graph building and both codecs. Definitions are
frozen pydantic models; a ``DefinitionRegistry`` collects them at startup.

    NODE = ObjectDefinition("Node", fields=[
        FieldDefinition("id", src="hash_id", attribute=True),
        FieldDefinition("state", enumerated={"inactive": 0, "active": 1}),
        FieldDefinition("public_ips", singular="ip", coerce_to="array"),
    ], plural="nodes")
"""
from __future__ import annotations

from collections.abc import Iterable, Iterator
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, ValidationError, model_validator

from sluice.core.coercion import CoerceTo, rule_for
from sluice.core.errors import (
    ConfigurationError, ErrorCode, SerializationError, unknown_serializer_type,
)
from sluice.validation.chain import Chain


def _invalid_definition(name: str, error: ValidationError) -> ConfigurationError:
    detail = "; ".join(e["msg"] for e in error.errors())
    return ConfigurationError(
        f"Invalid definition '{name}': {detail}", ErrorCode.E1006_INVALID_DEFINITION, definition=name,
    )


class FieldDefinition(BaseModel):
    """A single field of an object definition."""
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True, extra="forbid")

    name: str
    src: str | None = None
    desc: str | None = None
    attribute: bool = False
    singular: str | None = None
    plural: str | None = None
    filter_from: frozenset[str] = frozenset()
    enumerated: dict[str, int] | None = None
    coerce_to: CoerceTo | None = None
    validator: Chain | None = None
    ignore_public: bool = False

    def __init__(self, name: str, **data: Any) -> None:
        try:
            super().__init__(name=name, **data)
        except ValidationError as e:
            raise _invalid_definition(name, e) from e

    @model_validator(mode="after")
    def _check_shape(self) -> Self:
        if self.coerce_to is CoerceTo.ARRAY and self.singular is None:
            raise ValueError(f"Field '{self.name}' coerces to an array but declares no singular tag")
        if self.enumerated is not None and not self.enumerated:
            raise ValueError(f"Field '{self.name}' declares an empty enumeration")
        return self

    @property
    def source(self) -> str:
        """Attribute read from the domain object."""
        return self.src or self.name

    @property
    def singular_tag(self) -> str:
        return self.singular or self.name

    @property
    def plural_tag(self) -> str:
        return self.plural or self.name

    @property
    def is_list(self) -> bool:
        """Whether XML renders this field as ``<plural><singular/>...</plural>``."""
        return self.plural_tag != self.singular_tag

    def hidden_from(self, audience: str | None) -> bool:
        return audience is not None and audience in self.filter_from

    def enum_key(self, value: Any) -> str | None:
        """Name of the enumeration entry whose stored value is ``value``."""
        if self.enumerated is None:
            return None
        return next((key for key, stored in self.enumerated.items() if stored == value), None)

    def coerce(self, text: str | None, *, in_list: bool = False) -> Any:
        return rule_for(self.coerce_to).coerce(text, in_list=in_list)

    def empty_value(self) -> Any:
        return rule_for(self.coerce_to).empty()


class ObjectDefinition(BaseModel):
    """A named domain type: its serializer-type tag, XML tags and ordered fields."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    name: str
    fields: tuple[FieldDefinition, ...] = ()
    singular: str | None = None
    plural: str | None = None

    def __init__(self, name: str, **data: Any) -> None:
        try:
            super().__init__(name=name, **data)
        except ValidationError as e:
            raise _invalid_definition(name, e) from e

    @model_validator(mode="after")
    def _check_unique_fields(self) -> Self:
        names = [f.name for f in self.fields]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            raise ValueError(f"Object '{self.name}' declares duplicate fields: {', '.join(duplicates)}")
        return self

    @property
    def singular_tag(self) -> str:
        return self.singular or self.name.lower()

    @property
    def plural_tag(self) -> str:
        return self.plural or f"{self.singular_tag}s"

    def field(self, name: str) -> FieldDefinition | None:
        return next((f for f in self.fields if f.name == name), None)


class DefinitionRegistry:
    """Serializer-type name -> ObjectDefinition, populated at startup."""

    __slots__ = ("_definitions", "_frozen")

    def __init__(self, definitions: Iterable[ObjectDefinition] = ()):
        self._definitions: dict[str, ObjectDefinition] = {}
        self._frozen = False
        for definition in definitions:
            self.register(definition)

    def register(self, definition: ObjectDefinition) -> ObjectDefinition:
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register '{definition.name}' on a frozen registry", ErrorCode.E1008_REGISTRY_FROZEN,
            )
        if definition.name in self._definitions:
            raise ConfigurationError(
                f"Definition '{definition.name}' is already registered", ErrorCode.E1007_DUPLICATE_DEFINITION,
            )
        self._definitions[definition.name] = definition
        return definition

    def get(self, name: str) -> ObjectDefinition | None:
        return self._definitions.get(name)

    def require(self, name: str) -> ObjectDefinition:
        """Definition for ``name``.

        Raises:
            SerializationError: no definition is registered under ``name``.
        """
        definition = self._definitions.get(name)
        if definition is None:
            raise SerializationError(unknown_serializer_type(name, origin="registry").error)
        return definition

    def def_for_tag(self, tag: str) -> ObjectDefinition | None:
        """Definition matching an XML tag by name, then plural tag, then singular tag."""
        if tag in self._definitions:
            return self._definitions[tag]
        for definition in self._definitions.values():
            if definition.plural_tag == tag:
                return definition
        for definition in self._definitions.values():
            if definition.singular_tag == tag:
                return definition
        return None

    def field(self, type_name: str | None, field_name: str | None) -> FieldDefinition | None:
        definition = self._definitions.get(type_name) if type_name else None
        return definition.field(field_name) if definition and field_name else None

    def extended(self, *definitions: ObjectDefinition) -> DefinitionRegistry:
        """New registry holding these definitions plus the given ones."""
        return DefinitionRegistry([*self._definitions.values(), *definitions])

    def freeze(self) -> DefinitionRegistry:
        self._frozen = True
        return self

    def __iter__(self) -> Iterator[ObjectDefinition]:
        return iter(self._definitions.values())

    def __contains__(self, name: object) -> bool:
        return name in self._definitions

    def __len__(self) -> int:
        return len(self._definitions)
