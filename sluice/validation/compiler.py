"""Schema compilation from object definitions."""
from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING, Any

from sluice.core.logging import validation_logger

from .chain import Chain
from .valve import Schema, Valve

if TYPE_CHECKING:
    from sluice.serialization.definitions import ObjectDefinition

log = validation_logger()


def compile_schema(definitions: Iterable[ObjectDefinition]) -> dict[str, dict[str, Chain]]:
    """Build one validation schema per object definition.

    Each field gets a copy of its declared chain (or an empty chain), an
    ``enumerated`` step when the field declares an enumeration, and a rename
    to ``src`` so cleaned values land on the domain object's attribute
    names. ``ignore_public`` fields are left out. The definitions' own
    chains are not modified.
    """
    schemas: dict[str, dict[str, Chain]] = {}
    for definition in definitions:
        group: dict[str, Chain] = {}
        for field in definition.fields:
            if field.ignore_public:
                continue
            chain = field.validator.clone() if field.validator is not None else Chain()
            if field.enumerated:
                chain.enumerated(field.enumerated)
            if field.src:
                chain.rename(field.src)
            group[field.name] = chain
        schemas[definition.name] = group
    log.debug("schema_compiled", types=list(schemas), fields=sum(len(g) for g in schemas.values()))
    return schemas


def describe_schema(schema: Schema) -> dict[str, Any]:
    """Help strings per field, nested for sub-schemas."""
    return Valve(schema).help()
