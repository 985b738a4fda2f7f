"""Sluice: schema-driven validation and JSON/XML serialization."""
__version__ = "0.1.0"

from sluice.core.errors import AppError, AppErrorException, ConfigurationError, Err, Ok, Result, SerializationError
from sluice.validation import Chain, FieldError, ValidatorRegistry, Valve, compile_schema, describe_schema
from sluice.serialization import (
    DefinitionRegistry,
    FieldDefinition,
    ObjectDefinition,
    SerializationMode,
    Serializer,
    SerializerOptions,
    TaggedDict,
)
from sluice.boundaries import (
    build_structure,
    build_structure_sync,
    from_json,
    from_xml,
    to_json,
    to_xml,
    validate,
    validate_partial,
    validate_update,
)

__all__ = [
    "__version__",
    "AppError",
    "AppErrorException",
    "ConfigurationError",
    "Err",
    "Ok",
    "Result",
    "SerializationError",
    "Chain",
    "FieldError",
    "ValidatorRegistry",
    "Valve",
    "compile_schema",
    "describe_schema",
    "DefinitionRegistry",
    "FieldDefinition",
    "ObjectDefinition",
    "SerializationMode",
    "Serializer",
    "SerializerOptions",
    "TaggedDict",
    "build_structure",
    "build_structure_sync",
    "from_json",
    "from_xml",
    "to_json",
    "to_xml",
    "validate",
    "validate_partial",
    "validate_update",
]
