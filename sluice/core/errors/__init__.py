"""Monadic Error Handling

Key components:
- Result[T, E]: container for success/failure
- AppError: error type with code, context and metadata
- ErrorCode: hierarchical taxonomy (configuration, validation, structure, parse, timeout)
- Builder functions: ergonomic error construction
- AppErrorException: raising wrapper for configuration-time and codec failures

Usage:
    from sluice.core.errors import Ok, Err, Result, AppError

    match await builder.build(node):
        case Ok(structure):
            ...
        case Err(error):
            log.warning("build_failed", code=error.code.name)
"""
from .types import (
    Result,
    Ok,
    Err,
    AppError,
    ErrorCode,
    ErrorContext,
    from_exception,
    sequence_results,
)

from .builders import (
    configuration_error,
    unknown_validator,
    structure_error,
    unknown_serializer_type,
    unknown_element,
    missing_singular,
    unsupported_mode,
    parse_error,
    invalid_json,
    invalid_xml,
    timeout_error,
)

from .exceptions import (
    AppErrorException,
    ConfigurationError,
    SerializationError,
    raise_error,
)

__all__ = [
    "Result",
    "Ok",
    "Err",
    "AppError",
    "ErrorCode",
    "ErrorContext",
    "from_exception",
    "sequence_results",
    "configuration_error",
    "unknown_validator",
    "structure_error",
    "unknown_serializer_type",
    "unknown_element",
    "missing_singular",
    "unsupported_mode",
    "parse_error",
    "invalid_json",
    "invalid_xml",
    "timeout_error",
    "AppErrorException",
    "ConfigurationError",
    "SerializationError",
    "raise_error",
]
