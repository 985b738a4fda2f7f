"""Error Builders

Constructors for the typed errors the engine produces. Each returns
``Err(AppError(...))`` so call sites can ``return`` them directly.
"""
from typing import Any

from .types import AppError, ErrorCode, ErrorContext, Err


def _build(code: ErrorCode, message: str, origin: str, cause: Exception | None = None, **metadata: Any) -> Err[AppError]:
    return Err(AppError(
        code=code,
        message=message,
        context=ErrorContext(origin=origin),
        metadata={k: v for k, v in metadata.items() if v is not None},
        cause=cause,
    ))


# =============================================================================
# Configuration Errors (E1xxx)
# =============================================================================

def configuration_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E1000_CONFIGURATION_GENERIC,
    origin: str = "",
    **metadata: Any,
) -> Err[AppError]:
    """Create configuration error (bad chain, registry or definition setup)."""
    return _build(code, message, origin, **metadata)


def unknown_validator(name: str, origin: str = "") -> Err[AppError]:
    return configuration_error(
        f"Unknown validator name '{name}'",
        code=ErrorCode.E1002_UNKNOWN_VALIDATOR,
        origin=origin,
        validator=name,
    )


# =============================================================================
# Structural Errors (E3xxx)
# =============================================================================

def structure_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E3000_STRUCTURE_GENERIC,
    origin: str = "",
    cause: Exception | None = None,
    **metadata: Any,
) -> Err[AppError]:
    """Create structural error (data does not match its declared definition)."""
    return _build(code, message, origin, cause, **metadata)


def unknown_serializer_type(serializer_type: str, origin: str = "") -> Err[AppError]:
    return structure_error(
        f"No definition for this type; no way to serialize {serializer_type}",
        code=ErrorCode.E3001_UNKNOWN_SERIALIZER_TYPE,
        origin=origin,
        serializer_type=serializer_type,
    )


def unknown_element(tag: str, origin: str = "") -> Err[AppError]:
    return structure_error(
        f"no field for {tag}",
        code=ErrorCode.E3002_UNKNOWN_ELEMENT,
        origin=origin,
        tag=tag,
    )


def missing_singular(field_name: str, origin: str = "") -> Err[AppError]:
    return structure_error(
        f'Field "{field_name}" is an array, but it is missing "singular" option',
        code=ErrorCode.E3003_MISSING_SINGULAR,
        origin=origin,
        field=field_name,
    )


def unsupported_mode(mode: Any, origin: str = "") -> Err[AppError]:
    return structure_error(
        "Unrecognized serialization mode",
        code=ErrorCode.E3004_UNSUPPORTED_MODE,
        origin=origin,
        mode=str(mode),
    )


# =============================================================================
# Parse Errors (E4xxx)
# =============================================================================

def parse_error(
    message: str,
    *,
    code: ErrorCode = ErrorCode.E4000_PARSE_GENERIC,
    origin: str = "",
    cause: Exception | None = None,
) -> Err[AppError]:
    """Create parse error for malformed JSON/XML input."""
    return _build(code, message, origin, cause)


def invalid_json(cause: Exception, origin: str = "") -> Err[AppError]:
    return parse_error(f"Invalid JSON: {cause}", code=ErrorCode.E4001_INVALID_JSON, origin=origin, cause=cause)


def invalid_xml(cause: Exception, origin: str = "") -> Err[AppError]:
    return parse_error(f"Invalid XML: {cause}", code=ErrorCode.E4002_INVALID_XML, origin=origin, cause=cause)


# =============================================================================
# Timeouts (E5xxx)
# =============================================================================

def timeout_error(
    operation: str,
    timeout_seconds: float,
    *,
    code: ErrorCode = ErrorCode.E5002_BUILD_TIMEOUT,
    origin: str = "",
) -> Err[AppError]:
    return _build(
        code,
        f"Operation '{operation}' timed out after {timeout_seconds}s",
        origin,
        operation=operation,
        timeout_seconds=timeout_seconds,
    )
