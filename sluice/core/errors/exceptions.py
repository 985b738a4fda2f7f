"""Raising Counterparts of AppError

Schema construction and a few codec entry points raise instead of returning
a Result. These wrappers carry the same ``AppError`` so callers can still
inspect ``exc.error.code``.
"""
from __future__ import annotations

from typing import NoReturn

from .types import AppError, ErrorCode, ErrorContext


class AppErrorException(Exception):
    """Exception wrapper for AppError."""

    def __init__(self, error: AppError):
        self.error = error
        super().__init__(error.message)

    @property
    def code(self) -> ErrorCode:
        return self.error.code


class ConfigurationError(AppErrorException):
    """Bad chain, registry or definition setup. Raised at schema-build time."""

    def __init__(self, message: str, code: ErrorCode = ErrorCode.E1000_CONFIGURATION_GENERIC, **metadata):
        super().__init__(AppError(code=code, message=message, context=ErrorContext(origin="configuration"),
                                  metadata=metadata))


class SerializationError(AppErrorException):
    """Structural or parse failure on a raising codec path."""


def raise_error(error: AppError) -> NoReturn:
    """Raise an AppError, choosing the exception class from its category."""
    if error.code.category == "configuration":
        raise ConfigurationError(error.message, error.code, **error.metadata)
    raise SerializationError(error)
