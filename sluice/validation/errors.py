"""Field-level validation errors.

A ``FieldError`` names exactly which key failed, the path of parent keys
leading to it through nested schemas, and the chain's message.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from sluice.core.errors import AppError, ErrorCode, ErrorContext


@dataclass(frozen=True, slots=True)
class FieldError:
    key: str | None
    message: str
    parent_keys: tuple[str, ...] = ()
    code: ErrorCode = ErrorCode.E2000_VALIDATION_GENERIC

    @property
    def field_path(self) -> str:
        """Dot-separated path, e.g. ``a.b.c``."""
        parts = [*self.parent_keys, self.key] if self.key is not None else list(self.parent_keys)
        return ".".join(parts)

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "parentKeys": list(self.parent_keys), "message": self.message}

    def to_app_error(self) -> AppError:
        """Convert for transport layers that speak AppError."""
        return AppError(
            code=self.code,
            message=self.message,
            context=ErrorContext(origin="valve"),
            metadata={"key": self.key, "parent_keys": list(self.parent_keys), "field_path": self.field_path},
        )

    def __str__(self) -> str:
        return f"{self.field_path}: {self.message}" if self.field_path else self.message
