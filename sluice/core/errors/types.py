"""Result Types and Error Taxonomy

Every fallible engine operation returns ``Result[T, E]``: either ``Ok`` with
the cleaned/built value or ``Err`` with a typed error. Matching is done with
``match`` statements on the two frozen variants.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import (
    Any, Callable, Generic, Iterator, NoReturn,
    TypeVar, Union, final,
)
from uuid import uuid4

T = TypeVar("T")
U = TypeVar("U")
E = TypeVar("E")
F = TypeVar("F")


class ErrorCode(Enum):
    """Hierarchical error code taxonomy.

    E1xxx: Configuration (schema/registry setup) errors
    E2xxx: Validation errors
    E3xxx: Structural errors (definition/data mismatch)
    E4xxx: Parse errors
    E5xxx: Timeouts
    E9xxx: Internal/Unknown errors
    """
    # Configuration (E1xxx)
    E1000_CONFIGURATION_GENERIC = 1000
    E1001_DUPLICATE_NUM_ITEMS = 1001
    E1002_UNKNOWN_VALIDATOR = 1002
    E1003_MISSING_VALIDATOR_NAME = 1003
    E1004_MISSING_VALIDATOR_FUNCTION = 1004
    E1005_NO_SCHEMA = 1005
    E1006_INVALID_DEFINITION = 1006
    E1007_DUPLICATE_DEFINITION = 1007
    E1008_REGISTRY_FROZEN = 1008

    # Validation (E2xxx)
    E2000_VALIDATION_GENERIC = 2000
    E2001_REQUIRED_FIELD_MISSING = 2001
    E2002_KEY_NOT_ALLOWED = 2002
    E2003_IMMUTABLE_FIELD = 2003
    E2004_FINAL_VALIDATION_FAILED = 2004

    # Structural (E3xxx)
    E3000_STRUCTURE_GENERIC = 3000
    E3001_UNKNOWN_SERIALIZER_TYPE = 3001
    E3002_UNKNOWN_ELEMENT = 3002
    E3003_MISSING_SINGULAR = 3003
    E3004_UNSUPPORTED_MODE = 3004
    E3005_DEFERRED_FIELD_FAILED = 3005

    # Parse (E4xxx)
    E4000_PARSE_GENERIC = 4000
    E4001_INVALID_JSON = 4001
    E4002_INVALID_XML = 4002

    # Timeout (E5xxx)
    E5001_CHECK_TIMEOUT = 5001
    E5002_BUILD_TIMEOUT = 5002

    # Internal (E9xxx)
    E9000_INTERNAL_GENERIC = 9000

    @property
    def http_status(self) -> int:
        """Map error code to the HTTP status a transport layer should answer with."""
        code = self.value
        if 2000 <= code < 3000 or 4000 <= code < 5000:
            return 400
        if 3000 <= code < 4000:
            return 422
        if 5000 <= code < 6000:
            return 504
        return 500

    @property
    def category(self) -> str:
        """Human-readable error category."""
        code = self.value
        if 1000 <= code < 2000:
            return "configuration"
        if 2000 <= code < 3000:
            return "validation"
        if 3000 <= code < 4000:
            return "structure"
        if 4000 <= code < 5000:
            return "parse"
        if 5000 <= code < 6000:
            return "timeout"
        return "internal"


@dataclass(frozen=True, slots=True)
class ErrorContext:
    """Immutable context for error tracing."""
    correlation_id: str = field(default_factory=lambda: str(uuid4())[:8])
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    origin: str = ""

    def with_origin(self, origin: str) -> ErrorContext:
        return ErrorContext(correlation_id=self.correlation_id, timestamp=self.timestamp, origin=origin)


@dataclass(frozen=True, slots=True)
class AppError:
    """Engine error with code, message, metadata and optional cause."""
    code: ErrorCode
    message: str
    context: ErrorContext = field(default_factory=ErrorContext)
    metadata: dict = field(default_factory=dict)
    cause: Exception | None = None

    @property
    def error_id(self) -> str:
        return f"{self.code.name}:{self.context.correlation_id}"

    def with_origin(self, origin: str) -> AppError:
        return AppError(self.code, self.message, self.context.with_origin(origin), self.metadata, self.cause)

    def with_metadata(self, **kwargs: Any) -> AppError:
        """Create new error with additional metadata."""
        return AppError(self.code, self.message, self.context, {**self.metadata, **kwargs}, self.cause)

    def to_dict(self) -> dict:
        """Serialize error for transport-layer responses."""
        return {
            "error": {
                "code": self.code.name,
                "code_num": self.code.value,
                "message": self.message,
                "category": self.code.category,
                "correlation_id": self.context.correlation_id,
                "timestamp": self.context.timestamp.isoformat(),
                "metadata": self.metadata,
            }
        }

    def __str__(self) -> str:
        return f"[{self.code.name}] {self.message}"


@final
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Success variant of Result."""
    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value

    def unwrap_or(self, default: T) -> T:
        return self.value

    def map(self, f: Callable[[T], U]) -> Ok[U]:
        return Ok(f(self.value))

    def map_err(self, f: Callable[[Any], F]) -> Ok[T]:
        return self

    def flat_map(self, f: Callable[[T], Result[U, E]]) -> Result[U, E]:
        return f(self.value)

    def match(self, ok: Callable[[T], U], err: Callable[[Any], U]) -> U:
        return ok(self.value)

    def __iter__(self) -> Iterator[T]:
        yield self.value


@final
@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failure variant of Result.

    The payload is usually an ``AppError``; chain steps carry a plain message
    string and the valve carries a ``FieldError``.
    """
    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> NoReturn:
        raise ValueError(f"Called unwrap on Err: {self.error}")

    def unwrap_or(self, default: T) -> T:
        return default

    def unwrap_err(self) -> E:
        return self.error

    def map(self, f: Callable[[Any], U]) -> Err[E]:
        return self

    def map_err(self, f: Callable[[E], F]) -> Err[F]:
        return Err(f(self.error))

    def flat_map(self, f: Callable[[Any], Result[U, E]]) -> Err[E]:
        return self

    def match(self, ok: Callable[[Any], U], err: Callable[[E], U]) -> U:
        return err(self.error)

    def __iter__(self) -> Iterator:
        return iter([])


Result = Union[Ok[T], Err[E]]


def from_exception(
    exc: Exception,
    code: ErrorCode = ErrorCode.E9000_INTERNAL_GENERIC,
    message: str | None = None,
    origin: str = "",
    **metadata: Any,
) -> Err[AppError]:
    """Convert exception to Err, keeping it as the cause."""
    return Err(AppError(
        code=code,
        message=message or str(exc),
        context=ErrorContext(origin=origin),
        metadata=metadata,
        cause=exc,
    ))


def sequence_results(results: list[Result[T, E]]) -> Result[list[T], E]:
    """Sequence Results, returning the first Err by position."""
    values: list[T] = []
    for r in results:
        match r:
            case Ok(v):
                values.append(v)
            case Err(e):
                return Err(e)
    return Ok(values)
