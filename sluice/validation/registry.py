"""Custom validator registry.

Named validators are registered at startup and referenced from chains with
``Chain.custom(name)``. A registry can be frozen once configuration is done;
registering afterwards is a configuration error.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from sluice.core.errors import ConfigurationError, ErrorCode, Result, raise_error, unknown_validator
from sluice.core.logging import validation_logger

log = validation_logger()

ValidatorFunc = Callable[[Any, Any], "Result[Any, Any] | Awaitable[Result[Any, Any]]"]

DEFAULT_DESCRIPTION = "(help not found)"


@dataclass(frozen=True, slots=True)
class RegisteredValidator:
    name: str
    func: ValidatorFunc
    description: str = DEFAULT_DESCRIPTION


class ValidatorRegistry:
    """Name -> validator mapping consulted by ``Chain.custom``."""

    __slots__ = ("_validators", "_frozen")

    def __init__(self) -> None:
        self._validators: dict[str, RegisteredValidator] = {}
        self._frozen = False

    def add(self, name: str, description: str | None, func: ValidatorFunc) -> RegisteredValidator:
        """Register ``func(value, baton) -> Result`` under ``name``.

        Re-registering a name replaces the earlier validator.
        """
        if self._frozen:
            raise ConfigurationError(
                f"Cannot register validator '{name}' on a frozen registry",
                ErrorCode.E1008_REGISTRY_FROZEN,
            )
        if not callable(func):
            raise ConfigurationError("No validator function specified", ErrorCode.E1004_MISSING_VALIDATOR_FUNCTION)
        entry = RegisteredValidator(name, func, description or DEFAULT_DESCRIPTION)
        self._validators[name] = entry
        log.debug("custom_validator_registered", name=name)
        return entry

    def get(self, name: str | None) -> RegisteredValidator:
        if name is None:
            raise ConfigurationError("Missing custom validator name", ErrorCode.E1003_MISSING_VALIDATOR_NAME)
        if name not in self._validators:
            raise_error(unknown_validator(name, origin="registry").error)
        return self._validators[name]

    def freeze(self) -> ValidatorRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def __contains__(self, name: object) -> bool:
        return name in self._validators

    def __len__(self) -> int:
        return len(self._validators)


default_registry = ValidatorRegistry()
