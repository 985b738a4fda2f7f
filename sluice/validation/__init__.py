"""Validation: chains of steps, schema checks and schema compilation.

Usage:
    from sluice.validation import Chain, Valve

    valve = Valve({"port": Chain().is_port(), "host": Chain().is_hostname_or_ip()})
    result = await valve.check(payload, strict=True)
"""
from .errors import FieldError
from .registry import RegisteredValidator, ValidatorRegistry, default_registry
from .chain import Chain, ValidatorStep
from .valve import Schema, Valve, check_schema
from .compiler import compile_schema, describe_schema

__all__ = [
    "FieldError",
    "RegisteredValidator",
    "ValidatorRegistry",
    "default_registry",
    "Chain",
    "ValidatorStep",
    "Schema",
    "Valve",
    "check_schema",
    "compile_schema",
    "describe_schema",
]
