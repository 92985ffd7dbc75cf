"""Errors raised while reading servingledger settings."""

from __future__ import annotations


class ConfigurationError(RuntimeError):
    """A setting cannot be used as given; the CLI reports it as a usage error."""


class InvalidConfigurationError(ConfigurationError):
    def __init__(self, name: str, value: str, expected: str) -> None:
        super().__init__(f"Invalid value for {name}: {value!r} (expected {expected})")
        self.name = name
        self.value = value
        self.expected = expected
