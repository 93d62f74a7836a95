"""Exceptions raised by htmlguard.

Malformed or hostile markup never raises: it is repaired or stripped. Only
configuration problems and exceeded resource limits surface as errors.
"""

from __future__ import annotations


class HtmlGuardError(Exception):
    """Base class for all htmlguard errors."""


class ConfigError(HtmlGuardError, ValueError):
    """An option, element/attribute specification or override spec is invalid.

    Raised while resolving a configuration, before any document is filtered.
    """

    def __init__(self, message: str, *, option: str | None = None, position: int | None = None) -> None:
        self.option = option
        self.position = position
        if option is not None:
            message = f"{option}: {message}"
        if position is not None:
            message = f"{message} (at position {position})"
        super().__init__(message)


class ResourceLimitError(HtmlGuardError):
    """The input exceeds a configured resource limit."""

    def __init__(self, message: str, *, limit: int, actual: int) -> None:
        self.limit = limit
        self.actual = actual
        super().__init__(message)


class InputTooLargeError(ResourceLimitError):
    pass


class NestingDepthError(ResourceLimitError):
    pass


__all__ = [
    "ConfigError",
    "HtmlGuardError",
    "InputTooLargeError",
    "NestingDepthError",
    "ResourceLimitError",
]
