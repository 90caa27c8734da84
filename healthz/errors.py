"""
Error types and helpers for healthz.

Categories:
- configuration: fatal to construction, raised to the caller
- server: anything else raised by healthz

Probe failures are reported in the response body and never raised;
bind, serve and encoding failures are logged by HealthService.

USAGE:
    from healthz.errors import ConfigurationError, describe_error

    try:
        probe.check()
    except Exception as e:
        message = describe_error(e)
"""

from enum import Enum
from typing import Any


class ErrorCategory(Enum):
    """Categories of errors for proper handling and reporting."""
    CONFIG = "configuration"
    SERVER = "server"


class HealthzError(Exception):
    """Base class for errors raised by healthz."""

    category = ErrorCategory.SERVER


class ConfigurationError(HealthzError):
    """Raised when the service cannot be constructed from its configuration."""

    category = ErrorCategory.CONFIG


def describe_error(error: Any) -> str:
    """
    Return the text reported for a failure.

    Exceptions report their message; an exception with an empty message
    reports its class name instead so the entry is never blank.
    """
    if isinstance(error, BaseException):
        message = str(error)
        return message if message else type(error).__name__
    return str(error)


__all__ = [
    'ErrorCategory',
    'HealthzError',
    'ConfigurationError',
    'describe_error',
]
