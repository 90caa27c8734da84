"""
Centralized Constants Module for healthz.

Consolidates the fixed server limits, endpoint paths and environment
override helpers used throughout the package.

Usage:
    from healthz.constants import Timeouts, Limits, Endpoints

    handler.timeout = Timeouts.READ
"""

import os
import logging
from dataclasses import dataclass
from typing import Callable, Optional, TypeVar

logger = logging.getLogger(__name__)

ENV_PREFIX = "HEALTHZ_"


# =============================================================================
# ENVIRONMENT VARIABLE OVERRIDE UTILITIES
# =============================================================================

T = TypeVar('T')


def env_override(
    env_var: str,
    default: T,
    converter: Callable[[str], T] = str,
    validator: Optional[Callable[[T], bool]] = None,
    min_value: Optional[T] = None,
    max_value: Optional[T] = None,
) -> T:
    """Get a configuration value with environment variable override.

    Invalid values are rejected with a warning and the default is kept.

    Args:
        env_var: Environment variable name (will be prefixed with HEALTHZ_)
        default: Default value if env var not set
        converter: Function to convert string to target type
        validator: Optional validation function
        min_value: Optional minimum allowed value
        max_value: Optional maximum allowed value

    Returns:
        Configured value (from env var if valid, otherwise default)
    """
    full_env_var = f"{ENV_PREFIX}{env_var}"
    env_value = os.environ.get(full_env_var)

    if env_value is None:
        return default

    try:
        converted = converter(env_value)

        if min_value is not None and converted < min_value:
            logger.warning(
                f"{full_env_var}={env_value} below minimum {min_value}, using default"
            )
            return default
        if max_value is not None and converted > max_value:
            logger.warning(
                f"{full_env_var}={env_value} above maximum {max_value}, using default"
            )
            return default

        if validator is not None and not validator(converted):
            logger.warning(
                f"{full_env_var}={env_value} failed validation, using default"
            )
            return default

        logger.info(f"Using {full_env_var}={converted} (override)")
        return converted

    except (ValueError, TypeError) as e:
        logger.warning(f"Invalid value for {full_env_var}: {e}, using default")
        return default


def env_flag(env_var: str) -> bool:
    """Read a boolean HEALTHZ_ flag ('1', 'true', 'yes')."""
    value = os.environ.get(f"{ENV_PREFIX}{env_var}", '')
    return value.lower() in ('1', 'true', 'yes')


# =============================================================================
# SERVER CONSTANTS
# =============================================================================

@dataclass(frozen=True)
class Timeouts:
    """
    Per-connection socket timeouts in seconds.

    The standard library server applies one socket timeout to both
    directions, so READ and WRITE must stay equal.
    """
    READ: float = 45.0
    WRITE: float = 45.0


@dataclass(frozen=True)
class Limits:
    """Request size limits."""
    MAX_HEADER_BYTES: int = 1 << 20     # 1 MiB for the whole header block
    MIN_PORT: int = 0                   # 0 asks the OS for an ephemeral port
    MAX_PORT: int = 65535


@dataclass(frozen=True)
class Endpoints:
    """Registered HTTP routes."""
    HEALTHZ: str = "/healthz"
    LIVENESS: str = "/liveness"


@dataclass(frozen=True)
class ContentTypes:
    JSON: str = "application/json"
    TEXT: str = "text/plain; charset=utf-8"


# =============================================================================
# DEFAULTS
# =============================================================================

VERSION = "1.0.0"
DEFAULT_BIND_ADDR = ""
DEFAULT_BIND_PORT = 8080
LIVENESS_BODY = b"OK"

__all__ = [
    'ENV_PREFIX',
    'VERSION',
    'env_override',
    'env_flag',
    'Timeouts',
    'Limits',
    'Endpoints',
    'ContentTypes',
    'DEFAULT_BIND_ADDR',
    'DEFAULT_BIND_PORT',
    'LIVENESS_BODY',
]
