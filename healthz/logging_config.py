"""
Logging Configuration for healthz.

Provides centralized logging configuration with a verbose toggle,
text or JSON log formatting, and a logger class that satisfies the
logger capability HealthService expects (info/debug/error/errorf).

Usage:
    from healthz.logging_config import setup_logging, get_logger

    # Setup at process startup
    setup_logging(verbose=True)

    log = get_logger('healthz.service')
    log.info("autodetected hostname as: ", hostname)
    log.errorf("Check failed: %s: %s, error: %s", kind, description, message)
"""

import os
import sys
import json
import logging
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, Optional, Tuple, Union
from dataclasses import dataclass, field

from .constants import env_flag, ENV_PREFIX


# =============================================================================
# CONFIGURATION STATE
# =============================================================================

@dataclass
class LoggingState:
    """Thread-safe logging configuration state."""
    verbose: bool = False
    log_file: Optional[str] = None
    console_enabled: bool = True
    json_format: bool = False
    initialized: bool = False
    _lock: threading.RLock = field(default_factory=threading.RLock)


_state = LoggingState()


# =============================================================================
# CUSTOM FORMATTER
# =============================================================================

class HealthzFormatter(logging.Formatter):
    """Formatter with color support and structured output."""

    COLORS = {
        'DEBUG': '\033[36m',      # Cyan
        'INFO': '\033[32m',       # Green
        'WARNING': '\033[33;1m',  # Bold yellow
        'ERROR': '\033[31m',      # Red
        'CRITICAL': '\033[31;1m', # Bold red
        'RESET': '\033[0m',
    }

    def __init__(self, use_colors: bool = True, json_format: bool = False):
        self.use_colors = use_colors and sys.stdout.isatty()
        self.json_format = json_format
        super().__init__()

    def format(self, record: logging.LogRecord) -> str:
        if self.json_format:
            return self._format_json(record)
        return self._format_text(record)

    def _format_text(self, record: logging.LogRecord) -> str:
        timestamp = datetime.fromtimestamp(record.created).strftime('%Y-%m-%d %H:%M:%S.%f')[:-3]
        level_name = record.levelname

        if self.use_colors:
            color = self.COLORS.get(level_name, '')
            reset = self.COLORS['RESET']
            level_str = f"{color}{level_name:8}{reset}"
        else:
            level_str = f"{level_name:8}"

        text = f"{timestamp} {level_str} [{record.name}] {record.getMessage()}"
        if record.exc_info:
            text = f"{text}\n{self.formatException(record.exc_info)}"
        return text

    def _format_json(self, record: logging.LogRecord) -> str:
        data = {
            'timestamp': datetime.fromtimestamp(record.created).isoformat(),
            'level': record.levelname,
            'logger': record.name,
            'message': record.getMessage(),
        }

        if record.exc_info:
            data['exception'] = self.formatException(record.exc_info)

        return json.dumps(data)


# =============================================================================
# CUSTOM LOGGER CLASS
# =============================================================================

def _coerce_variadic(msg: Any, args: Tuple[Any, ...]) -> Tuple[Any, Tuple[Any, ...]]:
    """
    Accept both logging styles.

    ``log.info("hostname is %s", h)`` keeps %-formatting; a call whose
    message has no placeholder, ``log.info("hostname is: ", h)``, has
    its operands concatenated instead.
    """
    if args and not (isinstance(msg, str) and '%' in msg):
        return ''.join(str(part) for part in (msg,) + args), ()
    return msg, args


class HealthzLogger(logging.Logger):
    """Logger with variadic info/debug/error and a printf-style errorf."""

    def info(self, msg, *args, **kwargs):
        msg, args = _coerce_variadic(msg, args)
        kwargs['stacklevel'] = kwargs.get('stacklevel', 1) + 1
        super().info(msg, *args, **kwargs)

    def debug(self, msg, *args, **kwargs):
        msg, args = _coerce_variadic(msg, args)
        kwargs['stacklevel'] = kwargs.get('stacklevel', 1) + 1
        super().debug(msg, *args, **kwargs)

    def error(self, msg, *args, **kwargs):
        msg, args = _coerce_variadic(msg, args)
        kwargs['stacklevel'] = kwargs.get('stacklevel', 1) + 1
        super().error(msg, *args, **kwargs)

    def errorf(self, fmt: str, *args, **kwargs):
        """Log at ERROR level with %-style formatting."""
        kwargs['stacklevel'] = kwargs.get('stacklevel', 1) + 1
        super().error(fmt, *args, **kwargs)


logging.setLoggerClass(HealthzLogger)


class HealthzLoggerAdapter(logging.LoggerAdapter):
    """
    Gives a plain ``logging.Logger`` the HealthzLogger calling conventions.

    Used for loggers that already existed when this module was imported
    and so were not created as HealthzLogger.
    """

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    def log(self, level, msg, *args, **kwargs):
        msg, args = _coerce_variadic(msg, args)
        kwargs['stacklevel'] = kwargs.get('stacklevel', 1) + 1
        super().log(level, msg, *args, **kwargs)

    def errorf(self, fmt: str, *args, **kwargs):
        """Log at ERROR level with %-style formatting."""
        kwargs['stacklevel'] = kwargs.get('stacklevel', 1) + 1
        self.logger.error(fmt, *args, **kwargs)


# =============================================================================
# SETUP AND CONFIGURATION
# =============================================================================

def setup_logging(
    verbose: bool = False,
    log_file: Optional[str] = None,
    console: bool = True,
    json_format: bool = False,
) -> None:
    """
    Initialize the logging system.

    Args:
        verbose: Enable debug logging
        log_file: Optional file path for log output
        console: Enable console output
        json_format: Use JSON format for logs
    """
    with _state._lock:
        _state.verbose = verbose
        _state.log_file = log_file
        _state.console_enabled = console
        _state.json_format = json_format

        base_level = logging.DEBUG if verbose else logging.INFO

        root = logging.getLogger()
        root.setLevel(base_level)

        for handler in root.handlers[:]:
            root.removeHandler(handler)

        if console:
            console_handler = logging.StreamHandler(sys.stdout)
            console_handler.setLevel(base_level)
            console_handler.setFormatter(HealthzFormatter(
                use_colors=True,
                json_format=json_format
            ))
            root.addHandler(console_handler)

        if log_file:
            log_path = Path(log_file)
            log_path.parent.mkdir(parents=True, exist_ok=True)

            file_handler = logging.FileHandler(log_file)
            file_handler.setLevel(base_level)
            file_handler.setFormatter(HealthzFormatter(
                use_colors=False,
                json_format=json_format
            ))
            root.addHandler(file_handler)

        _state.initialized = True


def get_logger(name: str) -> Union[HealthzLogger, HealthzLoggerAdapter]:
    """
    Get a logger implementing the healthz logger capability.

    Loggers first requested after this module is imported are
    HealthzLogger instances. A logger created earlier stays as it is
    and is returned wrapped in a HealthzLoggerAdapter.

    Args:
        name: Logger name (e.g., 'healthz.service')
    """
    logger = logging.getLogger(name)
    if not isinstance(logger, HealthzLogger):
        return HealthzLoggerAdapter(logger)
    return logger


def set_verbose(enabled: bool) -> None:
    """Toggle debug logging at runtime."""
    with _state._lock:
        _state.verbose = enabled
        level = logging.DEBUG if enabled else logging.INFO

        root = logging.getLogger()
        root.setLevel(level)

        for handler in root.handlers:
            handler.setLevel(level)


def get_logging_state() -> Dict[str, Any]:
    """Get current logging configuration state."""
    with _state._lock:
        return {
            'verbose': _state.verbose,
            'log_file': _state.log_file,
            'console_enabled': _state.console_enabled,
            'json_format': _state.json_format,
            'initialized': _state.initialized,
        }


def configure_from_environment() -> None:
    """Configure logging from HEALTHZ_* environment variables."""
    setup_logging(
        verbose=env_flag('VERBOSE'),
        log_file=os.environ.get(f'{ENV_PREFIX}LOG_FILE'),
        console=not env_flag('LOG_NO_CONSOLE'),
        json_format=env_flag('LOG_JSON'),
    )


__all__ = [
    'setup_logging',
    'configure_from_environment',
    'get_logger',
    'set_verbose',
    'get_logging_state',
    'HealthzLogger',
    'HealthzLoggerAdapter',
    'HealthzFormatter',
]
