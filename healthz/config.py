"""
Configuration for HealthService.

Recognized options: bind address, bind port, provider list, hostname
override (empty = autodetect), logger (required) and an optional logger
for the HTTP server's own internal errors.

Sources, lowest precedence first:
- dataclass defaults
- a YAML or JSON settings file (``load_config_file``)
- HEALTHZ_BIND_ADDR / HEALTHZ_BIND_PORT / HEALTHZ_HOSTNAME
- explicit values (command line flags, caller code)

Providers and loggers are Python objects and can only be supplied in code.
"""

import json
import logging
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any, Dict, Mapping, Optional, Sequence, Union

import yaml

from .constants import DEFAULT_BIND_ADDR, DEFAULT_BIND_PORT, Limits, env_override
from .errors import ConfigurationError
from .models import HealthLogger, ProviderInfo

logger = logging.getLogger(__name__)

# Keys accepted in a settings file and the type each must have.
FILE_SETTINGS = {
    'bind_addr': str,
    'bind_port': int,
    'hostname': str,
    'verbose': bool,
    'log_json': bool,
    'log_file': str,
}

# Settings that map onto Config fields; the rest configure logging.
SERVICE_SETTINGS = ('bind_addr', 'bind_port', 'hostname')


def valid_port(port: int) -> bool:
    """Whether port is a bindable TCP port number."""
    return Limits.MIN_PORT <= port <= Limits.MAX_PORT


@dataclass
class Config:
    """Options HealthService is constructed from."""
    log: Optional[HealthLogger] = None
    bind_addr: str = DEFAULT_BIND_ADDR
    bind_port: int = DEFAULT_BIND_PORT
    providers: Sequence[ProviderInfo] = field(default_factory=tuple)
    hostname: str = ""
    server_error_log: Optional[logging.Logger] = None

    @property
    def address(self) -> str:
        return f"{self.bind_addr}:{self.bind_port}"

    def apply_settings(self, settings: Mapping[str, Any]) -> 'Config':
        """Return a copy with the service keys of a settings mapping applied."""
        changes = {key: settings[key] for key in SERVICE_SETTINGS if key in settings}
        return replace(self, **changes)

    def apply_environment(self) -> 'Config':
        """Return a copy with HEALTHZ_* environment overrides applied."""
        return replace(
            self,
            bind_addr=env_override('BIND_ADDR', self.bind_addr),
            bind_port=env_override(
                'BIND_PORT',
                self.bind_port,
                converter=int,
                min_value=Limits.MIN_PORT,
                max_value=Limits.MAX_PORT,
            ),
            hostname=env_override('HOSTNAME', self.hostname),
        )

    @classmethod
    def from_environment(
        cls,
        log: Optional[HealthLogger],
        providers: Sequence[ProviderInfo] = (),
        server_error_log: Optional[logging.Logger] = None,
    ) -> 'Config':
        """Build a Config from defaults and HEALTHZ_* environment variables."""
        return cls(
            log=log,
            providers=tuple(providers),
            server_error_log=server_error_log,
        ).apply_environment()


def load_config_file(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load settings from a YAML (.yaml/.yml) or JSON file.

    Returns:
        Mapping of recognized keys to values. Unknown keys are dropped
        with a warning.

    Raises:
        ConfigurationError: file missing, unparsable, not a mapping, or a
            value of the wrong type
    """
    path = Path(path)

    try:
        content = path.read_text(encoding='utf-8')
    except OSError as e:
        raise ConfigurationError(f"could not read config file {path}: {e}") from e

    try:
        if path.suffix.lower() in ('.yaml', '.yml'):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (yaml.YAMLError, ValueError) as e:
        raise ConfigurationError(f"could not parse config file {path}: {e}") from e

    if data is None:
        logger.warning(f"Empty config file: {path}")
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping")

    settings = {}
    for key, value in data.items():
        expected = FILE_SETTINGS.get(key)
        if expected is None:
            logger.warning(f"Ignoring unknown config key '{key}' in {path}")
            continue
        # bool is an int subclass; a port of `true` is a mistake, not 1
        if not isinstance(value, expected) or (expected is int and isinstance(value, bool)):
            raise ConfigurationError(
                f"config key '{key}' in {path} must be {expected.__name__}, "
                f"got {type(value).__name__}"
            )
        settings[key] = value

    if 'bind_port' in settings and not valid_port(settings['bind_port']):
        raise ConfigurationError(
            f"config key 'bind_port' in {path} out of range: {settings['bind_port']}"
        )

    logger.info(f"Loaded {len(settings)} settings from {path}")
    return settings


__all__ = [
    'Config',
    'FILE_SETTINGS',
    'load_config_file',
    'valid_port',
]
