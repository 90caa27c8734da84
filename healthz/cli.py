"""
Command line entry point for healthz.

Usage:
    healthz --port 8080 --providers myapp.health:providers
    python -m healthz --config /etc/healthz.yaml --verbose

``--providers`` names ``module:attribute`` where the attribute is a list
of ProviderInfo or a zero-argument callable returning one.
"""

import argparse
import importlib
import sys
from typing import List, Optional, Sequence

from .config import Config, load_config_file
from .constants import VERSION
from .errors import ConfigurationError
from .logging_config import get_logger, setup_logging
from .models import ProviderInfo
from .server import HealthService


def load_providers(target: str) -> List[ProviderInfo]:
    """
    Import providers from ``module:attribute``.

    Raises:
        ConfigurationError: bad target, import failure, or entries that
            are not ProviderInfo
    """
    module_name, _, attribute = target.partition(':')
    if not module_name or not attribute:
        raise ConfigurationError(f"providers must be given as module:attribute, got '{target}'")

    try:
        module = importlib.import_module(module_name)
    except ImportError as e:
        raise ConfigurationError(f"could not import providers module '{module_name}': {e}") from e

    try:
        providers = getattr(module, attribute)
    except AttributeError as e:
        raise ConfigurationError(f"module '{module_name}' has no attribute '{attribute}'") from e

    if callable(providers):
        providers = providers()

    try:
        providers = list(providers)
    except TypeError as e:
        raise ConfigurationError(f"'{target}' is not a list of providers") from e

    for provider in providers:
        if not isinstance(provider, ProviderInfo):
            raise ConfigurationError(
                f"'{target}' contains {type(provider).__name__}, expected ProviderInfo"
            )
    return providers


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='healthz',
        description='Serve aggregated health checks over HTTP',
    )
    parser.add_argument('--bind-addr', type=str,
                        help='Address to bind (default: all interfaces)')
    parser.add_argument('--port', type=int,
                        help='Port to bind (default: 8080)')
    parser.add_argument('--hostname', type=str,
                        help='Hostname reported in /healthz (default: autodetect)')
    parser.add_argument('--config', type=str,
                        help='YAML or JSON settings file')
    parser.add_argument('--providers', action='append', default=[], metavar='MODULE:ATTR',
                        help='Import health check providers (repeatable)')
    parser.add_argument('--verbose', '-v', action='store_true',
                        help='Enable debug logging')
    parser.add_argument('--log-json', action='store_true',
                        help='Output logs in JSON format')
    parser.add_argument('--log-file', type=str,
                        help='Additional log file path')
    parser.add_argument('--version', action='version', version=f'%(prog)s {VERSION}')
    return parser


def build_config(args: argparse.Namespace) -> Config:
    """Merge settings file, environment and flags, in increasing precedence."""
    settings = load_config_file(args.config) if args.config else {}

    setup_logging(
        verbose=args.verbose or settings.get('verbose', False),
        log_file=args.log_file or settings.get('log_file'),
        json_format=args.log_json or settings.get('log_json', False),
    )

    providers = []
    for target in args.providers:
        providers.extend(load_providers(target))

    config = Config(
        log=get_logger('healthz.service'),
        providers=tuple(providers),
        server_error_log=get_logger('healthz.http'),
    ).apply_settings(settings).apply_environment()

    if args.bind_addr is not None:
        config.bind_addr = args.bind_addr
    if args.port is not None:
        config.bind_port = args.port
    if args.hostname is not None:
        config.hostname = args.hostname
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    try:
        service = HealthService(build_config(args))
    except ConfigurationError as e:
        print(f"healthz: {e}", file=sys.stderr)
        return 2

    service.log.info("Binding health check server to %s:%s", *service.server_address[:2])
    try:
        served = service.start()
    except KeyboardInterrupt:
        return 130
    return 0 if served else 1


if __name__ == '__main__':
    sys.exit(main())
