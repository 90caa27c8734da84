"""
healthz - aggregated health checks over HTTP.

Serves two endpoints for orchestration and monitoring systems:
- /healthz  - JSON report of every failing probe, always status 200
- /liveness - plain OK, no probes run
"""

from .config import Config, load_config_file
from .constants import VERSION
from .errors import ConfigurationError, ErrorCategory, HealthzError
from .models import CheckError, HealthCheckable, HealthLogger, HealthReport, ProviderInfo
from .server import HealthService, ServiceState

__version__ = VERSION

__all__ = [
    'Config',
    'load_config_file',
    'ConfigurationError',
    'ErrorCategory',
    'HealthzError',
    'CheckError',
    'HealthCheckable',
    'HealthLogger',
    'HealthReport',
    'ProviderInfo',
    'HealthService',
    'ServiceState',
]
