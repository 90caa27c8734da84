"""
Health aggregation HTTP service.

Endpoints:
- /healthz  - Runs every registered probe and reports failures as JSON
- /liveness - Answers OK without running any probe

Any other path is answered 404.

Usage:
    from healthz import Config, HealthService, ProviderInfo
    from healthz.logging_config import get_logger

    service = HealthService(Config(
        bind_port=8080,
        providers=[ProviderInfo(check=db, type="DBConn",
                                description="Ensure the database connection is up")],
        log=get_logger('healthz.service'),
    ))
    service.start()  # blocks
"""

import http.client
import logging
import socket
import threading
from enum import Enum
from http import HTTPStatus
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Callable, Dict, Optional, Tuple
from urllib.parse import urlsplit

from .config import Config, valid_port
from .constants import ContentTypes, Endpoints, Limits, LIVENESS_BODY, Timeouts, VERSION
from .errors import ConfigurationError
from .models import CheckError, HealthReport

logger = logging.getLogger(__name__)

NOT_FOUND_BODY = b"404 page not found\n"

Route = Callable[['HealthzRequestHandler'], None]


class ServiceState(Enum):
    """Lifecycle of a HealthService. There is no way back to CONSTRUCTED."""
    CONSTRUCTED = "constructed"
    SERVING = "serving"


def detect_hostname() -> str:
    """Hostname reported in every /healthz response."""
    try:
        hostname = socket.gethostname()
    except OSError as e:
        raise ConfigurationError(f"could not detect hostname: {e}") from e
    if not hostname:
        raise ConfigurationError("could not detect hostname: empty hostname")
    return hostname


class _HeaderLimitedReader:
    """Counts bytes read from rfile while the request header block is parsed."""

    def __init__(self, stream, limit: int):
        self._stream = stream
        self._remaining = limit

    def readline(self, size: int = -1) -> bytes:
        line = self._stream.readline(size)
        self._remaining -= len(line)
        if self._remaining < 0:
            raise http.client.LineTooLong("header block")
        return line

    def __getattr__(self, name: str) -> Any:
        return getattr(self._stream, name)


class HealthzRequestHandler(BaseHTTPRequestHandler):
    """Routes requests to the handlers registered on the server."""

    server_version = f"healthz/{VERSION}"
    # Applied as the socket timeout, which bounds both reads and writes.
    timeout = Timeouts.READ
    max_header_bytes = Limits.MAX_HEADER_BYTES

    def parse_request(self) -> bool:
        rfile = self.rfile
        self.rfile = _HeaderLimitedReader(
            rfile, self.max_header_bytes - len(self.raw_requestline)
        )
        try:
            return super().parse_request()
        finally:
            self.rfile = rfile

    def log_message(self, format: str, *args) -> None:
        """Suppress per-request access logging."""
        pass

    def log_error(self, format: str, *args) -> None:
        self.server.error_log.error("%s - %s", self.address_string(), format % args)

    def write_body(self, data: bytes) -> None:
        """Write a response body; HEAD responses carry headers only."""
        if self.command != 'HEAD':
            self.wfile.write(data)

    def _dispatch(self) -> None:
        route = self.server.routes.get(urlsplit(self.path).path)
        if route is None:
            self._not_found()
            return
        route(self)

    def _not_found(self) -> None:
        self.send_response(HTTPStatus.NOT_FOUND)
        self.send_header('Content-Type', ContentTypes.TEXT)
        self.send_header('X-Content-Type-Options', 'nosniff')
        self.send_header('Content-Length', str(len(NOT_FOUND_BODY)))
        self.end_headers()
        self.write_body(NOT_FOUND_BODY)

    do_GET = _dispatch
    do_HEAD = _dispatch
    do_POST = _dispatch
    do_PUT = _dispatch
    do_PATCH = _dispatch
    do_DELETE = _dispatch
    do_OPTIONS = _dispatch


class HealthzHTTPServer(ThreadingHTTPServer):
    """
    Thread-per-request HTTP server.

    Created unbound; HealthService.start() binds and listens.
    """

    daemon_threads = True

    def __init__(
        self,
        server_address: Tuple[str, int],
        routes: Dict[str, Route],
        error_log: Optional[logging.Logger] = None,
    ):
        self.routes = routes
        self.error_log = error_log or logger
        if ':' in server_address[0]:
            self.address_family = socket.AF_INET6
        super().__init__(server_address, HealthzRequestHandler, bind_and_activate=False)

    def handle_error(self, request, client_address) -> None:
        self.error_log.error(
            "Exception while serving request from %s", client_address, exc_info=True
        )


class HealthService:
    """
    Aggregates registered probes into a health report served over HTTP.

    The provider list and hostname are fixed at construction and shared
    read-only by every request thread.
    """

    def __init__(self, config: Config):
        """
        Build the service and its (unbound) HTTP server.

        Raises:
            ConfigurationError: no logger configured, bind port out of
                range, or the hostname could not be detected
        """
        if config.log is None:
            raise ConfigurationError("required config option 'log' not found")
        if not valid_port(config.bind_port):
            raise ConfigurationError(
                f"bind port {config.bind_port} out of range "
                f"({Limits.MIN_PORT}-{Limits.MAX_PORT})"
            )

        self.log = config.log
        self.providers = tuple(config.providers)
        self.hostname = config.hostname

        # Reported in every result so the pod that ran the checks is known.
        if not self.hostname:
            self.hostname = detect_hostname()
            self.log.info("autodetected hostname as: ", self.hostname)

        self.routes: Dict[str, Route] = {
            Endpoints.HEALTHZ: self.handle_healthz,
            Endpoints.LIVENESS: self.handle_liveness,
        }
        self.server = HealthzHTTPServer(
            (config.bind_addr, config.bind_port),
            self.routes,
            error_log=config.server_error_log,
        )
        self.state = ServiceState.CONSTRUCTED
        self._serving = threading.Event()

    @property
    def server_address(self) -> Tuple[Any, ...]:
        """Bound address; the port is final once the service is serving."""
        return self.server.server_address

    def evaluate(self) -> HealthReport:
        """Run every probe once, in registration order."""
        report = HealthReport(hostname=self.hostname)

        for provider in self.providers:
            message = provider.run()
            if message is not None:
                report.errors.append(CheckError(
                    type=provider.type,
                    err_msg=message,
                    description=provider.description,
                ))

        if report.errors:
            for e in report.errors:
                self.log.errorf("Check failed: %s: %s, error: %s", e.type, e.description, e.err_msg)
        else:
            self.log.debug("All checks passed")

        return report

    def handle_healthz(self, request: HealthzRequestHandler) -> None:
        """Handle /healthz."""
        report = self.evaluate()

        # Always 200: monitors alert when the body lacks "Errors":null, and
        # a 5xx status would keep the error text out of the check result.
        request.send_response(HTTPStatus.OK)
        request.send_header('Content-Type', ContentTypes.JSON)
        request.end_headers()

        try:
            request.write_body(report.to_json().encode('utf-8'))
        except (TypeError, ValueError, OSError) as e:
            self.log.error(e)

    def handle_liveness(self, request: HealthzRequestHandler) -> None:
        """Handle /liveness."""
        self.log.debug("Liveness check: OK")
        request.send_response(HTTPStatus.OK)
        request.send_header('Content-Type', ContentTypes.TEXT)
        request.send_header('Content-Length', str(len(LIVENESS_BODY)))
        request.end_headers()
        request.write_body(LIVENESS_BODY)

    def start(self) -> bool:
        """
        Bind, listen and serve until the server stops or fails.

        Blocks the calling thread; run it in its own thread to keep going.
        Bind and serve failures are logged, not raised. No restart is
        attempted.

        Returns:
            True if serving ended with a shutdown, False if it failed
        """
        self.log.debug("Starting healthz server")
        try:
            self.server.server_bind()
            self.server.server_activate()
            self.state = ServiceState.SERVING
            self._serving.set()
            self.server.serve_forever()
        except OSError as e:
            self.log.error(e)
            return False
        finally:
            self.server.server_close()
        return True

    def wait_until_serving(self, timeout: Optional[float] = None) -> bool:
        """Block until start() is accepting connections."""
        return self._serving.wait(timeout)


__all__ = [
    'HealthService',
    'HealthzHTTPServer',
    'HealthzRequestHandler',
    'ServiceState',
    'detect_hostname',
]
