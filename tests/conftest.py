"""
Pytest configuration and shared fixtures for healthz tests.

Requests are served two ways:
- perform_request() drives the request handler over an in-memory socket,
  no listener involved
- running_service starts the real server on an ephemeral port
"""

import io
import http.client
import logging
import os
import sys
import threading
from dataclasses import dataclass
from typing import Callable, Dict, Generator, List, Optional, Sequence, Tuple

import pytest

# Add the parent directory to the path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from healthz import Config, HealthService, ProviderInfo
from healthz.logging_config import HealthzFormatter


# ===========================================================================
# Collaborators
# ===========================================================================

class RecordingLogger:
    """Logger capability that keeps (level, message) pairs."""

    def __init__(self):
        self.records: List[Tuple[str, str]] = []

    @staticmethod
    def _render(args: tuple) -> str:
        msg, rest = args[0], args[1:]
        if rest and isinstance(msg, str) and '%' in msg:
            return msg % rest
        return ''.join(str(part) for part in args)

    def info(self, *args):
        self.records.append(('info', self._render(args)))

    def debug(self, *args):
        self.records.append(('debug', self._render(args)))

    def error(self, *args):
        self.records.append(('error', self._render(args)))

    def errorf(self, fmt, *args):
        self.records.append(('error', fmt % args))

    def messages(self, level: str) -> List[str]:
        return [message for lvl, message in self.records if lvl == level]


class Happy:
    """Probe that always passes."""

    def check(self):
        return None


class Unhappy:
    """Probe that always fails."""

    def check(self):
        return Exception("failed")


DB_PROVIDER_TYPE = "DBConn"
DB_PROVIDER_DESCRIPTION = "Ensure the database connection is up"


def unhappy_db_provider() -> ProviderInfo:
    return ProviderInfo(
        check=Unhappy(),
        type=DB_PROVIDER_TYPE,
        description=DB_PROVIDER_DESCRIPTION,
    )


# ===========================================================================
# Service Fixtures
# ===========================================================================

@pytest.fixture
def recording_logger() -> RecordingLogger:
    """Provide a fresh RecordingLogger."""
    return RecordingLogger()


@pytest.fixture
def make_service(recording_logger: RecordingLogger) -> Callable[..., HealthService]:
    """Build a HealthService with hostname 'tester' unless overridden."""
    def _make(providers: Sequence[ProviderInfo] = (), **overrides) -> HealthService:
        options = dict(
            bind_addr="localhost",
            bind_port=80,
            hostname="tester",
            providers=providers,
            log=recording_logger,
        )
        options.update(overrides)
        return HealthService(Config(**options))
    return _make


@pytest.fixture
def running_service(recording_logger: RecordingLogger) -> Generator[Callable[..., HealthService], None, None]:
    """Start services on 127.0.0.1 with an ephemeral port; stopped on teardown."""
    started: List[Tuple[HealthService, threading.Thread]] = []

    def _start(providers: Sequence[ProviderInfo] = (), hostname: str = "tester") -> HealthService:
        service = HealthService(Config(
            bind_addr="127.0.0.1",
            bind_port=0,
            hostname=hostname,
            providers=providers,
            log=recording_logger,
        ))
        thread = threading.Thread(target=service.start, daemon=True)
        thread.start()
        assert service.wait_until_serving(timeout=5)
        started.append((service, thread))
        return service

    yield _start

    for service, thread in started:
        service.server.shutdown()
        thread.join(timeout=5)


@pytest.fixture
def preserve_root_logging() -> Generator[None, None, None]:
    """Restore root logger handlers and level after setup_logging() calls."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if isinstance(handler.formatter, HealthzFormatter):
            root.removeHandler(handler)
            handler.close()
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)


# ===========================================================================
# In-memory Request Harness
# ===========================================================================

class FakeSocket:
    """Socket stand-in: reads a canned request, records what is sent."""

    def __init__(self, raw_request: bytes):
        self._rfile = io.BytesIO(raw_request)
        self.sent = bytearray()
        self.timeout: Optional[float] = None

    def makefile(self, mode, *args, **kwargs):
        return self._rfile

    def sendall(self, data):
        self.sent += data

    def settimeout(self, timeout):
        self.timeout = timeout


class _Replay:
    def __init__(self, data: bytes):
        self._data = data

    def makefile(self, mode, *args, **kwargs):
        return io.BytesIO(self._data)


@dataclass
class RecordedResponse:
    status: int
    headers: Dict[str, str]
    body: bytes
    socket_timeout: Optional[float]

    @property
    def text(self) -> str:
        return self.body.decode('utf-8')


def build_request(method: str, path: str, headers: Optional[Dict[str, str]] = None) -> bytes:
    lines = [f"{method} {path} HTTP/1.1", "Host: localhost"]
    for name, value in (headers or {}).items():
        lines.append(f"{name}: {value}")
    return ("\r\n".join(lines) + "\r\n\r\n").encode('latin-1')


def perform_request(
    service: HealthService,
    path: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
) -> RecordedResponse:
    """Serve one request through the service's handler class, in-process."""
    sock = FakeSocket(build_request(method, path, headers))
    service.server.RequestHandlerClass(sock, ('127.0.0.1', 54321), service.server)

    response = http.client.HTTPResponse(_Replay(bytes(sock.sent)), method=method)
    response.begin()
    body = response.read()
    return RecordedResponse(
        status=response.status,
        headers={name.lower(): value for name, value in response.getheaders()},
        body=body,
        socket_timeout=sock.timeout,
    )
