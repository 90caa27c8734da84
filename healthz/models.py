"""
Data model for the health aggregation service.

- ProviderInfo: a registered probe with its Type tag and Description
- CheckError: one failing probe in one evaluation
- HealthReport: the JSON document served on /healthz

Field names on the wire are fixed (``Errors``, ``Hostname``, ``Type``,
``ErrMsg``, ``Description``). Monitoring consumers match on the literal
``"Errors":null``, so the encoding is compact and key order is kept.
"""

import json
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Protocol, Union, runtime_checkable

from .errors import describe_error


@runtime_checkable
class HealthCheckable(Protocol):
    """A probe. ``check()`` returns None on success or a failure reason."""

    def check(self) -> Optional[Union[str, Exception]]:
        ...


class HealthLogger(Protocol):
    """Logger capability required by HealthService."""

    def info(self, *args: Any) -> None:
        ...

    def debug(self, *args: Any) -> None:
        ...

    def error(self, *args: Any) -> None:
        ...

    def errorf(self, fmt: str, *args: Any) -> None:
        ...


Probe = Union[HealthCheckable, Callable[[], Any]]


@dataclass(frozen=True)
class ProviderInfo:
    """A probe registered with the service, fixed for the service lifetime."""
    check: Probe
    description: str = ""
    type: str = ""

    def run(self) -> Optional[str]:
        """
        Invoke the probe once.

        Returns:
            None when the probe passed, otherwise the failure text. A
            returned string or exception, a returned False and a raised
            exception all count as failure.
        """
        try:
            if isinstance(self.check, HealthCheckable):
                outcome = self.check.check()
            else:
                outcome = self.check()
        except Exception as e:
            return describe_error(e)

        if outcome is None or outcome is True:
            return None
        if outcome is False:
            return "check failed"
        return describe_error(outcome)


@dataclass(frozen=True)
class CheckError:
    """A failed probe within one evaluation."""
    type: str
    err_msg: str
    description: str

    def to_dict(self) -> Dict[str, str]:
        return {
            'Type': self.type,
            'ErrMsg': self.err_msg,
            'Description': self.description,
        }


@dataclass
class HealthReport:
    """Result of evaluating every registered probe once."""
    hostname: str
    errors: List[CheckError] = field(default_factory=list)

    @property
    def is_healthy(self) -> bool:
        return not self.errors

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            'Errors': [e.to_dict() for e in self.errors] if self.errors else None,
            'Hostname': self.hostname,
        }

    def to_json(self) -> str:
        """Encode as one compact JSON line, newline terminated."""
        return json.dumps(self.to_dict(), separators=(',', ':'), ensure_ascii=False) + '\n'


__all__ = [
    'HealthCheckable',
    'HealthLogger',
    'Probe',
    'ProviderInfo',
    'CheckError',
    'HealthReport',
]
