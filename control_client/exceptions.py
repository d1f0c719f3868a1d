"""
Exceptions raised by the control client.

Absent sessions and commands that run out of time are normal outcomes and are
reported through :class:`control_client.core.CommandOutcome`, not raised.
"""
from typing import Optional


class ControlClientError(Exception):
    """
    The base exception from which all control client exceptions are derived.
    """


class TransportError(ControlClientError):
    """
    A single HTTP call failed: network, authentication, non-2xx status or an
    undecodable response body.
    """

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code

    def __str__(self) -> str:
        if self.status_code is not None:
            return f"{self.message} (HTTP {self.status_code})"
        return self.message


class ProtocolError(ControlClientError):
    """
    The service's event log contradicts what the command protocol expects,
    e.g. the submitted command was never recorded or events disappeared.
    """
