"""
Control Client - client for a remote-management service that exposes machine
sessions as an append-only event log over HTTP.

Main components:
- SessionLogClient: Fetches session detail and submits events
- CommandDispatcher: Runs a command on a machine and returns its output
- CompletionPoller: Waits for a command's result event
- ConfigManager: Manages client configuration
"""

from .version import __version__, __app_name__

from .exceptions import ControlClientError, TransportError, ProtocolError
from .models import Credential, Session, Connection, Event, EventType

from .core import CommandDispatcher, CommandOutcome, CommandResult, CompletionPoller, PollState
from .core import get_last_contact

from .config import ConfigManager

from .communication import SessionLogClient

__all__ = [
    '__version__',
    '__app_name__',

    'ControlClientError',
    'TransportError',
    'ProtocolError',

    'Credential',
    'Session',
    'Connection',
    'Event',
    'EventType',

    'CommandDispatcher',
    'CommandOutcome',
    'CommandResult',
    'CompletionPoller',
    'PollState',
    'get_last_contact',

    'ConfigManager',

    'SessionLogClient'
]
