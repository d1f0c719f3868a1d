"""
Session, connection and event records returned by the remote-management service.
"""
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, Iterator, List, Optional, Union

from control_client.exceptions import TransportError
from control_client.utils import get_logger

logger = get_logger(__name__)


class EventType(IntEnum):
    """
    Event codes the client understands. Other codes are kept as plain ints.
    """
    CONNECTED = 10
    DISCONNECTED = 11
    QUEUED_COMMAND = 44
    RAN_COMMAND = 70


class ProcessType(IntEnum):
    """Role of the participant behind a connection."""
    UNKNOWN = 0
    HOST = 1
    GUEST = 2


@dataclass(frozen=True)
class Credential:
    """
    Username/password pair sent as HTTP Basic auth on every request.
    """
    username: str
    password: str = field(repr=False)

    def as_auth(self):
        return (self.username, self.password)


@dataclass(frozen=True)
class Event:
    event_type: Union[EventType, int]
    time: int
    data: Optional[str] = None

    @property
    def has_data(self) -> bool:
        return bool(self.data and self.data.strip())


@dataclass
class Connection:
    process_type: Union[ProcessType, int] = ProcessType.UNKNOWN
    events: List[Event] = field(default_factory=list)


@dataclass
class Session:
    """
    A machine's session detail: its connections and their event logs.

    Some service versions report part of the log at session level rather than
    per connection; those events are kept in ``events``.
    """
    guid: str
    connections: List[Connection] = field(default_factory=list)
    events: List[Event] = field(default_factory=list)

    def iter_events(self) -> Iterator[Event]:
        """Yields session-level events, then each connection's events, in service order."""
        yield from self.events
        for connection in self.connections:
            yield from connection.events

    def events_of_type(self, event_type: int) -> List[Event]:
        return [event for event in self.iter_events() if event.event_type == event_type]

    @property
    def event_count(self) -> int:
        return sum(1 for _ in self.iter_events())


def _get_ci(data: Dict[str, Any], key: str, default: Any = None) -> Any:
    """Case-insensitive dictionary lookup; the service is not consistent about key casing."""
    if key in data:
        return data[key]
    lowered = key.lower()
    for candidate, value in data.items():
        if isinstance(candidate, str) and candidate.lower() == lowered:
            return value
    return default


def _coerce_enum(enum_cls, value: int):
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _parse_event(raw: Dict[str, Any]) -> Event:
    if not isinstance(raw, dict):
        raise TransportError(f"Malformed event in session detail: expected object, got {type(raw).__name__}")
    try:
        event_type = int(_get_ci(raw, 'EventType'))
        time_ms = int(_get_ci(raw, 'Time'))
    except (TypeError, ValueError) as e:
        raise TransportError(f"Malformed event in session detail: {raw!r}") from e
    data = _get_ci(raw, 'Data')
    return Event(
        event_type=_coerce_enum(EventType, event_type),
        time=time_ms,
        data=str(data) if data is not None else None,
    )


def _parse_events(raw_events: Any) -> List[Event]:
    if raw_events is None:
        return []
    if not isinstance(raw_events, list):
        raise TransportError(f"Malformed session detail: 'events' is {type(raw_events).__name__}, expected list")
    return [_parse_event(raw) for raw in raw_events]


def parse_session(guid: str, payload: Dict[str, Any]) -> Session:
    """
    Builds a :class:`Session` from a ``GetSessionDetails`` response body.

    :param guid: The session GUID the detail was requested for.
    :type guid: str
    :param payload: Decoded JSON response.
    :type payload: Dict[str, Any]
    :return: The parsed session.
    :rtype: Session
    :raises TransportError: If the body does not have the expected shape.
    """
    if not isinstance(payload, dict):
        raise TransportError(f"Malformed session detail: expected object, got {type(payload).__name__}")

    raw_connections = _get_ci(payload, 'connections') or []
    if not isinstance(raw_connections, list):
        raise TransportError("Malformed session detail: 'connections' is not a list")

    connections = []
    for raw in raw_connections:
        if not isinstance(raw, dict):
            raise TransportError("Malformed session detail: connection entry is not an object")
        process_type = _get_ci(raw, 'ProcessType', ProcessType.UNKNOWN)
        try:
            process_type = _coerce_enum(ProcessType, int(process_type))
        except (TypeError, ValueError):
            logger.debug(f"Unrecognised ProcessType {process_type!r} on session {guid}")
            process_type = ProcessType.UNKNOWN
        connections.append(Connection(process_type=process_type, events=_parse_events(_get_ci(raw, 'events'))))

    session = Session(guid=guid, connections=connections, events=_parse_events(_get_ci(payload, 'events')))
    logger.debug(f"Parsed session {guid}: {len(connections)} connection(s), {session.event_count} event(s)")
    return session
