"""
Last-contact lookup: when the machine's agent last connected or disconnected.
"""
import datetime
from typing import List, Optional

from control_client.core.clock import Clock
from control_client.models import Connection, EventType, ProcessType, Session

_CONTACT_EVENTS = (EventType.CONNECTED, EventType.DISCONNECTED)


def _guest_connections(session: Session) -> List[Connection]:
    guests = [c for c in session.connections if c.process_type == ProcessType.GUEST]
    return guests or session.connections


def get_last_contact(session: Session, clock: Clock) -> Optional[datetime.datetime]:
    """
    Returns the local time of the latest connect or disconnect event on the
    session's guest connections, or None if there is none.

    Sessions that do not mark any connection as guest are searched in full.
    """
    times = [
        event.time
        for connection in _guest_connections(session)
        for event in connection.events
        if event.event_type in _CONTACT_EVENTS
    ]
    if not times:
        return None
    return clock.to_datetime(clock.to_local(max(times)))
