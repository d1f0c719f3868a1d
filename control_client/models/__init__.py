"""
Data model for sessions, connections and events.
"""
from .session import Credential, Connection, Event, EventType, ProcessType, Session, parse_session

__all__ = [
    'Credential',
    'Connection',
    'Event',
    'EventType',
    'ProcessType',
    'Session',
    'parse_session'
]
