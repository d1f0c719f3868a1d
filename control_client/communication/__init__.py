"""
Communication components for the control client.
"""
from control_client.communication.http_client import SessionLogClient

__all__ = [
    'SessionLogClient'
]
