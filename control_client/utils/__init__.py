"""
Utility functions for the remote-management control client.
"""
from control_client.utils.logger import get_logger, setup_logger

__all__ = [
    'get_logger',
    'setup_logger'
]
