"""
Configuration management for the control client.
"""
from .config_manager import ConfigManager

__all__ = [
    'ConfigManager'
]
