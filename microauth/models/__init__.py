"""
Models package for the microauth application.
"""

from .config import ServerConfig, ConfigValidationError, ConfigValidationResult

__all__ = [
    'ServerConfig',
    'ConfigValidationError',
    'ConfigValidationResult'
]
