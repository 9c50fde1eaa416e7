"""
Services package for the microauth application.
"""

from .config_service import ConfigService
from .logging_service import LoggingService

__all__ = [
    'ConfigService',
    'LoggingService'
]
