"""
Security package for token authorization and TLS certificate management.
"""
from .errors import (
    MicroauthError,
    ConfigurationError,
    GenerationError,
    LoadError,
    LoadErrorKind,
    DecryptError,
    DecryptErrorKind,
    AuthorizationFailure,
)
from .models import AuthConfig, Certificate, DEFAULT_HEADER_NAME
from .generate import generate
from .load import load, decrypt_pem_block
from .auth_middleware import TokenAuthMiddleware, protect

__all__ = [
    'MicroauthError',
    'ConfigurationError',
    'GenerationError',
    'LoadError',
    'LoadErrorKind',
    'DecryptError',
    'DecryptErrorKind',
    'AuthorizationFailure',
    'AuthConfig',
    'Certificate',
    'DEFAULT_HEADER_NAME',
    'generate',
    'load',
    'decrypt_pem_block',
    'TokenAuthMiddleware',
    'protect',
]
