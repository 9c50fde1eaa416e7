"""
Secure serving for WSGI applications.

Serves a handler over TLS (with a generated self-signed certificate or a
loaded, optionally encrypted, certificate/key pair) and checks a shared
token on every request except excluded paths and CORS preflights.
"""
from .security import (
    AuthConfig,
    Certificate,
    TokenAuthMiddleware,
    protect,
    generate,
    load,
    MicroauthError,
    ConfigurationError,
    GenerationError,
    LoadError,
    AuthorizationFailure,
)
from .server import AuthServer, default_auth_server, serve_tls, serve
from .app import create_app, default_app

__all__ = [
    'AuthConfig',
    'Certificate',
    'TokenAuthMiddleware',
    'protect',
    'generate',
    'load',
    'MicroauthError',
    'ConfigurationError',
    'GenerationError',
    'LoadError',
    'AuthorizationFailure',
    'AuthServer',
    'default_auth_server',
    'serve_tls',
    'serve',
    'create_app',
    'default_app',
]
