"""
Secure serving entry points.

An ``AuthServer`` owns one TLS certificate and a token header name. Each
call to ``serve_tls``/``serve`` builds a fresh, immutable ``AuthConfig`` for
the server it starts, wraps the handler in ``TokenAuthMiddleware`` and runs
a threaded werkzeug WSGI server.
"""
import logging
import threading
from typing import Optional, Tuple

from werkzeug.serving import BaseWSGIServer, make_server

from .app import default_app
from .security.auth_middleware import TokenAuthMiddleware
from .security.errors import ConfigurationError
from .security.generate import generate
from .security.models import AuthConfig, Certificate, DEFAULT_HEADER_NAME


logger = logging.getLogger(__name__)

DEFAULT_CERT_HOST = "microbox.cloud"


def parse_address(address: str) -> Tuple[str, int]:
    """
    Split ``host:port``, ``:port`` or ``[v6-host]:port`` into host and port.

    Raises:
        ConfigurationError: If the port is missing or not a valid number
    """
    host, sep, port = address.rpartition(":")
    if not sep:
        raise ConfigurationError(f"Address must include a port: {address!r}")
    if host.startswith("[") and host.endswith("]"):
        host = host[1:-1]
    try:
        port_number = int(port)
    except ValueError:
        raise ConfigurationError(f"Invalid port in address: {address!r}")
    if not 0 <= port_number <= 65535:
        raise ConfigurationError(f"Port out of range in address: {address!r}")
    return host or "0.0.0.0", port_number


def _require_token(token: str) -> None:
    if not token:
        raise ConfigurationError("microauth: token missing")


class AuthServer:
    """Serves a WSGI handler behind shared-token authorization, over TLS or plain HTTP."""

    def __init__(self, certificate: Optional[Certificate] = None,
                 header_name: str = DEFAULT_HEADER_NAME,
                 cert_host: str = DEFAULT_CERT_HOST):
        """
        Args:
            certificate: Certificate to serve TLS with; generated for
                ``cert_host`` on first TLS use when omitted
            header_name: Request header (and form field) carrying the token
            cert_host: Host identity for a generated certificate
        """
        self.header_name = header_name
        self.cert_host = cert_host
        self._certificate = certificate
        self._lock = threading.Lock()

    @property
    def certificate(self) -> Certificate:
        """The TLS certificate, generating one on first access if needed."""
        with self._lock:
            if self._certificate is None:
                self._certificate = generate(self.cert_host)
            return self._certificate

    def gate(self, token: str, handler=None, *excluded_paths: str) -> TokenAuthMiddleware:
        """
        Wrap ``handler`` (the process-wide default app when None) in token authorization.

        Raises:
            ConfigurationError: If ``token`` is empty
        """
        _require_token(token)
        if handler is None:
            handler = default_app()
        config = AuthConfig.create(token, self.header_name, excluded_paths)
        return TokenAuthMiddleware(handler, config)

    def make_server(self, address: str, token: str, handler=None, *excluded_paths: str,
                    tls: bool = True) -> BaseWSGIServer:
        """
        Build a threaded WSGI server, bound but not yet serving.

        Raises:
            ConfigurationError: If ``token`` is empty or ``address`` is invalid
            GenerationError: If a certificate has to be generated and cannot be
            OSError: If the address cannot be bound
        """
        app = self.gate(token, handler, *excluded_paths)
        host, port = parse_address(address)

        ssl_context = self.certificate.ssl_context() if tls else None
        server = make_server(host, port, app, threaded=True, ssl_context=ssl_context)

        scheme = "https" if tls else "http"
        context = {
            'address': f"{scheme}://{host}:{server.server_port}",
            'tls': tls,
            'header': self.header_name,
            'excluded_paths': list(excluded_paths),
        }
        if tls:
            context['fingerprint'] = self.certificate.fingerprint
        else:
            logger.warning("Serving without TLS - tokens are sent in plaintext")
        logger.info(f"Listening on {context['address']}", extra={'context': context})
        return server

    def serve_tls(self, address: str, token: str, handler=None, *excluded_paths: str) -> None:
        """Serve HTTPS with token authorization until the server is shut down."""
        server = self.make_server(address, token, handler, *excluded_paths, tls=True)
        _serve(server)

    def serve(self, address: str, token: str, handler=None, *excluded_paths: str) -> None:
        """Serve plain HTTP, still validating the token, until shut down."""
        server = self.make_server(address, token, handler, *excluded_paths, tls=False)
        _serve(server)


def _serve(server: BaseWSGIServer) -> None:
    try:
        server.serve_forever()
    finally:
        server.server_close()
        logger.info("Server stopped")


_default_lock = threading.Lock()
_default_auth_server: Optional[AuthServer] = None


def default_auth_server() -> AuthServer:
    """Return the process-wide AuthServer, creating it on first use."""
    global _default_auth_server
    with _default_lock:
        if _default_auth_server is None:
            _default_auth_server = AuthServer(certificate=generate(DEFAULT_CERT_HOST))
        return _default_auth_server


def serve_tls(address: str, token: str, handler=None, *excluded_paths: str) -> None:
    """Serve HTTPS using the process-wide AuthServer."""
    # Checked before the default instance generates its certificate
    _require_token(token)
    default_auth_server().serve_tls(address, token, handler, *excluded_paths)


def serve(address: str, token: str, handler=None, *excluded_paths: str) -> None:
    """Serve plain HTTP using the process-wide AuthServer."""
    _require_token(token)
    default_auth_server().serve(address, token, handler, *excluded_paths)
