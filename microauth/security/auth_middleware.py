"""
Authentication middleware for shared-token request authorization.
"""
import hmac
from io import BytesIO
from typing import Iterable, Optional

from werkzeug.exceptions import HTTPException
from werkzeug.wrappers import Request

from .errors import AuthorizationFailure, ConfigurationError
from .models import AuthConfig


FORM_CONTENT_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")

# Largest request body read while looking for a form token
MAX_FORM_BODY = 10 * 1024 * 1024


class TokenAuthMiddleware:
    """WSGI middleware checking a shared token before the wrapped app runs."""

    def __init__(self, app, config: AuthConfig, max_form_body: int = MAX_FORM_BODY):
        """
        Wrap a WSGI application.

        Args:
            app: WSGI application to protect
            config: Token, header name and excluded paths
            max_form_body: Bodies larger than this are not searched for a form token

        Raises:
            ConfigurationError: If the configured token is empty
        """
        if not config.token:
            raise ConfigurationError("microauth: token missing")
        self.app = app
        self.config = config
        self.max_form_body = max_form_body
        self._token = config.token.encode("utf-8")

    def __call__(self, environ, start_response):
        """WSGI application call."""
        try:
            self.authorize(environ)
        except AuthorizationFailure as failure:
            start_response(f"{failure.http_status} Unauthorized", [("Content-Length", "0")])
            return []

        return self.app(environ, start_response)

    def authorize(self, environ) -> None:
        """
        Decide whether the request may reach the wrapped app.

        Raises:
            AuthorizationFailure: If the request carries no matching token
        """
        if self.config.is_excluded(environ.get("PATH_INFO", "")):
            return

        # Browsers cannot set custom headers on CORS preflight requests
        # TODO: check the Origin header instead of passing every OPTIONS request
        if environ.get("REQUEST_METHOD") == "OPTIONS":
            return

        candidate = self._extract_token(environ)
        if not hmac.compare_digest(candidate, self._token):
            raise AuthorizationFailure()

    def _extract_token(self, environ) -> bytes:
        """
        Token bytes from the configured header, else from the form value of the same name.

        WSGI passes header values as latin-1 decoded strings, so encoding
        them back to latin-1 restores the bytes sent on the wire. Form and
        query values are decoded as UTF-8 by werkzeug.
        """
        request = Request(environ, populate_request=False)
        token = request.headers.get(self.config.header_name, "")
        if token:
            return token.encode("latin-1", errors="replace")
        value = _form_value(request, self.config.header_name, self.max_form_body)
        return value.encode("utf-8") if value else b""


def _form_value(request: Request, key: str, max_body: int) -> Optional[str]:
    """
    Look up ``key`` in the form body, then in the query string.

    A consumed body is put back into the environ so the wrapped app still
    receives the complete request. Bodies of unknown or excessive length
    are left unread, and a body werkzeug refuses to parse counts as having
    no form value.
    """
    length = request.content_length
    if request.mimetype in FORM_CONTENT_TYPES and length is not None and length <= max_body:
        try:
            data = request.get_data(cache=True)
            environ = request.environ
            environ["wsgi.input"] = BytesIO(data)
            environ["CONTENT_LENGTH"] = str(len(data))
            environ.pop("HTTP_TRANSFER_ENCODING", None)
            value = request.form.get(key)
        except HTTPException:
            value = None
        if value:
            return value
    return request.args.get(key)


def protect(app, token: str, header_name: Optional[str] = None,
            excluded_paths: Iterable[str] = ()) -> TokenAuthMiddleware:
    """Install token authorization in front of a Flask app's WSGI pipeline."""
    if header_name:
        config = AuthConfig.create(token, header_name, excluded_paths)
    else:
        config = AuthConfig.create(token, excluded_paths=excluded_paths)
    middleware = TokenAuthMiddleware(app.wsgi_app, config)
    app.wsgi_app = middleware
    return middleware
