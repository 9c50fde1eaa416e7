"""
Error taxonomy for certificate acquisition and request authorization.
"""
from enum import Enum
from typing import Optional


class MicroauthError(Exception):
    """Base class for all microauth errors."""


class ConfigurationError(MicroauthError):
    """Raised when a server is started with an unusable configuration."""


class GenerationError(MicroauthError):
    """Raised when a self-signed certificate cannot be produced."""


class LoadErrorKind(Enum):
    """Stage of certificate loading that failed."""
    READ = "read"
    DECODE = "decode"
    DECRYPT = "decrypt"
    PAIRING = "pairing"


class LoadError(MicroauthError):
    """Raised when a certificate/key pair cannot be loaded."""

    def __init__(self, message: str, kind: LoadErrorKind, path: Optional[str] = None):
        self.message = message
        self.kind = kind
        self.path = path
        super().__init__(f"{kind.value}: {message}")


class DecryptErrorKind(Enum):
    """Reason a PEM block could not be decrypted."""
    NOT_ENCRYPTED = "not_encrypted"
    MISSING_PASSWORD = "missing_password"
    DECRYPTION_FAILED = "decryption_failed"
    MALFORMED = "malformed"


class DecryptError(MicroauthError):
    """Raised by the PEM decryption routine, discriminated by kind."""

    def __init__(self, kind: DecryptErrorKind, message: str = ""):
        self.kind = kind
        self.message = message or kind.value.replace("_", " ")
        super().__init__(self.message)


class AuthorizationFailure(MicroauthError):
    """Per-request rejection. Never carries the submitted token."""

    def __init__(self, http_status: int = 401):
        self.http_status = http_status
        super().__init__("Unauthorized")
