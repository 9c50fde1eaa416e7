"""
Security models for token authorization and TLS certificates.
"""
import os
import ssl
import tempfile
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable, Tuple

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import NameOID

from .errors import LoadError, LoadErrorKind


DEFAULT_HEADER_NAME = "X-MICROBOX-TOKEN"


@dataclass(frozen=True)
class AuthConfig:
    """Read-only authorization settings shared by every request of one server."""
    token: str
    header_name: str = DEFAULT_HEADER_NAME
    excluded_paths: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def create(cls, token: str, header_name: str = DEFAULT_HEADER_NAME,
               excluded_paths: Iterable[str] = ()) -> "AuthConfig":
        """Build a config snapshot, freezing the excluded paths in order."""
        return cls(token=token, header_name=header_name, excluded_paths=tuple(excluded_paths))

    def is_excluded(self, path: str) -> bool:
        """Exact, case-sensitive match against the excluded paths."""
        return path in self.excluded_paths


@dataclass(frozen=True)
class Certificate:
    """A certificate chain with its matching private key, ready for TLS serving."""
    cert_pem: bytes
    key_pem: bytes
    not_before: datetime
    not_after: datetime
    subject: str
    serial_number: int
    fingerprint: str

    @classmethod
    def from_pem(cls, cert_pem: bytes, key_pem: bytes) -> "Certificate":
        """
        Combine PEM certificate chain and unencrypted PEM key into a Certificate.

        Raises:
            LoadError: DECODE if either block cannot be parsed,
                PAIRING if the key does not belong to the leaf certificate.
        """
        try:
            chain = x509.load_pem_x509_certificates(cert_pem)
        except ValueError as e:
            raise LoadError(f"Invalid certificate PEM: {e}", LoadErrorKind.DECODE) from e

        try:
            private_key = serialization.load_pem_private_key(key_pem, password=None)
        except (ValueError, TypeError) as e:
            raise LoadError(f"Invalid private key PEM: {e}", LoadErrorKind.DECODE) from e

        leaf = chain[0]
        if _public_key_bytes(leaf.public_key()) != _public_key_bytes(private_key.public_key()):
            raise LoadError("Private key does not match certificate", LoadErrorKind.PAIRING)

        return cls(
            cert_pem=cert_pem,
            key_pem=key_pem,
            not_before=leaf.not_valid_before_utc,
            not_after=leaf.not_valid_after_utc,
            subject=_common_name(leaf),
            serial_number=leaf.serial_number,
            fingerprint=leaf.fingerprint(hashes.SHA256()).hex(":").upper(),
        )

    def ssl_context(self) -> ssl.SSLContext:
        """Create a server-side SSL context serving this certificate."""
        context = ssl.create_default_context(ssl.Purpose.CLIENT_AUTH)
        context.minimum_version = ssl.TLSVersion.TLSv1_2

        # The ssl module only loads key material from files
        with tempfile.TemporaryDirectory(prefix="microauth-") as temp_dir:
            cert_path = os.path.join(temp_dir, "server.crt")
            key_path = os.path.join(temp_dir, "server.key")
            self.write(cert_path, key_path)
            context.load_cert_chain(certfile=cert_path, keyfile=key_path)

        return context

    def write(self, cert_path: str, key_path: str) -> None:
        """Write the certificate and key as PEM files (key readable by owner only)."""
        key_fd = os.open(key_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(key_fd, 'wb') as f:
            f.write(self.key_pem)
        os.chmod(key_path, 0o600)

        with open(cert_path, 'wb') as f:
            f.write(self.cert_pem)
        os.chmod(cert_path, 0o644)


def _public_key_bytes(public_key) -> bytes:
    return public_key.public_bytes(
        encoding=serialization.Encoding.DER,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    )


def _common_name(cert: x509.Certificate) -> str:
    """Extract the common name from a certificate subject."""
    for attribute in cert.subject.get_attributes_for_oid(NameOID.COMMON_NAME):
        return attribute.value
    return cert.subject.rfc4514_string()
