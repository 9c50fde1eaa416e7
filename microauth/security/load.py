"""
Loading of certificate/key pairs from PEM files, with optional key encryption.
"""
import base64
import binascii
import logging
import re
from dataclasses import dataclass, field
from typing import Dict

from cryptography.hazmat.primitives import serialization

from .errors import DecryptError, DecryptErrorKind, LoadError, LoadErrorKind
from .models import Certificate


logger = logging.getLogger(__name__)

_PEM_BLOCK = re.compile(
    rb"-----BEGIN (?P<type>[A-Z0-9 ]+)-----\r?\n(?P<body>.*?)-----END (?P=type)-----",
    re.DOTALL,
)


@dataclass
class PemBlock:
    """The first PEM block of a file: its type, headers and decoded body."""
    type: str
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def is_encrypted(self) -> bool:
        if self.type == "ENCRYPTED PRIVATE KEY":
            return True
        return "ENCRYPTED" in self.headers.get("Proc-Type", "")


def decode_pem_block(data: bytes) -> PemBlock:
    """
    Decode the first PEM block found in ``data``.

    Raises:
        DecryptError: MALFORMED if no valid PEM block is present
    """
    match = _PEM_BLOCK.search(data)
    if match is None:
        raise DecryptError(DecryptErrorKind.MALFORMED, "No PEM block found")

    headers = {}
    payload = []
    for line in match.group("body").decode("ascii", errors="replace").splitlines():
        line = line.strip()
        if not line:
            continue
        if ":" in line and not payload:
            key, value = line.split(":", 1)
            headers[key.strip()] = value.strip()
        else:
            payload.append(line)

    try:
        body = base64.b64decode("".join(payload), validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecryptError(DecryptErrorKind.MALFORMED, f"Invalid PEM body: {e}") from e

    return PemBlock(type=match.group("type").decode("ascii"), headers=headers, body=body)


def decrypt_pem_block(data: bytes, password: str) -> bytes:
    """
    Decrypt a password protected PEM private key.

    Supports legacy OpenSSL encrypted keys (``Proc-Type: 4,ENCRYPTED``) and
    PKCS#8 ``ENCRYPTED PRIVATE KEY`` blocks.

    Args:
        data: Raw PEM file contents
        password: Password the key was encrypted with

    Returns:
        The key re-encoded as unencrypted PKCS#8 PEM

    Raises:
        DecryptError: NOT_ENCRYPTED if the block declares no encryption,
            MISSING_PASSWORD if no password was supplied for an encrypted
            block, DECRYPTION_FAILED for a wrong password or corrupt data,
            MALFORMED if the PEM envelope cannot be decoded.
    """
    block = decode_pem_block(data)
    if not block.is_encrypted:
        raise DecryptError(DecryptErrorKind.NOT_ENCRYPTED)
    if not password:
        raise DecryptError(DecryptErrorKind.MISSING_PASSWORD)

    try:
        private_key = serialization.load_pem_private_key(data, password=password.encode("utf-8"))
    except (ValueError, TypeError) as e:
        raise DecryptError(DecryptErrorKind.DECRYPTION_FAILED, str(e)) from e

    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


def _read_file(path: str) -> bytes:
    try:
        with open(path, 'rb') as f:
            return f.read()
    except OSError as e:
        raise LoadError(f"Failed to read {path}: {e}", LoadErrorKind.READ, path) from e


def load(cert_path: str, key_path: str, password: str = "") -> Certificate:
    """
    Load a certificate and a possibly password protected private key.

    Whether the key is encrypted is decided by its PEM envelope alone; a
    plaintext key is used as-is and the password is ignored.

    Args:
        cert_path: Path to the PEM certificate (chain) file
        key_path: Path to the PEM private key file
        password: Password for an encrypted key

    Returns:
        Certificate combining both files

    Raises:
        LoadError: If either file cannot be read, the key cannot be
            decrypted, or the key does not match the certificate
    """
    cert_pem = _read_file(cert_path)
    raw_key_pem = _read_file(key_path)

    try:
        key_pem = decrypt_pem_block(raw_key_pem, password)
    except DecryptError as e:
        if e.kind is DecryptErrorKind.NOT_ENCRYPTED:
            key_pem = raw_key_pem
        elif e.kind is DecryptErrorKind.MALFORMED:
            raise LoadError(e.message, LoadErrorKind.DECODE, key_path) from e
        else:
            raise LoadError(e.message, LoadErrorKind.DECRYPT, key_path) from e

    try:
        certificate = Certificate.from_pem(cert_pem, key_pem)
    except LoadError as e:
        raise LoadError(e.message, e.kind, cert_path) from e

    logger.info(f"Loaded certificate {cert_path} for {certificate.subject} (SHA256 {certificate.fingerprint})")
    return certificate
