"""
Self-signed certificate generation for TLS serving.
"""
import logging
import secrets
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from .errors import GenerationError, LoadError
from .models import Certificate


logger = logging.getLogger(__name__)

DEFAULT_KEY_SIZE = 2048
DEFAULT_ORGANIZATION = "Microbox Acme Co"
VALIDITY_PERIOD = timedelta(days=365 * 100)
SERIAL_NUMBER_LIMIT = 1 << 128


def random_serial_number() -> int:
    """Draw a serial number uniformly from [1, 2**128)."""
    return secrets.randbelow(SERIAL_NUMBER_LIMIT - 1) + 1


def generate(host: str, key_size: int = DEFAULT_KEY_SIZE,
             organization: str = DEFAULT_ORGANIZATION) -> Certificate:
    """
    Generate a self-signed server certificate for ``host``.

    The certificate is valid from now for 100 years, names ``host`` as both
    common name and DNS subject alternative name, and is signed with its
    own freshly generated RSA key. An empty host is rejected because it
    cannot be used as a DNS subject alternative name.

    Args:
        host: Host identity placed in the subject and SAN
        key_size: RSA modulus size in bits
        organization: Subject organization name

    Returns:
        Certificate holding the PEM encoded certificate and key

    Raises:
        GenerationError: If ``host`` is empty, or key generation, signing or
            encoding fails
    """
    if not host:
        raise GenerationError("A host name is required to generate a certificate")

    try:
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=key_size)

        not_before = datetime.now(timezone.utc)
        not_after = not_before + VALIDITY_PERIOD

        name = x509.Name([
            x509.NameAttribute(NameOID.ORGANIZATION_NAME, organization),
            x509.NameAttribute(NameOID.COMMON_NAME, host),
        ])

        cert = x509.CertificateBuilder().subject_name(
            name
        ).issuer_name(
            name
        ).public_key(
            private_key.public_key()
        ).serial_number(
            random_serial_number()
        ).not_valid_before(
            not_before
        ).not_valid_after(
            not_after
        ).add_extension(
            x509.SubjectAlternativeName([x509.DNSName(host)]),
            critical=False,
        ).add_extension(
            x509.KeyUsage(
                digital_signature=True,
                content_commitment=False,
                key_encipherment=True,
                data_encipherment=False,
                key_agreement=False,
                key_cert_sign=False,
                crl_sign=False,
                encipher_only=False,
                decipher_only=False,
            ),
            critical=True,
        ).add_extension(
            x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH]),
            critical=False,
        ).add_extension(
            x509.BasicConstraints(ca=False, path_length=None),
            critical=True,
        ).sign(private_key, hashes.SHA256())

        cert_pem = cert.public_bytes(serialization.Encoding.PEM)
        key_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )
        certificate = Certificate.from_pem(cert_pem, key_pem)
    except LoadError as e:
        raise GenerationError(f"Generated certificate is unusable: {e}") from e
    except (ValueError, TypeError, OSError) as e:
        raise GenerationError(f"Failed to generate certificate for {host}: {e}") from e

    logger.info(f"Generated self-signed certificate for {host} (SHA256 {certificate.fingerprint})")
    return certificate
