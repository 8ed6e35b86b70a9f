"""PEM encoding and decoding of certificates and private keys.

Keys are written in their traditional form so the block label names the
algorithm ("RSA PRIVATE KEY" or "EC PRIVATE KEY"). Readers scan a PEM stream
block by block and pick the first block with a matching label.
"""

import hashlib
import logging
import re
from collections.abc import Iterator

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from pgcrtauth.ca.errors import BlockNotFound, ParseError
from pgcrtauth.ca.keys import PrivateKey

logger = logging.getLogger(__name__)

CERTIFICATE_LABEL = "CERTIFICATE"
RSA_KEY_LABEL = "RSA PRIVATE KEY"
EC_KEY_LABEL = "EC PRIVATE KEY"
KEY_LABELS = (RSA_KEY_LABEL, EC_KEY_LABEL)

_PEM_BLOCK = re.compile(
    rb"-----BEGIN (?P<label>[^-\r\n]+)-----\r?\n.*?-----END (?P=label)-----",
    re.DOTALL,
)


def iter_blocks(data: bytes) -> Iterator[tuple[str, bytes]]:
    """Yield (normalized label, full PEM text) for every block in a stream."""
    for match in _PEM_BLOCK.finditer(data):
        label = match.group("label").decode("ascii", errors="replace").strip().upper()
        yield label, match.group(0) + b"\n"


def encode_certificate(certificate: x509.Certificate) -> bytes:
    """PEM encode the DER bytes of a certificate under a CERTIFICATE label."""
    return certificate.public_bytes(serialization.Encoding.PEM)


def encode_private_key(private_key: PrivateKey) -> bytes:
    """PEM encode a private key in its traditional, algorithm-labelled form."""
    if not isinstance(private_key, (rsa.RSAPrivateKey, ec.EllipticCurvePrivateKey)):
        raise TypeError(f"unsupported private key type {type(private_key).__name__}")
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.TraditionalOpenSSL,
        encryption_algorithm=serialization.NoEncryption(),
    )


def decode_certificate(data: bytes, path: str | None = None) -> x509.Certificate:
    """Return the first CERTIFICATE block of a PEM stream.

    Raises:
        BlockNotFound: If the stream holds no certificate block.
        ParseError: If the certificate block does not decode.
    """
    for label, block in iter_blocks(data):
        if label != CERTIFICATE_LABEL:
            logger.debug("pem_block_skipped", extra={"label": label, "path": path})
            continue
        try:
            return x509.load_pem_x509_certificate(block)
        except ValueError as e:
            raise ParseError(CERTIFICATE_LABEL, str(e), path) from e
    raise BlockNotFound(CERTIFICATE_LABEL, path)


def decode_private_key(data: bytes, path: str | None = None) -> PrivateKey:
    """Return the first RSA or EC private key block of a PEM stream.

    Raises:
        BlockNotFound: If the stream holds no private key block.
        ParseError: If the key block does not decode to the labelled algorithm.
    """
    for label, block in iter_blocks(data):
        if label not in KEY_LABELS:
            logger.debug("pem_block_skipped", extra={"label": label, "path": path})
            continue
        try:
            private_key = serialization.load_pem_private_key(block, password=None)
        except (ValueError, TypeError) as e:
            raise ParseError(label, str(e), path) from e

        expected = rsa.RSAPrivateKey if label == RSA_KEY_LABEL else ec.EllipticCurvePrivateKey
        if not isinstance(private_key, expected):
            raise ParseError(label, f"block holds a {type(private_key).__name__}", path)
        return private_key
    raise BlockNotFound("PRIVATE KEY", path)


def compute_fingerprint(certificate: x509.Certificate) -> str:
    """Compute the lowercase hex SHA-256 fingerprint of a certificate."""
    der_bytes = certificate.public_bytes(serialization.Encoding.DER)
    return hashlib.sha256(der_bytes).hexdigest().lower()
