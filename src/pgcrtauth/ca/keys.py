"""Private key generation keyed by a key-size token.

Tokens prefixed with "P" select an elliptic curve by name, numeric tokens
select an RSA modulus length:

- P224, P256, P384, P521
- 1024, 2048, 3072, 4096
"""

import logging
import time
from enum import StrEnum

from cryptography.hazmat.primitives.asymmetric import ec, rsa
from opentelemetry import trace

from pgcrtauth.ca.errors import InvalidKeySize, KeyGenerationFailed
from pgcrtauth.metrics import crtauth_metrics

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Private key types the engine generates and reads back
PrivateKey = rsa.RSAPrivateKey | ec.EllipticCurvePrivateKey


class KeySize(StrEnum):
    """Supported key-size tokens."""

    P224 = "P224"
    P256 = "P256"
    P384 = "P384"
    P521 = "P521"
    RSA_1024 = "1024"
    RSA_2048 = "2048"
    RSA_3072 = "3072"
    RSA_4096 = "4096"

    @property
    def is_elliptic(self) -> bool:
        return self.value.startswith("P")

    @property
    def bits(self) -> int:
        """Curve size or RSA modulus length in bits."""
        return int(self.value.lstrip("P"))


DEFAULT_KEY_SIZE = KeySize.P256

RSA_PUBLIC_EXPONENT = 65537

_CURVES: dict[KeySize, type[ec.EllipticCurve]] = {
    KeySize.P224: ec.SECP224R1,
    KeySize.P256: ec.SECP256R1,
    KeySize.P384: ec.SECP384R1,
    KeySize.P521: ec.SECP521R1,
}


def parse_key_size(token: str | KeySize) -> KeySize:
    """Validate a key-size token.

    Raises:
        InvalidKeySize: If the token is not one of the supported values.
    """
    try:
        return KeySize(token)
    except ValueError:
        raise InvalidKeySize(str(token)) from None


def generate_private_key(token: str | KeySize) -> PrivateKey:
    """Generate a fresh private key for the given key-size token.

    The token is validated before any cryptographic work is done.

    Raises:
        InvalidKeySize: If the token is not supported.
        KeyGenerationFailed: If the backend fails to produce a key.
    """
    key_size = parse_key_size(token)

    with tracer.start_as_current_span("keys.generate_private_key") as span:
        span.set_attribute("key_size", key_size.value)
        start_time = time.time()

        try:
            if key_size.is_elliptic:
                private_key: PrivateKey = ec.generate_private_key(_CURVES[key_size]())
            else:
                private_key = rsa.generate_private_key(
                    public_exponent=RSA_PUBLIC_EXPONENT,
                    key_size=key_size.bits,
                )
        except Exception as e:
            logger.error(
                "key_generation_failed",
                extra={"key_size": key_size.value, "error": str(e)},
            )
            raise KeyGenerationFailed(f"failed to generate private key: {e}") from e

        algorithm = algorithm_name(private_key)
        duration = time.time() - start_time
        span.set_attribute("algorithm", algorithm)
        crtauth_metrics.record_key_generated(algorithm, duration)

        logger.debug(
            "key_generated",
            extra={"algorithm": algorithm, "duration_seconds": duration},
        )
        return private_key


def algorithm_name(key: object) -> str:
    """Get algorithm name from a private or public key."""
    if isinstance(key, (rsa.RSAPrivateKey, rsa.RSAPublicKey)):
        return f"RSA-{key.key_size}"
    elif isinstance(key, (ec.EllipticCurvePrivateKey, ec.EllipticCurvePublicKey)):
        return f"ECDSA-{key.curve.name}"
    return "UNKNOWN"
