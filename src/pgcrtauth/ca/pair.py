"""Certificate and private key pairs.

A Pair owns one certificate and the private key it was issued for. Pairs are
created from a Template as a generic, CA or server pair, signed either by
themselves or by a parent pair, and written to or loaded from PEM files.

The role of a pair is carried by its certificate attributes only:
- CA: BasicConstraints CA=True, Key Usage key_cert_sign, crl_sign, digital_signature
- Server: Key Usage digital_signature, key_encipherment; EKU server_auth
"""

import logging
import os
from dataclasses import dataclass, replace
from pathlib import Path

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from opentelemetry import trace

from pgcrtauth.ca.errors import (
    CertificateParseFailed,
    FileIOError,
    IncompleteParent,
    NotFound,
    ParseError,
    SigningFailed,
)
from pgcrtauth.ca.keys import PrivateKey, algorithm_name, generate_private_key, parse_key_size
from pgcrtauth.ca.pem import (
    compute_fingerprint,
    decode_certificate,
    decode_private_key,
    encode_certificate,
    encode_private_key,
)
from pgcrtauth.ca.permissions import KEY_FILE_MODE, PermissionGuard, permission_guard
from pgcrtauth.ca.template import CertificateDescriptor, Template, build_descriptor
from pgcrtauth.metrics import crtauth_metrics

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

DIR_MODE = 0o700
CERT_FILE_MODE = 0o644


@dataclass
class Pair:
    """A certificate and its private key.

    descriptor holds the certificate body. Before signing it is the unsigned
    body built from a template; after signing or loading it is recovered from
    the parsed certificate, which is kept in certificate.
    """

    descriptor: CertificateDescriptor | None = None
    private_key: PrivateKey | None = None
    certificate: x509.Certificate | None = None

    @classmethod
    def create(cls, template: Template) -> "Pair":
        """Create an unsigned pair with a fresh key.

        Raises:
            TemplateError: If the descriptor cannot be built.
            InvalidKeySize: If template.key_size is not supported.
            KeyGenerationFailed: If the key cannot be generated.
        """
        key_size = parse_key_size(template.key_size)
        descriptor = build_descriptor(template)
        private_key = generate_private_key(key_size)
        return cls(descriptor=descriptor, private_key=private_key)

    @classmethod
    def create_ca(cls, template: Template) -> "Pair":
        """Create an unsigned pair suitable as the root of a CA."""
        pair = cls.create(template)
        pair.descriptor.mark_ca()
        return pair

    @classmethod
    def create_server(cls, template: Template) -> "Pair":
        """Create an unsigned pair suitable for server authentication."""
        pair = cls.create(template)
        pair.descriptor.mark_server()
        return pair

    @property
    def is_signed(self) -> bool:
        return self.certificate is not None

    @property
    def algorithm(self) -> str:
        return algorithm_name(self.private_key)

    @property
    def fingerprint(self) -> str | None:
        """SHA-256 fingerprint of the signed certificate, if any."""
        if self.certificate is None:
            return None
        return compute_fingerprint(self.certificate)

    def sign_with(self, parent: "Pair") -> None:
        """Sign the certificate of this pair with the key of parent.

        Signing a pair with itself produces a self-signed CA certificate. The
        certificate is replaced with the parsed result of signing. On failure the
        pair is left unchanged.

        Raises:
            IncompleteParent: If parent lacks a certificate or a private key.
            SigningFailed: If the certificate cannot be created.
            CertificateParseFailed: If the signed certificate cannot be parsed.
        """
        if parent.descriptor is None or parent.private_key is None:
            raise IncompleteParent()
        if self.descriptor is None or self.private_key is None:
            raise SigningFailed("pair has no certificate or private key to sign")

        self_signed = parent is self

        with tracer.start_as_current_span("Pair.sign_with") as span:
            span.set_attribute("self_signed", self_signed)
            span.set_attribute("algorithm", self.algorithm)
            span.set_attribute("parent_algorithm", parent.algorithm)

            # A failed signing leaves self.descriptor untouched
            descriptor = replace(
                self.descriptor,
                issuer=parent.descriptor.subject,
                key_usage=set(self.descriptor.key_usage),
                extended_key_usage=list(self.descriptor.extended_key_usage),
            )
            if self_signed:
                descriptor.mark_ca()

            public_key = self.private_key.public_key()

            try:
                certificate = (
                    descriptor.to_builder()
                    .public_key(public_key)
                    .add_extension(
                        x509.SubjectKeyIdentifier.from_public_key(public_key),
                        critical=False,
                    )
                    .add_extension(
                        x509.AuthorityKeyIdentifier.from_issuer_public_key(
                            parent.private_key.public_key()
                        ),
                        critical=False,
                    )
                    .sign(parent.private_key, hashes.SHA256())
                )
                der_bytes = certificate.public_bytes(serialization.Encoding.DER)
            except Exception as e:
                logger.error("certificate_signing_failed", extra={"error": str(e)})
                raise SigningFailed(f"failed to create signed certificate: {e}") from e

            try:
                certificate = x509.load_der_x509_certificate(der_bytes)
            except ValueError as e:
                raise CertificateParseFailed(
                    f"failed to parse generated certificate: {e}"
                ) from e

            self.certificate = certificate
            self.descriptor = CertificateDescriptor.from_certificate(certificate)

            serial = format(certificate.serial_number, "x")
            span.set_attribute("serial", serial)
            crtauth_metrics.record_certificate_signed("self" if self_signed else "parent")

            logger.info(
                "pair_signed",
                extra={
                    "serial": serial,
                    "self_signed": self_signed,
                    "is_ca": self.descriptor.is_ca,
                    "not_after": certificate.not_valid_after_utc.isoformat(),
                },
            )

    def certificate_pem(self) -> bytes:
        if self.certificate is None:
            raise SigningFailed("certificate has not been signed")
        return encode_certificate(self.certificate)

    def private_key_pem(self) -> bytes:
        if self.private_key is None:
            raise SigningFailed("pair has no private key")
        return encode_private_key(self.private_key)

    def write_files(
        self,
        cert_path: str | Path,
        key_path: str | Path,
        guard: PermissionGuard | None = None,
    ) -> None:
        """PEM encode and write the certificate and key to the given files.

        Parent directories are created as needed. The key file is created with
        owner-only permissions and then passed to the permission guard.

        Raises:
            FileIOError: If a directory or file cannot be created or written.
            PermissionGuardFailed: If the key file cannot be restricted.
        """
        cert_path = Path(cert_path)
        key_path = Path(key_path)
        guard = guard or permission_guard

        with tracer.start_as_current_span("Pair.write_files") as span:
            span.set_attribute("cert_path", str(cert_path))
            span.set_attribute("key_path", str(key_path))

            _write_file(cert_path, self.certificate_pem(), CERT_FILE_MODE)
            _write_file(key_path, self.private_key_pem(), KEY_FILE_MODE)
            guard.restrict(key_path)

            crtauth_metrics.record_pair_written()
            logger.info(
                "pair_written",
                extra={"cert_path": str(cert_path), "key_path": str(key_path)},
            )

    def load_files(self, cert_path: str | Path, key_path: str | Path) -> None:
        """Read, decode and parse the certificate and key from the given files.

        The pair is only updated once both files have been parsed and the key
        matches the certificate.

        Raises:
            NotFound: If either file does not exist.
            FileIOError: If either file cannot be read.
            BlockNotFound: If a file holds no matching PEM block.
            ParseError: If a PEM block does not decode, or the key does not
                belong to the certificate.
        """
        cert_path = Path(cert_path)
        key_path = Path(key_path)

        with tracer.start_as_current_span("Pair.load_files") as span:
            span.set_attribute("cert_path", str(cert_path))
            span.set_attribute("key_path", str(key_path))

            certificate = decode_certificate(_read_file(cert_path, "certificate"), str(cert_path))
            private_key = decode_private_key(_read_file(key_path, "key"), str(key_path))

            if not _same_public_key(certificate, private_key):
                raise ParseError(
                    "PRIVATE KEY", "key does not match the certificate", str(key_path)
                )

            self.certificate = certificate
            self.private_key = private_key
            self.descriptor = CertificateDescriptor.from_certificate(certificate)

            logger.debug(
                "pair_loaded",
                extra={"cert_path": str(cert_path), "algorithm": self.algorithm},
            )


def _same_public_key(certificate: x509.Certificate, private_key: PrivateKey) -> bool:
    def spki(key) -> bytes:
        return key.public_bytes(
            serialization.Encoding.DER,
            serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    return spki(certificate.public_key()) == spki(private_key.public_key())


def _write_file(path: Path, data: bytes, mode: int) -> None:
    """Create or truncate path with the given mode and write data to it."""
    try:
        path.parent.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
    except OSError as e:
        raise FileIOError(str(path.parent), f"cannot create directory: {e}") from e

    try:
        fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
    except OSError as e:
        raise FileIOError(str(path), f"cannot write file: {e}") from e


def _read_file(path: Path, kind: str) -> bytes:
    try:
        return path.read_bytes()
    except FileNotFoundError as e:
        raise NotFound(str(path), kind) from e
    except OSError as e:
        raise FileIOError(str(path), f"cannot read {kind} file: {e}") from e
