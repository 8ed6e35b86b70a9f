"""Issuance service for the init, generate and inspect workflows."""

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from opentelemetry import trace

from pgcrtauth.ca.authority import (
    SERVER_CERT_FILE_NAME,
    SERVER_KEY_FILE_NAME,
    CertificateAuthority,
)
from pgcrtauth.ca.errors import CrtAuthError, FileIOError, NotFound
from pgcrtauth.ca.keys import algorithm_name, parse_key_size
from pgcrtauth.ca.pair import Pair
from pgcrtauth.ca.pem import compute_fingerprint, decode_certificate
from pgcrtauth.ca.template import CertificateDescriptor, Template

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)


class MissingSignerError(CrtAuthError):
    """Raised when a server pair has neither a CA directory nor self-signing."""

    def __init__(self) -> None:
        super().__init__("server pair needs a CA directory or self-signing")


@dataclass
class IssuedPair:
    """Result of writing a signed pair to disk."""

    cert_path: Path
    key_path: Path
    serial_number: str
    fingerprint: str
    algorithm: str
    not_before: datetime
    not_after: datetime

    @classmethod
    def from_pair(cls, pair: Pair, cert_path: Path, key_path: Path) -> "IssuedPair":
        return cls(
            cert_path=cert_path,
            key_path=key_path,
            serial_number=format(pair.certificate.serial_number, "x"),
            fingerprint=pair.fingerprint,
            algorithm=pair.algorithm,
            not_before=pair.certificate.not_valid_before_utc,
            not_after=pair.certificate.not_valid_after_utc,
        )


@dataclass
class CertificateInfo:
    """Human-oriented summary of a certificate file."""

    path: Path
    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    is_ca: bool
    self_signed: bool
    dns_names: list[str]
    ip_addresses: list[str]
    key_usage: list[str]
    algorithm: str
    fingerprint: str


class IssuanceService:
    """Runs the certificate workflows on top of the engine."""

    def create_authority(self, template: Template, ca_dir: str | Path) -> IssuedPair:
        """Create a new CA in ca_dir, replacing any existing root files."""
        with tracer.start_as_current_span("IssuanceService.create_authority"):
            ca = CertificateAuthority().init(template, ca_dir)
            return IssuedPair.from_pair(ca.pair, ca.cert_path(ca_dir), ca.key_path(ca_dir))

    def issue_server_pair(
        self,
        template: Template,
        out_dir: str | Path,
        ca_dir: str | Path | None = None,
        self_signed: bool = False,
    ) -> IssuedPair:
        """Create a server pair in out_dir, self-signed or signed by the CA in ca_dir.

        Self-signing takes precedence when both are given.

        Raises:
            MissingSignerError: If neither ca_dir nor self_signed is given.
            CrtAuthError: Any engine failure.
        """
        if ca_dir is None and not self_signed:
            raise MissingSignerError()
        parse_key_size(template.key_size)

        out_dir = Path(out_dir)

        with tracer.start_as_current_span("IssuanceService.issue_server_pair") as span:
            span.set_attribute("self_signed", self_signed)

            # Load the CA first so a bad CA directory fails before key generation
            ca = None
            if not self_signed:
                ca = CertificateAuthority().load(ca_dir)

            pair = Pair.create_server(template)

            if ca is None:
                pair.sign_with(pair)
            else:
                pair.sign_with(ca.pair)

            cert_path = out_dir / SERVER_CERT_FILE_NAME
            key_path = out_dir / SERVER_KEY_FILE_NAME
            pair.write_files(cert_path, key_path)

            issued = IssuedPair.from_pair(pair, cert_path, key_path)
            logger.info(
                "server_pair_issued",
                extra={
                    "out_dir": str(out_dir),
                    "serial": issued.serial_number,
                    "self_signed": self_signed,
                    "not_after": issued.not_after.isoformat(),
                },
            )
            return issued

    def inspect_certificate(self, path: str | Path) -> CertificateInfo:
        """Read the first certificate of a PEM file and summarize it."""
        path = Path(path)
        try:
            data = path.read_bytes()
        except FileNotFoundError as e:
            raise NotFound(str(path), "certificate") from e
        except OSError as e:
            raise FileIOError(str(path), f"cannot read certificate file: {e}") from e

        certificate = decode_certificate(data, str(path))
        descriptor = CertificateDescriptor.from_certificate(certificate)

        return CertificateInfo(
            path=path,
            subject=certificate.subject.rfc4514_string(),
            issuer=certificate.issuer.rfc4514_string(),
            serial_number=format(certificate.serial_number, "x"),
            not_before=certificate.not_valid_before_utc,
            not_after=certificate.not_valid_after_utc,
            is_ca=descriptor.is_ca,
            self_signed=certificate.issuer == certificate.subject,
            dns_names=list(descriptor.dns_names),
            ip_addresses=[str(ip) for ip in descriptor.ip_addresses],
            key_usage=sorted(descriptor.key_usage),
            algorithm=algorithm_name(certificate.public_key()),
            fingerprint=compute_fingerprint(certificate),
        )

