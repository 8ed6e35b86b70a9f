"""Certificate templates and unsigned certificate descriptors.

A Template carries the handful of parameters a user supplies on the command
line. It is turned into a CertificateDescriptor, the to-be-signed body of a
certificate, which a Pair later signs.
"""

import ipaddress
import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID

from pgcrtauth.ca.errors import TemplateError
from pgcrtauth.ca.keys import DEFAULT_KEY_SIZE

logger = logging.getLogger(__name__)

IPAddress = ipaddress.IPv4Address | ipaddress.IPv6Address

DEFAULT_VALID_FOR_DAYS = 365

# x509.KeyUsage constructor arguments, in declaration order
KEY_USAGE_FIELDS = (
    "digital_signature",
    "content_commitment",
    "key_encipherment",
    "data_encipherment",
    "key_agreement",
    "key_cert_sign",
    "crl_sign",
    "encipher_only",
    "decipher_only",
)

CA_KEY_USAGES = frozenset({"digital_signature", "key_cert_sign", "crl_sign"})
SERVER_KEY_USAGES = frozenset({"digital_signature", "key_encipherment"})


@dataclass
class Template:
    """User-supplied parameters for a new certificate.

    The key size is kept as given; it is validated when the key is generated.
    """

    organization: str = ""
    common_name: str = ""
    host_names: list[str] = field(default_factory=list)
    valid_for_days: int = DEFAULT_VALID_FOR_DAYS
    key_size: str = DEFAULT_KEY_SIZE.value

    def __post_init__(self) -> None:
        if self.valid_for_days <= 0:
            raise TemplateError(
                f"validity period must be a positive number of days, got {self.valid_for_days}"
            )

    @classmethod
    def with_hosts(cls, hosts: str, **kwargs) -> "Template":
        """Create a template from a comma separated host list."""
        host_names = [h.strip() for h in hosts.split(",") if h.strip()]
        return cls(host_names=host_names, **kwargs)

    def subject(self) -> x509.Name:
        attributes = []
        if self.organization:
            attributes.append(x509.NameAttribute(NameOID.ORGANIZATION_NAME, self.organization))
        if self.common_name:
            attributes.append(x509.NameAttribute(NameOID.COMMON_NAME, self.common_name))
        return x509.Name(attributes)


@dataclass
class CertificateDescriptor:
    """The to-be-signed body of a certificate."""

    serial_number: int
    subject: x509.Name
    not_before: datetime
    not_after: datetime
    issuer: x509.Name | None = None
    ip_addresses: list[IPAddress] = field(default_factory=list)
    dns_names: list[str] = field(default_factory=list)
    is_ca: bool = False
    key_usage: set[str] = field(default_factory=set)
    extended_key_usage: list[x509.ObjectIdentifier] = field(default_factory=list)

    def mark_ca(self) -> None:
        """Apply CA attributes (idempotent)."""
        self.is_ca = True
        self.key_usage |= CA_KEY_USAGES

    def mark_server(self) -> None:
        """Apply server authentication attributes."""
        self.key_usage |= SERVER_KEY_USAGES
        self.extended_key_usage.append(ExtendedKeyUsageOID.SERVER_AUTH)

    def to_builder(self) -> x509.CertificateBuilder:
        """Create a certificate builder holding every field except the keys.

        The issuer must be set before calling this.
        """
        if self.issuer is None:
            raise TemplateError("certificate issuer is not set")

        builder = (
            x509.CertificateBuilder()
            .subject_name(self.subject)
            .issuer_name(self.issuer)
            .serial_number(self.serial_number)
            .not_valid_before(self.not_before)
            .not_valid_after(self.not_after)
            .add_extension(
                x509.BasicConstraints(ca=self.is_ca, path_length=None),
                critical=True,
            )
        )

        if self.key_usage:
            builder = builder.add_extension(
                x509.KeyUsage(**{name: name in self.key_usage for name in KEY_USAGE_FIELDS}),
                critical=True,
            )

        if self.extended_key_usage:
            builder = builder.add_extension(
                x509.ExtendedKeyUsage(self.extended_key_usage),
                critical=False,
            )

        alt_names: list[x509.GeneralName] = [x509.DNSName(name) for name in self.dns_names]
        alt_names += [x509.IPAddress(ip) for ip in self.ip_addresses]
        if alt_names:
            builder = builder.add_extension(
                x509.SubjectAlternativeName(alt_names),
                critical=False,
            )

        return builder

    @classmethod
    def from_certificate(cls, certificate: x509.Certificate) -> "CertificateDescriptor":
        """Recover the descriptor of an already signed certificate."""
        extensions = certificate.extensions

        is_ca = False
        try:
            is_ca = extensions.get_extension_for_class(x509.BasicConstraints).value.ca
        except x509.ExtensionNotFound:
            pass

        key_usage: set[str] = set()
        try:
            usage = extensions.get_extension_for_class(x509.KeyUsage).value
            for name in KEY_USAGE_FIELDS:
                # encipher_only/decipher_only are undefined without key_agreement
                if name in ("encipher_only", "decipher_only") and not usage.key_agreement:
                    continue
                if getattr(usage, name):
                    key_usage.add(name)
        except x509.ExtensionNotFound:
            pass

        extended_key_usage: list[x509.ObjectIdentifier] = []
        try:
            extended_key_usage = list(
                extensions.get_extension_for_class(x509.ExtendedKeyUsage).value
            )
        except x509.ExtensionNotFound:
            pass

        ip_addresses: list[IPAddress] = []
        dns_names: list[str] = []
        try:
            san = extensions.get_extension_for_class(x509.SubjectAlternativeName).value
            dns_names = san.get_values_for_type(x509.DNSName)
            ip_addresses = [
                ip
                for ip in san.get_values_for_type(x509.IPAddress)
                if isinstance(ip, (ipaddress.IPv4Address, ipaddress.IPv6Address))
            ]
        except x509.ExtensionNotFound:
            pass

        return cls(
            serial_number=certificate.serial_number,
            subject=certificate.subject,
            not_before=certificate.not_valid_before_utc,
            not_after=certificate.not_valid_after_utc,
            issuer=certificate.issuer,
            ip_addresses=ip_addresses,
            dns_names=dns_names,
            is_ca=is_ca,
            key_usage=key_usage,
            extended_key_usage=extended_key_usage,
        )


def split_hosts(host_names: list[str]) -> tuple[list[IPAddress], list[str]]:
    """Split host identifiers into IP addresses and DNS names.

    Input order is preserved within each list.
    """
    ip_addresses: list[IPAddress] = []
    dns_names: list[str] = []
    for host in host_names:
        try:
            ip_addresses.append(ipaddress.ip_address(host))
        except ValueError:
            dns_names.append(host)
    return ip_addresses, dns_names


def build_descriptor(template: Template) -> CertificateDescriptor:
    """Apply a template to an empty certificate descriptor.

    Validity starts now and lasts template.valid_for_days whole days. The
    serial number is a random 159-bit positive integer.

    Raises:
        TemplateError: If the serial number cannot be generated, or the
            validity period runs past the largest representable date.
    """
    try:
        serial_number = x509.random_serial_number()
    except Exception as e:
        raise TemplateError(f"failed to generate serial number: {e}") from e

    not_before = datetime.now(timezone.utc)
    try:
        not_after = not_before + timedelta(days=template.valid_for_days)
    except (OverflowError, ValueError) as e:
        raise TemplateError(
            f"validity period of {template.valid_for_days} days is out of range"
        ) from e
    ip_addresses, dns_names = split_hosts(template.host_names)
    logger.debug(
        "descriptor_built",
        extra={
            "serial": format(serial_number, "x"),
            "dns_names": len(dns_names),
            "ip_addresses": len(ip_addresses),
        },
    )

    return CertificateDescriptor(
        serial_number=serial_number,
        subject=template.subject(),
        not_before=not_before,
        not_after=not_after,
        ip_addresses=ip_addresses,
        dns_names=dns_names,
    )
