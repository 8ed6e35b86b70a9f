"""Tests for the issuance service."""

from unittest.mock import patch

import pytest
from cryptography import x509
from cryptography.x509.oid import ExtendedKeyUsageOID

from pgcrtauth.ca.errors import InvalidKeySize, NotFound
from pgcrtauth.ca.pem import decode_certificate
from pgcrtauth.ca.template import Template
from pgcrtauth.services.issuance import IssuanceService, MissingSignerError


@pytest.fixture
def service():
    return IssuanceService()


@pytest.fixture
def ca_dir(tmp_path, service):
    ca_dir = tmp_path / "ca"
    service.create_authority(Template(organization="Acme", common_name="DBClusterCA"), ca_dir)
    return ca_dir


class TestCreateAuthority:
    def test_returns_issued_pair(self, tmp_path, service):
        issued = service.create_authority(Template(common_name="CA"), tmp_path)

        assert issued.cert_path == tmp_path / "root.crt"
        assert issued.key_path == tmp_path / "root.key"
        assert issued.algorithm == "ECDSA-secp256r1"
        assert len(issued.fingerprint) == 64
        assert issued.not_after > issued.not_before


class TestIssueServerPair:
    """Tests for IssuanceService.issue_server_pair."""

    def test_signed_by_ca(self, tmp_path, service, ca_dir):
        out_dir = tmp_path / "server1"
        template = Template.with_hosts("server1,10.0.0.1", common_name="server1")

        issued = service.issue_server_pair(template, out_dir, ca_dir=ca_dir)

        assert issued.cert_path == out_dir / "server.crt"
        assert issued.key_path == out_dir / "server.key"
        cert = decode_certificate(issued.cert_path.read_bytes())
        root = decode_certificate((ca_dir / "root.crt").read_bytes())
        assert cert.issuer == root.subject
        cert.verify_directly_issued_by(root)
        eku = cert.extensions.get_extension_for_class(x509.ExtendedKeyUsage)
        assert ExtendedKeyUsageOID.SERVER_AUTH in eku.value

    def test_self_signed(self, tmp_path, service):
        issued = service.issue_server_pair(
            Template.with_hosts("server2"), tmp_path, self_signed=True
        )

        cert = decode_certificate(issued.cert_path.read_bytes())
        assert cert.issuer == cert.subject
        assert cert.extensions.get_extension_for_class(x509.BasicConstraints).value.ca is True

    def test_requires_signer(self, tmp_path, service):
        with pytest.raises(MissingSignerError):
            service.issue_server_pair(Template.with_hosts("server1"), tmp_path)

    def test_missing_ca_fails_before_key_generation(self, tmp_path, service):
        with patch("pgcrtauth.services.issuance.Pair.create_server") as mock_create:
            with pytest.raises(NotFound):
                service.issue_server_pair(
                    Template.with_hosts("server1"), tmp_path / "out", ca_dir=tmp_path / "none"
                )

        mock_create.assert_not_called()
        assert not (tmp_path / "out").exists()

    def test_invalid_key_size_fails_before_ca_load(self, tmp_path, service):
        with patch("pgcrtauth.services.issuance.CertificateAuthority") as mock_ca:
            with pytest.raises(InvalidKeySize):
                service.issue_server_pair(
                    Template(key_size="P512"), tmp_path, ca_dir=tmp_path / "ca"
                )
        mock_ca.assert_not_called()


class TestInspectCertificate:
    def test_inspect_server_certificate(self, tmp_path, service, ca_dir):
        issued = service.issue_server_pair(
            Template.with_hosts("db.internal,10.0.0.1", common_name="db"),
            tmp_path / "out",
            ca_dir=ca_dir,
        )

        info = service.inspect_certificate(issued.cert_path)

        assert info.subject == "CN=db"
        assert info.issuer == "CN=DBClusterCA,O=Acme"
        assert info.serial_number == issued.serial_number
        assert info.is_ca is False
        assert info.self_signed is False
        assert info.dns_names == ["db.internal"]
        assert info.ip_addresses == ["10.0.0.1"]
        assert info.key_usage == ["digital_signature", "key_encipherment"]
        assert info.fingerprint == issued.fingerprint

    def test_inspect_missing_file(self, tmp_path, service):
        with pytest.raises(NotFound):
            service.inspect_certificate(tmp_path / "missing.crt")
