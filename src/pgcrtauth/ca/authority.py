"""Certificate authority stored as a pair of files in a directory.

A directory holds one CA identity at a time: root.crt and root.key. Calling
init on a directory that already holds a CA replaces it.
"""

import logging
from pathlib import Path

from opentelemetry import trace

from pgcrtauth.ca.errors import FileIOError
from pgcrtauth.ca.pair import DIR_MODE, Pair
from pgcrtauth.ca.template import Template
from pgcrtauth.metrics import crtauth_metrics

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Default file names used by PostgreSQL
ROOT_CERT_FILE_NAME = "root.crt"
ROOT_KEY_FILE_NAME = "root.key"
SERVER_CERT_FILE_NAME = "server.crt"
SERVER_KEY_FILE_NAME = "server.key"


class CertificateAuthority:
    """A certification authority backed by root.crt and root.key files."""

    def __init__(
        self,
        cert_file_name: str = ROOT_CERT_FILE_NAME,
        key_file_name: str = ROOT_KEY_FILE_NAME,
    ) -> None:
        self.pair = Pair()
        self.cert_file_name = cert_file_name
        self.key_file_name = key_file_name

    def cert_path(self, directory: str | Path) -> Path:
        return Path(directory) / self.cert_file_name

    def key_path(self, directory: str | Path) -> Path:
        return Path(directory) / self.key_file_name

    def init(self, template: Template, directory: str | Path) -> "CertificateAuthority":
        """Create a new self-signed CA and write it to directory.

        The directory and its parents are created if missing. Existing root
        files are overwritten. Nothing is cleaned up on failure.

        Raises:
            CrtAuthError: Any failure of key generation, signing or writing.
        """
        directory = Path(directory)

        with tracer.start_as_current_span("CertificateAuthority.init") as span:
            span.set_attribute("ca_dir", str(directory))

            pair = Pair.create_ca(template)

            try:
                directory.mkdir(mode=DIR_MODE, parents=True, exist_ok=True)
            except OSError as e:
                raise FileIOError(str(directory), f"failed to create CA directory: {e}") from e

            pair.sign_with(pair)
            pair.write_files(self.cert_path(directory), self.key_path(directory))

            self.pair = pair

            span.set_attribute("algorithm", pair.algorithm)
            span.set_attribute("ca_cert_expires", pair.certificate.not_valid_after_utc.isoformat())
            crtauth_metrics.record_ca_initialized()

            logger.info(
                "ca_initialized",
                extra={
                    "ca_dir": str(directory),
                    "algorithm": pair.algorithm,
                    "ca_cert_expires": pair.certificate.not_valid_after_utc.isoformat(),
                },
            )
            return self

    def load(self, directory: str | Path) -> "CertificateAuthority":
        """Read the CA certificate and key from directory.

        The current pair is left untouched if either file is missing or
        malformed.

        Raises:
            NotFound: If root.crt or root.key does not exist.
            BlockNotFound: If a file holds no matching PEM block.
            ParseError: If a PEM block does not decode.
        """
        directory = Path(directory)

        with tracer.start_as_current_span("CertificateAuthority.load") as span:
            span.set_attribute("ca_dir", str(directory))

            pair = Pair()
            pair.load_files(self.cert_path(directory), self.key_path(directory))
            self.pair = pair

            span.set_attribute("algorithm", pair.algorithm)
            crtauth_metrics.record_ca_loaded()

            logger.info(
                "ca_loaded",
                extra={
                    "ca_dir": str(directory),
                    "algorithm": pair.algorithm,
                    "ca_cert_expires": pair.certificate.not_valid_after_utc.isoformat(),
                },
            )
            return self
