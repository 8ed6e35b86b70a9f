"""OpenTelemetry metrics for the certificate engine."""

from opentelemetry import metrics

# Get meter for the certificate engine
meter = metrics.get_meter("pgcrtauth")

# Key generation
keys_generated_total = meter.create_counter(
    name="pgcrtauth_keys_generated_total",
    description="Total private keys generated",
    unit="1",
)

key_generation_duration = meter.create_histogram(
    name="pgcrtauth_key_generation_duration_seconds",
    description="Private key generation duration in seconds",
    unit="s",
)

# Signing
certificates_signed_total = meter.create_counter(
    name="pgcrtauth_certificates_signed_total",
    description="Total certificates signed",
    unit="1",
)

# CA lifecycle
ca_initialized_total = meter.create_counter(
    name="pgcrtauth_ca_initialized_total",
    description="Total certificate authorities initialized",
    unit="1",
)

ca_loaded_total = meter.create_counter(
    name="pgcrtauth_ca_loaded_total",
    description="Total certificate authorities loaded from disk",
    unit="1",
)

# Persistence
pairs_written_total = meter.create_counter(
    name="pgcrtauth_pairs_written_total",
    description="Total certificate/key pairs written to disk",
    unit="1",
)


class CrtAuthMetrics:
    """Facade for engine metrics with proper labels."""

    def record_key_generated(self, algorithm: str, duration_seconds: float) -> None:
        """Record key generation. Labels: algorithm=RSA-2048|ECDSA-secp256r1|..."""
        keys_generated_total.add(1, {"algorithm": algorithm})
        key_generation_duration.record(duration_seconds, {"algorithm": algorithm})

    def record_certificate_signed(self, mode: str) -> None:
        """Record certificate signing. Labels: mode=self|parent"""
        certificates_signed_total.add(1, {"mode": mode})

    def record_ca_initialized(self) -> None:
        """Record CA initialization."""
        ca_initialized_total.add(1)

    def record_ca_loaded(self) -> None:
        """Record CA load from disk."""
        ca_loaded_total.add(1)

    def record_pair_written(self) -> None:
        """Record a pair persisted to disk."""
        pairs_written_total.add(1)


# Singleton instance
crtauth_metrics = CrtAuthMetrics()
