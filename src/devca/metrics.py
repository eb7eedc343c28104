"""OpenTelemetry metrics for the devca certificate authority."""

from opentelemetry import metrics

# Get meter for the CA package
meter = metrics.get_meter("devca")

# Key generation
keys_generated_total = meter.create_counter(
    name="devca_keys_generated_total",
    description="Total private keys generated",
    unit="1",
)

# Authority lifecycle counters
authorities_created_total = meter.create_counter(
    name="devca_authorities_created_total",
    description="Total root authorities created",
    unit="1",
)

authorities_loaded_total = meter.create_counter(
    name="devca_authorities_loaded_total",
    description="Total authorities loaded from encoded bytes",
    unit="1",
)

# Certificate issuance
certificates_issued_total = meter.create_counter(
    name="devca_certificates_issued_total",
    description="Total certificates signed, root and leaf",
    unit="1",
)

certificate_issuance_duration = meter.create_histogram(
    name="devca_certificate_issuance_duration_seconds",
    description="Certificate signing duration in seconds",
    unit="s",
)

signing_failures_total = meter.create_counter(
    name="devca_signing_failures_total",
    description="Total signing operations rejected by the certificate builder",
    unit="1",
)


class CAMetrics:
    """Facade for CA metrics with proper labels."""

    def record_key_generated(self, algorithm: str) -> None:
        """Record key generation. Labels: algorithm=RSA-<bits>"""
        keys_generated_total.add(1, {"algorithm": algorithm})

    def record_authority_created(self) -> None:
        """Record creation of a self-signed root."""
        authorities_created_total.add(1)

    def record_authority_loaded(self, source: str) -> None:
        """Record authority load. Labels: source=pem|der"""
        authorities_loaded_total.add(1, {"source": source})

    def record_certificate_issued(self, kind: str, duration_seconds: float) -> None:
        """Record a signed certificate. Labels: kind=authority|server"""
        certificates_issued_total.add(1, {"kind": kind})
        certificate_issuance_duration.record(duration_seconds, {"kind": kind})

    def record_signing_failed(self, kind: str) -> None:
        """Record a rejected template. Labels: kind=authority|server"""
        signing_failures_total.add(1, {"kind": kind})


# Singleton instance
ca_metrics = CAMetrics()
