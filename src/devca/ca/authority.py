"""Self-signed root certificate authority.

An Authority is a Certificate that is self-issued, carries CA basic
constraints, and can sign server certificates with its own key.

Root certificate attributes:
- Subject = Issuer: CN=<common_name>
- Validity: now() to now() + valid_for
- Key Usage: Key Encipherment, Digital Signature, Certificate Sign
- Extended Key Usage: Server Authentication
- Basic Constraints: CA=True

Server certificate attributes:
- Subject: CN=<common_name>, Issuer: the authority's subject
- Validity: now() to now() + valid_for
- Key Usage: Key Encipherment, Digital Signature
- Extended Key Usage: Server Authentication
- Basic Constraints: CA=False

Serial numbers are drawn uniformly below 2**128. Nothing records issued
serials; callers that need uniqueness across authorities track them.
"""

import logging
import secrets
import time
from collections.abc import Callable
from datetime import datetime, timedelta, timezone

from cryptography import x509
from cryptography.hazmat.primitives import hashes, serialization
from cryptography.x509.oid import ExtendedKeyUsageOID, NameOID
from opentelemetry import trace
from pydantic import BaseModel, ConfigDict, Field, field_validator
from shared.config import settings

from devca.ca.certificate import Certificate
from devca.ca.errors import EntropyError, SigningError
from devca.ca.key_manager import KeyManager, PrivateKey, PublicKey
from devca.metrics import ca_metrics
from devca.types import DER, PEM

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

SERIAL_NUMBER_LIMIT = 1 << 128

# Key usage for the root authority, exposed for reference
ROOT_CA_KEY_USAGE = x509.KeyUsage(
    digital_signature=True,
    key_encipherment=True,
    key_cert_sign=True,
    crl_sign=False,
    content_commitment=False,
    data_encipherment=False,
    key_agreement=False,
    encipher_only=False,
    decipher_only=False,
)

# Key usage for server certificates signed by an authority
SERVER_KEY_USAGE = x509.KeyUsage(
    digital_signature=True,
    key_encipherment=True,
    key_cert_sign=False,
    crl_sign=False,
    content_commitment=False,
    data_encipherment=False,
    key_agreement=False,
    encipher_only=False,
    decipher_only=False,
)

SERVER_AUTH_EKU = x509.ExtendedKeyUsage([ExtendedKeyUsageOID.SERVER_AUTH])


def _default_valid_for() -> timedelta:
    return timedelta(hours=settings.CA_DEFAULT_VALID_FOR_HOURS)


def _default_common_name() -> str:
    return settings.CA_DEFAULT_COMMON_NAME


class CertOptions(BaseModel):
    """Configuration for a certificate being created."""

    model_config = ConfigDict(frozen=True, extra="forbid")

    # Offset from "now" at signing time
    valid_for: timedelta = Field(default_factory=_default_valid_for, ge=timedelta(0))
    # Subject common name; empty gives an empty subject
    common_name: str = Field(default_factory=_default_common_name, max_length=64)

    @field_validator("valid_for")
    @classmethod
    def whole_seconds(cls, v: timedelta) -> timedelta:
        # X.509 validity times have one-second resolution
        if v.microseconds:
            raise ValueError("valid_for must be a whole number of seconds")
        return v


def random_serial_number() -> int:
    """Draw a serial number uniformly from [1, 2**128).

    Zero is excluded because X.509 serial numbers must be positive.

    Raises:
        EntropyError: If the random source is unavailable.
    """
    try:
        return secrets.randbelow(SERIAL_NUMBER_LIMIT - 1) + 1
    except Exception as e:
        raise EntropyError(f"Failed to draw serial number: {e}") from e


def _validity(options: CertOptions) -> tuple[datetime, datetime]:
    # Truncated so that not_after - not_before survives encoding exactly
    not_before = datetime.now(timezone.utc).replace(microsecond=0)
    return not_before, not_before + options.valid_for


def _subject(options: CertOptions) -> x509.Name:
    if not options.common_name:
        return x509.Name([])
    return x509.Name([x509.NameAttribute(NameOID.COMMON_NAME, options.common_name)])


class Authority:
    """A root certificate authority.

    Holds a :class:`Certificate` and adds :meth:`new_cert`. Issuing does not
    touch the authority's state, so one instance can be shared between
    threads.
    """

    def __init__(
        self,
        certificate: Certificate,
        *,
        key_manager: KeyManager | None = None,
        serial_source: Callable[[], int] | None = None,
    ) -> None:
        self._certificate = certificate
        self._key_manager = key_manager or KeyManager()
        self._serial_source = serial_source or random_serial_number

    @classmethod
    def create(
        cls,
        options: CertOptions | None = None,
        key: PrivateKey | None = None,
        *,
        key_manager: KeyManager | None = None,
        serial_source: Callable[[], int] | None = None,
    ) -> "Authority":
        """Create a new self-signed root authority.

        Args:
            options: Validity and common name. Defaults come from settings.
            key: Private key for the authority. Generated when omitted.
            key_manager: Key source for this and later ``new_cert`` calls.
            serial_source: Serial number source for this and later calls.

        Raises:
            KeyGenerationError: If a key had to be generated and generation failed.
            EntropyError: If a serial number could not be drawn.
            SigningError: If the certificate could not be signed.
        """
        options = options or CertOptions()
        key_manager = key_manager or KeyManager()
        serial_source = serial_source or random_serial_number

        with tracer.start_as_current_span("Authority.create") as span:
            span.set_attribute("common_name", options.common_name)
            span.set_attribute("valid_for_seconds", int(options.valid_for.total_seconds()))

            start_time = time.time()

            if key is None:
                key = key_manager.generate()

            serial_number = serial_source()
            subject = issuer = _subject(options)
            public_key = key.public().public_key

            span.set_attribute("serial", format(serial_number, "x"))

            try:
                not_before, not_after = _validity(options)
                signed = (
                    x509.CertificateBuilder()
                    .subject_name(subject)
                    .issuer_name(issuer)
                    .public_key(public_key)
                    .serial_number(serial_number)
                    .not_valid_before(not_before)
                    .not_valid_after(not_after)
                    .add_extension(
                        x509.BasicConstraints(ca=True, path_length=None),
                        critical=True,
                    )
                    .add_extension(ROOT_CA_KEY_USAGE, critical=True)
                    .add_extension(SERVER_AUTH_EKU, critical=False)
                    .add_extension(
                        x509.SubjectKeyIdentifier.from_public_key(public_key),
                        critical=False,
                    )
                    .sign(key.private_key, hashes.SHA256())
                )
            except (ValueError, TypeError, OverflowError) as e:
                ca_metrics.record_signing_failed("authority")
                logger.error(
                    "authority_signing_failed",
                    extra={"common_name": options.common_name, "error": str(e)},
                )
                raise SigningError(f"Failed to sign authority certificate: {e}") from e

            der = signed.public_bytes(serialization.Encoding.DER)
            authority = cls(
                Certificate(cert=signed, der=der, key=key),
                key_manager=key_manager,
                serial_source=serial_source,
            ).reload()

            duration = time.time() - start_time
            ca_metrics.record_authority_created()
            ca_metrics.record_certificate_issued("authority", duration)

            logger.info(
                "authority_created",
                extra={
                    "common_name": options.common_name,
                    "serial": format(serial_number, "x"),
                    "not_after": not_after.isoformat(),
                    "duration_seconds": duration,
                },
            )

            return authority

    @classmethod
    def from_pem(
        cls,
        data: PEM | str,
        key: PrivateKey | None = None,
        *,
        key_manager: KeyManager | None = None,
        serial_source: Callable[[], int] | None = None,
    ) -> "Authority":
        """Load an authority from a ``CERTIFICATE`` PEM block.

        The bytes are trusted to come from :meth:`create` or an equivalent
        issuance; the CA constraint is not re-checked.
        """
        authority = cls(
            Certificate.from_pem(data, key),
            key_manager=key_manager,
            serial_source=serial_source,
        )
        ca_metrics.record_authority_loaded("pem")
        logger.debug("authority_loaded", extra={"source": "pem", "serial": authority._serial_hex})
        return authority

    @classmethod
    def from_der(
        cls,
        data: DER,
        key: PrivateKey | None = None,
        *,
        key_manager: KeyManager | None = None,
        serial_source: Callable[[], int] | None = None,
    ) -> "Authority":
        """Load an authority from DER bytes. See :meth:`from_pem`."""
        authority = cls(
            Certificate.from_der(data, key),
            key_manager=key_manager,
            serial_source=serial_source,
        )
        ca_metrics.record_authority_loaded("der")
        logger.debug("authority_loaded", extra={"source": "der", "serial": authority._serial_hex})
        return authority

    def reload(self) -> "Authority":
        """Re-derive this authority from its own DER bytes and key.

        The result is equivalent to ``self``; only the parsed certificate is
        fresh. Idempotent.
        """
        return Authority(
            Certificate.from_der(self._certificate.to_der(), self._certificate.key),
            key_manager=self._key_manager,
            serial_source=self._serial_source,
        )

    def new_cert(
        self,
        options: CertOptions | None = None,
        key: PrivateKey | None = None,
    ) -> Certificate:
        """Create a server certificate signed by this authority.

        Args:
            options: Validity and common name. Defaults come from settings.
            key: Private key for the new certificate. Generated when omitted.

        Raises:
            KeyGenerationError: If a key had to be generated and generation failed.
            EntropyError: If a serial number could not be drawn.
            SigningError: If the authority has no key or signing failed.
        """
        options = options or CertOptions()

        with tracer.start_as_current_span("Authority.new_cert") as span:
            span.set_attribute("common_name", options.common_name)
            span.set_attribute("issuer_serial", self._serial_hex)

            signer = self._certificate.key
            if signer is None:
                raise SigningError("Authority was loaded without a private key")

            start_time = time.time()

            if key is None:
                key = self._key_manager.generate()

            serial_number = self._serial_source()
            issuer_cert = self._certificate._cert
            public_key = key.public().public_key

            span.set_attribute("serial", format(serial_number, "x"))

            try:
                not_before, not_after = _validity(options)
                signed = (
                    x509.CertificateBuilder()
                    .subject_name(_subject(options))
                    .issuer_name(issuer_cert.subject)
                    .public_key(public_key)
                    .serial_number(serial_number)
                    .not_valid_before(not_before)
                    .not_valid_after(not_after)
                    .add_extension(
                        x509.BasicConstraints(ca=False, path_length=None),
                        critical=True,
                    )
                    .add_extension(SERVER_KEY_USAGE, critical=True)
                    .add_extension(SERVER_AUTH_EKU, critical=False)
                    .add_extension(
                        x509.SubjectKeyIdentifier.from_public_key(public_key),
                        critical=False,
                    )
                    .add_extension(_authority_key_identifier(issuer_cert), critical=False)
                    .sign(signer.private_key, hashes.SHA256())
                )
            except (ValueError, TypeError, OverflowError) as e:
                ca_metrics.record_signing_failed("server")
                logger.error(
                    "certificate_signing_failed",
                    extra={"common_name": options.common_name, "error": str(e)},
                )
                raise SigningError(f"Failed to sign certificate: {e}") from e

            der = signed.public_bytes(serialization.Encoding.DER)

            duration = time.time() - start_time
            ca_metrics.record_certificate_issued("server", duration)

            logger.info(
                "certificate_issued",
                extra={
                    "common_name": options.common_name,
                    "issuer_serial": self._serial_hex,
                    "serial": format(serial_number, "x"),
                    "not_after": not_after.isoformat(),
                    "duration_seconds": duration,
                },
            )

            return Certificate(cert=signed, der=der, key=key)

    @property
    def certificate(self) -> Certificate:
        """The authority's own certificate."""
        return self._certificate

    @property
    def key(self) -> PrivateKey | None:
        return self._certificate.key

    @property
    def public_key(self) -> PublicKey:
        return self._certificate.public_key

    @property
    def common_name(self) -> str | None:
        return self._certificate.subject_common_name

    @property
    def serial_number(self) -> int:
        return self._certificate.serial_number

    @property
    def not_before(self) -> datetime:
        return self._certificate.not_before

    @property
    def not_after(self) -> datetime:
        return self._certificate.not_after

    @property
    def _serial_hex(self) -> str:
        return format(self._certificate.serial_number, "x")

    def to_der(self) -> DER:
        return self._certificate.to_der()

    def to_pem(self) -> PEM:
        return self._certificate.to_pem()

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Authority):
            return NotImplemented
        return self._certificate == other._certificate

    def __hash__(self) -> int:
        return hash(self._certificate)

    def __repr__(self) -> str:
        return f"Authority(common_name={self.common_name!r}, serial={self._serial_hex})"


def _authority_key_identifier(issuer_cert: x509.Certificate) -> x509.AuthorityKeyIdentifier:
    try:
        ski = issuer_cert.extensions.get_extension_for_class(x509.SubjectKeyIdentifier)
    except x509.ExtensionNotFound:
        return x509.AuthorityKeyIdentifier.from_issuer_public_key(
            issuer_cert.public_key()  # type: ignore[arg-type]
        )
    return x509.AuthorityKeyIdentifier.from_issuer_subject_key_identifier(ski.value)
