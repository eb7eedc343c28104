"""Private key generation and (de)serialization.

Keys are RSA. The private key is the source of truth; the public key is
always derived from it and never stored on its own.

Encodings:
- DER: PKCS#1 for private keys, SubjectPublicKeyInfo for public keys
- PEM: the same encodings armored as ``RSA PRIVATE KEY`` / ``PUBLIC KEY``
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from opentelemetry import trace
from shared.config import settings

from devca.ca.encoding import PEMType, unwrap_expecting
from devca.ca.errors import KeyGenerationError, MalformedKeyError
from devca.metrics import ca_metrics
from devca.types import DER, PEM

logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Default and minimum modulus size, exposed for reference
RSA_KEY_BITS = 2048
RSA_PUBLIC_EXPONENT = 65537


@dataclass(frozen=True, eq=False)
class PublicKey:
    """Public half of a :class:`PrivateKey`."""

    public_key: rsa.RSAPublicKey

    def to_der(self) -> DER:
        """Encode as DER SubjectPublicKeyInfo."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def to_pem(self) -> PEM:
        """Encode as a ``PUBLIC KEY`` PEM block."""
        return self.public_key.public_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PublicFormat.SubjectPublicKeyInfo,
        )

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PublicKey):
            return NotImplemented
        return self.to_der() == other.to_der()

    def __hash__(self) -> int:
        return hash(self.to_der())


@dataclass(frozen=True, eq=False)
class PrivateKey:
    """An RSA private key."""

    private_key: rsa.RSAPrivateKey

    @classmethod
    def generate(cls, key_size: int | None = None) -> "PrivateKey":
        """Generate a new RSA private key.

        Args:
            key_size: Modulus size in bits. Defaults to ``settings.CA_RSA_KEY_SIZE``.

        Raises:
            ValueError: If ``key_size`` is below ``RSA_KEY_BITS``.
            KeyGenerationError: If the underlying primitive fails.
        """
        if key_size is None:
            key_size = settings.CA_RSA_KEY_SIZE
        if key_size < RSA_KEY_BITS:
            raise ValueError(f"RSA key size must be at least {RSA_KEY_BITS} bits, got {key_size}")
        try:
            key = rsa.generate_private_key(
                public_exponent=RSA_PUBLIC_EXPONENT,
                key_size=key_size,
            )
        except Exception as e:
            raise KeyGenerationError(f"Failed to generate RSA-{key_size} key: {e}") from e
        return cls(private_key=key)

    @classmethod
    def from_der(cls, data: DER) -> "PrivateKey":
        """Load a private key from DER (PKCS#1, or PKCS#8 wrapping an RSA key).

        Raises:
            MalformedKeyError: If ``data`` is empty or not an RSA private key.
        """
        if not data:
            raise MalformedKeyError("zero-length private key")
        try:
            key = serialization.load_der_private_key(data, password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as e:
            raise MalformedKeyError(f"Failed to parse private key: {e}") from e
        if not isinstance(key, rsa.RSAPrivateKey):
            raise MalformedKeyError(f"Expected an RSA private key, got {type(key).__name__}")
        return cls(private_key=key)

    @classmethod
    def from_pem(cls, data: PEM | str) -> "PrivateKey":
        """Load a private key from an ``RSA PRIVATE KEY`` PEM block."""
        return cls.from_der(unwrap_expecting(data, PEMType.RSA_PRIVATE_KEY))

    def to_der(self) -> DER:
        """Encode as PKCS#1 DER."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.DER,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def to_pem(self) -> PEM:
        """Encode as an ``RSA PRIVATE KEY`` PEM block."""
        return self.private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.TraditionalOpenSSL,
            encryption_algorithm=serialization.NoEncryption(),
        )

    def public(self) -> PublicKey:
        """Derive the public key."""
        return PublicKey(public_key=self.private_key.public_key())

    @property
    def key_size(self) -> int:
        return self.private_key.key_size

    @property
    def algorithm(self) -> str:
        return f"RSA-{self.key_size}"

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, PrivateKey):
            return NotImplemented
        return self.private_key.private_numbers() == other.private_key.private_numbers()

    def __hash__(self) -> int:
        return hash(self.public())

    def __repr__(self) -> str:
        return f"PrivateKey({self.algorithm})"


class KeyManager:
    """Key source for the certificate authority.

    ``key_factory`` replaces the random generator, so tests can hand out
    fixed keys instead of depending on the process-wide random source.
    """

    def __init__(
        self,
        key_size: int | None = None,
        key_factory: Callable[[], PrivateKey] | None = None,
    ) -> None:
        self.key_size = key_size if key_size is not None else settings.CA_RSA_KEY_SIZE
        self._key_factory = key_factory

    def generate(self) -> PrivateKey:
        """Generate a new private key.

        Raises:
            KeyGenerationError: If the key source fails.
        """
        with tracer.start_as_current_span("KeyManager.generate") as span:
            if self._key_factory is not None:
                span.set_attribute("source", "factory")
                try:
                    key = self._key_factory()
                except KeyGenerationError:
                    raise
                except Exception as e:
                    raise KeyGenerationError(f"Key factory failed: {e}") from e
            else:
                span.set_attribute("source", "random")
                try:
                    key = PrivateKey.generate(self.key_size)
                except KeyGenerationError as e:
                    logger.error(
                        "private_key_generation_failed",
                        extra={"key_size": self.key_size, "error": str(e)},
                    )
                    raise

            span.set_attribute("algorithm", key.algorithm)
            ca_metrics.record_key_generated(key.algorithm)
            logger.debug("private_key_generated", extra={"algorithm": key.algorithm})
            return key

    def decode(self, data: DER) -> PrivateKey:
        return PrivateKey.from_der(data)

    def decode_pem(self, data: PEM | str) -> PrivateKey:
        return PrivateKey.from_pem(data)

    def encode(self, key: PrivateKey) -> DER:
        return key.to_der()

    def encode_pem(self, key: PrivateKey) -> PEM:
        return key.to_pem()

    def public_of(self, key: PrivateKey) -> PublicKey:
        return key.public()
