"""Signed X.509 certificate bound to its DER form and private key.

The DER bytes are canonical: the parsed certificate is always the decode of
the stored bytes, and the PEM form always armors them. The parsed
object stays internal; callers see encoded bytes and plain Python values.
"""

import hashlib
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from cryptography import x509
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.x509.oid import NameOID

from devca.ca.encoding import PEMType, unwrap_expecting
from devca.ca.errors import CertificateParseError
from devca.ca.key_manager import PrivateKey, PublicKey
from devca.types import DER, PEM

if TYPE_CHECKING:
    from devca.ca.authority import Authority


class Certificate:
    """A signed certificate with an optional paired private key.

    The key is not checked against the certificate's public key; a
    certificate can be loaded with an unrelated key, or none, for inspection.
    """

    def __init__(self, cert: x509.Certificate, der: DER, key: PrivateKey | None = None) -> None:
        self._cert = cert
        self._der = der
        self._key = key

    @classmethod
    def from_pem(cls, data: PEM | str, key: PrivateKey | None = None) -> "Certificate":
        """Load a certificate from a ``CERTIFICATE`` PEM block.

        Raises:
            EmptyInputError: If ``data`` is empty.
            NoBlockFoundError: If no PEM block could be decoded.
            TypeMismatchError: If the block is not a ``CERTIFICATE``.
            CertificateParseError: If the payload is not a valid certificate.
        """
        return cls.from_der(unwrap_expecting(data, PEMType.CERTIFICATE), key)

    @classmethod
    def from_der(cls, data: DER, key: PrivateKey | None = None) -> "Certificate":
        """Load a certificate from DER bytes.

        Raises:
            CertificateParseError: If ``data`` is empty or not a valid
                certificate.
        """
        if not data:
            raise CertificateParseError("zero-length certificate")
        data = bytes(data)
        try:
            cert = x509.load_der_x509_certificate(data)
        except ValueError as e:
            raise CertificateParseError(f"Failed to parse certificate: {e}") from e
        return cls(cert=cert, der=data, key=key)

    def to_der(self) -> DER:
        return self._der

    def to_pem(self) -> PEM:
        return self._cert.public_bytes(serialization.Encoding.PEM)

    @property
    def key(self) -> PrivateKey | None:
        """The paired private key, or None when loaded without one."""
        return self._key

    @property
    def public_key(self) -> PublicKey:
        """The public key embedded in the certificate."""
        return PublicKey(public_key=self._cert.public_key())  # type: ignore[arg-type]

    @property
    def serial_number(self) -> int:
        return self._cert.serial_number

    @property
    def subject_common_name(self) -> str | None:
        return _common_name(self._cert.subject)

    @property
    def issuer_common_name(self) -> str | None:
        return _common_name(self._cert.issuer)

    @property
    def not_before(self) -> datetime:
        return self._cert.not_valid_before_utc

    @property
    def not_after(self) -> datetime:
        return self._cert.not_valid_after_utc

    @property
    def valid_for(self) -> timedelta:
        return self.not_after - self.not_before

    @property
    def is_ca(self) -> bool:
        try:
            bc = self._cert.extensions.get_extension_for_class(x509.BasicConstraints)
        except x509.ExtensionNotFound:
            return False
        return bc.value.ca

    @property
    def thumbprint(self) -> str:
        """Lowercase hexadecimal SHA-256 of the DER form."""
        return hashlib.sha256(self._der).hexdigest().lower()

    def is_signed_by(self, issuer: "Certificate | Authority") -> bool:
        """Check that ``issuer`` names and signed this certificate.

        Only the issuer name and the signature are checked; validity windows
        and extensions are not.
        """
        if not isinstance(issuer, Certificate):
            issuer = issuer.certificate
        try:
            self._cert.verify_directly_issued_by(issuer._cert)
        except (ValueError, TypeError, InvalidSignature):
            return False
        return True

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Certificate):
            return NotImplemented
        return self._der == other._der

    def __hash__(self) -> int:
        return hash(self._der)

    def __repr__(self) -> str:
        return (
            f"Certificate(subject={self.subject_common_name!r}, "
            f"issuer={self.issuer_common_name!r}, serial={self.serial_number:x})"
        )


def _common_name(name: x509.Name) -> str | None:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if not attrs:
        return None
    value = attrs[0].value
    return value if isinstance(value, str) else value.decode("utf-8")
