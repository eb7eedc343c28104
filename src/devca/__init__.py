"""Short-lived X.509 certificates for testing and development."""

from devca.ca import Authority, CertOptions, Certificate, KeyManager, PrivateKey, PublicKey
from devca.ca.encoding import PEMType
from devca.ca.errors import (
    CAError,
    CertificateParseError,
    EmptyInputError,
    EntropyError,
    KeyGenerationError,
    MalformedInputError,
    MalformedKeyError,
    NoBlockFoundError,
    ParseError,
    SigningError,
    TypeMismatchError,
)
from devca.types import DER, PEM

__all__ = [
    "DER",
    "PEM",
    "Authority",
    "CAError",
    "CertOptions",
    "Certificate",
    "CertificateParseError",
    "EmptyInputError",
    "EntropyError",
    "KeyGenerationError",
    "KeyManager",
    "MalformedInputError",
    "MalformedKeyError",
    "NoBlockFoundError",
    "PEMType",
    "ParseError",
    "PrivateKey",
    "PublicKey",
    "SigningError",
    "TypeMismatchError",
]
