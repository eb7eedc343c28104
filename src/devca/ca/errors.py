"""Error taxonomy for the certificate authority.

Every error raised by devca derives from :class:`CAError`. Errors raised by
``cryptography`` are chained, never swallowed.
"""


class CAError(Exception):
    """Base class for certificate authority failures."""

    pass


class EntropyError(CAError):
    """Raised when the random source is unavailable."""

    pass


class KeyGenerationError(EntropyError):
    """Raised when the key generation primitive fails."""

    pass


class MalformedInputError(CAError, ValueError):
    """Raised when input bytes are empty or structurally invalid."""

    pass


class EmptyInputError(MalformedInputError):
    """Raised when PEM or DER input has zero length."""

    pass


class NoBlockFoundError(MalformedInputError):
    """Raised when no PEM block can be decoded from the input."""

    pass


class TypeMismatchError(CAError, ValueError):
    """Raised when a PEM block's type tag is not the one the caller expects."""

    def __init__(self, expected: str, actual: str) -> None:
        super().__init__(f"PEM block is not of type {expected}: {actual!r}")
        self.expected = expected
        self.actual = actual


class ParseError(CAError, ValueError):
    """Raised when DER bytes do not decode to the expected structure."""

    pass


class MalformedKeyError(ParseError):
    """Raised when DER bytes are not a valid RSA private key."""

    pass


class CertificateParseError(ParseError):
    """Raised when DER bytes are not a valid X.509 certificate."""

    pass


class SigningError(CAError):
    """Raised when the certificate builder rejects a template or signing fails."""

    pass
