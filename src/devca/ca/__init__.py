"""Certificate Authority module for devca.

This module provides:
- RSA key generation and (de)serialization
- PEM armor for keys and certificates
- Certificates bound to their DER form and private key
- A self-signed root authority that signs server certificates
"""

from devca.ca.authority import Authority, CertOptions
from devca.ca.certificate import Certificate
from devca.ca.key_manager import KeyManager, PrivateKey, PublicKey

__all__ = ["Authority", "CertOptions", "Certificate", "KeyManager", "PrivateKey", "PublicKey"]
