"""Byte aliases for the two encoded forms handled by devca."""

# PEM denotes byte data that is PEM-encoded (text form).
PEM = bytes

# DER denotes byte data that is ASN.1 DER-encoded (binary form).
DER = bytes
