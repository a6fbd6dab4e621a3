"""
Hidden service address validation.

An address looks like ``<56 base32 chars>.<tld>``. The label decodes to
35 bytes: a 32 byte public key, a 2 byte checksum and a 1 byte version.
The checksum is the first two bytes of
SHA3-256(".<tld> checksum" || PUBKEY || VERSION).
"""

import base64
import hashlib
import hmac

LABEL_LENGTH = 56
PUBKEY_LENGTH = 32
CHECKSUM_LENGTH = 2
VERSION_LENGTH = 1
DECODED_LENGTH = PUBKEY_LENGTH + CHECKSUM_LENGTH + VERSION_LENGTH


def compute_checksum(pubkey: bytes, version: bytes, tld: str) -> bytes:
    """Return the 2 byte checksum for a public key, version byte and TLD."""
    digest = hashlib.sha3_256(
        f".{tld} checksum".encode("utf-8") + pubkey + version
    ).digest()
    return digest[:CHECKSUM_LENGTH]


def split_address(address: str) -> tuple[str, str]:
    """Return ``(label, tld)`` for an address; missing parts are empty strings."""
    parts = address.split(".")
    tld = parts[-1]
    label = parts[-2] if len(parts) >= 2 else ""
    return label, tld


def is_valid_hidden_service_address(address: str) -> bool:
    """
    Check the embedded checksum of a hidden service address.

    Never raises: malformed input of any kind is reported as invalid.

    Args:
        address: Candidate address, e.g. ``<label>.anyone``

    Returns:
        True only if the label decodes and its checksum matches
    """
    if not isinstance(address, str) or not address.strip():
        return False

    label, tld = split_address(address)
    if len(label) != LABEL_LENGTH:
        return False

    try:
        decoded = base64.b32decode(label.upper())
    except ValueError:
        # binascii.Error and non-ASCII input both land here
        return False

    if len(decoded) < DECODED_LENGTH:
        return False

    pubkey = decoded[:PUBKEY_LENGTH]
    checksum = decoded[PUBKEY_LENGTH:PUBKEY_LENGTH + CHECKSUM_LENGTH]
    version = decoded[PUBKEY_LENGTH + CHECKSUM_LENGTH:DECODED_LENGTH]

    try:
        expected = compute_checksum(pubkey, version, tld)
    except UnicodeError:
        return False

    return hmac.compare_digest(checksum, expected)
