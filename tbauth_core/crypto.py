from __future__ import annotations
from cryptography.hazmat.primitives import constant_time, hashes
import binascii, os
from .constants import KEY_BYTES, KEY_CHARS
"""
tbauth_core.crypto
------------------
Key material primitives:

- generate_key_material(): KEY_BYTES from the OS CSPRNG, hex encoded
- decode_key_material(): strict inverse, rejects anything but KEY_CHARS hex
- key_fingerprint(): short SHA-256 digest for display
- bytes_equal(): constant-time comparison for identity checks

No authentication protocol consumes the key yet; it is generated once and
stored.
"""


def generate_key_material() -> str:
    return os.urandom(KEY_BYTES).hex()


def decode_key_material(text: str) -> bytes:
    text = text.strip()
    if len(text) != KEY_CHARS:
        raise ValueError(f"key material must be {KEY_CHARS} hex characters, got {len(text)}")
    try:
        return binascii.unhexlify(text)
    except binascii.Error as e:
        raise ValueError(f"key material is not hex: {e}") from None


def key_fingerprint(key_hex: str) -> str:
    """
    Stable fingerprint of a stored key.

    - Input: hex encoded key material
    - Output: hex SHA-256 of the raw key, truncated to 16 chars
    """
    digest = hashes.Hash(hashes.SHA256())
    digest.update(decode_key_material(key_hex))
    return digest.finalize().hex()[:16]


def bytes_equal(a: bytes, b: bytes) -> bool:
    return constant_time.bytes_eq(a, b)
