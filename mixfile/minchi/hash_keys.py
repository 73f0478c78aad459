"""
Hashed keys for MInChI notation.

Keys are derived from the structure section (the molecules layer) only, so
two mixtures with the same components but different concentrations share a
key. The digest is SHA-256 over the UTF-8 encoded layer.

- long key: "MInChIKey=" followed by the full digest as uppercase hex
- short key: fixed-length base32 crunch of the leading digest bytes
"""

import base64
import hashlib

LONG_KEY_PREFIX = 'MInChIKey='
SHORT_KEY_LENGTH = 16  # base32 characters, 5 bits each


def _digest(molecules_layer: str) -> bytes:
    return hashlib.sha256(molecules_layer.encode('utf-8')).digest()


def make_long_key(molecules_layer: str) -> str:
    return LONG_KEY_PREFIX + _digest(molecules_layer).hex().upper()


def make_short_key(molecules_layer: str, length: int = SHORT_KEY_LENGTH) -> str:
    """
    Crunch the molecules layer into a fixed-length key.

    Args:
        molecules_layer: structure section of a MInChI string
        length: number of base32 characters, 8 to 48

    Raises:
        ValueError: if length is out of range
    """
    if not 8 <= length <= 48:
        raise ValueError(f"Short key length must be between 8 and 48, got {length}")
    encoded = base64.b32encode(_digest(molecules_layer)).decode('ascii')
    return encoded[:length]
