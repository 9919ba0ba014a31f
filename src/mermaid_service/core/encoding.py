"""URL-safe, unpadded base64 helpers for diagram keys.

Diagram sources travel in the URL path as base64url text without ``=``
padding (RFC 4648 §5).  The standard library decoder silently skips
characters outside the alphabet, so keys are checked against the alphabet
first and only then handed to :func:`base64.urlsafe_b64decode`.
"""

from __future__ import annotations

import base64
import binascii
import re

from mermaid_service.core.exceptions import DecodeError

_KEY_ALPHABET = re.compile(r"[A-Za-z0-9_-]*")


def decode_key(key: str) -> bytes:
    """Decode a diagram key into the raw diagram source.

    Args:
        key: Base64url text with no padding, as taken from the request path.

    Returns:
        The decoded bytes.

    Raises:
        DecodeError: If ``key`` contains characters outside the base64url
            alphabet (padding included) or has an impossible length.
    """
    if not isinstance(key, str) or not _KEY_ALPHABET.fullmatch(key):
        raise DecodeError("illegal base64 data: unexpected character")

    # A single trailing symbol carries only 6 bits, never a whole byte.
    if len(key) % 4 == 1:
        raise DecodeError(f"illegal base64 data: invalid length {len(key)}")

    padded = key + "=" * (-len(key) % 4)
    try:
        return base64.urlsafe_b64decode(padded)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"illegal base64 data: {e}") from e


def encode_source(source: bytes | str) -> str:
    """Encode diagram source as an unpadded base64url key."""
    if isinstance(source, str):
        source = source.encode("utf-8")
    return base64.urlsafe_b64encode(source).rstrip(b"=").decode("ascii")
