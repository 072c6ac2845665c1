"""Symmetric key material for state tokens and session cookies."""

from __future__ import annotations

import base64
import binascii

import nacl.secret
import nacl.utils

KEY_SIZE = nacl.secret.SecretBox.KEY_SIZE


def new_key() -> bytes:
    """Return a fresh random 256-bit key.

    Use one key for state tokens and a different one for session cookies.
    Every instance taking part in a login flow must be configured with the
    same pair.
    """
    return nacl.utils.random(KEY_SIZE)


def encode_key(key: bytes) -> str:
    """Return the base64url text form of *key* used in config files and env vars."""
    check_key(key)
    return base64.urlsafe_b64encode(key).decode("ascii")


def decode_key(text: str) -> bytes:
    """Parse the base64url text form of a key. Padding is optional.

    Raises:
        ValueError: If the text is not base64url or does not decode to
            exactly :data:`KEY_SIZE` bytes.
    """
    raw = text.strip()
    if "+" in raw or "/" in raw:
        raise ValueError("key is not valid base64url text")
    raw += "=" * (-len(raw) % 4)
    try:
        key = base64.b64decode(raw.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError("key is not valid base64url text") from exc
    check_key(key)
    return key


def check_key(key: bytes) -> None:
    """Raise ``ValueError`` unless *key* is exactly :data:`KEY_SIZE` bytes."""
    if len(key) != KEY_SIZE:
        raise ValueError(f"key must be {KEY_SIZE} bytes, got {len(key)}")
