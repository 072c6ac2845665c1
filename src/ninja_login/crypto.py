"""Authenticated encryption for sealed tokens.

A sealed token is ``nonce || ciphertext`` where the nonce is 24 random bytes
drawn fresh on every call and the ciphertext is an XSalsa20-Poly1305
secretbox. Opening fails closed on any modification.
"""

from __future__ import annotations

import base64
import binascii

import nacl.exceptions
import nacl.secret
import nacl.utils

from ninja_login.errors import InvalidCipherError
from ninja_login.keys import check_key

NONCE_SIZE = nacl.secret.SecretBox.NONCE_SIZE


def seal(key: bytes, plaintext: bytes) -> bytes:
    """Encrypt and authenticate *plaintext* under *key*.

    Returns:
        The nonce followed by the ciphertext and tag.
    """
    check_key(key)
    nonce = nacl.utils.random(NONCE_SIZE)
    box = nacl.secret.SecretBox(key)
    return bytes(box.encrypt(plaintext, nonce))


def unseal(key: bytes, sealed: bytes) -> bytes:
    """Verify and decrypt a token produced by :func:`seal`.

    Raises:
        InvalidCipherError: If the token is shorter than a nonce, or fails
            verification because it was modified, truncated or sealed under
            another key.
    """
    check_key(key)
    if len(sealed) < NONCE_SIZE:
        raise InvalidCipherError()
    nonce, ciphertext = sealed[:NONCE_SIZE], sealed[NONCE_SIZE:]
    box = nacl.secret.SecretBox(key)
    try:
        return box.decrypt(ciphertext, nonce)
    except nacl.exceptions.CryptoError as exc:
        raise InvalidCipherError() from exc


def b64url_encode(data: bytes) -> str:
    """Encode *data* as padded base64url text, safe in query strings and cookies."""
    return base64.urlsafe_b64encode(data).decode("ascii")


def b64url_decode(text: str) -> bytes:
    """Decode base64url text, tolerating missing padding.

    Raises:
        ValueError: If *text* contains characters outside the URL-safe
            alphabet or is not valid base64.
    """
    if "+" in text or "/" in text:
        raise ValueError("malformed base64url text")
    padded = text + "=" * (-len(text) % 4)
    try:
        return base64.b64decode(padded.encode("ascii"), altchars=b"-_", validate=True)
    except (binascii.Error, UnicodeEncodeError) as exc:
        raise ValueError("malformed base64url text") from exc
