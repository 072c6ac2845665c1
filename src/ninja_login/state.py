"""OAuth ``state`` token codec.

The state parameter carries the URL the user originally asked for across the
provider redirect. It is sealed under the state key, so a callback whose
state was not minted by one of our instances is rejected. That is the CSRF
protection of the flow.
"""

from __future__ import annotations

import logging

from ninja_login.crypto import b64url_decode, b64url_encode, seal, unseal
from ninja_login.errors import LoginError, StateDecodeError
from ninja_login.keys import check_key

logger = logging.getLogger(__name__)


class StateCodec:
    """Seals and opens origin URLs for the OAuth ``state`` query parameter."""

    def __init__(self, key: bytes) -> None:
        check_key(key)
        self._key = key

    def encode(self, origin: str) -> str:
        """Return the base64url state value for *origin*."""
        return b64url_encode(seal(self._key, origin.encode("utf-8")))

    def decode(self, value: str) -> str:
        """Recover the origin URL from a state value.

        Raises:
            StateDecodeError: If the value is not base64url, fails to open
                under the state key, or is not UTF-8.
        """
        logger.debug("Decoding state value: length=%s", len(value))
        try:
            sealed = b64url_decode(value)
        except ValueError as exc:
            raise StateDecodeError(f"failed to decode state: {exc}") from exc
        try:
            plaintext = unseal(self._key, sealed)
        except LoginError as exc:
            raise StateDecodeError(f"failed to decode state: {exc}") from exc
        try:
            return plaintext.decode("utf-8")
        except UnicodeDecodeError as exc:
            raise StateDecodeError("failed to decode state: origin is not UTF-8") from exc
