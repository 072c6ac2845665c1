"""Session cookie codec.

The cookie value is a sealed, base64url-encoded payload::

    u64 issued_at (unix seconds, big-endian)
    u16 len(domain) (big-endian)
    domain
    subject_id

The issue time and domain are covered by the AEAD tag, so a cookie cannot be
replayed on another domain or kept alive past its maximum age by editing the
browser-side ``Expires`` attribute.
"""

from __future__ import annotations

import logging
import struct
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from starlette.responses import Response

from ninja_login.crypto import b64url_decode, b64url_encode, seal, unseal
from ninja_login.errors import CookieDomainError, CookieExpiredError, InvalidCipherError
from ninja_login.keys import check_key

logger = logging.getLogger(__name__)

DEFAULT_COOKIE_NAME = "session"
DEFAULT_MAX_AGE = timedelta(hours=24)

_HEADER = struct.Struct(">QH")
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


@dataclass(frozen=True)
class IssuedCookie:
    """A freshly minted cookie value and the expiry hint sent to the browser."""

    value: str
    expires_at: datetime


def pack_payload(issued_at: int, domain: str, subject_id: str) -> bytes:
    """Serialize the plaintext cookie payload."""
    domain_bytes = domain.encode("utf-8")
    return _HEADER.pack(issued_at, len(domain_bytes)) + domain_bytes + subject_id.encode("utf-8")


def unpack_payload(payload: bytes) -> tuple[int, str, str]:
    """Parse a plaintext cookie payload into ``(issued_at, domain, subject_id)``.

    Raises:
        InvalidCipherError: If the payload is shorter than its header, its
            domain length overruns the payload, or it is not UTF-8.
    """
    if len(payload) < _HEADER.size:
        raise InvalidCipherError()
    issued_at, domain_len = _HEADER.unpack_from(payload)
    end = _HEADER.size + domain_len
    if end > len(payload):
        raise InvalidCipherError()
    try:
        domain = payload[_HEADER.size : end].decode("utf-8")
        subject_id = payload[end:].decode("utf-8")
    except UnicodeDecodeError as exc:
        raise InvalidCipherError() from exc
    return issued_at, domain, subject_id


class SessionCookieCodec:
    """Issues and validates domain-bound, time-limited session cookies.

    Args:
        key: The 32-byte cookie key. It must differ from the state key.
        domain: The serving domain written into every cookie and expected
            on every read.
        cookie_name: Name of the cookie on the wire.
        max_age: How long after issuance a cookie is accepted.
    """

    def __init__(
        self,
        key: bytes,
        domain: str,
        *,
        cookie_name: str = DEFAULT_COOKIE_NAME,
        max_age: timedelta = DEFAULT_MAX_AGE,
    ) -> None:
        check_key(key)
        if not domain:
            raise ValueError("cookie domain must not be empty")
        self._key = key
        self.domain = domain
        self.cookie_name = cookie_name
        self.max_age = max_age

    def issue(self, subject_id: str, domain: str | None = None) -> IssuedCookie:
        """Mint a cookie value for *subject_id* stamped with the current time.

        The cookie is bound to *domain*, or to the configured domain when
        omitted.
        """
        now = int(time.time())
        payload = pack_payload(now, domain or self.domain, subject_id)
        value = b64url_encode(seal(self._key, payload))
        expires_at = datetime.fromtimestamp(now, tz=timezone.utc) + self.max_age
        return IssuedCookie(value=value, expires_at=expires_at)

    def read(self, value: str, expected_domain: str | None = None) -> str:
        """Validate a cookie value and return the subject id it carries.

        Raises:
            InvalidCipherError: If the value is not base64url, fails to open,
                or holds a malformed payload.
            CookieExpiredError: If the cookie is older than :attr:`max_age`.
            CookieDomainError: If the cookie was issued for another domain.
        """
        logger.debug("Reading session cookie: length=%s", len(value))
        try:
            sealed = b64url_decode(value)
        except ValueError as exc:
            raise InvalidCipherError() from exc
        issued_at, domain, subject_id = unpack_payload(unseal(self._key, sealed))

        age = int(time.time()) - issued_at
        if age > self.max_age.total_seconds():
            raise CookieExpiredError(f"session cookie expired {age}s after issuance")

        expected = expected_domain or self.domain
        if domain != expected:
            raise CookieDomainError(f"session cookie domain mismatch: got '{domain}', expected '{expected}'")
        return subject_id

    def set_cookie(self, response: Response, subject_id: str) -> IssuedCookie:
        """Issue a cookie for *subject_id* and attach it to *response*."""
        issued = self.issue(subject_id)
        response.set_cookie(
            key=self.cookie_name,
            value=issued.value,
            expires=issued.expires_at,
            path="/",
            domain=self.domain,
            secure=True,
            httponly=True,
        )
        return issued

    def clear_cookie(self, response: Response) -> None:
        """Attach an empty, already-expired session cookie to *response*."""
        response.set_cookie(
            key=self.cookie_name,
            value="",
            expires=_EPOCH,
            path="/",
            domain=self.domain,
            secure=True,
            httponly=True,
        )
