"""Login error types.

Every failure the login flow can surface is one of these. Each class carries
the HTTP status code the controller answers with, so collaborator and codec
errors map onto responses without a lookup table.
"""

from __future__ import annotations


class LoginError(Exception):
    """Base exception for all login-flow errors.

    Attributes:
        status_code: HTTP status used when the error is rendered as a response.
    """

    status_code: int = 500


class AuthenticationError(LoginError):
    """Raised when the client cannot be authenticated (forged, stale or missing credentials)."""

    status_code = 401


class InvalidCipherError(AuthenticationError):
    """Raised when a sealed token fails to open: tampering, wrong key or truncation."""

    def __init__(self, message: str = "invalid cipher: could not decrypt bytes provided") -> None:
        super().__init__(message)


class CookieAbsentError(AuthenticationError):
    """Raised when the request carries no session cookie (the normal logged-out case)."""


class CookieExpiredError(AuthenticationError):
    """Raised when a session cookie opens correctly but its issue time is too old."""


class CookieDomainError(AuthenticationError):
    """Raised when a session cookie was minted for a different domain."""


class StateDecodeError(AuthenticationError):
    """Raised when the OAuth ``state`` parameter is malformed or forged."""


class ProviderExchangeError(AuthenticationError):
    """Raised when the authorization code cannot be exchanged for a token."""


class ProfileFetchError(LoginError):
    """Raised when the user-info endpoint fails or returns an unusable profile."""


class ACLDeniedError(LoginError):
    """Raised when the access-control predicate rejects an authenticated profile."""


class ProfileWriteError(LoginError):
    """Raised when the profile write-back collaborator fails."""
