"""User-info lookup against the provider's profile endpoint."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable

import httpx
from pydantic import ValidationError

from ninja_login.errors import ProfileFetchError
from ninja_login.profile import Profile
from ninja_login.provider import ProviderToken

logger = logging.getLogger(__name__)


@runtime_checkable
class UserInfoFetcher(Protocol):
    """Anything that can turn an access token into a :class:`Profile`."""

    async def fetch_profile(self, token: ProviderToken) -> Profile: ...


class UserInfoClient:
    """Fetches the user profile with a bearer access token.

    The GET is idempotent, so connection failures are retried by the
    transport up to *retries* times.
    """

    def __init__(self, url: str, *, timeout: float = 10.0, retries: int = 2) -> None:
        self.url = url
        self.timeout = timeout
        self.retries = retries

    async def fetch_profile(self, token: ProviderToken) -> Profile:
        """Return the profile of the user owning *token*.

        Raises:
            ProfileFetchError: On a transport failure, a non-2xx answer, an
                undecodable body, or a profile without a subject.
        """
        transport = httpx.AsyncHTTPTransport(retries=self.retries)
        try:
            async with httpx.AsyncClient(transport=transport, timeout=self.timeout) as client:
                resp = await client.get(
                    self.url,
                    headers={
                        "Authorization": f"Bearer {token.access_token}",
                        "Accept": "application/json",
                    },
                )
                resp.raise_for_status()
                body: Any = resp.json()
        except httpx.HTTPError as exc:
            logger.warning(
                "User-info request failed: url=%s error=%s",
                self.url,
                exc,
                extra={"event": "userinfo_failed"},
            )
            raise ProfileFetchError(str(exc)) from exc
        except ValueError as exc:
            raise ProfileFetchError("user-info response is not JSON") from exc

        if not isinstance(body, dict):
            raise ProfileFetchError("user-info response is not a JSON object")
        try:
            profile = Profile.model_validate(body)
        except ValidationError as exc:
            raise ProfileFetchError(f"malformed user-info response: {exc.error_count()} invalid field(s)") from exc
        if not profile.sub:
            raise ProfileFetchError("user-info response has no subject")
        return profile
