"""OAuth2 authorization-code provider with presets for Google and GitHub."""

from __future__ import annotations

import logging
from typing import Any, Protocol, runtime_checkable
from urllib.parse import urlencode

import httpx
from pydantic import BaseModel, ConfigDict, ValidationError

from ninja_login.config import OAuth2ProviderConfig
from ninja_login.errors import ProviderExchangeError

logger = logging.getLogger(__name__)

# Well-known provider presets
GOOGLE_PRESET = OAuth2ProviderConfig(
    client_id="",
    client_secret="",
    authorize_url="https://accounts.google.com/o/oauth2/v2/auth",
    token_url="https://oauth2.googleapis.com/token",
    scopes=["openid", "email", "profile"],
)
GOOGLE_USERINFO_URL = "https://openidconnect.googleapis.com/v1/userinfo"

GITHUB_PRESET = OAuth2ProviderConfig(
    client_id="",
    client_secret="",
    authorize_url="https://github.com/login/oauth/authorize",
    token_url="https://github.com/login/oauth/access_token",
    scopes=["read:user", "user:email"],
)
GITHUB_USERINFO_URL = "https://api.github.com/user"


class ProviderToken(BaseModel):
    """Tokens returned by the provider's token endpoint."""

    model_config = ConfigDict(extra="allow")

    access_token: str
    token_type: str = "bearer"
    refresh_token: str | None = None
    expires_in: int | None = None
    scope: str | None = None


@runtime_checkable
class OAuthProvider(Protocol):
    """The two provider operations the login handler relies on."""

    def build_authorization_url(self, state: str) -> str: ...

    async def exchange_code(self, code: str) -> ProviderToken: ...


class OAuth2Provider:
    """Authorization-code flow against a standard OAuth2 provider over httpx.

    The code exchange is never retried: a code is single use, and a retry
    after a lost response would be rejected by the provider anyway.
    """

    def __init__(self, config: OAuth2ProviderConfig, *, timeout: float = 10.0) -> None:
        self.config = config
        self.timeout = timeout

    def build_authorization_url(self, state: str) -> str:
        """Build the URL to redirect the user to for authorization.

        *state* is the sealed origin URL minted by the login handler.
        """
        params: dict[str, str] = {
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "response_type": "code",
            "scope": " ".join(self.config.scopes),
            "state": state,
        }
        params.update(self.config.extra_authorize_params)
        return f"{self.config.authorize_url}?{urlencode(params)}"

    async def exchange_code(self, code: str) -> ProviderToken:
        """Exchange an authorization code for tokens.

        Raises:
            ProviderExchangeError: On a transport failure, a non-2xx answer,
                an undecodable body, or a body without ``access_token``.
        """
        try:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                resp = await client.post(
                    self.config.token_url,
                    data={
                        "grant_type": "authorization_code",
                        "client_id": self.config.client_id,
                        "client_secret": self.config.client_secret,
                        "code": code,
                        "redirect_uri": self.config.redirect_uri,
                    },
                    headers={"Accept": "application/json"},
                )
                resp.raise_for_status()
                body: Any = resp.json()
        except httpx.HTTPError as exc:
            logger.warning(
                "Code exchange failed: token_url=%s error=%s",
                self.config.token_url,
                exc,
                extra={"event": "oauth2_exchange_failed"},
            )
            raise ProviderExchangeError(f"code exchange failed: {exc}") from exc
        except ValueError as exc:
            raise ProviderExchangeError("code exchange failed: token response is not JSON") from exc

        if not isinstance(body, dict) or not body.get("access_token"):
            # GitHub answers 200 with {"error": ...} for bad codes.
            error = body.get("error", "missing access_token") if isinstance(body, dict) else "missing access_token"
            raise ProviderExchangeError(f"code exchange failed: {error}")
        try:
            return ProviderToken.model_validate(body)
        except ValidationError as exc:
            raise ProviderExchangeError("code exchange failed: malformed token response") from exc
