"""Login configuration loaded from .ninjastack/login.json."""

from __future__ import annotations

import json
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any
from urllib.parse import urlparse

from pydantic import BaseModel, Field, model_validator

from ninja_login.keys import decode_key, encode_key, new_key

logger = logging.getLogger(__name__)

_ENV_PREFIX = "$env:"
_DEV_ENVIRONMENTS = ("dev", "development", "test")


def _check_http_url(name: str, value: str) -> None:
    parsed = urlparse(value)
    if parsed.scheme not in ("http", "https"):
        raise ValueError(f"{name} must be an HTTP(S) URL, got: '{value}'")
    if not parsed.hostname:
        raise ValueError(f"{name} must include a hostname, got: '{value}'")


class OAuth2ProviderConfig(BaseModel):
    """Configuration for the OAuth2 identity provider."""

    client_id: str
    client_secret: str
    authorize_url: str
    token_url: str
    scopes: list[str] = Field(default_factory=lambda: ["openid", "email", "profile"])
    redirect_uri: str = ""
    extra_authorize_params: dict[str, str] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_redirect_uri(self) -> OAuth2ProviderConfig:
        if self.redirect_uri:
            _check_http_url("redirect_uri", self.redirect_uri)
        return self


def resolve_key(stored_value: str) -> bytes:
    """Resolve a configured key value to raw key bytes.

    Key values support two formats:
    - ``$env:VAR_NAME``: resolved from an environment variable at runtime
    - base64url text: the output of ``ninja-login keygen``

    Raises:
        ValueError: If the env var is unset, or the text is not a valid
            32-byte base64url key.
    """
    if stored_value.startswith(_ENV_PREFIX):
        var_name = stored_value[len(_ENV_PREFIX) :]
        raw = os.environ.get(var_name)
        if raw is None:
            raise ValueError(f"environment variable '{var_name}' is not set")
        return decode_key(raw)
    return decode_key(stored_value)


class LoginConfig(BaseModel):
    """Top-level login middleware configuration.

    Attributes:
        state_key: Key sealing the OAuth ``state`` parameter.
        cookie_key: Key sealing the session cookie. Must differ from
            ``state_key``.
        domain: Serving domain bound into every session cookie.
        service: Service name prefixed to provider subjects to form the
            subject id (``<service>_<sub>``).
    """

    provider: OAuth2ProviderConfig
    state_key: str = ""
    cookie_key: str = ""
    domain: str
    service: str
    userinfo_url: str
    cookie_name: str = "session"
    session_max_age_hours: int = Field(default=24, gt=0)
    http_timeout_seconds: float = Field(default=10.0, gt=0)
    userinfo_retries: int = Field(default=2, ge=0)
    login_path: str = "/login"
    callback_path: str = "/oauth2/callback"
    logoff_path: str = "/logoff"
    home_path: str = "/"
    public_paths: list[str] = Field(default_factory=lambda: ["/health"])

    @model_validator(mode="after")
    def _check_fields(self) -> LoginConfig:
        if not self.domain:
            raise ValueError("LoginConfig.domain must not be empty")
        if not self.service:
            raise ValueError("LoginConfig.service must not be empty")
        if not self.cookie_name:
            raise ValueError("LoginConfig.cookie_name must not be empty")
        _check_http_url("userinfo_url", self.userinfo_url)
        self.state_key = self._default_key("state_key", self.state_key)
        self.cookie_key = self._default_key("cookie_key", self.cookie_key)
        if self.state_key == self.cookie_key or self._resolved_keys_equal():
            raise ValueError("LoginConfig.state_key and cookie_key must be different keys")
        return self

    def _resolved_keys_equal(self) -> bool:
        # Unresolvable keys (unset env var, malformed text) are reported when
        # the key is used or by ``ninja-login check-config``.
        try:
            return resolve_key(self.state_key) == resolve_key(self.cookie_key)
        except ValueError:
            return False

    @staticmethod
    def _default_key(field: str, value: str) -> str:
        if value:
            return value
        env = os.environ.get("NINJASTACK_ENV", "").lower()
        if env in _DEV_ENVIRONMENTS:
            logger.warning(
                "LoginConfig.%s is empty. Auto-generating a random key for %s mode; "
                "sessions will not survive a restart or span instances.",
                field,
                env,
                extra={"event": "login_key_generated", "field": field},
            )
            return encode_key(new_key())
        raise ValueError(
            f"LoginConfig.{field} must not be empty. Generate one with "
            "'ninja-login keygen' or set NINJASTACK_ENV=dev for local development."
        )

    @property
    def session_max_age(self) -> timedelta:
        return timedelta(hours=self.session_max_age_hours)

    def state_key_bytes(self) -> bytes:
        """Return the resolved state key."""
        return resolve_key(self.state_key)

    def cookie_key_bytes(self) -> bytes:
        """Return the resolved cookie key."""
        return resolve_key(self.cookie_key)

    @classmethod
    def from_file(cls, path: str | Path = ".ninjastack/login.json") -> LoginConfig:
        """Load config from a JSON file.

        Raises:
            FileNotFoundError: If *path* does not exist; there is no usable
                default for provider credentials.
        """
        p = Path(path)
        data: dict[str, Any] = json.loads(p.read_text())
        return cls.model_validate(data)
