"""Shared fixtures for ninja-login tests."""

from urllib.parse import urlencode

import pytest

from ninja_login.config import LoginConfig
from ninja_login.cookie import SessionCookieCodec
from ninja_login.errors import ProfileFetchError, ProviderExchangeError
from ninja_login.handler import LoginHandler
from ninja_login.keys import encode_key, new_key
from ninja_login.profile import Profile
from ninja_login.provider import ProviderToken
from ninja_login.state import StateCodec

DOMAIN = "app.example.com"
SERVICE = "notes"


class FakeProvider:
    """In-memory OAuth provider: any code except ``bad-code`` is accepted."""

    authorize_url = "https://idp.example.com/authorize"

    def __init__(self) -> None:
        self.exchanged: list[str] = []

    def build_authorization_url(self, state: str) -> str:
        return f"{self.authorize_url}?{urlencode({'state': state, 'client_id': 'cid'})}"

    async def exchange_code(self, code: str) -> ProviderToken:
        self.exchanged.append(code)
        if code == "bad-code":
            raise ProviderExchangeError("code exchange failed: invalid_grant")
        return ProviderToken(access_token=f"at-{code}")


class FakeUserInfo:
    """Returns a fixed profile, or raises when ``fail`` is set."""

    def __init__(self, sub: str = "u-123", fail: bool = False) -> None:
        self.sub = sub
        self.fail = fail
        self.tokens: list[ProviderToken] = []

    async def fetch_profile(self, token: ProviderToken) -> Profile:
        self.tokens.append(token)
        if self.fail:
            raise ProfileFetchError("503 Service Unavailable")
        return Profile(sub=self.sub, email="ada@example.com", name="Ada")


@pytest.fixture(autouse=True)
def _ninjastack_dev_env(monkeypatch):
    """Default all login tests to dev mode so configs may omit keys."""
    monkeypatch.setenv("NINJASTACK_ENV", "dev")


@pytest.fixture
def state_key() -> bytes:
    return new_key()


@pytest.fixture
def cookie_key() -> bytes:
    return new_key()


@pytest.fixture
def state_codec(state_key) -> StateCodec:
    return StateCodec(state_key)


@pytest.fixture
def cookie_codec(cookie_key) -> SessionCookieCodec:
    return SessionCookieCodec(cookie_key, DOMAIN)


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def userinfo() -> FakeUserInfo:
    return FakeUserInfo()


@pytest.fixture
def make_handler(provider, userinfo, state_codec, cookie_codec):
    """Factory building a LoginHandler on the fake collaborators."""

    def _make(**kwargs) -> LoginHandler:
        params = {
            "provider": provider,
            "userinfo": userinfo,
            "state_codec": state_codec,
            "cookie_codec": cookie_codec,
            "service": SERVICE,
        }
        params.update(kwargs)
        return LoginHandler(**params)

    return _make


@pytest.fixture
def login_config(state_key, cookie_key) -> LoginConfig:
    return LoginConfig.model_validate(
        {
            "provider": {
                "client_id": "cid",
                "client_secret": "csecret",
                "authorize_url": "https://idp.example.com/authorize",
                "token_url": "https://idp.example.com/token",
                "redirect_uri": f"https://{DOMAIN}/oauth2/callback",
            },
            "state_key": encode_key(state_key),
            "cookie_key": encode_key(cookie_key),
            "domain": DOMAIN,
            "service": SERVICE,
            "userinfo_url": "https://idp.example.com/userinfo",
        }
    )
