"""Ninja Login: OAuth2 browser login middleware with sealed state and session cookies."""

import logging

from ninja_login.config import LoginConfig, OAuth2ProviderConfig
from ninja_login.cookie import IssuedCookie, SessionCookieCodec
from ninja_login.crypto import seal, unseal
from ninja_login.errors import (
    ACLDeniedError,
    AuthenticationError,
    CookieAbsentError,
    CookieDomainError,
    CookieExpiredError,
    InvalidCipherError,
    LoginError,
    ProfileFetchError,
    ProfileWriteError,
    ProviderExchangeError,
    StateDecodeError,
)
from ninja_login.gateway import SessionGateway, get_subject_id
from ninja_login.handler import LoginHandler
from ninja_login.keys import decode_key, encode_key, new_key
from ninja_login.profile import Profile
from ninja_login.provider import (
    GITHUB_PRESET,
    GITHUB_USERINFO_URL,
    GOOGLE_PRESET,
    GOOGLE_USERINFO_URL,
    OAuth2Provider,
    OAuthProvider,
    ProviderToken,
)
from ninja_login.router import create_login_router
from ninja_login.state import StateCodec
from ninja_login.userinfo import UserInfoClient, UserInfoFetcher

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "ACLDeniedError",
    "AuthenticationError",
    "CookieAbsentError",
    "CookieDomainError",
    "CookieExpiredError",
    "GITHUB_PRESET",
    "GITHUB_USERINFO_URL",
    "GOOGLE_PRESET",
    "GOOGLE_USERINFO_URL",
    "InvalidCipherError",
    "IssuedCookie",
    "LoginConfig",
    "LoginError",
    "LoginHandler",
    "OAuth2Provider",
    "OAuth2ProviderConfig",
    "OAuthProvider",
    "Profile",
    "ProfileFetchError",
    "ProfileWriteError",
    "ProviderExchangeError",
    "ProviderToken",
    "SessionCookieCodec",
    "SessionGateway",
    "StateCodec",
    "StateDecodeError",
    "UserInfoClient",
    "UserInfoFetcher",
    "create_login_router",
    "decode_key",
    "encode_key",
    "get_subject_id",
    "new_key",
    "seal",
    "unseal",
]
