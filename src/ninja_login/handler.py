"""Login flow controller: the login, callback and logoff entry points.

The handler holds no per-user state. Everything it needs across the provider
round trip travels in the sealed ``state`` parameter, and everything it needs
across requests travels in the sealed session cookie.
"""

from __future__ import annotations

import inspect
import logging
from typing import Any, Callable

from starlette.requests import Request
from starlette.responses import PlainTextResponse, RedirectResponse, Response

from ninja_login.config import LoginConfig
from ninja_login.cookie import SessionCookieCodec
from ninja_login.errors import (
    ACLDeniedError,
    AuthenticationError,
    CookieAbsentError,
    LoginError,
    ProfileFetchError,
    ProfileWriteError,
    ProviderExchangeError,
    StateDecodeError,
)
from ninja_login.profile import Profile
from ninja_login.provider import OAuth2Provider, OAuthProvider
from ninja_login.state import StateCodec
from ninja_login.userinfo import UserInfoClient, UserInfoFetcher

logger = logging.getLogger(__name__)

AccessCheck = Callable[[Profile], Any]
ProfileWriter = Callable[[Response, Profile], Any]
LoginFinalizer = Callable[[Request], Any]


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


def request_origin(request: Request) -> str:
    """Return the path and query string of *request*, the URL to come back to.

    Leading slashes are collapsed to one so the result is always a local
    path, never a scheme-relative URL such as ``//other.host/``.
    """
    origin = "/" + request.url.path.lstrip("/\\")
    if request.url.query:
        origin = f"{origin}?{request.url.query}"
    return origin


def is_local_path(origin: str) -> bool:
    """Return True if *origin* is a path on this site and safe to redirect to."""
    return origin.startswith("/") and not origin.startswith(("//", "/\\"))


def error_response(exc: LoginError) -> Response:
    """Render a login error as a plain-text response with its status code."""
    return PlainTextResponse(str(exc), status_code=exc.status_code)


class LoginHandler:
    """Drives the OAuth2 authorization-code login for a browser.

    Args:
        provider: Builds the authorization URL and exchanges codes.
        userinfo: Turns an access token into a :class:`Profile`.
        state_codec: Seals the origin URL into the ``state`` parameter.
        cookie_codec: Issues and validates the session cookie.
        service: Prefix for subject ids (``<service>_<sub>``).
        acl: Optional access check called with the profile. Raising denies
            the login; returning allows it. Sync or async.
        write_profile: Optional hook called with the outgoing response and
            the profile before the session cookie is set. Raising aborts the
            login. Sync or async.
        finalize_login: Optional callable producing the response for a user
            who already holds a valid session. Defaults to a redirect to
            *home_path*.
        home_path: Default landing page after login or logoff.
        logger: Logger for flow events. Defaults to this module's logger,
            which is silent unless the application configures logging.
    """

    def __init__(
        self,
        *,
        provider: OAuthProvider,
        userinfo: UserInfoFetcher,
        state_codec: StateCodec,
        cookie_codec: SessionCookieCodec,
        service: str,
        acl: AccessCheck | None = None,
        write_profile: ProfileWriter | None = None,
        finalize_login: LoginFinalizer | None = None,
        home_path: str = "/",
        logger: logging.Logger | None = None,
    ) -> None:
        if not service:
            raise ValueError("service must not be empty")
        self.provider = provider
        self.userinfo = userinfo
        self.state_codec = state_codec
        self.cookie_codec = cookie_codec
        self.service = service
        self.acl = acl
        self.write_profile = write_profile
        self.finalize_login = finalize_login
        self.home_path = home_path
        self.log = logger if logger is not None else logging.getLogger(__name__)

    @classmethod
    def from_config(
        cls,
        config: LoginConfig,
        *,
        provider: OAuthProvider | None = None,
        userinfo: UserInfoFetcher | None = None,
        **kwargs: Any,
    ) -> LoginHandler:
        """Build a handler from a :class:`LoginConfig`.

        The httpx-backed provider and user-info client are used unless
        *provider* or *userinfo* is given. Remaining keyword arguments are
        passed to the constructor.
        """
        return cls(
            provider=provider or OAuth2Provider(config.provider, timeout=config.http_timeout_seconds),
            userinfo=userinfo
            or UserInfoClient(
                config.userinfo_url,
                timeout=config.http_timeout_seconds,
                retries=config.userinfo_retries,
            ),
            state_codec=StateCodec(config.state_key_bytes()),
            cookie_codec=SessionCookieCodec(
                config.cookie_key_bytes(),
                config.domain,
                cookie_name=config.cookie_name,
                max_age=config.session_max_age,
            ),
            service=config.service,
            home_path=config.home_path,
            **kwargs,
        )

    def read_session(self, request: Request) -> str:
        """Return the subject id of the session cookie on *request*.

        Raises:
            CookieAbsentError: If the request carries no session cookie.
            AuthenticationError: If the cookie is forged, expired or minted
                for another domain.
        """
        value = request.cookies.get(self.cookie_codec.cookie_name)
        if not value:
            raise CookieAbsentError("no session cookie")
        return self.cookie_codec.read(value)

    async def handle_login(self, request: Request) -> Response:
        """Finish immediately for a valid session, otherwise send the user to the provider."""
        clear_cookie = False
        try:
            subject_id = self.read_session(request)
        except CookieAbsentError:
            pass
        except AuthenticationError as exc:
            self.log.info(
                "Discarding invalid session cookie: %s",
                exc,
                extra={"event": "login_cookie_rejected", "reason": type(exc).__name__},
            )
            clear_cookie = True
        else:
            self.log.debug("Session already valid: subject_id=%s", subject_id)
            return await self._finalize(request)

        origin = request_origin(request)
        state = self.state_codec.encode(origin)
        response = RedirectResponse(self.provider.build_authorization_url(state), status_code=307)
        if clear_cookie:
            self.cookie_codec.clear_cookie(response)
        self.log.info(
            "Redirecting to provider: origin=%s",
            origin,
            extra={"event": "login_redirect", "origin": origin},
        )
        return response

    async def handle_redirect(self, request: Request) -> Response:
        """Handle the provider callback and establish the session."""
        try:
            return await self._complete_login(request)
        except LoginError as exc:
            self.log.warning(
                "Login failed: status=%s error=%s",
                exc.status_code,
                exc,
                extra={"event": "login_failed", "reason": type(exc).__name__},
            )
            return error_response(exc)

    async def handle_logoff(self, request: Request) -> Response:
        """Clear the session cookie and go home. Safe to repeat."""
        response = RedirectResponse(self.home_path, status_code=307)
        self.cookie_codec.clear_cookie(response)
        self.log.info("Session cleared", extra={"event": "logoff"})
        return response

    async def _complete_login(self, request: Request) -> Response:
        params = request.query_params
        state = params.get("state")
        if not state:
            raise StateDecodeError("callback has no state parameter")
        origin = self.state_codec.decode(state)
        if not is_local_path(origin):
            raise StateDecodeError("state does not hold a local path")

        if params.get("error"):
            raise ProviderExchangeError(f"provider returned error: {params['error']}")
        code = params.get("code")
        if not code:
            raise ProviderExchangeError("callback has no authorization code")
        token = await self.provider.exchange_code(code)

        try:
            profile = await self.userinfo.fetch_profile(token)
        except ProfileFetchError as exc:
            raise ProfileFetchError(f"userinfo request error: {exc}") from exc

        if self.acl is not None:
            try:
                await _resolve(self.acl(profile))
            except Exception as exc:
                raise ACLDeniedError(f"ACL error: {exc}") from exc

        subject_id = f"{self.service}_{profile.sub}"
        profile.subject_id = subject_id

        response = RedirectResponse(origin, status_code=307)
        if self.write_profile is not None:
            try:
                await _resolve(self.write_profile(response, profile))
            except Exception as exc:
                raise ProfileWriteError(f"profile write error: {exc}") from exc

        self.cookie_codec.set_cookie(response, subject_id)
        self.log.info(
            "Login succeeded: subject_id=%s",
            subject_id,
            extra={"event": "login_success", "subject_id": subject_id},
        )
        return response

    async def _finalize(self, request: Request) -> Response:
        if self.finalize_login is None:
            return RedirectResponse(self.home_path, status_code=307)
        return await _resolve(self.finalize_login(request))
