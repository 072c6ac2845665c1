"""Starlette middleware that requires a valid session cookie on protected paths."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import HTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import PlainTextResponse, Response

from ninja_login.config import LoginConfig
from ninja_login.errors import AuthenticationError, CookieAbsentError
from ninja_login.handler import LoginHandler

logger = logging.getLogger(__name__)

# Request state key for the authenticated subject
SUBJECT_ID_KEY = "subject_id"

_REDIRECTABLE_METHODS = frozenset({"GET", "HEAD"})


def _normalize_path(path: str) -> str:
    """Normalize a URL path for comparison.

    Strips query strings and fragments, collapses consecutive slashes and
    removes trailing slashes (preserving the root ``/``).
    """
    path = path.split("?", 1)[0].split("#", 1)[0]
    while "//" in path:
        path = path.replace("//", "/")
    if path != "/":
        path = path.rstrip("/")
    return path


class SessionGateway(BaseHTTPMiddleware):
    """Authenticates requests by session cookie and stores the subject id on ``request.state``.

    The login, callback and logoff paths, plus any configured public paths,
    pass through untouched. Matching is exact equality after normalization;
    no wildcards.

    Requests without a valid session are sent through the login flow when
    they are ``GET`` or ``HEAD``, so the browser ends up back where it
    started. Other methods get a plain-text 401.
    """

    def __init__(
        self,
        app: Any,
        handler: LoginHandler,
        config: LoginConfig | None = None,
        public_paths: list[str] | None = None,
    ) -> None:
        super().__init__(app)
        self.handler = handler
        paths = list(public_paths or [])
        if config is not None:
            paths += [config.login_path, config.callback_path, config.logoff_path, *config.public_paths]
        else:
            paths += ["/login", "/oauth2/callback", "/logoff"]
        self._public = frozenset(_normalize_path(p) for p in paths)

    def _is_public_path(self, path: str) -> bool:
        return _normalize_path(path) in self._public

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        """Authenticate the request or divert it to the login flow."""
        if self._is_public_path(request.url.path):
            return await call_next(request)

        try:
            subject_id = self.handler.read_session(request)
        except AuthenticationError as exc:
            if request.method in _REDIRECTABLE_METHODS:
                return await self.handler.handle_login(request)
            if not isinstance(exc, CookieAbsentError):
                logger.warning(
                    "Session rejected: path=%s method=%s reason=%s",
                    request.url.path,
                    request.method,
                    type(exc).__name__,
                    extra={"event": "session_rejected", "path": str(request.url.path)},
                )
            return PlainTextResponse("Authentication required", status_code=401)

        setattr(request.state, SUBJECT_ID_KEY, subject_id)
        return await call_next(request)


def get_subject_id(request: Request) -> str:
    """FastAPI dependency returning the authenticated subject id.

    Usage:
        @app.get("/me")
        async def me(subject_id: str = Depends(get_subject_id)):
            return {"subject_id": subject_id}

    Raises:
        HTTPException: 401 when the request passed the gateway without a
            session (a public path) or the gateway is not installed.
    """
    subject_id: str | None = getattr(request.state, SUBJECT_ID_KEY, None)
    if not subject_id:
        raise HTTPException(status_code=401, detail="Authentication required")
    return subject_id
