"""FastAPI router factory for the browser login flow."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request
from fastapi.responses import Response

from ninja_login.config import LoginConfig
from ninja_login.handler import LoginHandler

logger = logging.getLogger(__name__)


def create_login_router(
    handler: LoginHandler,
    *,
    config: LoginConfig | None = None,
    login_path: str = "/login",
    callback_path: str = "/oauth2/callback",
    logoff_path: str = "/logoff",
) -> APIRouter:
    """Create a FastAPI router that exposes the login entry points.

    The returned router provides:

    - ``GET {login_path}``: redirects to the provider, or straight to the
      landing page when the session cookie is already valid.
    - ``GET {callback_path}``: the OAuth2 redirect URI. Validates the state,
      completes the code exchange and sets the session cookie.
    - ``GET|POST {logoff_path}``: clears the session cookie.

    When *config* is given its paths override the keyword defaults. The
    ``redirect_uri`` registered with the provider must point at
    *callback_path*.
    """
    if config is not None:
        login_path = config.login_path
        callback_path = config.callback_path
        logoff_path = config.logoff_path

    router = APIRouter(tags=["login"])

    @router.get(login_path, include_in_schema=False)
    async def login(request: Request) -> Response:
        return await handler.handle_login(request)

    @router.get(callback_path, include_in_schema=False)
    async def callback(request: Request) -> Response:
        return await handler.handle_redirect(request)

    @router.api_route(logoff_path, methods=["GET", "POST"], include_in_schema=False)
    async def logoff(request: Request) -> Response:
        return await handler.handle_logoff(request)

    logger.debug(
        "Login router created: login=%s callback=%s logoff=%s",
        login_path,
        callback_path,
        logoff_path,
    )
    return router
