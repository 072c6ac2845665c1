"""Tests for the SessionGateway middleware and the subject dependency."""

import logging

import pytest
from fastapi import HTTPException
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import JSONResponse
from starlette.routing import Route
from starlette.testclient import TestClient

from ninja_login.gateway import SessionGateway, _normalize_path, get_subject_id
from ninja_login.handler import LoginHandler


def _build_app(handler: LoginHandler, **gateway_kwargs) -> Starlette:
    """Build a test Starlette app with the SessionGateway middleware."""

    async def protected(request: Request) -> JSONResponse:
        return JSONResponse({"subject_id": request.state.subject_id})

    async def health(request: Request) -> JSONResponse:
        return JSONResponse({"status": "ok"})

    async def submit(request: Request) -> JSONResponse:
        return JSONResponse({"subject_id": request.state.subject_id})

    app = Starlette(
        routes=[
            Route("/protected", protected),
            Route("/health", health),
            Route("/submit", submit, methods=["POST"]),
        ]
    )
    app.add_middleware(SessionGateway, handler=handler, **gateway_kwargs)
    return app


def test_public_path_allowed(make_handler):
    client = TestClient(_build_app(make_handler(), public_paths=["/health"]))
    resp = client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"


def test_public_path_normalized(make_handler):
    client = TestClient(_build_app(make_handler(), public_paths=["/health/"]))
    resp = client.get("/health", follow_redirects=False)
    assert resp.status_code == 200


def test_host_like_prefix_is_not_public(make_handler):
    gateway = SessionGateway(None, handler=make_handler(), public_paths=["/health"])
    assert gateway._is_public_path("/health")
    assert not gateway._is_public_path("//x/health")
    assert not gateway._is_public_path("//evil.example/health")


def test_public_paths_from_config(make_handler, login_config):
    client = TestClient(_build_app(make_handler(), config=login_config))
    assert client.get("/health").status_code == 200


def test_valid_cookie_sets_subject(make_handler, cookie_codec):
    client = TestClient(_build_app(make_handler()))
    value = cookie_codec.issue("notes_u-9").value
    resp = client.get("/protected", headers={"Cookie": f"session={value}"})
    assert resp.status_code == 200
    assert resp.json()["subject_id"] == "notes_u-9"


def test_get_without_session_redirects_to_provider(make_handler):
    client = TestClient(_build_app(make_handler()))
    resp = client.get("/protected", follow_redirects=False)
    assert resp.status_code == 307
    assert resp.headers["location"].startswith("https://idp.example.com/authorize?")


def test_post_without_session_is_401(make_handler):
    client = TestClient(_build_app(make_handler()))
    resp = client.post("/submit", follow_redirects=False)
    assert resp.status_code == 401
    assert resp.text == "Authentication required"


def test_post_with_session_passes(make_handler, cookie_codec):
    client = TestClient(_build_app(make_handler()))
    value = cookie_codec.issue("notes_u-9").value
    resp = client.post("/submit", headers={"Cookie": f"session={value}"})
    assert resp.status_code == 200


def test_rejected_cookie_is_logged(make_handler, caplog):
    client = TestClient(_build_app(make_handler()))
    with caplog.at_level(logging.WARNING, logger="ninja_login.gateway"):
        resp = client.post("/submit", headers={"Cookie": "session=garbage"})
    assert resp.status_code == 401
    assert "InvalidCipherError" in caplog.text


@pytest.mark.parametrize(
    ("raw", "expected"),
    [
        ("/", "/"),
        ("/health/", "/health"),
        ("//health", "/health"),
        ("/health?x=1", "/health"),
        ("/health#top", "/health"),
        ("//x/health", "/x/health"),
    ],
)
def test_normalize_path(raw, expected):
    assert _normalize_path(raw) == expected


class TestGetSubjectId:
    def test_returns_subject(self):
        request = Request({"type": "http", "headers": [], "state": {"subject_id": "notes_u-1"}})
        assert get_subject_id(request) == "notes_u-1"

    def test_raises_401_without_subject(self):
        request = Request({"type": "http", "headers": []})
        with pytest.raises(HTTPException) as exc_info:
            get_subject_id(request)
        assert exc_info.value.status_code == 401
