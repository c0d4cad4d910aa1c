"""Tests for session middleware — signed cookie sessions."""

import pytest
from itsdangerous import URLSafeTimedSerializer

from quire.errors import ConfigurationError
from quire.middleware.sessions import (
    SessionConfig,
    SessionMiddleware,
    get_session,
    regenerate_session,
)
from quire.routing import PageHandler, operation
from quire.testing import TestClient


class CounterHandler(PageHandler):
    @operation
    def index(self, args, request):
        session = get_session()
        session["n"] = session.get("n", 0) + 1
        return f"n={session['n']}"

    @operation
    def reset(self, args, request):
        regenerate_session()
        return "reset"

    @operation
    def attached(self, args, request):
        return f"same={request.session is get_session()}"


class TestSessionConfig:
    def test_default_config(self) -> None:
        config = SessionConfig(secret_key="secret")
        assert config.cookie_name == "quire_session"
        assert config.max_age == 86400
        assert config.httponly is True
        assert config.samesite == "lax"

    def test_empty_secret_key_raises(self) -> None:
        with pytest.raises(ConfigurationError, match="secret_key must not be empty"):
            SessionMiddleware(SessionConfig(secret_key=""))


class TestGetSession:
    def test_raises_outside_request(self) -> None:
        with pytest.raises(LookupError, match="No active session"):
            get_session()


class TestSessionMiddleware:
    async def test_session_persists_between_requests(self, make_app) -> None:
        app = make_app()
        app.page("counter")(CounterHandler)

        async with TestClient(app) as client:
            assert (await client.get("/journal1/counter")).text == "n=1"
            assert (await client.get("/journal1/counter")).text == "n=2"
            assert "quire_session" in client.cookies

    async def test_regenerate_clears_data(self, make_app) -> None:
        app = make_app()
        app.page("counter")(CounterHandler)

        async with TestClient(app) as client:
            await client.get("/journal1/counter")
            assert (await client.get("/journal1/counter/reset")).text == "reset"
            assert (await client.get("/journal1/counter")).text == "n=1"

    async def test_session_on_request(self, make_app) -> None:
        app = make_app()
        app.page("counter")(CounterHandler)

        async with TestClient(app) as client:
            assert (await client.get("/journal1/counter/attached")).text == "same=True"

    async def test_tampered_cookie_starts_fresh(self, make_app) -> None:
        app = make_app()
        app.page("counter")(CounterHandler)

        async with TestClient(app) as client:
            forged = URLSafeTimedSerializer("wrong-secret").dumps({"n": 41})
            client.cookies["quire_session"] = forged
            assert (await client.get("/journal1/counter")).text == "n=1"

    async def test_custom_cookie_name(self, make_app) -> None:
        app = make_app(session_cookie_name="ojs_session")
        app.page("counter")(CounterHandler)

        async with TestClient(app) as client:
            await client.get("/journal1/counter")
            assert "ojs_session" in client.cookies

    async def test_disabled_sessions(self, make_app) -> None:
        app = make_app(sessions_disabled=True)

        async with TestClient(app) as client:
            response = await client.get("/journal1/about")
            assert response.text == "about:journal1"
            assert client.cookies == {}
