"""Tests for session authentication and the disabled-context login flow."""

import pytest

from quire.errors import ConfigurationError
from quire.middleware import (
    ANONYMOUS,
    AuthConfig,
    AuthMiddleware,
    get_user,
    login,
    logout,
)
from quire.routing import PageHandler, operation
from quire.testing import TestClient


class TestAuthConfig:
    def test_load_user_required(self) -> None:
        with pytest.raises(ConfigurationError, match="load_user"):
            AuthMiddleware(AuthConfig())

    def test_get_user_outside_request(self) -> None:
        with pytest.raises(LookupError, match="No auth context"):
            get_user()

    def test_login_needs_middleware(self, make_member) -> None:
        with pytest.raises(LookupError, match="AuthMiddleware"):
            login(make_member())


@pytest.fixture
def auth_app(make_app, make_member):
    users = {"7": make_member("7")}

    async def load_user(user_id):
        return users.get(user_id)

    app = make_app()
    app.add_middleware(AuthMiddleware(AuthConfig(load_user=load_user)))

    @app.page("login")
    class LoginHandler(PageHandler):
        @operation
        def index(self, args, request):
            return f"login:{request.user_var('source', '')}"

        @operation
        def signIn(self, args, request):  # noqa: N802
            login(users["7"])
            return "signed in"

        @operation
        def signOut(self, args, request):  # noqa: N802
            logout()
            return "signed out"

    @app.page("whoami")
    class WhoAmIHandler(PageHandler):
        @operation
        def index(self, args, request):
            user = get_user()
            return f"{user.id or 'anonymous'}:{request.is_authenticated}"

    return app


class TestAuthMiddleware:
    async def test_anonymous(self, auth_app) -> None:
        async with TestClient(auth_app) as client:
            assert (await client.get("/journal1/whoami")).text == "anonymous:False"

    async def test_login_and_logout(self, auth_app) -> None:
        async with TestClient(auth_app) as client:
            await client.get("/journal1/login/signIn")
            assert (await client.get("/journal1/whoami")).text == "7:True"
            await client.get("/journal1/login/signOut")
            assert (await client.get("/journal1/whoami")).text == "anonymous:False"

    async def test_anonymous_user_constant(self) -> None:
        assert ANONYMOUS.is_authenticated is False

    async def test_requires_sessions(self, make_app) -> None:
        async def load_user(user_id):
            return None

        app = make_app(sessions_disabled=True)
        app.add_middleware(AuthMiddleware(AuthConfig(load_user=load_user)))
        async with TestClient(app) as client:
            assert (await client.get("/journal1/about")).status == 500


class TestDisabledContext:
    async def test_login_opens_closed_context(self, auth_app) -> None:
        async with TestClient(auth_app) as client:
            response = await client.get("/closed/about")
            assert response.status == 302
            assert response.location == "/closed/login"

            assert (await client.get("/closed/login")).status == 200
            await client.get("/closed/login/signIn")

            response = await client.get("/closed/about")
            assert response.status == 200
            assert response.text == "about:closed"
