"""Shared fixtures: request factory, test contexts, users and routers."""

from collections.abc import Callable
from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any
from urllib.parse import unquote

import pytest

from quire.app import App
from quire.config import AppConfig
from quire.contexts import Context, InMemoryContextRepository, Site
from quire.http.request import Request
from quire.routing.router import PageRouter
from quire.security.roles import Role, UserGroup

FIXTURES = Path(__file__).parent / "fixtures"

INSTALLED_LOCALES = ("en", "en_US", "fr_FR")


@dataclass(frozen=True)
class Member:
    """A logged-in user holding some user groups."""

    id: str
    groups: tuple[UserGroup, ...] = ()
    is_authenticated: bool = True

    def user_groups(self, context_id: int | None) -> tuple[UserGroup, ...]:
        if context_id is None:
            return self.groups
        return tuple(g for g in self.groups if g.context_id == context_id)


def member(user_id: str = "7", *roles: tuple[Role, int]) -> Member:
    return Member(user_id, tuple(UserGroup(role, context_id) for role, context_id in roles))


@pytest.fixture
def make_member() -> Callable[..., Member]:
    return member


def build_request(
    path: str = "/",
    *,
    method: str = "GET",
    headers: dict[str, str] | None = None,
    session: dict[str, Any] | None = None,
    user: Any = None,
    context: Context | None = None,
    root_path: str = "",
) -> Request:
    path_part, _, query = path.partition("?")
    raw_headers = [(b"host", b"testserver")]
    raw_headers.extend(
        (name.lower().encode("latin-1"), value.encode("latin-1"))
        for name, value in (headers or {}).items()
    )
    scope = {
        "type": "http",
        "method": method,
        "scheme": "http",
        "path": unquote(path_part),
        "raw_path": path_part.encode("latin-1"),
        "query_string": query.encode("latin-1"),
        "root_path": root_path,
        "headers": raw_headers,
        "server": ("testserver", 80),
        "client": ("127.0.0.1", 0),
    }

    async def receive() -> dict[str, Any]:
        return {"type": "http.request", "body": b"", "more_body": False}

    request = Request.from_asgi(scope, receive)
    return replace(request, session=session, user=user, context=context)


@pytest.fixture
def make_request() -> Callable[..., Request]:
    return build_request


def sample_contexts() -> InMemoryContextRepository:
    return InMemoryContextRepository(
        [
            Context(id=1, path="journal1", supported_locales=("en",), primary_locale="en"),
            Context(
                id=2,
                path="journal2",
                supported_locales=("en_US", "fr_FR"),
                primary_locale="en_US",
                name="Journal Two",
            ),
            Context(id=3, path="closed", enabled=False),
        ]
    )


@pytest.fixture
def contexts() -> InMemoryContextRepository:
    return sample_contexts()


def router_config(**overrides: Any) -> AppConfig:
    settings: dict[str, Any] = {
        "base_url": "",
        "secret_key": "test-secret",
        "pages_dir": FIXTURES / "pages",
        "lib_pages_dir": FIXTURES / "lib_pages",
        "installed_locales": INSTALLED_LOCALES,
    }
    settings.update(overrides)
    return AppConfig(**settings)


@pytest.fixture
def make_router(contexts: InMemoryContextRepository) -> Callable[..., PageRouter]:
    def factory(**overrides: Any) -> PageRouter:
        return PageRouter(
            router_config(**overrides),
            contexts=contexts,
            site=Site(supported_locales=("en",), primary_locale="en"),
        )

    return factory


@pytest.fixture
def router(make_router: Callable[..., PageRouter]) -> PageRouter:
    return make_router()


@pytest.fixture
def make_app() -> Callable[..., App]:
    def factory(**overrides: Any) -> App:
        return App(
            router_config(**overrides),
            contexts=sample_contexts(),
            site=Site(supported_locales=("en",), primary_locale="en"),
        )

    return factory


@pytest.fixture
def make_config() -> Callable[..., AppConfig]:
    return router_config
