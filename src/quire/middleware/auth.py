"""Authentication middleware — session based.

Loads the user whose id is stored in the session and attaches it to the
request (``request.user``). The router reads it to decide whether a
disabled context sends the visitor to the login page and whether the
role assignments of a handler are satisfied.

Usage::

    async def load_user(user_id: str) -> User | None:
        return await users.get(user_id)

    app.add_middleware(AuthMiddleware(AuthConfig(load_user=load_user)))

    # In a login handler:
    login(user)
"""

from collections.abc import Awaitable, Callable
from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Protocol, runtime_checkable

from quire.errors import ConfigurationError
from quire.http.request import Request
from quire.http.response import Response
from quire.middleware.protocol import Next
from quire.security.audit import emit_security_event


@runtime_checkable
class User(Protocol):
    """Minimal user protocol.

    Any object with ``id`` and ``is_authenticated`` satisfies this.
    Users that should pass role checks also implement
    :class:`quire.security.roles.UserWithGroups`.
    """

    @property
    def id(self) -> str: ...

    @property
    def is_authenticated(self) -> bool: ...


@dataclass(frozen=True, slots=True)
class AnonymousUser:
    """Sentinel for unauthenticated requests."""

    id: str = ""
    is_authenticated: bool = False


ANONYMOUS = AnonymousUser()

_user_var: ContextVar[User] = ContextVar("quire_user")
_active_config: ContextVar["AuthConfig | None"] = ContextVar("quire_auth_config", default=None)


def get_user() -> User:
    """Return the current user (``AnonymousUser`` when nobody is logged in).

    Raises ``LookupError`` if called outside a request with
    ``AuthMiddleware`` active.
    """
    try:
        return _user_var.get()
    except LookupError:
        msg = "No auth context. Ensure AuthMiddleware is added to the app."
        raise LookupError(msg) from None


def login(user: User) -> None:
    """Regenerate the session and store *user* in it.

    Requires ``SessionMiddleware`` and ``AuthMiddleware`` to be active.
    """
    from quire.middleware.sessions import regenerate_session

    config = _active_config.get()
    if config is None:
        msg = "login() requires AuthMiddleware to be active."
        raise LookupError(msg)

    session = regenerate_session()
    session[config.session_key] = user.id
    _user_var.set(user)
    emit_security_event("auth.login.success", user_id=user.id)


def logout() -> None:
    """Regenerate the session and forget the current user."""
    from quire.middleware.sessions import regenerate_session

    if _active_config.get() is None:
        msg = "logout() requires AuthMiddleware to be active."
        raise LookupError(msg)

    regenerate_session()
    _user_var.set(ANONYMOUS)
    emit_security_event("auth.logout.success")


@dataclass(frozen=True, slots=True)
class AuthConfig:
    """Authentication middleware configuration.

    Attributes:
        load_user: Async callback loading a user by the id kept in the session.
        session_key: Session dict key for the user id.
    """

    load_user: Callable[[str], Awaitable[User | None]] | None = None
    session_key: str = "user_id"


class AuthMiddleware:
    """Attach the session's user to the request.

    Must run inside ``SessionMiddleware``; ``App`` orders the built-in
    session middleware first.
    """

    __slots__ = ("_config",)

    def __init__(self, config: AuthConfig) -> None:
        if config.load_user is None:
            msg = "AuthConfig.load_user must be set."
            raise ConfigurationError(msg)
        self._config = config

    async def _authenticate(self, request: Request) -> User | None:
        if request.session is None:
            msg = "AuthMiddleware requires sessions. Do not set sessions_disabled."
            raise ConfigurationError(msg)

        user_id = request.session.get(self._config.session_key)
        if not user_id:
            return None
        assert self._config.load_user is not None
        return await self._config.load_user(str(user_id))

    async def __call__(self, request: Request, next: Next) -> Response:
        user = await self._authenticate(request)
        token = _user_var.set(user if user is not None else ANONYMOUS)
        config_token = _active_config.set(self._config)
        try:
            return await next(replace(request, user=user))
        finally:
            _user_var.reset(token)
            _active_config.reset(config_token)
