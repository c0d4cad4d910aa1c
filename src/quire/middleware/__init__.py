"""Middleware: the protocol plus the built-in session and auth layers."""

from quire.middleware.auth import (
    ANONYMOUS,
    AnonymousUser,
    AuthConfig,
    AuthMiddleware,
    User,
    get_user,
    login,
    logout,
)
from quire.middleware.protocol import Middleware, Next
from quire.middleware.sessions import (
    SessionConfig,
    SessionMiddleware,
    get_session,
    regenerate_session,
)

__all__ = [
    "ANONYMOUS",
    "AnonymousUser",
    "AuthConfig",
    "AuthMiddleware",
    "Middleware",
    "Next",
    "SessionConfig",
    "SessionMiddleware",
    "User",
    "get_session",
    "get_user",
    "login",
    "logout",
    "regenerate_session",
]
