"""Session middleware — signed cookie sessions.

Session data is serialized as JSON and signed using ``itsdangerous``.
The session dict is attached to the request (``request.session``) and
also published through a ContextVar for code that has no request at hand.

The router treats a request as carrying a session when
``request.session`` is not ``None``; the locale resolver writes the
chosen locale into it under ``currentLocale``.
"""

from contextvars import ContextVar
from dataclasses import dataclass, replace
from typing import Any

from itsdangerous import BadSignature, URLSafeTimedSerializer

from quire.errors import ConfigurationError
from quire.http.request import Request
from quire.http.response import Response
from quire.middleware.protocol import Next

_session_var: ContextVar[dict[str, Any] | None] = ContextVar("quire_session", default=None)


def get_session() -> dict[str, Any]:
    """Return the current session dict.

    Raises ``LookupError`` if called outside a request with
    ``SessionMiddleware`` active.
    """
    session = _session_var.get()
    if session is None:
        msg = (
            "No active session. Ensure SessionMiddleware is added "
            "to the app before accessing the session."
        )
        raise LookupError(msg)
    return session


def regenerate_session() -> dict[str, Any]:
    """Clear the session in place and return it.

    Discards everything stored by the previous session; the middleware
    re-signs the now empty dict on the response. Called by ``login()``
    and ``logout()``.
    """
    session = get_session()
    session.clear()
    return session


@dataclass(frozen=True, slots=True)
class SessionConfig:
    """Session middleware configuration.

    ``secret_key`` is required — sessions are signed, not encrypted.
    """

    secret_key: str
    cookie_name: str = "quire_session"
    max_age: int = 86400  # 24 hours
    path: str = "/"
    domain: str | None = None
    secure: bool = False
    httponly: bool = True
    samesite: str = "lax"


class SessionMiddleware:
    """Signed cookie session middleware.

    Reads the session cookie, verifies the signature, attaches the dict
    to the request, then writes it back as a Set-Cookie header on the
    response. ``App`` installs it automatically unless
    ``AppConfig.sessions_disabled`` is set.
    """

    __slots__ = ("_config", "_serializer")

    def __init__(self, config: SessionConfig) -> None:
        if not config.secret_key:
            msg = "SessionConfig.secret_key must not be empty."
            raise ConfigurationError(msg)

        self._config = config
        self._serializer = URLSafeTimedSerializer(config.secret_key)

    @property
    def config(self) -> SessionConfig:
        return self._config

    def _load_session(self, request: Request) -> dict[str, Any]:
        """Deserialize and verify the session cookie."""
        cookie_value = request.cookies.get(self._config.cookie_name)
        if not cookie_value:
            return {}

        try:
            data = self._serializer.loads(cookie_value, max_age=self._config.max_age)
        except BadSignature:
            return {}

        if not isinstance(data, dict):
            return {}
        return data

    def _save_session(self, response: Response, session: dict[str, Any]) -> Response:
        """Serialize the session dict and set the cookie on the response."""
        cfg = self._config
        return response.with_cookie(
            name=cfg.cookie_name,
            value=self._serializer.dumps(session),
            max_age=cfg.max_age,
            path=cfg.path,
            domain=cfg.domain,
            secure=cfg.secure,
            httponly=cfg.httponly,
            samesite=cfg.samesite,
        )

    async def __call__(self, request: Request, next: Next) -> Response:
        """Load session, dispatch, then save session to response."""
        session = self._load_session(request)
        token = _session_var.set(session)

        try:
            response = await next(replace(request, session=session))
        finally:
            _session_var.reset(token)

        # Always rewrite the cookie to refresh the signature timestamp
        return self._save_session(response, session)
