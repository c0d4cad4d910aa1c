"""Quire exception hierarchy.

Shared across the page router, access gate, locale resolver and the ASGI
handler so every module raises and catches the same types.
"""

from dataclasses import dataclass


class QuireError(Exception):
    """Base for all quire-specific errors."""


class ConfigurationError(QuireError):
    """Raised when app configuration is invalid.

    Typically caught during ``App._freeze()`` at startup.
    """


@dataclass(frozen=True, slots=True)
class HTTPError(QuireError):
    """An error that maps directly to an HTTP status code.

    Raised by the router, the access gate, or handlers. The ASGI handler
    catches these and dispatches to the matching ``@app.error()`` handler.
    """

    status: int
    detail: str = ""
    headers: tuple[tuple[str, str], ...] = ()

    def __str__(self) -> str:
        if self.detail:
            return f"{self.status}: {self.detail}"
        return str(self.status)


class NotFound(HTTPError):  # noqa: N818
    """404 — no handler or no operation matched the request."""

    def __init__(self, detail: str = "Not Found") -> None:
        super().__init__(status=404, detail=detail)


class RedirectRequired(HTTPError):  # noqa: N818
    """302 — the request must continue at another URL.

    Not a failure: installation gating, disabled contexts, locale
    corrections and authorization denials all end the current request
    this way. ``cookies`` carries ``Set-Cookie`` values that must reach
    the browser together with the redirect.
    """

    def __init__(
        self,
        url: str,
        *,
        status: int = 302,
        cookies: tuple[str, ...] = (),
    ) -> None:
        headers = (("Location", url), *(("Set-Cookie", c) for c in cookies))
        super().__init__(status=status, detail=url, headers=headers)

    @property
    def url(self) -> str:
        """The redirect target."""
        return self.detail

    @property
    def cookies(self) -> tuple[str, ...]:
        """``Set-Cookie`` header values attached to the redirect."""
        return tuple(value for name, value in self.headers if name == "Set-Cookie")
