"""Quire — page routing for editorial and journal publishing sites.

Maps ``/{context}[/{locale}]/{page}/{op}/{args...}`` URLs to page handler
operations, gates access on installation state and disabled contexts,
negotiates the reader's locale, and builds URLs by the same rules.

Basic usage::

    from quire import App, AppConfig, Context, PageHandler, operation

    app = App(
        AppConfig(secret_key="s3cr3t"),
        contexts=[Context(id=1, path="journal1")],
    )

    @app.page("about")
    class AboutHandler(PageHandler):
        @operation
        def index(self, args, request):
            return "About the journal"

    app.run()
"""

__version__ = "0.1.0"
__all__ = [
    "App",
    "AppConfig",
    "ConfigurationError",
    "Context",
    "HTTPError",
    "NotFound",
    "PageHandler",
    "PageRouter",
    "QuireError",
    "Redirect",
    "RedirectRequired",
    "Request",
    "Response",
    "Role",
    "Site",
    "operation",
]


def __getattr__(name: str) -> object:
    """Lazy imports for public API.

    Keeps ``import quire`` fast while providing a clean top-level API.
    """
    if name == "App":
        from quire.app import App

        return App

    if name == "AppConfig":
        from quire.config import AppConfig

        return AppConfig

    if name in ("Context", "Site"):
        from quire import contexts

        return getattr(contexts, name)

    if name in ("ConfigurationError", "HTTPError", "NotFound", "QuireError", "RedirectRequired"):
        from quire import errors

        return getattr(errors, name)

    if name == "Request":
        from quire.http.request import Request

        return Request

    if name in ("Response", "Redirect"):
        from quire.http import response

        return getattr(response, name)

    if name in ("PageHandler", "operation"):
        from quire.routing import handler

        return getattr(handler, name)

    if name == "PageRouter":
        from quire.routing.router import PageRouter

        return PageRouter

    if name == "Role":
        from quire.security.roles import Role

        return Role

    raise AttributeError(f"module 'quire' has no attribute {name!r}")
