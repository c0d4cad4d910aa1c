"""Access gate: checks run before a page handler is resolved.

Each stage is a callable ``(router, request, page) -> url | None``. The
first stage to return a URL ends the request with a redirect there; no
later stage runs.
"""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING

from quire.contexts import SITE_CONTEXT_PATH
from quire.http.request import Request

if TYPE_CHECKING:
    from quire.routing.router import PageRouter

type GateStage = Callable[["PageRouter", Request, str], str | None]

LOGIN_PAGE = "login"


def installation_stage(router: "PageRouter", request: Request, page: str) -> str | None:
    """Keep visitors on the installation pages until the system is installed, and off them after."""
    config = router.config
    if not config.installed and page not in config.installation_pages:
        return router.url(request, context=SITE_CONTEXT_PATH, page="install")
    if config.installed and page in config.installation_pages:
        return router.url(request, context=SITE_CONTEXT_PATH, page="index")
    return None


def disabled_context_stage(router: "PageRouter", request: Request, page: str) -> str | None:
    """Send anonymous visitors of a disabled context to the login page."""
    context = request.context
    if (
        router.config.sessions_enabled
        and context is not None
        and not context.enabled
        and not request.is_authenticated
        and page != LOGIN_PAGE
    ):
        return router.url(request, page=LOGIN_PAGE)
    return None


DEFAULT_STAGES: tuple[GateStage, ...] = (installation_stage, disabled_context_stage)


def run_gate(
    router: "PageRouter",
    request: Request,
    page: str,
    stages: Sequence[GateStage] = DEFAULT_STAGES,
) -> str | None:
    """Run *stages* in order and return the first redirect URL, if any."""
    for stage in stages:
        url = stage(router, request, page)
        if url is not None:
            return url
    return None
