"""ASGI handler — translates ASGI scope/messages to quire types.

The only component that touches raw ASGI directly. Converts the scope to
a typed Request, attaches the addressed context, runs the middleware
chain around the page router and sends the Response back through ASGI
``send()``.
"""

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any

from quire._internal.asgi import Receive, Scope, Send
from quire.errors import HTTPError, RedirectRequired
from quire.http.forms import is_form_content_type
from quire.http.request import Request
from quire.http.response import Response
from quire.middleware.protocol import Next
from quire.routing.cache import PageCache
from quire.routing.router import PageRouter
from quire.server.errors import handle_http_error, handle_internal_error
from quire.server.negotiation import negotiate
from quire.server.sender import send_response

logger = logging.getLogger("quire.server")


def redirect_response(exc: RedirectRequired) -> Response:
    """The 302 response for a redirect raised while routing."""
    response = Response(body="", status=exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_request(
    scope: Scope,
    receive: Receive,
    send: Send,
    *,
    router: PageRouter,
    middleware: tuple[Callable[..., Any], ...],
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
    page_cache: PageCache | None = None,
) -> None:
    """Process a single HTTP request through the full pipeline."""
    if scope["type"] != "http":
        return

    request = Request.from_asgi(scope, receive)

    try:
        request = replace(request, context=router.get_context(request))

        # Posted variables take part in routing (source, setLocale, page/op)
        if request.method == "POST" and is_form_content_type(request.content_type):
            await request.form()

        # Redirects become responses inside the chain so middleware
        # (session saving) still sees them
        async def dispatch(req: Request) -> Response:
            try:
                return await _route(req, router, page_cache)
            except RedirectRequired as exc:
                logger.debug("302 %s %s -> %s", req.method, req.path, exc.url)
                return redirect_response(exc)

        handler: Next = dispatch
        for mw in reversed(middleware):
            outer = handler

            async def make_next(req: Request, _mw: Any = mw, _next: Next = outer) -> Response:
                return await _mw(req, _next)

            handler = make_next

        response = await handler(request)

    except HTTPError as exc:
        response = await handle_http_error(exc, request, error_handlers, debug)
    except Exception as exc:
        response = await handle_internal_error(exc, request, error_handlers, debug)

    await send_response(response, send)


async def _route(request: Request, router: PageRouter, page_cache: PageCache | None) -> Response:
    """Route *request*, serving and filling the page cache when allowed."""
    if page_cache is None or request.method != "GET" or not router.is_cacheable(request):
        return negotiate(await router.route(request))

    path = router.get_cache_filename(request)
    body = page_cache.load(path)
    if body is not None:
        logger.debug("Page cache hit %s", request.path)
        return Response(body=body)

    response = negotiate(await router.route(request))
    if response.status == 200:
        page_cache.store(path, response.body_bytes)
    return response
