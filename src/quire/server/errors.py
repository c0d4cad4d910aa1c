"""Error handling pipeline for quire requests.

Maps HTTPError exceptions (404s, redirects raised outside the router) and
unexpected failures to Response objects, using registered error handlers
or plain defaults.
"""

import inspect
import logging
import traceback
from collections.abc import Callable
from html import escape
from typing import Any

from quire.errors import HTTPError
from quire.http.request import Request
from quire.http.response import Response
from quire.server.negotiation import negotiate

logger = logging.getLogger("quire.server")


async def call_error_handler(handler: Callable[..., Any], request: Request, exc: Exception) -> Response:
    """Invoke a user-registered error handler with introspected arguments.

    Error handlers may accept zero, one (request), or two (request, exc) args,
    and may be sync or async.
    """
    params = list(inspect.signature(handler).parameters.values())

    if len(params) >= 2:
        result = handler(request, exc)
    elif len(params) == 1:
        result = handler(request)
    else:
        result = handler()

    if inspect.isawaitable(result):
        result = await result
    return negotiate(result)


async def handle_http_error(
    exc: HTTPError,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Map an HTTPError to a Response using registered error handlers."""
    logger.debug("%d %s %s: %s", exc.status, request.method, request.path, exc.detail)

    # Exact exception type first, then status code
    handler = error_handlers.get(type(exc)) or error_handlers.get(exc.status)
    if handler is not None:
        response = await call_error_handler(handler, request, exc)
        # Keep the exception's status unless the handler chose its own
        if response.status == 200:
            response = response.with_status(exc.status)
        return response

    detail = exc.detail or f"Error {exc.status}"
    if debug and exc.detail:
        detail = f"{exc.status}: {exc.detail}"

    response = Response(body=escape(detail)).with_status(exc.status)
    for name, value in exc.headers:
        response = response.with_header(name, value)
    return response


async def handle_internal_error(
    exc: Exception,
    request: Request,
    error_handlers: dict[int | type, Callable[..., Any]],
    debug: bool,
) -> Response:
    """Handle unexpected exceptions as 500 errors."""
    logger.exception("500 %s %s", request.method, request.path)

    handler = error_handlers.get(500) or error_handlers.get(type(exc))
    if handler is not None:
        return await call_error_handler(handler, request, exc)

    if debug:
        body = f"<pre>{escape(traceback.format_exc())}</pre>"
        return Response(body=body, status=500)
    return Response(body="Internal Server Error", status=500)
