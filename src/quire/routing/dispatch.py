"""Authorize, initialize and call a handler operation."""

import logging
from typing import TYPE_CHECKING, Any

from quire._internal.invoke import invoke
from quire.http.request import Request

if TYPE_CHECKING:
    from quire.routing.router import PageRouter

logger = logging.getLogger("quire.router")

DEFAULT_AUTH_MESSAGE = "user.authorization.accessDenied"


async def authorize_initialize_and_call(
    router: "PageRouter",
    handler: Any,
    op: str,
    request: Request,
    args: tuple[str, ...],
    *,
    validate: bool = False,
) -> Any:
    """Run *op* on *handler* after the handler's own checks.

    ``authorize`` failures end the request through
    ``router.handle_authorization_failure``. ``validate`` only runs when
    asked for; page requests never ask.
    """
    authorize = getattr(handler, "authorize", None)
    if authorize is not None and not await invoke(authorize, request, args, op):
        message = getattr(handler, "last_auth_message", None) or DEFAULT_AUTH_MESSAGE
        logger.debug("Authorization failed for %s.%s: %s", type(handler).__name__, op, message)
        router.handle_authorization_failure(request, message)

    if validate and (hook := getattr(handler, "validate", None)) is not None:
        await invoke(hook, request, args)

    initialize = getattr(handler, "initialize", None)
    if initialize is not None:
        await invoke(initialize, request, args)

    return await invoke(getattr(handler, op), args, request)
