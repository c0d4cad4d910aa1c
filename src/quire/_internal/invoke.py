"""Invoke helpers — call sync or async operations uniformly.

Page handler operations can be ``def`` or ``async def``. Any code that
calls a user-provided operation must handle both cases, so the
sync/async check lives here and nowhere else.

Usage::

    from quire._internal.invoke import invoke

    result = await invoke(handler.view, args, request)
"""

import inspect
from typing import Any


async def invoke(func: Any, *args: Any, **kwargs: Any) -> Any:
    """Call *func* and await the result if it is awaitable."""
    result = func(*args, **kwargs)
    if inspect.isawaitable(result):
        result = await result
    return result
