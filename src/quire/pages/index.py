"""Default page, served when the URL names no page (``/`` or ``/{context}``)."""

from html import escape

from quire.http.request import Request
from quire.routing.handler import PageHandler, operation


class IndexHandler(PageHandler):
    @operation
    def index(self, args: tuple[str, ...], request: Request) -> str:
        context = request.context
        title = (context.name or context.path) if context is not None else "Welcome"
        return f"<!DOCTYPE html><title>{escape(title)}</title><h1>{escape(title)}</h1>"


HANDLER_CLASS = IndexHandler
