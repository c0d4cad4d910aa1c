"""Page module exposing a handler class instead of a handler object."""

from quire.routing.handler import PageHandler, operation


class LegacyHandler(PageHandler):
    def __init__(self, request):
        super().__init__(request)
        self.built_with_request = request is not None

    @operation
    def view(self, args, request):
        return f"legacy:{args[0]}:{self.built_with_request}"

    def helper(self, args, request):
        return "not an operation"


HANDLER_CLASS = LegacyHandler
