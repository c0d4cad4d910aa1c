"""Page routing: path grammar, handler resolution, access gate, URLs, page cache."""

from quire.routing.gate import DEFAULT_STAGES, GateStage, run_gate
from quire.routing.grammar import DEFAULT_OP, PathInfo, RouteTarget, parse_path_info
from quire.routing.handler import PageHandler, handler_operations, operation
from quire.routing.registry import LOAD_HANDLER, HandlerRegistry, LoadHandlerEvent, ResolvedHandler
from quire.routing.router import PageRouter
from quire.routing.urls import UrlBuilder

__all__ = [
    "DEFAULT_OP",
    "DEFAULT_STAGES",
    "LOAD_HANDLER",
    "GateStage",
    "HandlerRegistry",
    "LoadHandlerEvent",
    "PageHandler",
    "PageRouter",
    "PathInfo",
    "ResolvedHandler",
    "RouteTarget",
    "UrlBuilder",
    "handler_operations",
    "operation",
    "parse_path_info",
    "run_gate",
]
