"""Shared type aliases used across quire modules."""

from collections.abc import Callable
from typing import Any, TypeAlias

# Page handler factory: called with the current Request, returns a handler
HandlerFactory: TypeAlias = Callable[..., Any]

# Error handler: receives (request, error?) and returns a response value
ErrorHandler: TypeAlias = Callable[..., Any]
