"""Page handlers and their operations.

A page handler is any object exposing named operations. Subclasses of
:class:`PageHandler` declare them explicitly with ``@operation``; for
other objects every public method not part of the handler lifecycle is
an operation.

Operations are called as ``op(args, request)`` and may be sync or async::

    class AboutHandler(PageHandler):
        def __init__(self) -> None:
            super().__init__()
            self.add_role_assignment([Role.MANAGER], ["editorial"])

        @operation
        def index(self, args: tuple[str, ...], request: Request) -> str:
            return "About the journal"

        @operation
        async def editorial(self, args: tuple[str, ...], request: Request) -> str:
            ...
"""

import inspect
from collections.abc import Callable, Iterable
from typing import Any

from quire.http.request import Request
from quire.security.roles import SITE_CONTEXT_ID, Role, roles_in_context

_OPERATION_ATTR = "__quire_operation__"

# Methods that belong to the dispatch lifecycle, never routable
LIFECYCLE_METHODS = frozenset(
    {"authorize", "validate", "initialize", "add_role_assignment", "role_assignments"}
)


def operation[F: Callable[..., Any]](func: F) -> F:
    """Mark a :class:`PageHandler` method as a routable operation."""
    setattr(func, _OPERATION_ATTR, True)
    return func


def handler_operations(handler: object) -> frozenset[str]:
    """Names of the operations *handler* (an instance or a class) exposes."""
    cls = handler if isinstance(handler, type) else type(handler)
    if issubclass(cls, PageHandler):
        return frozenset(
            name
            for name, member in inspect.getmembers(cls)
            if getattr(member, _OPERATION_ATTR, False)
        )
    return frozenset(
        name
        for name, member in inspect.getmembers(handler)
        if callable(member) and not name.startswith("_") and name not in LIFECYCLE_METHODS
        and not isinstance(member, type)
    )


class PageHandler:
    """Base class for page handlers.

    Keeps the role assignments checked by :meth:`authorize`. A handler
    without assignments lets everybody in; otherwise the user must hold
    one of the roles assigned to the requested operation in the current
    context.
    """

    def __init__(self, request: Request | None = None) -> None:
        self.request = request
        self._role_assignments: dict[Role, set[str]] = {}
        self.last_auth_message: str | None = None

    def __copy__(self) -> "PageHandler":
        # Copies serve one request each; role assignments must not leak back
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._role_assignments = {role: set(ops) for role, ops in self._role_assignments.items()}
        return clone

    def add_role_assignment(self, roles: Role | Iterable[Role], operations: str | Iterable[str]) -> None:
        """Allow *roles* to call *operations*."""
        roles = [roles] if isinstance(roles, Role) else list(roles)
        ops = [operations] if isinstance(operations, str) else list(operations)
        for role in roles:
            self._role_assignments.setdefault(role, set()).update(ops)

    @property
    def role_assignments(self) -> dict[Role, frozenset[str]]:
        return {role: frozenset(ops) for role, ops in self._role_assignments.items()}

    def authorize(self, request: Request, args: tuple[str, ...], op: str) -> bool:
        """Check the role assignments for *op*.

        Sets ``last_auth_message`` when access is denied.
        """
        if not self._role_assignments:
            return True
        if not request.is_authenticated:
            self.last_auth_message = "user.authorization.loginRequired"
            return False

        allowed = {role for role, ops in self._role_assignments.items() if op in ops}
        context_id = request.context.id if request.context is not None else SITE_CONTEXT_ID
        if allowed & roles_in_context(request.user, context_id):
            return True
        self.last_auth_message = "user.authorization.roleBasedAccessDenied"
        return False

    def validate(self, request: Request, args: tuple[str, ...]) -> None:
        """Extra request validation. Not called for page requests."""

    def initialize(self, request: Request, args: tuple[str, ...]) -> None:
        """Prepare the handler before the operation runs."""
        self.request = request
