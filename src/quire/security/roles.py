"""Roles and role assignments.

Role ids keep the numeric values editorial installations already store in
their user group tables, so existing data maps onto :class:`Role` as is.
"""

from dataclasses import dataclass
from enum import IntEnum
from typing import Protocol, runtime_checkable


class Role(IntEnum):
    SITE_ADMIN = 0x00000001
    MANAGER = 0x00000010
    SUB_EDITOR = 0x00000011
    REVIEWER = 0x00001000
    ASSISTANT = 0x00001001
    AUTHOR = 0x00010000
    READER = 0x00100000


# Context id under which site-wide groups (site admin) are stored
SITE_CONTEXT_ID = 0


@dataclass(frozen=True, slots=True)
class UserGroup:
    """Membership of a user in a role, scoped to a context."""

    role_id: Role
    context_id: int = SITE_CONTEXT_ID
    name: str = ""


@runtime_checkable
class UserWithGroups(Protocol):
    """A user whose role memberships can be listed per context."""

    @property
    def id(self) -> str: ...

    @property
    def is_authenticated(self) -> bool: ...

    def user_groups(self, context_id: int | None) -> tuple[UserGroup, ...]:
        """Groups held in *context_id*; ``None`` lists the groups of every context."""
        ...


def roles_in_context(user: object, context_id: int) -> frozenset[Role]:
    """Roles *user* holds in *context_id*, including site-wide groups.

    Objects that do not implement :class:`UserWithGroups` hold no roles.
    """
    if not isinstance(user, UserWithGroups) or not user.is_authenticated:
        return frozenset()
    roles = {group.role_id for group in user.user_groups(context_id)}
    if context_id != SITE_CONTEXT_ID:
        roles.update(group.role_id for group in user.user_groups(SITE_CONTEXT_ID))
    return frozenset(roles)
