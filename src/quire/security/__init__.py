"""Roles, role checks, redirect validation and security audit events."""

from quire.security.audit import SecurityEvent, emit_security_event, set_security_event_sink
from quire.security.roles import SITE_CONTEXT_ID, Role, UserGroup, UserWithGroups, roles_in_context
from quire.security.urls import is_safe_url, is_source_url

__all__ = [
    "SITE_CONTEXT_ID",
    "Role",
    "SecurityEvent",
    "UserGroup",
    "UserWithGroups",
    "emit_security_event",
    "is_safe_url",
    "is_source_url",
    "roles_in_context",
    "set_security_event_sink",
]
