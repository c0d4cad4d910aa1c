"""Security audit events.

Authorization failures and logins are reported through a small opt-in
event channel. Applications register a sink to forward events to logs,
metrics or a SIEM; with no sink installed events are only logged at
debug level on the ``quire.security`` logger.
"""

import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from time import time
from typing import Any

logger = logging.getLogger("quire.security")


@dataclass(frozen=True, slots=True)
class SecurityEvent:
    """A structured security event."""

    name: str
    timestamp: float = field(default_factory=time)
    path: str | None = None
    method: str | None = None
    user_id: str | None = None
    details: dict[str, Any] = field(default_factory=dict)


type SecurityEventSink = Callable[[SecurityEvent], None]


_sink_lock = threading.Lock()
_sink: SecurityEventSink | None = None


def set_security_event_sink(sink: SecurityEventSink | None) -> None:
    """Set the process-wide sink for security events. ``None`` disables delivery."""
    global _sink
    with _sink_lock:
        _sink = sink


def emit_security_event(
    name: str,
    *,
    request: Any | None = None,
    user_id: str | None = None,
    details: dict[str, Any] | None = None,
) -> None:
    """Build a :class:`SecurityEvent` and hand it to the configured sink."""
    logger.debug("security event %s user=%s details=%r", name, user_id, details)
    with _sink_lock:
        sink = _sink
    if sink is None:
        return

    event = SecurityEvent(
        name=name,
        path=getattr(request, "path", None),
        method=getattr(request, "method", None),
        user_id=user_id,
        details=details or {},
    )
    sink(event)
