"""
core.domain.security — Security-event logging.

A *security event* is the record of an attempted but denied sensitive
action (smuggling lifecycle fields through a content edit, probing a
record outside one's visibility scope).  It is emitted on the dedicated
``security`` logger, independently of the error returned to the caller,
so operators can route it to its own handler (see ``settings.LOGGING``).

Usage::

    from core.domain.security import log_security_event

    log_security_event(
        "status_field_smuggling",
        actor=user,
        target_id=complaint_id,
        ip=client_ip,
        fields=["status"],
    )
"""

from __future__ import annotations

import logging
from typing import Any

security_logger = logging.getLogger("security")


def client_ip_from_request(request: Any) -> str | None:
    """Best-effort client address (first hop of ``X-Forwarded-For``)."""
    if request is None:
        return None
    meta = getattr(request, "META", {})
    forwarded = meta.get("HTTP_X_FORWARDED_FOR")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return meta.get("HTTP_X_REAL_IP") or meta.get("REMOTE_ADDR")


def log_security_event(
    event: str,
    *,
    actor: Any,
    target_id: Any = None,
    ip: str | None = None,
    **context: Any,
) -> None:
    """
    Emit one WARNING record on the ``security`` logger.

    Structured fields are attached via ``extra`` (``security_event``,
    ``actor_id``, ``actor_role``, ``ip``, ``target_id``, ``context``) so a
    JSON formatter can pick them up; the message itself stays readable.
    """
    actor_id = getattr(actor, "pk", None)
    actor_role = getattr(actor, "role", None)
    security_logger.warning(
        "SECURITY %s actor=%s role=%s ip=%s target=%s context=%s",
        event,
        actor_id,
        actor_role,
        ip or "unknown",
        target_id,
        context,
        extra={
            "security_event": event,
            "actor_id": actor_id,
            "actor_role": actor_role,
            "ip": ip,
            "target_id": target_id,
            "context": context,
        },
    )
