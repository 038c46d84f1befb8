"""
core.domain.notifications — Notification creation and dispatch.

Centralises notification creation so every app uses one consistent
entry-point rather than directly constructing ``Notification`` objects.

Design decisions
----------------
* **Two entry points.**  ``create`` persists synchronously in the
  caller's transaction.  ``notify`` is the fire-and-forget sink used by
  state transitions: it defers ``create`` to ``transaction.on_commit``
  and swallows-and-logs any failure, so a broken notification never
  rolls back (or fails) the transition that triggered it.
* **Supports multiple recipients** — pass a single ``User`` or an
  iterable of ``User`` instances.
* **Generic relation** — ``related_object`` is optional; if provided
  its ``ContentType`` and PK are stored via the ``Notification`` model's
  ``GenericForeignKey``.

Usage::

    from core.domain.notifications import NotificationService

    NotificationService.notify(
        actor=request.user,
        recipients=complaint.created_by,
        event_type="complaint_accepted",
        payload={"complaint_id": complaint.id},
        related_object=complaint,
        link=f"/mes-reclamations/{complaint.id}",
    )
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Iterable, Protocol

from django.contrib.contenttypes.models import ContentType
from django.db import models

from core.domain.transactions import on_commit_best_effort

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification

logger = logging.getLogger(__name__)

# ── Event-type → human-readable templates ───────────────────────────
# Message templates are formatted with the event payload; missing keys
# fall back to the un-interpolated default.
_EVENT_TEMPLATES: dict[str, tuple[str, str]] = {
    # event_type: (title_template, message_template)
    "complaint_submitted":  ("New Complaint",           'A new complaint has been submitted: "{title}".'),
    "complaint_accepted":   ("Complaint Accepted",      "Your complaint has been accepted and will be handled shortly."),
    "complaint_rejected":   ("Complaint Rejected",      "Your complaint has been rejected. Reason: {reason}"),
    "complaint_assigned":   ("Complaint Assigned",      "A complaint has been assigned to you for handling."),
    "complaint_unassigned": ("Complaint Unassigned",    "A complaint is no longer assigned to you."),
    "complaint_resolved":   ("Complaint Resolved",      "Your complaint has been resolved. Thank you for your patience."),
    "permissions_changed":  ("Permissions Updated",     "Your permissions have been updated by an administrator."),
    "role_changed":         ("Role Updated",            "Your role has been changed to {role}."),
}


class NotificationSink(Protocol):
    """What a state transition needs from the notification collaborator."""

    def notify(
        self,
        *,
        actor: Any,
        recipients: Any,
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
        link: str = "",
    ) -> None: ...


class _PayloadDict(dict):
    """``str.format_map`` helper: unknown placeholders render as ``-``."""

    def __missing__(self, key: str) -> str:
        return "-"


def _render(event_type: str, payload: dict[str, Any]) -> tuple[str, str]:
    title, message = _EVENT_TEMPLATES.get(
        event_type,
        (event_type.replace("_", " ").title(), f"Event: {event_type}"),
    )
    return title, message.format_map(_PayloadDict(payload))


class NotificationService:
    """
    Stateless helper for creating ``Notification`` records.

    All methods are classmethods — no instance state is needed.
    """

    @classmethod
    def create(
        cls,
        *,
        actor: User | None,
        recipients: User | Iterable[User],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
        link: str = "",
    ) -> list[Notification]:
        """
        Create one ``Notification`` per recipient.

        Args:
            actor:          The user who performed the action (used for
                            logging only).
            recipients:     A single ``User`` or iterable of ``User``
                            instances.
            event_type:     Key into ``_EVENT_TEMPLATES``.  If unknown
                            the raw event_type is used as title.
            payload:        Context dict used to format the message.
            related_object: Optional model instance linked via
                            ``GenericForeignKey``.
            link:           Optional front-end path for the notification.

        Returns:
            List of created ``Notification`` instances.
        """
        from core.models import Notification  # lazy import, avoids circular deps

        # Normalise recipients to a list
        if isinstance(recipients, models.Model):
            recipients = [recipients]
        else:
            recipients = [r for r in recipients if r is not None]

        if not recipients:
            logger.warning(
                "NotificationService.create called with empty recipients "
                "for event_type=%s by actor=%s",
                event_type,
                actor,
            )
            return []

        title, message = _render(event_type, payload or {})

        # Resolve GenericFK fields
        content_type = None
        object_id = None
        if related_object is not None:
            content_type = ContentType.objects.get_for_model(related_object)
            object_id = related_object.pk

        notifications = Notification.objects.bulk_create([
            Notification(
                recipient=recipient,
                event_type=event_type,
                title=title,
                message=message,
                link=link,
                content_type=content_type,
                object_id=object_id,
            )
            for recipient in recipients
        ])

        logger.info(
            "Created %d notification(s) [%s] by actor=%s",
            len(notifications),
            event_type,
            actor,
        )
        return notifications

    @classmethod
    def notify(
        cls,
        *,
        actor: User | None,
        recipients: User | Iterable[User],
        event_type: str,
        payload: dict[str, Any] | None = None,
        related_object: models.Model | None = None,
        link: str = "",
    ) -> None:
        """
        Fire-and-forget: create the notifications once the current
        transaction commits.  Errors are logged, never raised.
        """
        if not isinstance(recipients, models.Model):
            recipients = list(recipients)

        on_commit_best_effort(
            lambda: cls.create(
                actor=actor,
                recipients=recipients,
                event_type=event_type,
                payload=payload,
                related_object=related_object,
                link=link,
            ),
            description=f"notification {event_type}",
        )
