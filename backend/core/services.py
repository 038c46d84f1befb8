"""
Core app services — **Service Layer**.

Contains the cross-app read helpers served by the core app: system
constants for front-end dropdowns and the per-user notification inbox.
Views delegate all business logic to the service classes defined here.

╔══════════════════════════════════════════════════════════════════════╗
║  CROSS-APP IMPORT RULEBOOK                                         ║
║                                                                    ║
║  1. NEVER import models from other apps at the **module level**.   ║
║     Always import inside the method/function that needs them.      ║
║                                                                    ║
║  2. Choice/enum classes (e.g. ComplaintStatus, UserRole) live in   ║
║     the respective app's ``models.py`` alongside the models.       ║
║     Import them lazily inside methods too.                         ║
╚══════════════════════════════════════════════════════════════════════╝
"""

from __future__ import annotations

from typing import Any, TYPE_CHECKING

from django.db.models import QuerySet

from core.constants import (
    DESCRIPTION_MAX_LENGTH,
    DESCRIPTION_MIN_LENGTH,
    TITLE_MAX_LENGTH,
    TITLE_MIN_LENGTH,
)
from core.domain.exceptions import NotFound

if TYPE_CHECKING:
    from accounts.models import User
    from core.models import Notification


# ════════════════════════════════════════════════════════════════════
#  System Constants Service
# ════════════════════════════════════════════════════════════════════

class SystemConstantsService:
    """
    Gathers all system-wide choice enumerations into a single dict for
    the frontend.

    This service is **stateless** — it does not depend on the requesting
    user.  All constants are public information needed by the frontend
    to render dropdowns and labels.
    """

    @staticmethod
    def get_constants() -> dict[str, Any]:
        """Return all system constants as a dict."""
        from accounts.models import UserRole
        from complaints.models import (
            AssignmentState,
            AuditAction,
            ComplaintCategory,
            ComplaintStatus,
        )

        to_list = SystemConstantsService._choices_to_list

        return {
            "roles": to_list(UserRole),
            "complaint_statuses": to_list(ComplaintStatus),
            "assignment_states": to_list(AssignmentState),
            "complaint_categories": to_list(ComplaintCategory),
            "audit_actions": to_list(AuditAction),
            "limits": {
                "title_min_length": TITLE_MIN_LENGTH,
                "title_max_length": TITLE_MAX_LENGTH,
                "description_min_length": DESCRIPTION_MIN_LENGTH,
                "description_max_length": DESCRIPTION_MAX_LENGTH,
            },
        }

    @staticmethod
    def _choices_to_list(
        choices_class: type,
    ) -> list[dict[str, str]]:
        """
        Convert a Django ``TextChoices`` or ``IntegerChoices`` class to
        a list of ``{"value": ..., "label": ...}`` dicts.
        """
        return [
            {"value": str(value), "label": str(label)}
            for value, label in choices_class.choices
        ]


# ═══════════════════════════════════════════════════════════════════
#  Notification Inbox Service
# ═══════════════════════════════════════════════════════════════════


class NotificationInboxService:
    """
    Handles listing and marking notifications as read for a given user.

    Creation lives in ``core.domain.notifications.NotificationService``.
    """

    def __init__(self, user: User) -> None:
        self.user = user

    def list_notifications(self, *, unread_only: bool = False) -> QuerySet[Notification]:
        """Return notifications for ``self.user``, most recent first."""
        from core.models import Notification

        qs = (
            Notification.objects
            .filter(recipient=self.user)
            .select_related("content_type")
            .order_by("-created_at")
        )
        if unread_only:
            qs = qs.filter(is_read=False)
        return qs

    def mark_as_read(self, notification_id: int) -> Notification:
        """Mark a single notification as read."""
        from core.models import Notification

        try:
            notification = Notification.objects.get(
                pk=notification_id,
                recipient=self.user,
            )
        except (Notification.DoesNotExist, ValueError, TypeError):
            raise NotFound(f"Notification with id {notification_id} not found.")
        if not notification.is_read:
            notification.is_read = True
            notification.save(update_fields=["is_read", "updated_at"])
        return notification

    def mark_all_as_read(self) -> int:
        """Mark every unread notification as read; return how many changed."""
        from core.models import Notification

        return (
            Notification.objects
            .filter(recipient=self.user, is_read=False)
            .update(is_read=True)
        )
