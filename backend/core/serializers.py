"""
Core app serializers.

**Response-only** serializers for the endpoints served by the core app
(system constants and notifications).  They do **not** accept input
data; filtering is handled via query parameters in the views.
"""

from __future__ import annotations

from rest_framework import serializers


# ════════════════════════════════════════════════════════════════════
#  System Constants
# ════════════════════════════════════════════════════════════════════

class ChoiceItemSerializer(serializers.Serializer):
    """
    A single choice option.

    Example::

        {"value": "PENDING", "label": "Pending"}
    """

    value = serializers.CharField(help_text="Machine-readable value.")
    label = serializers.CharField(help_text="Human-readable display label.")


class LimitsSerializer(serializers.Serializer):
    title_min_length = serializers.IntegerField()
    title_max_length = serializers.IntegerField()
    description_min_length = serializers.IntegerField()
    description_max_length = serializers.IntegerField()


class SystemConstantsSerializer(serializers.Serializer):
    """
    Every choice enumeration the frontend needs for dropdowns and
    labels, plus the complaint content limits used for client-side
    validation.
    """

    roles = ChoiceItemSerializer(many=True, read_only=True)
    complaint_statuses = ChoiceItemSerializer(many=True, read_only=True)
    assignment_states = ChoiceItemSerializer(many=True, read_only=True)
    complaint_categories = ChoiceItemSerializer(many=True, read_only=True)
    audit_actions = ChoiceItemSerializer(many=True, read_only=True)
    limits = LimitsSerializer(read_only=True)


# ════════════════════════════════════════════════════════════════════
#  Notifications
# ════════════════════════════════════════════════════════════════════

class NotificationSerializer(serializers.Serializer):
    """
    Read-only serializer for ``Notification`` instances.

    Used by the Notification ViewSet to list and retrieve notifications
    for the authenticated user.
    """

    id = serializers.IntegerField(read_only=True, help_text="Notification PK.")
    event_type = serializers.CharField(
        read_only=True,
        help_text="Machine-readable event key (e.g. 'complaint_accepted').",
    )
    title = serializers.CharField(
        read_only=True,
        help_text="Short notification title.",
    )
    message = serializers.CharField(
        read_only=True,
        help_text="Full notification message body.",
    )
    link = serializers.CharField(
        read_only=True,
        help_text="Front-end path related to the notification.",
    )
    is_read = serializers.BooleanField(
        read_only=True,
        help_text="Whether the recipient has marked this notification as read.",
    )
    created_at = serializers.DateTimeField(
        read_only=True,
        help_text="When the notification was created.",
    )
    content_type = serializers.StringRelatedField(
        read_only=True,
        help_text="Related content type (if any).",
    )
    object_id = serializers.IntegerField(
        read_only=True,
        help_text="Related object PK (if any).",
    )
