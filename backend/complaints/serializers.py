"""
Complaints app serializers.

Input serializers validate payload shape and length limits; they are
run by ``ComplaintService`` (not by the views) so every caller of the
service gets the same validation.  Output serializers render complaints
and their audit trail.  **No business logic** lives here.
"""

from __future__ import annotations

from decimal import Decimal
from typing import Any

from django.contrib.auth import get_user_model
from rest_framework import serializers

from core import constants

from .models import (
    AssignmentState,
    Complaint,
    ComplaintAuditEntry,
    ComplaintCategory,
    ComplaintMedia,
    ComplaintStatus,
)

User = get_user_model()


# ═══════════════════════════════════════════════════════════════════
#  Input Serializers
# ═══════════════════════════════════════════════════════════════════


class ComplaintMediaInputSerializer(serializers.Serializer):
    url = serializers.URLField(max_length=500)
    media_type = serializers.CharField(max_length=50, required=False, allow_blank=True, default="")


class ComplaintCreateSerializer(serializers.Serializer):
    """
    Payload of ``submit``.

    Lifecycle fields are not declared, so DRF drops them silently; the
    owner always comes from the authenticated actor.
    """

    title = serializers.CharField(
        min_length=constants.TITLE_MIN_LENGTH,
        max_length=constants.TITLE_MAX_LENGTH,
    )
    description = serializers.CharField(
        min_length=constants.DESCRIPTION_MIN_LENGTH,
        max_length=constants.DESCRIPTION_MAX_LENGTH,
    )
    category = serializers.ChoiceField(choices=ComplaintCategory.choices)
    commune_id = serializers.IntegerField(min_value=1)
    establishment_id = serializers.IntegerField(min_value=1, required=False, allow_null=True)
    neighbourhood = serializers.CharField(
        max_length=constants.NEIGHBOURHOOD_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    address = serializers.CharField(
        max_length=constants.ADDRESS_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )
    latitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=Decimal("-90"), max_value=Decimal("90"),
        required=False, allow_null=True,
    )
    longitude = serializers.DecimalField(
        max_digits=9, decimal_places=6, min_value=Decimal("-180"), max_value=Decimal("180"),
        required=False, allow_null=True,
    )
    media = ComplaintMediaInputSerializer(many=True, required=False, default=list)

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        has_lat = attrs.get("latitude") is not None
        has_lng = attrs.get("longitude") is not None
        if has_lat != has_lng:
            raise serializers.ValidationError(
                {"latitude": "Latitude and longitude must be provided together."}
            )
        return attrs


class ComplaintContentSerializer(serializers.Serializer):
    """Owner edit of a pending complaint: title and description only."""

    title = serializers.CharField(
        min_length=constants.TITLE_MIN_LENGTH,
        max_length=constants.TITLE_MAX_LENGTH,
        required=False,
    )
    description = serializers.CharField(
        min_length=constants.DESCRIPTION_MIN_LENGTH,
        max_length=constants.DESCRIPTION_MAX_LENGTH,
        required=False,
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if not attrs:
            raise serializers.ValidationError("Provide a title or a description to update.")
        return attrs


class RejectSerializer(serializers.Serializer):
    reason = serializers.CharField(
        max_length=constants.REJECTION_REASON_MAX_LENGTH,
        required=False,
        allow_blank=True,
        allow_null=True,
    )


class AssignSerializer(serializers.Serializer):
    authority_id = serializers.IntegerField(min_value=1)
    sector = serializers.CharField(max_length=100, required=False, allow_blank=True, allow_null=True)
    comment = serializers.CharField(
        max_length=constants.ASSIGNMENT_COMMENT_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )


class UnassignSerializer(serializers.Serializer):
    comment = serializers.CharField(
        max_length=constants.ASSIGNMENT_COMMENT_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )


class ResolveSerializer(serializers.Serializer):
    solution = serializers.CharField(
        max_length=constants.SOLUTION_MAX_LENGTH,
        required=False,
        allow_blank=True,
        default="",
    )

    def validate_solution(self, value: str) -> str:
        if value and len(value) < constants.SOLUTION_MIN_LENGTH:
            raise serializers.ValidationError(
                f"Solution must be at least {constants.SOLUTION_MIN_LENGTH} characters."
            )
        return value


class ComplaintListQuerySerializer(serializers.Serializer):
    """Query-string filters of the complaint listing."""

    status = serializers.ChoiceField(choices=ComplaintStatus.choices, required=False)
    assignment = serializers.ChoiceField(choices=AssignmentState.choices, required=False)
    category = serializers.ChoiceField(choices=ComplaintCategory.choices, required=False)
    commune_id = serializers.IntegerField(min_value=1, required=False)
    archived = serializers.BooleanField(required=False, allow_null=True, default=None)
    urgent = serializers.BooleanField(required=False, default=False)
    search = serializers.CharField(max_length=200, required=False, allow_blank=True)


# ═══════════════════════════════════════════════════════════════════
#  Output Serializers
# ═══════════════════════════════════════════════════════════════════


class UserRefSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(source="get_full_name", read_only=True)

    class Meta:
        model = User
        fields = ["id", "username", "full_name", "role"]
        read_only_fields = fields


class ComplaintMediaSerializer(serializers.ModelSerializer):
    class Meta:
        model = ComplaintMedia
        fields = ["id", "url", "media_type", "created_at"]
        read_only_fields = fields


class ComplaintListSerializer(serializers.ModelSerializer):
    """Compact row for listings."""

    created_by = UserRefSerializer(read_only=True)
    is_resolved = serializers.BooleanField(read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "title",
            "category",
            "commune_id",
            "status",
            "assignment",
            "is_resolved",
            "archived",
            "created_by",
            "created_at",
        ]
        read_only_fields = fields


class ComplaintDetailSerializer(serializers.ModelSerializer):
    """Full complaint representation."""

    created_by = UserRefSerializer(read_only=True)
    assigned_authority = UserRefSerializer(read_only=True)
    decided_by = UserRefSerializer(read_only=True)
    resolved_by = UserRefSerializer(read_only=True)
    media = ComplaintMediaSerializer(many=True, read_only=True)
    is_resolved = serializers.BooleanField(read_only=True)
    is_urgent = serializers.BooleanField(read_only=True)

    class Meta:
        model = Complaint
        fields = [
            "id",
            "title",
            "description",
            "category",
            "commune_id",
            "establishment_id",
            "neighbourhood",
            "address",
            "latitude",
            "longitude",
            "status",
            "rejection_reason",
            "decided_by",
            "decided_at",
            "assignment",
            "assigned_authority",
            "assigned_at",
            "sector",
            "resolved_at",
            "is_resolved",
            "solution",
            "resolved_by",
            "archived",
            "archived_at",
            "is_urgent",
            "media",
            "created_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class ComplaintAuditEntrySerializer(serializers.ModelSerializer):
    actor = UserRefSerializer(read_only=True)

    class Meta:
        model = ComplaintAuditEntry
        fields = ["id", "complaint_id", "action", "actor", "detail", "created_at"]
        read_only_fields = fields
