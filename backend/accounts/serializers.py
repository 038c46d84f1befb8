"""
Accounts app serializers.

Contains all Request and Response serializers for the accounts API.
Serializers handle field definitions, read/write constraints, and
basic validation.  **No business logic** lives here — all domain
rules are delegated to ``services.py``.
"""

from __future__ import annotations

import re
from typing import Any

from django.contrib.auth import authenticate, get_user_model
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from core.domain.permissions import get_default_catalog

from .models import PermissionGrant, UserRole

User = get_user_model()

_PHONE_RE = re.compile(r"^\+?\d{8,15}$")


def _validate_phone(value: str) -> str:
    if value and not _PHONE_RE.match(value):
        raise serializers.ValidationError(
            "Phone number must contain 8 to 15 digits, optionally prefixed by '+'."
        )
    return value


# ═══════════════════════════════════════════════════════════════════
#  Authentication Serializers
# ═══════════════════════════════════════════════════════════════════


class RegisterRequestSerializer(serializers.ModelSerializer):
    """
    Validates new-user registration data.

    Required fields: username, password, email, first_name, last_name,
    national_id.  ``phone_number`` is optional.

    The role is never accepted from the client: the service always
    registers a ``CITIZEN``.
    """

    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Minimum 8 characters.",
    )
    password_confirm = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="Must match 'password'.",
    )

    class Meta:
        model = User
        fields = [
            "username",
            "password",
            "password_confirm",
            "email",
            "phone_number",
            "first_name",
            "last_name",
            "national_id",
        ]
        extra_kwargs = {
            "email": {"required": True},
            "first_name": {"required": True},
            "last_name": {"required": True},
            "national_id": {"required": True},
            "phone_number": {"required": False, "allow_blank": True, "allow_null": True},
        }

    def validate_phone_number(self, value: str | None) -> str | None:
        return _validate_phone(value or "") or None

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Cross-field validation:
        1. Ensure password and password_confirm match.
        2. Validate national_id format (8 to 20 digits).
        """
        if attrs["password"] != attrs["password_confirm"]:
            raise serializers.ValidationError(
                {"password_confirm": "Passwords do not match."}
            )

        national_id = attrs.get("national_id", "")
        if not national_id.isdigit() or not 8 <= len(national_id) <= 20:
            raise serializers.ValidationError(
                {"national_id": "National ID must be 8 to 20 digits."}
            )

        # Remove password_confirm; not needed beyond validation
        attrs.pop("password_confirm")

        return attrs


class LoginRequestSerializer(serializers.Serializer):
    """
    Accepts multi-field login credentials (documentation schema for
    ``LoginView``).
    """

    identifier = serializers.CharField(
        help_text="Username, National ID, Phone Number, or Email.",
    )
    password = serializers.CharField(
        write_only=True,
        style={"input_type": "password"},
        help_text="User account password.",
    )


class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    """
    Custom SimpleJWT serializer that:

    1. Accepts ``identifier`` + ``password`` instead of
       ``username`` + ``password``.
    2. Resolves the user via the ``MultiFieldAuthBackend``.
    3. Injects RBAC claims (``role``, ``sector``, ``permissions_list``)
       into the JWT access token payload.
    """

    username_field = "identifier"

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.fields.pop(self.username_field, None)
        self.fields["identifier"] = serializers.CharField(
            help_text="Username, National ID, Phone Number, or Email.",
        )

    @classmethod
    def get_token(cls, user) -> Any:
        token = super().get_token(user)
        token["role"] = user.role
        token["sector"] = user.sector
        token["permissions_list"] = user.permissions_list
        return token

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        """
        Authenticate using the custom ``MultiFieldAuthBackend``.

        Returns a dict containing ``access`` and ``refresh``; the
        authenticated user is exposed as ``self.user``.
        """
        user = authenticate(
            request=self.context.get("request"),
            identifier=attrs.get("identifier"),
            password=attrs.get("password"),
        )

        if user is None:
            raise serializers.ValidationError(
                {"detail": "Invalid credentials."},
                code="authentication",
            )

        refresh = self.get_token(user)
        self.user = user
        return {
            "access": str(refresh.access_token),
            "refresh": str(refresh),
        }


# ═══════════════════════════════════════════════════════════════════
#  User Serializers
# ═══════════════════════════════════════════════════════════════════


class UserListSerializer(serializers.ModelSerializer):
    """Compact user row for admin listings."""

    role_display = serializers.CharField(source="get_role_display", read_only=True)

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "national_id",
            "phone_number",
            "first_name",
            "last_name",
            "is_active",
            "role",
            "role_display",
            "sector",
        ]
        read_only_fields = fields


class UserDetailSerializer(serializers.ModelSerializer):
    """
    Full user representation (used in retrieve, me, and registration
    response).  ``permissions`` is the flat list of effective codes the
    frontend uses to render conditional UI modules.
    """

    role_display = serializers.CharField(source="get_role_display", read_only=True)
    permissions = serializers.ListField(
        child=serializers.CharField(),
        source="permissions_list",
        read_only=True,
        help_text="Effective permission codes (role defaults ± overrides).",
    )

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "national_id",
            "phone_number",
            "first_name",
            "last_name",
            "is_active",
            "date_joined",
            "role",
            "role_display",
            "sector",
            "managed_establishment_ids",
            "permissions",
        ]
        read_only_fields = fields


class ChangeRoleSerializer(serializers.Serializer):
    """Payload of ``PATCH /users/{id}/change-role/``."""

    role = serializers.ChoiceField(choices=UserRole.choices)
    sector = serializers.CharField(
        max_length=100,
        required=False,
        allow_blank=True,
        help_text="Sector for DELEGATION / LOCAL_AUTHORITY users.",
    )


class MeUpdateSerializer(serializers.ModelSerializer):
    """
    Allows the authenticated user to update limited profile fields.
    Sensitive fields (role, sector, is_active, username) are not
    accepted here.
    """

    class Meta:
        model = User
        fields = [
            "email",
            "phone_number",
            "first_name",
            "last_name",
        ]
        extra_kwargs = {
            "phone_number": {"allow_blank": True, "allow_null": True},
        }

    def validate_email(self, value: str) -> str:
        if (
            self.instance
            and User.objects.exclude(pk=self.instance.pk)
            .filter(email__iexact=value)
            .exists()
        ):
            raise serializers.ValidationError(
                "This email is already in use by another account."
            )
        return value

    def validate_phone_number(self, value: str | None) -> str | None:
        _validate_phone(value or "")
        if (
            value
            and self.instance
            and User.objects.exclude(pk=self.instance.pk)
            .filter(phone_number=value)
            .exists()
        ):
            raise serializers.ValidationError(
                "This phone number is already in use by another account."
            )
        return value or None


# ═══════════════════════════════════════════════════════════════════
#  Permission Serializers
# ═══════════════════════════════════════════════════════════════════


class PermissionGrantRequestSerializer(serializers.Serializer):
    """Payload of the grant / revoke actions."""

    code = serializers.CharField(max_length=100)
    expires_at = serializers.DateTimeField(required=False, allow_null=True)

    def validate_code(self, value: str) -> str:
        if not get_default_catalog().is_known(value):
            raise serializers.ValidationError(f"Unknown permission code '{value}'.")
        return value


class PermissionGrantSerializer(serializers.ModelSerializer):
    granted_by = serializers.PrimaryKeyRelatedField(read_only=True)

    class Meta:
        model = PermissionGrant
        fields = [
            "id",
            "code",
            "effect",
            "is_active",
            "expires_at",
            "granted_by",
            "created_at",
            "updated_at",
        ]
        read_only_fields = fields


class UserPermissionsSerializer(serializers.Serializer):
    """Role defaults, overrides and the resulting effective codes."""

    user_id = serializers.IntegerField()
    role = serializers.CharField()
    role_defaults = serializers.ListField(child=serializers.CharField())
    overrides = PermissionGrantSerializer(many=True)
    effective = serializers.ListField(child=serializers.CharField())


class PermissionCatalogSerializer(serializers.Serializer):
    """
    The permission universe plus each role's flattened defaults, used by
    the admin UI to build its permission picker.
    """

    codes = serializers.ListField(child=serializers.CharField())
    role_defaults = serializers.DictField(
        child=serializers.ListField(child=serializers.CharField()),
    )
