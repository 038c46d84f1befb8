"""
Accounts Service Layer.

This module is the **single source of truth** for all business logic
within the ``accounts`` app.  Views must remain *thin*: they validate
input through serializers, call a service function / method, and
return the result wrapped in a DRF ``Response``.

Architecture
------------
- ``UserRegistrationService``  — citizen self-registration.
- ``CurrentUserService``       — "Me" endpoint helpers.
- ``UserManagementService``    — listing, role change, activate / deactivate.
- ``PermissionGrantService``   — per-user GRANT / REVOKE overrides.

Every privileged method receives the acting user and checks the
required catalog permission through a ``PermissionResolver`` (the
process default unless one is passed explicitly).
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from django.contrib.auth import get_user_model
from django.db import IntegrityError, transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.domain.access import require_authenticated
from core.domain.exceptions import Conflict, NotFound, PermissionDenied, ValidationError
from core.domain.notifications import NotificationService
from core.domain.permissions import PermissionResolver, get_default_resolver
from core.permissions_constants import SystemPerms, UsersPerms

from .models import GrantEffect, PermissionGrant, UserRole

User = get_user_model()
logger = logging.getLogger(__name__)


def _resolver(resolver: PermissionResolver | None) -> PermissionResolver:
    return resolver if resolver is not None else get_default_resolver()


def _get_user_or_404(user_id: int) -> User:
    try:
        return User.objects.get(pk=user_id)
    except (User.DoesNotExist, ValueError, TypeError):
        raise NotFound(f"User with id {user_id} not found.")


# ═══════════════════════════════════════════════════════════════════
#  Registration Service
# ═══════════════════════════════════════════════════════════════════


class UserRegistrationService:
    """Citizen self-registration."""

    @staticmethod
    def register_user(validated_data: dict[str, Any]) -> User:
        """
        Create a new user with the ``CITIZEN`` role.

        Parameters
        ----------
        validated_data : dict
            Cleaned data from ``RegisterRequestSerializer`` containing
            ``username``, ``password``, ``email``, ``first_name``,
            ``last_name``, ``national_id`` and optionally
            ``phone_number``.

        Returns
        -------
        User
            The newly created (and saved) ``User`` instance.

        Raises
        ------
        core.domain.exceptions.Conflict
            If a unique field (username, email, phone_number, national_id)
            is already taken.
        """
        data = dict(validated_data)
        data.pop("password_confirm", None)
        password = data.pop("password")
        data["role"] = UserRole.CITIZEN
        if not data.get("phone_number"):
            data["phone_number"] = None

        # Pre-check uniqueness for deterministic, field-specific errors
        conflicts = []
        if User.objects.filter(username=data.get("username")).exists():
            conflicts.append("username")
        if User.objects.filter(email__iexact=data.get("email")).exists():
            conflicts.append("email")
        if data["phone_number"] and User.objects.filter(phone_number=data["phone_number"]).exists():
            conflicts.append("phone_number")
        if User.objects.filter(national_id=data.get("national_id")).exists():
            conflicts.append("national_id")

        if conflicts:
            raise Conflict(
                f"The following field(s) already exist: {', '.join(conflicts)}."
            )

        try:
            with transaction.atomic():
                user = User.objects.create_user(password=password, **data)
        except IntegrityError:
            raise Conflict(
                "A user with one of the provided unique fields already exists."
            )

        logger.info("Registered citizen user=%s", user.pk)
        return user


# ═══════════════════════════════════════════════════════════════════
#  Current User Service
# ═══════════════════════════════════════════════════════════════════


class CurrentUserService:

    #: Fields a user may change on their own profile.
    EDITABLE_FIELDS = ("first_name", "last_name", "email", "phone_number")

    @staticmethod
    def get_profile(user: User) -> User:
        require_authenticated(user)
        return user

    @staticmethod
    def update_profile(user: User, validated_data: dict[str, Any]) -> User:
        """
        Update the whitelisted profile fields.

        Role, sector and activation are privileged mutations and can
        never be changed through this path.
        """
        require_authenticated(user)
        changed = []
        for field in CurrentUserService.EDITABLE_FIELDS:
            if field in validated_data:
                value = validated_data[field]
                if field == "phone_number" and not value:
                    value = None
                setattr(user, field, value)
                changed.append(field)
        if changed:
            try:
                user.save(update_fields=changed)
            except IntegrityError:
                raise Conflict("Email or phone number is already in use.")
        return user


# ═══════════════════════════════════════════════════════════════════
#  User Management Service
# ═══════════════════════════════════════════════════════════════════


class UserManagementService:
    """
    Administrative operations on users: listing, role change,
    activation, and deactivation.
    """

    @staticmethod
    def list_users(
        actor: User,
        *,
        role: str | None = None,
        is_active: bool | None = None,
        search: str | None = None,
        resolver: PermissionResolver | None = None,
    ) -> QuerySet[User]:
        """
        Return a filtered queryset of users.

        Requires ``users.read``.  ``search`` matches username, email,
        national ID, phone number, first and last name.
        """
        require_authenticated(actor)
        _resolver(resolver).require(actor, UsersPerms.READ, UsersPerms.READ_FULL)

        qs = User.objects.all().order_by("username")
        if role:
            qs = qs.filter(role=role)
        if is_active is not None:
            qs = qs.filter(is_active=is_active)
        if search:
            qs = qs.filter(
                Q(username__icontains=search)
                | Q(email__icontains=search)
                | Q(national_id__icontains=search)
                | Q(phone_number__icontains=search)
                | Q(first_name__icontains=search)
                | Q(last_name__icontains=search)
            )
        return qs

    @staticmethod
    def get_user(
        actor: User,
        user_id: int,
        *,
        resolver: PermissionResolver | None = None,
    ) -> User:
        require_authenticated(actor)
        _resolver(resolver).require(actor, UsersPerms.READ, UsersPerms.READ_FULL)
        return _get_user_or_404(user_id)

    @staticmethod
    @transaction.atomic
    def change_role(
        actor: User,
        user_id: int,
        *,
        role: str,
        sector: str | None = None,
        resolver: PermissionResolver | None = None,
    ) -> User:
        """
        Change a user's role (and optionally their sector).

        Raises
        ------
        PermissionDenied
            Without ``users.edit.role``; when a non-super-admin tries to
            grant or remove SUPER_ADMIN; or when changing one's own role.
        ValidationError
            Unknown role.
        """
        require_authenticated(actor)
        _resolver(resolver).require(actor, UsersPerms.EDIT_ROLE)

        if role not in UserRole.values:
            raise ValidationError(errors={"role": [f"Unknown role '{role}'."]})

        target = _get_user_or_404(user_id)
        if target.pk == actor.pk:
            raise PermissionDenied("You cannot change your own role.")
        if UserRole.SUPER_ADMIN in (role, target.role) and actor.role != UserRole.SUPER_ADMIN:
            raise PermissionDenied("Only a super administrator can manage super administrators.")

        previous = target.role
        target.role = role
        update_fields = ["role"]
        if sector is not None:
            target.sector = sector
            update_fields.append("sector")
        target.save(update_fields=update_fields)
        target.clear_permission_cache()

        if previous != role:
            NotificationService.notify(
                actor=actor,
                recipients=target,
                event_type="role_changed",
                payload={"role": target.get_role_display()},
            )
        logger.info(
            "Role of user=%s changed %s -> %s by actor=%s",
            target.pk, previous, role, actor.pk,
        )
        return target

    @staticmethod
    def _set_active(
        actor: User,
        user_id: int,
        active: bool,
        resolver: PermissionResolver | None,
    ) -> User:
        require_authenticated(actor)
        _resolver(resolver).require(actor, UsersPerms.ACTIVATE)
        target = _get_user_or_404(user_id)
        if target.pk == actor.pk:
            raise PermissionDenied("You cannot change your own activation status.")
        if target.role == UserRole.SUPER_ADMIN and actor.role != UserRole.SUPER_ADMIN:
            raise PermissionDenied("Only a super administrator can manage super administrators.")
        if target.is_active != active:
            target.is_active = active
            target.save(update_fields=["is_active"])
            logger.info(
                "User=%s %s by actor=%s",
                target.pk, "activated" if active else "deactivated", actor.pk,
            )
        return target

    @staticmethod
    def activate_user(actor: User, user_id: int, *, resolver: PermissionResolver | None = None) -> User:
        return UserManagementService._set_active(actor, user_id, True, resolver)

    @staticmethod
    def deactivate_user(actor: User, user_id: int, *, resolver: PermissionResolver | None = None) -> User:
        return UserManagementService._set_active(actor, user_id, False, resolver)


# ═══════════════════════════════════════════════════════════════════
#  Permission Grant Service
# ═══════════════════════════════════════════════════════════════════


class PermissionGrantService:
    """
    Create, flip and remove per-user permission overrides.

    All mutations require ``permissions.manage`` and are refused for
    SUPER_ADMIN targets (they already hold the whole catalog).
    """

    @staticmethod
    def describe(
        actor: User,
        user_id: int,
        *,
        resolver: PermissionResolver | None = None,
    ) -> dict[str, Any]:
        """
        Return the target's role defaults, overrides and effective codes.

        Readable by holders of ``permissions.manage`` or ``users.read.full``,
        and by the target user themself.
        """
        require_authenticated(actor)
        resolver = _resolver(resolver)
        target = _get_user_or_404(user_id)
        if target.pk != actor.pk:
            resolver.require(actor, SystemPerms.MANAGE_PERMISSIONS, UsersPerms.READ_FULL)

        return {
            "user_id": target.pk,
            "role": target.role,
            "role_defaults": sorted(resolver.catalog.defaults_for(target.role)),
            "overrides": list(
                PermissionGrant.objects.filter(user=target).select_related("granted_by")
            ),
            "effective": sorted(resolver.effective_permissions(target)),
        }

    @staticmethod
    def _check_manage(actor: User, target: User, code: str, resolver: PermissionResolver) -> None:
        resolver.require(actor, SystemPerms.MANAGE_PERMISSIONS)
        if target.role == UserRole.SUPER_ADMIN:
            raise PermissionDenied("A super administrator's permissions cannot be overridden.")
        if target.pk == actor.pk:
            raise PermissionDenied("You cannot override your own permissions.")
        if not resolver.catalog.is_known(code):
            raise ValidationError(errors={"code": [f"Unknown permission code '{code}'."]})

    @staticmethod
    @transaction.atomic
    def set_override(
        actor: User,
        user_id: int,
        *,
        code: str,
        effect: str,
        expires_at: datetime | None = None,
        resolver: PermissionResolver | None = None,
    ) -> PermissionGrant:
        """
        Upsert the ``(user, code)`` override with the given effect.

        Raises
        ------
        ValidationError
            Unknown code or effect, or an expiry in the past.
        """
        require_authenticated(actor)
        resolver = _resolver(resolver)
        target = _get_user_or_404(user_id)
        PermissionGrantService._check_manage(actor, target, code, resolver)

        if effect not in GrantEffect.values:
            raise ValidationError(errors={"effect": [f"Unknown effect '{effect}'."]})
        if expires_at is not None and expires_at <= timezone.now():
            raise ValidationError(errors={"expires_at": ["Expiry must be in the future."]})

        grant, created = PermissionGrant.objects.update_or_create(
            user=target,
            code=code,
            defaults={
                "effect": effect,
                "is_active": True,
                "expires_at": expires_at,
                "granted_by": actor,
            },
        )
        target.clear_permission_cache()

        NotificationService.notify(
            actor=actor,
            recipients=target,
            event_type="permissions_changed",
            payload={"code": code, "effect": effect},
        )
        logger.info(
            "%s override %s for user=%s by actor=%s (%s)",
            effect, code, target.pk, actor.pk, "created" if created else "updated",
        )
        return grant

    @staticmethod
    def grant(actor: User, user_id: int, *, code: str, expires_at: datetime | None = None,
              resolver: PermissionResolver | None = None) -> PermissionGrant:
        return PermissionGrantService.set_override(
            actor, user_id, code=code, effect=GrantEffect.GRANT,
            expires_at=expires_at, resolver=resolver,
        )

    @staticmethod
    def revoke(actor: User, user_id: int, *, code: str, expires_at: datetime | None = None,
               resolver: PermissionResolver | None = None) -> PermissionGrant:
        return PermissionGrantService.set_override(
            actor, user_id, code=code, effect=GrantEffect.REVOKE,
            expires_at=expires_at, resolver=resolver,
        )

    @staticmethod
    @transaction.atomic
    def clear(
        actor: User,
        user_id: int,
        *,
        code: str,
        resolver: PermissionResolver | None = None,
    ) -> None:
        """Remove the override so the role default applies again."""
        require_authenticated(actor)
        resolver = _resolver(resolver)
        target = _get_user_or_404(user_id)
        PermissionGrantService._check_manage(actor, target, code, resolver)

        deleted, _ = PermissionGrant.objects.filter(user=target, code=code).delete()
        if not deleted:
            raise NotFound(f"No override for '{code}' on user {user_id}.")
        target.clear_permission_cache()
        logger.info("Cleared override %s for user=%s by actor=%s", code, target.pk, actor.pk)
