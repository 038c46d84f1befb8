"""
Accounts app models.

Defines the custom ``User`` (the *actor* of every complaint operation)
with its fixed role enumeration, and ``PermissionGrant`` — the per-user
override records that the permission resolver merges with role
defaults.
"""

from django.conf import settings
from django.contrib.auth.models import AbstractUser
from django.db import models

from core.models import TimeStampedModel
from core.permissions_constants import Roles


class UserRole(models.TextChoices):
    """
    Fixed role enumeration.

    Self-registration always yields ``CITIZEN``; every other role is
    assigned by an administrator through ``UserManagementService``.
    """

    CITIZEN = Roles.CITIZEN, "Citizen"
    LOCAL_AUTHORITY = Roles.LOCAL_AUTHORITY, "Local Authority"
    DELEGATION = Roles.DELEGATION, "Delegation"
    ADMIN = Roles.ADMIN, "Administrator"
    SUPER_ADMIN = Roles.SUPER_ADMIN, "Super Administrator"
    GOVERNOR = Roles.GOVERNOR, "Governor"
    ACTIVITY_COORDINATOR = Roles.ACTIVITY_COORDINATOR, "Activity Coordinator"


class User(AbstractUser):
    """
    Custom user model for the complaint platform.

    Login is supported via *any one* of username / national_id /
    phone_number / email together with the password.

    ``sector`` scopes a DELEGATION's complaint visibility (and is the
    default dispatch sector of a LOCAL_AUTHORITY).  Users referencing
    complaints are deactivated rather than deleted (``PROTECT`` on the
    complaint owner FK).
    """

    national_id = models.CharField(
        max_length=20,
        unique=True,
        verbose_name="National ID",
        db_index=True,
    )
    phone_number = models.CharField(
        max_length=20,
        unique=True,
        null=True,
        blank=True,
        verbose_name="Phone Number",
    )
    email = models.EmailField(
        unique=True,
        verbose_name="Email Address",
    )

    # ── Fixed-role assignment ────────────────────────────────────────
    role = models.CharField(
        max_length=32,
        choices=UserRole.choices,
        default=UserRole.CITIZEN,
        db_index=True,
        verbose_name="Role",
    )
    sector = models.CharField(
        max_length=100,
        blank=True,
        default="",
        verbose_name="Sector",
        help_text="Sector a Delegation (or Local Authority) is responsible for.",
    )
    managed_establishment_ids = models.JSONField(
        default=list,
        blank=True,
        verbose_name="Managed Establishments",
        help_text="IDs of the establishments this user manages.",
    )

    # Fields required when creating a superuser via CLI
    REQUIRED_FIELDS = ["email", "national_id", "first_name", "last_name"]

    class Meta:
        verbose_name = "User"
        verbose_name_plural = "Users"

    def __str__(self):
        return f"{self.username} ({self.get_full_name()}) - {self.get_role_display()}"

    # ── Helper predicates for role checks ────────────────────────────

    def has_role(self, *roles: str) -> bool:
        """Check if the user's role is one of ``roles``."""
        return self.role in roles

    # ── Permission resolution (catalog + overrides) ──────────────────

    def clear_permission_cache(self) -> None:
        """Forget memoised overrides after a grant/revoke."""
        for attr in ("_grant_cache", "_perm_cache"):
            if hasattr(self, attr):
                delattr(self, attr)

    def get_all_permissions(self, obj=None) -> set:
        """
        Return the set of permission codes the user holds
        (role defaults merged with active overrides).
        """
        from core.domain.permissions import get_default_resolver

        if not hasattr(self, "_perm_cache"):
            self._perm_cache = set(get_default_resolver().effective_permissions(self))
        return self._perm_cache

    def has_perm(self, perm: str, obj=None) -> bool:
        """
        Check a catalog permission code.

        Superusers always pass so the Django admin stays usable.
        """
        if self.is_active and self.is_superuser:
            return True

        from core.domain.permissions import get_default_resolver

        return get_default_resolver().has_permission(self, perm)

    def has_module_perms(self, app_label: str) -> bool:
        return self.is_active and self.is_superuser

    @property
    def permissions_list(self) -> list[str]:
        """
        Sorted list of permission codes, for serializers and JWT claims
        so the frontend can render conditional UI modules.
        """
        return sorted(self.get_all_permissions())


class GrantEffect(models.TextChoices):
    GRANT = "GRANT", "Grant"
    REVOKE = "REVOKE", "Revoke"


class PermissionGrant(TimeStampedModel):
    """
    Per-user override of a role default.

    * ``REVOKE`` always wins over a role default.
    * ``GRANT`` adds a capability the role lacks.

    Only active rows whose ``expires_at`` is unset or in the future take
    part in resolution.  One row per ``(user, code)``; granting after a
    revoke flips the existing row's effect.
    """

    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="permission_grants",
        verbose_name="User",
    )
    code = models.CharField(
        max_length=100,
        verbose_name="Permission Code",
    )
    effect = models.CharField(
        max_length=6,
        choices=GrantEffect.choices,
        verbose_name="Effect",
    )
    is_active = models.BooleanField(default=True, verbose_name="Active")
    expires_at = models.DateTimeField(
        null=True,
        blank=True,
        verbose_name="Expires At",
    )
    granted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Granted By",
    )

    class Meta:
        verbose_name = "Permission Grant"
        verbose_name_plural = "Permission Grants"
        ordering = ["code"]
        constraints = [
            models.UniqueConstraint(
                fields=["user", "code"],
                name="unique_permission_grant_per_user",
            ),
        ]

    def __str__(self):
        return f"{self.effect} {self.code} → {self.user_id}"
