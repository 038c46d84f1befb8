"""
Permissions Constants — **Single Source of Truth**

Every permission code referenced in code (services, serializers,
``setup_rbac``, tests) MUST use one of the constants defined here.

Organisation
------------
- Codes are namespaced ``resource.action`` strings (e.g.
  ``reclamations.create``).  There is no wildcard matching: every
  capability is enumerated explicitly.
- ``Roles`` holds the fixed role identifiers.  ``accounts.models.UserRole``
  builds its ``TextChoices`` from them.
- ``ROLE_DEFAULT_PERMISSIONS`` lists each role's **own** default codes.
  Inheritance (ADMIN ⊇ DELEGATION ∪ LOCAL_AUTHORITY, SUPER_ADMIN = all)
  is flattened once by ``core.domain.permissions.PermissionCatalog.build``.

Adding a new capability requires:
    1. Add the constant below.
    2. Add it to ``ALL_PERMISSION_CODES`` (via its ``*Perms`` class).
    3. Add it to the appropriate role lists in ``ROLE_DEFAULT_PERMISSIONS``.
"""

from __future__ import annotations


# ════════════════════════════════════════════════════════════════════
#  Roles
# ════════════════════════════════════════════════════════════════════

class Roles:
    """Fixed role identifiers (stored verbatim on ``User.role``)."""

    CITIZEN = "CITIZEN"
    LOCAL_AUTHORITY = "LOCAL_AUTHORITY"
    DELEGATION = "DELEGATION"
    ADMIN = "ADMIN"
    SUPER_ADMIN = "SUPER_ADMIN"
    GOVERNOR = "GOVERNOR"
    ACTIVITY_COORDINATOR = "ACTIVITY_COORDINATOR"


# ════════════════════════════════════════════════════════════════════
#  AUTH / ACCOUNTS
# ════════════════════════════════════════════════════════════════════

class AuthPerms:
    LOGIN = "auth.login"
    REGISTER = "auth.register"
    LOGOUT = "auth.logout"
    RESET_PASSWORD = "auth.reset-password"


class UsersPerms:
    """User administration and self-service profile permissions."""

    READ = "users.read"
    READ_FULL = "users.read.full"
    CREATE = "users.create"
    EDIT = "users.edit"
    EDIT_ROLE = "users.edit.role"
    """Change a user's role (privileged mutation)."""
    DELETE = "users.delete"
    ACTIVATE = "users.activate"
    SECURITY = "users.security"
    ME_READ = "users.me.read"
    ME_EDIT = "users.me.edit"


# ════════════════════════════════════════════════════════════════════
#  RECLAMATIONS (complaints)
# ════════════════════════════════════════════════════════════════════

class ReclamationsPerms:
    """Complaint lifecycle permissions."""

    READ = "reclamations.read"
    """Read own complaints."""
    READ_ALL = "reclamations.read.all"
    READ_ASSIGNED = "reclamations.read.assigned"
    CREATE = "reclamations.create"
    EDIT = "reclamations.edit"
    """Owner edits title/description while the complaint is pending."""
    DELETE = "reclamations.delete"
    """Owner withdraws a pending or rejected complaint."""
    DELETE_ANY = "reclamations.delete.any"
    """Privileged hard delete regardless of owner or status."""
    ARCHIVE = "reclamations.archive"
    ASSIGN = "reclamations.assign"
    VALIDATE = "reclamations.validate"
    """Triage: accept or reject a pending complaint."""
    RESOLVE = "reclamations.resolve"
    COMMENT_INTERNAL = "reclamations.comment.internal"


# ════════════════════════════════════════════════════════════════════
#  Other platform modules (catalogued, served by other services)
# ════════════════════════════════════════════════════════════════════

class EvenementsPerms:
    READ = "evenements.read"
    READ_ALL = "evenements.read.all"
    CREATE = "evenements.create"
    EDIT = "evenements.edit"
    EDIT_ALL = "evenements.edit.all"
    DELETE = "evenements.delete"
    VALIDATE = "evenements.validate"
    FEATURE = "evenements.feature"
    SUBSCRIBE = "evenements.subscribe"
    PARTICIPATE = "evenements.participate"
    REPORT = "evenements.report"


class ActualitesPerms:
    READ = "actualites.read"
    CREATE = "actualites.create"
    EDIT = "actualites.edit"
    DELETE = "actualites.delete"
    PUBLISH = "actualites.publish"
    VALIDATE = "actualites.validate"


class EtablissementsPerms:
    READ = "etablissements.read"
    CREATE = "etablissements.create"
    EDIT = "etablissements.edit"
    DELETE = "etablissements.delete"
    VALIDATE = "etablissements.validate"
    PUBLISH = "etablissements.publish"
    SUBSCRIBE = "etablissements.subscribe"


class EvaluationsPerms:
    READ = "evaluations.read"
    CREATE = "evaluations.create"
    EDIT = "evaluations.edit"
    DELETE = "evaluations.delete"
    VALIDATE = "evaluations.validate"
    REPORT = "evaluations.report"


class CampagnesPerms:
    READ = "campagnes.read"
    CREATE = "campagnes.create"
    EDIT = "campagnes.edit"
    DELETE = "campagnes.delete"
    ACTIVATE = "campagnes.activate"
    PARTICIPATE = "campagnes.participate"


class ProgrammesPerms:
    READ = "programmes.read"
    CREATE = "programmes.create"
    EDIT = "programmes.edit"
    DELETE = "programmes.delete"
    VALIDATE = "programmes.validate"
    REPORT = "programmes.report"


class SuggestionsPerms:
    CREATE = "suggestions.create"
    READ_OWN = "suggestions.read.own"


class StatsPerms:
    VIEW_GLOBAL = "stats.view.global"
    VIEW_SECTOR = "stats.view.secteur"
    VIEW_COMMUNE = "stats.view.commune"
    VIEW_ESTABLISHMENT = "stats.view.etablissement"
    EXPORT_REPORTS = "reports.export"


class MapPerms:
    VIEW = "map.view"
    VIEW_FULL = "map.view.full"


class SystemPerms:
    SETTINGS_READ = "system.settings.read"
    SETTINGS_EDIT = "system.settings.edit"
    LOGS_VIEW = "system.logs.view"
    BACKUP = "system.backup"
    RESTORE = "system.restore"
    MANAGE_PERMISSIONS = "permissions.manage"
    """Grant / revoke per-user permission overrides."""
    MANAGE_COMMUNES = "communes.manage"


_PERMISSION_CLASSES = (
    AuthPerms,
    UsersPerms,
    ReclamationsPerms,
    EvenementsPerms,
    ActualitesPerms,
    EtablissementsPerms,
    EvaluationsPerms,
    CampagnesPerms,
    ProgrammesPerms,
    SuggestionsPerms,
    StatsPerms,
    MapPerms,
    SystemPerms,
)


def _collect_codes(*classes: type) -> frozenset[str]:
    return frozenset(
        value
        for cls in classes
        for name, value in vars(cls).items()
        if name.isupper() and isinstance(value, str)
    )


#: Complete universe of valid permission codes.
ALL_PERMISSION_CODES: frozenset[str] = _collect_codes(*_PERMISSION_CLASSES)


# ════════════════════════════════════════════════════════════════════
#  Role → own default permissions
# ════════════════════════════════════════════════════════════════════

_BASE_PERMISSIONS: tuple[str, ...] = (
    AuthPerms.LOGIN, AuthPerms.LOGOUT, AuthPerms.RESET_PASSWORD,
    UsersPerms.ME_READ, UsersPerms.ME_EDIT,
)

_BASE_READ_PERMISSIONS: tuple[str, ...] = (
    MapPerms.VIEW,
    ActualitesPerms.READ, CampagnesPerms.READ,
    EvenementsPerms.READ, EtablissementsPerms.READ,
)

ROLE_DEFAULT_PERMISSIONS: dict[str, tuple[str, ...]] = {

    # ── Citizen ─────────────────────────────────────────────────────
    Roles.CITIZEN: (
        *_BASE_PERMISSIONS,
        ReclamationsPerms.CREATE, ReclamationsPerms.READ,
        ReclamationsPerms.EDIT, ReclamationsPerms.DELETE,
        EtablissementsPerms.READ, EtablissementsPerms.SUBSCRIBE,
        EvenementsPerms.READ, EvenementsPerms.SUBSCRIBE,
        EvenementsPerms.PARTICIPATE,
        EvaluationsPerms.CREATE, EvaluationsPerms.READ,
        EvaluationsPerms.EDIT, EvaluationsPerms.DELETE,
        EvaluationsPerms.REPORT,
        ActualitesPerms.READ,
        CampagnesPerms.READ, CampagnesPerms.PARTICIPATE,
        SuggestionsPerms.CREATE, SuggestionsPerms.READ_OWN,
        MapPerms.VIEW,
    ),

    # ── Delegation (sector-scoped) ──────────────────────────────────
    Roles.DELEGATION: (
        *_BASE_PERMISSIONS,
        *_BASE_READ_PERMISSIONS,
        EvenementsPerms.CREATE, EvenementsPerms.EDIT,
        EvenementsPerms.DELETE, EvenementsPerms.REPORT,
        ActualitesPerms.CREATE, ActualitesPerms.EDIT,
        ActualitesPerms.DELETE, ActualitesPerms.PUBLISH,
        CampagnesPerms.CREATE, CampagnesPerms.EDIT, CampagnesPerms.ACTIVATE,
        StatsPerms.VIEW_SECTOR, StatsPerms.VIEW_ESTABLISHMENT,
    ),

    # ── Local authority ─────────────────────────────────────────────
    Roles.LOCAL_AUTHORITY: (
        *_BASE_PERMISSIONS,
        *_BASE_READ_PERMISSIONS,
        ReclamationsPerms.READ_ASSIGNED, ReclamationsPerms.RESOLVE,
        ReclamationsPerms.COMMENT_INTERNAL,
        EvenementsPerms.REPORT,
        StatsPerms.VIEW_COMMUNE, StatsPerms.VIEW_ESTABLISHMENT,
    ),

    # ── Activity coordinator ────────────────────────────────────────
    Roles.ACTIVITY_COORDINATOR: (
        *_BASE_PERMISSIONS,
        *_BASE_READ_PERMISSIONS,
        ProgrammesPerms.READ, ProgrammesPerms.CREATE,
        ProgrammesPerms.EDIT, ProgrammesPerms.DELETE,
        ProgrammesPerms.REPORT,
        StatsPerms.VIEW_ESTABLISHMENT,
    ),

    # ── Administrator (also inherits DELEGATION + LOCAL_AUTHORITY) ──
    Roles.ADMIN: (
        *_BASE_PERMISSIONS,
        *_BASE_READ_PERMISSIONS,
        UsersPerms.READ, UsersPerms.READ_FULL, UsersPerms.CREATE,
        UsersPerms.EDIT, UsersPerms.EDIT_ROLE, UsersPerms.ACTIVATE,
        ReclamationsPerms.READ_ALL, ReclamationsPerms.VALIDATE,
        ReclamationsPerms.ASSIGN, ReclamationsPerms.ARCHIVE,
        ReclamationsPerms.DELETE_ANY,
        EvenementsPerms.READ_ALL, EvenementsPerms.VALIDATE,
        EvenementsPerms.DELETE, EvenementsPerms.FEATURE,
        EvenementsPerms.EDIT_ALL, EvenementsPerms.REPORT,
        ActualitesPerms.VALIDATE, ActualitesPerms.PUBLISH,
        ActualitesPerms.DELETE,
        EtablissementsPerms.CREATE, EtablissementsPerms.EDIT,
        EtablissementsPerms.VALIDATE, EtablissementsPerms.PUBLISH,
        EtablissementsPerms.DELETE,
        EvaluationsPerms.VALIDATE, EvaluationsPerms.DELETE,
        CampagnesPerms.ACTIVATE,
        ProgrammesPerms.VALIDATE,
        StatsPerms.VIEW_GLOBAL, StatsPerms.VIEW_SECTOR,
        StatsPerms.VIEW_COMMUNE, StatsPerms.EXPORT_REPORTS,
        SystemPerms.MANAGE_COMMUNES, SystemPerms.LOGS_VIEW,
    ),

    # ── Governor (global read-only) ─────────────────────────────────
    Roles.GOVERNOR: (
        *_BASE_PERMISSIONS,
        UsersPerms.READ,
        ReclamationsPerms.READ_ALL,
        EvenementsPerms.READ_ALL,
        ActualitesPerms.READ, EtablissementsPerms.READ,
        CampagnesPerms.READ, ProgrammesPerms.READ,
        StatsPerms.VIEW_GLOBAL, StatsPerms.VIEW_SECTOR,
        StatsPerms.VIEW_COMMUNE, StatsPerms.VIEW_ESTABLISHMENT,
        StatsPerms.EXPORT_REPORTS,
        MapPerms.VIEW_FULL,
    ),

    # ── Super administrator: receives the whole universe at build time
    Roles.SUPER_ADMIN: (),
}

#: Roles whose flattened defaults include other roles' defaults.
ROLE_INHERITANCE: dict[str, tuple[str, ...]] = {
    Roles.ADMIN: (Roles.DELEGATION, Roles.LOCAL_AUTHORITY),
}

#: Roles that receive every code in the universe.
UNRESTRICTED_ROLES: frozenset[str] = frozenset({Roles.SUPER_ADMIN})
