"""
core.domain.permissions — Permission catalog and resolver.

The catalog is an **immutable value** built once from the tables in
``core.permissions_constants``.  Role inheritance is flattened at build
time so that resolution is a plain set-membership test, never a
recursive walk.

The resolver combines the catalog's role defaults with per-user
overrides (``accounts.PermissionGrant``):

    ┌────────────────────┐    ┌───────────────────────┐
    │  PermissionCatalog │───▶│  PermissionResolver   │──▶ bool
    │  (role defaults)   │    │  + override loader    │
    └────────────────────┘    └───────────────────────┘

Usage::

    from core.domain.permissions import get_default_resolver
    from core.permissions_constants import ReclamationsPerms

    resolver = get_default_resolver()
    if resolver.has_permission(request.user, ReclamationsPerms.ASSIGN):
        ...

Tests can build alternate catalogs::

    catalog = PermissionCatalog.build(
        role_defaults={"CITIZEN": ("reclamations.create",)},
        universe={"reclamations.create", "reclamations.assign"},
    )
    resolver = PermissionResolver(catalog, override_loader=lambda actor: {})
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import TYPE_CHECKING, Any, Callable, Iterable, Mapping

from core.domain.exceptions import PermissionDenied

if TYPE_CHECKING:
    from accounts.models import User

logger = logging.getLogger(__name__)

GRANT = "GRANT"
REVOKE = "REVOKE"

#: ``actor -> {code: "GRANT" | "REVOKE"}`` for the actor's active overrides.
OverrideLoader = Callable[[Any], Mapping[str, str]]


@dataclass(frozen=True)
class PermissionCatalog:
    """
    Static registry of valid permission codes and flattened role defaults.

    Instances are immutable: ``universe`` is a ``frozenset`` and
    ``role_defaults`` is a read-only mapping of ``frozenset`` values.
    Construct through :meth:`build`.
    """

    universe: frozenset[str]
    role_defaults: Mapping[str, frozenset[str]] = field(
        default_factory=lambda: MappingProxyType({}),
    )

    @classmethod
    def build(
        cls,
        *,
        role_defaults: Mapping[str, Iterable[str]],
        universe: Iterable[str],
        inherits: Mapping[str, Iterable[str]] | None = None,
        unrestricted_roles: Iterable[str] = (),
    ) -> PermissionCatalog:
        """
        Flatten role inheritance and freeze the result.

        Parameters
        ----------
        role_defaults : Mapping[str, Iterable[str]]
            Each role's **own** default codes.
        universe : Iterable[str]
            Every valid code.
        inherits : Mapping[str, Iterable[str]], optional
            ``role -> parent roles`` whose defaults are merged in.
            Parents may themselves inherit; cycles are rejected.
        unrestricted_roles : Iterable[str]
            Roles that receive the whole universe.

        Raises
        ------
        ValueError
            If a default references a code outside the universe, or the
            inheritance graph contains a cycle.
        """
        universe = frozenset(universe)
        inherits = {role: tuple(parents) for role, parents in (inherits or {}).items()}
        unrestricted = frozenset(unrestricted_roles)

        own: dict[str, frozenset[str]] = {}
        for role, codes in role_defaults.items():
            codes = frozenset(codes)
            unknown = codes - universe
            if unknown:
                raise ValueError(
                    f"Role '{role}' references unknown permission code(s): "
                    f"{', '.join(sorted(unknown))}."
                )
            own[role] = codes

        flattened: dict[str, frozenset[str]] = {}

        def _resolve(role: str, chain: tuple[str, ...]) -> frozenset[str]:
            if role in chain:
                raise ValueError(
                    f"Cyclic role inheritance: {' -> '.join(chain + (role,))}."
                )
            if role in flattened:
                return flattened[role]
            codes = set(own.get(role, frozenset()))
            for parent in inherits.get(role, ()):
                codes |= _resolve(parent, chain + (role,))
            result = frozenset(codes)
            flattened[role] = result
            return result

        for role in set(own) | set(inherits):
            _resolve(role, ())
        for role in unrestricted:
            flattened[role] = universe

        return cls(universe=universe, role_defaults=MappingProxyType(flattened))

    def is_known(self, code: str) -> bool:
        return code in self.universe

    def defaults_for(self, role: str | None) -> frozenset[str]:
        """Flattened default codes for ``role`` (empty for unknown roles)."""
        if role is None:
            return frozenset()
        return self.role_defaults.get(role, frozenset())

    def in_role_defaults(self, role: str | None, code: str) -> bool:
        return code in self.defaults_for(role)


@functools.lru_cache(maxsize=1)
def get_default_catalog() -> PermissionCatalog:
    """Return the process-wide catalog built from ``core.permissions_constants``."""
    from core.permissions_constants import (
        ALL_PERMISSION_CODES,
        ROLE_DEFAULT_PERMISSIONS,
        ROLE_INHERITANCE,
        UNRESTRICTED_ROLES,
    )

    catalog = PermissionCatalog.build(
        role_defaults=ROLE_DEFAULT_PERMISSIONS,
        universe=ALL_PERMISSION_CODES,
        inherits=ROLE_INHERITANCE,
        unrestricted_roles=UNRESTRICTED_ROLES,
    )
    logger.debug(
        "Permission catalog built: %d codes, %d roles",
        len(catalog.universe),
        len(catalog.role_defaults),
    )
    return catalog


def load_grant_overrides(actor: User) -> Mapping[str, str]:
    """
    Default override loader: the actor's active, unexpired grants.

    The result is memoised on the actor instance (``_grant_cache``) so a
    request that checks several codes hits the database once.  Call
    ``actor.clear_permission_cache()`` after changing overrides.
    """
    cached = getattr(actor, "_grant_cache", None)
    if cached is not None:
        return cached

    from django.db.models import Q
    from django.utils import timezone

    from accounts.models import PermissionGrant

    rows = (
        PermissionGrant.objects
        .filter(user_id=actor.pk, is_active=True)
        .filter(Q(expires_at__isnull=True) | Q(expires_at__gt=timezone.now()))
        .values_list("code", "effect")
    )
    overrides = MappingProxyType(dict(rows))
    actor._grant_cache = overrides
    return overrides


class PermissionResolver:
    """
    Decide allow/deny for ``(actor, code)``.

    Resolution order:
        1. No actor / anonymous / inactive → deny.
        2. Code outside the catalog universe → deny.
        3. Explicit REVOKE override → deny.
        4. Explicit GRANT override → allow.
        5. Otherwise the role default.

    ``has_permission`` never raises; denial is a return value.
    """

    def __init__(
        self,
        catalog: PermissionCatalog,
        override_loader: OverrideLoader = load_grant_overrides,
    ) -> None:
        self.catalog = catalog
        self._load_overrides = override_loader

    @staticmethod
    def _is_active_actor(actor: Any) -> bool:
        if actor is None:
            return False
        if not getattr(actor, "is_authenticated", False):
            return False
        return bool(getattr(actor, "is_active", False))

    def has_permission(self, actor: Any, code: str) -> bool:
        if not self._is_active_actor(actor):
            return False
        if not self.catalog.is_known(code):
            return False

        overrides = self._load_overrides(actor)
        effect = overrides.get(code)
        if effect == REVOKE:
            return False
        if effect == GRANT:
            return True
        return self.catalog.in_role_defaults(getattr(actor, "role", None), code)

    def has_any(self, actor: Any, *codes: str) -> bool:
        return any(self.has_permission(actor, code) for code in codes)

    def effective_permissions(self, actor: Any) -> frozenset[str]:
        """All codes ``actor`` currently holds (defaults ± overrides)."""
        if not self._is_active_actor(actor):
            return frozenset()
        codes = set(self.catalog.defaults_for(getattr(actor, "role", None)))
        for code, effect in self._load_overrides(actor).items():
            if not self.catalog.is_known(code):
                continue
            if effect == REVOKE:
                codes.discard(code)
            elif effect == GRANT:
                codes.add(code)
        return frozenset(codes)

    def require(self, actor: Any, *codes: str, message: str = "") -> None:
        """
        Raise ``PermissionDenied`` unless ``actor`` holds at least one of
        ``codes`` (OR-logic: holding any one is sufficient).
        """
        if self.has_any(actor, *codes):
            return
        raise PermissionDenied(
            message or f"Missing required permission: {', '.join(codes)}."
        )


@functools.lru_cache(maxsize=1)
def get_default_resolver() -> PermissionResolver:
    return PermissionResolver(get_default_catalog())
