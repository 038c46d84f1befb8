"""
core.domain.access — Role-scoped visibility predicates (shared patterns).

╔══════════════════════════════════════════════════════════════════╗
║  IMPORTANT — Per-app scoping rules do NOT live here.           ║
║  Each app owns its rule table (e.g. ``complaints.scopes``).    ║
║  This module provides:                                         ║
║    1) ``VisibilityScope`` — one predicate for list AND get.    ║
║    2) ``require_authenticated`` — actor presence guard.        ║
╚══════════════════════════════════════════════════════════════════╝

Architecture overview
---------------------
A visibility scope turns an actor into a single ``Q`` predicate.  The
same predicate is pushed into SQL for listings and re-applied to the
single-row lookup for detail reads, so the two paths cannot drift apart:

    ┌─────────┐      ┌────────────────┐      ┌──────────────────┐
    │  View   │─────▶│  App service   │─────▶│ VisibilityScope  │
    │ (thin)  │      │ (owns rules)   │      │  .predicate(u)   │
    └─────────┘      └────────────────┘      └──────────────────┘

Usage in an app's service layer::

    from core.domain.access import VisibilityScope, MATCH_ALL

    COMPLAINT_SCOPE = VisibilityScope({
        "CITIZEN": lambda u: Q(created_by=u),
        "ADMIN":   lambda u: MATCH_ALL,
    })

    qs = COMPLAINT_SCOPE.apply(Complaint.objects.all(), user)
    one = COMPLAINT_SCOPE.get_visible(Complaint.objects.all(), user, pk)
"""

from __future__ import annotations

from typing import Any, Callable, Mapping

from django.db.models import Q, QuerySet

from core.domain.exceptions import NotFound, Unauthenticated
from core.domain.security import log_security_event

#: Predicate builder: takes the actor, returns a ``Q`` over the model.
PredicateBuilder = Callable[[Any], Q]

#: Matches every row.
MATCH_ALL = Q()

#: Matches no row (``pk IN ()`` short-circuits to an empty result).
MATCH_NONE = Q(pk__in=[])


def require_authenticated(actor: Any) -> None:
    """Raise ``Unauthenticated`` unless ``actor`` is a logged-in, active user."""
    if (
        actor is None
        or not getattr(actor, "is_authenticated", False)
        or not getattr(actor, "is_active", False)
    ):
        raise Unauthenticated()


class VisibilityScope:
    """
    Per-role visibility predicate shared by listing and detail reads.

    Parameters
    ----------
    rules : Mapping[str, PredicateBuilder]
        ``role -> builder``.  Roles absent from the mapping (and a
        missing actor) match nothing; the scope never widens to
        "everything" by default.
    resource : str
        Label used in log records and ``NotFound`` messages.
    """

    def __init__(self, rules: Mapping[str, PredicateBuilder], *, resource: str = "Record") -> None:
        self._rules = dict(rules)
        self.resource = resource

    def predicate(self, actor: Any) -> Q:
        if actor is None or not getattr(actor, "is_authenticated", False):
            return MATCH_NONE
        builder = self._rules.get(getattr(actor, "role", None))
        if builder is None:
            return MATCH_NONE
        return builder(actor)

    def apply(self, queryset: QuerySet, actor: Any) -> QuerySet:
        """Listing path: push the predicate into the query."""
        return queryset.filter(self.predicate(actor))

    def is_visible(self, queryset: QuerySet, actor: Any, pk: Any) -> bool:
        try:
            return queryset.filter(pk=pk).filter(self.predicate(actor)).exists()
        except (ValueError, TypeError):
            return False

    def get_visible(
        self,
        queryset: QuerySet,
        actor: Any,
        pk: Any,
        *,
        ip: str | None = None,
    ) -> Any:
        """
        Detail path: fetch ``pk`` and apply the same predicate.

        Raises
        ------
        NotFound
            If the row does not exist, ``pk`` is malformed, **or** the row
            exists outside the actor's scope.  The last case is also
            logged as a security event; the caller cannot tell them apart.
        """
        try:
            return self.apply(queryset, actor).get(pk=pk)
        except queryset.model.DoesNotExist:
            pass
        except (ValueError, TypeError):
            # Malformed key: no row can match it.
            raise NotFound(f"{self.resource} with id {pk} not found.")

        if queryset.filter(pk=pk).exists():
            log_security_event(
                "visibility_violation",
                actor=actor,
                target_id=pk,
                ip=ip,
                resource=self.resource,
            )
        raise NotFound(f"{self.resource} with id {pk} not found.")
