"""
Complaint visibility rules.

One predicate per role, shared by listings and single-record reads
(see ``core.domain.access.VisibilityScope``).  Roles missing from the
table (ACTIVITY_COORDINATOR, unknown values) see nothing.
"""

from __future__ import annotations

from django.db.models import Q

from core.domain.access import MATCH_ALL, MATCH_NONE, VisibilityScope
from core.permissions_constants import Roles


def _own(user) -> Q:
    return Q(created_by=user)


def _assigned(user) -> Q:
    return Q(assigned_authority=user)


def _sector(user) -> Q:
    if not user.sector:
        return MATCH_NONE
    return Q(sector=user.sector)


def _everything(user) -> Q:
    return MATCH_ALL


COMPLAINT_VISIBILITY_RULES = {
    Roles.CITIZEN: _own,
    Roles.LOCAL_AUTHORITY: _assigned,
    Roles.DELEGATION: _sector,
    Roles.ADMIN: _everything,
    Roles.SUPER_ADMIN: _everything,
    Roles.GOVERNOR: _everything,
}

COMPLAINT_SCOPE = VisibilityScope(COMPLAINT_VISIBILITY_RULES, resource="Complaint")
