"""
Append-only audit trail for complaint transitions.

Entries are written inside the transition's own transaction, so a
failed audit write rolls the transition back with it.
"""

from __future__ import annotations

import logging
from typing import Any

from django.db import transaction
from django.db.models import QuerySet

from .models import Complaint, ComplaintAuditEntry

logger = logging.getLogger(__name__)


class AuditTrail:

    def append(
        self,
        complaint: Complaint,
        *,
        actor: Any,
        action: str,
        detail: dict[str, Any] | None = None,
    ) -> ComplaintAuditEntry:
        """
        Record one transition.

        Raises
        ------
        RuntimeError
            When called outside ``transaction.atomic``: an entry written
            on its own could survive a rolled-back transition.
        """
        if not transaction.get_connection().in_atomic_block:
            raise RuntimeError("AuditTrail.append must run inside transaction.atomic().")

        entry = ComplaintAuditEntry.objects.create(
            complaint_id=complaint.pk,
            actor=actor if getattr(actor, "pk", None) else None,
            action=action,
            detail=detail or {},
        )
        logger.debug("Audit %s on complaint=%s by actor=%s", action, complaint.pk, entry.actor_id)
        return entry

    def entries_for(self, complaint_id: int) -> QuerySet[ComplaintAuditEntry]:
        """Chronological entries for ``complaint_id``."""
        return (
            ComplaintAuditEntry.objects
            .filter(complaint_id=complaint_id)
            .select_related("actor")
            .order_by("created_at", "id")
        )
