"""
Complaint lifecycle state machine.

Pure transition logic over a ``Complaint`` instance: every method checks
its precondition, mutates the instance in memory and returns the names
of the fields it changed.  Nothing here touches the database; locking,
saving, auditing and notification belong to ``ComplaintService``.

Lifecycle::

    submit ─▶ PENDING ──accept──▶ ACCEPTED ──assign──▶ ASSIGNED ──resolve──▶ resolved
                 │                    ▲                   │                     │
                 │                    └─────unassign──────┘                     │
                 └──reject──▶ REJECTED ─────────────archive◀────────────────────┘

Each transition name maps to exactly one permission code in
``TRANSITION_PERMISSIONS``.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from core.domain.exceptions import InvalidTransition, ValidationError
from core.permissions_constants import ReclamationsPerms, Roles

from .models import AssignmentState, Complaint, ComplaintStatus

# ── Transition names ────────────────────────────────────────────────
SUBMIT = "submit"
ACCEPT = "accept"
REJECT = "reject"
ASSIGN = "assign"
UNASSIGN = "unassign"
RESOLVE = "resolve"
EDIT_CONTENT = "edit_content"
WITHDRAW = "withdraw"
ARCHIVE = "archive"

TRANSITION_PERMISSIONS: dict[str, str] = {
    SUBMIT: ReclamationsPerms.CREATE,
    ACCEPT: ReclamationsPerms.VALIDATE,
    REJECT: ReclamationsPerms.VALIDATE,
    ASSIGN: ReclamationsPerms.ASSIGN,
    UNASSIGN: ReclamationsPerms.ASSIGN,
    RESOLVE: ReclamationsPerms.RESOLVE,
    EDIT_CONTENT: ReclamationsPerms.EDIT,
    WITHDRAW: ReclamationsPerms.DELETE,
    ARCHIVE: ReclamationsPerms.ARCHIVE,
}

#: Withdrawal by a non-owner, regardless of status.
WITHDRAW_ANY_PERMISSION = ReclamationsPerms.DELETE_ANY

#: Roles allowed to resolve a complaint assigned to someone else.
RESOLVE_OVERRIDE_ROLES = frozenset({Roles.ADMIN, Roles.SUPER_ADMIN})

#: Statuses in which the owner may still withdraw their complaint.
OWNER_WITHDRAWABLE_STATUSES = frozenset({ComplaintStatus.PENDING, ComplaintStatus.REJECTED})

#: Fields a content edit may change.
CONTENT_FIELDS = ("title", "description")


class ComplaintStateMachine:
    """
    Named transitions over a complaint.

    All methods are static: the machine carries no state of its own.
    Each one raises ``InvalidTransition`` when its precondition fails
    and calls :meth:`check_invariants` before returning.
    """

    # ── Invariants ───────────────────────────────────────────────────

    @staticmethod
    def check_invariants(complaint: Complaint) -> None:
        """
        Validate the structural invariants of a complaint.

        * ``assignment = ASSIGNED`` ⇒ ``status = ACCEPTED`` and an
          authority is set.
        * ``resolved_at`` set ⇒ ``assignment = ASSIGNED``.
        """
        if complaint.assignment == AssignmentState.ASSIGNED:
            if complaint.status != ComplaintStatus.ACCEPTED:
                raise InvalidTransition(
                    current=complaint.status,
                    target=AssignmentState.ASSIGNED,
                    reason="Only accepted complaints can be assigned.",
                )
            if complaint.assigned_authority_id is None:
                raise InvalidTransition(
                    current=complaint.assignment,
                    target=AssignmentState.ASSIGNED,
                    reason="An assigned complaint needs an authority.",
                )
        if complaint.resolved_at is not None and complaint.assignment != AssignmentState.ASSIGNED:
            raise InvalidTransition(
                current=complaint.assignment,
                target="RESOLVED",
                reason="Only assigned complaints can be resolved.",
            )

    # ── Creation ─────────────────────────────────────────────────────

    @staticmethod
    def submit(complaint: Complaint) -> list[str]:
        if complaint.pk is not None:
            raise InvalidTransition(
                current=complaint.status,
                target=ComplaintStatus.PENDING,
                reason="The complaint has already been submitted.",
            )
        complaint.status = ComplaintStatus.PENDING
        complaint.assignment = AssignmentState.UNASSIGNED
        complaint.assigned_authority = None
        complaint.resolved_at = None
        complaint.archived = False
        ComplaintStateMachine.check_invariants(complaint)
        return ["status", "assignment"]

    # ── Triage ───────────────────────────────────────────────────────

    @staticmethod
    def _require_pending(complaint: Complaint, target: str) -> None:
        if complaint.status != ComplaintStatus.PENDING:
            raise InvalidTransition(
                current=complaint.status,
                target=target,
                reason="Only pending complaints can be triaged.",
            )

    @staticmethod
    def accept(complaint: Complaint, *, actor: Any, now: datetime) -> list[str]:
        ComplaintStateMachine._require_pending(complaint, ComplaintStatus.ACCEPTED)
        complaint.status = ComplaintStatus.ACCEPTED
        complaint.decided_by = actor
        complaint.decided_at = now
        ComplaintStateMachine.check_invariants(complaint)
        return ["status", "decided_by", "decided_at", "updated_at"]

    @staticmethod
    def reject(
        complaint: Complaint,
        *,
        actor: Any,
        now: datetime,
        reason: str | None = None,
    ) -> list[str]:
        ComplaintStateMachine._require_pending(complaint, ComplaintStatus.REJECTED)
        complaint.status = ComplaintStatus.REJECTED
        complaint.rejection_reason = reason or ""
        complaint.decided_by = actor
        complaint.decided_at = now
        complaint.assignment = AssignmentState.UNASSIGNED
        complaint.assigned_authority = None
        complaint.assigned_by = None
        complaint.assigned_at = None
        ComplaintStateMachine.check_invariants(complaint)
        return [
            "status", "rejection_reason", "decided_by", "decided_at",
            "assignment", "assigned_authority", "assigned_by", "assigned_at",
            "updated_at",
        ]

    # ── Dispatch ─────────────────────────────────────────────────────

    @staticmethod
    def validate_authority(authority: Any) -> None:
        """The assign target must be an active LOCAL_AUTHORITY."""
        if authority is None or not authority.is_active or authority.role != Roles.LOCAL_AUTHORITY:
            raise ValidationError(
                "Invalid assignment target.",
                errors={"authority_id": ["Target must be an active local authority."]},
            )

    @staticmethod
    def check_assignable(complaint: Complaint) -> None:
        if complaint.archived:
            raise InvalidTransition(
                current="ARCHIVED",
                target=AssignmentState.ASSIGNED,
                reason="Archived complaints cannot be assigned.",
            )
        if complaint.status != ComplaintStatus.ACCEPTED:
            raise InvalidTransition(
                current=complaint.status,
                target=AssignmentState.ASSIGNED,
                reason="Only accepted complaints can be assigned.",
            )
        if complaint.assignment != AssignmentState.UNASSIGNED:
            raise InvalidTransition(
                current=complaint.assignment,
                target=AssignmentState.ASSIGNED,
                reason="The complaint is already assigned.",
            )

    @staticmethod
    def assign(
        complaint: Complaint,
        *,
        actor: Any,
        authority: Any,
        now: datetime,
        sector: str | None = None,
    ) -> list[str]:
        ComplaintStateMachine.check_assignable(complaint)
        ComplaintStateMachine.validate_authority(authority)
        complaint.assignment = AssignmentState.ASSIGNED
        complaint.assigned_authority = authority
        complaint.assigned_by = actor
        complaint.assigned_at = now
        complaint.sector = sector if sector else (authority.sector or complaint.sector)
        ComplaintStateMachine.check_invariants(complaint)
        return [
            "assignment", "assigned_authority", "assigned_by", "assigned_at",
            "sector", "updated_at",
        ]

    @staticmethod
    def unassign(complaint: Complaint) -> list[str]:
        if complaint.assignment != AssignmentState.ASSIGNED:
            raise InvalidTransition(
                current=complaint.assignment,
                target=AssignmentState.UNASSIGNED,
                reason="The complaint is not assigned.",
            )
        if complaint.resolved_at is not None:
            raise InvalidTransition(
                current="RESOLVED",
                target=AssignmentState.UNASSIGNED,
                reason="A resolved complaint cannot be unassigned.",
            )
        complaint.assignment = AssignmentState.UNASSIGNED
        complaint.assigned_authority = None
        complaint.assigned_by = None
        complaint.assigned_at = None
        complaint.sector = ""
        ComplaintStateMachine.check_invariants(complaint)
        return ["assignment", "assigned_authority", "assigned_by", "assigned_at", "sector", "updated_at"]

    # ── Resolution ───────────────────────────────────────────────────

    @staticmethod
    def resolve(
        complaint: Complaint,
        *,
        actor: Any,
        now: datetime,
        solution: str = "",
    ) -> list[str]:
        if complaint.assignment != AssignmentState.ASSIGNED:
            raise InvalidTransition(
                current=complaint.assignment,
                target="RESOLVED",
                reason="Only assigned complaints can be resolved.",
            )
        if complaint.resolved_at is not None:
            raise InvalidTransition(
                current="RESOLVED",
                target="RESOLVED",
                reason="The complaint is already resolved.",
            )
        complaint.resolved_at = now
        complaint.solution = solution or ""
        complaint.resolved_by = actor
        ComplaintStateMachine.check_invariants(complaint)
        return ["resolved_at", "solution", "resolved_by", "updated_at"]

    # ── Owner operations ─────────────────────────────────────────────

    @staticmethod
    def edit_content(complaint: Complaint, changes: dict[str, str]) -> list[str]:
        if complaint.status != ComplaintStatus.PENDING:
            raise InvalidTransition(
                current=complaint.status,
                target=ComplaintStatus.PENDING,
                reason="Only pending complaints can be edited.",
            )
        changed = []
        for field in CONTENT_FIELDS:
            if field in changes and getattr(complaint, field) != changes[field]:
                setattr(complaint, field, changes[field])
                changed.append(field)
        ComplaintStateMachine.check_invariants(complaint)
        return changed + ["updated_at"] if changed else []

    @staticmethod
    def check_withdrawable(complaint: Complaint, *, privileged: bool) -> None:
        """
        Owners may withdraw a PENDING or REJECTED complaint; holders of
        the privileged delete permission may withdraw any complaint.
        """
        if privileged:
            return
        if complaint.status not in OWNER_WITHDRAWABLE_STATUSES:
            raise InvalidTransition(
                current=complaint.status,
                target="WITHDRAWN",
                reason="Accepted complaints can no longer be withdrawn by their owner.",
            )

    # ── Archival ─────────────────────────────────────────────────────

    @staticmethod
    def archive(complaint: Complaint, *, now: datetime) -> list[str]:
        if complaint.archived:
            raise InvalidTransition(
                current="ARCHIVED",
                target="ARCHIVED",
                reason="The complaint is already archived.",
            )
        if complaint.status != ComplaintStatus.REJECTED and complaint.resolved_at is None:
            raise InvalidTransition(
                current=complaint.status,
                target="ARCHIVED",
                reason="Only rejected or resolved complaints can be archived.",
            )
        complaint.archived = True
        complaint.archived_at = now
        ComplaintStateMachine.check_invariants(complaint)
        return ["archived", "archived_at", "updated_at"]
