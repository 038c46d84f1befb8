"""
Complaints Service Layer.

``ComplaintService`` is the composition root of the complaint domain and
the only code path that mutates a complaint.  Views stay *thin*: they
pass the authenticated actor and raw payload in and serialise what comes
back.

Every mutating operation follows the same pipeline::

    authenticate ─▶ permission ─▶ visibility / target ─▶ validate payload
        ─▶ atomic { lock row ─▶ transition ─▶ save ─▶ audit entry }
        ─▶ on_commit: notification (best-effort)

Collaborators are injected at construction so tests can substitute an
alternate permission catalog, scope or notifier.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

from django.contrib.auth import get_user_model
from django.db import transaction
from django.db.models import Q, QuerySet
from django.utils import timezone

from core.domain.access import VisibilityScope, require_authenticated
from core.domain.exceptions import InvalidTransition, PermissionDenied, ValidationError
from core.domain.notifications import NotificationService, NotificationSink
from core.domain.permissions import PermissionResolver, get_default_resolver
from core.domain.security import log_security_event
from core.domain.transactions import compare_and_set
from core.permissions_constants import Roles

from . import state_machine as sm
from .audit import AuditTrail
from .models import (
    AssignmentState,
    AuditAction,
    Complaint,
    ComplaintAuditEntry,
    ComplaintMedia,
    ComplaintStatus,
)
from .scopes import COMPLAINT_SCOPE
from .serializers import (
    AssignSerializer,
    ComplaintContentSerializer,
    ComplaintCreateSerializer,
    ComplaintListQuerySerializer,
    RejectSerializer,
    ResolveSerializer,
    UnassignSerializer,
)

User = get_user_model()
logger = logging.getLogger(__name__)

#: Fields owned by the lifecycle.  Their presence in a content edit is
#: treated as an attempt to bypass the state machine.
LIFECYCLE_FIELDS = frozenset({
    "status",
    "assignment",
    "assigned_authority",
    "assigned_authority_id",
    "assigned_by",
    "assigned_at",
    "sector",
    "resolved_at",
    "resolved_by",
    "solution",
    "archived",
    "archived_at",
    "decided_by",
    "decided_at",
    "rejection_reason",
    "created_by",
})


def _validated(serializer_class, data: Any) -> dict[str, Any]:
    serializer = serializer_class(data=data if data is not None else {})
    if not serializer.is_valid():
        raise ValidationError(errors=dict(serializer.errors))
    return dict(serializer.validated_data)


def complaint_link(complaint_id: int) -> str:
    return f"/reclamations/{complaint_id}"


class ComplaintService:
    """
    Complaint lifecycle operations.

    Parameters
    ----------
    resolver : PermissionResolver
        Answers ``has_permission(actor, code)``.
    scope : VisibilityScope
        Role → predicate rules for which complaints an actor can see.
    audit : AuditTrail
        Append-only transition log.
    notifier : NotificationSink
        Receives post-commit notifications.
    """

    def __init__(
        self,
        *,
        resolver: PermissionResolver,
        scope: VisibilityScope,
        audit: AuditTrail,
        notifier: NotificationSink,
    ) -> None:
        self.resolver = resolver
        self.scope = scope
        self.audit = audit
        self.notifier = notifier

    @classmethod
    def default(cls) -> ComplaintService:
        """Service wired with the process-wide collaborators."""
        return cls(
            resolver=get_default_resolver(),
            scope=COMPLAINT_SCOPE,
            audit=AuditTrail(),
            notifier=NotificationService,
        )

    # ── Internal helpers ─────────────────────────────────────────────

    def _authorize(self, actor: Any, transition: str) -> None:
        require_authenticated(actor)
        self.resolver.require(actor, sm.TRANSITION_PERMISSIONS[transition])

    def _lock_visible(self, actor: Any, pk: Any, *, ip: str | None = None) -> Complaint:
        """Fetch ``pk`` within the actor's scope and lock the row."""
        return self.scope.get_visible(
            Complaint.objects.select_for_update(),
            actor,
            pk,
            ip=ip,
        )

    def _notify(self, actor: Any, recipients: Any, event_type: str, complaint: Complaint,
                payload: dict[str, Any] | None = None) -> None:
        if recipients is None:
            return
        self.notifier.notify(
            actor=actor,
            recipients=recipients,
            event_type=event_type,
            payload={"complaint_id": complaint.pk, "title": complaint.title, **(payload or {})},
            related_object=complaint,
            link=complaint_link(complaint.pk),
        )

    # ═══════════════════════════════════════════════════════════════
    #  Creation
    # ═══════════════════════════════════════════════════════════════

    def submit(self, actor: Any, payload: Mapping[str, Any]) -> Complaint:
        """
        Create a PENDING, UNASSIGNED complaint owned by ``actor``.

        Parameters
        ----------
        actor : User
        payload : Mapping
            ``title``, ``description``, ``category``, ``commune_id`` and
            optional location fields and ``media`` references.

        Returns
        -------
        Complaint

        Raises
        ------
        Unauthenticated, PermissionDenied, ValidationError
        """
        self._authorize(actor, sm.SUBMIT)
        data = _validated(ComplaintCreateSerializer, payload)
        media = data.pop("media", [])

        with transaction.atomic():
            complaint = Complaint(created_by=actor, **data)
            sm.ComplaintStateMachine.submit(complaint)
            complaint.save()
            if media:
                ComplaintMedia.objects.bulk_create([
                    ComplaintMedia(complaint=complaint, uploaded_by=actor, **item)
                    for item in media
                ])
            self.audit.append(
                complaint,
                actor=actor,
                action=AuditAction.CREATION,
                detail={"title": complaint.title, "category": complaint.category},
            )
            admins = list(
                User.objects.filter(
                    role__in=[Roles.ADMIN, Roles.SUPER_ADMIN],
                    is_active=True,
                ).exclude(pk=actor.pk)
            )
            if admins:
                self._notify(actor, admins, "complaint_submitted", complaint)

        logger.info("Complaint %s submitted by user=%s", complaint.pk, actor.pk)
        return complaint

    # ═══════════════════════════════════════════════════════════════
    #  Reads
    # ═══════════════════════════════════════════════════════════════

    def list(self, actor: Any, filters: Mapping[str, Any] | None = None) -> QuerySet[Complaint]:
        """
        Complaints visible to ``actor``, newest first.

        The visibility predicate is applied first; ``filters``
        (``status``, ``assignment``, ``category``, ``commune_id``,
        ``archived``, ``urgent``, ``search``) only narrow it.
        """
        require_authenticated(actor)
        params = _validated(ComplaintListQuerySerializer, filters or {})

        qs = self.scope.apply(Complaint.objects.all(), actor)
        for field in ("status", "assignment", "category", "commune_id"):
            if params.get(field) is not None:
                qs = qs.filter(**{field: params[field]})
        if params.get("archived") is not None:
            qs = qs.filter(archived=params["archived"])
        if params.get("urgent"):
            qs = qs.filter(archived=False).filter(
                Q(status=ComplaintStatus.PENDING)
                | Q(status=ComplaintStatus.ACCEPTED, resolved_at__isnull=True)
            )
        search = (params.get("search") or "").strip()
        if search:
            qs = qs.filter(Q(title__icontains=search) | Q(description__icontains=search))

        return qs.select_related("created_by").order_by("-created_at", "-id")

    def get(self, actor: Any, pk: Any, *, ip: str | None = None) -> Complaint:
        require_authenticated(actor)
        return self.scope.get_visible(
            Complaint.objects.select_related(
                "created_by", "assigned_authority", "decided_by", "resolved_by",
            ).prefetch_related("media"),
            actor,
            pk,
            ip=ip,
        )

    def history(self, actor: Any, pk: Any, *, ip: str | None = None) -> QuerySet[ComplaintAuditEntry]:
        """Audit trail of a complaint the actor can see."""
        complaint = self.get(actor, pk, ip=ip)
        return self.audit.entries_for(complaint.pk)

    # ═══════════════════════════════════════════════════════════════
    #  Triage
    # ═══════════════════════════════════════════════════════════════

    def accept(self, actor: Any, pk: Any, *, ip: str | None = None) -> Complaint:
        """
        Accept a PENDING complaint.

        Raises
        ------
        InvalidTransition
            If the complaint is not PENDING (including a second accept).
        """
        self._authorize(actor, sm.ACCEPT)
        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=ip)
            fields = sm.ComplaintStateMachine.accept(complaint, actor=actor, now=timezone.now())
            complaint.save(update_fields=fields)
            self.audit.append(complaint, actor=actor, action=AuditAction.ACCEPTANCE)
            self._notify(actor, complaint.created_by, "complaint_accepted", complaint)

        logger.info("Complaint %s accepted by user=%s", complaint.pk, actor.pk)
        return complaint

    def reject(self, actor: Any, pk: Any, reason: str | None = None, *, ip: str | None = None) -> Complaint:
        self._authorize(actor, sm.REJECT)
        data = _validated(RejectSerializer, {"reason": reason} if reason is not None else {})
        reason = data.get("reason") or ""

        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=ip)
            fields = sm.ComplaintStateMachine.reject(
                complaint, actor=actor, now=timezone.now(), reason=reason,
            )
            complaint.save(update_fields=fields)
            self.audit.append(
                complaint,
                actor=actor,
                action=AuditAction.REJECTION,
                detail={"reason": reason} if reason else {},
            )
            self._notify(
                actor, complaint.created_by, "complaint_rejected", complaint,
                payload={"reason": reason or "-"},
            )

        logger.info("Complaint %s rejected by user=%s", complaint.pk, actor.pk)
        return complaint

    # ═══════════════════════════════════════════════════════════════
    #  Dispatch
    # ═══════════════════════════════════════════════════════════════

    def assign(
        self,
        actor: Any,
        pk: Any,
        authority_id: Any,
        sector: str | None = None,
        comment: str = "",
        *,
        ip: str | None = None,
    ) -> Complaint:
        """
        Dispatch an ACCEPTED, UNASSIGNED complaint to a local authority.

        The row is locked and the write is a compare-and-set on
        ``assignment = UNASSIGNED``; of two concurrent assigns exactly
        one wins and the other gets ``InvalidTransition``.

        Raises
        ------
        ValidationError
            Target missing, inactive or not a LOCAL_AUTHORITY.
        InvalidTransition
            Not ACCEPTED, already assigned, archived, or lost race.
        """
        self._authorize(actor, sm.ASSIGN)
        data = _validated(
            AssignSerializer,
            {"authority_id": authority_id, "sector": sector, "comment": comment or ""},
        )
        authority = User.objects.filter(pk=data["authority_id"]).first()
        sm.ComplaintStateMachine.validate_authority(authority)

        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=ip)
            now = timezone.now()
            fields = sm.ComplaintStateMachine.assign(
                complaint, actor=actor, authority=authority, now=now,
                sector=data.get("sector") or None,
            )
            won = compare_and_set(
                Complaint,
                complaint.pk,
                expected={
                    "assignment": AssignmentState.UNASSIGNED,
                    "status": ComplaintStatus.ACCEPTED,
                    "archived": False,
                },
                changes={
                    **{name: getattr(complaint, name) for name in fields if name != "updated_at"},
                    "updated_at": now,
                },
            )
            if not won:
                raise InvalidTransition(
                    current=AssignmentState.ASSIGNED,
                    target=AssignmentState.ASSIGNED,
                    reason="The complaint was assigned concurrently.",
                )
            complaint.updated_at = now
            self.audit.append(
                complaint,
                actor=actor,
                action=AuditAction.ASSIGNMENT,
                detail={
                    "authority_id": authority.pk,
                    "sector": complaint.sector,
                    **({"comment": data["comment"]} if data.get("comment") else {}),
                },
            )
            self._notify(actor, authority, "complaint_assigned", complaint)

        logger.info(
            "Complaint %s assigned to authority=%s by user=%s",
            complaint.pk, authority.pk, actor.pk,
        )
        return complaint

    def unassign(self, actor: Any, pk: Any, comment: str = "", *, ip: str | None = None) -> Complaint:
        self._authorize(actor, sm.UNASSIGN)
        data = _validated(UnassignSerializer, {"comment": comment or ""})

        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=ip)
            previous = complaint.assigned_authority
            fields = sm.ComplaintStateMachine.unassign(complaint)
            complaint.save(update_fields=fields)
            self.audit.append(
                complaint,
                actor=actor,
                action=AuditAction.UNASSIGNMENT,
                detail={
                    "authority_id": getattr(previous, "pk", None),
                    **({"comment": data["comment"]} if data.get("comment") else {}),
                },
            )
            self._notify(actor, previous, "complaint_unassigned", complaint)

        logger.info("Complaint %s unassigned by user=%s", complaint.pk, actor.pk)
        return complaint

    # ═══════════════════════════════════════════════════════════════
    #  Resolution
    # ═══════════════════════════════════════════════════════════════

    def resolve(self, actor: Any, pk: Any, solution: str = "", *, ip: str | None = None) -> Complaint:
        """
        Mark an ASSIGNED complaint resolved.

        Only the assigned authority, or an ADMIN / SUPER_ADMIN, may
        resolve; other holders of ``reclamations.resolve`` are refused.
        """
        self._authorize(actor, sm.RESOLVE)
        data = _validated(ResolveSerializer, {"solution": solution or ""})

        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=ip)
            if (
                complaint.assigned_authority_id != actor.pk
                and actor.role not in sm.RESOLVE_OVERRIDE_ROLES
            ):
                raise PermissionDenied("Only the assigned authority can resolve this complaint.")
            fields = sm.ComplaintStateMachine.resolve(
                complaint, actor=actor, now=timezone.now(), solution=data["solution"],
            )
            complaint.save(update_fields=fields)
            self.audit.append(
                complaint,
                actor=actor,
                action=AuditAction.RESOLUTION,
                detail={"solution": complaint.solution} if complaint.solution else {},
            )
            self._notify(actor, complaint.created_by, "complaint_resolved", complaint)

        logger.info("Complaint %s resolved by user=%s", complaint.pk, actor.pk)
        return complaint

    # ═══════════════════════════════════════════════════════════════
    #  Owner operations
    # ═══════════════════════════════════════════════════════════════

    def edit_content(
        self,
        actor: Any,
        pk: Any,
        fields: Mapping[str, Any],
        client_ip: str | None = None,
    ) -> Complaint:
        """
        Owner edit of title / description while the complaint is PENDING.

        Once the actor is authenticated, a lifecycle field anywhere in
        ``fields`` is refused before any other check, with exactly one
        ``status_field_smuggling`` security event.

        Raises
        ------
        Unauthenticated
            Missing or inactive actor.
        PermissionDenied
            Lifecycle field present, missing ``reclamations.edit``, actor
            is not the owner, or the complaint is no longer PENDING.
        ValidationError
            Unknown field or length violation.
        """
        require_authenticated(actor)
        fields = dict(fields or {})
        smuggled = sorted(LIFECYCLE_FIELDS.intersection(fields))
        if smuggled:
            log_security_event(
                "status_field_smuggling",
                actor=actor,
                target_id=pk,
                ip=client_ip,
                fields=smuggled,
            )
            raise PermissionDenied("Lifecycle fields cannot be changed through a content edit.")

        self._authorize(actor, sm.EDIT_CONTENT)

        unknown = sorted(set(fields) - set(sm.CONTENT_FIELDS))
        if unknown:
            raise ValidationError(errors={name: ["This field cannot be edited."] for name in unknown})

        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=client_ip)
            if complaint.created_by_id != actor.pk:
                raise PermissionDenied("Only the owner can edit this complaint.")
            if complaint.status != ComplaintStatus.PENDING:
                raise PermissionDenied("Only pending complaints can be edited.")
            data = _validated(ComplaintContentSerializer, fields)
            previous = {name: getattr(complaint, name) for name in data}
            changed = sm.ComplaintStateMachine.edit_content(complaint, data)
            if changed:
                complaint.save(update_fields=changed)
                self.audit.append(
                    complaint,
                    actor=actor,
                    action=AuditAction.CONTENT_EDIT,
                    detail={
                        "fields": [name for name in changed if name != "updated_at"],
                        "previous": {
                            name: value for name, value in previous.items() if name in changed
                        },
                    },
                )

        logger.info("Complaint %s content edited by user=%s", complaint.pk, actor.pk)
        return complaint

    def withdraw(self, actor: Any, pk: Any, *, ip: str | None = None) -> None:
        """
        Hard-delete a complaint (media cascade; audit trail survives).

        Owners holding ``reclamations.delete`` may withdraw while the
        complaint is PENDING or REJECTED.  Holders of
        ``reclamations.delete.any`` may withdraw any complaint they can see.
        """
        require_authenticated(actor)
        privileged = self.resolver.has_permission(actor, sm.WITHDRAW_ANY_PERMISSION)
        if not privileged:
            self.resolver.require(actor, sm.TRANSITION_PERMISSIONS[sm.WITHDRAW])

        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=ip)
            if not privileged and complaint.created_by_id != actor.pk:
                raise PermissionDenied("Only the owner can withdraw this complaint.")
            sm.ComplaintStateMachine.check_withdrawable(complaint, privileged=privileged)
            self.audit.append(
                complaint,
                actor=actor,
                action=AuditAction.WITHDRAWAL,
                detail={
                    "title": complaint.title,
                    "status": complaint.status,
                    "owner_id": complaint.created_by_id,
                },
            )
            complaint_id = complaint.pk
            complaint.delete()

        logger.info("Complaint %s withdrawn by user=%s", complaint_id, actor.pk)

    # ═══════════════════════════════════════════════════════════════
    #  Archival
    # ═══════════════════════════════════════════════════════════════

    def archive(self, actor: Any, pk: Any, *, ip: str | None = None) -> Complaint:
        self._authorize(actor, sm.ARCHIVE)
        with transaction.atomic():
            complaint = self._lock_visible(actor, pk, ip=ip)
            fields = sm.ComplaintStateMachine.archive(complaint, now=timezone.now())
            complaint.save(update_fields=fields)
            self.audit.append(complaint, actor=actor, action=AuditAction.ARCHIVAL)

        logger.info("Complaint %s archived by user=%s", complaint.pk, actor.pk)
        return complaint
