"""
Complaints app models.

A *complaint* (réclamation) is a citizen-reported issue that moves through
triage (accept / reject), dispatch to a local authority, resolution and
archival.  Every lifecycle change goes through
``complaints.state_machine.ComplaintStateMachine`` and leaves one
``ComplaintAuditEntry``.
"""

from django.conf import settings
from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from core import constants
from core.models import TimeStampedModel


# ────────────────────────────────────────────────────────────────────
# Choice enumerations
# ────────────────────────────────────────────────────────────────────

class ComplaintStatus(models.TextChoices):
    """Triage outcome.  Never null: a new complaint is PENDING."""

    PENDING = "PENDING", "Pending"
    ACCEPTED = "ACCEPTED", "Accepted"
    REJECTED = "REJECTED", "Rejected"


class AssignmentState(models.TextChoices):
    UNASSIGNED = "UNASSIGNED", "Unassigned"
    ASSIGNED = "ASSIGNED", "Assigned"


class ComplaintCategory(models.TextChoices):
    INFRASTRUCTURE = "infrastructure", "Infrastructure"
    PROPRETE = "proprete", "Cleanliness"
    ECLAIRAGE = "eclairage", "Street Lighting"
    EAU = "eau", "Water"
    SECURITE = "securite", "Security"
    EDUCATION = "education", "Education"
    SANTE = "sante", "Health"
    SPORT = "sport", "Sport"
    SOCIAL = "social", "Social"
    AUTRE = "autre", "Other"


class AuditAction(models.TextChoices):
    CREATION = "CREATION", "Creation"
    ACCEPTANCE = "ACCEPTANCE", "Acceptance"
    REJECTION = "REJECTION", "Rejection"
    ASSIGNMENT = "ASSIGNMENT", "Assignment"
    UNASSIGNMENT = "UNASSIGNMENT", "Unassignment"
    RESOLUTION = "RESOLUTION", "Resolution"
    CONTENT_EDIT = "CONTENT_EDIT", "Content Edit"
    WITHDRAWAL = "WITHDRAWAL", "Withdrawal"
    ARCHIVAL = "ARCHIVAL", "Archival"


# ────────────────────────────────────────────────────────────────────
# Models
# ────────────────────────────────────────────────────────────────────

class Complaint(TimeStampedModel):
    """
    Central entity of the platform — a citizen complaint.

    * ``status`` records the triage decision; ``assignment`` the dispatch
      state.  They are separate axes: an ACCEPTED complaint may be
      UNASSIGNED, ASSIGNED, or ASSIGNED and resolved.
    * Structural invariants are enforced twice, by the state machine and
      by the check constraints in ``Meta``.
    """

    title = models.CharField(
        max_length=constants.TITLE_MAX_LENGTH,
        verbose_name="Title",
    )
    description = models.TextField(
        max_length=constants.DESCRIPTION_MAX_LENGTH,
        verbose_name="Description",
    )
    category = models.CharField(
        max_length=constants.CATEGORY_MAX_LENGTH,
        choices=ComplaintCategory.choices,
        verbose_name="Category",
        db_index=True,
    )

    # ── Owner and location ──────────────────────────────────────────
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="complaints",
        verbose_name="Created By",
    )
    commune_id = models.PositiveIntegerField(
        verbose_name="Commune",
        db_index=True,
    )
    establishment_id = models.PositiveIntegerField(
        null=True,
        blank=True,
        verbose_name="Establishment",
    )
    neighbourhood = models.CharField(
        max_length=constants.NEIGHBOURHOOD_MAX_LENGTH,
        blank=True,
        default="",
        verbose_name="Neighbourhood",
    )
    address = models.CharField(
        max_length=constants.ADDRESS_MAX_LENGTH,
        blank=True,
        default="",
        verbose_name="Address",
    )
    latitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(-90), MaxValueValidator(90)],
        verbose_name="Latitude",
    )
    longitude = models.DecimalField(
        max_digits=9,
        decimal_places=6,
        null=True,
        blank=True,
        validators=[MinValueValidator(-180), MaxValueValidator(180)],
        verbose_name="Longitude",
    )

    # ── Triage ──────────────────────────────────────────────────────
    status = models.CharField(
        max_length=10,
        choices=ComplaintStatus.choices,
        default=ComplaintStatus.PENDING,
        verbose_name="Status",
        db_index=True,
    )
    rejection_reason = models.TextField(
        max_length=constants.REJECTION_REASON_MAX_LENGTH,
        blank=True,
        default="",
        verbose_name="Rejection Reason",
    )
    decided_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="decided_complaints",
        verbose_name="Decided By",
    )
    decided_at = models.DateTimeField(null=True, blank=True, verbose_name="Decided At")

    # ── Dispatch ────────────────────────────────────────────────────
    assignment = models.CharField(
        max_length=10,
        choices=AssignmentState.choices,
        default=AssignmentState.UNASSIGNED,
        verbose_name="Assignment",
        db_index=True,
    )
    assigned_authority = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="assigned_complaints",
        verbose_name="Assigned Authority",
    )
    assigned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="dispatched_complaints",
        verbose_name="Assigned By",
    )
    assigned_at = models.DateTimeField(null=True, blank=True, verbose_name="Assigned At")
    sector = models.CharField(
        max_length=100,
        blank=True,
        default="",
        db_index=True,
        verbose_name="Sector",
        help_text="Dispatch sector; drives Delegation visibility.",
    )

    # ── Resolution / archival ───────────────────────────────────────
    resolved_at = models.DateTimeField(null=True, blank=True, verbose_name="Resolved At")
    solution = models.TextField(
        max_length=constants.SOLUTION_MAX_LENGTH,
        blank=True,
        default="",
        verbose_name="Solution",
    )
    resolved_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="resolved_complaints",
        verbose_name="Resolved By",
    )
    archived = models.BooleanField(default=False, db_index=True, verbose_name="Archived")
    archived_at = models.DateTimeField(null=True, blank=True, verbose_name="Archived At")

    class Meta:
        verbose_name = "Complaint"
        verbose_name_plural = "Complaints"
        ordering = ["-created_at", "-id"]
        indexes = [
            models.Index(fields=["status", "assignment"], name="complaint_status_assign_idx"),
            models.Index(fields=["created_by", "-created_at"], name="complaint_owner_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(assignment=AssignmentState.UNASSIGNED, assigned_authority__isnull=True)
                    | Q(
                        assignment=AssignmentState.ASSIGNED,
                        status=ComplaintStatus.ACCEPTED,
                        assigned_authority__isnull=False,
                    )
                ),
                name="complaint_assigned_requires_accepted_authority",
            ),
            models.CheckConstraint(
                condition=Q(resolved_at__isnull=True) | Q(assignment=AssignmentState.ASSIGNED),
                name="complaint_resolved_requires_assigned",
            ),
            models.CheckConstraint(
                condition=(
                    Q(latitude__isnull=True, longitude__isnull=True)
                    | Q(latitude__isnull=False, longitude__isnull=False)
                ),
                name="complaint_coordinates_together",
            ),
        ]

    def __str__(self):
        return f"Complaint #{self.pk} — {self.title}"

    @property
    def is_resolved(self) -> bool:
        return self.resolved_at is not None

    @property
    def is_urgent(self) -> bool:
        """Awaiting triage, or accepted and still unresolved."""
        if self.archived:
            return False
        return self.status == ComplaintStatus.PENDING or (
            self.status == ComplaintStatus.ACCEPTED and self.resolved_at is None
        )


class ComplaintMedia(TimeStampedModel):
    """
    Reference to an externally stored file attached to a complaint.
    Deleted together with its complaint.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.CASCADE,
        related_name="media",
        verbose_name="Complaint",
    )
    url = models.URLField(max_length=500, verbose_name="URL")
    media_type = models.CharField(
        max_length=50,
        blank=True,
        default="",
        verbose_name="Media Type",
    )
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
        verbose_name="Uploaded By",
    )

    class Meta:
        verbose_name = "Complaint Media"
        verbose_name_plural = "Complaint Media"
        ordering = ["created_at"]

    def __str__(self):
        return f"Media #{self.pk} on Complaint #{self.complaint_id}"


class ComplaintAuditEntry(models.Model):
    """
    Immutable audit record of one complaint transition.

    The complaint reference carries no database constraint and no
    cascade, so the trail of a withdrawn complaint survives its
    deletion.  Rows can be inserted but never updated or deleted.
    """

    complaint = models.ForeignKey(
        Complaint,
        on_delete=models.DO_NOTHING,
        db_constraint=False,
        related_name="audit_entries",
        verbose_name="Complaint",
    )
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="complaint_audit_entries",
        verbose_name="Actor",
    )
    action = models.CharField(
        max_length=20,
        choices=AuditAction.choices,
        verbose_name="Action",
        db_index=True,
    )
    detail = models.JSONField(default=dict, blank=True, verbose_name="Detail")
    created_at = models.DateTimeField(auto_now_add=True, verbose_name="Created At")

    class Meta:
        verbose_name = "Complaint Audit Entry"
        verbose_name_plural = "Complaint Audit Entries"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(fields=["complaint", "created_at"], name="complaint_audit_cid_ts_idx"),
        ]

    def __str__(self):
        return f"Complaint #{self.complaint_id}: {self.action}"

    def save(self, *args, **kwargs):
        if self.pk is not None and not self._state.adding:
            raise RuntimeError("Audit entries are immutable.")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise RuntimeError("Audit entries cannot be deleted.")
