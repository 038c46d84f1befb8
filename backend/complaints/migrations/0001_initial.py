import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Complaint",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("title", models.CharField(max_length=200, verbose_name="Title")),
                ("description", models.TextField(max_length=5000, verbose_name="Description")),
                ("category", models.CharField(choices=[("infrastructure", "Infrastructure"), ("proprete", "Cleanliness"), ("eclairage", "Street Lighting"), ("eau", "Water"), ("securite", "Security"), ("education", "Education"), ("sante", "Health"), ("sport", "Sport"), ("social", "Social"), ("autre", "Other")], db_index=True, max_length=50, verbose_name="Category")),
                ("commune_id", models.PositiveIntegerField(db_index=True, verbose_name="Commune")),
                ("establishment_id", models.PositiveIntegerField(blank=True, null=True, verbose_name="Establishment")),
                ("neighbourhood", models.CharField(blank=True, default="", max_length=200, verbose_name="Neighbourhood")),
                ("address", models.CharField(blank=True, default="", max_length=500, verbose_name="Address")),
                ("latitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, validators=[django.core.validators.MinValueValidator(-90), django.core.validators.MaxValueValidator(90)], verbose_name="Latitude")),
                ("longitude", models.DecimalField(blank=True, decimal_places=6, max_digits=9, null=True, validators=[django.core.validators.MinValueValidator(-180), django.core.validators.MaxValueValidator(180)], verbose_name="Longitude")),
                ("status", models.CharField(choices=[("PENDING", "Pending"), ("ACCEPTED", "Accepted"), ("REJECTED", "Rejected")], db_index=True, default="PENDING", max_length=10, verbose_name="Status")),
                ("rejection_reason", models.TextField(blank=True, default="", max_length=2000, verbose_name="Rejection Reason")),
                ("decided_at", models.DateTimeField(blank=True, null=True, verbose_name="Decided At")),
                ("assignment", models.CharField(choices=[("UNASSIGNED", "Unassigned"), ("ASSIGNED", "Assigned")], db_index=True, default="UNASSIGNED", max_length=10, verbose_name="Assignment")),
                ("assigned_at", models.DateTimeField(blank=True, null=True, verbose_name="Assigned At")),
                ("sector", models.CharField(blank=True, db_index=True, default="", help_text="Dispatch sector; drives Delegation visibility.", max_length=100, verbose_name="Sector")),
                ("resolved_at", models.DateTimeField(blank=True, null=True, verbose_name="Resolved At")),
                ("solution", models.TextField(blank=True, default="", max_length=5000, verbose_name="Solution")),
                ("archived", models.BooleanField(db_index=True, default=False, verbose_name="Archived")),
                ("archived_at", models.DateTimeField(blank=True, null=True, verbose_name="Archived At")),
                ("assigned_authority", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, related_name="assigned_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Assigned Authority")),
                ("assigned_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="dispatched_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Assigned By")),
                ("created_by", models.ForeignKey(on_delete=django.db.models.deletion.PROTECT, related_name="complaints", to=settings.AUTH_USER_MODEL, verbose_name="Created By")),
                ("decided_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="decided_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Decided By")),
                ("resolved_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="resolved_complaints", to=settings.AUTH_USER_MODEL, verbose_name="Resolved By")),
            ],
            options={
                "verbose_name": "Complaint",
                "verbose_name_plural": "Complaints",
                "ordering": ["-created_at", "-id"],
                "indexes": [
                    models.Index(fields=["status", "assignment"], name="complaint_status_assign_idx"),
                    models.Index(fields=["created_by", "-created_at"], name="complaint_owner_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("assigned_authority__isnull", True), ("assignment", "UNASSIGNED")),
                            models.Q(("assigned_authority__isnull", False), ("assignment", "ASSIGNED"), ("status", "ACCEPTED")),
                            _connector="OR",
                        ),
                        name="complaint_assigned_requires_accepted_authority",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(("resolved_at__isnull", True), ("assignment", "ASSIGNED"), _connector="OR"),
                        name="complaint_resolved_requires_assigned",
                    ),
                    models.CheckConstraint(
                        condition=models.Q(
                            models.Q(("latitude__isnull", True), ("longitude__isnull", True)),
                            models.Q(("latitude__isnull", False), ("longitude__isnull", False)),
                            _connector="OR",
                        ),
                        name="complaint_coordinates_together",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="ComplaintMedia",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("url", models.URLField(max_length=500, verbose_name="URL")),
                ("media_type", models.CharField(blank=True, default="", max_length=50, verbose_name="Media Type")),
                ("complaint", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="media", to="complaints.complaint", verbose_name="Complaint")),
                ("uploaded_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Uploaded By")),
            ],
            options={
                "verbose_name": "Complaint Media",
                "verbose_name_plural": "Complaint Media",
                "ordering": ["created_at"],
            },
        ),
        migrations.CreateModel(
            name="ComplaintAuditEntry",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("action", models.CharField(choices=[("CREATION", "Creation"), ("ACCEPTANCE", "Acceptance"), ("REJECTION", "Rejection"), ("ASSIGNMENT", "Assignment"), ("UNASSIGNMENT", "Unassignment"), ("RESOLUTION", "Resolution"), ("CONTENT_EDIT", "Content Edit"), ("WITHDRAWAL", "Withdrawal"), ("ARCHIVAL", "Archival")], db_index=True, max_length=20, verbose_name="Action")),
                ("detail", models.JSONField(blank=True, default=dict, verbose_name="Detail")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("actor", models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="complaint_audit_entries", to=settings.AUTH_USER_MODEL, verbose_name="Actor")),
                ("complaint", models.ForeignKey(db_constraint=False, on_delete=django.db.models.deletion.DO_NOTHING, related_name="audit_entries", to="complaints.complaint", verbose_name="Complaint")),
            ],
            options={
                "verbose_name": "Complaint Audit Entry",
                "verbose_name_plural": "Complaint Audit Entries",
                "ordering": ["created_at", "id"],
                "indexes": [
                    models.Index(fields=["complaint", "created_at"], name="complaint_audit_cid_ts_idx"),
                ],
            },
        ),
    ]
