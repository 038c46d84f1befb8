from django.contrib import admin

from .models import Complaint, ComplaintAuditEntry, ComplaintMedia


class ComplaintMediaInline(admin.TabularInline):
    model = ComplaintMedia
    extra = 0
    readonly_fields = ("uploaded_by", "created_at")


@admin.register(Complaint)
class ComplaintAdmin(admin.ModelAdmin):
    list_display = ("id", "title", "category", "status", "assignment",
                    "assigned_authority", "archived", "created_by", "created_at")
    list_filter = ("status", "assignment", "category", "archived")
    search_fields = ("title", "description")
    raw_id_fields = ("created_by", "assigned_authority", "assigned_by",
                     "decided_by", "resolved_by")
    inlines = (ComplaintMediaInline,)
    # Lifecycle changes must go through ComplaintService
    readonly_fields = ("status", "assignment", "assigned_authority", "assigned_by",
                       "assigned_at", "decided_by", "decided_at", "resolved_at",
                       "resolved_by", "archived", "archived_at")


@admin.register(ComplaintAuditEntry)
class ComplaintAuditEntryAdmin(admin.ModelAdmin):
    list_display = ("complaint_id", "action", "actor", "created_at")
    list_filter = ("action",)
    readonly_fields = ("complaint", "actor", "action", "detail", "created_at")

    def has_add_permission(self, request):
        return False

    def has_change_permission(self, request, obj=None):
        return False

    def has_delete_permission(self, request, obj=None):
        return False
