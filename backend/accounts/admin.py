from django.contrib import admin
from django.contrib.auth.admin import UserAdmin as BaseUserAdmin

from .models import PermissionGrant, User


class PermissionGrantInline(admin.TabularInline):
    model = PermissionGrant
    fk_name = "user"
    extra = 0
    fields = ("code", "effect", "is_active", "expires_at", "granted_by")
    readonly_fields = ("granted_by",)


@admin.register(User)
class UserAdmin(BaseUserAdmin):
    list_display = ("username", "email", "national_id", "phone_number",
                    "first_name", "last_name", "is_active", "role", "sector")
    search_fields = ("username", "email", "national_id", "phone_number")
    list_filter = ("is_active", "is_staff", "role")
    inlines = (PermissionGrantInline,)
    fieldsets = BaseUserAdmin.fieldsets + (
        ("Platform", {"fields": ("national_id", "phone_number", "role",
                                 "sector", "managed_establishment_ids")}),
    )
    add_fieldsets = BaseUserAdmin.add_fieldsets + (
        ("Platform", {"fields": ("email", "national_id", "phone_number",
                                 "first_name", "last_name", "role", "sector")}),
    )


@admin.register(PermissionGrant)
class PermissionGrantAdmin(admin.ModelAdmin):
    list_display = ("user", "code", "effect", "is_active", "expires_at", "granted_by")
    list_filter = ("effect", "is_active")
    search_fields = ("code", "user__username")
    raw_id_fields = ("user", "granted_by")
