import django.contrib.auth.models
import django.contrib.auth.validators
import django.db.models.deletion
import django.utils.timezone
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("auth", "0012_alter_user_first_name_max_length"),
    ]

    operations = [
        migrations.CreateModel(
            name="User",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("password", models.CharField(max_length=128, verbose_name="password")),
                ("last_login", models.DateTimeField(blank=True, null=True, verbose_name="last login")),
                ("is_superuser", models.BooleanField(default=False, help_text="Designates that this user has all permissions without explicitly assigning them.", verbose_name="superuser status")),
                ("username", models.CharField(error_messages={"unique": "A user with that username already exists."}, help_text="Required. 150 characters or fewer. Letters, digits and @/./+/-/_ only.", max_length=150, unique=True, validators=[django.contrib.auth.validators.UnicodeUsernameValidator()], verbose_name="username")),
                ("first_name", models.CharField(blank=True, max_length=150, verbose_name="first name")),
                ("last_name", models.CharField(blank=True, max_length=150, verbose_name="last name")),
                ("is_staff", models.BooleanField(default=False, help_text="Designates whether the user can log into this admin site.", verbose_name="staff status")),
                ("is_active", models.BooleanField(default=True, help_text="Designates whether this user should be treated as active. Unselect this instead of deleting accounts.", verbose_name="active")),
                ("date_joined", models.DateTimeField(default=django.utils.timezone.now, verbose_name="date joined")),
                ("national_id", models.CharField(db_index=True, max_length=20, unique=True, verbose_name="National ID")),
                ("phone_number", models.CharField(blank=True, max_length=20, null=True, unique=True, verbose_name="Phone Number")),
                ("email", models.EmailField(max_length=254, unique=True, verbose_name="Email Address")),
                ("role", models.CharField(choices=[("CITIZEN", "Citizen"), ("LOCAL_AUTHORITY", "Local Authority"), ("DELEGATION", "Delegation"), ("ADMIN", "Administrator"), ("SUPER_ADMIN", "Super Administrator"), ("GOVERNOR", "Governor"), ("ACTIVITY_COORDINATOR", "Activity Coordinator")], db_index=True, default="CITIZEN", max_length=32, verbose_name="Role")),
                ("sector", models.CharField(blank=True, default="", help_text="Sector a Delegation (or Local Authority) is responsible for.", max_length=100, verbose_name="Sector")),
                ("managed_establishment_ids", models.JSONField(blank=True, default=list, help_text="IDs of the establishments this user manages.", verbose_name="Managed Establishments")),
                ("groups", models.ManyToManyField(blank=True, help_text="The groups this user belongs to. A user will get all permissions granted to each of their groups.", related_name="user_set", related_query_name="user", to="auth.group", verbose_name="groups")),
                ("user_permissions", models.ManyToManyField(blank=True, help_text="Specific permissions for this user.", related_name="user_set", related_query_name="user", to="auth.permission", verbose_name="user permissions")),
            ],
            options={
                "verbose_name": "User",
                "verbose_name_plural": "Users",
            },
            managers=[
                ("objects", django.contrib.auth.models.UserManager()),
            ],
        ),
        migrations.CreateModel(
            name="PermissionGrant",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                ("created_at", models.DateTimeField(auto_now_add=True, verbose_name="Created At")),
                ("updated_at", models.DateTimeField(auto_now=True, verbose_name="Updated At")),
                ("code", models.CharField(max_length=100, verbose_name="Permission Code")),
                ("effect", models.CharField(choices=[("GRANT", "Grant"), ("REVOKE", "Revoke")], max_length=6, verbose_name="Effect")),
                ("is_active", models.BooleanField(default=True, verbose_name="Active")),
                ("expires_at", models.DateTimeField(blank=True, null=True, verbose_name="Expires At")),
                ("granted_by", models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.SET_NULL, related_name="+", to=settings.AUTH_USER_MODEL, verbose_name="Granted By")),
                ("user", models.ForeignKey(on_delete=django.db.models.deletion.CASCADE, related_name="permission_grants", to=settings.AUTH_USER_MODEL, verbose_name="User")),
            ],
            options={
                "verbose_name": "Permission Grant",
                "verbose_name_plural": "Permission Grants",
                "ordering": ["code"],
                "constraints": [
                    models.UniqueConstraint(fields=("user", "code"), name="unique_permission_grant_per_user"),
                ],
            },
        ),
    ]
