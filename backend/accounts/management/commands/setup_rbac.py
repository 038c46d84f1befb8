"""
Management command: setup_rbac
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

Validates the permission catalog and reconciles stored overrides with it.

Roles and their default permissions live in code
(``core.permissions_constants``), so there is nothing to seed.  What can
drift is the data: ``PermissionGrant`` rows whose code was removed from
the catalog, or whose expiry has passed.  This command:

    1. Builds the catalog (fails loudly on an unknown default code or an
       inheritance cycle).
    2. Prints each role's effective default permission count.
    3. Deactivates overrides with unknown codes or past expiry.

The command is **idempotent** — safe to run multiple times.

Usage::

    python manage.py setup_rbac
    python manage.py setup_rbac --dry-run
"""

from django.core.management.base import BaseCommand, CommandError
from django.db import transaction
from django.utils import timezone

from accounts.models import PermissionGrant, UserRole
from core.domain.permissions import get_default_catalog


class Command(BaseCommand):
    help = (
        "Validates the permission catalog, prints each role's default "
        "permission count and deactivates stale permission overrides.  "
        "Safe to run multiple times (idempotent)."
    )

    def add_arguments(self, parser):
        parser.add_argument(
            "--dry-run",
            action="store_true",
            help="Report stale overrides without deactivating them.",
        )

    def handle(self, *args, **options):
        dry_run = options["dry_run"]
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n══════════════════════════════════════════"
            "\n  RBAC Setup — Catalog & Override Check"
            "\n══════════════════════════════════════════\n"
        ))

        try:
            catalog = get_default_catalog()
        except ValueError as exc:
            raise CommandError(f"Invalid permission catalog: {exc}") from exc

        for role in UserRole:
            count = len(catalog.defaults_for(role.value))
            self.stdout.write(self.style.SUCCESS(
                f"  ✔  {role.value:<22s} permissions={count}"
            ))

        active = PermissionGrant.objects.filter(is_active=True)
        unknown_ids = [
            pk for pk, code in active.values_list("pk", "code")
            if not catalog.is_known(code)
        ]
        expired_ids = list(
            active.filter(expires_at__lte=timezone.now())
            .exclude(pk__in=unknown_ids)
            .values_list("pk", flat=True)
        )

        for code in (
            PermissionGrant.objects.filter(pk__in=unknown_ids)
            .values_list("code", flat=True).distinct()
        ):
            self.stdout.write(self.style.WARNING(
                f"  ⚠  Override code '{code}' is not in the catalog."
            ))

        stale = unknown_ids + expired_ids
        if stale and not dry_run:
            with transaction.atomic():
                PermissionGrant.objects.filter(pk__in=stale).update(
                    is_active=False,
                    updated_at=timezone.now(),
                )

        # ── Summary ─────────────────────────────────────────────────
        self.stdout.write(self.style.MIGRATE_HEADING(
            "\n──────────────────────────────────────────"
        ))
        verb = "would be deactivated" if dry_run else "deactivated"
        self.stdout.write(self.style.SUCCESS(
            f"  Done!  {len(catalog.universe)} permission code(s), "
            f"{len(UserRole)} role(s).  "
            f"{len(unknown_ids)} unknown and {len(expired_ids)} expired "
            f"override(s) {verb}.\n"
        ))
