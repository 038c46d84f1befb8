"""Tests for the ``setup_rbac`` management command."""

from __future__ import annotations

from datetime import timedelta
from io import StringIO

from django.core.management import call_command
from django.test import TestCase
from django.utils import timezone

from accounts.models import PermissionGrant
from core.permissions_constants import ReclamationsPerms

from .base import make_user


class TestSetupRbacCommand(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = make_user("rbac_user")
        cls.valid = PermissionGrant.objects.create(
            user=cls.user, code=ReclamationsPerms.ASSIGN, effect="GRANT",
        )
        cls.unknown = PermissionGrant.objects.create(
            user=cls.user, code="legacy.removed", effect="GRANT",
        )
        cls.expired = PermissionGrant.objects.create(
            user=cls.user,
            code=ReclamationsPerms.ARCHIVE,
            effect="GRANT",
            expires_at=timezone.now() - timedelta(days=1),
        )

    def _run(self, *args) -> str:
        out = StringIO()
        call_command("setup_rbac", *args, stdout=out)
        return out.getvalue()

    def test_deactivates_unknown_and_expired_overrides(self):
        output = self._run()
        self.assertIn("1 unknown and 1 expired", output)
        self.assertIn("legacy.removed", output)

        self.assertTrue(PermissionGrant.objects.get(pk=self.valid.pk).is_active)
        self.assertFalse(PermissionGrant.objects.get(pk=self.unknown.pk).is_active)
        self.assertFalse(PermissionGrant.objects.get(pk=self.expired.pk).is_active)

    def test_dry_run_changes_nothing(self):
        output = self._run("--dry-run")
        self.assertIn("would be deactivated", output)
        self.assertEqual(PermissionGrant.objects.filter(is_active=True).count(), 3)

    def test_idempotent(self):
        self._run()
        output = self._run()
        self.assertIn("0 unknown and 0 expired", output)

    def test_prints_every_role(self):
        output = self._run()
        for role in ("CITIZEN", "ADMIN", "SUPER_ADMIN", "LOCAL_AUTHORITY", "DELEGATION"):
            self.assertIn(role, output)
