"""
Integration tests — per-user permission overrides.

    GET    /api/accounts/users/{user_pk}/permissions/
    POST   /api/accounts/users/{user_pk}/permissions/grant/
    POST   /api/accounts/users/{user_pk}/permissions/revoke/
    DELETE /api/accounts/users/{user_pk}/permissions/{code}/
    GET    /api/accounts/permissions/

Only ``permissions.manage`` (SUPER_ADMIN by default) may write overrides;
a SUPER_ADMIN target is never overridable.
"""

from __future__ import annotations

from datetime import timedelta

from django.test import TestCase
from django.urls import reverse
from django.utils import timezone
from rest_framework import status

from accounts.models import PermissionGrant, UserRole
from core.permissions_constants import ALL_PERMISSION_CODES, ReclamationsPerms, UsersPerms

from .base import login, make_user


class TestPermissionOverrides(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.super_admin = make_user("po_root", UserRole.SUPER_ADMIN)
        cls.other_super_admin = make_user("po_root_2", UserRole.SUPER_ADMIN)
        cls.admin = make_user("po_admin", UserRole.ADMIN)
        cls.citizen = make_user("po_citizen")

    def _url(self, name: str, user, **kwargs) -> str:
        return reverse(f"accounts:user-permission-{name}", kwargs={"user_pk": user.pk, **kwargs})

    def test_grant_adds_capability(self):
        response = login(self.super_admin).post(
            self._url("grant", self.citizen),
            {"code": ReclamationsPerms.ASSIGN},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["effect"], "GRANT")
        self.assertEqual(response.data["granted_by"], self.super_admin.pk)

        self.citizen.clear_permission_cache()
        self.assertTrue(self.citizen.has_perm(ReclamationsPerms.ASSIGN))

    def test_revoke_removes_role_default(self):
        client = login(self.super_admin)
        response = client.post(
            self._url("revoke", self.citizen), {"code": ReclamationsPerms.CREATE}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

        response = client.get(self._url("list", self.citizen))
        self.assertIn(ReclamationsPerms.CREATE, response.data["role_defaults"])
        self.assertNotIn(ReclamationsPerms.CREATE, response.data["effective"])
        self.assertEqual([row["code"] for row in response.data["overrides"]], [ReclamationsPerms.CREATE])

    def test_grant_then_revoke_flips_single_row(self):
        client = login(self.super_admin)
        client.post(self._url("grant", self.citizen), {"code": ReclamationsPerms.ARCHIVE}, format="json")
        client.post(self._url("revoke", self.citizen), {"code": ReclamationsPerms.ARCHIVE}, format="json")
        rows = PermissionGrant.objects.filter(user=self.citizen, code=ReclamationsPerms.ARCHIVE)
        self.assertEqual(rows.count(), 1)
        self.assertEqual(rows.get().effect, "REVOKE")

    def test_clear_restores_default(self):
        PermissionGrant.objects.create(user=self.citizen, code=ReclamationsPerms.CREATE, effect="REVOKE")
        response = login(self.super_admin).delete(
            self._url("detail", self.citizen, code=ReclamationsPerms.CREATE),
        )
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        self.assertFalse(PermissionGrant.objects.filter(user=self.citizen).exists())

    def test_clear_without_override_is_404(self):
        response = login(self.super_admin).delete(
            self._url("detail", self.citizen, code=ReclamationsPerms.CREATE),
        )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_admin_cannot_manage_overrides(self):
        response = login(self.admin).post(
            self._url("grant", self.citizen), {"code": ReclamationsPerms.ASSIGN}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.assertFalse(PermissionGrant.objects.exists())

    def test_super_admin_target_is_protected(self):
        response = login(self.super_admin).post(
            self._url("revoke", self.other_super_admin), {"code": UsersPerms.READ}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_code_is_400(self):
        response = login(self.super_admin).post(
            self._url("grant", self.citizen), {"code": "reclamations.teleport"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_past_expiry_is_400(self):
        response = login(self.super_admin).post(
            self._url("grant", self.citizen),
            {"code": ReclamationsPerms.ASSIGN, "expires_at": (timezone.now() - timedelta(hours=1)).isoformat()},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("expires_at", response.data["errors"])

    def test_user_reads_own_permissions(self):
        response = login(self.citizen).get(self._url("list", self.citizen))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["role"], UserRole.CITIZEN)

    def test_citizen_cannot_read_others_permissions(self):
        response = login(self.citizen).get(self._url("list", self.admin))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_catalog_lists_every_code(self):
        response = login(self.citizen).get(reverse("accounts:permission-catalog"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(set(response.data["codes"]), set(ALL_PERMISSION_CODES))
        self.assertEqual(
            set(response.data["role_defaults"][UserRole.SUPER_ADMIN]), set(ALL_PERMISSION_CODES),
        )
