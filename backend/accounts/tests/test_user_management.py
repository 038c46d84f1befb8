"""
Integration tests — user administration endpoints.

    GET   /api/accounts/users/
    PATCH /api/accounts/users/{id}/change-role/
    PATCH /api/accounts/users/{id}/activate/
    PATCH /api/accounts/users/{id}/deactivate/

Authorization comes from the permission catalog: ``users.read`` for
listing, ``users.edit.role`` for role changes and ``users.activate`` for
activation.  Only a SUPER_ADMIN may touch another SUPER_ADMIN.
"""

from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework import status

from accounts.models import UserRole
from accounts.services import UserManagementService
from core.domain.exceptions import NotFound
from core.models import Notification
from core.permissions_constants import ReclamationsPerms

from .base import login, make_user


class UserManagementTestBase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.super_admin = make_user("um_root", UserRole.SUPER_ADMIN)
        cls.admin = make_user("um_admin", UserRole.ADMIN)
        cls.governor = make_user("um_governor", UserRole.GOVERNOR)
        cls.citizen = make_user("um_citizen")


class TestUserListing(UserManagementTestBase):

    def test_admin_lists_users(self):
        response = login(self.admin).get(reverse("accounts:user-list"))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 4)

    def test_filter_by_role(self):
        response = login(self.governor).get(reverse("accounts:user-list"), {"role": UserRole.CITIZEN})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([row["username"] for row in response.data["results"]], ["um_citizen"])

    def test_citizen_cannot_list(self):
        response = login(self.citizen).get(reverse("accounts:user-list"))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_retrieve_missing_user_is_404(self):
        response = login(self.admin).get(reverse("accounts:user-detail", kwargs={"pk": 987654}))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_non_numeric_user_id_is_404(self):
        client = login(self.admin)
        self.assertEqual(client.get("/api/accounts/users/abc/").status_code, status.HTTP_404_NOT_FOUND)
        self.assertEqual(
            client.get("/api/accounts/users/abc/permissions/").status_code, status.HTTP_404_NOT_FOUND,
        )
        with self.assertRaises(NotFound):
            UserManagementService.get_user(self.admin, "abc")


class TestChangeRole(UserManagementTestBase):

    def _change_role(self, actor, target, **payload):
        return login(actor).patch(
            reverse("accounts:user-change-role", kwargs={"pk": target.pk}),
            payload,
            format="json",
        )

    def test_admin_promotes_citizen_to_local_authority(self):
        with self.captureOnCommitCallbacks(execute=True):
            response = self._change_role(
                self.admin, self.citizen, role=UserRole.LOCAL_AUTHORITY, sector="ROADS",
            )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["role"], UserRole.LOCAL_AUTHORITY)
        self.assertEqual(response.data["sector"], "ROADS")
        self.assertIn(ReclamationsPerms.RESOLVE, response.data["permissions"])
        self.assertTrue(
            Notification.objects.filter(recipient=self.citizen, event_type="role_changed").exists()
        )

    def test_governor_cannot_change_roles(self):
        response = self._change_role(self.governor, self.citizen, role=UserRole.ADMIN)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_cannot_create_super_admin(self):
        response = self._change_role(self.admin, self.citizen, role=UserRole.SUPER_ADMIN)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_admin_cannot_demote_super_admin(self):
        response = self._change_role(self.admin, self.super_admin, role=UserRole.CITIZEN)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        self.super_admin.refresh_from_db()
        self.assertEqual(self.super_admin.role, UserRole.SUPER_ADMIN)

    def test_super_admin_promotes_admin(self):
        response = self._change_role(self.super_admin, self.admin, role=UserRole.SUPER_ADMIN)
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_cannot_change_own_role(self):
        response = self._change_role(self.admin, self.admin, role=UserRole.GOVERNOR)
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_unknown_role_is_400(self):
        response = self._change_role(self.admin, self.citizen, role="WIZARD")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)


class TestActivation(UserManagementTestBase):

    def test_deactivate_and_reactivate(self):
        client = login(self.admin)
        response = client.patch(reverse("accounts:user-deactivate", kwargs={"pk": self.citizen.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertFalse(response.data["is_active"])

        response = client.patch(reverse("accounts:user-activate", kwargs={"pk": self.citizen.pk}))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["is_active"])

    def test_deactivated_user_loses_every_permission(self):
        login(self.admin).patch(reverse("accounts:user-deactivate", kwargs={"pk": self.citizen.pk}))
        self.citizen.refresh_from_db()
        self.assertFalse(self.citizen.has_perm(ReclamationsPerms.CREATE))

    def test_admin_cannot_deactivate_super_admin(self):
        response = login(self.admin).patch(
            reverse("accounts:user-deactivate", kwargs={"pk": self.super_admin.pk}),
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_cannot_deactivate_self(self):
        response = login(self.admin).patch(
            reverse("accounts:user-deactivate", kwargs={"pk": self.admin.pk}),
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_citizen_cannot_activate(self):
        response = login(self.citizen).patch(
            reverse("accounts:user-activate", kwargs={"pk": self.admin.pk}),
        )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
