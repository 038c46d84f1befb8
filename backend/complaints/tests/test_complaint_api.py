"""
Integration tests — complaint HTTP API.

Endpoints under test: /api/complaints/ and its detail / transition
actions (named URLs ``complaints:complaint-*``).  Clients authenticate
through the real login endpoint so the JWT stack is exercised end to
end.

Status mapping checked here: 401 unauthenticated, 403 missing
permission or lifecycle-field smuggling, 404 missing or out of scope,
409 invalid transition, 400 validation error.
"""

from __future__ import annotations

from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient

from complaints.models import Complaint

from .base import PASSWORD, ComplaintTestBase, complaint_payload


class ComplaintAPITestBase(ComplaintTestBase):

    def setUp(self):
        super().setUp()
        self.list_url = reverse("complaints:complaint-list")

    def _client_for(self, user) -> APIClient:
        client = APIClient()
        response = client.post(
            reverse("accounts:login"),
            {"identifier": user.username, "password": PASSWORD},
            format="json",
        )
        assert response.status_code == status.HTTP_200_OK, response.data
        client.credentials(HTTP_AUTHORIZATION=f"Bearer {response.data['access']}")
        return client

    def _detail_url(self, pk: int) -> str:
        return reverse("complaints:complaint-detail", kwargs={"pk": pk})

    def _action_url(self, name: str, pk: int) -> str:
        return reverse(f"complaints:complaint-{name}", kwargs={"pk": pk})


class TestComplaintEndpoints(ComplaintAPITestBase):

    def test_unauthenticated_request_is_401(self):
        response = APIClient().get(self.list_url)
        self.assertEqual(response.status_code, status.HTTP_401_UNAUTHORIZED)

    def test_submit_returns_201(self):
        client = self._client_for(self.citizen)
        response = client.post(self.list_url, complaint_payload(status="ACCEPTED"), format="json")
        self.assertEqual(response.status_code, status.HTTP_201_CREATED, response.data)
        self.assertEqual(response.data["status"], "PENDING")
        self.assertEqual(response.data["assignment"], "UNASSIGNED")
        self.assertEqual(response.data["created_by"]["id"], self.citizen.pk)

    def test_invalid_submit_returns_400_with_errors(self):
        client = self._client_for(self.citizen)
        response = client.post(self.list_url, complaint_payload(title="abc"), format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("title", response.data["errors"])
        self.assertFalse(Complaint.objects.exists())

    def test_submit_without_permission_is_403(self):
        client = self._client_for(self.authority)
        response = client.post(self.list_url, complaint_payload(), format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_list_is_scoped_and_paginated(self):
        for index in range(6):
            self.submit(title=f"Broken bench number {index}")
        self.submit(owner=self.other_citizen)

        client = self._client_for(self.citizen)
        response = client.get(self.list_url, {"limit": 5})
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["count"], 6)
        self.assertEqual(len(response.data["results"]), 5)
        self.assertTrue(
            all(row["created_by"]["id"] == self.citizen.pk for row in response.data["results"])
        )

    def test_invalid_filter_is_400(self):
        client = self._client_for(self.citizen)
        response = client.get(self.list_url, {"status": "LOST"})
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_foreign_complaint_is_404(self):
        complaint = self.submit(owner=self.other_citizen)
        client = self._client_for(self.citizen)
        with self.assertLogs("security", level="WARNING"):
            response = client.get(self._detail_url(complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        self.assertIn("detail", response.data)
        self.assertNotIn("title", response.data)

    def test_non_numeric_id_is_404(self):
        client = self._client_for(self.admin)
        response = client.get(self._detail_url("abc"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
        response = client.post(self._action_url("accept", "abc"))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)

    def test_patch_with_status_is_403(self):
        complaint = self.submit()
        client = self._client_for(self.citizen)
        with self.assertLogs("security", level="WARNING"):
            response = client.patch(
                self._detail_url(complaint.pk),
                {"title": "Renamed complaint", "status": "ACCEPTED"},
                format="json",
            )
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)
        complaint.refresh_from_db()
        self.assertEqual(complaint.status, "PENDING")
        self.assertEqual(complaint.title, "Overflowing rubbish bins")

    def test_patch_content(self):
        complaint = self.submit()
        client = self._client_for(self.citizen)
        response = client.patch(
            self._detail_url(complaint.pk), {"title": "Bins overflowing again"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["title"], "Bins overflowing again")

    def test_withdraw_returns_204(self):
        complaint = self.submit()
        client = self._client_for(self.citizen)
        response = client.delete(self._detail_url(complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_204_NO_CONTENT)
        response = client.get(self._detail_url(complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)


class TestComplaintTransitionsAPI(ComplaintAPITestBase):

    def test_full_flow_over_http(self):
        complaint = self.submit()
        citizen = self._client_for(self.citizen)
        admin = self._client_for(self.admin)
        authority = self._client_for(self.authority)

        response = admin.post(self._action_url("accept", complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["status"], "ACCEPTED")

        response = admin.post(self._action_url("accept", complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_409_CONFLICT)

        response = admin.post(
            self._action_url("assign", complaint.pk),
            {"authority_id": self.authority.pk, "comment": "Urgent, near the school."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertEqual(response.data["assignment"], "ASSIGNED")
        self.assertEqual(response.data["assigned_authority"]["id"], self.authority.pk)
        self.assertEqual(response.data["sector"], "HEALTH")

        response = authority.post(
            self._action_url("resolve", complaint.pk),
            {"solution": "Collection schedule restored."},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK, response.data)
        self.assertTrue(response.data["is_resolved"])

        response = citizen.patch(self._detail_url(complaint.pk), {"title": "x"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

        response = admin.post(self._action_url("archive", complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertTrue(response.data["archived"])

        response = citizen.get(self._action_url("history", complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            [entry["action"] for entry in response.data],
            ["CREATION", "ACCEPTANCE", "ASSIGNMENT", "RESOLUTION", "ARCHIVAL"],
        )

    def test_reject_with_reason(self):
        complaint = self.submit()
        response = self._client_for(self.admin).post(
            self._action_url("reject", complaint.pk), {"reason": "Duplicate report"}, format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["status"], "REJECTED")
        self.assertEqual(response.data["rejection_reason"], "Duplicate report")

    def test_citizen_cannot_accept(self):
        complaint = self.submit()
        response = self._client_for(self.citizen).post(self._action_url("accept", complaint.pk))
        self.assertEqual(response.status_code, status.HTTP_403_FORBIDDEN)

    def test_assign_to_non_authority_is_400(self):
        complaint = self.accepted()
        response = self._client_for(self.admin).post(
            self._action_url("assign", complaint.pk),
            {"authority_id": self.citizen.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("authority_id", response.data["errors"])

    def test_unassign_and_reassign(self):
        complaint = self.assigned()
        admin = self._client_for(self.admin)
        response = admin.post(self._action_url("unassign", complaint.pk), {"comment": "Wrong team"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(response.data["assignment"], "UNASSIGNED")
        self.assertIsNone(response.data["assigned_authority"])
        self.assertEqual(response.data["sector"], "")

        response = admin.post(
            self._action_url("assign", complaint.pk),
            {"authority_id": self.other_authority.pk},
            format="json",
        )
        self.assertEqual(response.status_code, status.HTTP_200_OK)

    def test_other_authority_gets_404_on_resolve(self):
        complaint = self.assigned()
        with self.assertLogs("security", level="WARNING"):
            response = self._client_for(self.other_authority).post(
                self._action_url("resolve", complaint.pk),
            )
        self.assertEqual(response.status_code, status.HTTP_404_NOT_FOUND)
