"""
Integration tests — login with any unique identifier.

Endpoint under test:  POST /api/accounts/auth/login/
Request payload:      {"identifier": "<username|email|phone|national_id>",
                       "password": "<password>"}
Success response:     HTTP 200 with {"access", "refresh", "user"}.
Failure response:     HTTP 400 on invalid credentials.
"""

from __future__ import annotations

from django.test import TestCase
from django.urls import reverse
from rest_framework import status
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import AccessToken

from accounts.models import UserRole
from core.permissions_constants import ReclamationsPerms

from .base import PASSWORD, make_user


class TestLogin(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.user = make_user(
            "login_user",
            UserRole.LOCAL_AUTHORITY,
            email="login_user@example.com",
            national_id="8800000099",
            phone_number="09130000099",
            sector="ROADS",
        )

    def setUp(self):
        self.client = APIClient()
        self.url = reverse("accounts:login")

    def _post(self, identifier: str, password: str = PASSWORD):
        return self.client.post(
            self.url, {"identifier": identifier, "password": password}, format="json",
        )

    def test_login_with_each_identifier(self):
        for identifier in ("login_user", "LOGIN_USER@example.com", "09130000099", "8800000099"):
            response = self._post(identifier)
            self.assertEqual(response.status_code, status.HTTP_200_OK, identifier)
            self.assertIn("access", response.data)
            self.assertIn("refresh", response.data)
            self.assertEqual(response.data["user"]["id"], self.user.pk)

    def test_access_token_carries_role_claims(self):
        response = self._post("login_user")
        token = AccessToken(response.data["access"])
        self.assertEqual(token["role"], UserRole.LOCAL_AUTHORITY)
        self.assertEqual(token["sector"], "ROADS")
        self.assertIn(ReclamationsPerms.RESOLVE, token["permissions_list"])

    def test_wrong_password(self):
        response = self._post("login_user", "Wrong!Pass00")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertNotIn("access", response.data)

    def test_unknown_identifier(self):
        response = self._post("nobody")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_inactive_user_cannot_login(self):
        make_user("dormant", is_active=False)
        response = self._post("dormant")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)

    def test_refresh_token(self):
        refresh = self._post("login_user").data["refresh"]
        response = self.client.post(reverse("accounts:token-refresh"), {"refresh": refresh}, format="json")
        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertIn("access", response.data)
