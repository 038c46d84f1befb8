"""
Smoke tests — verify that Django boots, URL routing resolves, and
the core domain modules are importable.

These tests require a DB (they use ``@pytest.mark.django_db`` where
needed) but do NOT require real data — they just prove the plumbing
works.
"""

from __future__ import annotations

import pytest
from django.urls import resolve, reverse


# ════════════════════════════════════════════════════════════════════
#  URL Routing Smoke Tests
# ════════════════════════════════════════════════════════════════════

class TestURLRouting:
    """Ensure all top-level app URL namespaces resolve without 404."""

    EXPECTED_URLS = [
        # (url_name, expected_path_prefix)
        ("complaints:complaint-list",     "/api/complaints/"),
        ("accounts:login",                "/api/accounts/auth/login/"),
        ("accounts:register",             "/api/accounts/auth/register/"),
        ("accounts:me",                   "/api/accounts/me/"),
        ("accounts:user-list",            "/api/accounts/users/"),
        ("accounts:permission-catalog",   "/api/accounts/permissions/"),
        ("core:system-constants",         "/api/core/constants/"),
        ("core:notification-list",        "/api/core/notifications/"),
    ]

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolves(self, url_name: str, expected_prefix: str):
        """Named URL reverses to the expected path prefix."""
        url = reverse(url_name)
        assert url.startswith(expected_prefix), (
            f"{url_name} resolved to {url}, expected prefix {expected_prefix}"
        )

    @pytest.mark.parametrize("url_name,expected_prefix", EXPECTED_URLS)
    def test_url_resolve_matches_view(self, url_name: str, expected_prefix: str):
        """Path resolves to a view function (not a 404)."""
        match = resolve(expected_prefix)
        assert match.func is not None

    def test_complaint_transition_routes(self):
        for name in ("accept", "reject", "assign", "unassign", "resolve", "archive", "history"):
            url = reverse(f"complaints:complaint-{name}", kwargs={"pk": 7})
            assert url == f"/api/complaints/7/{name}/"

    def test_nested_permission_routes(self):
        assert reverse("accounts:user-permission-list", kwargs={"user_pk": 3}) == (
            "/api/accounts/users/3/permissions/"
        )
        assert reverse(
            "accounts:user-permission-detail",
            kwargs={"user_pk": 3, "code": "reclamations.assign"},
        ) == "/api/accounts/users/3/permissions/reclamations.assign/"


# ════════════════════════════════════════════════════════════════════
#  Core Domain Module Import Tests
# ════════════════════════════════════════════════════════════════════

class TestCoreDomainImports:
    """Verify that shared domain utility modules are importable."""

    def test_import_exceptions(self):
        from core.domain.exceptions import (
            DomainError,
            PermissionDenied,
            NotFound,
            Conflict,
            InvalidTransition,
            Unauthenticated,
            ValidationError,
        )
        # Ensure they form an inheritance chain
        assert issubclass(InvalidTransition, Conflict)
        assert issubclass(Conflict, DomainError)
        assert issubclass(PermissionDenied, DomainError)
        assert issubclass(NotFound, DomainError)
        assert issubclass(Unauthenticated, DomainError)
        assert issubclass(ValidationError, DomainError)

    def test_import_notifications(self):
        from core.domain.notifications import NotificationService
        assert hasattr(NotificationService, "create")
        assert hasattr(NotificationService, "notify")

    def test_import_transactions(self):
        from core.domain.transactions import (
            compare_and_set,
            on_commit_best_effort,
        )
        assert callable(compare_and_set)
        assert callable(on_commit_best_effort)

    def test_import_access(self):
        from core.domain.access import (
            VisibilityScope,
            require_authenticated,
        )
        assert callable(require_authenticated)
        assert hasattr(VisibilityScope, "get_visible")


# ════════════════════════════════════════════════════════════════════
#  Exception Behaviour Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptions:
    """Unit tests for domain exception classes."""

    def test_domain_error_message(self):
        from core.domain.exceptions import DomainError
        err = DomainError("test message")
        assert str(err) == "test message"

    def test_invalid_transition_structured(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition(
            current="PENDING",
            target="ASSIGNED",
            reason="Complaint must be accepted first.",
        )
        assert "PENDING" in str(err)
        assert "ASSIGNED" in str(err)
        assert "Complaint must be accepted first." in str(err)
        assert err.current == "PENDING"
        assert err.target == "ASSIGNED"

    def test_invalid_transition_plain_message(self):
        from core.domain.exceptions import InvalidTransition
        err = InvalidTransition("Cannot archive complaint.")
        assert str(err) == "Cannot archive complaint."

    def test_validation_error_carries_field_errors(self):
        from core.domain.exceptions import ValidationError
        err = ValidationError(errors={"title": ["Too short."]})
        assert err.errors == {"title": ["Too short."]}
        assert str(err) == "Invalid data."


# ════════════════════════════════════════════════════════════════════
#  Exception Handler Tests
# ════════════════════════════════════════════════════════════════════

class TestDomainExceptionHandler:
    """Domain exceptions map onto HTTP status codes."""

    @pytest.mark.parametrize("exc_path,expected", [
        ("Unauthenticated", 401),
        ("PermissionDenied", 403),
        ("NotFound", 404),
        ("Conflict", 409),
        ("InvalidTransition", 409),
        ("ValidationError", 400),
    ])
    def test_status_mapping(self, exc_path: str, expected: int):
        from core.domain import exceptions
        from core.domain.exception_handler import domain_exception_handler

        exc = getattr(exceptions, exc_path)()
        response = domain_exception_handler(exc, {"view": None})
        assert response.status_code == expected
        assert "detail" in response.data

    def test_validation_errors_in_body(self):
        from core.domain.exceptions import ValidationError
        from core.domain.exception_handler import domain_exception_handler

        response = domain_exception_handler(
            ValidationError(errors={"title": ["Required."]}), {"view": None},
        )
        assert response.data["errors"] == {"title": ["Required."]}

    def test_unknown_exception_propagates(self):
        from core.domain.exception_handler import domain_exception_handler
        assert domain_exception_handler(KeyError("x"), {"view": None}) is None


# ════════════════════════════════════════════════════════════════════
#  System Constants Endpoint
# ════════════════════════════════════════════════════════════════════

@pytest.mark.django_db
class TestSystemConstants:

    def test_constants_are_public(self, api_client):
        resp = api_client.get(reverse("core:system-constants"))
        assert resp.status_code == 200
        values = {item["value"] for item in resp.data["complaint_statuses"]}
        assert values == {"PENDING", "ACCEPTED", "REJECTED"}
        assert {item["value"] for item in resp.data["assignment_states"]} == {"UNASSIGNED", "ASSIGNED"}
