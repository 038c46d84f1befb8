"""
Integration tests — notification inbox and the post-commit sink.

    GET  /api/core/notifications/
    POST /api/core/notifications/{id}/read/
    POST /api/core/notifications/read-all/
"""

from __future__ import annotations

import pytest
from django.urls import reverse
from rest_framework import status
from rest_framework_simplejwt.tokens import AccessToken

from core.domain.notifications import NotificationService
from core.models import Notification

pytestmark = pytest.mark.django_db


def _login(api_client, user):
    api_client.credentials(HTTP_AUTHORIZATION=f"Bearer {AccessToken.for_user(user)}")
    return api_client


class TestNotificationService:

    def test_create_renders_templates(self, create_user):
        user = create_user()
        [notification] = NotificationService.create(
            actor=None,
            recipients=user,
            event_type="complaint_rejected",
            payload={"reason": "Duplicate report"},
            link="/reclamations/3",
        )
        assert notification.title == "Complaint Rejected"
        assert notification.message.endswith("Reason: Duplicate report")
        assert notification.link == "/reclamations/3"

    def test_missing_placeholder_renders_dash(self, create_user):
        user = create_user()
        [notification] = NotificationService.create(
            actor=None, recipients=[user], event_type="complaint_rejected",
        )
        assert notification.message.endswith("Reason: -")

    def test_empty_recipients_creates_nothing(self):
        assert NotificationService.create(actor=None, recipients=[], event_type="role_changed") == []

    def test_notify_waits_for_commit(self, create_user, django_capture_on_commit_callbacks):
        user = create_user()
        with django_capture_on_commit_callbacks(execute=False) as callbacks:
            NotificationService.notify(actor=None, recipients=user, event_type="complaint_accepted")
        assert len(callbacks) == 1
        assert not Notification.objects.exists()

        callbacks[0]()
        assert Notification.objects.filter(recipient=user).count() == 1


class TestNotificationInbox:

    def _seed(self, user, count: int = 2):
        for _ in range(count):
            NotificationService.create(actor=None, recipients=user, event_type="complaint_accepted")

    def test_list_only_own(self, api_client, create_user):
        me, other = create_user(), create_user()
        self._seed(me)
        self._seed(other, count=1)

        response = _login(api_client, me).get(reverse("core:notification-list"))
        assert response.status_code == status.HTTP_200_OK
        assert len(response.data) == 2

    def test_mark_one_read(self, api_client, create_user):
        me = create_user()
        self._seed(me)
        notification = Notification.objects.filter(recipient=me).first()

        client = _login(api_client, me)
        response = client.post(reverse("core:notification-mark-as-read", kwargs={"pk": notification.pk}))
        assert response.status_code == status.HTTP_200_OK
        assert response.data["is_read"] is True

        unread = client.get(reverse("core:notification-list"), {"unread": "true"})
        assert len(unread.data) == 1

    def test_cannot_read_foreign_notification(self, api_client, create_user):
        me, other = create_user(), create_user()
        self._seed(other, count=1)
        foreign = Notification.objects.get(recipient=other)

        response = _login(api_client, me).post(
            reverse("core:notification-mark-as-read", kwargs={"pk": foreign.pk}),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_non_numeric_id_is_404(self, api_client, create_user):
        response = _login(api_client, create_user()).post(
            reverse("core:notification-mark-as-read", kwargs={"pk": "abc"}),
        )
        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_mark_all_read(self, api_client, create_user):
        me = create_user()
        self._seed(me, count=3)
        response = _login(api_client, me).post(reverse("core:notification-mark-all-as-read"))
        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"updated": 3}
        assert not Notification.objects.filter(recipient=me, is_read=False).exists()

    def test_requires_authentication(self, api_client):
        response = api_client.get(reverse("core:notification-list"))
        assert response.status_code == status.HTTP_401_UNAUTHORIZED
