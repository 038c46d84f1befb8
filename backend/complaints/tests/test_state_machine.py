"""
Unit tests — ComplaintStateMachine.

The machine is pure: every transition mutates an in-memory ``Complaint``
and returns the changed field names.  Users are saved (assignment needs
a real authority id) but complaints never are.
"""

from __future__ import annotations

import itertools

from django.test import SimpleTestCase, TestCase
from django.utils import timezone

from accounts.models import User, UserRole
from complaints import state_machine as sm
from complaints.models import AssignmentState, Complaint, ComplaintStatus
from core.domain.exceptions import InvalidTransition, ValidationError
from core.permissions_constants import ReclamationsPerms

Machine = sm.ComplaintStateMachine
_ids = itertools.count(1)


def _make_user(username: str, role: str, **extra) -> User:
    return User.objects.create_user(
        username=username,
        password="Str0ng!Pass99",
        email=f"{username}@example.com",
        national_id=f"77{next(_ids):08d}",
        role=role,
        **extra,
    )


class StateMachineTestCase(TestCase):

    @classmethod
    def setUpTestData(cls):
        cls.citizen = _make_user("sm_citizen", UserRole.CITIZEN)
        cls.admin = _make_user("sm_admin", UserRole.ADMIN)
        cls.authority = _make_user("sm_authority", UserRole.LOCAL_AUTHORITY, sector="north")
        cls.other_citizen = _make_user("sm_other", UserRole.CITIZEN)

    def _complaint(self, **fields) -> Complaint:
        defaults = {
            "title": "Broken street light",
            "description": "The light on the corner has been out for a week.",
            "category": "eclairage",
            "commune_id": 1,
            "created_by": self.citizen,
        }
        defaults.update(fields)
        return Complaint(**defaults)

    def _accepted(self) -> Complaint:
        complaint = self._complaint()
        Machine.accept(complaint, actor=self.admin, now=timezone.now())
        return complaint

    def _assigned(self) -> Complaint:
        complaint = self._accepted()
        Machine.assign(complaint, actor=self.admin, authority=self.authority, now=timezone.now())
        return complaint


class TestTransitionPermissions(SimpleTestCase):

    def test_each_transition_has_one_permission(self):
        assert set(sm.TRANSITION_PERMISSIONS) == {
            sm.SUBMIT, sm.ACCEPT, sm.REJECT, sm.ASSIGN, sm.UNASSIGN,
            sm.RESOLVE, sm.EDIT_CONTENT, sm.WITHDRAW, sm.ARCHIVE,
        }
        assert sm.TRANSITION_PERMISSIONS[sm.ACCEPT] == ReclamationsPerms.VALIDATE
        assert sm.TRANSITION_PERMISSIONS[sm.ASSIGN] == ReclamationsPerms.ASSIGN
        assert sm.TRANSITION_PERMISSIONS[sm.EDIT_CONTENT] == ReclamationsPerms.EDIT


class TestSubmitAndTriage(StateMachineTestCase):

    def test_submit_sets_initial_state(self):
        complaint = self._complaint(status=ComplaintStatus.ACCEPTED, archived=True)
        Machine.submit(complaint)
        self.assertEqual(complaint.status, ComplaintStatus.PENDING)
        self.assertEqual(complaint.assignment, AssignmentState.UNASSIGNED)
        self.assertFalse(complaint.archived)

    def test_accept_pending(self):
        now = timezone.now()
        complaint = self._complaint()
        fields = Machine.accept(complaint, actor=self.admin, now=now)
        self.assertEqual(complaint.status, ComplaintStatus.ACCEPTED)
        self.assertEqual(complaint.assignment, AssignmentState.UNASSIGNED)
        self.assertEqual(complaint.decided_at, now)
        self.assertIn("updated_at", fields)

    def test_accept_twice_is_invalid(self):
        complaint = self._accepted()
        with self.assertRaises(InvalidTransition) as ctx:
            Machine.accept(complaint, actor=self.admin, now=timezone.now())
        self.assertEqual(ctx.exception.current, ComplaintStatus.ACCEPTED)

    def test_reject_after_accept_is_invalid(self):
        complaint = self._accepted()
        with self.assertRaises(InvalidTransition):
            Machine.reject(complaint, actor=self.admin, now=timezone.now(), reason="late")

    def test_reject_stores_reason(self):
        complaint = self._complaint()
        Machine.reject(complaint, actor=self.admin, now=timezone.now(), reason="Duplicate report")
        self.assertEqual(complaint.status, ComplaintStatus.REJECTED)
        self.assertEqual(complaint.rejection_reason, "Duplicate report")
        self.assertEqual(complaint.assignment, AssignmentState.UNASSIGNED)


class TestDispatch(StateMachineTestCase):

    def test_assign_accepted(self):
        complaint = self._assigned()
        self.assertEqual(complaint.assignment, AssignmentState.ASSIGNED)
        self.assertEqual(complaint.assigned_authority_id, self.authority.pk)
        self.assertEqual(complaint.sector, "north")

    def test_explicit_sector_wins(self):
        complaint = self._accepted()
        Machine.assign(
            complaint, actor=self.admin, authority=self.authority,
            now=timezone.now(), sector="south",
        )
        self.assertEqual(complaint.sector, "south")

    def test_assign_pending_is_invalid(self):
        with self.assertRaises(InvalidTransition):
            Machine.assign(
                self._complaint(), actor=self.admin, authority=self.authority, now=timezone.now(),
            )

    def test_assign_twice_is_invalid(self):
        complaint = self._assigned()
        with self.assertRaises(InvalidTransition):
            Machine.assign(complaint, actor=self.admin, authority=self.authority, now=timezone.now())

    def test_assign_archived_is_invalid(self):
        complaint = self._accepted()
        complaint.archived = True
        with self.assertRaises(InvalidTransition):
            Machine.assign(complaint, actor=self.admin, authority=self.authority, now=timezone.now())

    def test_authority_must_be_active_local_authority(self):
        with self.assertRaises(ValidationError) as ctx:
            Machine.validate_authority(self.other_citizen)
        self.assertIn("authority_id", ctx.exception.errors)
        with self.assertRaises(ValidationError):
            Machine.validate_authority(None)

        inactive = _make_user("sm_inactive_authority", UserRole.LOCAL_AUTHORITY, is_active=False)
        with self.assertRaises(ValidationError):
            Machine.validate_authority(inactive)

    def test_unassign(self):
        complaint = self._assigned()
        Machine.unassign(complaint)
        self.assertEqual(complaint.assignment, AssignmentState.UNASSIGNED)
        self.assertIsNone(complaint.assigned_authority_id)
        self.assertEqual(complaint.sector, "")

    def test_unassign_unassigned_is_invalid(self):
        with self.assertRaises(InvalidTransition):
            Machine.unassign(self._accepted())

    def test_unassign_resolved_is_invalid(self):
        complaint = self._assigned()
        Machine.resolve(complaint, actor=self.authority, now=timezone.now())
        with self.assertRaises(InvalidTransition):
            Machine.unassign(complaint)


class TestResolutionAndArchival(StateMachineTestCase):

    def test_resolve_assigned(self):
        complaint = self._assigned()
        Machine.resolve(complaint, actor=self.authority, now=timezone.now(), solution="Bulb replaced.")
        self.assertTrue(complaint.is_resolved)
        self.assertEqual(complaint.solution, "Bulb replaced.")

    def test_resolve_unassigned_is_invalid(self):
        with self.assertRaises(InvalidTransition):
            Machine.resolve(self._accepted(), actor=self.admin, now=timezone.now())

    def test_resolve_twice_is_invalid(self):
        complaint = self._assigned()
        Machine.resolve(complaint, actor=self.authority, now=timezone.now())
        with self.assertRaises(InvalidTransition):
            Machine.resolve(complaint, actor=self.authority, now=timezone.now())

    def test_archive_resolved_and_rejected(self):
        resolved = self._assigned()
        Machine.resolve(resolved, actor=self.authority, now=timezone.now())
        Machine.archive(resolved, now=timezone.now())
        self.assertTrue(resolved.archived)

        rejected = self._complaint()
        Machine.reject(rejected, actor=self.admin, now=timezone.now())
        Machine.archive(rejected, now=timezone.now())
        self.assertTrue(rejected.archived)

    def test_archive_open_complaint_is_invalid(self):
        with self.assertRaises(InvalidTransition):
            Machine.archive(self._accepted(), now=timezone.now())

    def test_archive_twice_is_invalid(self):
        complaint = self._complaint()
        Machine.reject(complaint, actor=self.admin, now=timezone.now())
        Machine.archive(complaint, now=timezone.now())
        with self.assertRaises(InvalidTransition):
            Machine.archive(complaint, now=timezone.now())


class TestOwnerOperations(StateMachineTestCase):

    def test_edit_content_returns_changed_fields(self):
        complaint = self._complaint()
        fields = Machine.edit_content(complaint, {"title": "Street light still broken"})
        self.assertEqual(fields, ["title", "updated_at"])

    def test_edit_content_without_changes(self):
        complaint = self._complaint()
        self.assertEqual(Machine.edit_content(complaint, {"title": complaint.title}), [])

    def test_edit_content_after_accept_is_invalid(self):
        with self.assertRaises(InvalidTransition):
            Machine.edit_content(self._accepted(), {"title": "Changed title"})

    def test_owner_withdraw_rules(self):
        Machine.check_withdrawable(self._complaint(), privileged=False)

        rejected = self._complaint()
        Machine.reject(rejected, actor=self.admin, now=timezone.now())
        Machine.check_withdrawable(rejected, privileged=False)

        with self.assertRaises(InvalidTransition):
            Machine.check_withdrawable(self._accepted(), privileged=False)

    def test_privileged_withdraw_any_status(self):
        Machine.check_withdrawable(self._assigned(), privileged=True)


class TestInvariants(StateMachineTestCase):

    def test_assigned_requires_accepted(self):
        complaint = self._assigned()
        complaint.status = ComplaintStatus.PENDING
        with self.assertRaises(InvalidTransition):
            Machine.check_invariants(complaint)

    def test_assigned_requires_authority(self):
        complaint = self._accepted()
        complaint.assignment = AssignmentState.ASSIGNED
        with self.assertRaises(InvalidTransition):
            Machine.check_invariants(complaint)

    def test_resolved_requires_assigned(self):
        complaint = self._accepted()
        complaint.resolved_at = timezone.now()
        with self.assertRaises(InvalidTransition):
            Machine.check_invariants(complaint)
