"""
core.domain.transactions — Helpers for safe state transitions.

Provides the write-side helpers that every app's service layer uses
alongside ``transaction.atomic`` and ``select_for_update``.

Design goals
------------
* State-transition reads always lock the row first
  (``select_for_update``) to prevent lost updates.
* Where a lock alone is not enough (databases that ignore
  ``FOR UPDATE``, e.g. SQLite), ``compare_and_set`` performs the write
  as a conditional ``UPDATE … WHERE <expected state>`` and reports
  whether it won.
* Side effects that must not roll back a committed transition go
  through ``on_commit_best_effort``.

Usage::

    from core.domain.transactions import compare_and_set

    with transaction.atomic():
        complaint = Complaint.objects.select_for_update().get(pk=pk)
        ...
        won = compare_and_set(
            Complaint, pk,
            expected={"assignment": "UNASSIGNED"},
            changes={"assignment": "ASSIGNED", "assigned_authority_id": 7},
        )
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Mapping

from django.db import models, transaction

logger = logging.getLogger(__name__)


def compare_and_set(
    model_class: type[models.Model],
    pk: Any,
    *,
    expected: Mapping[str, Any],
    changes: Mapping[str, Any],
) -> bool:
    """
    Conditionally update one row: ``UPDATE … SET changes WHERE pk AND expected``.

    Returns ``True`` when exactly one row matched (this caller won) and
    ``False`` when the row no longer satisfied ``expected``.  Model
    ``save()`` hooks and ``auto_now`` fields are bypassed, so include
    ``updated_at`` in ``changes`` when the model carries one.
    """
    updated = (
        model_class.objects
        .filter(pk=pk, **expected)
        .update(**changes)
    )
    return updated == 1


def on_commit_best_effort(fn: Callable[[], Any], *, description: str) -> None:
    """
    Schedule ``fn`` to run after the surrounding transaction commits.

    Failures inside ``fn`` are logged with their traceback and never
    propagate: the transition they follow is already durable.  Outside
    an atomic block Django runs the callback immediately.
    """

    def _run() -> None:
        try:
            fn()
        except Exception:
            logger.exception("Deferred side effect failed: %s", description)

    transaction.on_commit(_run)
