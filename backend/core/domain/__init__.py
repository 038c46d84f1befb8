"""
core.domain — Shared domain utilities for cross-app service layers.

Modules
-------
exceptions     Domain-specific exceptions that map cleanly to HTTP responses.
permissions    Immutable permission catalog + override-aware resolver.
access         Visibility scopes and permission guards.
security       Security-event logging on the ``security`` logger.
notifications  Notification creation and best-effort on-commit dispatch.
transactions   Helpers for ``transaction.atomic`` + ``select_for_update``.

Usage from any app::

    from core.domain.exceptions import DomainError, InvalidTransition
    from core.domain.permissions import get_default_resolver
    from core.domain.access import VisibilityScope
    from core.domain.notifications import NotificationService
    from core.domain.transactions import compare_and_set
"""
