"""
Core constants — **Single Source of Truth** for project-wide limits.

Any validation rule that references a numeric limit should import it
from here instead of hardcoding.  Serializers, services and tests all
read the same values.
"""

# ── Complaint content ───────────────────────────────────────────────
TITLE_MIN_LENGTH: int = 5
TITLE_MAX_LENGTH: int = 200
DESCRIPTION_MIN_LENGTH: int = 20
DESCRIPTION_MAX_LENGTH: int = 5000
CATEGORY_MAX_LENGTH: int = 50
NEIGHBOURHOOD_MAX_LENGTH: int = 200
ADDRESS_MAX_LENGTH: int = 500

# ── Triage / dispatch / resolution ──────────────────────────────────
REJECTION_REASON_MAX_LENGTH: int = 2000
ASSIGNMENT_COMMENT_MAX_LENGTH: int = 500
SOLUTION_MIN_LENGTH: int = 10
SOLUTION_MAX_LENGTH: int = 5000

# ── Listing ─────────────────────────────────────────────────────────
DEFAULT_PAGE_SIZE: int = 10
MAX_PAGE_SIZE: int = 100
