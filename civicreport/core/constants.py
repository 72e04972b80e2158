"""
CivicReport - Constants and Reference Data
Static values used throughout the application.
"""

from typing import Dict, List, Tuple

# =============================================================================
# REPORT INPUT LIMITS
# =============================================================================

MAX_DESCRIPTION_LENGTH: int = 280

# Content types accepted for photo uploads, with the file extension used in the key
UPLOAD_CONTENT_TYPES: Dict[str, str] = {
    "image/jpeg": "jpg",
    "image/png": "png",
}
DEFAULT_UPLOAD_CONTENT_TYPE: str = "image/jpeg"

DEFAULT_PAGE_SIZE: int = 20
MAX_PAGE_SIZE: int = 100

# =============================================================================
# AUTH
# =============================================================================

OTP_LENGTH: int = 6
PLACEHOLDER_USER_NAME: str = "Usuário"

# Users created on startup in development when the users table is empty
# (name, phone, is_admin)
DEV_USERS: List[Tuple[str, str, bool]] = [
    ("Admin Dev", "+5511990000000", True),
    ("Usuário Dev", "+5511990000001", False),
]

# =============================================================================
# MODERATION
# =============================================================================

MODERATION_APPROVED_SCORE: float = 0.9
MODERATION_NEEDS_REVIEW_SCORE: float = 0.4

MAX_ACCURACY_METERS: float = 100.0
MAX_REPEATED_WORD_COUNT: int = 3
MIN_WORDS_FOR_REPETITION: int = 3
MAX_DAILY_REPORTS_PER_USER: int = 3
LINK_MARKERS: Tuple[str, ...] = ("http", "www")

REASON_CONTAINS_LINK = "description_contains_link"
REASON_REPETITION = "description_repetition"
REASON_ACCURACY_TOO_LOW = "accuracy_too_low"
REASON_DAILY_LIMIT = "daily_limit_exceeded"

# =============================================================================
# AUDIT LOG
# =============================================================================

AUDIT_ENTITY_REPORT = "Report"

ACTION_CREATED = "CREATED"
ACTION_APPROVED_MANUAL = "APPROVED_MANUAL"
ACTION_REJECTED_MANUAL = "REJECTED_MANUAL"
ACTION_APPROVED_AUTO = "APPROVED_AUTO"
ACTION_NEEDS_REVIEW_AUTO = "NEEDS_REVIEW_AUTO"

# =============================================================================
# EXPORT
# =============================================================================

CSV_HEADER: List[str] = [
    "id",
    "category",
    "description",
    "lat",
    "lng",
    "accuracy",
    "status",
    "created_at",
    "validated_at",
    "user_phone",
]

# Map view center when there are no reports to show (Brazil)
DEFAULT_MAP_CENTER: Tuple[float, float] = (-14.235, -51.925)
