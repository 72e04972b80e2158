"""
CivicReport - Core Utilities
Central configuration, logging, error types and constants.
"""

from civicreport.core.config import settings, get_settings
from civicreport.core.exceptions import (
    CivicReportError,
    InvalidInputError,
    UnauthorizedError,
    ForbiddenError,
    NotFoundError,
    InternalError,
)

__all__ = [
    "settings",
    "get_settings",
    "CivicReportError",
    "InvalidInputError",
    "UnauthorizedError",
    "ForbiddenError",
    "NotFoundError",
    "InternalError",
]
