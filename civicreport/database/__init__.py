"""
Database module for CivicReport
PostgreSQL + PostGIS persistence for users, OTP codes, reports and audit logs
"""

from .connection import DatabaseConnection, get_db, get_session
from .models import (
    Base,
    User,
    OtpCode,
    Report,
    AuditLog,
    ReportCategory,
    ReportStatus,
)

__all__ = [
    "DatabaseConnection",
    "get_db",
    "get_session",
    "Base",
    "User",
    "OtpCode",
    "Report",
    "AuditLog",
    "ReportCategory",
    "ReportStatus",
]
