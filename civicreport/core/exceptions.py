"""
CivicReport - Error taxonomy

Services raise these exceptions; the API layer turns them into
``{"error": <code>}`` responses with the matching HTTP status.
"""

from typing import Optional


class CivicReportError(Exception):
    """Base class for errors surfaced to API clients."""

    status_code = 500
    default_code = "internal_error"

    def __init__(self, code: Optional[str] = None, message: Optional[str] = None):
        self.code = code or self.default_code
        super().__init__(message or self.code)


class InvalidInputError(CivicReportError):
    """Malformed or missing request fields."""
    status_code = 400
    default_code = "invalid_input"


class UnauthorizedError(CivicReportError):
    """Bad credentials, bad OTP or missing/invalid token."""
    status_code = 401
    default_code = "unauthorized"


class ForbiddenError(CivicReportError):
    """Authenticated caller lacks the admin claim."""
    status_code = 403
    default_code = "forbidden"


class NotFoundError(CivicReportError):
    status_code = 404
    default_code = "not_found"


class InternalError(CivicReportError):
    """Unexpected storage or object-store failure."""
    status_code = 500
    default_code = "internal_error"
