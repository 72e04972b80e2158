"""
FastAPI dependencies: database session, services and the caller's identity
"""

from typing import Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from civicreport.auth.otp import OTPService
from civicreport.auth.tokens import TokenData, decode_access_token
from civicreport.core.exceptions import ForbiddenError, UnauthorizedError
from civicreport.crowdsource.report_handler import ReportHandler
from civicreport.database.connection import get_session
from civicreport.storage.object_store import ObjectStore, get_object_store

bearer_scheme = HTTPBearer(auto_error=False)


def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
) -> TokenData:
    """Resolve the caller from the bearer token; 401 when absent or invalid."""
    if credentials is None or not credentials.credentials:
        raise UnauthorizedError("missing_token")
    return decode_access_token(credentials.credentials)


def require_admin(user: TokenData = Depends(get_current_user)) -> TokenData:
    """AdminOnly policy: the token must carry ``is_admin: true``."""
    if not user.is_admin:
        raise ForbiddenError("admin_required")
    return user


def get_otp_service(session: Session = Depends(get_session)) -> OTPService:
    return OTPService(session)


def get_report_handler(
    session: Session = Depends(get_session),
    object_store: ObjectStore = Depends(get_object_store),
) -> ReportHandler:
    return ReportHandler(session, object_store=object_store)
