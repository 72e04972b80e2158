"""
OTP Service - Generate, store, and verify one-time codes for phone login.
"""

import hashlib
import logging
import secrets
from datetime import timedelta
from typing import Any, Dict, Optional, Tuple

from sqlalchemy.orm import Session

from civicreport.core.config import Settings, settings as default_settings
from civicreport.core.constants import OTP_LENGTH, PLACEHOLDER_USER_NAME
from civicreport.core.exceptions import InvalidInputError, UnauthorizedError
from civicreport.database.models import OtpCode, User, utcnow

logger = logging.getLogger(__name__)


def generate_otp_code(length: int = OTP_LENGTH) -> str:
    """
    Generate a numeric code with a cryptographically secure source.

    The first digit is never zero, so the code always has ``length`` digits.
    """
    low = 10 ** (length - 1)
    return str(low + secrets.randbelow(9 * low))


def hash_otp(code: str, secret: str) -> str:
    """Salted SHA-256 of a code; only this value is persisted."""
    return hashlib.sha256(f"{code}:{secret}".encode("utf-8")).hexdigest().upper()


class OTPService:
    """
    Phone + OTP authentication.

    Codes expire after ``otp_expiry_minutes``. Several codes may be
    outstanding for the same phone; any unused, unexpired one can be
    verified, and each one authenticates at most once.
    """

    def __init__(self, session: Session, settings: Optional[Settings] = None):
        self.session = session
        self.settings = settings or default_settings

    def request_otp(self, phone: Optional[str], name: Optional[str] = None) -> Dict[str, Any]:
        """
        Create the user if needed and issue a new code for the phone.

        Args:
            phone: Phone number identifying the user
            name: Optional display name; updates an existing user's name

        Returns:
            Acknowledgment dict; outside production it also carries the code
        """
        if not phone or not phone.strip():
            raise InvalidInputError("phone_required")
        phone = phone.strip()

        user = self._upsert_user(phone, name)

        code = generate_otp_code()
        now = utcnow()
        self.session.add(OtpCode(
            phone=phone,
            otp_hash=hash_otp(code, self.settings.otp_secret),
            created_at=now,
            expires_at=now + timedelta(minutes=self.settings.otp_expiry_minutes),
        ))
        self.session.flush()

        logger.info(f"OTP issued for user {user.id}")

        response: Dict[str, Any] = {"message": "otp_sent"}
        if not self.settings.is_production:
            response["otp_code"] = code
        return response

    def verify_otp(self, phone: Optional[str], otp: Optional[str]) -> Tuple[User, OtpCode]:
        """
        Consume a matching code and return the authenticated user.

        Raises:
            InvalidInputError: phone or code missing
            UnauthorizedError: no usable code matches, or the user is gone
        """
        if not phone or not phone.strip() or not otp or not otp.strip():
            raise InvalidInputError("phone_and_otp_required")
        phone = phone.strip()

        now = utcnow()
        otp_hash = hash_otp(otp.strip(), self.settings.otp_secret)
        code = (
            self.session.query(OtpCode)
            .filter(
                OtpCode.phone == phone,
                OtpCode.otp_hash == otp_hash,
                OtpCode.used_at.is_(None),
                OtpCode.expires_at > now,
            )
            .order_by(OtpCode.created_at.desc())
            .with_for_update()
            .first()
        )
        if code is None:
            logger.warning("OTP verification failed: no matching code")
            raise UnauthorizedError("invalid_otp")

        user = self.session.query(User).filter(User.phone == phone).first()
        if user is None:
            logger.warning("OTP verification failed: user missing")
            raise UnauthorizedError("invalid_otp")

        code.used_at = now
        self.session.flush()

        logger.info(f"User {user.id} authenticated via OTP")
        return user, code

    def _upsert_user(self, phone: str, name: Optional[str]) -> User:
        clean_name = name.strip() if name and name.strip() else None

        user = self.session.query(User).filter(User.phone == phone).first()
        if user is None:
            user = User(
                phone=phone,
                name=clean_name or PLACEHOLDER_USER_NAME,
                is_admin=False,
                reputation_score=0,
                created_at=utcnow(),
            )
            self.session.add(user)
            self.session.flush()
            logger.info(f"Created user {user.id} on first OTP request")
        elif clean_name:
            user.name = clean_name
        return user
