"""
JWT access tokens for CivicReport
"""

import uuid
from dataclasses import dataclass
from datetime import timedelta
from typing import Optional

import jwt

from civicreport.core.config import Settings, settings as default_settings
from civicreport.core.exceptions import UnauthorizedError
from civicreport.database.models import User, utcnow

ALGORITHM = "HS256"


@dataclass
class TokenData:
    """Identity carried by a validated access token."""
    user_id: uuid.UUID
    phone: str
    name: str
    is_admin: bool = False


def create_access_token(user: User, settings: Optional[Settings] = None) -> str:
    """
    Issue a signed token for a user.

    Claims: sub, phone_number, name, is_admin, iss, aud, iat, exp.
    """
    settings = settings or default_settings
    now = utcnow()
    payload = {
        "sub": str(user.id),
        "phone_number": user.phone,
        "name": user.name,
        "is_admin": bool(user.is_admin),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
        "iat": now,
        "exp": now + timedelta(hours=settings.jwt_expiry_hours),
    }
    return jwt.encode(payload, settings.jwt_key, algorithm=ALGORITHM)


def decode_access_token(token: str, settings: Optional[Settings] = None) -> TokenData:
    """
    Validate signature, issuer, audience and lifetime of a token.

    Raises:
        UnauthorizedError: token expired, tampered or malformed
    """
    settings = settings or default_settings
    try:
        payload = jwt.decode(
            token,
            settings.jwt_key,
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp", "iss", "aud"]},
        )
    except jwt.ExpiredSignatureError:
        raise UnauthorizedError("token_expired")
    except jwt.InvalidTokenError:
        raise UnauthorizedError("invalid_token")

    try:
        user_id = uuid.UUID(payload["sub"])
    except (TypeError, ValueError):
        raise UnauthorizedError("invalid_token")

    return TokenData(
        user_id=user_id,
        phone=payload.get("phone_number", ""),
        name=payload.get("name", ""),
        is_admin=payload.get("is_admin") is True,
    )
