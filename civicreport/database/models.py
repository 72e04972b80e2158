"""
SQLAlchemy models for CivicReport
Uses GeoAlchemy2 for the PostGIS report location
"""

import uuid
from datetime import datetime, timezone
from typing import Optional, Union

from sqlalchemy import (
    Column, Integer, Float, String, Text, Boolean,
    DateTime, ForeignKey, Index, Enum as SQLEnum
)
from sqlalchemy.orm import declarative_base, relationship
from sqlalchemy.dialects.postgresql import JSONB, UUID
from geoalchemy2 import Geography
from geoalchemy2.shape import from_shape
from shapely.geometry import Point

import enum

Base = declarative_base()


def utcnow() -> datetime:
    """Timezone-aware current UTC time."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _normalize_enum_token(value: str) -> str:
    return value.strip().replace("_", "").replace(" ", "").upper()


class _ParsableEnum(enum.Enum):
    """Enum with lenient, case-insensitive parsing of wire names."""

    @classmethod
    def parse(cls, value: Union[str, int, None]):
        """
        Parse a member from its name in any casing, with or without
        underscores (``MatoAlto``, ``mato_alto``, ``MATO_ALTO``), or from
        its ordinal position. Returns None when nothing matches.
        """
        if value is None or isinstance(value, bool):
            return None
        if isinstance(value, int):
            members = list(cls)
            return members[value] if 0 <= value < len(members) else None
        raw = value.strip()
        if raw.isdecimal():
            return cls.parse(int(raw))
        token = _normalize_enum_token(raw)
        if not token:
            return None
        for member in cls:
            if _normalize_enum_token(member.name) == token:
                return member
        return None


class ReportCategory(_ParsableEnum):
    """Incident category chosen by the citizen."""
    DENGUE = "DENGUE"
    BURACO = "BURACO"          # pothole
    MATO_ALTO = "MATO_ALTO"    # overgrown vegetation
    LIXO = "LIXO"              # trash


class ReportStatus(_ParsableEnum):
    """Moderation status of a report."""
    PENDING_MODERATION = "PENDING_MODERATION"
    APPROVED = "APPROVED"
    REJECTED = "REJECTED"
    NEEDS_REVIEW = "NEEDS_REVIEW"
    RESOLVED = "RESOLVED"

    @property
    def is_public(self) -> bool:
        """Whether reports in this status may appear on the public feed."""
        if self is ReportStatus.APPROVED:
            return True
        if self in (
            ReportStatus.PENDING_MODERATION,
            ReportStatus.REJECTED,
            ReportStatus.NEEDS_REVIEW,
            ReportStatus.RESOLVED,
        ):
            return False
        raise ValueError(f"Unhandled report status: {self}")

    @classmethod
    def public_statuses(cls) -> list:
        return [status for status in cls if status.is_public]


class User(Base):
    """
    Citizen or administrator identified by phone number.

    Created on the first OTP request for a phone.
    """
    __tablename__ = "users"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(120), nullable=False)
    phone = Column(String(30), nullable=False, unique=True)
    is_admin = Column(Boolean, nullable=False, default=False)
    reputation_score = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    reports = relationship("Report", back_populates="user")

    def __repr__(self):
        return f"<User({self.id}, phone={self.phone}, admin={self.is_admin})>"

    def to_dict(self) -> dict:
        """Public representation returned after login."""
        return {
            "id": str(self.id),
            "name": self.name,
            "phone": self.phone,
            "reputationScore": self.reputation_score,
            "isAdmin": self.is_admin,
        }


class OtpCode(Base):
    """
    One-time code issued for a phone number.

    Only the salted hash of the code is stored.
    """
    __tablename__ = "otp_codes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    phone = Column(String(30), nullable=False)
    otp_hash = Column(String(200), nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    used_at = Column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        Index("idx_otp_codes_phone", phone),
    )

    def __repr__(self):
        return f"<OtpCode({self.id}, phone={self.phone}, used={self.used_at is not None})>"


class Report(Base):
    """
    Geotagged incident report submitted by a citizen.

    Location is stored as a PostGIS geography point; latitude and
    longitude are kept alongside for filtering and serialization.
    """
    __tablename__ = "reports"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    user_id = Column(UUID(as_uuid=True), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    user = relationship("User", back_populates="reports")

    category = Column(SQLEnum(ReportCategory, name="report_category", native_enum=False, length=30), nullable=False)
    description = Column(String(280), nullable=False)

    # Location
    location = Column(Geography("POINT", srid=4326, spatial_index=False), nullable=False)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    accuracy_meters = Column(Float, nullable=False)

    # Photo
    file_key = Column(String(200), nullable=False)
    public_photo_url = Column(String(400), nullable=False)

    # Moderation
    status = Column(
        SQLEnum(ReportStatus, name="report_status", native_enum=False, length=30),
        nullable=False,
        default=ReportStatus.PENDING_MODERATION,
    )
    moderation_score = Column(Float)
    moderation_reason = Column(Text)

    # Timestamps
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    validated_at = Column(DateTime(timezone=True))

    __table_args__ = (
        Index("idx_reports_location", location, postgresql_using="gist"),
        Index("idx_reports_status", status),
        Index("idx_reports_category", category),
        Index("idx_reports_user_id", user_id),
        Index("idx_reports_created_at", created_at),
    )

    def __repr__(self):
        return f"<Report({self.id}, status={self.status.value if self.status else None}, category={self.category})>"

    @staticmethod
    def make_location(latitude: float, longitude: float):
        """Build the geography value for a (lat, lng) pair."""
        return from_shape(Point(longitude, latitude), srid=4326)

    def to_public_dict(self) -> dict:
        """Representation used by the public feed."""
        return {
            "id": str(self.id),
            "category": self.category.value,
            "description": self.description,
            "lat": self.latitude,
            "lng": self.longitude,
            "createdAt": _isoformat(self.created_at),
            "status": self.status.value,
            "photoUrl": self.public_photo_url,
        }

    def to_admin_dict(self) -> dict:
        """Representation used by the admin review screens."""
        return {
            "id": str(self.id),
            "category": self.category.value,
            "description": self.description,
            "lat": self.latitude,
            "lng": self.longitude,
            "accuracyMeters": self.accuracy_meters,
            "createdAt": _isoformat(self.created_at),
            "validatedAt": _isoformat(self.validated_at),
            "status": self.status.value,
            "moderationScore": self.moderation_score,
            "moderationReason": self.moderation_reason,
            "publicPhotoUrl": self.public_photo_url,
        }


class AuditLog(Base):
    """
    Append-only record of state-changing actions.
    """
    __tablename__ = "audit_logs"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    entity = Column(String(100), nullable=False)
    entity_id = Column(UUID(as_uuid=True), nullable=False)
    action = Column(String(100), nullable=False)
    actor_user_id = Column(UUID(as_uuid=True), nullable=True)
    metadata_json = Column(JSONB, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_audit_logs_entity", entity, entity_id),
    )

    def __repr__(self):
        return f"<AuditLog({self.entity}:{self.entity_id}, action={self.action})>"


def _isoformat(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None
