"""
Pytest configuration and fixtures
"""
import pytest
import sys
import uuid
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import MagicMock

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from civicreport.core.config import Settings
from civicreport.database.models import Report, ReportCategory, ReportStatus, User


@pytest.fixture
def test_settings():
    """Settings with fixed secrets, independent of the environment."""
    return Settings(
        app_env="development",
        jwt_key="test-jwt-key-with-enough-length-32b",
        jwt_issuer="civicreport",
        jwt_audience="civicreport",
        otp_secret="test-otp-secret",
        s3_service_url="http://localhost:9000",
        s3_access_key="minio",
        s3_secret_key="minio123",
        s3_bucket="civicreport",
        s3_public_url_base="http://localhost:9000/",
    )


@pytest.fixture
def citizen():
    """Regular user."""
    return User(
        id=uuid.UUID("11111111-1111-1111-1111-111111111111"),
        name="Maria Silva",
        phone="+5511990000001",
        is_admin=False,
        reputation_score=0,
    )


@pytest.fixture
def admin():
    """Administrator."""
    return User(
        id=uuid.UUID("22222222-2222-2222-2222-222222222222"),
        name="Admin Dev",
        phone="+5511990000000",
        is_admin=True,
        reputation_score=0,
    )


@pytest.fixture
def make_report():
    """Factory for in-memory reports."""
    def _make(
        description="Foco de dengue na praça central",
        category=ReportCategory.DENGUE,
        status=ReportStatus.PENDING_MODERATION,
        latitude=-22.7,
        longitude=-47.6,
        accuracy_meters=10.0,
        created_at=None,
        user=None,
    ):
        report = Report(
            id=uuid.uuid4(),
            user_id=user.id if user is not None else uuid.uuid4(),
            category=category,
            description=description,
            location=Report.make_location(latitude, longitude),
            latitude=latitude,
            longitude=longitude,
            accuracy_meters=accuracy_meters,
            file_key="user/photo.jpg",
            public_photo_url="http://localhost:9000/civicreport/user/photo.jpg",
            status=status,
            created_at=created_at or datetime(2024, 3, 10, 14, 30, tzinfo=timezone.utc),
        )
        if user is not None:
            report.user = user
        return report
    return _make


@pytest.fixture
def mock_session():
    """SQLAlchemy session stand-in for code paths that only add and flush."""
    return MagicMock()
