"""
Tests for configuration, logging and the error taxonomy
"""
import logging
import pytest

import sys
sys.path.insert(0, '.')

from civicreport.core.config import Settings
from civicreport.core.exceptions import (
    CivicReportError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
)
from civicreport.core.logging import setup_logging
from civicreport.database.connection import mask_url


class TestSettings:
    """Test suite for Settings."""

    def test_defaults(self, test_settings):
        assert test_settings.jwt_expiry_hours == 12
        assert test_settings.otp_expiry_minutes == 5
        assert test_settings.upload_url_expiry_minutes == 15
        assert test_settings.moderation_poll_seconds == 20.0

    def test_environment_flags(self):
        assert Settings(app_env="production").is_production
        assert not Settings(app_env="production").is_development
        assert Settings(app_env="development").is_development

    def test_cors_origin_list(self):
        settings = Settings(cors_origins="http://a.test, http://b.test,")
        assert settings.cors_origin_list == ["http://a.test", "http://b.test"]

    def test_environment_override(self, monkeypatch):
        monkeypatch.setenv("OTP_EXPIRY_MINUTES", "10")
        monkeypatch.setenv("S3_BUCKET", "reports")
        settings = Settings()
        assert settings.otp_expiry_minutes == 10
        assert settings.s3_bucket == "reports"


class TestErrors:

    @pytest.mark.parametrize("error_cls, status", [
        (InvalidInputError, 400),
        (UnauthorizedError, 401),
        (ForbiddenError, 403),
        (NotFoundError, 404),
        (CivicReportError, 500),
    ])
    def test_status_codes(self, error_cls, status):
        assert error_cls().status_code == status

    def test_code_defaults(self):
        assert InvalidInputError().code == "invalid_input"
        assert InvalidInputError("invalid_status").code == "invalid_status"
        assert str(NotFoundError("report_not_found")) == "report_not_found"


class TestLogging:

    def test_setup_levels(self):
        logger = setup_logging(level="debug", component="worker")

        assert logger.name == "civicreport"
        assert logger.level == logging.DEBUG
        assert logging.getLogger("botocore").level == logging.WARNING

    def test_unknown_level_falls_back_to_info(self):
        assert setup_logging(level="verbose").level == logging.INFO

    def test_mask_url(self):
        masked = mask_url("postgresql://user:s3cret@db:5432/civicreport")
        assert "s3cret" not in masked
        assert "user" in masked
