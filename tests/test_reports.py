"""
Tests for report validation, filters, feed queries, CSV export and uploads
"""
import pytest
import uuid
from datetime import datetime, timedelta, timezone
from unittest.mock import MagicMock

from botocore.exceptions import ClientError
from sqlalchemy.dialects import postgresql
from sqlalchemy.orm import Session

import sys
sys.path.insert(0, '.')

from civicreport.core import constants
from civicreport.core.exceptions import InternalError, InvalidInputError, NotFoundError
from civicreport.crowdsource.export import csv_escape, mask_phone, render_csv
from civicreport.crowdsource.filters import apply_filters, parse_bbox, parse_category, parse_status
from civicreport.crowdsource.report_handler import ReportHandler, validate_report_input
from civicreport.database.models import AuditLog, Report, ReportCategory, ReportStatus
from civicreport.storage.object_store import ObjectStore


class TestEnumParsing:
    """Test suite for lenient category and status parsing."""

    def test_category_spellings(self):
        for value in ("MATO_ALTO", "mato_alto", "MatoAlto", "matoalto", 2, "2"):
            assert ReportCategory.parse(value) == ReportCategory.MATO_ALTO

    def test_category_unknown(self):
        assert ReportCategory.parse("incendio") is None
        assert ReportCategory.parse(9) is None
        assert ReportCategory.parse("-1") is None
        assert parse_category("  ") is None

    def test_signed_numbers_rejected(self):
        for value in ("-1", "+1", "-0", " -2 ", -1):
            assert ReportCategory.parse(value) is None
        assert parse_status("-3") is None

    def test_status(self):
        assert parse_status("needs_review") == ReportStatus.NEEDS_REVIEW
        assert parse_status("PendingModeration") == ReportStatus.PENDING_MODERATION
        assert parse_status("bogus") is None

    def test_only_approved_is_public(self):
        assert [s for s in ReportStatus if s.is_public] == [ReportStatus.APPROVED]
        assert ReportStatus.public_statuses() == [ReportStatus.APPROVED]


class TestValidateReportInput:
    """Test suite for citizen-supplied fields."""

    def test_valid(self):
        assert validate_report_input("BURACO", "Buraco na rua", 5.0) == ReportCategory.BURACO

    def test_description_length_boundary(self):
        assert validate_report_input("LIXO", "x" * 280, 1.0) == ReportCategory.LIXO
        with pytest.raises(InvalidInputError) as exc:
            validate_report_input("LIXO", "x" * 281, 1.0)
        assert exc.value.code == "invalid_description"

    def test_blank_description(self):
        for description in (None, "", "   "):
            with pytest.raises(InvalidInputError) as exc:
                validate_report_input("LIXO", description, 1.0)
            assert exc.value.code == "invalid_description"

    def test_accuracy_must_be_positive(self):
        for accuracy in (0, -1.0):
            with pytest.raises(InvalidInputError) as exc:
                validate_report_input("LIXO", "Lixo na calçada", accuracy)
            assert exc.value.code == "invalid_accuracy"

    def test_unknown_category(self):
        with pytest.raises(InvalidInputError) as exc:
            validate_report_input("INCENDIO", "Fogo no mato", 1.0)
        assert exc.value.code == "invalid_category"


class TestParseBbox:

    def test_valid(self):
        assert parse_bbox("-47.7,-22.8,-47.5,-22.6") == (-47.7, -22.8, -47.5, -22.6)

    def test_malformed_ignored(self):
        for value in (None, "", "1,2,3", "1,2,3,4,5", "a,b,c,d", "1,2,nan,4", "1,2,inf,4"):
            assert parse_bbox(value) is None


class TestFeedQuery:
    """The feed query is compiled without a database."""

    def setup_method(self):
        self.handler = ReportHandler(Session())

    def _sql(self, **filters):
        query = self.handler.feed_query(**filters)
        return str(query.statement.compile(dialect=postgresql.dialect()))

    def test_always_restricted_to_approved(self):
        for filters in ({}, {"category": "DENGUE"}, {"bbox": "-48,-23,-47,-22"}):
            assert "reports.status IN" in self._sql(**filters)

    def test_bbox_filter(self):
        sql = self._sql(bbox="-48,-23,-47,-22")
        assert "reports.longitude >=" in sql
        assert "reports.latitude <=" in sql

    def test_malformed_bbox_same_as_none(self):
        assert self._sql(bbox="1,2,three,4") == self._sql()

    def test_newest_first(self):
        assert "ORDER BY reports.created_at DESC" in self._sql()

    def test_restriction_uses_public_statuses(self):
        query = self.handler.feed_query()
        params = query.statement.compile(dialect=postgresql.dialect()).params
        assert [ReportStatus.APPROVED] in params.values()

    def test_category_filter_ignores_signed_number(self):
        assert self._sql(category="-1") == self._sql()


class TestDateFilters:
    """Date bounds are compared in UTC."""

    def _bound(self, **filters):
        query = MagicMock()
        query.filter.return_value = query
        apply_filters(query, **filters)
        return query.filter.call_args[0][0].right.value

    def test_naive_from_taken_as_utc(self):
        bound = self._bound(created_from=datetime(2024, 3, 1, 12, 0))
        assert bound == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert bound.tzinfo is not None

    def test_naive_to_taken_as_utc(self):
        bound = self._bound(created_to=datetime(2024, 3, 31, 23, 59))
        assert bound.utcoffset() == timedelta(0)

    def test_aware_bound_converted(self):
        sao_paulo = timezone(timedelta(hours=-3))
        bound = self._bound(created_from=datetime(2024, 3, 1, 9, 0, tzinfo=sao_paulo))
        assert bound == datetime(2024, 3, 1, 12, 0, tzinfo=timezone.utc)
        assert bound.utcoffset() == timedelta(0)


class TestReportHandler:
    """Test suite for writes through the handler."""

    def setup_method(self):
        self.session = MagicMock()
        self.store = MagicMock()
        self.store.public_url.side_effect = lambda key: f"http://cdn/civicreport/{key}"
        self.handler = ReportHandler(self.session, object_store=self.store)

    def test_create_report(self, citizen):
        report = self.handler.create_report(
            user_id=citizen.id,
            category="mato_alto",
            description="  Mato alto no terreno baldio  ",
            latitude=-22.7,
            longitude=-47.6,
            accuracy_meters=12.0,
            file_key=f"{citizen.id}/abc.jpg",
        )

        assert report.status == ReportStatus.PENDING_MODERATION
        assert report.category == ReportCategory.MATO_ALTO
        assert report.description == "Mato alto no terreno baldio"
        assert report.public_photo_url == f"http://cdn/civicreport/{citizen.id}/abc.jpg"
        assert report.validated_at is None

        audits = [c[0][0] for c in self.session.add.call_args_list if isinstance(c[0][0], AuditLog)]
        assert len(audits) == 1
        assert audits[0].action == constants.ACTION_CREATED
        assert audits[0].actor_user_id == citizen.id

    def test_create_invalid_does_not_write(self, citizen):
        with pytest.raises(InvalidInputError):
            self.handler.create_report(citizen.id, "LIXO", "x" * 281, 0.0, 0.0, 5.0, "k.jpg")
        self.session.add.assert_not_called()

    def test_approve(self, make_report, admin):
        report = make_report(status=ReportStatus.NEEDS_REVIEW)
        self.session.query.return_value.filter.return_value.first.return_value = report

        self.handler.approve(report.id, actor_user_id=admin.id)

        assert report.status == ReportStatus.APPROVED
        assert report.validated_at is not None
        entry = self.session.add.call_args[0][0]
        assert entry.action == constants.ACTION_APPROVED_MANUAL
        assert entry.actor_user_id == admin.id

    def test_reject_with_reason(self, make_report, admin):
        report = make_report(status=ReportStatus.NEEDS_REVIEW)
        self.session.query.return_value.filter.return_value.first.return_value = report

        self.handler.reject(report.id, actor_user_id=admin.id, reason="foto ilegível")

        assert report.status == ReportStatus.REJECTED
        assert report.moderation_reason == "foto ilegível"
        entry = self.session.add.call_args[0][0]
        assert entry.action == constants.ACTION_REJECTED_MANUAL
        assert entry.metadata_json == {"reason": "foto ilegível"}

    def test_unknown_report(self, admin):
        self.session.query.return_value.filter.return_value.first.return_value = None
        with pytest.raises(NotFoundError):
            self.handler.approve(uuid.uuid4(), actor_user_id=admin.id)
        with pytest.raises(NotFoundError):
            self.handler.get_public_report(uuid.uuid4())

    def test_review_requires_status(self):
        for status in (None, "", "bogus"):
            with pytest.raises(InvalidInputError) as exc:
                self.handler.list_for_review(status)
            assert exc.value.code == "invalid_status"

    def test_feed_page_size_clamped(self):
        chain = self.session.query.return_value.filter.return_value.order_by.return_value
        chain.offset.return_value.limit.return_value.all.return_value = []

        self.handler.list_feed(page=0, page_size=1000)

        chain.offset.assert_called_with(0)
        chain.offset.return_value.limit.assert_called_with(constants.MAX_PAGE_SIZE)


class TestCsvExport:
    """Test suite for the admin CSV export."""

    def test_mask_phone(self):
        assert mask_phone("+5511990000000") == "*" * 10 + "0000"
        assert mask_phone("1234") == "1234"
        assert mask_phone("") == ""

    def test_escape(self):
        assert csv_escape('buraco "enorme", perigoso') == '"buraco ""enorme"", perigoso"'

    def test_render(self, make_report, admin):
        report = make_report(
            description='Lixo "acumulado"',
            status=ReportStatus.APPROVED,
            user=admin,
        )
        report.validated_at = datetime(2024, 3, 10, 15, 0, tzinfo=timezone.utc)

        lines = render_csv([report]).splitlines()

        assert lines[0] == "id,category,description,lat,lng,accuracy,status,created_at,validated_at,user_phone"
        assert lines[1] == (
            f'{report.id},DENGUE,"Lixo ""acumulado""",-22.7,-47.6,10.0,APPROVED,'
            f"2024-03-10T14:30:00+00:00,2024-03-10T15:00:00+00:00,{'*' * 10}0000"
        )

    def test_header_only(self):
        assert render_csv([]) == ",".join(constants.CSV_HEADER) + "\n"


class TestObjectStore:
    """Test suite for pre-signed uploads."""

    def setup_method(self):
        self.client = MagicMock()
        self.client.generate_presigned_url.return_value = "http://localhost:9000/signed"

    def test_upload_ticket(self, test_settings, citizen):
        store = ObjectStore(settings=test_settings, client=self.client)

        ticket = store.create_upload_ticket(citizen.id, "image/png")

        assert ticket.file_key.startswith(f"{citizen.id}/")
        assert ticket.file_key.endswith(".png")
        assert ticket.to_dict() == {"uploadUrl": "http://localhost:9000/signed", "fileKey": ticket.file_key}
        kwargs = self.client.generate_presigned_url.call_args[1]
        assert kwargs["ExpiresIn"] == 900
        assert kwargs["HttpMethod"] == "PUT"
        assert kwargs["Params"]["ContentType"] == "image/png"

    def test_default_content_type_is_jpeg(self, test_settings, citizen):
        store = ObjectStore(settings=test_settings, client=self.client)
        assert store.create_upload_ticket(citizen.id).file_key.endswith(".jpg")

    def test_keys_unique(self, test_settings, citizen):
        store = ObjectStore(settings=test_settings, client=self.client)
        keys = {store.create_upload_ticket(citizen.id).file_key for _ in range(20)}
        assert len(keys) == 20

    def test_rejects_other_types(self, test_settings, citizen):
        store = ObjectStore(settings=test_settings, client=self.client)
        with pytest.raises(InvalidInputError) as exc:
            store.create_upload_ticket(citizen.id, "image/gif")
        assert exc.value.code == "invalid_content_type"
        self.client.generate_presigned_url.assert_not_called()

    def test_signing_failure(self, test_settings, citizen):
        self.client.generate_presigned_url.side_effect = ClientError(
            {"Error": {"Code": "AccessDenied", "Message": "denied"}}, "PutObject"
        )
        store = ObjectStore(settings=test_settings, client=self.client)
        with pytest.raises(InternalError):
            store.create_upload_ticket(citizen.id)

    def test_public_url(self, test_settings):
        store = ObjectStore(settings=test_settings, client=self.client)
        assert store.public_url("u/a.jpg") == "http://localhost:9000/civicreport/u/a.jpg"
