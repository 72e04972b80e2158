"""
Report handler for citizen incident reports
Creation, public feed, admin review, manual moderation and export queries
"""

import logging
import uuid
from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from sqlalchemy.orm import Query, Session, joinedload

from civicreport.core import constants
from civicreport.core.exceptions import InvalidInputError, NotFoundError
from civicreport.crowdsource.filters import apply_filters, parse_category, parse_status
from civicreport.database.models import AuditLog, Report, ReportStatus, utcnow
from civicreport.storage.object_store import ObjectStore, get_object_store

logger = logging.getLogger(__name__)


def validate_report_input(
    category: Union[str, int, None],
    description: Optional[str],
    accuracy_meters: float,
):
    """
    Check the citizen-supplied fields of a new report.

    Returns:
        Parsed category

    Raises:
        InvalidInputError: with code invalid_description, invalid_accuracy
            or invalid_category
    """
    if description is None or not description.strip() or len(description) > constants.MAX_DESCRIPTION_LENGTH:
        raise InvalidInputError("invalid_description")

    if accuracy_meters is None or not accuracy_meters > 0:
        raise InvalidInputError("invalid_accuracy")

    parsed_category = parse_category(category)
    if parsed_category is None:
        raise InvalidInputError("invalid_category")

    return parsed_category


class ReportHandler:
    """
    Request-scoped service over the reports table.

    All writes go through the caller's session; the session scope
    commits them together with their audit entries.
    """

    def __init__(self, session: Session, object_store: Optional[ObjectStore] = None):
        self.session = session
        self._object_store = object_store

    @property
    def object_store(self) -> ObjectStore:
        if self._object_store is None:
            self._object_store = get_object_store()
        return self._object_store

    # ------------------------------------------------------------------
    # Citizen operations
    # ------------------------------------------------------------------

    def create_report(
        self,
        user_id: uuid.UUID,
        category: Union[str, int, None],
        description: Optional[str],
        latitude: float,
        longitude: float,
        accuracy_meters: float,
        file_key: str,
    ) -> Report:
        """
        Persist a new report in PENDING_MODERATION.

        The photo key is trusted as given; the object is not looked up.
        """
        parsed_category = validate_report_input(category, description, accuracy_meters)
        now = utcnow()

        report = Report(
            id=uuid.uuid4(),
            user_id=user_id,
            category=parsed_category,
            description=description.strip(),
            location=Report.make_location(latitude, longitude),
            latitude=latitude,
            longitude=longitude,
            accuracy_meters=accuracy_meters,
            file_key=file_key,
            public_photo_url=self.object_store.public_url(file_key),
            status=ReportStatus.PENDING_MODERATION,
            created_at=now,
        )
        self.session.add(report)
        self._audit(report.id, constants.ACTION_CREATED, actor_user_id=user_id, now=now)
        self.session.flush()

        logger.info(f"Report {report.id} created by user {user_id} ({parsed_category.value})")
        return report

    def list_feed(
        self,
        category: Optional[str] = None,
        bbox: Optional[str] = None,
        since: Optional[datetime] = None,
        page: int = 1,
        page_size: int = constants.DEFAULT_PAGE_SIZE,
    ) -> List[Report]:
        """Approved reports only, newest first, paginated."""
        page = max(page, 1)
        page_size = min(max(page_size, 1), constants.MAX_PAGE_SIZE)

        return (
            self.feed_query(category=category, bbox=bbox, since=since)
            .offset((page - 1) * page_size)
            .limit(page_size)
            .all()
        )

    def feed_query(
        self,
        category: Optional[str] = None,
        bbox: Optional[str] = None,
        since: Optional[datetime] = None,
    ) -> Query:
        """Unpaginated feed query; the public-status restriction is applied before any filter."""
        query = self.session.query(Report).filter(Report.status.in_(ReportStatus.public_statuses()))
        query = apply_filters(query, category=category, created_from=since, bbox=bbox)
        return query.order_by(Report.created_at.desc())

    def get_public_report(self, report_id: uuid.UUID) -> Report:
        report = (
            self.session.query(Report)
            .filter(Report.id == report_id, Report.status.in_(ReportStatus.public_statuses()))
            .first()
        )
        if report is None:
            raise NotFoundError("report_not_found")
        return report

    # ------------------------------------------------------------------
    # Admin operations
    # ------------------------------------------------------------------

    def list_for_review(self, status: Optional[str]) -> List[Report]:
        """All reports in one status, oldest first."""
        parsed = parse_status(status)
        if parsed is None:
            raise InvalidInputError("invalid_status")

        return (
            self.session.query(Report)
            .filter(Report.status == parsed)
            .order_by(Report.created_at.asc())
            .all()
        )

    def list_all(
        self,
        category: Optional[str] = None,
        status: Optional[str] = None,
        created_from: Optional[datetime] = None,
        created_to: Optional[datetime] = None,
        include_user: bool = False,
    ) -> List[Report]:
        """Reports in any status, newest first."""
        query = self.session.query(Report)
        if include_user:
            query = query.options(joinedload(Report.user))
        query = apply_filters(
            query,
            category=category,
            status=status,
            created_from=created_from,
            created_to=created_to,
        )
        return query.order_by(Report.created_at.desc()).all()

    def approve(self, report_id: uuid.UUID, actor_user_id: Optional[uuid.UUID]) -> Report:
        report = self._get_for_update(report_id)
        now = utcnow()

        report.status = ReportStatus.APPROVED
        report.validated_at = now
        self._audit(report.id, constants.ACTION_APPROVED_MANUAL, actor_user_id=actor_user_id, now=now)
        self.session.flush()

        logger.info(f"Report {report.id} approved by {actor_user_id}")
        return report

    def reject(
        self,
        report_id: uuid.UUID,
        actor_user_id: Optional[uuid.UUID],
        reason: Optional[str] = None,
    ) -> Report:
        report = self._get_for_update(report_id)
        now = utcnow()

        report.status = ReportStatus.REJECTED
        report.validated_at = now
        report.moderation_reason = reason
        self._audit(
            report.id,
            constants.ACTION_REJECTED_MANUAL,
            actor_user_id=actor_user_id,
            metadata={"reason": reason} if reason else None,
            now=now,
        )
        self.session.flush()

        logger.info(f"Report {report.id} rejected by {actor_user_id}: {reason or '-'}")
        return report

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _get_for_update(self, report_id: uuid.UUID) -> Report:
        report = self.session.query(Report).filter(Report.id == report_id).first()
        if report is None:
            raise NotFoundError("report_not_found")
        return report

    def _audit(
        self,
        entity_id: uuid.UUID,
        action: str,
        actor_user_id: Optional[uuid.UUID] = None,
        metadata: Optional[Dict[str, Any]] = None,
        now: Optional[datetime] = None,
    ) -> AuditLog:
        entry = AuditLog(
            id=uuid.uuid4(),
            entity=constants.AUDIT_ENTITY_REPORT,
            entity_id=entity_id,
            action=action,
            actor_user_id=actor_user_id,
            metadata_json=metadata or {},
            created_at=now or utcnow(),
        )
        self.session.add(entry)
        return entry
