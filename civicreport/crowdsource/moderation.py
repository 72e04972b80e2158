"""
Automatic moderation of newly submitted reports
Four independent heuristics; the first rule that fires decides the outcome
"""

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta, timezone
from typing import Any, Dict, List, Optional

from sqlalchemy import func
from sqlalchemy.orm import Session

from civicreport.core import constants
from civicreport.database.models import AuditLog, Report, ReportStatus, as_utc, utcnow

logger = logging.getLogger(__name__)


@dataclass
class ModerationResult:
    """Outcome of evaluating one report."""
    report_id: Any
    status: ReportStatus
    score: float
    reason: Optional[str] = None

    @property
    def approved(self) -> bool:
        return self.reason is None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "report_id": str(self.report_id),
            "status": self.status.value,
            "score": self.score,
            "reason": self.reason,
        }


@dataclass
class ModerationSummary:
    """Counts for one worker cycle."""
    results: List[ModerationResult] = field(default_factory=list)

    @property
    def processed(self) -> int:
        return len(self.results)

    @property
    def approved(self) -> int:
        return sum(1 for r in self.results if r.approved)

    @property
    def needs_review(self) -> int:
        return self.processed - self.approved


def contains_link(description: str) -> bool:
    lowered = description.lower()
    return any(marker in lowered for marker in constants.LINK_MARKERS)


def has_repeated_words(description: str) -> bool:
    """
    True when the description has at least three words and one of them
    (case-insensitive) appears three or more times.
    """
    words = description.lower().split()
    if len(words) < constants.MIN_WORDS_FOR_REPETITION:
        return False
    counts = Counter(words)
    return max(counts.values()) >= constants.MAX_REPEATED_WORD_COUNT


class ReportModerator:
    """
    Rule-based moderator.

    Rules, in order:
    1. description links (http / www)
    2. repeated words in the description
    3. GPS accuracy worse than 100 m
    4. more than 3 earlier reports by the same user on the same UTC date
    """

    def __init__(self, session: Session):
        self.session = session

    def evaluate(self, report: Report) -> Optional[str]:
        """Return the reason of the first rule that fires, or None."""
        description = report.description or ""

        if contains_link(description):
            return constants.REASON_CONTAINS_LINK

        if has_repeated_words(description):
            return constants.REASON_REPETITION

        if report.accuracy_meters > constants.MAX_ACCURACY_METERS:
            return constants.REASON_ACCURACY_TOO_LOW

        if self.count_same_day_reports(report) > constants.MAX_DAILY_REPORTS_PER_USER:
            return constants.REASON_DAILY_LIMIT

        return None

    def count_same_day_reports(self, report: Report) -> int:
        """Reports the same user created earlier on the report's UTC calendar date."""
        day_start, _ = utc_day_bounds(report.created_at)
        count = (
            self.session.query(func.count(Report.id))
            .filter(
                Report.user_id == report.user_id,
                Report.id != report.id,
                Report.created_at >= day_start,
                Report.created_at < report.created_at,
            )
            .scalar()
        )
        return count or 0

    def moderate(self, report: Report, now: Optional[datetime] = None) -> ModerationResult:
        """Evaluate a pending report, transition it and append the audit entry."""
        reason = self.evaluate(report)
        result = apply_decision(report, reason, now=now)
        self.session.add(build_audit_entry(report, result, now=now))
        return result


def apply_decision(report: Report, reason: Optional[str], now: Optional[datetime] = None) -> ModerationResult:
    """Move a pending report to APPROVED or NEEDS_REVIEW."""
    now = now or utcnow()
    if reason is None:
        report.status = ReportStatus.APPROVED
        report.moderation_score = constants.MODERATION_APPROVED_SCORE
        report.validated_at = now
        report.moderation_reason = None
    else:
        report.status = ReportStatus.NEEDS_REVIEW
        report.moderation_score = constants.MODERATION_NEEDS_REVIEW_SCORE
        report.moderation_reason = reason
        report.validated_at = None

    return ModerationResult(
        report_id=report.id,
        status=report.status,
        score=report.moderation_score,
        reason=reason,
    )


def build_audit_entry(report: Report, result: ModerationResult, now: Optional[datetime] = None) -> AuditLog:
    action = constants.ACTION_APPROVED_AUTO if result.approved else constants.ACTION_NEEDS_REVIEW_AUTO
    metadata = {} if result.approved else {"reason": result.reason}
    return AuditLog(
        entity=constants.AUDIT_ENTITY_REPORT,
        entity_id=report.id,
        action=action,
        actor_user_id=None,
        metadata_json=metadata,
        created_at=now or utcnow(),
    )


def utc_day_bounds(moment: datetime):
    """Start (inclusive) and end (exclusive) of the UTC calendar day containing ``moment``."""
    day = as_utc(moment).date()
    start = datetime.combine(day, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def moderate_pending_reports(session: Session, batch_size: int = 20) -> ModerationSummary:
    """
    Moderate up to ``batch_size`` pending reports, oldest first.

    The caller owns the transaction; all decisions are committed together.
    """
    pending = (
        session.query(Report)
        .filter(Report.status == ReportStatus.PENDING_MODERATION)
        .order_by(Report.created_at.asc())
        .limit(batch_size)
        .all()
    )

    summary = ModerationSummary()
    if not pending:
        return summary

    moderator = ReportModerator(session)
    now = utcnow()
    for report in pending:
        result = moderator.moderate(report, now=now)
        summary.results.append(result)
        if result.approved:
            logger.debug(f"Report {report.id} auto-approved")
        else:
            logger.info(f"Report {report.id} flagged for review: {result.reason}")

    return summary
