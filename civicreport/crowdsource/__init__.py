"""
CivicReport - Crowdsource Module
Handles citizen reports, their moderation and export.
"""

from civicreport.crowdsource.report_handler import (
    ReportHandler,
    validate_report_input,
)
from civicreport.crowdsource.moderation import (
    ReportModerator,
    ModerationResult,
    ModerationSummary,
    moderate_pending_reports,
)
from civicreport.crowdsource.export import (
    mask_phone,
    csv_escape,
    render_csv,
)
from civicreport.crowdsource.filters import parse_bbox

__all__ = [
    # Report Handler
    "ReportHandler",
    "validate_report_input",
    # Moderation
    "ReportModerator",
    "ModerationResult",
    "ModerationSummary",
    "moderate_pending_reports",
    # Export
    "mask_phone",
    "csv_escape",
    "render_csv",
    # Filters
    "parse_bbox",
]
