"""
CSV export of reports for administrators
"""

from typing import Iterable, Iterator, List

from civicreport.core.constants import CSV_HEADER
from civicreport.database.models import Report


def mask_phone(phone: str) -> str:
    """Replace every character except the last four with ``*``."""
    if len(phone) <= 4:
        return phone
    return "*" * (len(phone) - 4) + phone[-4:]


def csv_escape(value: str) -> str:
    """Always quote, doubling embedded quotes."""
    return '"' + value.replace('"', '""') + '"'


def report_to_row(report: Report) -> List[str]:
    phone = report.user.phone if report.user is not None else ""
    return [
        str(report.id),
        report.category.value,
        csv_escape(report.description or ""),
        repr(float(report.latitude)),
        repr(float(report.longitude)),
        repr(float(report.accuracy_meters)),
        report.status.value,
        report.created_at.isoformat() if report.created_at else "",
        report.validated_at.isoformat() if report.validated_at else "",
        mask_phone(phone),
    ]


def iter_csv_lines(reports: Iterable[Report]) -> Iterator[str]:
    """Yield the header and one line per report, each ending in a newline."""
    yield ",".join(CSV_HEADER) + "\n"
    for report in reports:
        yield ",".join(report_to_row(report)) + "\n"


def render_csv(reports: Iterable[Report]) -> str:
    return "".join(iter_csv_lines(reports))
