"""
Query filters shared by the public feed, the admin lists and the CSV export.

Unparseable optional filters are ignored rather than rejected.
"""

import math
from datetime import datetime
from typing import Optional, Tuple, Union

from sqlalchemy.orm import Query

from civicreport.database.models import Report, ReportCategory, ReportStatus, as_utc

BoundingBox = Tuple[float, float, float, float]


def parse_bbox(value: Optional[str]) -> Optional[BoundingBox]:
    """
    Parse ``minLng,minLat,maxLng,maxLat``.

    Returns None for missing input, the wrong number of parts, or any
    part that is not a finite number.
    """
    if not value or not value.strip():
        return None

    parts = value.split(",")
    if len(parts) != 4:
        return None

    try:
        numbers = [float(part.strip()) for part in parts]
    except ValueError:
        return None

    if not all(math.isfinite(n) for n in numbers):
        return None

    min_lng, min_lat, max_lng, max_lat = numbers
    return min_lng, min_lat, max_lng, max_lat


def parse_category(value: Union[str, int, None]) -> Optional[ReportCategory]:
    if isinstance(value, str) and not value.strip():
        return None
    return ReportCategory.parse(value)


def parse_status(value: Union[str, int, None]) -> Optional[ReportStatus]:
    if isinstance(value, str) and not value.strip():
        return None
    return ReportStatus.parse(value)


def apply_filters(
    query: Query,
    category: Optional[str] = None,
    status: Optional[str] = None,
    created_from: Optional[datetime] = None,
    created_to: Optional[datetime] = None,
    bbox: Optional[str] = None,
) -> Query:
    """
    Narrow a Report query by the optional filters.

    Date bounds are inclusive; naive values are taken as UTC. Category and status are matched
    case-insensitively; values that do not parse are ignored.
    """
    parsed_category = parse_category(category)
    if parsed_category is not None:
        query = query.filter(Report.category == parsed_category)

    parsed_status = parse_status(status)
    if parsed_status is not None:
        query = query.filter(Report.status == parsed_status)

    if created_from is not None:
        query = query.filter(Report.created_at >= as_utc(created_from))

    if created_to is not None:
        query = query.filter(Report.created_at <= as_utc(created_to))

    box = parse_bbox(bbox)
    if box is not None:
        min_lng, min_lat, max_lng, max_lat = box
        query = query.filter(
            Report.longitude >= min_lng,
            Report.longitude <= max_lng,
            Report.latitude >= min_lat,
            Report.latitude <= max_lat,
        )

    return query
