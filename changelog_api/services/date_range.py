"""Resolve a request's date configuration into a concrete DateRange."""

from __future__ import annotations

import logging
from datetime import UTC, datetime, timedelta
from typing import Any, Callable, Optional

from dateutil import parser as date_parser

from changelog_api.errors import InvalidConfiguration, InvalidRange
from changelog_api.models import DateRange

logger = logging.getLogger(__name__)

DATE_MODE_DAYS = "days"
DATE_MODE_RANGE = "range"


def _utcnow() -> datetime:
    return datetime.now(UTC)


def resolve_date_range(
    date_mode: Any,
    *,
    days: Any = None,
    start_date: Any = None,
    end_date: Any = None,
    now: Callable[[], datetime] = _utcnow,
) -> DateRange:
    """
    Turn `days` or `range` inputs into a DateRange

    Args:
        date_mode: "days" or "range"
        days: positive integer day count for "days" mode
        start_date: ISO date/datetime string for "range" mode
        end_date: ISO date/datetime string for "range" mode
        now: clock used for "days" mode

    Returns:
        DateRange; spans over 365 days are logged as an advisory but accepted

    Raises:
        InvalidRange: start is after end
        InvalidConfiguration: missing or malformed inputs for the mode
    """
    if date_mode == DATE_MODE_DAYS:
        day_count = _parse_days(days)
        end = now()
        try:
            start = end - timedelta(days=day_count)
        except (OverflowError, ValueError):
            raise InvalidConfiguration("Invalid date configuration: days is out of range") from None
        date_range = DateRange(start=start, end=end)
    elif date_mode == DATE_MODE_RANGE:
        start = _parse_date(start_date, "startDate")
        end = _parse_date(end_date, "endDate")
        if start > end:
            raise InvalidRange("Start date must be before end date")
        date_range = DateRange(start=start, end=end)
    else:
        raise InvalidConfiguration("Invalid date configuration")

    if date_range.exceeds_advisory_span:
        logger.warning(
            f"Large date range detected: {date_range.span_days} days. "
            "This may result in many PRs and longer processing time."
        )
    return date_range


def _parse_days(raw: Any) -> int:
    # bool is an int subclass; `true` in a JSON body is not a day count
    if isinstance(raw, bool) or raw is None:
        raise InvalidConfiguration("Invalid date configuration: days must be a positive integer")
    if isinstance(raw, float):
        if not raw.is_integer():
            raise InvalidConfiguration("Invalid date configuration: days must be a positive integer")
        raw = int(raw)
    if isinstance(raw, str):
        try:
            raw = int(raw.strip())
        except ValueError:
            raise InvalidConfiguration("Invalid date configuration: days must be a positive integer") from None
    if not isinstance(raw, int) or raw <= 0:
        raise InvalidConfiguration("Invalid date configuration: days must be a positive integer")
    return raw


def _parse_date(raw: Optional[Any], field: str) -> datetime:
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidConfiguration(f"Invalid date configuration: {field} is required")
    try:
        parsed = date_parser.isoparse(raw.strip())
    except (TypeError, ValueError, OverflowError):
        raise InvalidConfiguration(f"Invalid date configuration: {field} is not a valid ISO date") from None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
