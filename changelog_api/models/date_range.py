from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta

ADVISORY_SPAN_DAYS = 365


@dataclass(frozen=True, slots=True)
class DateRange:
    """Concrete `[start, end]` window. `start <= end` always holds."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValueError("DateRange start must not be after end")

    @property
    def span(self) -> timedelta:
        return self.end - self.start

    @property
    def span_days(self) -> int:
        return self.span.days

    @property
    def exceeds_advisory_span(self) -> bool:
        return self.span_days > ADVISORY_SPAN_DAYS

    @property
    def start_date(self) -> str:
        return self.start.date().isoformat()

    @property
    def end_date(self) -> str:
        return self.end.date().isoformat()

    def to_search_qualifier(self) -> str:
        """GitHub search `merged:` qualifier value, day precision."""
        return f"{self.start_date}..{self.end_date}"
