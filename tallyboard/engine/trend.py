"""
Time-bucketed trends.

Groups records by a calendar label derived from a timestamp field and sums a
numeric field per bucket. Monthly labels include the year by default
("March 2025"). With ``include_year=False`` the bucketer keys on the month name
alone ("March"), which merges the same month of different years; that mode is
kept for dashboards that were built around it.
"""

from datetime import date, datetime, timedelta
from typing import Any, Iterable, Optional

import structlog

from tallyboard.engine.transforms import aggregate_sum, get_field, group_by
from tallyboard.models.enums import Granularity
from tallyboard.models.records import Record
from tallyboard.models.reports import Bucket

logger = structlog.get_logger()

_LABEL_FIELD = "__bucket_label"


def parse_date(value: Any) -> Optional[date]:
    """Parse a date, datetime or ISO-8601 string; None when unparsable."""
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            return datetime.fromisoformat(text).date()
        except ValueError:
            try:
                return date.fromisoformat(text[:10])
            except ValueError:
                return None
    return None


class TimeTrendBucketer:
    """
    Buckets records into calendar windows.

    Attributes:
        timestamp_field: Field holding the record's date or timestamp
        value_field: Numeric field summed per bucket
        granularity: Day or month buckets
        include_year: Whether monthly labels carry the year
    """

    def __init__(
        self,
        timestamp_field: str = "created_at",
        value_field: str = "total_amount",
        granularity: Granularity = Granularity.MONTH,
        include_year: bool = True,
    ):
        self.timestamp_field = timestamp_field
        self.value_field = value_field
        self.granularity = granularity
        self.include_year = include_year

    def bucket(self, records: Iterable[Record]) -> list[Bucket]:
        """
        Sum ``value_field`` per calendar bucket.

        Records whose timestamp cannot be parsed are skipped. Buckets are
        returned in calendar order.
        """
        labelled: list[Record] = []
        order: dict[str, tuple] = {}
        skipped = 0

        for record in records:
            day = parse_date(get_field(record, self.timestamp_field))
            if day is None:
                skipped += 1
                continue
            sort_key, label = self._label(day)
            order.setdefault(label, sort_key)
            labelled.append({**record, _LABEL_FIELD: label})

        buckets = [
            Bucket(label=label, sum=aggregate_sum(members, self.value_field), count=len(members))
            for label, members in group_by(labelled, _LABEL_FIELD).items()
        ]
        buckets.sort(key=lambda b: order[b.label])

        logger.debug(
            "trend_bucketed",
            granularity=self.granularity.value,
            buckets=len(buckets),
            skipped=skipped,
        )
        return buckets

    def _label(self, day: date) -> tuple[tuple, str]:
        if self.granularity == Granularity.DAY:
            return (day.toordinal(),), day.isoformat()
        if self.include_year:
            return (day.year, day.month), day.strftime("%B %Y")
        return (day.month,), day.strftime("%B")


def fill_days(buckets: list[Bucket], start: date, end: date) -> list[Bucket]:
    """
    Expand daily buckets into a contiguous series from ``start`` to ``end``.

    Days without a bucket get a zero bucket. Buckets outside the range are dropped.
    """
    by_label = {b.label: b for b in buckets}
    series = []
    day = start
    while day <= end:
        label = day.isoformat()
        series.append(by_label.get(label, Bucket(label=label)))
        day += timedelta(days=1)
    return series
