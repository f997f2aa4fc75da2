"""
Receivable and payable aging.

Given an as-of date and a collection of open obligations, computes
days overdue (as_of - due_date, whole days) and places each obligation's
outstanding amount into exactly one bucket:

    days <= 0   -> current
    1 .. 30     -> days_1_30
    31 .. 60    -> days_31_60
    61 .. 90    -> days_61_90
    > 90        -> days_over_90

Rows are built per subject (customer or supplier) and the grand total row is
the sum of the subject rows.
"""

from datetime import date
from typing import Iterable, Optional

import structlog

from tallyboard.engine.transforms import aggregate_sum, get_field, group_by
from tallyboard.engine.trend import parse_date
from tallyboard.models.enums import AgingBucket
from tallyboard.models.records import Record
from tallyboard.models.reports import AgingRow

logger = structlog.get_logger()

TOTAL_ROW_NAME = "Total"

_BUCKET_FIELD = "__aging_bucket"
_SUBJECT_FIELD = "__aging_subject"


def bucket_for(days_overdue: int) -> AgingBucket:
    """Map a days-overdue count to its aging bucket."""
    if days_overdue <= 0:
        return AgingBucket.CURRENT
    if days_overdue <= 30:
        return AgingBucket.DAYS_1_30
    if days_overdue <= 60:
        return AgingBucket.DAYS_31_60
    if days_overdue <= 90:
        return AgingBucket.DAYS_61_90
    return AgingBucket.DAYS_OVER_90


def days_overdue(as_of: date, due_date: Optional[date]) -> int:
    """Whole days between due date and as-of date; 0 when there is no due date."""
    if due_date is None:
        return 0
    return (as_of - due_date).days


class AgingBucketer:
    """
    Buckets open obligations by days overdue, per subject.

    Subjects are told apart by ``key_field``; ``subject_field`` only supplies
    the display name, taken from the subject's first obligation. Obligations
    without a key fall back to grouping by name.

    Attributes:
        key_field: Field identifying the customer or supplier
        subject_field: Field naming the customer or supplier
        due_date_field: Field holding the due date
        amount_field: Field holding the outstanding amount
    """

    def __init__(
        self,
        subject_field: str = "subject_name",
        due_date_field: str = "due_date",
        amount_field: str = "amount",
        key_field: str = "subject_id",
    ):
        self.subject_field = subject_field
        self.due_date_field = due_date_field
        self.amount_field = amount_field
        self.key_field = key_field

    def _subject_key(self, record: Record) -> str:
        key = get_field(record, self.key_field)
        if key is not None:
            return f"id:{key}"
        return f"name:{get_field(record, self.subject_field)}"

    def bucket(self, obligations: Iterable[Record], as_of: date) -> list[AgingRow]:
        """
        Build one AgingRow per subject.

        Args:
            obligations: Open obligations in fetch order
            as_of: Reference date for days-overdue

        Returns:
            Aging rows in order of each subject's first appearance
        """
        tagged = []
        for record in obligations:
            due = parse_date(get_field(record, self.due_date_field))
            tagged.append(
                {
                    **record,
                    _BUCKET_FIELD: bucket_for(days_overdue(as_of, due)).value,
                    _SUBJECT_FIELD: self._subject_key(record),
                }
            )

        rows = []
        for members in group_by(tagged, _SUBJECT_FIELD).values():
            first = members[0]
            key = get_field(first, self.key_field)
            per_bucket = group_by(members, _BUCKET_FIELD)
            rows.append(
                AgingRow(
                    subject_id=None if key is None else str(key),
                    subject_name=str(get_field(first, self.subject_field)),
                    **{
                        bucket.value: aggregate_sum(per_bucket.get(bucket.value, []), self.amount_field)
                        for bucket in AgingBucket
                    },
                )
            )

        logger.info("aging_bucketed", as_of=as_of.isoformat(), obligations=len(tagged), subjects=len(rows))
        return rows


def total_row(rows: Iterable[AgingRow], name: str = TOTAL_ROW_NAME) -> AgingRow:
    """Grand total row obtained by summing subject rows bucket by bucket."""
    rows = list(rows)
    return AgingRow(
        subject_name=name,
        **{bucket.value: sum(getattr(row, bucket.value) for row in rows) for bucket in AgingBucket},
    )
