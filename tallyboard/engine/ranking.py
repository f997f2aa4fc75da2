"""
Top-N ranking of candidates by a metric.

Ordering is a total order: metric value first (descending unless asked
otherwise), then original fetch order. Candidates without a numeric metric
rank after every candidate that has one.
"""

from typing import Iterable, Mapping, Optional, Sequence

import structlog

from tallyboard.engine.transforms import (
    aggregate_sum,
    get_field,
    group_by,
    is_number,
    sort_records,
    to_float,
)
from tallyboard.models.enums import SortDirection
from tallyboard.models.records import Record, SortSpec
from tallyboard.models.reports import TopNEntry

logger = structlog.get_logger()

DEFAULT_TOP_N = 5


class TopNRanker:
    """
    Ranks records by a metric field and truncates to N entries.

    Attributes:
        key_field: Field identifying each candidate
        metric_field: Field the ranking is ordered by
        secondary_fields: Extra fields copied onto each entry
        descending: Highest metric first when True
    """

    def __init__(
        self,
        key_field: str,
        metric_field: str,
        secondary_fields: Sequence[str] = (),
        descending: bool = True,
    ):
        self.key_field = key_field
        self.metric_field = metric_field
        self.secondary_fields = tuple(secondary_fields)
        self.descending = descending

    def rank(self, candidates: Iterable[Record], n: int = DEFAULT_TOP_N) -> list[TopNEntry]:
        """
        Rank candidates and keep the first ``n``.

        Args:
            candidates: Candidate records in fetch order
            n: Number of entries to keep; n <= 0 yields an empty ranking

        Returns:
            Ranked TopNEntry list
        """
        if n <= 0:
            return []

        # Non-numeric metrics become None so they sort with the missing ones.
        normalized: list[Record] = []
        for record in candidates:
            if not isinstance(record, Mapping):
                continue
            value = get_field(record, self.metric_field)
            normalized.append({**record, self.metric_field: value if is_number(value) else None})

        direction = SortDirection.DESC if self.descending else SortDirection.ASC
        ordered = sort_records(normalized, SortSpec(field=self.metric_field, direction=direction))

        return [self._entry(record) for record in ordered[:n]]

    def rank_grouped(
        self,
        records: Iterable[Record],
        n: int = DEFAULT_TOP_N,
        count_field: Optional[str] = None,
        sum_fields: Sequence[str] = (),
        label_field: Optional[str] = None,
    ) -> list[TopNEntry]:
        """
        Group line records by the key field, sum the metric per group, then rank.

        Groups keep their first-appearance order, which becomes the tie-break.
        With ``label_field`` set, groups are still formed on the key field but
        each entry is keyed by the label of the group's first record, and the
        group key is kept in ``secondary`` under the key field's name.

        Args:
            records: Line-level records (e.g. invoice lines)
            n: Number of entries to keep
            count_field: When set, the group's record count is stored under this name
            sum_fields: Extra numeric fields summed per group into the entry
            label_field: Display field for the entry key (e.g. customer_name)

        Returns:
            Ranked TopNEntry list
        """
        aggregated: list[Record] = []
        for key, members in group_by(records, self.key_field).items():
            row: Record = {
                self.key_field: key,
                self.metric_field: aggregate_sum(members, self.metric_field),
            }
            if label_field:
                row[label_field] = get_field(members[0], label_field)
            if count_field:
                row[count_field] = len(members)
            for field in sum_fields:
                row[field] = aggregate_sum(members, field)
            aggregated.append(row)

        secondary = tuple(f for f in (count_field, *sum_fields) if f)
        if label_field:
            secondary = (self.key_field, *secondary)
        ranker = TopNRanker(
            key_field=label_field or self.key_field,
            metric_field=self.metric_field,
            secondary_fields=secondary,
            descending=self.descending,
        )
        ranked = ranker.rank(aggregated, n)

        logger.debug(
            "ranking_grouped",
            key_field=self.key_field,
            groups=len(aggregated),
            returned=len(ranked),
        )
        return ranked

    def _entry(self, record: Record) -> TopNEntry:
        key = get_field(record, self.key_field)
        return TopNEntry(
            key="" if key is None else str(key),
            metric_value=to_float(get_field(record, self.metric_field)),
            secondary={field: get_field(record, field) for field in self.secondary_fields},
        )
