"""
Engagement event aggregation.

Summarizes tracking events into counts by event type, overall and per subject
and recipient, plus a per-day series. It is the same grouped-count derivation
as the sales trend, run over tracking events.
"""

from datetime import date, datetime, timezone
from typing import Iterable, Optional

import structlog

from tallyboard.engine.transforms import filter_records, get_field, group_by
from tallyboard.engine.trend import TimeTrendBucketer, fill_days
from tallyboard.models.enums import EngagementEventType, Granularity
from tallyboard.models.records import Record
from tallyboard.models.tracking import (
    DailyCount,
    EngagementSummary,
    EventCounts,
    RecipientEngagement,
    SubjectEngagement,
)

logger = structlog.get_logger()


def count_events(events: list[Record]) -> EventCounts:
    """Count events per known type; unknown types are ignored."""
    by_type = group_by(events, "event_type")
    return EventCounts(**{t.value: len(by_type.get(t.value, [])) for t in EngagementEventType})


def engagement_rate(counts: EventCounts) -> float:
    """Share of possible follow-up events that happened, as a percentage."""
    if counts.sent <= 0:
        return 0.0
    return (counts.opened + counts.clicked + counts.downloaded) / (counts.sent * 3) * 100


def _plain(event: Record) -> Record:
    event_type = get_field(event, "event_type")
    if isinstance(event_type, EngagementEventType):
        return {**event, "event_type": event_type.value}
    return event


def _as_datetime(value) -> Optional[datetime]:
    """Parse an event timestamp as naive UTC."""
    if isinstance(value, str) and value:
        try:
            value = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None
    if not isinstance(value, datetime):
        return None
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


class EngagementAggregator:
    """Builds an EngagementSummary from tracking event records."""

    def summarize(
        self,
        events: Iterable[Record],
        subject_id: Optional[str] = None,
        start: Optional[date] = None,
        end: Optional[date] = None,
    ) -> EngagementSummary:
        """
        Summarize events, optionally for a single subject.

        Args:
            events: Tracking event records
            subject_id: Restrict to one subject when given
            start: First day of the zero-filled daily series
            end: Last day of the zero-filled daily series

        Returns:
            EngagementSummary
        """
        snapshot = [_plain(e) for e in events if isinstance(e, dict)]
        if subject_id:
            snapshot = filter_records(snapshot, {"subject_id": subject_id})

        counts = count_events(snapshot)

        subjects = []
        for sid, members in group_by(snapshot, "subject_id").items():
            subject_counts = count_events(members)
            subjects.append(
                SubjectEngagement(
                    subject_id=sid,
                    counts=subject_counts,
                    engagement_rate=engagement_rate(subject_counts),
                )
            )

        recipients = []
        for recipient, members in group_by(snapshot, "recipient").items():
            times = [t for t in (_as_datetime(get_field(m, "event_date")) for m in members) if t]
            recipients.append(
                RecipientEngagement(
                    recipient=recipient,
                    total_events=len(members),
                    events_by_type=count_events(members),
                    last_activity=max(times) if times else None,
                )
            )

        daily_buckets = TimeTrendBucketer(
            timestamp_field="event_date",
            value_field="event_type",
            granularity=Granularity.DAY,
        ).bucket(snapshot)
        if start and end:
            daily_buckets = fill_days(daily_buckets, start, end)
        daily = [DailyCount(date=b.label, count=b.count) for b in daily_buckets]

        logger.info(
            "engagement_summarized",
            events=len(snapshot),
            subjects=len(subjects),
            recipients=len(recipients),
        )

        return EngagementSummary(
            counts=counts,
            total_events=counts.total,
            subjects=subjects,
            recipients=recipients,
            daily=daily,
        )
