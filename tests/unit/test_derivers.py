"""
Unit tests for the metric derivers.

Covers ranking, trend bucketing, aging, sales summary, the statement
derivers and engagement aggregation.
"""

from datetime import date, datetime

import pytest

from tallyboard.engine.aging import AgingBucketer, bucket_for, days_overdue, total_row
from tallyboard.engine.balance_sheet import BalanceSheetSectioner
from tallyboard.engine.cash_flow import CashFlowSectioner
from tallyboard.engine.engagement import EngagementAggregator, engagement_rate
from tallyboard.engine.payment_stats import PaymentStatsDeriver
from tallyboard.engine.profit_loss import ProfitLossDeriver
from tallyboard.engine.ranking import TopNRanker
from tallyboard.engine.sales_summary import SalesSummaryDeriver
from tallyboard.engine.tax_summary import TaxSummaryDeriver
from tallyboard.engine.trend import TimeTrendBucketer, fill_days, parse_date
from tallyboard.models.enums import AgingBucket, EngagementEventType, Granularity
from tallyboard.models.reports import Bucket, DistributionMetrics, PaymentMethodStat, TopNEntry
from tallyboard.models.tracking import EventCounts
from tallyboard.storage.decoders import (
    decode_balance_sheet,
    decode_cash_flow,
    decode_profit_loss,
    decode_tax_report,
)
from tests.conftest import make_tracking_event


# =============================================================================
# TopNRanker
# =============================================================================


class TestTopNRanker:
    def test_top_five_of_ten_with_ties(self):
        values = [50, 90, 70, 90, 10, 70, 30, 60, 70, 20]
        candidates = [{"name": f"c{i}", "revenue": v} for i, v in enumerate(values)]

        ranked = TopNRanker("name", "revenue").rank(candidates, 5)

        assert [e.key for e in ranked] == ["c1", "c3", "c2", "c5", "c8"]
        assert [e.metric_value for e in ranked] == [90, 90, 70, 70, 70]

    def test_fewer_candidates_than_n(self):
        ranked = TopNRanker("name", "revenue").rank([{"name": "a", "revenue": 1}], 5)
        assert len(ranked) == 1

    def test_non_positive_n_is_empty(self):
        candidates = [{"name": "a", "revenue": 1}]
        assert TopNRanker("name", "revenue").rank(candidates, 0) == []
        assert TopNRanker("name", "revenue").rank(candidates, -3) == []

    def test_non_numeric_metric_ranks_last(self):
        candidates = [{"name": "a", "revenue": "n/a"}, {"name": "b", "revenue": 5}, {"name": "c"}]
        ranked = TopNRanker("name", "revenue").rank(candidates, 3)
        assert [e.key for e in ranked] == ["b", "a", "c"]
        assert ranked[1].metric_value == 0.0

    def test_ascending(self):
        candidates = [{"name": "a", "v": 3}, {"name": "b", "v": 1}]
        ranked = TopNRanker("name", "v", descending=False).rank(candidates, 2)
        assert [e.key for e in ranked] == ["b", "a"]

    def test_rank_grouped_sums_per_key(self):
        lines = [
            {"customer_name": "Mehta", "total_amount": 100},
            {"customer_name": "Sharma", "total_amount": 300},
            {"customer_name": "Mehta", "total_amount": 250},
            {"customer_name": "Gupta", "total_amount": 350},
        ]
        ranked = TopNRanker("customer_name", "total_amount").rank_grouped(lines, 5, count_field="total_orders")

        assert [e.key for e in ranked] == ["Mehta", "Gupta", "Sharma"]
        assert ranked[0].metric_value == 350
        assert ranked[0].secondary == {"total_orders": 2}

    def test_rank_grouped_by_id_with_label(self):
        lines = [
            {"customer_id": "c1", "customer_name": "Sharma", "total_amount": 100},
            {"customer_id": "c2", "customer_name": "Sharma", "total_amount": 300},
            {"customer_id": "c1", "customer_name": "Sharma", "total_amount": 50},
        ]
        ranked = TopNRanker("customer_id", "total_amount").rank_grouped(
            lines, count_field="total_orders", label_field="customer_name"
        )

        assert [(e.key, e.metric_value) for e in ranked] == [("Sharma", 300), ("Sharma", 150)]
        assert ranked[1].secondary == {"customer_id": "c1", "total_orders": 2}

    def test_rank_grouped_extra_sums(self):
        lines = [
            {"product_name": "Rice", "total_amount": 100, "quantity": 2},
            {"product_name": "Rice", "total_amount": 50, "quantity": 1},
        ]
        ranked = TopNRanker("product_name", "total_amount").rank_grouped(lines, sum_fields=("quantity",))
        assert ranked[0].secondary == {"quantity": 3.0}


# =============================================================================
# TimeTrendBucketer
# =============================================================================


class TestTimeTrendBucketer:
    def test_monthly_buckets_keep_years_apart(self):
        records = [
            {"created_at": "2024-03-05T10:00:00", "total_amount": 100},
            {"created_at": "2025-03-10", "total_amount": 50},
            {"created_at": date(2025, 1, 2), "total_amount": 25},
        ]
        buckets = TimeTrendBucketer().bucket(records)

        assert [b.label for b in buckets] == ["March 2024", "January 2025", "March 2025"]
        assert [b.sum for b in buckets] == [100, 25, 50]

    def test_month_name_keying_merges_years(self):
        records = [
            {"created_at": "2024-03-05", "total_amount": 100},
            {"created_at": "2025-03-10", "total_amount": 50},
        ]
        buckets = TimeTrendBucketer(include_year=False).bucket(records)
        assert len(buckets) == 1
        assert buckets[0].label == "March"
        assert buckets[0].sum == 150
        assert buckets[0].count == 2

    def test_daily_buckets_and_unparsable_dates(self):
        records = [
            {"created_at": datetime(2025, 3, 2, 23, 59), "total_amount": 10},
            {"created_at": "2025-03-01", "total_amount": 5},
            {"created_at": "not a date", "total_amount": 999},
            {"total_amount": 999},
        ]
        buckets = TimeTrendBucketer(granularity=Granularity.DAY).bucket(records)
        assert [(b.label, b.sum) for b in buckets] == [("2025-03-01", 5), ("2025-03-02", 10)]

    def test_fill_days_zero_fills(self):
        series = fill_days([Bucket(label="2025-03-02", sum=4, count=1)], date(2025, 3, 1), date(2025, 3, 3))
        assert [(b.label, b.count) for b in series] == [("2025-03-01", 0), ("2025-03-02", 1), ("2025-03-03", 0)]

    def test_parse_date_forms(self):
        assert parse_date("2025-03-01T10:00:00Z") == date(2025, 3, 1)
        assert parse_date("2025-03-01") == date(2025, 3, 1)
        assert parse_date("") is None
        assert parse_date(42) is None


# =============================================================================
# Aging
# =============================================================================


class TestAging:
    @pytest.mark.parametrize(
        "days,expected",
        [
            (-5, AgingBucket.CURRENT),
            (0, AgingBucket.CURRENT),
            (1, AgingBucket.DAYS_1_30),
            (30, AgingBucket.DAYS_1_30),
            (31, AgingBucket.DAYS_31_60),
            (60, AgingBucket.DAYS_31_60),
            (61, AgingBucket.DAYS_61_90),
            (90, AgingBucket.DAYS_61_90),
            (91, AgingBucket.DAYS_OVER_90),
        ],
    )
    def test_bucket_boundaries(self, days, expected):
        assert bucket_for(days) == expected

    def test_days_overdue(self):
        assert days_overdue(date(2025, 3, 31), date(2025, 3, 1)) == 30
        assert days_overdue(date(2025, 3, 1), date(2025, 3, 31)) == -30
        assert days_overdue(date(2025, 3, 1), None) == 0

    def test_rows_per_subject_and_totals(self):
        as_of = date(2025, 6, 30)
        obligations = [
            {"subject_name": "Sharma", "due_date": date(2025, 5, 31), "amount": 1000},  # 30 days
            {"subject_name": "Sharma", "due_date": date(2025, 5, 30), "amount": 400},  # 31 days
            {"subject_name": "Mehta", "due_date": date(2025, 7, 15), "amount": 250},  # not yet due
            {"subject_name": "Mehta", "due_date": "2025-01-01", "amount": 75},  # > 90
        ]
        rows = AgingBucketer().bucket(obligations, as_of)

        assert [r.subject_name for r in rows] == ["Sharma", "Mehta"]
        sharma, mehta = rows
        assert sharma.days_1_30 == 1000
        assert sharma.days_31_60 == 400
        assert sharma.total == 1400
        assert mehta.current == 250
        assert mehta.days_over_90 == 75

        grand = total_row(rows)
        assert grand.subject_name == "Total"
        assert grand.total == sum(r.total for r in rows) == 1725

    def test_subjects_are_told_apart_by_id(self):
        as_of = date(2025, 6, 30)
        obligations = [
            {"subject_id": "cus_1", "subject_name": "Sharma", "due_date": date(2025, 6, 20), "amount": 1000},
            {"subject_id": "cus_2", "subject_name": "Sharma", "due_date": date(2025, 6, 20), "amount": 2000},
            {"subject_id": "cus_1", "subject_name": "Sharma", "due_date": date(2025, 7, 5), "amount": 50},
        ]
        rows = AgingBucketer().bucket(obligations, as_of)

        assert [(r.subject_id, r.subject_name) for r in rows] == [("cus_1", "Sharma"), ("cus_2", "Sharma")]
        assert rows[0].days_1_30 == 1000
        assert rows[0].current == 50
        assert rows[1].days_1_30 == 2000

    def test_missing_due_date_is_current(self):
        rows = AgingBucketer().bucket([{"subject_name": "X", "amount": 10}], date(2025, 1, 1))
        assert rows[0].current == 10

    def test_empty_obligations(self):
        rows = AgingBucketer().bucket([], date(2025, 1, 1))
        assert rows == []
        assert total_row(rows).total == 0


# =============================================================================
# Sales summary
# =============================================================================


class TestSalesSummary:
    def test_zero_orders_has_zero_average(self):
        summary = SalesSummaryDeriver().derive([])
        assert summary.total_orders == 0
        assert summary.total_revenue == 0
        assert summary.average_order_value == 0

    def test_average_order_value(self):
        summary = SalesSummaryDeriver().derive([{"total_amount": 100}, {"total_amount": 300}, {}])
        assert summary.total_orders == 3
        assert summary.total_revenue == 400
        assert summary.average_order_value == pytest.approx(400 / 3)

    def test_merge_passes_figures_through(self):
        metrics = DistributionMetrics(total_revenue=10, total_orders=2, average_order_value=5, pending_orders=1)
        report = SalesSummaryDeriver().merge(metrics, [TopNEntry(key="a", metric_value=10)], [], [])
        assert report.summary.pending_orders == 1
        assert report.top_customers[0].key == "a"


# =============================================================================
# Statements
# =============================================================================


class TestProfitLoss:
    def test_net_profit(self):
        payload = decode_profit_loss({"total_revenue": 120000, "total_expenses": 45000})
        report = ProfitLossDeriver().derive(payload)
        assert report.net_profit == 75000
        assert report.profit_margin == pytest.approx(62.5)

    def test_null_totals_default_to_zero(self):
        payload = decode_profit_loss([{"total_revenue": None, "total_expenses": None, "revenue_breakdown": None}])
        report = ProfitLossDeriver().derive(payload, time_period="quarter")
        assert report.net_profit == 0
        assert report.profit_margin == 0
        assert report.revenue_breakdown == []
        assert report.time_period == "quarter"

    def test_breakdowns_become_line_items(self):
        payload = decode_profit_loss(
            {"total_revenue": 10, "revenue_breakdown": [{"category": None, "amount": "10"}]}
        )
        report = ProfitLossDeriver().derive(payload)
        assert report.revenue_breakdown[0].name == "Uncategorized"
        assert report.revenue_breakdown[0].amount == 10.0


class TestBalanceSheet:
    def test_balanced_sheet(self):
        payload = decode_balance_sheet(
            {
                "assets": [{"category": "Current Assets", "items": [{"name": "Cash", "amount": 700}, {"name": "Stock", "amount": 300}]}],
                "liabilities": [{"category": "Current Liabilities", "items": [{"name": "Payables", "amount": 400}]}],
                "equity": [{"category": "Owner's Equity", "items": [{"name": "Capital", "amount": 600}]}],
            }
        )
        report = BalanceSheetSectioner().section(payload, date(2025, 3, 31))

        assert report.assets[0].category_total == 1000
        assert report.total_assets == 1000
        assert report.total_liabilities + report.total_equity == 1000
        assert report.is_balanced is True

    def test_imbalance_is_reported_not_raised(self):
        payload = decode_balance_sheet(
            {"assets": [{"category": "A", "items": [{"name": "Cash", "amount": 100}]}], "liabilities": None}
        )
        report = BalanceSheetSectioner().section(payload, date(2025, 3, 31))
        assert report.is_balanced is False
        assert report.imbalance == 100
        assert report.liabilities == []


class TestCashFlow:
    def test_net_and_ending_cash(self):
        payload = decode_cash_flow(
            {
                "operating_activities": {"category": "Operating Activities", "items": [{"description": "Receipts", "amount": 5000}, {"description": "Salaries", "amount": -2000}]},
                "investing_activities": {"items": [{"description": "Van", "amount": -1500}]},
                "financing_activities": None,
                "beginning_cash": 10000,
            }
        )
        report = CashFlowSectioner().section(payload)

        assert report.operating_activities.category_total == 3000
        assert report.investing_activities.category == "Investing Activities"
        assert report.financing_activities.line_items == []
        assert report.net_cash_flow == 1500
        assert report.ending_cash == 11500


class TestTaxSummary:
    def test_totals(self):
        payload = decode_tax_report(
            {
                "gst_summary": [{"period": "March 2025", "collected": 180, "paid": 90, "net_payable": 90}],
                "tax_liability": [
                    {"type": "GST", "amount": 500, "due_date": "2025-04-20", "status": "pending"},
                    {"type": "TDS", "amount": 120, "status": "paid"},
                    {"type": "Cess", "amount": None, "status": None},
                ],
            }
        )
        report = TaxSummaryDeriver().derive(payload)

        assert report.total_tax_liability == 620
        assert report.total_tax_paid == 120
        assert report.tax_liability[0].due_date == date(2025, 4, 20)
        assert report.tax_liability[2].status == "pending"
        assert report.gst_summary[0].period == "March 2025"


def test_payment_stats_totals():
    stats = PaymentStatsDeriver().derive(
        [
            PaymentMethodStat(payment_method="upi", payment_count=3, total_amount=300),
            PaymentMethodStat(payment_method="cash", payment_count=1, total_amount=50),
        ]
    )
    assert stats.total_count == 4
    assert stats.total_amount == 350


# =============================================================================
# Engagement
# =============================================================================


class TestEngagementAggregator:
    def test_counts_per_subject_and_recipient(self):
        events = [
            make_tracking_event("quo_1", EngagementEventType.SENT, recipient="a@x.com", event_date=datetime(2025, 3, 1, 9)),
            make_tracking_event("quo_1", EngagementEventType.OPENED, recipient="unknown", event_date=datetime(2025, 3, 1, 12)),
            make_tracking_event("quo_1", EngagementEventType.DOWNLOADED, recipient="a@x.com", event_date=datetime(2025, 3, 3, 8)),
            make_tracking_event("quo_2", EngagementEventType.SENT, recipient="b@x.com", event_date=datetime(2025, 3, 2, 9)),
        ]
        summary = EngagementAggregator().summarize(events, start=date(2025, 3, 1), end=date(2025, 3, 4))

        assert summary.counts.sent == 2
        assert summary.total_events == 4
        assert [s.subject_id for s in summary.subjects] == ["quo_1", "quo_2"]
        assert summary.subjects[0].engagement_rate == pytest.approx(2 / 3 * 100)
        assert summary.subjects[1].engagement_rate == 0

        recipient = next(r for r in summary.recipients if r.recipient == "a@x.com")
        assert recipient.total_events == 2
        assert recipient.last_activity == datetime(2025, 3, 3, 8)

        assert [(d.date, d.count) for d in summary.daily] == [
            ("2025-03-01", 2),
            ("2025-03-02", 1),
            ("2025-03-03", 1),
            ("2025-03-04", 0),
        ]

    def test_subject_filter_and_enum_values(self):
        events = [
            {"subject_id": "quo_1", "event_type": EngagementEventType.CLICKED, "recipient": "a", "event_date": "2025-03-01T10:00:00Z"},
            {"subject_id": "quo_2", "event_type": "opened", "recipient": "b", "event_date": "2025-03-01T11:00:00"},
        ]
        summary = EngagementAggregator().summarize(events, subject_id="quo_1")
        assert summary.counts.clicked == 1
        assert summary.total_events == 1

    def test_unknown_event_types_are_ignored(self):
        events = [make_tracking_event(event_type=EngagementEventType.OPENED), {"subject_id": "q", "event_type": "bounced"}]
        summary = EngagementAggregator().summarize(events)
        assert summary.counts.total == 1

    def test_empty(self):
        summary = EngagementAggregator().summarize([])
        assert summary.total_events == 0
        assert summary.subjects == []

    def test_rate_without_sends_is_zero(self):
        assert engagement_rate(EventCounts(opened=3)) == 0.0
