"""
Unit tests for the ReportAssembler against the in-memory record source.

The assembler is async; each test drives it with ``asyncio.run``.
"""

import asyncio
from datetime import date, datetime, timedelta

import pytest

from tallyboard.config import Settings
from tallyboard.engine.assembler import ReportAssembler
from tallyboard.errors import ReportSourceError
from tallyboard.models.enums import EngagementEventType, ReportKind
from tallyboard.models.records import DateRange, Page
from tallyboard.models.reports import AgingReport, DashboardReport, ProfitLossReport, SalesReport
from tallyboard.models.tracking import EngagementSummary
from tests.conftest import (
    TENANT,
    make_bill,
    make_customer,
    make_invoice,
    make_invoice_item,
    make_product,
    make_supplier,
    make_tracking_event,
)


def build(source, kind, **kwargs):
    return asyncio.run(ReportAssembler(source).build_report(kind, TENANT, **kwargs))


# =============================================================================
# Report content
# =============================================================================


class TestSalesReport:
    def test_summary_and_rankings(self, populated_source):
        report = build(populated_source, ReportKind.SALES)
        data = report.data

        assert isinstance(data, SalesReport)
        assert report.kind == ReportKind.SALES
        assert report.tenant_id == TENANT
        assert data.summary.total_orders == 4
        assert data.summary.total_revenue == 5450
        assert data.summary.average_order_value == pytest.approx(5450 / 4)

        # Sharma: 1200 + 450, Mehta: 800, Gupta: 3000
        assert [e.key for e in data.top_customers] == ["Gupta Retail", "Sharma Traders", "Mehta Distributors"]
        assert data.top_customers[1].metric_value == 1650
        assert data.top_customers[1].secondary["total_orders"] == 2
        assert data.top_customers[1].secondary["customer_id"] == populated_source.entities["customers"][0]["id"]

        assert [e.key for e in data.top_products] == ["Basmati Rice 25kg", "Sunflower Oil 15L"]
        assert data.top_products[0].metric_value == 4200
        assert sum(b.sum for b in data.monthly_sales) == 5450

    def test_default_window_is_reported(self, populated_source):
        report = build(populated_source, ReportKind.SALES)
        assert report.date_range.end == date.today()
        assert report.date_range.start == date.today() - timedelta(days=30)

    def test_date_range_restricts_invoices(self, populated_source):
        yesterday = date.today() - timedelta(days=1)
        report = build(populated_source, ReportKind.SALES, date_range=DateRange(start=yesterday, end=yesterday))
        assert report.data.summary.total_orders == 1
        assert report.data.summary.total_revenue == 1200

    def test_top_n_and_page(self, populated_source):
        report = build(populated_source, ReportKind.SALES, top_n=2)
        assert len(report.data.top_customers) == 2

        paged = build(populated_source, ReportKind.SALES, page=Page(offset=1, limit=1))
        assert [e.key for e in paged.data.top_customers] == ["Sharma Traders"]

    def test_other_tenants_are_invisible(self, populated_source):
        populated_source.add("invoices", make_invoice(tenant_id="other", total_amount=99999, created_at=datetime.now()))
        report = build(populated_source, ReportKind.SALES)
        assert report.data.summary.total_revenue == 5450

    def test_empty_source_gives_zero_report(self, mock_source):
        report = build(mock_source, ReportKind.SALES)
        assert report.data.summary.total_orders == 0
        assert report.data.summary.average_order_value == 0
        assert report.data.top_customers == []
        assert report.data.monthly_sales == []

    def test_same_name_customers_rank_separately(self, mock_source):
        first, second = make_customer("Sharma Traders"), make_customer("Sharma Traders")
        mock_source.add("customers", first, second)
        today = datetime.combine(date.today(), datetime.min.time())
        mock_source.add(
            "invoices",
            make_invoice(first["id"], 1000, created_at=today),
            make_invoice(second["id"], 2000, created_at=today),
        )

        top = build(mock_source, ReportKind.SALES).data.top_customers

        assert [(e.key, e.metric_value) for e in top] == [("Sharma Traders", 2000), ("Sharma Traders", 1000)]
        assert [e.secondary["customer_id"] for e in top] == [second["id"], first["id"]]
        assert [e.secondary["total_orders"] for e in top] == [1, 1]

    def test_same_name_products_rank_separately(self, mock_source):
        rice_a, rice_b = make_product("Basmati Rice 25kg"), make_product("Basmati Rice 25kg")
        invoice = make_invoice("cus_1", 900, created_at=datetime.combine(date.today(), datetime.min.time()))
        mock_source.add("products", rice_a, rice_b)
        mock_source.add("invoices", invoice)
        mock_source.add(
            "invoice_items",
            make_invoice_item(invoice["id"], rice_a["id"], quantity=1, unit_price=300, created_at=invoice["created_at"]),
            make_invoice_item(invoice["id"], rice_b["id"], quantity=2, unit_price=300, created_at=invoice["created_at"]),
        )

        top = build(mock_source, ReportKind.SALES).data.top_products

        assert [e.secondary["product_id"] for e in top] == [rice_b["id"], rice_a["id"]]
        assert [e.metric_value for e in top] == [600, 300]


class TestAgingReport:
    def test_open_documents_bucketed_by_subject(self, mock_source):
        as_of = date(2025, 6, 30)
        sharma = make_customer("Sharma Traders")
        northwind = make_supplier("Northwind Foods")
        mock_source.add("customers", sharma)
        mock_source.add("suppliers", northwind)
        mock_source.add(
            "invoices",
            make_invoice(sharma["id"], 1000, due_date=as_of - timedelta(days=30)),
            make_invoice(sharma["id"], 500, due_date=as_of - timedelta(days=31)),
            make_invoice(sharma["id"], 9999, status="paid", due_date=as_of - timedelta(days=100)),
            make_invoice("cus_missing", 40, due_date=as_of + timedelta(days=5)),
        )
        mock_source.add("bills", make_bill(northwind["id"], 700, due_date=as_of - timedelta(days=95)))
        mock_source.procedures["get_payment_periods"] = {"average_collection_period": 18, "average_payment_period": 25}

        report = build(mock_source, ReportKind.AGING, as_of=as_of)
        data = report.data

        assert isinstance(data, AgingReport)
        assert [r.subject_name for r in data.receivables] == ["Sharma Traders", "Unknown"]
        assert data.receivables[0].days_1_30 == 1000
        assert data.receivables[0].days_31_60 == 500
        assert data.receivables[1].current == 40
        assert data.receivables_total.total == 1540
        assert data.payables[0].days_over_90 == 700
        assert data.summary.total_receivables == 1540
        assert data.summary.total_payables == 700
        assert data.summary.average_collection_period == 18

    def test_same_name_customers_get_separate_rows(self, mock_source):
        as_of = date(2025, 6, 30)
        first, second = make_customer("Sharma Traders"), make_customer("Sharma Traders")
        mock_source.add("customers", first, second)
        mock_source.add(
            "invoices",
            make_invoice(first["id"], 1000, due_date=as_of - timedelta(days=10)),
            make_invoice(second["id"], 2000, due_date=as_of - timedelta(days=10)),
        )

        data = build(mock_source, ReportKind.AGING, as_of=as_of).data

        assert [(r.subject_id, r.subject_name, r.days_1_30) for r in data.receivables] == [
            (first["id"], "Sharma Traders", 1000),
            (second["id"], "Sharma Traders", 2000),
        ]
        assert data.receivables_total.days_1_30 == 3000
        assert data.receivables_total.subject_id is None


def test_dashboard_truncates_rankings(mock_source):
    mock_source.procedures.update(
        {
            "get_distribution_metrics": [{"total_revenue": 500, "total_orders": 2, "average_order_value": 250}],
            "get_top_customers": [{"name": f"c{i}", "total_orders": 1, "total_revenue": 100 - i} for i in range(8)],
            "get_top_products": [],
            "get_sales_trend": [{"date": "2025-03-01", "revenue": 500, "orders": 2}],
        }
    )
    report = build(mock_source, ReportKind.DASHBOARD, top_n=3)

    assert isinstance(report.data, DashboardReport)
    assert report.data.summary.total_revenue == 500
    assert [e.key for e in report.data.top_customers] == ["c0", "c1", "c2"]
    assert report.data.sales_trend[0].label == "2025-03-01"


def test_profit_loss_from_procedure(mock_source):
    mock_source.procedures["get_profit_loss_report"] = {"total_revenue": 120000, "total_expenses": 45000}
    report = build(mock_source, ReportKind.PROFIT_LOSS, time_period="quarter")

    assert isinstance(report.data, ProfitLossReport)
    assert report.data.net_profit == 75000
    assert report.data.time_period == "quarter"


def test_financial_overview_empty_procedures(mock_source):
    report = build(mock_source, ReportKind.FINANCIAL_OVERVIEW)
    assert report.data.invoice_payments.total_count == 0
    assert report.data.financial.total_receivables == 0


def test_engagement_subjects_paginated(mock_source):
    mock_source.add(
        "tracking_events",
        *[make_tracking_event(f"quo_{i}", EngagementEventType.SENT) for i in range(5)],
    )
    report = build(mock_source, ReportKind.ENGAGEMENT, page=Page(offset=1, limit=2))

    assert isinstance(report.data, EngagementSummary)
    assert report.data.counts.sent == 5
    assert [s.subject_id for s in report.data.subjects] == ["quo_1", "quo_2"]


def test_month_name_keying_follows_settings(mock_source):
    mock_source.add(
        "invoices",
        make_invoice(total_amount=10, created_at=datetime(2024, 3, 5)),
        make_invoice(total_amount=20, created_at=datetime(2025, 3, 5)),
    )
    settings = Settings(trend_month_includes_year=False)
    report = asyncio.run(
        ReportAssembler(mock_source, settings).build_report(
            ReportKind.SALES, TENANT, date_range=DateRange(start=date(2024, 1, 1), end=date(2025, 12, 31))
        )
    )
    assert [(b.label, b.sum) for b in report.data.monthly_sales] == [("March", 30)]


# =============================================================================
# Fan-out failure semantics
# =============================================================================


class TestFailFast:
    def test_failure_names_the_entity(self, mock_source):
        mock_source.failing.add("customers")

        with pytest.raises(ReportSourceError) as exc_info:
            build(mock_source, ReportKind.SALES)

        assert exc_info.value.entity == "customers"
        assert exc_info.value.kind == "sales"
        assert "customers" in str(exc_info.value)

    def test_pending_fetches_are_cancelled(self, mock_source):
        mock_source.failing.add("customers")
        mock_source.delays["products"] = 5.0

        with pytest.raises(ReportSourceError):
            build(mock_source, ReportKind.SALES)

        assert mock_source.cancelled == ["products"]
        assert "products" not in mock_source.completed

    def test_first_failure_in_request_order_wins(self, mock_source):
        mock_source.failing.update({"invoices", "products"})

        with pytest.raises(ReportSourceError) as exc_info:
            build(mock_source, ReportKind.SALES)

        assert exc_info.value.entity == "invoices"

    def test_procedure_failure(self, mock_source):
        mock_source.failing.add("get_balance_sheet")

        with pytest.raises(ReportSourceError) as exc_info:
            build(mock_source, ReportKind.BALANCE_SHEET)

        assert exc_info.value.entity == "get_balance_sheet"

    def test_no_retries(self, mock_source):
        mock_source.failing.add("get_tax_reports")

        with pytest.raises(ReportSourceError):
            build(mock_source, ReportKind.TAX)

        assert mock_source.calls.count("get_tax_reports") == 1


# =============================================================================
# Argument validation
# =============================================================================


def test_unknown_kind(mock_source):
    with pytest.raises(ValueError):
        build(mock_source, "inventory")


def test_missing_tenant(mock_source):
    with pytest.raises(ValueError):
        asyncio.run(ReportAssembler(mock_source).build_report(ReportKind.SALES, ""))


def test_kind_accepts_string(mock_source):
    report = build(mock_source, "tax")
    assert report.kind == ReportKind.TAX
