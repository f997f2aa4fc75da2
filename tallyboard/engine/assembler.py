"""
Report assembly.

The ReportAssembler is the single error boundary between the record source
and callers. For a report kind it issues the minimum set of fetches and
procedure calls, runs them as one structured fan-out, decodes the results,
invokes the matching derivers and wraps the output in a ReportModel.

Fan-out semantics: every fetch runs as its own task. The assembler waits until
all of them finish or one fails. On the first failure the remaining tasks are
cancelled and awaited, their results are discarded, and a single
ReportSourceError naming the failing fetch is raised. A report is never
returned partially populated, and nothing is retried.
"""

import asyncio
from datetime import date, timedelta
from typing import Any, Awaitable, Callable, Optional, Union

import structlog

from tallyboard.config import Settings, get_settings
from tallyboard.engine.aging import AgingBucketer, total_row
from tallyboard.engine.balance_sheet import BalanceSheetSectioner
from tallyboard.engine.cash_flow import CashFlowSectioner
from tallyboard.engine.engagement import EngagementAggregator
from tallyboard.engine.payment_stats import PaymentStatsDeriver
from tallyboard.engine.profit_loss import ProfitLossDeriver
from tallyboard.engine.ranking import TopNRanker
from tallyboard.engine.sales_summary import SalesSummaryDeriver
from tallyboard.engine.tax_summary import TaxSummaryDeriver
from tallyboard.engine.transforms import get_field, paginate
from tallyboard.engine.trend import TimeTrendBucketer, parse_date
from tallyboard.errors import ReportSourceError
from tallyboard.models.enums import Granularity, ReportKind, TaxPeriod, TimePeriod
from tallyboard.models.records import DateRange, Page, Record
from tallyboard.models.reports import (
    AgingReport,
    AgingSummary,
    DashboardReport,
    FinancialOverviewReport,
    ReportData,
    ReportModel,
    SalesReport,
)
from tallyboard.storage import decoders
from tallyboard.storage.base import RecordSource

logger = structlog.get_logger()

UNKNOWN_SUBJECT = "Unknown"
PAID_STATUS = "paid"


def _name_index(records: list[Record]) -> dict[Any, str]:
    """Map record id to display name."""
    return {get_field(r, "id"): str(get_field(r, "name") or UNKNOWN_SUBJECT) for r in records}


def _within(value: Any, date_range: DateRange) -> bool:
    day = parse_date(value)
    if day is None:
        return False
    if date_range.start and day < date_range.start:
        return False
    if date_range.end and day > date_range.end:
        return False
    return True


def _open_obligations(
    documents: list[Record],
    names: dict[Any, str],
    subject_key: str,
) -> list[Record]:
    """Unpaid documents reshaped to ``{subject_id, subject_name, due_date, amount}``."""
    return [
        {
            "subject_id": get_field(doc, subject_key),
            "subject_name": names.get(get_field(doc, subject_key), UNKNOWN_SUBJECT),
            "due_date": get_field(doc, "due_date"),
            "amount": get_field(doc, "total_amount"),
        }
        for doc in documents
        if get_field(doc, "status") != PAID_STATUS
    ]


class ReportAssembler:
    """
    Builds report models from a record source.

    Attributes:
        source: RecordSource the fetches are issued against
        settings: Reporting defaults (top-N length, look-back windows)
    """

    def __init__(self, source: RecordSource, settings: Optional[Settings] = None):
        self.source = source
        self.settings = settings or get_settings()
        self._builders: dict[ReportKind, Callable[..., Awaitable[tuple[ReportData, Optional[DateRange]]]]] = {
            ReportKind.DASHBOARD: self._build_dashboard,
            ReportKind.SALES: self._build_sales,
            ReportKind.AGING: self._build_aging,
            ReportKind.PROFIT_LOSS: self._build_profit_loss,
            ReportKind.BALANCE_SHEET: self._build_balance_sheet,
            ReportKind.CASH_FLOW: self._build_cash_flow,
            ReportKind.TAX: self._build_tax,
            ReportKind.FINANCIAL_OVERVIEW: self._build_financial_overview,
            ReportKind.ENGAGEMENT: self._build_engagement,
        }

    async def build_report(
        self,
        kind: Union[ReportKind, str],
        tenant_id: str,
        date_range: Optional[DateRange] = None,
        page: Optional[Page] = None,
        **options: Any,
    ) -> ReportModel:
        """
        Build one report for a tenant.

        Args:
            kind: Report kind
            tenant_id: Tenant whose records are read
            date_range: Optional inclusive date range (kind-specific default)
            page: Optional window applied to list-valued report parts
            **options: Kind-specific options (top_n, granularity, as_of,
                time_period, report_period, days, subject_id)

        Returns:
            ReportModel envelope

        Raises:
            ReportSourceError: If any underlying fetch fails
            ValueError: If the kind or an option value is not recognised
        """
        kind = ReportKind(kind)
        if not tenant_id:
            raise ValueError("tenant_id is required")

        log = logger.bind(kind=kind.value, tenant_id=tenant_id)
        log.debug("report_requested", options=sorted(options))

        builder = self._builders[kind]
        data, effective_range = await builder(tenant_id, date_range, page, **options)

        log.info("report_built")
        return ReportModel(kind=kind, tenant_id=tenant_id, date_range=effective_range, data=data)

    # =========================================================================
    # Structured fan-out
    # =========================================================================

    async def _gather(self, kind: ReportKind, calls: dict[str, Awaitable[Any]]) -> dict[str, Any]:
        """
        Run independent fetches concurrently and collect their results.

        Args:
            kind: Report being built, for the composite error
            calls: Fetch label (entity or procedure name) to awaitable

        Returns:
            Fetch label to result

        Raises:
            ReportSourceError: Naming the first failed fetch, in ``calls`` order
        """
        tasks = {name: asyncio.ensure_future(call) for name, call in calls.items()}
        try:
            await asyncio.wait(tasks.values(), return_when=asyncio.FIRST_EXCEPTION)

            failed = next(
                (
                    name
                    for name, task in tasks.items()
                    if task.done() and not task.cancelled() and task.exception() is not None
                ),
                None,
            )
            if failed is not None:
                cause = tasks[failed].exception()
                pending = [task for task in tasks.values() if not task.done()]
                for task in pending:
                    task.cancel()
                await asyncio.gather(*pending, return_exceptions=True)

                logger.error(
                    "report_fetch_failed",
                    kind=kind.value,
                    entity=failed,
                    cancelled=len(pending),
                    error=str(cause),
                )
                raise ReportSourceError(kind.value, failed, cause) from cause

            return {name: task.result() for name, task in tasks.items()}
        finally:
            for task in tasks.values():
                if not task.done():
                    task.cancel()

    def _default_range(self, date_range: Optional[DateRange], days: Optional[int] = None) -> DateRange:
        if date_range is not None and (date_range.start or date_range.end):
            return date_range
        today = date.today()
        window = days if days is not None else self.settings.report_default_days
        return DateRange(start=today - timedelta(days=int(window)), end=today)

    def _top_n(self, top_n: Optional[int]) -> int:
        return self.settings.top_n_default if top_n is None else int(top_n)

    # =========================================================================
    # Builders
    # =========================================================================

    async def _build_dashboard(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        days: Optional[int] = None,
        top_n: Optional[int] = None,
        **_: Any,
    ) -> tuple[DashboardReport, Optional[DateRange]]:
        days = int(days or self.settings.dashboard_trend_days)
        limit = max(self._top_n(top_n), 0)
        call = self.source.call_procedure

        results = await self._gather(
            ReportKind.DASHBOARD,
            {
                "get_distribution_metrics": call("get_distribution_metrics", tenant_id, {"days": days}),
                "get_top_customers": call("get_top_customers", tenant_id, {"limit_count": limit, "days": days}),
                "get_top_products": call("get_top_products", tenant_id, {"limit_count": limit, "days": days}),
                "get_sales_trend": call("get_sales_trend", tenant_id, {"days_count": days}),
            },
        )

        report = SalesSummaryDeriver().merge(
            metrics=decoders.decode_distribution_metrics(results["get_distribution_metrics"]),
            top_customers=decoders.decode_top_customers(results["get_top_customers"])[:limit],
            top_products=decoders.decode_top_products(results["get_top_products"])[:limit],
            sales_trend=decoders.decode_sales_trend(results["get_sales_trend"]),
        )
        return report, None

    async def _build_sales(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        top_n: Optional[int] = None,
        granularity: Union[Granularity, str] = Granularity.MONTH,
        days: Optional[int] = None,
        **_: Any,
    ) -> tuple[SalesReport, DateRange]:
        date_range = self._default_range(date_range, days)
        granularity = Granularity(granularity)
        n = self._top_n(top_n)
        fetch = self.source.fetch

        results = await self._gather(
            ReportKind.SALES,
            {
                "invoices": fetch("invoices", tenant_id, date_range=date_range),
                "customers": fetch("customers", tenant_id),
                "invoice_items": fetch("invoice_items", tenant_id, date_range=date_range),
                "products": fetch("products", tenant_id),
            },
        )
        invoices = results["invoices"]
        customers = results["customers"]

        customer_names = _name_index(customers)
        product_names = _name_index(results["products"])
        invoice_ids = {get_field(inv, "id") for inv in invoices}

        invoice_lines = [
            {**inv, "customer_name": customer_names.get(get_field(inv, "customer_id"), UNKNOWN_SUBJECT)}
            for inv in invoices
        ]
        item_lines = [
            {**item, "product_name": product_names.get(get_field(item, "product_id"), UNKNOWN_SUBJECT)}
            for item in results["invoice_items"]
            if get_field(item, "invoice_id") in invoice_ids
        ]

        # Active customers: customers created inside the window.
        active = [c for c in customers if _within(get_field(c, "created_at"), date_range)]

        top_customers = TopNRanker("customer_id", "total_amount").rank_grouped(
            invoice_lines, n, count_field="total_orders", label_field="customer_name"
        )
        top_products = TopNRanker("product_id", "total_amount").rank_grouped(
            item_lines, n, sum_fields=("quantity",), label_field="product_name"
        )
        trend = TimeTrendBucketer(
            timestamp_field="created_at",
            value_field="total_amount",
            granularity=granularity,
            include_year=self.settings.trend_month_includes_year,
        ).bucket(invoices)

        report = SalesReport(
            summary=SalesSummaryDeriver().derive(invoices),
            active_customers=len(active),
            top_customers=paginate(top_customers, page),
            top_products=paginate(top_products, page),
            monthly_sales=trend,
        )
        return report, date_range

    async def _build_aging(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        as_of: Optional[date] = None,
        **_: Any,
    ) -> tuple[AgingReport, None]:
        as_of = as_of or date.today()
        fetch = self.source.fetch

        results = await self._gather(
            ReportKind.AGING,
            {
                "invoices": fetch("invoices", tenant_id),
                "bills": fetch("bills", tenant_id),
                "customers": fetch("customers", tenant_id),
                "suppliers": fetch("suppliers", tenant_id),
                "get_payment_periods": self.source.call_procedure("get_payment_periods", tenant_id),
            },
        )

        receivables = AgingBucketer().bucket(
            _open_obligations(results["invoices"], _name_index(results["customers"]), "customer_id"),
            as_of,
        )
        payables = AgingBucketer().bucket(
            _open_obligations(results["bills"], _name_index(results["suppliers"]), "supplier_id"),
            as_of,
        )
        receivables_total = total_row(receivables)
        payables_total = total_row(payables)
        periods = decoders.decode_payment_periods(results["get_payment_periods"])

        report = AgingReport(
            as_of=as_of,
            receivables=paginate(receivables, page),
            payables=paginate(payables, page),
            receivables_total=receivables_total,
            payables_total=payables_total,
            summary=AgingSummary(
                total_receivables=receivables_total.total,
                total_payables=payables_total.total,
                average_collection_period=periods.average_collection_period,
                average_payment_period=periods.average_payment_period,
            ),
        )
        return report, None

    async def _build_profit_loss(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        time_period: Union[TimePeriod, str] = TimePeriod.MONTH,
        **_: Any,
    ):
        period = TimePeriod(time_period).value
        results = await self._gather(
            ReportKind.PROFIT_LOSS,
            {
                "get_profit_loss_report": self.source.call_procedure(
                    "get_profit_loss_report", tenant_id, {"time_period": period}
                )
            },
        )
        payload = decoders.decode_profit_loss(results["get_profit_loss_report"])
        return ProfitLossDeriver().derive(payload, time_period=period), None

    async def _build_balance_sheet(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        as_of: Optional[date] = None,
        **_: Any,
    ):
        as_of = as_of or date.today()
        results = await self._gather(
            ReportKind.BALANCE_SHEET,
            {
                "get_balance_sheet": self.source.call_procedure(
                    "get_balance_sheet", tenant_id, {"as_of_date": as_of}
                )
            },
        )
        payload = decoders.decode_balance_sheet(results["get_balance_sheet"])
        return BalanceSheetSectioner().section(payload, as_of), None

    async def _build_cash_flow(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        time_period: Union[TimePeriod, str] = TimePeriod.MONTH,
        **_: Any,
    ):
        period = TimePeriod(time_period).value
        results = await self._gather(
            ReportKind.CASH_FLOW,
            {
                "get_cash_flow_statement": self.source.call_procedure(
                    "get_cash_flow_statement", tenant_id, {"time_period": period}
                )
            },
        )
        payload = decoders.decode_cash_flow(results["get_cash_flow_statement"])
        return CashFlowSectioner().section(payload, time_period=period), None

    async def _build_tax(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        report_period: Union[TaxPeriod, str] = TaxPeriod.CURRENT,
        **_: Any,
    ):
        period = TaxPeriod(report_period).value
        results = await self._gather(
            ReportKind.TAX,
            {
                "get_tax_reports": self.source.call_procedure(
                    "get_tax_reports", tenant_id, {"report_period": period}
                )
            },
        )
        payload = decoders.decode_tax_report(results["get_tax_reports"])
        return TaxSummaryDeriver().derive(payload, report_period=period), None

    async def _build_financial_overview(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        days: Optional[int] = None,
        **_: Any,
    ) -> tuple[FinancialOverviewReport, None]:
        days = int(days or self.settings.dashboard_trend_days)
        call = self.source.call_procedure

        results = await self._gather(
            ReportKind.FINANCIAL_OVERVIEW,
            {
                "get_distribution_metrics": call("get_distribution_metrics", tenant_id, {"days": days}),
                "get_financial_metrics": call("get_financial_metrics", tenant_id),
                "get_payment_stats": call("get_payment_stats", tenant_id),
                "get_bill_payment_stats": call("get_bill_payment_stats", tenant_id),
            },
        )

        stats = PaymentStatsDeriver()
        report = FinancialOverviewReport(
            distribution=decoders.decode_distribution_metrics(results["get_distribution_metrics"]),
            financial=decoders.decode_financial_metrics(results["get_financial_metrics"]),
            invoice_payments=stats.derive(decoders.decode_payment_stats(results["get_payment_stats"])),
            bill_payments=stats.derive(decoders.decode_payment_stats(results["get_bill_payment_stats"])),
        )
        return report, None

    async def _build_engagement(
        self,
        tenant_id: str,
        date_range: Optional[DateRange],
        page: Optional[Page],
        subject_id: Optional[str] = None,
        **_: Any,
    ):
        filters = {"subject_id": subject_id} if subject_id else None
        results = await self._gather(
            ReportKind.ENGAGEMENT,
            {
                "tracking_events": self.source.fetch(
                    "tracking_events", tenant_id, filters=filters, date_range=date_range
                )
            },
        )
        start = date_range.start if date_range else None
        end = date_range.end if date_range else None

        summary = EngagementAggregator().summarize(
            results["tracking_events"], subject_id=subject_id, start=start, end=end
        )
        summary.subjects = paginate(summary.subjects, page)
        return summary, date_range
