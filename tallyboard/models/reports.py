"""
Report models produced by the metric derivers.

Every structure here is a pure function of the snapshot it was derived from.
Totals that must agree with their parts (aging rows, financial sections) are
computed fields, so they cannot be supplied inconsistently.
"""

from datetime import date, datetime
from typing import Any, Optional, Union

from pydantic import BaseModel, Field, computed_field

from .enums import ReportKind
from .records import DateRange
from .tracking import EngagementSummary


class Bucket(BaseModel):
    """A named accumulation window holding a running sum and count."""

    label: str = Field(description="Calendar label or aging range name")
    sum: float = Field(default=0.0, description="Sum of the measured field")
    count: int = Field(default=0, ge=0, description="Number of records added")


class TopNEntry(BaseModel):
    """One ranked candidate."""

    key: str = Field(description="Candidate identity (customer name, product name, ...)")
    metric_value: float = Field(description="Value the ranking is ordered by")
    secondary: dict[str, Any] = Field(
        default_factory=dict, description="Additional values shown alongside the metric"
    )


class AgingRow(BaseModel):
    """
    Outstanding amounts for one subject split into aging buckets.

    ``total`` is always the sum of the five bucket fields.
    """

    subject_id: Optional[str] = Field(default=None, description="Customer or supplier id; None on total rows")
    subject_name: str = Field(description="Customer or supplier name")
    current: float = 0.0
    days_1_30: float = 0.0
    days_31_60: float = 0.0
    days_61_90: float = 0.0
    days_over_90: float = 0.0

    @computed_field  # type: ignore[prop-decorator]
    @property
    def total(self) -> float:
        return self.current + self.days_1_30 + self.days_31_60 + self.days_61_90 + self.days_over_90


class AgingSummary(BaseModel):
    """Headline aging figures. Collection/payment periods are passed through."""

    total_receivables: float = 0.0
    total_payables: float = 0.0
    average_collection_period: float = 0.0
    average_payment_period: float = 0.0


class AgingReport(BaseModel):
    """Receivables and payables aging as of a reference date."""

    as_of: date
    receivables: list[AgingRow] = Field(default_factory=list)
    payables: list[AgingRow] = Field(default_factory=list)
    receivables_total: AgingRow
    payables_total: AgingRow
    summary: AgingSummary


class LineItem(BaseModel):
    """A named amount inside a financial statement section."""

    name: str
    amount: float = 0.0


class FinancialSection(BaseModel):
    """A statement category with its line items."""

    category: str
    line_items: list[LineItem] = Field(default_factory=list)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def category_total(self) -> float:
        return sum(item.amount for item in self.line_items)


class ProfitLossReport(BaseModel):
    """Revenue, expenses and the resulting net profit for a period."""

    time_period: str
    total_revenue: float = 0.0
    total_expenses: float = 0.0
    net_profit: float = 0.0
    profit_margin: float = 0.0
    revenue_breakdown: list[LineItem] = Field(default_factory=list)
    expense_breakdown: list[LineItem] = Field(default_factory=list)


class BalanceSheetReport(BaseModel):
    """
    Assets, liabilities and equity as of a date.

    ``is_balanced`` is diagnostic only; an imbalance is reported, never corrected.
    """

    as_of: date
    assets: list[FinancialSection] = Field(default_factory=list)
    liabilities: list[FinancialSection] = Field(default_factory=list)
    equity: list[FinancialSection] = Field(default_factory=list)
    total_assets: float = 0.0
    total_liabilities: float = 0.0
    total_equity: float = 0.0
    is_balanced: bool = True
    imbalance: float = 0.0


class CashFlowReport(BaseModel):
    """Cash movements grouped into operating, investing and financing activities."""

    time_period: str
    operating_activities: FinancialSection
    investing_activities: FinancialSection
    financing_activities: FinancialSection
    net_cash_flow: float = 0.0
    beginning_cash: float = 0.0
    ending_cash: float = 0.0


class GstPeriod(BaseModel):
    """GST collected and paid within one month."""

    period: str
    collected: float = 0.0
    paid: float = 0.0
    net_payable: float = 0.0


class TaxLiability(BaseModel):
    """A single tax obligation."""

    type: str
    amount: float = 0.0
    due_date: Optional[date] = None
    status: str = "pending"


class TaxReport(BaseModel):
    report_period: str
    gst_summary: list[GstPeriod] = Field(default_factory=list)
    tax_liability: list[TaxLiability] = Field(default_factory=list)
    total_tax_liability: float = 0.0
    total_tax_paid: float = 0.0


class PaymentMethodStat(BaseModel):
    payment_method: str
    payment_count: int = 0
    total_amount: float = 0.0


class PaymentStats(BaseModel):
    """Payment counts and amounts per payment method."""

    methods: list[PaymentMethodStat] = Field(default_factory=list)
    total_count: int = 0
    total_amount: float = 0.0


class SalesSummary(BaseModel):
    """Revenue, order count and average order value for an order snapshot."""

    total_revenue: float = 0.0
    total_orders: int = 0
    average_order_value: float = 0.0


class DistributionMetrics(SalesSummary):
    """Pre-aggregated dashboard headline metrics."""

    pending_orders: int = 0
    low_stock_items: int = 0


class FinancialMetrics(BaseModel):
    """Pre-aggregated receivable/payable headline metrics."""

    total_revenue: float = 0.0
    total_receivables: float = 0.0
    total_payables: float = 0.0
    total_sales_this_month: float = 0.0
    total_purchases_this_month: float = 0.0


class DashboardReport(BaseModel):
    summary: DistributionMetrics
    top_customers: list[TopNEntry] = Field(default_factory=list)
    top_products: list[TopNEntry] = Field(default_factory=list)
    sales_trend: list[Bucket] = Field(default_factory=list)


class SalesReport(BaseModel):
    summary: SalesSummary
    active_customers: int = 0
    top_customers: list[TopNEntry] = Field(default_factory=list)
    top_products: list[TopNEntry] = Field(default_factory=list)
    monthly_sales: list[Bucket] = Field(default_factory=list)


class FinancialOverviewReport(BaseModel):
    distribution: DistributionMetrics
    financial: FinancialMetrics
    invoice_payments: PaymentStats
    bill_payments: PaymentStats


ReportData = Union[
    DashboardReport,
    SalesReport,
    AgingReport,
    ProfitLossReport,
    BalanceSheetReport,
    CashFlowReport,
    TaxReport,
    FinancialOverviewReport,
    EngagementSummary,
]


class ReportModel(BaseModel):
    """Envelope returned by the ReportAssembler."""

    kind: ReportKind
    tenant_id: str
    generated_at: datetime = Field(default_factory=datetime.utcnow)
    date_range: Optional[DateRange] = None
    data: ReportData
