"""
Pydantic models for the reporting service.

- records: query shapes (SortSpec, Page, DateRange) and the Record alias
- reports: deriver outputs and the ReportModel envelope
- tracking: engagement events and their summaries
"""

from .enums import (
    AgingBucket,
    EngagementEventType,
    Granularity,
    ReportKind,
    SortDirection,
    TaxPeriod,
    TimePeriod,
)
from .records import DateRange, FilterSpec, Page, Record, SortSpec
from .reports import (
    AgingReport,
    AgingRow,
    AgingSummary,
    BalanceSheetReport,
    Bucket,
    CashFlowReport,
    DashboardReport,
    DistributionMetrics,
    FinancialMetrics,
    FinancialOverviewReport,
    FinancialSection,
    GstPeriod,
    LineItem,
    PaymentMethodStat,
    PaymentStats,
    ProfitLossReport,
    ReportModel,
    SalesReport,
    SalesSummary,
    TaxLiability,
    TaxReport,
    TopNEntry,
)
from .tracking import (
    DailyCount,
    EngagementSummary,
    EventCounts,
    RecipientEngagement,
    SubjectEngagement,
    TrackingEvent,
    TrackRequest,
)

__all__ = [
    "AgingBucket",
    "AgingReport",
    "AgingRow",
    "AgingSummary",
    "BalanceSheetReport",
    "Bucket",
    "CashFlowReport",
    "DailyCount",
    "DashboardReport",
    "DateRange",
    "DistributionMetrics",
    "EngagementEventType",
    "EngagementSummary",
    "EventCounts",
    "FilterSpec",
    "FinancialMetrics",
    "FinancialOverviewReport",
    "FinancialSection",
    "Granularity",
    "GstPeriod",
    "LineItem",
    "Page",
    "PaymentMethodStat",
    "PaymentStats",
    "ProfitLossReport",
    "RecipientEngagement",
    "Record",
    "ReportKind",
    "ReportModel",
    "SalesReport",
    "SalesSummary",
    "SortDirection",
    "SortSpec",
    "SubjectEngagement",
    "TaxLiability",
    "TaxPeriod",
    "TaxReport",
    "TimePeriod",
    "TopNEntry",
    "TrackingEvent",
    "TrackRequest",
]
