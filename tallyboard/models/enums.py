"""
Enumeration types for the reporting service.

All enums inherit from str to ensure JSON serialization compatibility.
"""

from enum import Enum


class SortDirection(str, Enum):
    """Direction of a single-field sort."""

    ASC = "asc"
    DESC = "desc"


class Granularity(str, Enum):
    """Calendar granularity for time-bucketed trends."""

    DAY = "day"
    MONTH = "month"


class AgingBucket(str, Enum):
    """
    Aging ranges for overdue obligations.

    Upper bounds are closed: 30 days overdue belongs to DAYS_1_30,
    60 to DAYS_31_60, 90 to DAYS_61_90.
    """

    CURRENT = "current"
    DAYS_1_30 = "days_1_30"
    DAYS_31_60 = "days_31_60"
    DAYS_61_90 = "days_61_90"
    DAYS_OVER_90 = "days_over_90"


class ReportKind(str, Enum):
    """Report families the assembler knows how to build."""

    DASHBOARD = "dashboard"
    SALES = "sales"
    AGING = "aging"
    PROFIT_LOSS = "profit_loss"
    BALANCE_SHEET = "balance_sheet"
    CASH_FLOW = "cash_flow"
    TAX = "tax"
    FINANCIAL_OVERVIEW = "financial_overview"
    ENGAGEMENT = "engagement"


class TimePeriod(str, Enum):
    """Statement period relative to the current date."""

    MONTH = "month"
    QUARTER = "quarter"
    YEAR = "year"


class TaxPeriod(str, Enum):
    """Tax report period relative to the current month."""

    CURRENT = "current"
    PREVIOUS = "previous"
    YEAR = "year"


class EngagementEventType(str, Enum):
    """Engagement events recorded against a quotation or document."""

    SENT = "sent"
    OPENED = "opened"
    CLICKED = "clicked"
    DOWNLOADED = "downloaded"
