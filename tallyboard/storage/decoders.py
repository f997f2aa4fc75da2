"""
Decoding boundary for record-source procedure results.

Procedure payloads are loosely shaped: totals may be null, lists may be null or
missing, single-row procedures come back as one-element lists. Each decoder
here validates and defaults a payload exactly once so the derivers only ever
see typed models.
"""

from datetime import date
from typing import Annotated, Any, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field

from tallyboard.engine.transforms import to_float
from tallyboard.engine.trend import parse_date
from tallyboard.models.reports import (
    Bucket,
    DistributionMetrics,
    FinancialMetrics,
    GstPeriod,
    PaymentMethodStat,
    TaxLiability,
    TopNEntry,
)


def _amount(value: Any) -> float:
    return to_float(value)


def _count(value: Any) -> int:
    return int(to_float(value))


def _text(value: Any) -> str:
    return "" if value is None else str(value)


def _text_or(default: str):
    def coerce(value: Any) -> str:
        return default if value is None or value == "" else str(value)

    return BeforeValidator(coerce)


def _optional_date(value: Any) -> Optional[date]:
    return parse_date(value)


Amount = Annotated[float, BeforeValidator(_amount)]
Count = Annotated[int, BeforeValidator(_count)]
Text = Annotated[str, BeforeValidator(_text)]
OptionalDate = Annotated[Optional[date], BeforeValidator(_optional_date)]
Category = Annotated[str, _text_or("Uncategorized")]


def _rows(payload: Any) -> list[dict]:
    """Normalize a procedure result to a list of mappings."""
    if isinstance(payload, dict):
        return [payload]
    if isinstance(payload, list):
        return [row for row in payload if isinstance(row, dict)]
    return []


def _first_row(payload: Any) -> dict:
    rows = _rows(payload)
    return rows[0] if rows else {}


def _list_of(model: type[BaseModel]):
    def decode(value: Any) -> list:
        if not isinstance(value, list):
            return []
        return [model.model_validate(item) for item in value if isinstance(item, dict)]

    return BeforeValidator(decode)


class _Payload(BaseModel):
    model_config = ConfigDict(extra="ignore")


# ---------------------------------------------------------------------------
# Statement payloads
# ---------------------------------------------------------------------------


class CategoryAmount(_Payload):
    category: Category = "Uncategorized"
    amount: Amount = 0.0


class ProfitLossPayload(_Payload):
    total_revenue: Amount = 0.0
    total_expenses: Amount = 0.0
    revenue_breakdown: Annotated[list[CategoryAmount], _list_of(CategoryAmount)] = Field(default_factory=list)
    expense_breakdown: Annotated[list[CategoryAmount], _list_of(CategoryAmount)] = Field(default_factory=list)


class NamedAmount(_Payload):
    name: Text = ""
    amount: Amount = 0.0


class SectionPayload(_Payload):
    category: Category = "Uncategorized"
    items: Annotated[list[NamedAmount], _list_of(NamedAmount)] = Field(default_factory=list)


class BalanceSheetPayload(_Payload):
    assets: Annotated[list[SectionPayload], _list_of(SectionPayload)] = Field(default_factory=list)
    liabilities: Annotated[list[SectionPayload], _list_of(SectionPayload)] = Field(default_factory=list)
    equity: Annotated[list[SectionPayload], _list_of(SectionPayload)] = Field(default_factory=list)


class ActivityItem(_Payload):
    description: Text = ""
    amount: Amount = 0.0


class ActivityPayload(_Payload):
    category: Text = ""
    items: Annotated[list[ActivityItem], _list_of(ActivityItem)] = Field(default_factory=list)


def _activity(value: Any) -> Any:
    return value if isinstance(value, dict) else {}


Activity = Annotated[ActivityPayload, BeforeValidator(_activity)]


class CashFlowPayload(_Payload):
    operating_activities: Activity = Field(default_factory=ActivityPayload)
    investing_activities: Activity = Field(default_factory=ActivityPayload)
    financing_activities: Activity = Field(default_factory=ActivityPayload)
    beginning_cash: Amount = 0.0


class GstRow(_Payload):
    period: Text = ""
    collected: Amount = 0.0
    paid: Amount = 0.0
    net_payable: Amount = 0.0


class TaxLiabilityRow(_Payload):
    type: Text = ""
    amount: Amount = 0.0
    due_date: OptionalDate = None
    status: Annotated[str, _text_or("pending")] = "pending"


class TaxPayload(_Payload):
    gst_summary: Annotated[list[GstRow], _list_of(GstRow)] = Field(default_factory=list)
    tax_liability: Annotated[list[TaxLiabilityRow], _list_of(TaxLiabilityRow)] = Field(default_factory=list)

    def gst_periods(self) -> list[GstPeriod]:
        return [GstPeriod(**row.model_dump()) for row in self.gst_summary]

    def liabilities(self) -> list[TaxLiability]:
        return [TaxLiability(**row.model_dump()) for row in self.tax_liability]


class PaymentPeriods(_Payload):
    average_collection_period: Amount = 0.0
    average_payment_period: Amount = 0.0


# ---------------------------------------------------------------------------
# Decoders
# ---------------------------------------------------------------------------


def decode_profit_loss(payload: Any) -> ProfitLossPayload:
    return ProfitLossPayload.model_validate(_first_row(payload))


def decode_balance_sheet(payload: Any) -> BalanceSheetPayload:
    return BalanceSheetPayload.model_validate(_first_row(payload))


def decode_cash_flow(payload: Any) -> CashFlowPayload:
    return CashFlowPayload.model_validate(_first_row(payload))


def decode_tax_report(payload: Any) -> TaxPayload:
    return TaxPayload.model_validate(_first_row(payload))


def decode_payment_periods(payload: Any) -> PaymentPeriods:
    return PaymentPeriods.model_validate(_first_row(payload))


class _DistributionRow(_Payload):
    total_revenue: Amount = 0.0
    total_orders: Count = 0
    average_order_value: Amount = 0.0
    pending_orders: Count = 0
    low_stock_items: Count = 0


def decode_distribution_metrics(payload: Any) -> DistributionMetrics:
    row = _DistributionRow.model_validate(_first_row(payload))
    return DistributionMetrics(**row.model_dump())


class _FinancialRow(_Payload):
    total_revenue: Amount = 0.0
    total_receivables: Amount = 0.0
    total_payables: Amount = 0.0
    total_sales_this_month: Amount = 0.0
    total_purchases_this_month: Amount = 0.0


def decode_financial_metrics(payload: Any) -> FinancialMetrics:
    row = _FinancialRow.model_validate(_first_row(payload))
    return FinancialMetrics(**row.model_dump())


class _TopCustomerRow(_Payload):
    name: Text = ""
    total_orders: Count = 0
    total_revenue: Amount = 0.0


def decode_top_customers(payload: Any) -> list[TopNEntry]:
    entries = []
    for raw in _rows(payload):
        row = _TopCustomerRow.model_validate(raw)
        entries.append(
            TopNEntry(key=row.name, metric_value=row.total_revenue, secondary={"total_orders": row.total_orders})
        )
    return entries


class _TopProductRow(_Payload):
    name: Text = ""
    category: Category = "Uncategorized"
    total_quantity: Count = 0
    total_revenue: Amount = 0.0


def decode_top_products(payload: Any) -> list[TopNEntry]:
    entries = []
    for raw in _rows(payload):
        row = _TopProductRow.model_validate(raw)
        entries.append(
            TopNEntry(
                key=row.name,
                metric_value=row.total_revenue,
                secondary={"category": row.category, "total_quantity": row.total_quantity},
            )
        )
    return entries


class _TrendRow(_Payload):
    day: OptionalDate = Field(default=None, alias="date")
    revenue: Amount = 0.0
    orders: Count = 0


def decode_sales_trend(payload: Any) -> list[Bucket]:
    buckets = []
    for raw in _rows(payload):
        row = _TrendRow.model_validate(raw)
        if row.day is None:
            continue
        buckets.append(Bucket(label=row.day.isoformat(), sum=row.revenue, count=row.orders))
    return buckets


class _PaymentStatRow(_Payload):
    payment_method: Annotated[str, _text_or("unknown")] = "unknown"
    payment_count: Count = 0
    total_amount: Amount = 0.0


def decode_payment_stats(payload: Any) -> list[PaymentMethodStat]:
    return [PaymentMethodStat(**_PaymentStatRow.model_validate(raw).model_dump()) for raw in _rows(payload)]
