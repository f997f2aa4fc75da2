"""
Profit and loss derivation.

Revenue and expense breakdowns arrive pre-categorized from the record source.
The only computed figures are the net profit and the margin; absent totals
default to 0.
"""

import structlog

from tallyboard.models.reports import LineItem, ProfitLossReport
from tallyboard.storage.decoders import ProfitLossPayload

logger = structlog.get_logger()


class ProfitLossDeriver:
    """Computes net profit from a decoded profit/loss payload."""

    def derive(self, payload: ProfitLossPayload, time_period: str = "month") -> ProfitLossReport:
        revenue = payload.total_revenue
        expenses = payload.total_expenses
        net_profit = revenue - expenses
        margin = net_profit / revenue * 100 if revenue else 0.0

        logger.info(
            "profit_loss_derived",
            time_period=time_period,
            total_revenue=revenue,
            total_expenses=expenses,
            net_profit=net_profit,
        )

        return ProfitLossReport(
            time_period=time_period,
            total_revenue=revenue,
            total_expenses=expenses,
            net_profit=net_profit,
            profit_margin=margin,
            revenue_breakdown=[LineItem(name=i.category, amount=i.amount) for i in payload.revenue_breakdown],
            expense_breakdown=[LineItem(name=i.category, amount=i.amount) for i in payload.expense_breakdown],
        )
