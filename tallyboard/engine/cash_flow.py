"""
Cash flow statement sectioning.

Operating, investing and financing activities each become a FinancialSection.
Net cash flow is the sum of the three section totals and ending cash is the
beginning balance plus that net movement.
"""

import structlog

from tallyboard.models.reports import CashFlowReport, FinancialSection, LineItem
from tallyboard.storage.decoders import ActivityPayload, CashFlowPayload

logger = structlog.get_logger()

ACTIVITY_LABELS = {
    "operating_activities": "Operating Activities",
    "investing_activities": "Investing Activities",
    "financing_activities": "Financing Activities",
}


def _section(activity: ActivityPayload, default_label: str) -> FinancialSection:
    return FinancialSection(
        category=activity.category or default_label,
        line_items=[LineItem(name=item.description, amount=item.amount) for item in activity.items],
    )


class CashFlowSectioner:
    """Builds a CashFlowReport from a decoded cash flow payload."""

    def section(self, payload: CashFlowPayload, time_period: str = "month") -> CashFlowReport:
        sections = {
            name: _section(getattr(payload, name), label) for name, label in ACTIVITY_LABELS.items()
        }
        net = sum(s.category_total for s in sections.values())

        logger.info("cash_flow_sectioned", time_period=time_period, net_cash_flow=net)

        return CashFlowReport(
            time_period=time_period,
            net_cash_flow=net,
            beginning_cash=payload.beginning_cash,
            ending_cash=payload.beginning_cash + net,
            **sections,
        )
