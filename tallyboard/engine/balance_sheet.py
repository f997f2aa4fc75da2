"""
Balance sheet sectioning.

Reshapes independently supplied assets, liabilities and equity sections,
recomputing each category total from its line items. The accounting identity
assets = liabilities + equity is checked for diagnostics only: a mismatch is
logged and reported on the result, never raised and never corrected.
"""

from datetime import date

import structlog

from tallyboard.models.reports import BalanceSheetReport, FinancialSection, LineItem
from tallyboard.storage.decoders import BalanceSheetPayload, SectionPayload

logger = structlog.get_logger()

BALANCE_TOLERANCE = 0.005


def to_sections(sections: list[SectionPayload]) -> list[FinancialSection]:
    return [
        FinancialSection(
            category=section.category,
            line_items=[LineItem(name=item.name, amount=item.amount) for item in section.items],
        )
        for section in sections
    ]


def section_total(sections: list[FinancialSection]) -> float:
    return sum(section.category_total for section in sections)


class BalanceSheetSectioner:
    """Builds a BalanceSheetReport and checks the accounting identity."""

    def __init__(self, tolerance: float = BALANCE_TOLERANCE):
        self.tolerance = tolerance

    def section(self, payload: BalanceSheetPayload, as_of: date) -> BalanceSheetReport:
        assets = to_sections(payload.assets)
        liabilities = to_sections(payload.liabilities)
        equity = to_sections(payload.equity)

        total_assets = section_total(assets)
        total_liabilities = section_total(liabilities)
        total_equity = section_total(equity)
        imbalance = total_assets - (total_liabilities + total_equity)
        is_balanced = abs(imbalance) <= self.tolerance

        if not is_balanced:
            logger.warning(
                "balance_sheet_imbalance",
                as_of=as_of.isoformat(),
                total_assets=total_assets,
                total_liabilities=total_liabilities,
                total_equity=total_equity,
                imbalance=imbalance,
            )

        return BalanceSheetReport(
            as_of=as_of,
            assets=assets,
            liabilities=liabilities,
            equity=equity,
            total_assets=total_assets,
            total_liabilities=total_liabilities,
            total_equity=total_equity,
            is_balanced=is_balanced,
            imbalance=imbalance,
        )
