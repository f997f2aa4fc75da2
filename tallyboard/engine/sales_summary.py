"""
Sales summary derivation.

Computes revenue, order count and average order value from an invoice
snapshot, or reshapes pre-aggregated dashboard figures supplied by the record
source into a DashboardReport without recomputing them.
"""

from typing import Iterable

import structlog

from tallyboard.engine.transforms import aggregate_sum
from tallyboard.models.records import Record
from tallyboard.models.reports import (
    Bucket,
    DashboardReport,
    DistributionMetrics,
    SalesSummary,
    TopNEntry,
)

logger = structlog.get_logger()


class SalesSummaryDeriver:
    """
    Derives headline sales figures.

    Attributes:
        amount_field: Record field holding the order amount
    """

    def __init__(self, amount_field: str = "total_amount"):
        self.amount_field = amount_field

    def derive(self, orders: Iterable[Record]) -> SalesSummary:
        """
        Summarize an order/invoice snapshot.

        Args:
            orders: Order or invoice records

        Returns:
            SalesSummary with average_order_value = 0 when there are no orders
        """
        snapshot = list(orders)
        revenue = aggregate_sum(snapshot, self.amount_field)
        count = len(snapshot)
        average = revenue / count if count > 0 else 0.0

        logger.debug("sales_summary_derived", orders=count, revenue=revenue)

        return SalesSummary(
            total_revenue=revenue,
            total_orders=count,
            average_order_value=average,
        )

    def merge(
        self,
        metrics: DistributionMetrics,
        top_customers: list[TopNEntry],
        top_products: list[TopNEntry],
        sales_trend: list[Bucket],
    ) -> DashboardReport:
        """Combine pre-aggregated dashboard results into one report."""
        return DashboardReport(
            summary=metrics,
            top_customers=list(top_customers),
            top_products=list(top_products),
            sales_trend=list(sales_trend),
        )
