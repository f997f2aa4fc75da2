"""Tax report totals: liability outstanding and amount already paid."""

import structlog

from tallyboard.engine.transforms import aggregate_sum, filter_records
from tallyboard.models.reports import TaxReport
from tallyboard.storage.decoders import TaxPayload

logger = structlog.get_logger()

PAID_STATUS = "paid"


class TaxSummaryDeriver:
    def derive(self, payload: TaxPayload, report_period: str = "current") -> TaxReport:
        liabilities = payload.liabilities()
        rows = [liability.model_dump() for liability in liabilities]

        total_liability = aggregate_sum(rows, "amount")
        total_paid = aggregate_sum(filter_records(rows, {"status": PAID_STATUS}), "amount")

        logger.info(
            "tax_summary_derived",
            report_period=report_period,
            total_tax_liability=total_liability,
            total_tax_paid=total_paid,
        )

        return TaxReport(
            report_period=report_period,
            gst_summary=payload.gst_periods(),
            tax_liability=liabilities,
            total_tax_liability=total_liability,
            total_tax_paid=total_paid,
        )
