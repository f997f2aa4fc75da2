"""Payment-method statistics for invoice and bill payments."""

from tallyboard.engine.transforms import aggregate_sum
from tallyboard.models.reports import PaymentMethodStat, PaymentStats


class PaymentStatsDeriver:
    """Totals per-method payment statistics supplied by the record source."""

    def derive(self, methods: list[PaymentMethodStat]) -> PaymentStats:
        rows = [m.model_dump() for m in methods]
        return PaymentStats(
            methods=list(methods),
            total_count=int(aggregate_sum(rows, "payment_count")),
            total_amount=aggregate_sum(rows, "total_amount"),
        )
