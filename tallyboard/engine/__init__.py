"""
Reporting engine.

- transforms: generic sort/filter/group/sum/paginate primitives
- trend, ranking, aging, sales_summary, profit_loss, balance_sheet,
  cash_flow, tax_summary, payment_stats, engagement: metric derivers
- assembler: ReportAssembler, the fan-out/fan-in orchestration over a
  RecordSource

Derivers and the assembler are imported from their modules; only the leaf
primitives are re-exported here because the storage decoders depend on them.
"""

from tallyboard.engine.transforms import (
    aggregate_sum,
    filter_records,
    get_field,
    group_by,
    paginate,
    sort_records,
)

__all__ = [
    "aggregate_sum",
    "filter_records",
    "get_field",
    "group_by",
    "paginate",
    "sort_records",
]
