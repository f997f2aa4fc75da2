"""
Report router.

One endpoint per report kind, all served by the ReportAssembler. A failed
fetch surfaces as ReportSourceError and is turned into a 503 by the
application's exception handler.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import ValidationError

from tallyboard.auth.dependencies import get_current_tenant_id
from tallyboard.engine.assembler import ReportAssembler
from tallyboard.models.enums import Granularity, ReportKind, TaxPeriod, TimePeriod
from tallyboard.models.records import DateRange, Page
from tallyboard.storage import get_source
from tallyboard.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()


def parse_date_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[DateRange]:
    """Build a DateRange from query params; 400 when start is after end."""
    if start_date is None and end_date is None:
        return None
    try:
        return DateRange(start=start_date, end=end_date)
    except ValidationError:
        raise HTTPException(status_code=400, detail="start_date must not be after end_date")


@router.get("/")
async def list_report_kinds():
    """List the report kinds this service can build."""
    return {"success": True, "data": [kind.value for kind in ReportKind]}


@router.get("/{kind}")
async def get_report(
    kind: ReportKind,
    tenant_id: str = Depends(get_current_tenant_id),
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    offset: int = Query(default=0, ge=0),
    limit: Optional[int] = Query(default=None, ge=0, le=1000),
    top_n: Optional[int] = Query(default=None, ge=0, le=100),
    granularity: Granularity = Granularity.MONTH,
    as_of: Optional[date] = None,
    time_period: TimePeriod = TimePeriod.MONTH,
    report_period: TaxPeriod = TaxPeriod.CURRENT,
    days: Optional[int] = Query(default=None, ge=1, le=3650),
    subject_id: Optional[str] = None,
):
    """
    Build a report.

    Args:
        kind: Report kind (dashboard, sales, aging, profit_loss, balance_sheet,
            cash_flow, tax, financial_overview, engagement)
        start_date: First day of the report window
        end_date: Last day of the report window
        offset: Rows skipped in list-valued report parts
        limit: Maximum rows in list-valued report parts
        top_n: Ranking length (dashboard, sales)
        granularity: Trend granularity (sales)
        as_of: Reference date (aging, balance_sheet)
        time_period: Statement period (profit_loss, cash_flow)
        report_period: Tax period (tax)
        days: Look-back window in days (dashboard, sales, financial_overview)
        subject_id: Restrict to one subject (engagement)

    Returns:
        Envelope with the ReportModel
    """
    date_range = parse_date_range(start_date, end_date)
    assembler = ReportAssembler(get_source())

    report = await assembler.build_report(
        kind,
        tenant_id,
        date_range=date_range,
        page=Page(offset=offset, limit=limit),
        top_n=top_n,
        granularity=granularity,
        as_of=as_of,
        time_period=time_period,
        report_period=report_period,
        days=days,
        subject_id=subject_id,
    )

    return {"success": True, "data": report.model_dump(mode="json")}
