"""
Engagement summary router.

Reads tracking events for the calling tenant and summarizes them by event
type, subject, recipient and day.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends

from tallyboard.auth.dependencies import get_current_tenant_id
from tallyboard.engine.assembler import ReportAssembler
from tallyboard.models.enums import ReportKind
from tallyboard.routers.reports import parse_date_range
from tallyboard.storage import get_source

router = APIRouter()


@router.get("/summary")
async def engagement_summary(
    tenant_id: str = Depends(get_current_tenant_id),
    subject_id: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    """Engagement counts, optionally for one subject and date window."""
    report = await ReportAssembler(get_source()).build_report(
        ReportKind.ENGAGEMENT,
        tenant_id,
        date_range=parse_date_range(start_date, end_date),
        subject_id=subject_id,
    )
    return {"success": True, "data": report.data.model_dump(mode="json")}
