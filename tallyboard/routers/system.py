"""
System health router.
"""

import time

from fastapi import APIRouter

from tallyboard import __version__
from tallyboard.errors import SourceUnavailableError
from tallyboard.storage import get_source
from tallyboard.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

# Track startup time for uptime calculation
_startup_time = time.time()

# Probe tenant; the query only checks that the source answers.
_PROBE_TENANT = "__health__"


@router.get("/health")
async def health():
    """
    Service health.
    Runs a trivial fetch to check that the record source answers.
    """
    source_status = "healthy"
    try:
        await get_source().fetch("customers", _PROBE_TENANT)
    except SourceUnavailableError as e:
        logger.warning("health_source_unavailable", error=e.message)
        source_status = f"unhealthy: {e.message}"

    return {
        "success": True,
        "data": {
            "status": "healthy" if source_status == "healthy" else "degraded",
            "version": __version__,
            "uptime_seconds": round(time.time() - _startup_time, 1),
            "record_source": source_status,
        },
    }
