"""API routers for all endpoints."""

from tallyboard.routers import engagement, reports, system, tracking

__all__ = [
    "engagement",
    "reports",
    "system",
    "tracking",
]
