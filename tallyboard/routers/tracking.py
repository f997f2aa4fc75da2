"""
Engagement event ingestion router.

GET /track is the pixel embedded in outgoing documents: it records the event
with an unknown recipient and answers with a 1x1 transparent GIF that must
never be cached. POST /track is the explicit call and answers with a JSON
acknowledgement. Both reject a missing subject or event type with 400 and
report a store failure as 500. Other methods get 405 from the router.
"""

import base64
from typing import Any, Optional

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, Response
from pydantic import ValidationError

from tallyboard.config import get_settings
from tallyboard.errors import SourceUnavailableError
from tallyboard.models.enums import EngagementEventType
from tallyboard.models.tracking import UNKNOWN_RECIPIENT, TrackingEvent, TrackRequest
from tallyboard.storage import get_source
from tallyboard.utils.logging import get_logger

logger = get_logger(__name__)
router = APIRouter()

TRANSPARENT_GIF = base64.b64decode("R0lGODlhAQABAIAAAAAAAP///yH5BAEAAAAALAAAAAABAAEAAAIBRAA7")

NO_CACHE_HEADERS = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}

EVENT_TYPES = {t.value for t in EngagementEventType}


def client_ip(request: Request) -> Optional[str]:
    """First X-Forwarded-For hop, else the socket peer."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        first = forwarded.split(",")[0].strip()
        if first:
            return first
    return request.client.host if request.client else None


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"success": False, "error": message})


def _validation_message(error: ValidationError) -> str:
    missing = [str(e["loc"][0]) for e in error.errors() if e["type"] == "missing" and e["loc"]]
    if missing:
        return f"Missing required parameters: {', '.join(missing)}"
    first = error.errors()[0]
    field = str(first["loc"][0]) if first["loc"] else "body"
    if field == "event_type":
        return f"Invalid event_type; expected one of: {', '.join(sorted(EVENT_TYPES))}"
    return f"Invalid {field}: {first['msg']}"


async def _record(event: TrackingEvent) -> Optional[JSONResponse]:
    """Write the event; a JSON 500 response on store failure, else None."""
    try:
        await get_source().write_tracking_event(event)
    except SourceUnavailableError as e:
        logger.error(
            "tracking_event_failed",
            subject_id=event.subject_id,
            event_type=event.event_type.value,
            error=e.message,
        )
        return _error(500, "Internal server error")
    return None


def _build_event(request: Request, payload: dict[str, Any], recipient: Optional[str] = None) -> TrackingEvent:
    body = TrackRequest.model_validate(payload)
    return TrackingEvent(
        tenant_id=body.tenant_id or get_settings().default_tenant_id,
        subject_id=body.subject_id,
        event_type=body.event_type,
        recipient=recipient or body.recipient,
        ip_address=client_ip(request),
        user_agent=request.headers.get("user-agent"),
    )


@router.get("/track")
async def track_pixel(request: Request):
    """
    Pixel-style event recording.

    Query params: subject_id (or quotation_id), event_type, optional tenant_id.
    """
    try:
        event = _build_event(request, dict(request.query_params), recipient=UNKNOWN_RECIPIENT)
    except ValidationError as e:
        logger.warning("tracking_rejected", method="GET", reason=_validation_message(e))
        return _error(400, _validation_message(e))

    failure = await _record(event)
    if failure is not None:
        return failure

    logger.info("tracking_pixel_served", subject_id=event.subject_id, event_type=event.event_type.value)
    return Response(content=TRANSPARENT_GIF, media_type="image/gif", headers=NO_CACHE_HEADERS)


@router.post("/track")
async def track_event(request: Request):
    """
    Explicit event recording.

    JSON body: subject_id (or quotation_id), event_type, optional recipient
    (or recipient_email) and tenant_id.
    """
    try:
        payload = await request.json()
    except ValueError:
        return _error(400, "Request body must be a JSON object")
    if not isinstance(payload, dict):
        return _error(400, "Request body must be a JSON object")

    try:
        event = _build_event(request, payload)
    except ValidationError as e:
        logger.warning("tracking_rejected", method="POST", reason=_validation_message(e))
        return _error(400, _validation_message(e))

    failure = await _record(event)
    if failure is not None:
        return failure

    return {"success": True, "message": "Event recorded successfully"}
