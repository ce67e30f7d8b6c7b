import asyncio
import base64
import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends

from signage.config import Settings
from signage.dependencies import get_event_cache, get_renderer, get_settings
from signage.models.schemas import DataRequest, ErrorResponse
from signage.services.event_cache import EventCache
from signage.services.event_selector import as_aware, select
from signage.services.renderer import EventImageRenderer

logger = logging.getLogger(__name__)

router = APIRouter()

NO_UPCOMING_EVENTS = "No upcoming events for this room"


def iso_utc(value: datetime) -> str:
    """UTC, millisecond precision, Z suffix: 2025-11-07T09:00:00.000Z"""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


@router.post(
    "/data",
    summary="Current / next event and display image for a room",
    responses={500: {"model": ErrorResponse}, 503: {"model": ErrorResponse}},
)
async def post_data(
    body: DataRequest,
    settings: Settings = Depends(get_settings),
    cache: EventCache = Depends(get_event_cache),
    renderer: EventImageRenderer = Depends(get_renderer),
):
    """
    Event running in the room right now, or otherwise the next one today,
    plus the rendered e-ink image as base64 PNG.
    """
    room = body.room
    now = settings.now()

    events = await cache.ensure_fresh()
    current, next_event = select(events, room, now, settings.timezone)

    image = await renderer.render(current, room, next_event)

    if settings.skip_parse:
        path = settings.debug_image_path
        path.parent.mkdir(parents=True, exist_ok=True)
        await asyncio.to_thread(path.write_bytes, image)
        logger.info(f"Test event image saved to {path}")

    next_event_message = None
    if current is None:
        if next_event is not None:
            start = as_aware(next_event.start_time, settings.timezone)
            next_event_message = f'Next event "{next_event.display_title}" starts at {iso_utc(start)}'
        else:
            next_event_message = NO_UPCOMING_EVENTS

    return {
        "room":             room,
        "currentTime":      iso_utc(now),
        "event":            current.to_json() if current else None,
        "nextEvent":        next_event.to_json() if next_event else None,
        "nextEventMessage": next_event_message,
        "imageBase64":      base64.b64encode(image).decode("ascii"),
    }
