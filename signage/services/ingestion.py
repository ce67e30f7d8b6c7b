"""
Calendar Ingestion
==================
  1. download the iCal feed from ICAL_URL
  2. flatten every VEVENT into a plain dict
  3. ask Gemini to normalize them into the structured event shape
     (title, startTime, endTime, location[], subject code, organizer)
  4. write <DATA_DIR>/structured_events.json atomically
  5. invalidate the event cache so the next request reloads

Any failure raises IngestionError and leaves the store file untouched, so
requests keep being served from the previous snapshot.
"""

import json
import logging
import re
from datetime import date, datetime
from pathlib import Path
from typing import Any, List, NamedTuple, Optional

import httpx
from google import genai
from icalendar import Calendar

from signage.config import Settings
from signage.exceptions import IngestionError
from signage.services.event_cache import EventCache

logger = logging.getLogger(__name__)

FETCH_TIMEOUT_SECONDS = 30

PROMPT_TEMPLATE = """You are a calendar event parser. Parse the following iCal events and return a clean, structured JSON array.
For each event, extract and organize:
- title (from summary)
- startTime (ISO 8601 format)
- endTime (ISO 8601 format)
- location (There may be multiple, separate with an array of locations)
- subject code (Cod. XXXXXX from the summary)
- organizer (name and email if available)

Return ONLY valid JSON, no markdown formatting or explanation.

Events data:
{events}"""

_FENCE = re.compile(r"```(?:json)?\n?")


class IngestionResult(NamedTuple):
    original_event_count: int
    structured_event_count: int


# ──────────────────────────────────────────────
# iCal
# ──────────────────────────────────────────────

async def fetch_calendar(url: str) -> bytes:
    async with httpx.AsyncClient(timeout=FETCH_TIMEOUT_SECONDS, follow_redirects=True) as client:
        resp = await client.get(url)
        resp.raise_for_status()
        return resp.content


def _plain(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, list):
        return [_plain(v) for v in value]
    if hasattr(value, "dt"):
        return _plain(value.dt)
    return str(value)


def _address(value: Any) -> Any:
    """vCalAddress → {"name", "email"}; the name lives in the CN parameter."""
    if value is None:
        return None
    if isinstance(value, list):
        return [_address(v) for v in value]
    params = getattr(value, "params", {}) or {}
    email = str(value)
    if email.lower().startswith("mailto:"):
        email = email[len("mailto:"):]
    return {"name": str(params["CN"]) if "CN" in params else None, "email": email or None}


def extract_events(ics_data: bytes) -> List[dict]:
    try:
        calendar = Calendar.from_ical(ics_data)
    except ValueError as e:
        raise IngestionError(f"Calendar feed is not valid iCal: {e}") from e

    events = []
    for component in calendar.walk("VEVENT"):
        events.append({
            "type":        component.name,
            "summary":     _plain(component.get("SUMMARY")),
            "description": _plain(component.get("DESCRIPTION")),
            "start":       _plain(component.get("DTSTART")),
            "end":         _plain(component.get("DTEND")),
            "location":    _plain(component.get("LOCATION")),
            "organizer":   _address(component.get("ORGANIZER")),
            "attendees":   _address(component.get("ATTENDEE")),
            "status":      _plain(component.get("STATUS")),
            "uid":         _plain(component.get("UID")),
        })
    return events


# ──────────────────────────────────────────────
# Language model
# ──────────────────────────────────────────────

def build_prompt(raw_events: List[dict]) -> str:
    return PROMPT_TEMPLATE.format(events=json.dumps(raw_events, indent=2, ensure_ascii=False))


def parse_model_output(text: Optional[str]) -> list:
    """Strip Markdown code fences and parse; the result must be a JSON array."""
    cleaned = _FENCE.sub("", text or "").strip()
    try:
        data = json.loads(cleaned)
    except json.JSONDecodeError as e:
        raise IngestionError(f"Model output is not valid JSON: {e}") from e
    if not isinstance(data, list):
        raise IngestionError(f"Model output must be a JSON array, got {type(data).__name__}")
    return data


async def normalize_events(raw_events: List[dict], client: genai.Client, model: str) -> list:
    try:
        response = await client.aio.models.generate_content(
            model=model,
            contents=build_prompt(raw_events),
            config={"response_mime_type": "application/json"},
        )
    except Exception as e:
        raise IngestionError(f"Model call failed: {e}") from e
    return parse_model_output(response.text)


# ──────────────────────────────────────────────
# Store
# ──────────────────────────────────────────────

def write_store(path: Path, data: list):
    """Write JSON atomically using a temp file + rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(f"{path.name}.tmp")
    with open(tmp, "w", encoding="utf-8") as f:
        json.dump(data, f, default=str, ensure_ascii=False, indent=2)
    tmp.replace(path)


async def ingest(settings: Settings, cache: EventCache, client: Optional[genai.Client] = None) -> IngestionResult:
    if not settings.ical_url:
        raise IngestionError("ICAL_URL is not configured")

    try:
        ics_data = await fetch_calendar(settings.ical_url)
    except httpx.HTTPError as e:
        raise IngestionError(f"Calendar download failed: {e}") from e

    raw_events = extract_events(ics_data)
    logger.info(f"Calendar feed fetched — {len(raw_events)} events.")

    if client is None:
        if not settings.gemini_key:
            raise IngestionError("GEMINI_KEY is not configured")
        client = genai.Client(api_key=settings.gemini_key)

    structured = await normalize_events(raw_events, client, settings.gemini_model)

    write_store(settings.store_path, structured)
    logger.info(f"Structured events saved to {settings.store_path} ({len(structured)} events).")
    cache.invalidate()

    return IngestionResult(original_event_count=len(raw_events), structured_event_count=len(structured))
