"""
Configuration
=============
Environment-driven settings. Every value has a sensible default so the
server starts without a .env file:

  DATA_DIR                — directory holding structured_events.json
  ICAL_URL                — calendar feed imported by the ingestion job
  GEMINI_KEY / GEMINI_MODEL — language model used to normalize the feed
  SKIP_PARSE              — "true" disables ingestion and pins the clock
  FIXED_NOW               — ISO instant used instead of the wall clock
  TIMEZONE                — zone used for "today" and for rendered times
  INGEST_CRON             — crontab for the ingestion job (weekly by default)
  RENDER_TIMEOUT_SECONDS  — per-render browser timeout
  LOG_LEVEL
"""

import os
from dataclasses import dataclass
from datetime import datetime, timezone, tzinfo
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo

STORE_FILENAME = "structured_events.json"
DEBUG_IMAGE_FILENAME = "test_event_image.png"

# Instant used when SKIP_PARSE is on and FIXED_NOW is not given
DEFAULT_FIXED_NOW = "2025-11-07T09:00:00Z"


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


def parse_instant(value: str, tz: tzinfo = timezone.utc) -> datetime:
    """Parse an ISO 8601 instant; a trailing Z means UTC, naive values are in `tz`."""
    parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=tz)
    return parsed


@dataclass(frozen=True)
class Settings:
    data_dir: Path
    ical_url: Optional[str]
    gemini_key: Optional[str]
    gemini_model: str
    skip_parse: bool
    fixed_now: Optional[datetime]
    timezone: ZoneInfo
    ingest_cron: str
    render_timeout_seconds: float
    log_level: str

    @property
    def store_path(self) -> Path:
        return self.data_dir / STORE_FILENAME

    @property
    def debug_image_path(self) -> Path:
        return self.data_dir / DEBUG_IMAGE_FILENAME

    def now(self) -> datetime:
        """The instant treated as "now" for event selection."""
        if self.fixed_now is not None:
            return self.fixed_now
        return datetime.now(timezone.utc)

    @classmethod
    def from_env(cls) -> "Settings":
        skip_parse = _env_bool("SKIP_PARSE")
        fixed_raw = os.getenv("FIXED_NOW") or (DEFAULT_FIXED_NOW if skip_parse else None)
        tz = ZoneInfo(os.getenv("TIMEZONE", "Europe/Madrid"))
        return cls(
            data_dir=Path(os.getenv("DATA_DIR", "json")),
            ical_url=os.getenv("ICAL_URL"),
            gemini_key=os.getenv("GEMINI_KEY"),
            gemini_model=os.getenv("GEMINI_MODEL", "gemini-2.5-flash"),
            skip_parse=skip_parse,
            fixed_now=parse_instant(fixed_raw, tz) if fixed_raw else None,
            timezone=tz,
            ingest_cron=os.getenv("INGEST_CRON", "0 0 * * 0"),
            render_timeout_seconds=float(os.getenv("RENDER_TIMEOUT_SECONDS", "30")),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
        )
