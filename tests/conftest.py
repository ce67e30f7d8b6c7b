"""Shared fixtures: settings pointing at a temp store file and a fake renderer."""
import json
from datetime import datetime
from zoneinfo import ZoneInfo

import pytest

from signage.config import Settings, STORE_FILENAME

TZ = ZoneInfo("Europe/Madrid")
ROOM = "2.05"


def make_settings(data_dir, fixed_now=None, skip_parse=False):
    return Settings(
        data_dir=data_dir,
        ical_url="https://calendar.example.com/feed.ics",
        gemini_key="test-key",
        gemini_model="gemini-2.5-flash",
        skip_parse=skip_parse,
        fixed_now=fixed_now,
        timezone=TZ,
        ingest_cron="0 0 * * 0",
        render_timeout_seconds=5,
        log_level="INFO",
    )


def local(hour, minute=0, day=7):
    """An aware instant on November `day` 2025, Madrid time."""
    return datetime(2025, 11, day, hour, minute, tzinfo=TZ)


def event_record(title, start, end, location=(ROOM,), **extra):
    record = {
        "title": title,
        "startTime": start.isoformat(),
        "endTime": end.isoformat(),
        "location": list(location),
        "organizer": {"name": "Dra. Marta Puig", "email": "marta.puig@example.edu"},
    }
    record.update(extra)
    return record


class FakeRenderer:
    """Records calls and returns fixed PNG bytes."""

    def __init__(self, image=b"\x89PNG\r\n\x1a\nfake", error=None):
        self.image = image
        self.error = error
        self.calls = []

    async def render(self, event, room, next_event):
        self.calls.append((event, room, next_event))
        if self.error is not None:
            raise self.error
        return self.image

    async def close(self):
        pass


@pytest.fixture
def store_path(tmp_path):
    return tmp_path / STORE_FILENAME


@pytest.fixture
def write_store(store_path):
    def _write(records):
        store_path.write_text(json.dumps(records, indent=2), encoding="utf-8")
        return store_path
    return _write
