"""
Event Cache
===========
In-memory copy of <DATA_DIR>/structured_events.json.

The file is rewritten by the ingestion job (weekly + on startup); requests
call ensure_fresh() which reloads when:
  • nothing has been loaded yet
  • the file's mtime is newer than the one recorded at the last load
  • invalidate() was called after the ingestion job wrote a new file
    (mtime resolution can hide a rewrite within the same tick)
"""

import asyncio
import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from pydantic import ValidationError

from signage.exceptions import StoreCorrupt, StoreUnavailable
from signage.models.schemas import Event

logger = logging.getLogger(__name__)


@dataclass
class CacheState:
    events: Optional[List[Event]] = None
    mtime_ns: Optional[int] = None
    valid: bool = False


def load_events(path: Path) -> List[Event]:
    """Read and parse the store file. Malformed records are skipped, not fatal."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except FileNotFoundError:
        raise StoreUnavailable(f"Structured events data not found at {path}")
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StoreCorrupt(f"Structured events file {path} is not valid JSON: {e}") from e

    if not isinstance(raw, list):
        raise StoreCorrupt(
            f"Structured events file {path} must contain a JSON array, got {type(raw).__name__}"
        )

    events: List[Event] = []
    for index, record in enumerate(raw):
        if not isinstance(record, dict):
            logger.warning(f"Skipping record #{index}: expected an object, got {type(record).__name__}")
            continue
        try:
            events.append(Event.model_validate(record))
        except ValidationError as e:
            logger.warning(f"Skipping record #{index}: {e.error_count()} invalid field(s)")
    return events


class EventCache:
    """
    Owns a CacheState and keeps it in step with the store file.
    Concurrent ensure_fresh() calls share a single reload.
    """

    def __init__(self, store_path: Path, state: Optional[CacheState] = None):
        self.store_path = Path(store_path)
        self.state = state if state is not None else CacheState()
        self._lock = asyncio.Lock()
        self._generation = 0

    def is_stale(self, mtime_ns: int) -> bool:
        state = self.state
        return (
            state.events is None
            or not state.valid
            or state.mtime_ns is None
            or mtime_ns > state.mtime_ns
        )

    async def ensure_fresh(self) -> List[Event]:
        async with self._lock:
            return await asyncio.to_thread(self._refresh)

    def _refresh(self) -> List[Event]:
        try:
            mtime_ns = self.store_path.stat().st_mtime_ns
        except FileNotFoundError:
            self.state = CacheState()
            raise StoreUnavailable(f"Structured events data not found at {self.store_path}")

        if self.is_stale(mtime_ns):
            generation = self._generation
            events = load_events(self.store_path)
            # replaced wholesale, never patched; an invalidate() that raced the
            # read keeps the new snapshot stale so the next call reads again
            self.state = CacheState(
                events=events,
                mtime_ns=mtime_ns,
                valid=generation == self._generation,
            )
            logger.info(f"Events cache loaded/refreshed: {len(events)} events")

        return self.state.events

    def invalidate(self):
        """Force the next ensure_fresh() to reload regardless of mtime."""
        self._generation += 1
        self.state = CacheState(events=self.state.events, mtime_ns=None, valid=False)
        logger.info("Events cache invalidated.")
