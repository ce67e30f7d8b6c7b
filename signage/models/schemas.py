from pydantic import BaseModel, ConfigDict, Field, PrivateAttr, field_validator, model_validator
from typing import Any, Optional, List, Union
from datetime import datetime
import copy


# ──────────────────────────────────────────────
# Events (structured_events.json)
# ──────────────────────────────────────────────

def _text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        return value.strip()
    return str(value)


class Event(BaseModel):
    """
    One normalized calendar entry. Only start, end and location are parsed;
    a record is rejected only when one of those has an unusable shape.
    Title, organizer and everything else the model emitted (subject code,
    attendees, status, uid ...) are kept exactly as stored.
    """
    model_config = ConfigDict(extra="allow", frozen=True, populate_by_name=True)

    title: Any = None
    summary: Any = None               # raw iCal name, fallback for title
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")
    location: Union[str, List[str]] = []   # one event may span several rooms
    organizer: Any = None

    _record: Optional[dict] = PrivateAttr(default=None)

    @field_validator("location", mode="before")
    @classmethod
    def _normalize_location(cls, value):
        if value is None:
            return []
        if isinstance(value, str):
            return value if value.strip() else []
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value if v is not None]
        return value

    @model_validator(mode="wrap")
    @classmethod
    def _keep_record(cls, data, handler):
        event = handler(data)
        if isinstance(data, dict):
            event._record = copy.deepcopy(data)
        return event

    def title_or(self, default: str) -> str:
        return _text(self.title) or _text(self.summary) or default

    @property
    def display_title(self) -> str:
        return self.title_or("No Title")

    @property
    def organizer_name(self) -> str:
        return self._name_of(self.organizer)

    @classmethod
    def _name_of(cls, organizer: Any) -> str:
        if isinstance(organizer, dict):
            return _text(organizer.get("name"))
        if isinstance(organizer, (list, tuple)):
            return ", ".join(n for n in (cls._name_of(o) for o in organizer) if n)
        return _text(organizer)

    def to_json(self) -> dict:
        """The record exactly as it was stored."""
        if self._record is not None:
            return copy.deepcopy(self._record)
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


# ──────────────────────────────────────────────
# API
# ──────────────────────────────────────────────

class DataRequest(BaseModel):
    room: str


class ErrorResponse(BaseModel):
    error: str
