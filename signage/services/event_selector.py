"""
Event Selector
==============
Picks, for one room and one instant, the event running right now or else
the earliest one still to come today.

"Today" is the calendar date of `now` in the display time zone. Events on
other days are never reported, not even as the next event.
"""

from datetime import datetime, tzinfo
from typing import Iterable, NamedTuple, Optional

from signage.models.schemas import Event


class Selection(NamedTuple):
    current: Optional[Event]
    next: Optional[Event]


def as_aware(value: datetime, tz: tzinfo) -> datetime:
    """Naive timestamps are wall-clock times in the display zone."""
    if value.tzinfo is None:
        return value.replace(tzinfo=tz)
    return value


def select(events: Iterable[Event], room: str, now: datetime, tz: tzinfo) -> Selection:
    """
    Single pass over all events.

    Overlapping bookings in one room: the first one in store order wins.
    Equal start times for the next event: the first one in store order wins.
    A list location matches by membership, a plain string by substring.
    """
    now = as_aware(now, tz)
    today = now.astimezone(tz).date()

    next_event: Optional[Event] = None
    next_start: Optional[datetime] = None

    for event in events:
        if event.start_time is None or event.end_time is None or not event.location:
            continue
        if room not in event.location:
            continue

        start = as_aware(event.start_time, tz)
        if start.astimezone(tz).date() != today:
            continue
        end = as_aware(event.end_time, tz)

        if start <= now <= end:
            return Selection(current=event, next=None)

        if start > now and (next_start is None or start < next_start):
            next_event, next_start = event, start

    return Selection(current=None, next=next_event)
