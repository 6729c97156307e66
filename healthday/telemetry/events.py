"""Day-scoped health event annotations.

User-authored events are stored on the day record.  Auto events are derived
on the fly from provider data (e.g. the sleep window) and are never
persisted.  Events are not merged across sources.
"""

from __future__ import annotations

import logging
import secrets
import time
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from healthday.telemetry.base import DayRecord

logger = logging.getLogger("healthday.telemetry.events")

_MINUTES_PER_DAY = 24 * 60


class EventCategory(str, Enum):
    EXERCISE = "exercise"
    MEAL = "meal"
    MEDICAL = "medical"
    SLEEP_AID = "sleep-aid"
    NOTE = "note"
    CUSTOM = "custom"


CATEGORY_COLORS: dict[EventCategory, str] = {
    EventCategory.EXERCISE: "#55efc4",
    EventCategory.MEAL: "#ffeaa7",
    EventCategory.MEDICAL: "#ff6b6b",
    EventCategory.SLEEP_AID: "#74b9ff",
    EventCategory.NOTE: "#a8a8c0",
    EventCategory.CUSTOM: "#dfe6e9",
}


def parse_clock(value: str | None) -> int | None:
    """Parse ``HH:MM`` into minutes since midnight, or None."""
    if not value or not isinstance(value, str):
        return None
    parts = value.strip().split(":")
    if len(parts) < 2:
        return None
    try:
        hours, minutes = int(parts[0]), int(parts[1])
    except ValueError:
        return None
    if not (0 <= hours < 24 and 0 <= minutes < 60):
        return None
    return hours * 60 + minutes


def new_event_id() -> str:
    """Generate an event id of the form ``evt-<epoch ms>-<5 chars>``."""
    return f"evt-{int(time.time() * 1000)}-{secrets.token_hex(3)[:5]}"


@dataclass
class HealthEvent:
    """A single annotation on a day.

    Attributes:
        id:          Stable identifier.
        time:        Start time, ``HH:MM``.
        title:       Short label.
        category:    One of ``EventCategory``.
        end_time:    Optional end time, ``HH:MM``.
        description: Optional free text.
        color:       Optional color override.
        is_auto:     True for provider-detected events (never persisted).
    """

    id: str
    time: str
    title: str
    category: EventCategory = EventCategory.NOTE
    end_time: str | None = None
    description: str | None = None
    color: str | None = None
    is_auto: bool = False

    @property
    def duration_minutes(self) -> int | None:
        """Minutes from start to end, wrapping past midnight when end < start."""
        start = parse_clock(self.time)
        end = parse_clock(self.end_time)
        if start is None or end is None:
            return None
        return (end - start) % _MINUTES_PER_DAY

    @property
    def display_color(self) -> str:
        return self.color or CATEGORY_COLORS.get(self.category, "#dfe6e9")

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "time": self.time,
            "title": self.title,
            "category": self.category.value,
        }
        for key in ("end_time", "description", "color"):
            value = getattr(self, key)
            if value:
                out[key] = value
        if self.is_auto:
            out["is_auto"] = True
        return out

    @classmethod
    def from_dict(cls, raw: object) -> HealthEvent | None:
        """Build an event from a dict; returns None if time or title is missing."""
        if not isinstance(raw, dict):
            return None
        when = raw.get("time")
        title = raw.get("title")
        if parse_clock(when) is None or not isinstance(title, str) or not title:
            logger.warning("Dropping malformed event %r", raw)
            return None
        try:
            category = EventCategory(raw.get("category", "note"))
        except ValueError:
            category = EventCategory.CUSTOM
        end_time = raw.get("end_time")
        return cls(
            id=str(raw.get("id") or new_event_id()),
            time=when,
            title=title,
            category=category,
            end_time=end_time if parse_clock(end_time) is not None else None,
            description=raw.get("description") or None,
            color=raw.get("color") or None,
            is_auto=bool(raw.get("is_auto", raw.get("isAuto", False))),
        )


def _clock_of(timestamp: str | None) -> str | None:
    if not timestamp:
        return None
    try:
        dt = datetime.fromisoformat(timestamp.replace("Z", "+00:00"))
    except ValueError:
        return None
    return f"{dt.hour:02d}:{dt.minute:02d}"


def auto_events(day: DayRecord) -> list[HealthEvent]:
    """Derive ephemeral events from provider data on a day record.

    Currently a single "Sleep" event spanning the sleep slot's bedtime window.
    """
    events: list[HealthEvent] = []
    sleep = day.sleep
    if sleep is not None:
        start = _clock_of(sleep.bedtime_start)
        if start is not None:
            events.append(
                HealthEvent(
                    id=f"auto-sleep-{day.date}",
                    time=start,
                    end_time=_clock_of(sleep.bedtime_end),
                    title="Sleep",
                    category=EventCategory.SLEEP_AID,
                    is_auto=True,
                )
            )
    return events
