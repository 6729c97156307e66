"""Canonical data models for the healthday telemetry core.

Every adapter produces ``DayRecord`` fragments built from the four category
types below.  These types are the single source of truth consumed by the
reconciliation engine, the record stores and the API layer.

A category slot is a flat record of scalar metrics.  ``sleep`` and
``workout`` may carry a packed timeseries (pipe-delimited bins plus an anchor
timestamp); ``heart`` may carry discrete timestamped samples.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field, fields
from datetime import date, datetime
from typing import Any, ClassVar

from healthday.telemetry.events import HealthEvent

logger = logging.getLogger("healthday.telemetry")

CATEGORIES: tuple[str, ...] = ("sleep", "heart", "workout", "stress")


# ---------------------------------------------------------------------------
# Coercion helpers
# ---------------------------------------------------------------------------


def safe_float(value: object) -> float | None:
    """Coerce a value to a finite float, returning None on failure."""
    if value is None or isinstance(value, (list, dict)):
        return None
    if isinstance(value, str):
        value = value.strip()
        if not value:
            return None
    try:
        result = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError, OverflowError):
        return None
    if not math.isfinite(result):
        return None
    return result


def safe_int(value: object) -> int | None:
    """Coerce a value to int (rounding numeric strings/floats), None on failure."""
    result = safe_float(value)
    if result is None:
        return None
    return int(round(result))


def safe_str(value: object) -> str | None:
    """Return stripped strings unchanged; anything else is treated as absent."""
    if not isinstance(value, str):
        return None
    return value.strip()


def normalize_date(value: object) -> str | None:
    """Return the ISO calendar date (``YYYY-MM-DD``) for a date-ish value.

    Accepts ``date``/``datetime`` objects, plain ISO dates and ISO datetimes
    (the time component is discarded).  Returns None when unparseable.
    """
    if isinstance(value, datetime):
        return value.date().isoformat()
    if isinstance(value, date):
        return value.isoformat()
    if not isinstance(value, str) or not value.strip():
        return None
    text = value.strip()
    try:
        return date.fromisoformat(text[:10]).isoformat()
    except ValueError:
        return None


def _coerce_floats(value: object) -> list[float] | None:
    if not isinstance(value, list):
        return None
    out: list[float] = []
    for item in value:
        number = safe_float(item)
        if number is None:
            return None
        out.append(number)
    return out


# ---------------------------------------------------------------------------
# Category slots
# ---------------------------------------------------------------------------


@dataclass
class HeartSample:
    """A single discrete heart-rate reading."""

    ts: str
    bpm: int

    def to_dict(self) -> dict[str, Any]:
        return {"ts": self.ts, "bpm": self.bpm}

    @classmethod
    def from_dict(cls, raw: object) -> HeartSample | None:
        if not isinstance(raw, dict):
            return None
        ts = safe_str(raw.get("ts") or raw.get("timestamp"))
        bpm = safe_int(raw.get("bpm"))
        if not ts or bpm is None:
            return None
        return cls(ts=ts, bpm=bpm)


def _coerce_samples(value: object) -> list[HeartSample] | None:
    if not isinstance(value, list):
        return None
    samples = [HeartSample.from_dict(item) for item in value]
    dropped = sum(1 for s in samples if s is None)
    if dropped:
        logger.debug("Dropped %d malformed heart samples", dropped)
    return [s for s in samples if s is not None]


_COERCERS = {
    "int": safe_int,
    "float": safe_float,
    "str": safe_str,
    "floats": _coerce_floats,
    "samples": _coerce_samples,
}


def _metric(kind: str) -> Any:
    return field(default=None, metadata={"kind": kind})


class CategoryData:
    """Shared behaviour for the four category slot types.

    Subclasses are dataclasses whose fields all default to None and declare a
    ``kind`` in their metadata.  ``from_dict`` drops any field whose value is
    in an unexpected shape instead of rejecting the whole slot.
    """

    CATEGORY: ClassVar[str] = ""

    @classmethod
    def from_dict(cls, raw: object) -> Any:
        """Build a slot from a loosely-typed dict.

        Returns None when ``raw`` is not a mapping or no field survives.
        """
        if not isinstance(raw, dict):
            return None
        values: dict[str, Any] = {}
        for f in fields(cls):  # type: ignore[arg-type]
            if f.name not in raw or raw[f.name] is None:
                continue
            coerced = _COERCERS[f.metadata["kind"]](raw[f.name])
            if coerced is None:
                logger.warning(
                    "Dropping %s.%s: unexpected value %r", cls.CATEGORY, f.name, raw[f.name]
                )
                continue
            values[f.name] = coerced
        if not values:
            return None
        return cls(**values)

    def to_dict(self) -> dict[str, Any]:
        """Serialize to a plain dict, omitting absent fields."""
        out: dict[str, Any] = {}
        for f in fields(self):  # type: ignore[arg-type]
            value = getattr(self, f.name)
            if value is None:
                continue
            if f.metadata["kind"] == "samples":
                value = [s.to_dict() for s in value]
            elif f.metadata["kind"] == "floats":
                value = list(value)
            out[f.name] = value
        return out

    def is_empty(self) -> bool:
        return all(getattr(self, f.name) is None for f in fields(self))  # type: ignore[arg-type]


@dataclass
class SleepData(CategoryData):
    """Per-night sleep summary.

    ``phases_5min`` holds one stage per 5-minute bin (1=deep, 2=light, 3=REM,
    4=awake), pipe-delimited, with bin zero at ``bedtime_start``.
    """

    CATEGORY: ClassVar[str] = "sleep"

    duration_hours: float | None = _metric("float")
    efficiency: int | None = _metric("int")
    deep_min: int | None = _metric("int")
    rem_min: int | None = _metric("int")
    light_min: int | None = _metric("int")
    awake_min: int | None = _metric("int")
    readiness_score: int | None = _metric("int")
    phases_5min: str | None = _metric("str")
    bedtime_start: str | None = _metric("str")
    bedtime_end: str | None = _metric("str")


@dataclass
class HeartData(CategoryData):
    """Daily heart statistics and, optionally, discrete samples."""

    CATEGORY: ClassVar[str] = "heart"

    resting_hr: int | None = _metric("int")
    hrv_avg: float | None = _metric("float")
    hr_min: int | None = _metric("int")
    hr_max: int | None = _metric("int")
    samples: list[HeartSample] | None = _metric("samples")


@dataclass
class WorkoutData(CategoryData):
    """Daily activity summary.

    ``met_items`` is anchored at ``met_timestamp`` with ``met_interval_min``
    minutes per bin.  ``class_5min`` is anchored at 00:00 of the record's date.
    """

    CATEGORY: ClassVar[str] = "workout"

    activity_score: int | None = _metric("int")
    calories_active: int | None = _metric("int")
    steps: int | None = _metric("int")
    active_min: int | None = _metric("int")
    class_5min: str | None = _metric("str")
    met_items: list[float] | None = _metric("floats")
    met_timestamp: str | None = _metric("str")
    met_interval_min: float | None = _metric("float")


@dataclass
class StressData(CategoryData):
    """Minutes of high stress / high recovery plus the provider's day summary.

    ``day_summary`` is passed through as-is; it is never derived locally.
    """

    CATEGORY: ClassVar[str] = "stress"

    stress_high: int | None = _metric("int")
    recovery_high: int | None = _metric("int")
    day_summary: str | None = _metric("str")


CATEGORY_TYPES: dict[str, type[CategoryData]] = {
    "sleep": SleepData,
    "heart": HeartData,
    "workout": WorkoutData,
    "stress": StressData,
}


# ---------------------------------------------------------------------------
# Day record
# ---------------------------------------------------------------------------


@dataclass
class DayRecord:
    """Canonical per-day record, also used as the fragment type.

    Attributes:
        date:    ISO calendar date, the sole identity key (per user).
        source:  Free-text provenance (e.g. ``"oura"``, ``"csv"``).
        sleep:   Sleep slot or None.
        heart:   Heart slot or None.
        workout: Activity slot or None.
        stress:  Stress slot or None.
        events:  User-authored annotations for the day.
    """

    date: str
    source: str | None = None
    sleep: SleepData | None = None
    heart: HeartData | None = None
    workout: WorkoutData | None = None
    stress: StressData | None = None
    events: list[HealthEvent] = field(default_factory=list)

    def category(self, name: str) -> CategoryData | None:
        if name not in CATEGORY_TYPES:
            raise KeyError(f"Unknown category '{name}'. Available: {list(CATEGORIES)}")
        return getattr(self, name)

    @property
    def categories_present(self) -> list[str]:
        return [name for name in CATEGORIES if getattr(self, name) is not None]

    def to_dict(self) -> dict[str, Any]:
        """Serialize, omitting absent categories and ephemeral auto events."""
        out: dict[str, Any] = {"date": self.date}
        if self.source:
            out["source"] = self.source
        for name in CATEGORIES:
            slot = getattr(self, name)
            if slot is not None:
                out[name] = slot.to_dict()
        persisted = [e.to_dict() for e in self.events if not e.is_auto]
        if persisted:
            out["events"] = persisted
        return out

    @classmethod
    def from_dict(cls, raw: dict[str, Any]) -> DayRecord:
        """Build a record from a canonical-shaped dict.

        An unusable ``date`` becomes the empty string; callers reject such
        fragments with ``require_date`` before they reach the merge engine.
        """
        day = normalize_date(raw.get("date"))
        if day is None and raw.get("date") is not None:
            logger.warning("Unparseable record date %r", raw.get("date"))
        slots = {name: CATEGORY_TYPES[name].from_dict(raw.get(name)) for name in CATEGORIES}
        events_raw = raw.get("events")
        events: list[HealthEvent] = []
        if isinstance(events_raw, list):
            for item in events_raw:
                event = HealthEvent.from_dict(item)
                if event is not None and not event.is_auto:
                    events.append(event)
        return cls(
            date=day or "",
            source=safe_str(raw.get("source")) or None,
            events=events,
            **slots,
        )


# A fragment is a partial DayRecord produced by one adapter.
DayFragment = DayRecord
