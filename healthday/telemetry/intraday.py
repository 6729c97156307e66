"""Intraday view of a single day record.

Decodes the packed timeseries on a record into clock-anchored points and
folds them into a 24-hour window starting at ``start_hour``.  A window that
starts at 20:00 shows an overnight sleep as one continuous span.

Usage::

    view = build_intraday(record, start_hour=20)
    view.sleep      # [IntradayPoint(hour=22.5, value=4), ...]
    view.to_dict()  # JSON-ready
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from healthday.telemetry.base import DayRecord
from healthday.telemetry.codec import (
    ClockSample,
    clock_hour,
    decode_bins,
    format_hour,
    map_to_clock_hours,
    parse_anchor,
    shift_into_window,
)
from healthday.telemetry.config_loader import SyncConfig, get_sync_config
from healthday.telemetry.errors import MalformedEncodingError
from healthday.telemetry.events import HealthEvent, auto_events, parse_clock

logger = logging.getLogger("healthday.telemetry.intraday")

STAGE_LABELS: dict[int, str] = {1: "Deep", 2: "Light", 3: "REM", 4: "Awake"}


@dataclass
class IntradayPoint:
    hour: float
    value: float

    def to_dict(self) -> dict[str, Any]:
        return {"hour": round(self.hour, 4), "clock": format_hour(self.hour), "value": self.value}


@dataclass
class EventMarker:
    """An event positioned on the window's x axis."""

    event: HealthEvent
    hour: float
    end_hour: float | None = None

    def to_dict(self) -> dict[str, Any]:
        out = self.event.to_dict()
        out["hour"] = round(self.hour, 4)
        out["color"] = self.event.display_color
        if self.end_hour is not None:
            out["end_hour"] = round(self.end_hour, 4)
        return out


@dataclass
class IntradayView:
    """Decoded series for one day inside ``[start_hour, start_hour + 24)``."""

    date: str
    start_hour: float
    sleep: list[IntradayPoint] = field(default_factory=list)
    heart: list[IntradayPoint] = field(default_factory=list)
    activity: list[IntradayPoint] = field(default_factory=list)
    events: list[EventMarker] = field(default_factory=list)

    @property
    def end_hour(self) -> float:
        return self.start_hour + 24

    def to_dict(self) -> dict[str, Any]:
        return {
            "date": self.date,
            "start_hour": self.start_hour,
            "end_hour": self.end_hour,
            "sleep": [p.to_dict() for p in self.sleep],
            "sleep_stage_labels": {str(k): v for k, v in STAGE_LABELS.items()},
            "heart": [p.to_dict() for p in self.heart],
            "activity": [p.to_dict() for p in self.activity],
            "events": [m.to_dict() for m in self.events],
        }


def _windowed(samples: list[ClockSample], start_hour: float) -> list[IntradayPoint]:
    points = [
        IntradayPoint(hour=shift_into_window(s.hour, start_hour), value=s.value) for s in samples
    ]
    points.sort(key=lambda p: p.hour)
    return points


def _decode(encoded: str | None, what: str) -> list[float]:
    try:
        return decode_bins(encoded)
    except MalformedEncodingError as exc:
        logger.warning("Ignoring malformed %s series: %s", what, exc)
        return []


def _sleep_series(day: DayRecord, start_hour: float, config: SyncConfig) -> list[IntradayPoint]:
    sleep = day.sleep
    if sleep is None or not sleep.phases_5min or not sleep.bedtime_start:
        return []
    bins = _decode(sleep.phases_5min, "sleep phase")
    samples = map_to_clock_hours(bins, sleep.bedtime_start, config.codec.sleep_bin_minutes)
    return _windowed(samples, start_hour)


def _heart_series(day: DayRecord, start_hour: float) -> list[IntradayPoint]:
    heart = day.heart
    if heart is None or not heart.samples:
        return []
    samples: list[ClockSample] = []
    for sample in heart.samples:
        moment = parse_anchor(sample.ts)
        if moment is None:
            continue
        samples.append(ClockSample(hour=clock_hour(moment), value=sample.bpm))
    return _windowed(samples, start_hour)


def _activity_series(
    day: DayRecord, start_hour: float, config: SyncConfig
) -> list[IntradayPoint]:
    workout = day.workout
    if workout is None:
        return []
    if workout.met_items and workout.met_timestamp:
        width = workout.met_interval_min or config.codec.met_default_bin_minutes
        samples = map_to_clock_hours(workout.met_items, workout.met_timestamp, width)
        return _windowed(samples, start_hour)
    if workout.class_5min:
        bins = _decode(workout.class_5min, "activity class")
        samples = map_to_clock_hours(
            bins, f"{day.date}T00:00:00", config.codec.activity_class_bin_minutes
        )
        return _windowed(samples, start_hour)
    return []


def _event_markers(day: DayRecord, start_hour: float) -> list[EventMarker]:
    markers: list[EventMarker] = []
    for event in [*auto_events(day), *day.events]:
        start = parse_clock(event.time)
        if start is None:
            continue
        hour = shift_into_window(start / 60, start_hour)
        end_hour = None
        if event.duration_minutes is not None:
            end_hour = hour + event.duration_minutes / 60
        markers.append(EventMarker(event=event, hour=hour, end_hour=end_hour))
    markers.sort(key=lambda m: m.hour)
    return markers


def build_intraday(
    day: DayRecord, start_hour: float = 0, config: SyncConfig | None = None
) -> IntradayView:
    """Decode a record's intraday data into a 24-hour window.

    Sleep stages are anchored at ``bedtime_start``.  Activity uses the MET
    array at its own anchor and bin width when present, otherwise the class
    string anchored at 00:00 of the record's date.  Heart samples land on
    their own clock time.  A series whose anchor is missing or unparseable
    comes back empty.

    Args:
        day:        The record to decode.
        start_hour: Window start in hours, 0 ≤ start_hour < 24.
        config:     Sync config providing bin widths (default: global config).

    Returns:
        An ``IntradayView`` with each series sorted by hour.

    Raises:
        ValueError: If ``start_hour`` is outside ``[0, 24)``.
    """
    if not 0 <= start_hour < 24:
        raise ValueError(f"start_hour must be in [0, 24), got {start_hour}")
    config = config or get_sync_config()
    return IntradayView(
        date=day.date,
        start_hour=start_hour,
        sleep=_sleep_series(day, start_hour, config),
        heart=_heart_series(day, start_hour),
        activity=_activity_series(day, start_hour, config),
        events=_event_markers(day, start_hour),
    )
