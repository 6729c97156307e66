"""Tests for day-scoped health events."""

from __future__ import annotations

import re

from healthday.telemetry.base import DayRecord, SleepData
from healthday.telemetry.events import (
    EventCategory,
    HealthEvent,
    auto_events,
    new_event_id,
    parse_clock,
)
from healthday.telemetry.tests.conftest import TEST_DATE


class TestHealthEvent:
    def test_duration_wraps_past_midnight(self) -> None:
        event = HealthEvent(id="e", time="23:00", end_time="01:30", title="Late shift")
        assert event.duration_minutes == 150

    def test_duration_same_day(self) -> None:
        event = HealthEvent(id="e", time="07:15", end_time="08:00", title="Run")
        assert event.duration_minutes == 45

    def test_no_end_time_has_no_duration(self) -> None:
        assert HealthEvent(id="e", time="07:15", title="Pill").duration_minutes is None

    def test_display_color_falls_back_to_category(self) -> None:
        meal = HealthEvent(id="e", time="12:00", title="Lunch", category=EventCategory.MEAL)
        assert meal.display_color == "#ffeaa7"
        meal.color = "#000000"
        assert meal.display_color == "#000000"

    def test_from_dict_unknown_category_is_custom(self) -> None:
        event = HealthEvent.from_dict({"time": "09:00", "title": "Sauna", "category": "spa"})
        assert event.category is EventCategory.CUSTOM
        assert event.id.startswith("evt-")

    def test_from_dict_requires_time_and_title(self) -> None:
        assert HealthEvent.from_dict({"time": "25:00", "title": "x"}) is None
        assert HealthEvent.from_dict({"time": "09:00"}) is None
        assert HealthEvent.from_dict("09:00 coffee") is None

    def test_from_dict_drops_bad_end_time(self) -> None:
        event = HealthEvent.from_dict({"time": "09:00", "title": "Walk", "end_time": "soon"})
        assert event.end_time is None

    def test_to_dict_round_trip_fields(self) -> None:
        raw = {
            "id": "evt-1",
            "time": "18:30",
            "end_time": "19:15",
            "title": "Gym",
            "category": "exercise",
            "description": "legs",
        }
        assert HealthEvent.from_dict(raw).to_dict() == raw


class TestHelpers:
    def test_parse_clock(self) -> None:
        assert parse_clock("00:00") == 0
        assert parse_clock("23:59") == 1439
        assert parse_clock("7:05") == 425
        assert parse_clock("24:00") is None
        assert parse_clock("noon") is None
        assert parse_clock(None) is None

    def test_new_event_id_format(self) -> None:
        assert re.fullmatch(r"evt-\d+-[0-9a-f]{5}", new_event_id())


class TestAutoEvents:
    def test_sleep_window_event(self) -> None:
        day = DayRecord(
            date=TEST_DATE,
            sleep=SleepData(
                bedtime_start="2024-03-01T22:45:00+01:00",
                bedtime_end="2024-03-02T06:30:00+01:00",
            ),
        )
        (event,) = auto_events(day)
        assert event.id == f"auto-sleep-{TEST_DATE}"
        assert (event.time, event.end_time) == ("22:45", "06:30")
        assert event.is_auto
        assert event.category is EventCategory.SLEEP_AID

    def test_no_sleep_no_events(self) -> None:
        assert auto_events(DayRecord(date=TEST_DATE)) == []

    def test_auto_events_never_serialized(self) -> None:
        day = DayRecord(date=TEST_DATE, sleep=SleepData(bedtime_start="2024-03-01T22:45:00"))
        day.events = auto_events(day) + [HealthEvent(id="evt-1", time="08:00", title="Coffee")]
        assert [e["id"] for e in day.to_dict()["events"]] == ["evt-1"]

    def test_auto_events_dropped_on_load(self) -> None:
        raw = {
            "date": TEST_DATE,
            "events": [
                {"id": "auto-sleep-x", "time": "22:00", "title": "Sleep", "is_auto": True},
                {"id": "evt-1", "time": "08:00", "title": "Coffee", "category": "meal"},
            ],
        }
        assert [e.id for e in DayRecord.from_dict(raw).events] == ["evt-1"]
