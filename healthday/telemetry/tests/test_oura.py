"""Tests for the Oura normalizers using realistic API responses."""

from __future__ import annotations

import pytest

from healthday.telemetry.adapters import get_normalizer
from healthday.telemetry.adapters.oura import (
    documents,
    merge_pages,
    normalize_activity,
    normalize_heart_rate,
    normalize_sleep,
    normalize_stress,
)


# ---------------------------------------------------------------------------
# Payload shapes
# ---------------------------------------------------------------------------


class TestPayloadShapes:
    def test_merge_pages_concatenates_in_order(self, oura_heartrate_pages: list[dict]) -> None:
        merged = merge_pages(oura_heartrate_pages)
        assert [d["bpm"] for d in merged["data"]] == [58, 112, 49, 52, "n/a", 61]

    def test_documents_accepts_page_pages_or_list(self, oura_stress_raw: dict) -> None:
        docs = oura_stress_raw["data"]
        assert documents(oura_stress_raw) == docs
        assert documents([oura_stress_raw]) == docs
        assert documents(docs) == docs
        assert documents(None) == []
        assert documents([]) == []

    def test_documents_skips_non_objects(self) -> None:
        assert documents({"data": [{"day": "2024-03-01"}, "junk", 7]}) == [{"day": "2024-03-01"}]


# ---------------------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------------------


class TestOuraSleepNormalization:
    def test_one_fragment_per_bedtime_date(self, oura_sleep_raw: dict) -> None:
        fragments = normalize_sleep(oura_sleep_raw)
        assert [f.date for f in fragments] == ["2024-03-01", "2024-03-02"]
        assert all(f.source == "oura" for f in fragments)
        assert all(f.categories_present == ["sleep"] for f in fragments)

    def test_period_assigned_to_bedtime_start_date(self, oura_sleep_raw: dict) -> None:
        first = normalize_sleep(oura_sleep_raw)[0]
        # bedtime_start 2024-03-01T22:30, provider "day" 2024-03-02
        assert first.date == "2024-03-01"
        assert first.sleep.bedtime_start == "2024-03-01T22:30:00+01:00"

    def test_longest_period_wins_over_nap(self, oura_sleep_raw: dict) -> None:
        sleep = normalize_sleep(oura_sleep_raw)[0].sleep
        assert sleep.duration_hours == 7.25
        assert sleep.efficiency == 91

    def test_durations_converted_to_minutes(self, oura_sleep_raw: dict) -> None:
        sleep = normalize_sleep(oura_sleep_raw)[0].sleep
        assert sleep.deep_min == 90
        assert sleep.rem_min == 105
        assert sleep.light_min == 240
        assert sleep.awake_min == 45
        assert sleep.readiness_score == 84

    def test_stage_string_repacked(self, oura_sleep_raw: dict) -> None:
        sleep = normalize_sleep(oura_sleep_raw)[0].sleep
        assert sleep.phases_5min == "4|4|2|2|1|1|3|3|4|2"

    def test_bad_fields_dropped_not_whole_day(self, oura_sleep_raw: dict) -> None:
        second = normalize_sleep(oura_sleep_raw)[1].sleep
        assert second.deep_min is None
        assert second.phases_5min is None
        assert second.rem_min == 95
        assert second.duration_hours == 7.0

    def test_deleted_periods_ignored(self, oura_sleep_raw: dict) -> None:
        dates = [f.date for f in normalize_sleep(oura_sleep_raw)]
        assert "2024-03-03" not in dates

    def test_daily_sleep_score_and_contributors(self) -> None:
        raw = {
            "data": [
                {"day": "2024-03-05", "score": 77, "contributors": {"efficiency": 86}},
            ]
        }
        sleep = normalize_sleep(raw)[0].sleep
        assert sleep.readiness_score == 77
        assert sleep.efficiency == 86

    def test_document_without_date_skipped(self) -> None:
        assert normalize_sleep({"data": [{"total_sleep_duration": 20000}]}) == []

    def test_empty_payload(self) -> None:
        assert normalize_sleep({"data": []}) == []


# ---------------------------------------------------------------------------
# Heart
# ---------------------------------------------------------------------------


class TestOuraHeartNormalization:
    def test_samples_grouped_by_date_across_pages(
        self, oura_heartrate_pages: list[dict]
    ) -> None:
        fragments = normalize_heart_rate(oura_heartrate_pages)
        assert [f.date for f in fragments] == ["2024-03-01", "2024-03-02"]
        assert [s.bpm for s in fragments[0].heart.samples] == [58, 112, 49]

    def test_samples_keep_arrival_order_and_drop_bad(
        self, oura_heartrate_pages: list[dict]
    ) -> None:
        second = normalize_heart_rate(oura_heartrate_pages)[1].heart
        assert [s.bpm for s in second.samples] == [52, 61]
        assert second.samples[0].ts == "2024-03-02T00:10:00+00:00"

    def test_min_max_from_samples(self, oura_heartrate_pages: list[dict]) -> None:
        first = normalize_heart_rate(oura_heartrate_pages)[0].heart
        assert first.hr_min == 49
        assert first.hr_max == 112
        assert first.resting_hr is None

    def test_daily_summary(self) -> None:
        raw = {
            "data": [
                {"day": "2024-03-01", "lowest_heart_rate": 47, "average_hrv": 61.5},
            ]
        }
        heart = normalize_heart_rate(raw)[0].heart
        assert heart.resting_hr == 47
        assert heart.hrv_avg == 61.5
        assert heart.samples is None

    def test_summary_min_max_take_precedence(self) -> None:
        raw = [
            {"day": "2024-03-01", "resting_heart_rate": 50, "hr_min": 44, "hr_max": 150},
            {"bpm": 60, "timestamp": "2024-03-01T10:00:00+00:00"},
        ]
        heart = normalize_heart_rate(raw)[0].heart
        assert (heart.hr_min, heart.hr_max) == (44, 150)
        assert len(heart.samples) == 1


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


class TestOuraActivityNormalization:
    def test_scalar_fields(self, oura_activity_raw: dict) -> None:
        workout = normalize_activity(oura_activity_raw)[0].workout
        assert workout.activity_score == 82
        assert workout.calories_active == 540
        assert workout.steps == 9120
        # (1800 + 2400) seconds of high + medium activity
        assert workout.active_min == 70

    def test_met_array_keeps_own_anchor_and_width(self, oura_activity_raw: dict) -> None:
        workout = normalize_activity(oura_activity_raw)[0].workout
        assert workout.met_items == [0.9, 1.2, 3.5, 6.1]
        assert workout.met_timestamp == "2024-03-01T04:00:00+01:00"
        assert workout.met_interval_min == 1.0

    def test_class_string_repacked(self, oura_activity_raw: dict) -> None:
        fragments = normalize_activity(oura_activity_raw)
        assert fragments[0].workout.class_5min == "1|1|1|2|2|2|3|3|3|4"
        assert fragments[1].workout.class_5min == "1|1|2|2"
        assert fragments[1].workout.met_items is None

    def test_malformed_met_dropped(self) -> None:
        raw = {"data": [{"day": "2024-03-01", "steps": 100, "met": {"items": [1, "x"]}}]}
        workout = normalize_activity(raw)[0].workout
        assert workout.steps == 100
        assert workout.met_items is None

    def test_out_of_range_integer_dropped_not_whole_day(self) -> None:
        raw = {
            "data": [
                {
                    "day": "2024-03-01",
                    "steps": 10**400,
                    "score": 80,
                    "high_activity_time": 1e308,
                    "medium_activity_time": 1e308,
                }
            ]
        }
        (fragment,) = normalize_activity(raw)
        assert fragment.workout.steps is None
        assert fragment.workout.active_min is None
        assert fragment.workout.activity_score == 80


# ---------------------------------------------------------------------------
# Stress
# ---------------------------------------------------------------------------


class TestOuraStressNormalization:
    def test_seconds_to_minutes(self, oura_stress_raw: dict) -> None:
        stress = normalize_stress(oura_stress_raw)[0].stress
        assert stress.stress_high == 90
        assert stress.recovery_high == 60

    def test_day_summary_passthrough(self, oura_stress_raw: dict) -> None:
        fragments = normalize_stress(oura_stress_raw)
        assert [f.stress.day_summary for f in fragments] == ["normal", "restored"]

    def test_zero_is_kept(self, oura_stress_raw: dict) -> None:
        assert normalize_stress(oura_stress_raw)[1].stress.stress_high == 0


# ---------------------------------------------------------------------------
# Registry
# ---------------------------------------------------------------------------


class TestNormalizerRegistry:
    def test_every_configured_endpoint_has_a_normalizer(self, sync_config) -> None:
        for endpoint in sync_config.endpoints:
            assert callable(get_normalizer(endpoint.name))

    def test_unknown_endpoint_raises_key_error(self) -> None:
        with pytest.raises(KeyError, match="daily_spo2"):
            get_normalizer("daily_spo2")
