"""Oura API v2 normalizers.

Pure functions from raw collection responses to ``DayRecord`` fragments.
No I/O happens here; ``healthday.telemetry.adapters.client`` does the
fetching.  Every normalizer accepts a single page (``{"data": [...]}``), a
list of pages, or a bare list of documents, so pagination stays a transport
concern.

A field in an unexpected shape is dropped (and logged); the rest of that
day still imports.

Collections handled:
    /v2/usercollection/sleep           → sleep   (periods, with stage string)
    /v2/usercollection/daily_sleep     → sleep   (daily score/contributors)
    /v2/usercollection/heartrate       → heart   (timestamped samples)
    /v2/usercollection/daily_activity  → workout (with MET array / class string)
    /v2/usercollection/daily_stress    → stress
"""

from __future__ import annotations

import logging
from typing import Any, Callable

from healthday.telemetry.base import (
    DayRecord,
    HeartData,
    HeartSample,
    SleepData,
    StressData,
    WorkoutData,
    normalize_date,
    safe_float,
    safe_int,
    safe_str,
)
from healthday.telemetry.codec import DEFAULT_DELIMITER, decode_bins, encode_bins
from healthday.telemetry.errors import MalformedEncodingError

logger = logging.getLogger("healthday.telemetry.adapters.oura")

SOURCE_ID = "oura"

Payload = dict[str, Any] | list[Any]


# ---------------------------------------------------------------------------
# Payload helpers
# ---------------------------------------------------------------------------


def _is_page(item: object) -> bool:
    return isinstance(item, dict) and isinstance(item.get("data"), list)


def merge_pages(pages: list[dict[str, Any]]) -> dict[str, Any]:
    """Concatenate the ``data`` arrays of several pages in arrival order."""
    data: list[Any] = []
    for page in pages:
        if _is_page(page):
            data.extend(page["data"])
    return {"data": data}


def documents(payload: Payload | None) -> list[dict[str, Any]]:
    """Return the list of documents in a page, list of pages, or document list."""
    if payload is None:
        return []
    if isinstance(payload, dict):
        items = payload.get("data") if _is_page(payload) else []
    elif payload and all(_is_page(p) for p in payload):
        items = merge_pages(payload)["data"]
    else:
        items = payload
    docs = [d for d in items if isinstance(d, dict)]
    if len(docs) != len(items):
        logger.warning("Skipped %d non-object documents", len(items) - len(docs))
    return docs


def _pick(doc: dict[str, Any], key: str, coerce: Callable[[object], Any]) -> Any:
    """Coerce ``doc[key]``; a present value of the wrong shape is logged and dropped."""
    value = doc.get(key)
    if value is None:
        return None
    result = coerce(value)
    if result is None:
        logger.warning("Dropping field %r with unexpected value %r", key, value)
    return result


def _seconds_to_minutes(doc: dict[str, Any], key: str) -> int | None:
    seconds = _pick(doc, key, safe_float)
    return None if seconds is None else int(round(seconds / 60))


def _repack(doc: dict[str, Any], key: str) -> str | None:
    """Re-encode a provider stage/class string into the canonical delimited form."""
    raw = doc.get(key)
    if raw is None:
        return None
    if not isinstance(raw, str):
        logger.warning("Dropping field %r: expected a string, got %r", key, type(raw).__name__)
        return None
    delimiter = DEFAULT_DELIMITER if DEFAULT_DELIMITER in raw else ""
    try:
        bins = decode_bins(raw, delimiter)
    except MalformedEncodingError as exc:
        logger.warning("Dropping field %r: %s", key, exc)
        return None
    return encode_bins(bins) if bins else None


def _fragment(day: str, **slots: Any) -> DayRecord:
    return DayRecord(date=day, source=SOURCE_ID, **slots)


# ---------------------------------------------------------------------------
# Sleep
# ---------------------------------------------------------------------------


def _sleep_day(doc: dict[str, Any]) -> str | None:
    # A period that crosses midnight belongs to the date it started on.
    return normalize_date(doc.get("bedtime_start")) or normalize_date(doc.get("day"))


def _sleep_from_doc(doc: dict[str, Any]) -> SleepData | None:
    total = _pick(doc, "total_sleep_duration", safe_float)
    contributors = doc.get("contributors") if isinstance(doc.get("contributors"), dict) else {}
    readiness = doc.get("readiness") if isinstance(doc.get("readiness"), dict) else {}

    efficiency = _pick(doc, "efficiency", safe_int)
    if efficiency is None:
        efficiency = _pick(contributors, "efficiency", safe_int)
    score = _pick(readiness, "score", safe_int)
    if score is None:
        score = _pick(doc, "score", safe_int)

    sleep = SleepData(
        duration_hours=round(total / 3600, 2) if total is not None else None,
        efficiency=efficiency,
        deep_min=_seconds_to_minutes(doc, "deep_sleep_duration"),
        rem_min=_seconds_to_minutes(doc, "rem_sleep_duration"),
        light_min=_seconds_to_minutes(doc, "light_sleep_duration"),
        awake_min=_seconds_to_minutes(doc, "awake_time"),
        readiness_score=score,
        phases_5min=_repack(doc, "sleep_phase_5_min"),
        bedtime_start=_pick(doc, "bedtime_start", safe_str) or None,
        bedtime_end=_pick(doc, "bedtime_end", safe_str) or None,
    )
    return None if sleep.is_empty() else sleep


def normalize_sleep(payload: Payload | None) -> list[DayRecord]:
    """Convert sleep-period or daily-sleep documents into sleep fragments.

    When a date has several periods (naps, split nights), the longest one by
    ``total_sleep_duration`` is kept.  Deleted periods are ignored.

    Args:
        payload: Raw Oura response (page, pages or documents).

    Returns:
        One fragment per date, sorted by date.
    """
    best: dict[str, tuple[float, SleepData]] = {}
    for doc in documents(payload):
        if doc.get("type") == "deleted":
            continue
        day = _sleep_day(doc)
        if day is None:
            logger.warning("Skipping sleep document without a usable date: %r", doc.get("id"))
            continue
        sleep = _sleep_from_doc(doc)
        if sleep is None:
            continue
        length = safe_float(doc.get("total_sleep_duration")) or 0.0
        if day not in best or length > best[day][0]:
            best[day] = (length, sleep)
    return [_fragment(day, sleep=best[day][1]) for day in sorted(best)]


# ---------------------------------------------------------------------------
# Heart
# ---------------------------------------------------------------------------


def _heart_summary(doc: dict[str, Any]) -> HeartData:
    resting = _pick(doc, "resting_heart_rate", safe_int)
    if resting is None:
        resting = _pick(doc, "lowest_heart_rate", safe_int)
    hrv = _pick(doc, "average_hrv", safe_float)
    if hrv is None:
        hrv = _pick(doc, "hrv_avg", safe_float)
    return HeartData(
        resting_hr=resting,
        hrv_avg=hrv,
        hr_min=_pick(doc, "hr_min", safe_int),
        hr_max=_pick(doc, "hr_max", safe_int),
    )


def normalize_heart_rate(payload: Payload | None) -> list[DayRecord]:
    """Convert heart-rate samples and/or daily summaries into heart fragments.

    Samples (``{"bpm", "timestamp"}``) are grouped by the calendar date of
    their timestamp, keeping arrival order across pages.  Min/max come from
    the samples unless a summary document supplies them.

    Args:
        payload: Raw Oura response (page, pages or documents).

    Returns:
        One fragment per date, sorted by date.
    """
    samples: dict[str, list[HeartSample]] = {}
    summaries: dict[str, HeartData] = {}
    dropped = 0

    for doc in documents(payload):
        if "bpm" in doc:
            sample = HeartSample.from_dict(doc)
            day = normalize_date(sample.ts) if sample else None
            if sample is None or day is None:
                dropped += 1
                continue
            samples.setdefault(day, []).append(sample)
            continue
        day = normalize_date(doc.get("day"))
        if day is None:
            logger.warning("Skipping heart summary without a usable date: %r", doc.get("id"))
            continue
        summary = _heart_summary(doc)
        if not summary.is_empty():
            summaries[day] = summary

    if dropped:
        logger.warning("Dropped %d malformed heart-rate samples", dropped)

    fragments: list[DayRecord] = []
    for day in sorted(set(samples) | set(summaries)):
        heart = summaries.get(day) or HeartData()
        day_samples = samples.get(day)
        if day_samples:
            heart.samples = day_samples
            bpms = [s.bpm for s in day_samples]
            if heart.hr_min is None:
                heart.hr_min = min(bpms)
            if heart.hr_max is None:
                heart.hr_max = max(bpms)
        fragments.append(_fragment(day, heart=heart))
    return fragments


# ---------------------------------------------------------------------------
# Activity
# ---------------------------------------------------------------------------


def _met(doc: dict[str, Any]) -> tuple[list[float] | None, str | None, float | None]:
    met = doc.get("met")
    if met is None:
        return None, None, None
    if not isinstance(met, dict):
        logger.warning("Dropping field 'met': expected an object, got %r", type(met).__name__)
        return None, None, None
    items_raw = met.get("items")
    items: list[float] | None = None
    if isinstance(items_raw, list):
        items = [safe_float(v) for v in items_raw]  # type: ignore[misc]
        if any(v is None for v in items):
            logger.warning("Dropping field 'met.items': non-numeric entries")
            items = None
    elif items_raw is not None:
        logger.warning("Dropping field 'met.items': expected a list")
    if not items:
        return None, None, None
    interval = _pick(met, "interval", safe_float)
    return items, _pick(met, "timestamp", safe_str) or None, (
        interval / 60 if interval else None
    )


def normalize_activity(payload: Payload | None) -> list[DayRecord]:
    """Convert daily-activity documents into workout fragments.

    ``active_min`` is high plus medium activity time.  The MET array keeps
    its own anchor and bin width; the class string is anchored at day start.

    Args:
        payload: Raw Oura response (page, pages or documents).

    Returns:
        One fragment per date, sorted by date.
    """
    by_day: dict[str, WorkoutData] = {}
    for doc in documents(payload):
        day = normalize_date(doc.get("day"))
        if day is None:
            logger.warning("Skipping activity document without a usable date: %r", doc.get("id"))
            continue
        high = _pick(doc, "high_activity_time", safe_float)
        medium = _pick(doc, "medium_activity_time", safe_float)
        active_min = None
        if high is not None or medium is not None:
            active_min = safe_int(((high or 0) + (medium or 0)) / 60)
        met_items, met_timestamp, met_interval = _met(doc)
        workout = WorkoutData(
            activity_score=_pick(doc, "score", safe_int),
            calories_active=_pick(doc, "active_calories", safe_int),
            steps=_pick(doc, "steps", safe_int),
            active_min=active_min,
            class_5min=_repack(doc, "class_5_min"),
            met_items=met_items,
            met_timestamp=met_timestamp,
            met_interval_min=met_interval,
        )
        if not workout.is_empty():
            by_day[day] = workout
    return [_fragment(day, workout=by_day[day]) for day in sorted(by_day)]


# ---------------------------------------------------------------------------
# Stress
# ---------------------------------------------------------------------------


def normalize_stress(payload: Payload | None) -> list[DayRecord]:
    """Convert daily-stress documents into stress fragments.

    The provider reports seconds; the canonical slot holds minutes.
    ``day_summary`` is passed through unchanged.

    Args:
        payload: Raw Oura response (page, pages or documents).

    Returns:
        One fragment per date, sorted by date.
    """
    by_day: dict[str, StressData] = {}
    for doc in documents(payload):
        day = normalize_date(doc.get("day"))
        if day is None:
            logger.warning("Skipping stress document without a usable date: %r", doc.get("id"))
            continue
        stress = StressData(
            stress_high=_seconds_to_minutes(doc, "stress_high"),
            recovery_high=_seconds_to_minutes(doc, "recovery_high"),
            day_summary=_pick(doc, "day_summary", safe_str) or None,
        )
        if not stress.is_empty():
            by_day[day] = stress
    return [_fragment(day, stress=by_day[day]) for day in sorted(by_day)]
