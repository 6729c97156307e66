"""Shared fixtures and mock provider responses for telemetry tests."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Callable

import httpx
import pytest

from healthday.services.store import InMemoryRecordStore
from healthday.telemetry.adapters.client import OuraClient
from healthday.telemetry.base import DayRecord, HeartData, SleepData, WorkoutData
from healthday.telemetry.config_loader import SyncConfig, load_sync_config
from healthday.telemetry.service import HealthRecordService

# Fixtures directory
FIXTURES_DIR = Path(__file__).parent / "fixtures"

TEST_USER_ID = "user-123"
TEST_DATE = "2024-03-01"


def load_fixture(name: str) -> Any:
    return json.loads((FIXTURES_DIR / name).read_text())


# ---------------------------------------------------------------------------
# Config / store fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def sync_config() -> SyncConfig:
    """Load the real sync config for tests."""
    return load_sync_config()


@pytest.fixture
def store() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def service(store: InMemoryRecordStore, sync_config: SyncConfig) -> HealthRecordService:
    return HealthRecordService(store, sync_config)


# ---------------------------------------------------------------------------
# JSON fixture loaders
# ---------------------------------------------------------------------------


@pytest.fixture
def oura_sleep_raw() -> dict:
    return load_fixture("oura_sleep_periods.json")


@pytest.fixture
def oura_heartrate_pages() -> list[dict]:
    return [load_fixture("oura_heartrate_page1.json"), load_fixture("oura_heartrate_page2.json")]


@pytest.fixture
def oura_activity_raw() -> dict:
    return load_fixture("oura_daily_activity.json")


@pytest.fixture
def oura_stress_raw() -> dict:
    return load_fixture("oura_daily_stress.json")


# ---------------------------------------------------------------------------
# Canonical record fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def stored_day() -> DayRecord:
    """A realistic stored record with sleep and heart data."""
    return DayRecord(
        date=TEST_DATE,
        source="oura",
        sleep=SleepData(
            duration_hours=7.25,
            efficiency=90,
            deep_min=90,
            rem_min=105,
            light_min=240,
            awake_min=45,
            readiness_score=84,
        ),
        heart=HeartData(resting_hr=52, hrv_avg=48.5),
    )


@pytest.fixture
def workout_fragment() -> DayRecord:
    return DayRecord(
        date=TEST_DATE,
        source="csv",
        workout=WorkoutData(steps=8200, calories_active=410),
    )


# ---------------------------------------------------------------------------
# Mock provider transport
# ---------------------------------------------------------------------------


class ProviderStub:
    """Route-based stand-in for the provider API, recording every request.

    ``routes`` maps a URL path to either a list of JSON pages (served in
    order, one per request) or a bare status code.
    """

    def __init__(self, routes: dict[str, list[dict] | int]) -> None:
        self.routes = routes
        self.requests: list[httpx.Request] = []
        self._served: dict[str, int] = {}

    @property
    def paths(self) -> list[str]:
        return [r.url.path for r in self.requests]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"detail": "Not Found"})
        if isinstance(route, int):
            return httpx.Response(route, json={"detail": f"status {route}"})
        index = self._served.get(request.url.path, 0)
        self._served[request.url.path] = index + 1
        return httpx.Response(200, json=route[min(index, len(route) - 1)])


@pytest.fixture
def make_client() -> Callable[..., tuple[OuraClient, ProviderStub]]:
    """Build an ``OuraClient`` backed by ``httpx.MockTransport``."""

    def _make(
        routes: dict[str, list[dict] | int], token: str | None = "test-token"
    ) -> tuple[OuraClient, ProviderStub]:
        stub = ProviderStub(routes)
        http = httpx.AsyncClient(transport=httpx.MockTransport(stub))
        return OuraClient(token, base_url="https://api.ouraring.com", http_client=http), stub

    return _make


@pytest.fixture
def full_provider_routes(
    oura_sleep_raw: dict,
    oura_heartrate_pages: list[dict],
    oura_activity_raw: dict,
    oura_stress_raw: dict,
) -> dict[str, list[dict] | int]:
    return {
        "/v2/usercollection/sleep": [oura_sleep_raw],
        "/v2/usercollection/heartrate": oura_heartrate_pages,
        "/v2/usercollection/daily_activity": [oura_activity_raw],
        "/v2/usercollection/daily_stress": [oura_stress_raw],
    }
