"""Source adapters for healthday.

Each adapter turns one source's payloads into ``DayRecord`` fragments:

    oura    Oura API v2 collection normalizers (pure)
    client  Paginated Oura HTTP client (httpx)
    files   JSON / CSV uploads
"""

from typing import Any, Callable

from healthday.telemetry.adapters.client import OuraClient
from healthday.telemetry.adapters.files import import_file, normalize_csv, normalize_json
from healthday.telemetry.adapters.oura import (
    normalize_activity,
    normalize_heart_rate,
    normalize_sleep,
    normalize_stress,
)
from healthday.telemetry.base import DayRecord

__all__ = [
    "OuraClient",
    "import_file",
    "normalize_activity",
    "normalize_csv",
    "normalize_heart_rate",
    "normalize_json",
    "normalize_sleep",
    "normalize_stress",
    "get_normalizer",
]

Normalizer = Callable[[Any], list[DayRecord]]

# Registry: endpoint name (sync_config.yaml) → normalizer
NORMALIZER_REGISTRY: dict[str, Normalizer] = {
    "sleep_periods": normalize_sleep,
    "daily_sleep": normalize_sleep,
    "heartrate": normalize_heart_rate,
    "daily_activity": normalize_activity,
    "daily_stress": normalize_stress,
}


def get_normalizer(endpoint_name: str) -> Normalizer:
    """Return the normalizer for a configured endpoint.

    Args:
        endpoint_name: e.g. 'sleep_periods', 'heartrate', 'daily_stress'

    Raises:
        KeyError: If no normalizer is registered for the endpoint.
    """
    if endpoint_name not in NORMALIZER_REGISTRY:
        raise KeyError(
            f"No normalizer registered for endpoint '{endpoint_name}'. "
            f"Available: {list(NORMALIZER_REGISTRY)}"
        )
    return NORMALIZER_REGISTRY[endpoint_name]
