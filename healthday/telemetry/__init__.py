"""healthday telemetry core.

Ingests daily biometric telemetry from a wearable provider and uploaded
files, and reconciles it into one canonical record per (user, date).

Subpackages:
    adapters/  Oura normalizers + paginated client, JSON/CSV file import
    sync/      Provider sync coordinator, local-to-cloud migration

Core modules:
    base          Canonical day record and category types
    codec         Packed fixed-interval timeseries decoding
    reconcile     Merge engine and merge modes
    intraday      24-hour windowed view of one day
    events        Day-scoped event annotations
    config_loader Load/validate/hot-reload sync_config.yaml
    service       Store-backed merge-upsert operations
"""

from healthday.telemetry.base import (
    DayFragment,
    DayRecord,
    HeartData,
    HeartSample,
    SleepData,
    StressData,
    WorkoutData,
)
from healthday.telemetry.config_loader import SyncConfig, get_sync_config
from healthday.telemetry.reconcile import MergeMode, merge

__all__ = [
    "DayFragment",
    "DayRecord",
    "HeartData",
    "HeartSample",
    "SleepData",
    "StressData",
    "WorkoutData",
    "SyncConfig",
    "get_sync_config",
    "MergeMode",
    "merge",
]
