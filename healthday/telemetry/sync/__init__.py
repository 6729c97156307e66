"""Provider sync and local-to-cloud migration."""

from healthday.telemetry.sync.coordinator import EndpointError, SyncCoordinator, SyncSummary
from healthday.telemetry.sync.migration import migrate_records

__all__ = ["EndpointError", "SyncCoordinator", "SyncSummary", "migrate_records"]
