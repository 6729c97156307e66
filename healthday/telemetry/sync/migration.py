"""One-shot migration of local records into the cloud store.

Used when a user who kept data locally signs in.  Whatever the cloud store
already holds for a category wins; local data only fills the gaps.
"""

from __future__ import annotations

import logging

from healthday.services.store import RecordStore
from healthday.telemetry.reconcile import MergeMode
from healthday.telemetry.service import HealthRecordService

logger = logging.getLogger("healthday.telemetry.sync.migration")


async def migrate_records(
    source_store: RecordStore,
    target_store: RecordStore,
    user_id: str,
    source_user_id: str | None = None,
) -> int:
    """Copy every record for a user from ``source_store`` into ``target_store``.

    Args:
        source_store:   Local store to read from.  Left unchanged.
        target_store:   Cloud store to merge into.
        user_id:        Owner of the records in the target store.
        source_user_id: Owner key in the source store, if different.

    Returns:
        Number of records migrated.
    """
    owner = source_user_id or user_id
    dates = await source_store.list_dates(owner)
    if not dates:
        return 0
    records = await source_store.get_range(owner, dates[0], dates[-1])
    service = HealthRecordService(target_store)
    migrated = await service.upsert_days(user_id, records, MergeMode.CLOUD_AUTHORITATIVE)
    logger.info("Migrated %d local records for user %s", migrated, user_id)
    return migrated
