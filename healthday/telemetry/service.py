"""Store-backed record operations.

``HealthRecordService`` is the single write path: every fragment, whether it
came from the provider, an uploaded file or a client push, is read, merged
and written back here.  Read-merge-write for one (user, date) is serialized
with an in-process lock; distinct dates run in parallel up to
``import.max_concurrent_upserts``.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
import weakref
from datetime import MAXYEAR, MINYEAR
from typing import Any, Iterable

from healthday.services.store import RecordStore
from healthday.telemetry.adapters.files import import_file
from healthday.telemetry.base import DayRecord
from healthday.telemetry.config_loader import SyncConfig, get_sync_config
from healthday.telemetry.reconcile import MergeMode, merge, require_date

logger = logging.getLogger("healthday.telemetry.service")


class HealthRecordService:
    """Merge-upsert and query canonical day records for a user.

    Args:
        store:  Record store implementation.
        config: Sync config (concurrency limit, CSV aliases).
    """

    def __init__(self, store: RecordStore, config: SyncConfig | None = None) -> None:
        self.store = store
        self.config = config or get_sync_config()
        self._locks: weakref.WeakValueDictionary[tuple[str, str], asyncio.Lock] = (
            weakref.WeakValueDictionary()
        )

    def _lock_for(self, user_id: str, day: str) -> asyncio.Lock:
        key = (user_id, day)
        lock = self._locks.get(key)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[key] = lock
        return lock

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    async def upsert_day(
        self,
        user_id: str,
        fragment: DayRecord,
        mode: MergeMode = MergeMode.TRUTHY_WINS,
    ) -> DayRecord:
        """Merge one fragment into the stored record for its date.

        Returns:
            The record as written.

        Raises:
            InvalidFragmentError: If the fragment has no date.
        """
        day = require_date(fragment)
        lock = self._lock_for(user_id, day)
        async with lock:
            existing = await self.store.get(user_id, day)
            merged = merge(existing, fragment, mode)
            await self.store.upsert(user_id, merged)
        return merged

    async def upsert_days(
        self,
        user_id: str,
        fragments: Iterable[DayRecord],
        mode: MergeMode = MergeMode.TRUTHY_WINS,
    ) -> int:
        """Merge many fragments; distinct dates are written concurrently.

        Every fragment is validated before anything is written, so a payload
        with a dateless entry is rejected as a whole.  Fragments sharing a
        date are applied in payload order.

        Returns:
            Number of fragments applied.

        Raises:
            InvalidFragmentError: If any fragment has no date.
        """
        batch = list(fragments)
        for fragment in batch:
            require_date(fragment)
        if not batch:
            return 0

        by_day: dict[str, list[DayRecord]] = {}
        for fragment in batch:
            by_day.setdefault(fragment.date, []).append(fragment)

        semaphore = asyncio.Semaphore(self.config.imports.max_concurrent_upserts)

        async def apply(day_fragments: list[DayRecord]) -> None:
            async with semaphore:
                for fragment in day_fragments:
                    await self.upsert_day(user_id, fragment, mode)

        results = await asyncio.gather(
            *(apply(group) for group in by_day.values()), return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        logger.info(
            "Upserted %d fragments across %d dates for user %s (%s)",
            len(batch),
            len(by_day),
            user_id,
            MergeMode(mode).value,
        )
        return len(batch)

    async def ingest_file(self, user_id: str, filename: str, text: str) -> int:
        """Parse an uploaded file and merge its fragments.

        Raises:
            UnsupportedFormatError: The file is rejected; nothing is written.
        """
        fragments = import_file(filename, text, self.config)
        return await self.upsert_days(user_id, fragments)

    async def sync_local_records(
        self, user_id: str, records: Iterable[DayRecord | dict[str, Any]]
    ) -> int:
        """Copy client-held records into the store; stored categories win.

        Entries without a usable date are skipped.
        """
        fragments: list[DayRecord] = []
        for raw in records:
            record = raw if isinstance(raw, DayRecord) else DayRecord.from_dict(raw)
            if not record.date:
                logger.warning("Skipping local record without a date")
                continue
            fragments.append(record)
        return await self.upsert_days(user_id, fragments, MergeMode.CLOUD_AUTHORITATIVE)

    async def clear_all(self, user_id: str) -> int:
        deleted = await self.store.delete_all(user_id)
        logger.info("Cleared %d records for user %s", deleted, user_id)
        return deleted

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_day(self, user_id: str, day: str) -> DayRecord | None:
        return await self.store.get(user_id, day)

    async def get_range(self, user_id: str, start: str, end: str) -> list[DayRecord]:
        return await self.store.get_range(user_id, start, end)

    async def get_month(self, user_id: str, year: int, month: int) -> list[DayRecord]:
        """Return the month's records ordered by date ascending.

        Raises:
            ValueError: If ``year`` is not 1-9999 or ``month`` is not 1-12.
        """
        if not MINYEAR <= year <= MAXYEAR:
            raise ValueError(f"year must be {MINYEAR}-{MAXYEAR}, got {year}")
        if not 1 <= month <= 12:
            raise ValueError(f"month must be 1-12, got {month}")
        last = calendar.monthrange(year, month)[1]
        return await self.store.get_range(
            user_id, f"{year:04d}-{month:02d}-01", f"{year:04d}-{month:02d}-{last:02d}"
        )

    async def list_dates(self, user_id: str) -> list[str]:
        return await self.store.list_dates(user_id)
