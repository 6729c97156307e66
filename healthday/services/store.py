"""Record store implementations.

The reconciliation engine never touches storage; ``HealthRecordService``
reads the stored record, merges, and writes it back through one of these.

    InMemoryRecordStore   process-local dict (single-user local mode, tests)
    PostgresRecordStore   asyncpg, one row per (user_id, date), JSONB slots

Writes replace the whole row for the key.  Read-merge-write is not atomic at
this layer; the service serializes it per (user, date).
"""

from __future__ import annotations

import abc
import copy
import json
import logging
from datetime import date
from typing import Any

import asyncpg

from healthday.services.database import get_pool
from healthday.telemetry.base import CATEGORIES, DayRecord

logger = logging.getLogger("healthday.store")


class RecordStore(abc.ABC):
    """Persistence for canonical day records, keyed by (user_id, date)."""

    @abc.abstractmethod
    async def upsert(self, user_id: str, record: DayRecord) -> None:
        """Write ``record``, replacing any stored record for its date."""

    @abc.abstractmethod
    async def get(self, user_id: str, day: str) -> DayRecord | None:
        """Return the stored record for ``day`` or None."""

    @abc.abstractmethod
    async def get_range(self, user_id: str, start: str, end: str) -> list[DayRecord]:
        """Return records with ``start <= date <= end``, sorted by date."""

    @abc.abstractmethod
    async def delete_all(self, user_id: str) -> int:
        """Delete every record for the user and return how many were removed."""

    @abc.abstractmethod
    async def list_dates(self, user_id: str) -> list[str]:
        """Return every stored date for the user, ascending."""


# ---------------------------------------------------------------------------
# In-memory
# ---------------------------------------------------------------------------


class InMemoryRecordStore(RecordStore):
    """Dict-backed store.  Records are copied in and out."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, DayRecord]] = {}

    async def upsert(self, user_id: str, record: DayRecord) -> None:
        self._records.setdefault(user_id, {})[record.date] = copy.deepcopy(record)

    async def get(self, user_id: str, day: str) -> DayRecord | None:
        record = self._records.get(user_id, {}).get(day)
        return copy.deepcopy(record) if record is not None else None

    async def get_range(self, user_id: str, start: str, end: str) -> list[DayRecord]:
        records = self._records.get(user_id, {})
        return [copy.deepcopy(records[d]) for d in sorted(records) if start <= d <= end]

    async def delete_all(self, user_id: str) -> int:
        return len(self._records.pop(user_id, {}))

    async def list_dates(self, user_id: str) -> list[str]:
        return sorted(self._records.get(user_id, {}))

    def __len__(self) -> int:
        return sum(len(days) for days in self._records.values())


# ---------------------------------------------------------------------------
# Postgres
# ---------------------------------------------------------------------------

_TABLE = "day_records"
_COLUMNS = ["user_id", "date", "source", *CATEGORIES, "events"]


def build_upsert_query(
    table: str,
    columns: list[str],
    conflict_columns: list[str],
    jsonb_columns: frozenset[str] = frozenset(),
) -> str:
    """Build a PostgreSQL ``INSERT ... ON CONFLICT DO UPDATE`` for whole-row writes.

    Args:
        table:            Target table name.
        columns:          All columns to insert.
        conflict_columns: Columns that define the primary key.
        jsonb_columns:    Columns whose parameter is a JSON string cast to JSONB.

    Returns:
        Parameterized SQL string.
    """
    placeholders = ", ".join(
        f"${i + 1}::jsonb" if col in jsonb_columns else f"${i + 1}"
        for i, col in enumerate(columns)
    )
    update_set = ", ".join(
        f"{col} = EXCLUDED.{col}" for col in columns if col not in conflict_columns
    )
    return (
        f"INSERT INTO {table} ({', '.join(columns)}) "
        f"VALUES ({placeholders}) "
        f"ON CONFLICT ({', '.join(conflict_columns)}) "
        f"DO UPDATE SET {update_set}, updated_at = NOW()"
    )


_UPSERT_SQL = build_upsert_query(
    _TABLE, _COLUMNS, ["user_id", "date"], frozenset([*CATEGORIES, "events"])
)


def _load_json(value: Any) -> Any:
    if value is None or not isinstance(value, str):
        return value
    return json.loads(value)


def record_from_row(row: Any) -> DayRecord:
    """Convert a ``day_records`` row into a ``DayRecord``."""
    raw: dict[str, Any] = {"date": row["date"], "source": row["source"]}
    for name in CATEGORIES:
        raw[name] = _load_json(row[name])
    raw["events"] = _load_json(row["events"]) or []
    return DayRecord.from_dict(raw)


def record_to_params(user_id: str, record: DayRecord) -> list[Any]:
    """Positional parameters for ``_UPSERT_SQL``."""
    data = record.to_dict()
    params: list[Any] = [user_id, date.fromisoformat(record.date), record.source]
    for name in CATEGORIES:
        params.append(json.dumps(data[name]) if name in data else None)
    params.append(json.dumps(data.get("events", [])))
    return params


class PostgresRecordStore(RecordStore):
    """asyncpg-backed store.

    Args:
        pool: Optional pool; defaults to the app-wide pool from
              ``healthday.services.database``.
    """

    def __init__(self, pool: asyncpg.Pool | None = None) -> None:
        self._pool = pool

    @property
    def pool(self) -> asyncpg.Pool:
        return self._pool or get_pool()

    async def upsert(self, user_id: str, record: DayRecord) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(_UPSERT_SQL, *record_to_params(user_id, record))

    async def get(self, user_id: str, day: str) -> DayRecord | None:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT * FROM {_TABLE} WHERE user_id = $1 AND date = $2",
                user_id,
                date.fromisoformat(day),
            )
        return record_from_row(row) if row is not None else None

    async def get_range(self, user_id: str, start: str, end: str) -> list[DayRecord]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT * FROM {_TABLE} WHERE user_id = $1 AND date BETWEEN $2 AND $3 "
                "ORDER BY date",
                user_id,
                date.fromisoformat(start),
                date.fromisoformat(end),
            )
        return [record_from_row(r) for r in rows]

    async def delete_all(self, user_id: str) -> int:
        async with self.pool.acquire() as conn:
            status = await conn.execute(f"DELETE FROM {_TABLE} WHERE user_id = $1", user_id)
        # asyncpg returns the command tag, e.g. "DELETE 12"
        deleted = int(status.split()[-1]) if status else 0
        logger.info("Deleted %d records for user %s", deleted, user_id)
        return deleted

    async def list_dates(self, user_id: str) -> list[str]:
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT date FROM {_TABLE} WHERE user_id = $1 ORDER BY date", user_id
            )
        return [r["date"].isoformat() for r in rows]
