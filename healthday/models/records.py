"""Pydantic models for day records, imports and sync.

Record payloads stay loosely typed (``dict``) on the way in: the canonical
``DayRecord.from_dict`` drops bad fields instead of rejecting the request.
"""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import Field, model_validator

from healthday.models.base import HealthdayBase


# ---------- Records ----------

class RecordsBulkUpsert(HealthdayBase):
    records: list[dict[str, Any]]


class BulkUpsertResult(HealthdayBase):
    count: int


class DeleteResult(HealthdayBase):
    deleted: int


class DatesResponse(HealthdayBase):
    dates: list[str]


# ---------- File import ----------

class FileImportRequest(HealthdayBase):
    filename: str = Field(min_length=1, max_length=255)
    content: str


class ImportResult(HealthdayBase):
    imported: int


# ---------- Sync ----------

class ProviderSyncRequest(HealthdayBase):
    start_date: date
    end_date: date

    @model_validator(mode="after")
    def _check_range(self) -> ProviderSyncRequest:
        if self.end_date < self.start_date:
            raise ValueError("end_date must not be before start_date")
        return self


class EndpointErrorRead(HealthdayBase):
    endpoint: str
    error: str


class ProviderSyncResult(HealthdayBase):
    sleep: int = 0
    heart: int = 0
    workout: int = 0
    stress: int = 0
    errors: list[EndpointErrorRead] = Field(default_factory=list)
    needs_reauthorization: bool = False


class LocalSyncRequest(HealthdayBase):
    records: list[dict[str, Any]]


class LocalSyncResult(HealthdayBase):
    synced: int
