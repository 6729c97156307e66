"""Endpoints for canonical day records: query, manual upsert, import, intraday view."""

from __future__ import annotations

from datetime import date
from typing import Any

from fastapi import APIRouter, Body, HTTPException, Query

from healthday.dependencies import CurrentUser, RecordService
from healthday.models.records import (
    BulkUpsertResult,
    DatesResponse,
    DeleteResult,
    FileImportRequest,
    ImportResult,
    RecordsBulkUpsert,
)
from healthday.telemetry.base import DayRecord
from healthday.telemetry.errors import UnsupportedFormatError
from healthday.telemetry.intraday import build_intraday
from healthday.telemetry.reconcile import MergeMode

router = APIRouter(prefix="/records", tags=["records"])

_MIN_DATE = "0001-01-01"
_MAX_DATE = "9999-12-31"


# ---------- Queries ----------

@router.get("")
async def list_records(
    user: CurrentUser,
    service: RecordService,
    start: date | None = Query(default=None),
    end: date | None = Query(default=None),
) -> list[dict[str, Any]]:
    records = await service.get_range(
        user,
        start.isoformat() if start else _MIN_DATE,
        end.isoformat() if end else _MAX_DATE,
    )
    return [r.to_dict() for r in records]


@router.get("/dates", response_model=DatesResponse)
async def list_record_dates(user: CurrentUser, service: RecordService) -> Any:
    return {"dates": await service.list_dates(user)}


@router.get("/month/{year}/{month}")
async def get_month(
    year: int, month: int, user: CurrentUser, service: RecordService
) -> list[dict[str, Any]]:
    try:
        records = await service.get_month(user, year, month)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return [r.to_dict() for r in records]


@router.get("/{day}/intraday")
async def get_intraday(
    day: date,
    user: CurrentUser,
    service: RecordService,
    start_hour: float = Query(default=0, ge=0, lt=24),
) -> dict[str, Any]:
    record = await service.get_day(user, day.isoformat())
    if record is None:
        raise HTTPException(status_code=404, detail="No record for that date")
    return build_intraday(record, start_hour).to_dict()


# ---------- Writes ----------
# Manual edits replace whole categories so a user can set a metric back to 0.

@router.post("")
async def upsert_record(
    user: CurrentUser,
    service: RecordService,
    body: dict[str, Any] = Body(...),
) -> dict[str, Any]:
    fragment = DayRecord.from_dict(body)
    if not fragment.date:
        raise HTTPException(status_code=400, detail="date is required")
    merged = await service.upsert_day(user, fragment, MergeMode.CATEGORY_REPLACE)
    return merged.to_dict()


@router.put("", response_model=BulkUpsertResult)
async def bulk_upsert_records(
    user: CurrentUser, service: RecordService, body: RecordsBulkUpsert
) -> Any:
    fragments = [DayRecord.from_dict(raw) for raw in body.records]
    count = await service.upsert_days(
        user, [f for f in fragments if f.date], MergeMode.CATEGORY_REPLACE
    )
    return {"count": count}


@router.delete("", response_model=DeleteResult)
async def clear_records(user: CurrentUser, service: RecordService) -> Any:
    return {"deleted": await service.clear_all(user)}


@router.post("/import", response_model=ImportResult)
async def import_records(
    user: CurrentUser, service: RecordService, body: FileImportRequest
) -> Any:
    try:
        imported = await service.ingest_file(user, body.filename, body.content)
    except UnsupportedFormatError as exc:
        raise HTTPException(status_code=415, detail=str(exc)) from exc
    return {"imported": imported}
