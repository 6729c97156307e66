"""Sync endpoints: pull from the provider, push client-held records."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter

from healthday.dependencies import CurrentUser, ProviderClient, RecordService
from healthday.models.records import (
    LocalSyncRequest,
    LocalSyncResult,
    ProviderSyncRequest,
    ProviderSyncResult,
)
from healthday.telemetry.sync.coordinator import SyncCoordinator

router = APIRouter(prefix="/sync", tags=["sync"])


@router.post("/provider", response_model=ProviderSyncResult)
async def sync_provider(
    user: CurrentUser,
    service: RecordService,
    client: ProviderClient,
    body: ProviderSyncRequest,
) -> Any:
    """Run one provider sync pass.

    Always 200: endpoint failures and an expired authorization are reported
    in the body (``errors``, ``needs_reauthorization``).
    """
    coordinator = SyncCoordinator(client, service, service.config)
    summary = await coordinator.sync_from_provider(user, body.start_date, body.end_date)
    return summary.to_dict()


@router.post("/local", response_model=LocalSyncResult)
async def sync_local(user: CurrentUser, service: RecordService, body: LocalSyncRequest) -> Any:
    """Merge client-held records; categories already stored win."""
    return {"synced": await service.sync_local_records(user, body.records)}
