"""Shared FastAPI dependencies injected into route handlers."""

from __future__ import annotations

from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request

from healthday.config import Settings, get_settings
from healthday.telemetry.adapters.client import OuraClient
from healthday.telemetry.config_loader import get_sync_config
from healthday.telemetry.service import HealthRecordService

# Single-user local mode when the caller sends no identity.
DEFAULT_USER_ID = "local"


async def get_user_id(x_user_id: str | None = Header(default=None)) -> str:
    """Resolve the caller's user id from ``X-User-Id``.

    Authentication happens upstream; this only reads the forwarded identity.
    """
    if x_user_id is None:
        return DEFAULT_USER_ID
    user_id = x_user_id.strip()
    if not user_id:
        raise HTTPException(status_code=400, detail="X-User-Id must not be empty")
    return user_id


def get_record_service(request: Request) -> HealthRecordService:
    """Return the app-wide record service created at startup.

    One instance per process so its per-date write locks are shared by all
    requests.
    """
    service: HealthRecordService | None = getattr(request.app.state, "record_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Record store not initialized")
    return service


def get_provider_client(
    settings: Annotated[Settings, Depends(get_settings)],
    x_provider_token: str | None = Header(default=None),
) -> OuraClient:
    """Build the provider client from the forwarded bearer token or settings."""
    token = (x_provider_token or "").strip() or settings.oura_personal_token or None
    return OuraClient(
        token,
        base_url=get_sync_config().base_url,
        timeout=settings.provider_timeout_seconds,
    )


# Annotated shortcuts for route signatures
CurrentUser = Annotated[str, Depends(get_user_id)]
AppSettings = Annotated[Settings, Depends(get_settings)]
RecordService = Annotated[HealthRecordService, Depends(get_record_service)]
ProviderClient = Annotated[OuraClient, Depends(get_provider_client)]
