"""Provider sync coordinator.

Walks the configured endpoints strictly in order, fetches every page of the
date range, normalizes, and merges the fragments into the store through
``HealthRecordService``.

A per-endpoint failure is recorded and the pass continues.  An authorization
failure ends the pass immediately; later endpoints are not called.  The pass
always returns a ``SyncSummary``; failures while normalizing or storing an
endpoint's pages are recorded against that endpoint as well.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any

from healthday.telemetry.adapters import get_normalizer
from healthday.telemetry.adapters.client import OuraClient
from healthday.telemetry.base import CATEGORIES
from healthday.telemetry.config_loader import SyncConfig, get_sync_config
from healthday.telemetry.errors import AuthorizationExpiredError, ProviderResponseError
from healthday.telemetry.service import HealthRecordService

logger = logging.getLogger("healthday.telemetry.sync.coordinator")


@dataclass
class EndpointError:
    endpoint: str
    error: str
    status_code: int | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"endpoint": self.endpoint, "error": self.error}


@dataclass
class SyncSummary:
    """Outcome of one sync pass.

    Attributes:
        counts:                Fragments written per category.
        errors:                One entry per failed endpoint.
        needs_reauthorization: True when the pass stopped on an auth failure.
    """

    counts: dict[str, int] = field(default_factory=lambda: {c: 0 for c in CATEGORIES})
    errors: list[EndpointError] = field(default_factory=list)
    needs_reauthorization: bool = False

    @property
    def total(self) -> int:
        return sum(self.counts.values())

    def to_dict(self) -> dict[str, Any]:
        return {
            **self.counts,
            "errors": [e.to_dict() for e in self.errors],
            "needs_reauthorization": self.needs_reauthorization,
        }


class SyncCoordinator:
    """Drive one provider sync pass for a user.

    Args:
        client:  Paginated provider client.
        service: Record service used for merge-upserts.
        config:  Sync config (endpoint order; default: global config).
    """

    def __init__(
        self,
        client: OuraClient,
        service: HealthRecordService,
        config: SyncConfig | None = None,
    ) -> None:
        self.client = client
        self.service = service
        self.config = config or get_sync_config()

    async def sync_from_provider(self, user_id: str, start: date, end: date) -> SyncSummary:
        """Sync every active endpoint for ``start``..``end`` inclusive.

        Returns:
            Counts per category, per-endpoint errors, and whether the user
            must re-authorize.

        Raises:
            ValueError: If ``end`` is before ``start``.
        """
        if end < start:
            raise ValueError(f"end {end} is before start {start}")

        summary = SyncSummary()
        for endpoint in self.config.active_endpoints:
            try:
                pages = await self.client.fetch_all(endpoint, start, end)
            except AuthorizationExpiredError as exc:
                logger.warning("Sync stopped for user %s: %s", user_id, exc)
                summary.needs_reauthorization = True
                summary.errors.append(EndpointError(endpoint.name, str(exc), 401))
                break
            except ProviderResponseError as exc:
                logger.warning("Endpoint %s failed for user %s: %s", endpoint.name, user_id, exc)
                summary.errors.append(
                    EndpointError(endpoint.name, str(exc), exc.status_code)
                )
                continue

            try:
                fragments = get_normalizer(endpoint.name)(pages)
                written = await self.service.upsert_days(user_id, fragments)
            except Exception as exc:
                logger.exception("Endpoint %s could not be stored for user %s", endpoint.name, user_id)
                summary.errors.append(EndpointError(endpoint.name, f"{type(exc).__name__}: {exc}"))
                continue
            summary.counts[endpoint.category] += written
            logger.debug("Endpoint %s: %d fragments", endpoint.name, written)

        logger.info(
            "Sync for user %s %s..%s: counts=%s errors=%d reauth=%s",
            user_id,
            start,
            end,
            summary.counts,
            len(summary.errors),
            summary.needs_reauthorization,
        )
        return summary
