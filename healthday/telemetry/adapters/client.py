"""Paginated client for the Oura API v2 collection endpoints.

The client only fetches; it never normalizes or stores.  Token exchange and
refresh happen elsewhere: callers hand in a valid bearer token, or None.

    async with httpx.AsyncClient(timeout=30) as http:
        client = OuraClient(access_token, http_client=http)
        pages = await client.fetch_all(config.endpoint("heartrate"), start, end)

Failures map onto the telemetry error taxonomy:
    401                      → AuthorizationExpiredError
    other non-2xx            → ProviderResponseError (with status_code)
    transport / invalid JSON → ProviderResponseError
"""

from __future__ import annotations

import logging
from datetime import date
from typing import Any, AsyncIterator

import httpx

from healthday.telemetry.config_loader import EndpointConfig
from healthday.telemetry.errors import AuthorizationExpiredError, ProviderResponseError

logger = logging.getLogger("healthday.telemetry.adapters.client")

_DEFAULT_BASE_URL = "https://api.ouraring.com"
_MAX_PAGES = 1000


def date_bounds(endpoint: EndpointConfig, start: date, end: date) -> dict[str, str]:
    """Build the date-range query for an endpoint.

    The heart-rate collection takes full datetimes; all others take dates.
    """
    if endpoint.datetime_bounds:
        return {
            "start_datetime": f"{start.isoformat()}T00:00:00+00:00",
            "end_datetime": f"{end.isoformat()}T23:59:59+00:00",
        }
    return {"start_date": start.isoformat(), "end_date": end.isoformat()}


class OuraClient:
    """Fetch collection pages following ``next_token`` until exhausted.

    Args:
        access_token: Bearer token, or None when the user is not connected.
        base_url:     API root.
        http_client:  Optional pre-configured ``httpx.AsyncClient`` (tests
                      inject one built on ``httpx.MockTransport``).
        timeout:      Timeout in seconds when the client creates its own
                      ``httpx.AsyncClient``.
    """

    def __init__(
        self,
        access_token: str | None,
        base_url: str = _DEFAULT_BASE_URL,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._access_token = access_token
        self._base_url = base_url.rstrip("/")
        self._http_client = http_client
        self._timeout = timeout

    def _build_headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._access_token}"}

    async def _get_page(
        self, http: httpx.AsyncClient, endpoint: EndpointConfig, params: dict[str, str]
    ) -> dict[str, Any]:
        url = f"{self._base_url}{endpoint.path}"
        try:
            response = await http.get(url, params=params, headers=self._build_headers())
        except httpx.HTTPError as exc:
            raise ProviderResponseError(endpoint.name, f"request failed: {exc}") from exc

        if response.status_code == 401:
            raise AuthorizationExpiredError(endpoint.name, response.text[:200])
        if response.is_error:
            raise ProviderResponseError(
                endpoint.name,
                f"{response.status_code} {response.text[:200]}".strip(),
                status_code=response.status_code,
            )
        try:
            page = response.json()
        except ValueError as exc:
            raise ProviderResponseError(endpoint.name, "response is not valid JSON") from exc
        if not isinstance(page, dict) or not isinstance(page.get("data", []), list):
            raise ProviderResponseError(endpoint.name, "response has no 'data' array")
        return page

    async def iter_pages(
        self, endpoint: EndpointConfig, start: date, end: date
    ) -> AsyncIterator[dict[str, Any]]:
        """Yield each page of ``endpoint`` for the date range, in order.

        Raises:
            AuthorizationExpiredError: No token, or the provider answered 401.
            ProviderResponseError:     Any other failure.
        """
        if not self._access_token:
            raise AuthorizationExpiredError(endpoint.name, "no access token")

        params = date_bounds(endpoint, start, end)
        if self._http_client is not None:
            async for page in self._paginate(self._http_client, endpoint, params):
                yield page
            return
        async with httpx.AsyncClient(timeout=self._timeout) as http:
            async for page in self._paginate(http, endpoint, params):
                yield page

    async def _paginate(
        self, http: httpx.AsyncClient, endpoint: EndpointConfig, params: dict[str, str]
    ) -> AsyncIterator[dict[str, Any]]:
        next_token: str | None = None
        for page_number in range(1, _MAX_PAGES + 1):
            page_params = dict(params)
            if next_token:
                page_params["next_token"] = next_token
            page = await self._get_page(http, endpoint, page_params)
            logger.debug(
                "%s page %d: %d documents", endpoint.name, page_number, len(page.get("data", []))
            )
            yield page
            next_token = page.get("next_token") or None
            if not next_token:
                return
        raise ProviderResponseError(endpoint.name, f"pagination exceeded {_MAX_PAGES} pages")

    async def fetch_all(
        self, endpoint: EndpointConfig, start: date, end: date
    ) -> list[dict[str, Any]]:
        """Return every page for the range as a list."""
        return [page async for page in self.iter_pages(endpoint, start, end)]
