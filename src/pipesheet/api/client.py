"""Pipedrive API client - list, update and field definitions per entity type."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from ..config import settings

logger = logging.getLogger(__name__)

FIELD_ENDPOINTS = {
    "deals": "/dealFields",
    "persons": "/personFields",
    "organizations": "/organizationFields",
    "activities": "/activityFields",
    "leads": "/leadFields",
    "products": "/productFields",
}

# Leads only accept PATCH; everything else is updated with PUT.
UPDATE_METHODS = {"leads": "PATCH"}


class PipedriveError(Exception):
    """Base exception for Pipedrive API errors."""

    def __init__(self, message: str, status_code: int | None = None, response: dict | None = None):
        self.message = message
        self.status_code = status_code
        self.response = response
        super().__init__(self.message)


class PipedriveAuthError(PipedriveError):
    """Authentication error."""

    pass


class PipedriveRateLimitError(PipedriveError):
    """Rate limit exceeded."""

    pass


def _json_or_none(response: httpx.Response) -> dict | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return None


def _error_message(body: dict | None, fallback: str) -> str:
    if isinstance(body, dict):
        for key in ("error", "message", "error_info"):
            if body.get(key):
                return str(body[key])
    return fallback


class PipedriveClient:
    """Pipedrive REST client.

    Usage:
        async with PipedriveClient(api_token="...") as client:
            deals = await client.list_records("deals", filter_id=12)
            await client.update_record("deals", 42, {"title": "Renewal"})
    """

    def __init__(
        self,
        api_token: str | None = None,
        access_token: str | None = None,
        base_url: str | None = None,
        page_size: int | None = None,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.api_token = api_token or settings.api_token
        self.access_token = access_token or settings.access_token
        self.base_url = base_url or settings.api_base_url
        self.page_size = page_size or settings.page_size

        if not self.api_token and not self.access_token:
            raise PipedriveAuthError("No Pipedrive credentials. Set PIPESHEET_API_TOKEN or PIPESHEET_ACCESS_TOKEN")

        headers = {"Accept": "application/json"}
        params = {}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        else:
            params["api_token"] = self.api_token

        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            params=params,
            timeout=timeout or settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.close()

    async def close(self):
        """Close the HTTP client."""
        await self._client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        params: dict | None = None,
        json: dict | None = None,
    ) -> dict[str, Any]:
        """Make an API request and return the response envelope.

        Raises PipedriveError for transport failures, non-2xx responses and
        bodies reporting ``success: false``.
        """
        try:
            response = await self._client.request(method=method, url=path, params=params, json=json)
        except httpx.HTTPError as e:
            raise PipedriveError(f"Request failed: {e}") from e

        body = _json_or_none(response)

        if response.status_code == 401:
            raise PipedriveAuthError(_error_message(body, "Invalid API token or token expired"), 401, body)

        if response.status_code == 429:
            raise PipedriveRateLimitError("Rate limit exceeded. Wait and retry.", 429, body)

        if response.is_error:
            raise PipedriveError(
                _error_message(body, f"API error: {response.status_code}"),
                response.status_code,
                body,
            )

        if body is None:
            return {"success": True, "data": None}
        if body.get("success") is False:
            raise PipedriveError(_error_message(body, "Request was not successful"), response.status_code, body)
        return body

    async def list_records(
        self,
        entity_type: str,
        filter_id: int | str | None = None,
        limit: int = 0,
    ) -> list[dict]:
        """Fetch every record matching a saved filter (all records without one).

        ``limit`` caps the number of records when positive.
        """
        records: list[dict] = []
        start = 0
        while True:
            page_size = self.page_size
            if limit > 0:
                page_size = min(page_size, limit - len(records))
            params: dict[str, Any] = {"start": start, "limit": page_size}
            if filter_id not in (None, ""):
                params["filter_id"] = filter_id

            body = await self._request("GET", f"/{entity_type}", params=params)
            items = body.get("data") or []
            records.extend(item for item in items if isinstance(item, dict))

            pagination = (body.get("additional_data") or {}).get("pagination") or {}
            if limit > 0 and len(records) >= limit:
                return records[:limit]
            if not items or not pagination.get("more_items_in_collection"):
                return records
            start = pagination.get("next_start", start + len(items))

    async def get_record(self, entity_type: str, record_id: int | str) -> dict:
        """Fetch one record by ID."""
        body = await self._request("GET", f"/{entity_type}/{record_id}")
        data = body.get("data")
        return data if isinstance(data, dict) else {}

    async def update_record(self, entity_type: str, record_id: int | str, payload: dict) -> dict:
        """Update one record; returns the updated record."""
        method = UPDATE_METHODS.get(entity_type, "PUT")
        body = await self._request(method, f"/{entity_type}/{record_id}", json=payload)
        return body.get("data") or {}

    async def list_fields(self, entity_type: str) -> list[dict]:
        """Field definitions (key, name, field_type, options) for an entity type."""
        endpoint = FIELD_ENDPOINTS.get(entity_type)
        if not endpoint:
            raise PipedriveError(f"Unknown entity type: {entity_type}")
        body = await self._request("GET", endpoint, params={"limit": 500})
        return [item for item in body.get("data") or [] if isinstance(item, dict)]
