"""
remote.py
Client for an optional remote table API (PostgREST style, e.g. a hosted Postgres).

Rows travel as plain JSON objects with the same columns as the local tables.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """Raised for any transport or HTTP failure of the remote table API."""


def _filter_params(filters: dict) -> dict[str, str]:
    params = {}
    for col, value in filters.items():
        if value is None:
            params[col] = "is.null"
        else:
            params[col] = f"eq.{value}"
    return params


class RemoteTableClient:
    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    def close(self) -> None:
        self._client.close()

    def _request(self, method: str, table: str, **kwargs) -> httpx.Response:
        try:
            response = self._client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPError as exc:
            raise RemoteError(f"{method} {table} failed: {exc}") from exc
        return response

    def select(self, table: str, filters: dict) -> list[dict[str, Any]]:
        params = {"select": "*", **_filter_params(filters)}
        response = self._request("GET", table, params=params)
        try:
            data = response.json()
        except ValueError as exc:
            raise RemoteError(f"GET {table} returned invalid JSON") from exc
        if not isinstance(data, list):
            raise RemoteError(f"GET {table} returned {type(data).__name__}, expected a list")
        return data

    def upsert(self, table: str, row: dict, key: tuple[str, ...]) -> None:
        self._request(
            "POST",
            table,
            params={"on_conflict": ",".join(key)},
            json=row,
            headers={"Prefer": "resolution=merge-duplicates,return=minimal"},
        )

    def delete(self, table: str, filters: dict) -> None:
        self._request("DELETE", table, params=_filter_params(filters))
