from __future__ import annotations

import asyncio

import httpx

from app.providers.base import (
    CatalogFetchError,
    CatalogSource,
    CatalogTimeoutError,
    RawCatalogEntry,
)


class OpenRouterCatalogSource(CatalogSource):
    def __init__(
        self,
        url: str,
        *,
        timeout_seconds: float = 10.0,
        user_agent: str = "AI-Energy-Calculator/1.0",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        super().__init__("openrouter")
        self.url = url
        self.timeout_seconds = timeout_seconds
        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": user_agent,
        }
        self._client = client
        self._owns_client = client is None
        self._lock = asyncio.Lock()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            async with self._lock:
                if self._client is None:
                    self._client = httpx.AsyncClient(timeout=self.timeout_seconds)
                    self._owns_client = True
        return self._client

    async def fetch(self) -> list[RawCatalogEntry]:
        client = await self._ensure_client()
        try:
            response = await asyncio.wait_for(
                client.get(self.url, headers=self.headers, timeout=self.timeout_seconds),
                timeout=self.timeout_seconds,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException) as exc:
            raise CatalogTimeoutError(
                f"{self.name} did not answer within {self.timeout_seconds:g}s"
            ) from exc
        except httpx.RequestError as exc:
            raise CatalogFetchError(f"{self.name} request failed: {exc}") from exc

        if not response.is_success:
            raise CatalogFetchError(f"{self.name} returned HTTP {response.status_code}")

        content_type = response.headers.get("content-type", "")
        if "application/json" not in content_type:
            raise CatalogFetchError(f"{self.name} returned non-JSON content ({content_type!r})")

        try:
            payload = response.json()
        except ValueError as exc:
            raise CatalogFetchError(f"{self.name} returned malformed JSON") from exc

        data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(data, list):
            raise CatalogFetchError(f"{self.name} payload has no 'data' array")

        entries: list[RawCatalogEntry] = []
        for item in data:
            if not isinstance(item, dict):
                continue
            name = item.get("name")
            if isinstance(name, str) and name.strip():
                entries.append(RawCatalogEntry(name=name))
        return entries

    async def close(self) -> None:
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None
