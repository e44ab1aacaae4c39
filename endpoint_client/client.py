from __future__ import annotations

from typing import Any

import httpx

from config.defaults import DEFAULT_HTTP_TIMEOUT_SECONDS


class BotApiError(RuntimeError):
    pass


class BotApiClient:
    """Async client for the bot-api endpoint (config, memory and health actions)."""

    def __init__(
        self,
        base_url: str,
        *,
        timeout_seconds: float = DEFAULT_HTTP_TIMEOUT_SECONDS,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url
        self._client = httpx.AsyncClient(timeout=timeout_seconds, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, action: str, payload: dict | None = None) -> dict[str, Any]:
        try:
            resp = await self._client.request(method, self.base_url, params={"action": action}, json=payload)
        except httpx.HTTPError as exc:
            raise BotApiError(f"{action} request failed: {exc.__class__.__name__}: {exc}") from exc

        if resp.status_code >= 400:
            raise BotApiError(f"{action} returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as exc:
            raise BotApiError(f"{action} returned a non-JSON body") from exc

        if not isinstance(body, dict) or body.get("success") is not True:
            error = body.get("error") if isinstance(body, dict) else None
            raise BotApiError(f"{action} failed: {error or 'unexpected response'}")
        return body

    async def fetch_config(self) -> dict[str, Any]:
        body = await self._request("GET", "config")
        data = body.get("data")
        if not isinstance(data, dict):
            raise BotApiError("config response missing data")
        return data

    async def update_memory(self, summary: str, message_count: int) -> None:
        await self._request(
            "POST",
            "update-memory",
            {"summary": summary, "message_count": int(message_count)},
        )

    async def report_health(self, payload: dict) -> None:
        await self._request("POST", "health", payload)
