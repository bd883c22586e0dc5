"""HTTP transport for the remote service."""

from __future__ import annotations

from typing import Any, Protocol

import httpx

from aetherdeck.logging import get_logger

log = get_logger("remote.transport")


class Transport(Protocol):
    """Performs one HTTP exchange and returns the decoded JSON body.

    Implementations raise ``httpx.HTTPError`` for transport failures and
    non-success statuses, and ``ValueError`` for undecodable bodies.
    """

    async def send(
        self,
        method: str,
        target: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any: ...


class HttpxTransport:
    """Transport backed by a shared ``httpx.AsyncClient``.

    Timeouts are enforced by the RequestExecutor per attempt, so the client
    is created without its own timeout.
    """

    def __init__(
        self,
        base_url: str,
        *,
        headers: dict[str, str] | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=None)
        self._base_url = base_url.rstrip("/")
        self._headers = {"Content-Type": "application/json", **(headers or {})}

    @property
    def base_url(self) -> str:
        return self._base_url

    async def send(
        self,
        method: str,
        target: str,
        *,
        json: Any = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        url = f"{self._base_url}{target}"
        response = await self._client.request(
            method,
            url,
            json=json,
            headers={**self._headers, **(headers or {})},
        )
        log.debug("%s %s -> %d %s", method, url, response.status_code, response.reason_phrase)
        response.raise_for_status()
        return response.json()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()
