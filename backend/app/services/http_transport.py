from __future__ import annotations

from typing import Any, Mapping, Optional, Protocol

import httpx


class AsyncTransport(Protocol):
    async def post(self, url: str, payload: Mapping[str, Any], *, timeout: float) -> httpx.Response: ...

    async def close(self) -> None: ...


class HttpxTransport:
    """JSON POSTs over a pooled httpx client; ``url`` may be relative to ``base_url``."""

    def __init__(self, base_url: str = "", *, client: Optional[httpx.AsyncClient] = None):
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=None)

    async def post(self, url: str, payload: Mapping[str, Any], *, timeout: float) -> httpx.Response:
        return await self._client.post(url, json=dict(payload), timeout=timeout)

    async def close(self) -> None:
        await self._client.aclose()
