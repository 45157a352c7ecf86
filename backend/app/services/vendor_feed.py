from __future__ import annotations

import asyncio
import random
from typing import Any, Dict, List, Optional

import httpx

from backend.app.services.http_transport import AsyncTransport, HttpxTransport
from backend.app.services.vendors import VendorConfig

RETRYABLE_STATUS = {429, 500, 502, 503, 504}


class FeedError(Exception):
    """Raised when a vendor's scraped feed cannot be retrieved."""


class VendorFeedClient:
    """Fetches the latest scraped inventory for a vendor from its scraper worker."""

    def __init__(
        self,
        *,
        timeout: float = 120.0,
        max_attempts: int = 2,
        backoff_base: float = 0.5,
        transport: Optional[AsyncTransport] = None,
    ):
        self.timeout = timeout
        self.max_attempts = max(1, max_attempts)
        self.backoff_base = backoff_base
        self._transport = transport
        self._owns_transport = transport is None

    async def aclose(self) -> None:
        if self._owns_transport and self._transport is not None:
            await self._transport.close()
            self._transport = None

    def _http(self) -> AsyncTransport:
        if self._transport is None:
            self._transport = HttpxTransport()
        return self._transport

    async def fetch(self, vendor: VendorConfig) -> List[Any]:
        """Return the raw feed entries; malformed entries are left for the reconciler to skip."""
        if not vendor.scraper_url:
            raise FeedError(f"No scraper configured for vendor {vendor.vendor_id}")
        payload: Dict[str, Any] = {}
        if vendor.dealer_url:
            payload = {"dealerUrl": vendor.dealer_url, "dealerId": vendor.vendor_id, "dealerName": vendor.vendor_name}

        body = await self._post(vendor.scraper_url, payload)
        if body.get("success") is False:
            raise FeedError(body.get("error") or f"Scraper reported failure for {vendor.vendor_id}")
        if "vehicles" not in body:
            raise FeedError(f"Scraper for {vendor.vendor_id} returned no vehicles payload")
        vehicles = body["vehicles"]
        if not isinstance(vehicles, list):
            raise FeedError(f"Scraper for {vendor.vendor_id} returned malformed vehicles payload")
        return vehicles

    async def _post(self, url: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        attempts = 0
        last_error: Optional[str] = None
        while attempts < self.max_attempts:
            try:
                response = await self._http().post(url, payload, timeout=self.timeout)
            except httpx.RequestError as exc:
                last_error = str(exc)
                await self._maybe_wait(attempts)
                attempts += 1
                continue

            if response.status_code in RETRYABLE_STATUS:
                last_error = f"Scraper returned {response.status_code} for {url}"
                await self._maybe_wait(attempts)
                attempts += 1
                continue

            try:
                response.raise_for_status()
            except httpx.HTTPStatusError as exc:
                raise FeedError(str(exc)) from exc

            try:
                body = response.json()
            except ValueError as exc:
                raise FeedError("Invalid JSON from scraper") from exc
            if not isinstance(body, dict):
                raise FeedError("Unexpected scraper response shape")
            return body

        raise FeedError(last_error or "Scraper request failed")

    async def _maybe_wait(self, attempt: int) -> None:
        if attempt >= self.max_attempts - 1 or self.backoff_base <= 0:
            return
        delay = self.backoff_base * (2 ** attempt)
        jitter = random.uniform(0, 0.3)
        await asyncio.sleep(delay + jitter)
