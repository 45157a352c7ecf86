from __future__ import annotations

from typing import Optional, Protocol, Sequence

import httpx

from backend.app.core.settings import settings
from backend.app.services.http_transport import AsyncTransport, HttpxTransport


class ImagePipelineError(Exception):
    """Raised when the image processor cannot be reached."""


class ImagePipeline(Protocol):
    async def enqueue(self, job_id: str, vendor_name: str, vehicle_ids: Sequence[str]) -> bool: ...


class HttpImagePipeline:
    """Hands vehicle ids to the image processor worker; processing continues after we return."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        batch_size: Optional[int] = None,
        timeout: float = 10.0,
        transport: Optional[AsyncTransport] = None,
    ):
        self.base_url = (base_url or settings.image_processor_url).rstrip("/")
        self.batch_size = batch_size or settings.image_batch_size
        self.timeout = timeout
        self._transport = transport or HttpxTransport(self.base_url)
        self._owns_transport = transport is None

    async def aclose(self) -> None:
        if self._owns_transport:
            await self._transport.close()

    async def enqueue(self, job_id: str, vendor_name: str, vehicle_ids: Sequence[str]) -> bool:
        payload = {
            "vehicleIds": list(vehicle_ids),
            "batchSize": self.batch_size,
            "jobId": job_id,
            "vendorName": vendor_name,
        }
        try:
            response = await self._transport.post("/api/process-images", payload, timeout=self.timeout)
        except httpx.HTTPError as exc:
            raise ImagePipelineError(f"Image processor unreachable: {exc}") from exc
        return response.is_success
