from __future__ import annotations

import time
import uuid
from typing import Iterable, List, Optional, Sequence
from urllib.parse import urlparse

from backend.app.core.settings import settings
from backend.app.services.vehicle_store import VehicleRecord

NETWORK_SCHEMES = ("http", "https")


def is_raw_image_url(image: str, resolved_hosts: Sequence[str] = settings.resolved_image_hosts) -> bool:
    """True for a vendor-hosted URL that has not been ingested into the image store."""
    parsed = urlparse((image or "").strip())
    if parsed.scheme.lower() not in NETWORK_SCHEMES or not parsed.netloc:
        return False
    host = (parsed.hostname or "").lower()
    return not any(host == resolved or host.endswith("." + resolved) for resolved in resolved_hosts)


def needs_image_processing(vehicle: VehicleRecord, resolved_hosts: Sequence[str] = settings.resolved_image_hosts) -> bool:
    return bool(vehicle.images) and is_raw_image_url(vehicle.images[0], resolved_hosts)


def collect_image_batch(
    vehicles: Iterable[VehicleRecord],
    resolved_hosts: Sequence[str] = settings.resolved_image_hosts,
) -> List[str]:
    batch: List[str] = []
    seen = set()
    for vehicle in vehicles:
        if vehicle.id in seen:
            continue
        if needs_image_processing(vehicle, resolved_hosts):
            batch.append(vehicle.id)
            seen.add(vehicle.id)
    return batch


def build_job_id(vendor_id: str, now_ms: Optional[int] = None) -> str:
    timestamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"{vendor_id}-sync-{timestamp}-{uuid.uuid4().hex[:9]}"
