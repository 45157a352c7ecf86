from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Sequence

from backend.app.core.vendor_locks import VendorLocks
from backend.app.services.image_pipeline import HttpImagePipeline
from backend.app.services.reconciler import Reconciler
from backend.app.services.sync_log import SqlSyncLogSink, SyncResult
from backend.app.services.vehicle_store import SqlVehicleStore
from backend.app.services.vendor_feed import FeedError, VendorFeedClient
from backend.app.services.vendors import VendorConfig, build_vendor_registry, resolve_vendor

logger = logging.getLogger(__name__)


class VendorSyncService:
    """Entry point for syncing one vendor: resolve, lock, fetch, reconcile."""

    def __init__(
        self,
        reconciler: Reconciler,
        *,
        registry: Optional[Dict[str, VendorConfig]] = None,
        feed_client: Optional[VendorFeedClient] = None,
        locks: Optional[VendorLocks] = None,
    ):
        self.reconciler = reconciler
        self.registry = registry if registry is not None else build_vendor_registry()
        self.feed_client = feed_client or VendorFeedClient()
        self.locks = locks or VendorLocks()

    async def sync_vendor(
        self,
        vendor_id: str,
        vehicles: Optional[Sequence[Mapping[str, Any]]] = None,
    ) -> SyncResult:
        """Sync ``vendor_id`` from the supplied records, or from its scraper when none are given.

        Raises UnknownVendorError, InternalVendorError or SyncInProgressError
        before any record is read or written.
        """
        vendor = resolve_vendor(self.registry, vendor_id)
        async with self.locks.hold(vendor.vendor_id):
            if vehicles is None:
                try:
                    vehicles = await self.feed_client.fetch(vendor)
                except FeedError as exc:
                    logger.error("Vendor %s feed unavailable: %s", vendor.vendor_id, exc)
                    return self.reconciler.failed_run(vendor.vendor_id, vendor.vendor_name, str(exc))
                if not vehicles:
                    # never retire against an empty scrape
                    logger.warning("Vendor %s scraper returned no vehicles, skipping sync", vendor.vendor_id)
                    return self.reconciler.failed_run(
                        vendor.vendor_id,
                        vendor.vendor_name,
                        f"Scraper for {vendor.vendor_id} returned no vehicles",
                    )
                logger.info("Fetched %d vehicles from %s scraper", len(vehicles), vendor.vendor_name)

            return await self.reconciler.sync_vendor_inventory(
                vendor.vendor_id,
                vendor.vendor_name,
                vendor.grace_period_days,
                vendor.auto_remove_after_days,
                vehicles,
                normalizer=vendor.normalizer,
            )

    async def aclose(self) -> None:
        """Release the HTTP clients held by the feed client and image pipeline."""
        await self.feed_client.aclose()
        pipeline_close = getattr(self.reconciler.image_pipeline, "aclose", None)
        if pipeline_close is not None:
            await pipeline_close()


def build_vendor_sync_service() -> VendorSyncService:
    reconciler = Reconciler(
        SqlVehicleStore(),
        image_pipeline=HttpImagePipeline(),
        sync_log=SqlSyncLogSink(),
    )
    return VendorSyncService(reconciler)
