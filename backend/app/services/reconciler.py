"""Vendor inventory reconciliation.

One run takes a vendor's freshly scraped feed and brings the stored
inventory for that vendor in line with it:

* every feed record is matched against the vendor's stored vehicles and
  either created or refreshed;
* every stored vehicle the feed no longer lists is retired in three tiers
  (still visible, hidden, removed) driven by ``last_seen_from_vendor``;
* vehicles whose images are still raw vendor URLs are handed to the image
  pipeline in one batch.

Runs for one vendor must not interleave; see ``VendorSyncService``.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from decimal import Decimal
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Sequence, Set, Union

from backend.app.core.settings import settings
from backend.app.normalizers import generic_dealer
from backend.app.normalizers._vendor_common import (
    AUTHORITATIVE_FIELDS,
    Normalizer,
    ValidationError,
    VendorRecord,
)
from backend.app.services.image_needs import build_job_id, collect_image_batch, is_raw_image_url
from backend.app.services.image_pipeline import ImagePipeline
from backend.app.services.matcher import match
from backend.app.services.sync_log import SyncLogSink, SyncResult
from backend.app.services.vehicle_store import (
    INTERNAL_VENDOR_ID,
    StoreError,
    StoreRetryableError,
    VehicleRecord,
    VehicleStore,
)

logger = logging.getLogger(__name__)

DEFAULT_GRACE_PERIOD_DAYS = 3
DEFAULT_AUTO_REMOVE_AFTER_DAYS = 7
ONE_DAY = timedelta(days=1)

RawVendorRecord = Union[VendorRecord, Mapping[str, Any]]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass(frozen=True)
class RetirementTier:
    vendor_status: str
    sync_status: str
    is_published: bool

    @property
    def removed(self) -> bool:
        return self.vendor_status == "removed"


VISIBLE_UNLISTED = RetirementTier("unlisted", "pending_removal", True)
HIDDEN_UNLISTED = RetirementTier("unlisted", "pending_removal", False)
REMOVED = RetirementTier("removed", "synced", False)


@dataclass(frozen=True)
class RetirementPolicy:
    grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS
    auto_remove_after_days: int = DEFAULT_AUTO_REMOVE_AFTER_DAYS

    def __post_init__(self) -> None:
        if self.grace_period_days < 0 or self.auto_remove_after_days < 0:
            raise ValueError("Retirement periods must be non-negative")
        if self.auto_remove_after_days < self.grace_period_days:
            raise ValueError(
                f"auto_remove_after_days ({self.auto_remove_after_days}) must be >= "
                f"grace_period_days ({self.grace_period_days})"
            )

    def tier_for(self, days_since_last_seen: int) -> RetirementTier:
        if days_since_last_seen < self.grace_period_days:
            return VISIBLE_UNLISTED
        if days_since_last_seen < self.auto_remove_after_days:
            return HIDDEN_UNLISTED
        return REMOVED

    def days_since_last_seen(self, vehicle: VehicleRecord, now: datetime) -> int:
        last_seen = vehicle.last_seen_from_vendor or vehicle.updated_at or vehicle.created_at
        if last_seen is None:
            # never observed and no audit timestamps: nothing anchors a grace period
            return self.auto_remove_after_days
        return (now - last_seen) // ONE_DAY


def _same(current: Any, incoming: Any) -> bool:
    if isinstance(current, (int, float, Decimal)) or isinstance(incoming, (int, float, Decimal)):
        try:
            return Decimal(str(current if current is not None else 0)) == Decimal(str(incoming if incoming is not None else 0))
        except ArithmeticError:
            return False
    return (current or "") == (incoming or "")


def _apply(vehicle: VehicleRecord, fields: Mapping[str, Any]) -> None:
    for key, value in fields.items():
        if hasattr(vehicle, key):
            setattr(vehicle, key, list(value) if key == "images" else value)


class Reconciler:
    def __init__(
        self,
        store: VehicleStore,
        image_pipeline: Optional[ImagePipeline] = None,
        sync_log: Optional[SyncLogSink] = None,
        *,
        max_attempts: Optional[int] = None,
        backoff_base: float = 0.5,
        clock: Callable[[], datetime] = _utcnow,
        resolved_image_hosts: Sequence[str] = settings.resolved_image_hosts,
    ):
        self.store = store
        self.image_pipeline = image_pipeline
        self.sync_log = sync_log
        self.max_attempts = max(1, max_attempts or settings.store_max_attempts)
        self.backoff_base = backoff_base
        self.clock = clock
        self.resolved_image_hosts = tuple(resolved_image_hosts)

    async def sync_vendor_inventory(
        self,
        vendor_id: str,
        vendor_name: str,
        grace_period_days: int = DEFAULT_GRACE_PERIOD_DAYS,
        auto_remove_after_days: int = DEFAULT_AUTO_REMOVE_AFTER_DAYS,
        vendor_records: Iterable[RawVendorRecord] = (),
        *,
        normalizer: Optional[Normalizer] = None,
    ) -> SyncResult:
        """Reconcile one vendor feed against stored inventory and report the counts."""
        if not vendor_id or vendor_id == INTERNAL_VENDOR_ID:
            raise ValueError(f"Cannot reconcile vendor id {vendor_id!r}")
        policy = RetirementPolicy(grace_period_days, auto_remove_after_days)
        records = list(vendor_records)
        now = self.clock()
        result = SyncResult(vendor_id=vendor_id, vehicles_found=len(records), started_at=now)

        try:
            existing = await self._call(self.store.find_by_vendor, vendor_id)
        except StoreError as exc:
            logger.error("Vendor %s sync aborted, could not load existing vehicles: %s", vendor_id, exc)
            result.status = "failed"
            result.error_message = str(exc)
            return self._finish(result, vendor_name)

        candidates = [vehicle for vehicle in existing if vehicle.vendor_id == vendor_id]
        matched_ids: Set[str] = set()
        touched: Dict[str, VehicleRecord] = {}

        for raw in records:
            try:
                record = self._normalize(raw, normalizer)
            except ValidationError as exc:
                result.skipped_vehicles += 1
                logger.warning("Vendor %s: skipping malformed record: %s", vendor_id, exc)
                continue

            target = match(record, candidates, vendor_id)
            try:
                if target is None:
                    created = await self._create(vendor_id, vendor_name, record, now)
                    candidates.append(created)
                    matched_ids.add(created.id)
                    touched[created.id] = created
                    result.new_vehicles += 1
                else:
                    matched_ids.add(target.id)
                    if await self._refresh(target, record, now):
                        result.updated_vehicles += 1
                    touched[target.id] = target
            except StoreError as exc:
                result.skipped_vehicles += 1
                logger.error(
                    "Vendor %s: could not persist %s (vin=%s stock=%s): %s",
                    vendor_id,
                    record.label(),
                    record.vin,
                    record.stock_number,
                    exc,
                )

        retire_failures = await self._retire_missing(
            [vehicle for vehicle in candidates if vehicle.id not in matched_ids],
            policy,
            now,
            result,
        )

        await self._trigger_images(vendor_id, vendor_name, list(touched.values()), result)

        if result.skipped_vehicles or retire_failures:
            result.status = "partial"
        return self._finish(result, vendor_name)

    def _normalize(self, raw: RawVendorRecord, normalizer: Optional[Normalizer]) -> VendorRecord:
        if isinstance(raw, VendorRecord):
            return raw
        if not isinstance(raw, Mapping):
            raise ValidationError(f"Unsupported vendor payload type {type(raw).__name__}")
        return (normalizer or generic_dealer.normalize)(raw)

    async def _create(self, vendor_id: str, vendor_name: str, record: VendorRecord, now: datetime) -> VehicleRecord:
        fields: Dict[str, Any] = {
            **record.descriptive_fields(),
            "vin": record.vin,
            "stock_number": record.stock_number,
            "images": list(record.images),
            "vendor_id": vendor_id,
            "vendor_name": vendor_name,
            "vendor_status": "active",
            "sync_status": "synced",
            "is_published": True,
            "is_sold": False,
            "last_seen_from_vendor": now,
        }
        vehicle_id = await self._call(self.store.create, fields)
        vehicle = VehicleRecord(
            id=vehicle_id,
            make=record.make,
            model=record.model,
            year=record.year,
            price=record.price,
            created_at=now,
        )
        _apply(vehicle, fields)
        return vehicle

    async def _refresh(self, vehicle: VehicleRecord, record: VendorRecord, now: datetime) -> bool:
        """Write the sighting onto ``vehicle``; True when a vendor-authoritative field changed."""
        last_seen = max(vehicle.last_seen_from_vendor, now) if vehicle.last_seen_from_vendor else now
        if vehicle.is_frozen:
            await self._update(vehicle, {"last_seen_from_vendor": last_seen})
            return False

        changed = any(not _same(getattr(vehicle, name), getattr(record, name)) for name in AUTHORITATIVE_FIELDS)
        fields: Dict[str, Any] = {
            **record.descriptive_fields(),
            "last_seen_from_vendor": last_seen,
            "vendor_status": "active",
            "sync_status": "synced",
            "is_published": True,
        }
        if record.vin and not vehicle.vin:
            fields["vin"] = record.vin
        if record.stock_number:
            fields["stock_number"] = record.stock_number
        if not vehicle.images or is_raw_image_url(vehicle.images[0], self.resolved_image_hosts):
            fields["images"] = list(record.images)
        await self._update(vehicle, fields)
        return changed

    async def _retire_missing(
        self,
        missing: List[VehicleRecord],
        policy: RetirementPolicy,
        now: datetime,
        result: SyncResult,
    ) -> int:
        failures = 0
        for vehicle in missing:
            if vehicle.is_frozen:
                continue
            if vehicle.vendor_status == REMOVED.vendor_status:
                tier = REMOVED
            else:
                tier = policy.tier_for(policy.days_since_last_seen(vehicle, now))
            fields = {
                "vendor_status": tier.vendor_status,
                "sync_status": tier.sync_status,
                "is_published": tier.is_published,
            }
            try:
                if any(getattr(vehicle, key) != value for key, value in fields.items()):
                    await self._update(vehicle, fields)
            except StoreError as exc:
                failures += 1
                logger.error("Could not retire vehicle %s (vin=%s): %s", vehicle.id, vehicle.vin, exc)
                continue
            if tier.removed:
                result.removed_vehicles += 1
            else:
                result.unlisted_vehicles += 1
        return failures

    async def _trigger_images(
        self,
        vendor_id: str,
        vendor_name: str,
        touched: List[VehicleRecord],
        result: SyncResult,
    ) -> None:
        batch = collect_image_batch(touched, self.resolved_image_hosts)
        if not batch or self.image_pipeline is None:
            return
        job_id = build_job_id(vendor_id)
        try:
            accepted = await self.image_pipeline.enqueue(job_id, vendor_name, batch)
        except Exception as exc:
            logger.warning("Image processing trigger failed for vendor %s (job %s): %s", vendor_id, job_id, exc)
            return
        if not accepted:
            logger.warning("Image processor rejected job %s for vendor %s", job_id, vendor_id)
            return
        result.image_processing_triggered = True
        result.image_job_id = job_id
        logger.info("Triggered image processing for %d vehicles (job %s)", len(batch), job_id)

    async def _update(self, vehicle: VehicleRecord, fields: Dict[str, Any]) -> None:
        if not await self._call(self.store.update, vehicle.id, fields):
            raise StoreError(f"Vehicle {vehicle.id} no longer exists")
        _apply(vehicle, fields)

    async def _call(self, func: Callable[..., Any], *args: Any) -> Any:
        attempt = 0
        while True:
            try:
                return func(*args)
            except StoreRetryableError as exc:
                attempt += 1
                if attempt >= self.max_attempts:
                    raise
                logger.warning("Retrying %s after transient store error (attempt %d): %s", getattr(func, "__name__", "store call"), attempt, exc)
                await self._backoff(attempt - 1)

    async def _backoff(self, attempt: int) -> None:
        if self.backoff_base <= 0:
            return
        delay = self.backoff_base * (2 ** attempt)
        jitter = random.uniform(0, 0.3)
        await asyncio.sleep(delay + jitter)

    def _finish(self, result: SyncResult, vendor_name: str) -> SyncResult:
        result.completed_at = self.clock()
        if self.sync_log is not None:
            try:
                self.sync_log.record(result, vendor_name)
            except Exception as exc:
                logger.warning("Could not record sync log for vendor %s: %s", result.vendor_id, exc)
        logger.info(
            "Vendor %s sync %s: found=%d new=%d updated=%d unlisted=%d removed=%d skipped=%d",
            result.vendor_id,
            result.status,
            result.vehicles_found,
            result.new_vehicles,
            result.updated_vehicles,
            result.unlisted_vehicles,
            result.removed_vehicles,
            result.skipped_vehicles,
        )
        return result

    def failed_run(self, vendor_id: str, vendor_name: str, message: str, vehicles_found: int = 0) -> SyncResult:
        """Report a run that failed before reconciliation could start (e.g. feed unreachable)."""
        result = SyncResult(
            vendor_id=vendor_id,
            vehicles_found=vehicles_found,
            status="failed",
            error_message=message,
            started_at=self.clock(),
        )
        return self._finish(result, vendor_name)
