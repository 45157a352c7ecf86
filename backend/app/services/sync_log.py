from __future__ import annotations

from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Protocol

from sqlalchemy import case, func, select

from backend.app.db import models
from backend.app.db.session import SessionScope, session_scope
from backend.app.services.vehicle_store import INTERNAL_VENDOR_ID


@dataclass
class SyncResult:
    vendor_id: str
    vehicles_found: int = 0
    new_vehicles: int = 0
    updated_vehicles: int = 0
    unlisted_vehicles: int = 0
    removed_vehicles: int = 0
    skipped_vehicles: int = 0
    status: str = "success"  # success|partial|failed
    error_message: Optional[str] = None
    image_processing_triggered: bool = False
    image_job_id: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    completed_at: Optional[datetime] = None

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["completed_at"] = self.completed_at.isoformat() if self.completed_at else None
        return data


class SyncLogSink(Protocol):
    def record(self, result: SyncResult, vendor_name: str) -> None: ...


class SqlSyncLogSink:
    """Writes one ``vendor_sync_logs`` row per reconciliation run."""

    def __init__(self, scope: SessionScope = session_scope):
        self._scope = scope

    def record(self, result: SyncResult, vendor_name: str) -> None:
        with self._scope() as session:
            session.add(
                models.VendorSyncLog(
                    vendor_id=result.vendor_id,
                    vendor_name=vendor_name,
                    sync_date=result.completed_at or datetime.now(timezone.utc),
                    status=result.status,
                    vehicles_found=result.vehicles_found,
                    new_vehicles=result.new_vehicles,
                    updated_vehicles=result.updated_vehicles,
                    unlisted_vehicles=result.unlisted_vehicles,
                    removed_vehicles=result.removed_vehicles,
                    skipped_vehicles=result.skipped_vehicles,
                    image_processing_triggered=result.image_processing_triggered,
                    image_job_id=result.image_job_id,
                    error_message=result.error_message,
                )
            )

    def recent(self, vendor_id: str, limit: int = 20) -> List[Dict[str, Any]]:
        with self._scope() as session:
            rows = session.execute(
                select(models.VendorSyncLog)
                .where(models.VendorSyncLog.vendor_id == vendor_id)
                .order_by(models.VendorSyncLog.sync_date.desc(), models.VendorSyncLog.id.desc())
                .limit(limit)
            ).scalars().all()
            return [
                {
                    "vendor_id": row.vendor_id,
                    "vendor_name": row.vendor_name,
                    "sync_date": row.sync_date.isoformat(),
                    "status": row.status,
                    "vehicles_found": row.vehicles_found,
                    "new_vehicles": row.new_vehicles,
                    "updated_vehicles": row.updated_vehicles,
                    "unlisted_vehicles": row.unlisted_vehicles,
                    "removed_vehicles": row.removed_vehicles,
                    "skipped_vehicles": row.skipped_vehicles,
                    "image_processing_triggered": row.image_processing_triggered,
                    "error_message": row.error_message,
                }
                for row in rows
            ]


def vendor_stats(scope: SessionScope = session_scope) -> List[Dict[str, Any]]:
    """Vehicle counts per vendor lifecycle state plus the last sync date."""
    vehicle = models.Vehicle

    def _count(condition) -> Any:
        return func.sum(case((condition, 1), else_=0))

    with scope() as session:
        counts = session.execute(
            select(
                vehicle.vendor_id,
                func.max(vehicle.vendor_name),
                _count(vehicle.vendor_status == "active"),
                _count(vehicle.vendor_status == "unlisted"),
                _count(vehicle.vendor_status == "removed"),
                _count(vehicle.is_sold.is_(True)),
            )
            .where(vehicle.vendor_id != INTERNAL_VENDOR_ID)
            .group_by(vehicle.vendor_id)
            .order_by(vehicle.vendor_id)
        ).all()
        last_syncs = dict(
            session.execute(
                select(models.VendorSyncLog.vendor_id, func.max(models.VendorSyncLog.sync_date)).group_by(
                    models.VendorSyncLog.vendor_id
                )
            ).all()
        )

    stats = []
    for vendor_id, vendor_name, active, unlisted, removed, sold in counts:
        last_sync = last_syncs.get(vendor_id)
        stats.append(
            {
                "vendor_id": vendor_id,
                "vendor_name": vendor_name,
                "active_vehicles": int(active or 0),
                "unlisted_vehicles": int(unlisted or 0),
                "removed_vehicles": int(removed or 0),
                "sold_vehicles": int(sold or 0),
                "last_sync": last_sync.isoformat() if last_sync else None,
            }
        )
    return stats
