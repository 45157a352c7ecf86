from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional, Protocol

from sqlalchemy import select
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError, SQLAlchemyError

from backend.app.db import models
from backend.app.db.session import SessionScope, session_scope

INTERNAL_VENDOR_ID = "internal"

WRITABLE_FIELDS = {
    "vin",
    "stock_number",
    "make",
    "model",
    "year",
    "price",
    "odometer",
    "description",
    "body_type",
    "color",
    "fuel_type",
    "transmission",
    "drivetrain",
    "vendor_url",
    "images",
    "vendor_id",
    "vendor_name",
    "vendor_status",
    "sync_status",
    "is_published",
    "is_sold",
    "last_seen_from_vendor",
}


class StoreError(Exception):
    """Base exception for vehicle store failures."""


class StoreRetryableError(StoreError):
    """Raised for transient failures (dropped connection, timeout) worth retrying."""


def ensure_utc(dt: Optional[datetime]) -> Optional[datetime]:
    if dt is None:
        return None
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


@dataclass
class VehicleRecord:
    id: str
    make: str
    model: str
    year: int
    price: Decimal
    vin: Optional[str] = None
    stock_number: Optional[str] = None
    odometer: int = 0
    description: str = ""
    images: List[str] = field(default_factory=list)
    vendor_id: str = INTERNAL_VENDOR_ID
    vendor_name: Optional[str] = None
    vendor_status: str = "active"
    sync_status: str = "synced"
    is_published: bool = True
    is_sold: bool = False
    last_seen_from_vendor: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_model(cls, vehicle: models.Vehicle) -> "VehicleRecord":
        return cls(
            id=vehicle.id,
            vin=vehicle.vin,
            stock_number=vehicle.stock_number,
            make=vehicle.make,
            model=vehicle.model,
            year=vehicle.year,
            price=vehicle.price,
            odometer=vehicle.odometer or 0,
            description=vehicle.description or "",
            images=list(vehicle.images or []),
            vendor_id=vehicle.vendor_id,
            vendor_name=vehicle.vendor_name,
            vendor_status=vehicle.vendor_status,
            sync_status=vehicle.sync_status,
            is_published=bool(vehicle.is_published),
            is_sold=bool(vehicle.is_sold),
            last_seen_from_vendor=ensure_utc(vehicle.last_seen_from_vendor),
            created_at=ensure_utc(vehicle.created_at),
            updated_at=ensure_utc(vehicle.updated_at),
        )

    @property
    def is_frozen(self) -> bool:
        """Sold vehicles are never moved by vendor reconciliation."""
        return self.is_sold or self.vendor_status == "sold_by_us"


class VehicleStore(Protocol):
    def find_by_vendor(self, vendor_id: str) -> List[VehicleRecord]: ...

    def create(self, fields: Mapping[str, Any]) -> str: ...

    def update(self, vehicle_id: str, fields: Mapping[str, Any]) -> bool: ...


def _translate(exc: SQLAlchemyError, action: str) -> StoreError:
    if isinstance(exc, IntegrityError):
        return StoreError(f"{action} violated a constraint: {exc.orig}")
    if isinstance(exc, OperationalError) or (isinstance(exc, DBAPIError) and exc.connection_invalidated):
        return StoreRetryableError(f"{action} failed transiently: {exc}")
    return StoreError(f"{action} failed: {exc}")


def _writable(fields: Mapping[str, Any]) -> Dict[str, Any]:
    unknown = set(fields) - WRITABLE_FIELDS
    if unknown:
        raise StoreError(f"Unknown vehicle fields: {', '.join(sorted(unknown))}")
    data = dict(fields)
    if "images" in data:
        data["images"] = list(data["images"] or [])
    return data


class SqlVehicleStore:
    """Vehicle record store backed by the ``vehicles`` table."""

    def __init__(self, scope: SessionScope = session_scope):
        self._scope = scope

    def find_by_vendor(self, vendor_id: str) -> List[VehicleRecord]:
        try:
            with self._scope() as session:
                rows = session.execute(
                    select(models.Vehicle).where(models.Vehicle.vendor_id == vendor_id).order_by(models.Vehicle.created_at)
                ).scalars().all()
                return [VehicleRecord.from_model(row) for row in rows]
        except SQLAlchemyError as exc:
            raise _translate(exc, f"Loading vehicles for vendor {vendor_id}") from exc

    def create(self, fields: Mapping[str, Any]) -> str:
        data = _writable(fields)
        try:
            with self._scope() as session:
                vehicle = models.Vehicle(**data, updated_at=datetime.now(timezone.utc))
                session.add(vehicle)
                session.flush()
                return vehicle.id
        except SQLAlchemyError as exc:
            raise _translate(exc, f"Creating vehicle {data.get('vin') or data.get('stock_number')}") from exc

    def update(self, vehicle_id: str, fields: Mapping[str, Any]) -> bool:
        data = _writable(fields)
        try:
            with self._scope() as session:
                vehicle = session.get(models.Vehicle, vehicle_id)
                if vehicle is None:
                    return False
                for key, value in data.items():
                    setattr(vehicle, key, value)
                vehicle.updated_at = datetime.now(timezone.utc)
                return True
        except SQLAlchemyError as exc:
            raise _translate(exc, f"Updating vehicle {vehicle_id}") from exc
