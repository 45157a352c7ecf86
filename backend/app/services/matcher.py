"""Decide whether an incoming vendor record is a vehicle already on file."""

from __future__ import annotations

from typing import Iterable, Optional

from backend.app.normalizers._vendor_common import VendorRecord
from backend.app.services.vehicle_store import VehicleRecord


def _norm_vin(value: Optional[str]) -> str:
    return (value or "").strip().upper()


def _norm_stock(value: Optional[str]) -> str:
    return (value or "").strip()


def vehicles_match(record: VendorRecord, existing: VehicleRecord, vendor_id: str) -> bool:
    """Apply the precedence rules to one candidate.

    The first rule whose fields are present on both sides decides; a VIN
    mismatch is final even when stock numbers agree. The make/model/year
    fallback can pair two distinct vehicles of the same trim and year.
    """
    if existing.vendor_id != vendor_id:
        return False

    incoming_vin = _norm_vin(record.vin)
    existing_vin = _norm_vin(existing.vin)
    if incoming_vin and existing_vin:
        return incoming_vin == existing_vin

    incoming_stock = _norm_stock(record.stock_number)
    existing_stock = _norm_stock(existing.stock_number)
    if incoming_stock and existing_stock:
        return incoming_stock == existing_stock

    return (
        record.make == existing.make
        and record.model == existing.model
        and record.year == existing.year
    )


def match(record: VendorRecord, existing_records: Iterable[VehicleRecord], vendor_id: str) -> Optional[VehicleRecord]:
    for existing in existing_records:
        if vehicles_match(record, existing, vendor_id):
            return existing
    return None
