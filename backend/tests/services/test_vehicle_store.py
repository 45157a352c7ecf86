from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from backend.app.db import models
from backend.app.db.session import session_scope
from backend.app.services.sync_log import SqlSyncLogSink, SyncResult, vendor_stats
from backend.app.services.vehicle_store import SqlVehicleStore, StoreError, StoreRetryableError

SEEN_AT = datetime(2026, 10, 18, 9, 30, tzinfo=timezone.utc)


def _truncate_tables():
    with session_scope() as session:
        session.query(models.VendorSyncLog).delete()
        session.query(models.Vehicle).delete()


def _fields(**overrides):
    fields = {
        "vin": "1HGCM82633A004352",
        "stock_number": "L100",
        "make": "Honda",
        "model": "Accord",
        "year": 2003,
        "price": Decimal("8995"),
        "odometer": 120000,
        "description": "",
        "images": ["https://lambertauto.example/1.jpg"],
        "vendor_id": "lambert",
        "vendor_name": "Lambert Auto",
        "vendor_status": "active",
        "sync_status": "synced",
        "is_published": True,
        "last_seen_from_vendor": SEEN_AT,
    }
    fields.update(overrides)
    return fields


def test_create_and_find_by_vendor():
    _truncate_tables()
    store = SqlVehicleStore()
    vehicle_id = store.create(_fields())
    store.create(_fields(vin="5NPE24AF8FH000001", vendor_id="naniauto", vendor_name="NaniAuto"))

    vehicles = store.find_by_vendor("lambert")
    assert [v.id for v in vehicles] == [vehicle_id]
    vehicle = vehicles[0]
    assert vehicle.price == Decimal("8995")
    assert vehicle.images == ["https://lambertauto.example/1.jpg"]
    assert vehicle.last_seen_from_vendor == SEEN_AT
    assert vehicle.last_seen_from_vendor.tzinfo is not None
    assert vehicle.is_sold is False


def test_update_applies_fields_and_reports_missing_rows():
    _truncate_tables()
    store = SqlVehicleStore()
    vehicle_id = store.create(_fields())

    assert store.update(vehicle_id, {"vendor_status": "unlisted", "is_published": False}) is True
    vehicle = store.find_by_vendor("lambert")[0]
    assert vehicle.vendor_status == "unlisted"
    assert vehicle.is_published is False
    assert vehicle.updated_at is not None

    assert store.update("does-not-exist", {"is_published": False}) is False


def test_duplicate_vin_is_a_permanent_store_error():
    _truncate_tables()
    store = SqlVehicleStore()
    store.create(_fields())
    with pytest.raises(StoreError) as excinfo:
        store.create(_fields(stock_number="L200"))
    assert not isinstance(excinfo.value, StoreRetryableError)


def test_unknown_fields_are_rejected():
    _truncate_tables()
    with pytest.raises(StoreError):
        SqlVehicleStore().create(_fields(mileage=10))


def test_sync_log_records_and_lists_recent_runs():
    _truncate_tables()
    sink = SqlSyncLogSink()
    first = SyncResult(vendor_id="lambert", vehicles_found=3, new_vehicles=3, completed_at=SEEN_AT)
    second = SyncResult(
        vendor_id="lambert",
        vehicles_found=3,
        skipped_vehicles=1,
        status="partial",
        completed_at=SEEN_AT + timedelta(days=1),
    )
    sink.record(first, "Lambert Auto")
    sink.record(second, "Lambert Auto")

    logs = sink.recent("lambert")
    assert [log["status"] for log in logs] == ["partial", "success"]
    assert logs[0]["skipped_vehicles"] == 1
    assert logs[1]["new_vehicles"] == 3
    assert sink.recent("naniauto") == []


def test_vendor_stats_counts_lifecycle_states():
    _truncate_tables()
    store = SqlVehicleStore()
    store.create(_fields())
    store.create(_fields(vin="2T1BURHE5JC000001", vendor_status="unlisted"))
    store.create(_fields(vin="2T1BURHE5JC000002", vendor_status="removed", is_published=False))
    store.create(_fields(vin="2T1BURHE5JC000003", is_sold=True))
    store.create(_fields(vin="2T1BURHE5JC000004", vendor_id="internal", vendor_name=None))
    SqlSyncLogSink().record(SyncResult(vendor_id="lambert", completed_at=SEEN_AT), "Lambert Auto")

    stats = vendor_stats()
    assert stats == [
        {
            "vendor_id": "lambert",
            "vendor_name": "Lambert Auto",
            "active_vehicles": 2,
            "unlisted_vehicles": 1,
            "removed_vehicles": 1,
            "sold_vehicles": 1,
            "last_sync": stats[0]["last_sync"],
        }
    ]
    assert stats[0]["last_sync"].startswith("2026-10-18T09:30")
