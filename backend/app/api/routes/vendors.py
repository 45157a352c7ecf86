from functools import lru_cache
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Query
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from backend.app.core.vendor_locks import SyncInProgressError
from backend.app.services.sync_log import SqlSyncLogSink, vendor_stats
from backend.app.services.vendor_sync import VendorSyncService, build_vendor_sync_service
from backend.app.services.vendors import InternalVendorError, UnknownVendorError

router = APIRouter()


class VendorSyncIn(BaseModel):
    vehicles: Optional[List[Dict[str, Any]]] = None


@lru_cache(maxsize=1)
def get_vendor_sync_service() -> VendorSyncService:
    return build_vendor_sync_service()


async def close_vendor_sync_service() -> None:
    if get_vendor_sync_service.cache_info().currsize:
        await get_vendor_sync_service().aclose()
        get_vendor_sync_service.cache_clear()


def get_sync_log() -> SqlSyncLogSink:
    return SqlSyncLogSink()


@router.get("/stats")
def stats():
    return vendor_stats()


@router.post("/{vendor_id}/sync")
async def sync_vendor(
    vendor_id: str,
    body: Optional[VendorSyncIn] = Body(None),
    service: VendorSyncService = Depends(get_vendor_sync_service),
):
    """Reconcile a vendor feed; omit ``vehicles`` to pull from the vendor's scraper."""
    try:
        result = await service.sync_vendor(vendor_id, body.vehicles if body else None)
    except InternalVendorError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    except UnknownVendorError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except SyncInProgressError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc

    payload = result.as_dict()
    if result.status == "failed":
        return JSONResponse(status_code=502, content=payload)
    return payload


@router.get("/{vendor_id}/sync-logs")
def sync_logs(
    vendor_id: str,
    limit: int = Query(20, ge=1, le=200),
    sink: SqlSyncLogSink = Depends(get_sync_log),
):
    return sink.recent(vendor_id, limit=limit)
