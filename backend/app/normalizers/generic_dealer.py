"""Adapter for feeds produced by the generic dealer-site scraper (NaniAuto, SLT Autos)."""

from __future__ import annotations

from typing import Any, Mapping

from ._vendor_common import (
    VendorRecord,
    clean_text,
    normalize_vin,
    parse_images,
    parse_int,
    require,
)


def _first(payload: Mapping[str, Any], *keys: str) -> Any:
    for key in keys:
        value = payload.get(key)
        if value not in (None, ""):
            return value
    return None


def normalize(payload: Mapping[str, Any]) -> VendorRecord:
    make, model, year, price = require(
        payload,
        make=payload.get("make"),
        model=payload.get("model"),
        year=payload.get("year"),
        price=_first(payload, "price", "salePrice", "internetPrice"),
    )
    return VendorRecord(
        vin=normalize_vin(payload.get("vin")),
        stock_number=clean_text(_first(payload, "stockNumber", "stock", "stock_number")),
        make=make,
        model=model,
        year=year,
        price=price,
        odometer=parse_int(_first(payload, "odometer", "mileage")) or 0,
        images=parse_images(_first(payload, "images", "photos")),
        description=clean_text(payload.get("description")) or "",
        body_type=clean_text(payload.get("bodyType")),
        color=clean_text(payload.get("color")),
        fuel_type=clean_text(payload.get("fuelType")),
        transmission=clean_text(payload.get("transmission")),
        drivetrain=clean_text(payload.get("drivetrain")),
        vendor_url=clean_text(_first(payload, "url", "vdpUrl")),
    )
