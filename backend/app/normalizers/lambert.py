"""Lambert Auto scraper feed adapter."""

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


def normalize(payload: Mapping[str, Any]) -> VendorRecord:
    make, model, year, price = require(
        payload,
        make=payload.get("make"),
        model=payload.get("model"),
        year=payload.get("year"),
        price=payload.get("price"),
    )
    odometer = parse_int(payload.get("mileage"))
    if odometer is None:
        odometer = parse_int(payload.get("odometer"))
    return VendorRecord(
        vin=normalize_vin(payload.get("vin")),
        stock_number=clean_text(payload.get("stock_number")),
        make=make,
        model=model,
        year=year,
        price=price,
        odometer=odometer or 0,
        images=parse_images(payload.get("images")),
        description=clean_text(payload.get("description")) or "",
        body_type=clean_text(payload.get("body_type") or payload.get("bodyType")),
        color=clean_text(payload.get("color")),
        fuel_type=clean_text(payload.get("fuel_type") or payload.get("fuelType")),
        transmission=clean_text(payload.get("transmission")),
        drivetrain=clean_text(payload.get("drivetrain")),
        vendor_url=clean_text(payload.get("url")),
    )
