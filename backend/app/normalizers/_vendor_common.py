"""Canonical vendor record and coercion helpers shared by vendor adapters."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Any, Callable, Dict, List, Mapping, Optional, Tuple

NUMBER_RE = re.compile(r"-?[0-9][0-9,]*(?:\.[0-9]+)?")

# Fields the vendor is authoritative for; a change in any of them counts as an update.
AUTHORITATIVE_FIELDS: Tuple[str, ...] = ("price", "odometer", "description")


class ValidationError(ValueError):
    """Raised when a raw vendor payload cannot produce a canonical record."""


@dataclass(frozen=True)
class VendorRecord:
    make: str
    model: str
    year: int
    price: Decimal
    vin: Optional[str] = None
    stock_number: Optional[str] = None
    odometer: int = 0
    images: Tuple[str, ...] = field(default_factory=tuple)
    description: str = ""
    body_type: Optional[str] = None
    color: Optional[str] = None
    fuel_type: Optional[str] = None
    transmission: Optional[str] = None
    drivetrain: Optional[str] = None
    vendor_url: Optional[str] = None

    def descriptive_fields(self) -> Dict[str, Any]:
        """Fields copied onto the stored vehicle on create and update."""
        data: Dict[str, Any] = {
            "make": self.make,
            "model": self.model,
            "year": self.year,
            "price": self.price,
            "odometer": self.odometer,
            "description": self.description,
        }
        for name in ("body_type", "color", "fuel_type", "transmission", "drivetrain", "vendor_url"):
            value = getattr(self, name)
            if value:
                data[name] = value
        return data

    def label(self) -> str:
        ident = self.vin or self.stock_number or "no-id"
        return f"{self.year} {self.make} {self.model} ({ident})"


Normalizer = Callable[[Mapping[str, Any]], VendorRecord]


def clean_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def normalize_vin(value: Any) -> Optional[str]:
    text = clean_text(value)
    return text.upper() if text else None


def parse_decimal(value: Any) -> Optional[Decimal]:
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (Decimal, int, float)):
        number = value if isinstance(value, Decimal) else Decimal(str(value))
        return number if number.is_finite() else None
    match = NUMBER_RE.search(str(value))
    if not match:
        return None
    try:
        return Decimal(match.group(0).replace(",", ""))
    except InvalidOperation:
        return None


def parse_int(value: Any) -> Optional[int]:
    number = parse_decimal(value)
    return int(number) if number is not None else None


def parse_images(value: Any) -> Tuple[str, ...]:
    if not value:
        return ()
    if isinstance(value, str):
        value = [value]
    images: List[str] = []
    for item in value:
        url = clean_text(item)
        if url:
            images.append(url)
    return tuple(images)


def require(payload: Mapping[str, Any], *, make: Any, model: Any, year: Any, price: Any) -> Tuple[str, str, int, Decimal]:
    """Coerce the required fields or raise ValidationError naming what is missing."""
    make_text = clean_text(make)
    model_text = clean_text(model)
    year_value = parse_int(year)
    price_value = parse_decimal(price)

    missing = [
        name
        for name, value in (("make", make_text), ("model", model_text), ("year", year_value), ("price", price_value))
        if value is None
    ]
    if missing:
        ident = clean_text(payload.get("vin")) or clean_text(payload.get("stock_number")) or "unknown"
        raise ValidationError(f"Vendor record {ident} missing or invalid: {', '.join(missing)}")
    return make_text, model_text, year_value, price_value
