from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional

from backend.app.core.settings import Settings, settings as default_settings
from backend.app.normalizers import generic_dealer, lambert
from backend.app.normalizers._vendor_common import Normalizer
from backend.app.services.vehicle_store import INTERNAL_VENDOR_ID

NORMALIZER_REGISTRY: Dict[str, Normalizer] = {
    "LAMBERT": lambert.normalize,
    "GENERIC_DEALER": generic_dealer.normalize,
}


class UnknownVendorError(LookupError):
    """Raised for a vendor id with no registered feed."""


class InternalVendorError(ValueError):
    """Raised when asked to sync manually-entered inventory."""


@dataclass(frozen=True)
class VendorConfig:
    vendor_id: str
    vendor_name: str
    adapter: str
    scraper_url: Optional[str] = None
    dealer_url: Optional[str] = None
    grace_period_days: int = 3
    auto_remove_after_days: int = 7

    @property
    def normalizer(self) -> Normalizer:
        return NORMALIZER_REGISTRY[self.adapter]


def build_vendor_registry(config: Settings = default_settings) -> Dict[str, VendorConfig]:
    vendors = [
        VendorConfig("lambert", "Lambert Auto", "LAMBERT", scraper_url=config.lambert_scraper_url),
        VendorConfig(
            "naniauto",
            "NaniAuto",
            "GENERIC_DEALER",
            scraper_url=config.generic_dealer_scraper_url,
            dealer_url="https://naniauto.com",
        ),
        VendorConfig(
            "sltautos",
            "SLT Autos",
            "GENERIC_DEALER",
            scraper_url=config.generic_dealer_scraper_url,
            dealer_url="https://sltautos.com",
        ),
    ]
    return {vendor.vendor_id: vendor for vendor in vendors}


def resolve_vendor(registry: Dict[str, VendorConfig], vendor_id: str) -> VendorConfig:
    if vendor_id == INTERNAL_VENDOR_ID:
        raise InternalVendorError("Internal inventory cannot be synced automatically")
    vendor = registry.get(vendor_id)
    if vendor is None:
        raise UnknownVendorError(f"Unknown vendor: {vendor_id}")
    return vendor
