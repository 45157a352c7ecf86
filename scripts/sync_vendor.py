#!/usr/bin/env python3
"""Run one vendor reconciliation from the command line.

Usage:
  python scripts/sync_vendor.py --vendor lambert
  python scripts/sync_vendor.py --vendor lambert --input ./data/lambert_feed.json

Without --input the vendor's configured scraper is called. The input file may
be either a list of vehicles or an object with a "vehicles" key.
"""
import argparse
import asyncio
import json
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]

if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from backend.app.core.log_config import configure_logging  # noqa: E402
from backend.app.services.vendor_sync import build_vendor_sync_service  # noqa: E402


def _load_vehicles(path: Path):
    data = json.loads(path.read_text(encoding="utf-8"))
    if isinstance(data, dict):
        data = data.get("vehicles") or []
    if not isinstance(data, list):
        raise ValueError(f"{path} does not contain a vehicle list")
    return data


async def _run(vendor_id: str, input_path):
    vehicles = _load_vehicles(input_path) if input_path else None
    service = build_vendor_sync_service()
    try:
        return await service.sync_vendor(vendor_id, vehicles)
    finally:
        await service.aclose()


def main() -> int:
    parser = argparse.ArgumentParser(description="Reconcile a vendor inventory feed.")
    parser.add_argument("--vendor", required=True, help="Vendor id, e.g. lambert")
    parser.add_argument("--input", type=Path, help="JSON file with scraped vehicles")
    parser.add_argument("--log-level", default=None)
    args = parser.parse_args()

    configure_logging(args.log_level)
    result = asyncio.run(_run(args.vendor, args.input))
    print(json.dumps(result.as_dict(), indent=2, default=str))
    if result.status == "failed":
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
