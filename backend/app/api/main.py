from fastapi import FastAPI

from backend.app.core.log_config import configure_logging
from .routes import vendors

configure_logging()

app = FastAPI(title="Dealership Inventory Sync API", version="0.1.0")

app.include_router(vendors.router, prefix="/vendors", tags=["vendors"])


@app.on_event("shutdown")
async def shutdown() -> None:
    await vendors.close_vendor_sync_service()
