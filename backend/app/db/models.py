import uuid

from sqlalchemy import (
    Column, Integer, String, Numeric, Boolean, Text, DateTime, JSON, Index, text
)
from sqlalchemy.orm import declarative_base
from sqlalchemy.dialects.postgresql import JSONB

Base = declarative_base()

JSONType = JSON().with_variant(JSONB(), "postgresql")


def _new_id() -> str:
    return str(uuid.uuid4())


class Vehicle(Base):
    __tablename__ = "vehicles"
    id = Column(String(36), primary_key=True, default=_new_id)
    vin = Column(String(17), unique=True)
    stock_number = Column(Text)
    make = Column(Text, nullable=False)
    model = Column(Text, nullable=False)
    year = Column(Integer, nullable=False)
    price = Column(Numeric(10,2), nullable=False)
    odometer = Column(Integer, default=0)
    description = Column(Text, default="")
    body_type = Column(Text)
    color = Column(Text)
    fuel_type = Column(Text)
    transmission = Column(Text)
    drivetrain = Column(Text)
    vendor_url = Column(Text)
    images = Column(JSONType, nullable=False, default=list)
    vendor_id = Column(Text, nullable=False, default="internal")
    vendor_name = Column(Text)
    vendor_status = Column(Text, nullable=False, default="active")  # active|unlisted|removed|sold_by_us
    sync_status = Column(Text, nullable=False, default="synced")  # synced|pending_removal
    is_published = Column(Boolean, nullable=False, default=True)
    is_sold = Column(Boolean, nullable=False, default=False)
    last_seen_from_vendor = Column(DateTime(timezone=True))
    created_at = Column(DateTime(timezone=True), server_default=text("CURRENT_TIMESTAMP"))
    updated_at = Column(DateTime(timezone=True))
    __table_args__ = (Index("idx_vehicles_vendor_status", "vendor_id", "vendor_status"),)

class VendorSyncLog(Base):
    __tablename__ = "vendor_sync_logs"
    id = Column(Integer, primary_key=True, autoincrement=True)
    vendor_id = Column(Text, nullable=False)
    vendor_name = Column(Text)
    sync_date = Column(DateTime(timezone=True), nullable=False)
    status = Column(Text, nullable=False)  # success|partial|failed
    vehicles_found = Column(Integer, default=0)
    new_vehicles = Column(Integer, default=0)
    updated_vehicles = Column(Integer, default=0)
    unlisted_vehicles = Column(Integer, default=0)
    removed_vehicles = Column(Integer, default=0)
    skipped_vehicles = Column(Integer, default=0)
    image_processing_triggered = Column(Boolean, default=False)
    image_job_id = Column(Text)
    error_message = Column(Text)
    __table_args__ = (Index("idx_vendor_sync_logs_vendor_date", "vendor_id", "sync_date"),)
