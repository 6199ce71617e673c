# app/models/vehicle_record.py
"""
Vehicle intake records table.
One row per (owner_id, license_plate). Saving an existing key overwrites the
row in place; created_at is kept from the first write.
"""

from sqlalchemy import Column, String, DateTime, JSON, func
from app.database import Base


class VehicleRecordRow(Base):
    __tablename__ = "vehicle_records"

    owner_id = Column(String(128), primary_key=True)
    license_plate = Column(String(50), primary_key=True)   # canonical (upper, trimmed)
    employee_name = Column(String(200), nullable=False)
    contract_number = Column(String(100), nullable=False)
    vehicle_number = Column(String(50), nullable=False)
    images = Column(JSON, nullable=False)                   # list of encoded image strings
    created_at = Column(DateTime, nullable=False, server_default=func.now())
    updated_at = Column(DateTime, nullable=False, server_default=func.now())

    def __repr__(self):
        return f"<VehicleRecordRow {self.owner_id}/{self.license_plate} images={len(self.images or [])}>"
