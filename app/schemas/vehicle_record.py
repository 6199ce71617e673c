# app/schemas/vehicle_record.py
from pydantic import BaseModel, Field
from datetime import datetime
from typing import Optional


class VehicleRecordIn(BaseModel):
    license_plate: str = ""
    employee_name: str = ""
    contract_number: str = ""
    images: list[str] = Field(default_factory=list)   # data URLs from /capture


class VehicleDocument(BaseModel):
    licensePlate: str
    employeeName: str
    contractNumber: str
    vehicleNumber: str
    images: list[str]
    timestamp: Optional[str]


class SaveRecordOut(BaseModel):
    status: str
    license_plate: str
    record: VehicleDocument
    warning: Optional[str] = None
    total_image_bytes: int


class LookupOut(BaseModel):
    plate: str
    found: bool
    record: Optional[VehicleDocument] = None


class SessionOut(BaseModel):
    owner_id: str
    provider: str
    started_at: datetime
    token: str                                       # send as X-Session-Token


class CaptureOut(BaseModel):
    image: str
    content_type: str
    size_bytes: int
