# app/services/record_codec.py
"""
Record identity and validation rules.

Turns raw operator input (plate, employee name, contract number, captured
images) into a canonical VehicleRecord, and derives the RecordKey used for
both save and lookup. A plate saved as "ab1234" is found by "AB1234",
"ab1234" or " ab1234 ".
"""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from app.config import settings
from app.exceptions import MissingField


@dataclass(frozen=True)
class RecordKey:
    owner_id: str
    license_plate: str     # canonical: trimmed + uppercase


@dataclass
class VehicleRecord:
    license_plate: str
    employee_name: str
    contract_number: str
    vehicle_number: str
    images: list[str] = field(default_factory=list)
    # Assigned by the store
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


@dataclass(frozen=True)
class SizeWarning:
    """Advisory only. The save still goes through."""
    total_bytes: int
    threshold_bytes: int

    @property
    def message(self) -> str:
        return (f"Photos total {self.total_bytes // 1024} KB, above the "
                f"{self.threshold_bytes // 1024} KB limit. The record was saved "
                f"but may be rejected by the store; consider fewer photos.")


@dataclass
class ValidatedRecord:
    record: VehicleRecord
    size_warning: Optional[SizeWarning] = None


def canonical_plate(license_plate: str) -> str:
    return (license_plate or "").strip().upper()


def key_for(owner_id: str, license_plate: str) -> RecordKey:
    """Deterministic record key. Used identically for save and lookup."""
    return RecordKey(owner_id=owner_id, license_plate=canonical_plate(license_plate))


def normalize_search_key(owner_id: str, license_plate: str) -> RecordKey:
    """Like key_for, but an empty search plate is a MissingField."""
    if not canonical_plate(license_plate):
        raise MissingField(["license_plate"])
    return key_for(owner_id, license_plate)


def image_payload_size(images) -> int:
    """Aggregate encoded size of the image payloads, in bytes."""
    return sum(len(image.encode("utf-8")) for image in images)


def check_image_size(images, threshold_bytes: Optional[int] = None) -> Optional[SizeWarning]:
    threshold = settings.IMAGE_SIZE_WARNING_BYTES if threshold_bytes is None else threshold_bytes
    total = image_payload_size(images)
    if total > threshold:
        return SizeWarning(total_bytes=total, threshold_bytes=threshold)
    return None


def validate_for_save(license_plate: str, employee_name: str, contract_number: str,
                      images, threshold_bytes: Optional[int] = None) -> ValidatedRecord:
    """
    Validate operator input and build the canonical record.
    Raises MissingField listing every empty input (text fields and images;
    a blank image element counts as missing).
    """
    missing = [
        name for name, value in (
            ("license_plate", license_plate),
            ("employee_name", employee_name),
            ("contract_number", contract_number),
        )
        if not (value or "").strip()
    ]
    images = list(images or [])
    # A blank element is not an image payload
    if not images or any(not (image or "").strip() for image in images):
        missing.append("images")
    if missing:
        raise MissingField(missing)

    plate = canonical_plate(license_plate)
    record = VehicleRecord(
        license_plate=plate,
        employee_name=employee_name,
        contract_number=contract_number,
        vehicle_number=plate,
        images=images,
    )
    return ValidatedRecord(record=record, size_warning=check_image_size(images, threshold_bytes))


def to_document(record: VehicleRecord) -> dict:
    """Persisted/display document shape."""
    return {
        "licensePlate": record.license_plate,
        "employeeName": record.employee_name,
        "contractNumber": record.contract_number,
        "vehicleNumber": record.vehicle_number,
        "images": list(record.images),
        "timestamp": record.created_at.isoformat() if record.created_at else None,
    }
