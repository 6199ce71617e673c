# app/services/record_store.py
"""
Record store boundary + SQLAlchemy implementation.

Keys must already be canonical (see record_codec.key_for); the store treats
them as opaque. put() fully overwrites, get() returns None when nothing is
stored under the key. Any backend error surfaces as StoreFailure.
"""

from abc import ABC, abstractmethod
from typing import Optional

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from app.exceptions import StoreFailure
from app.models.vehicle_record import VehicleRecordRow
from app.services.record_codec import RecordKey, VehicleRecord
from app.utils.logger import get_logger

logger = get_logger(__name__)


class RecordStore(ABC):
    """Key/value document capability used by the intake core."""

    @abstractmethod
    async def put(self, key: RecordKey, record: VehicleRecord) -> VehicleRecord:
        """Write the record under key, replacing whatever was there."""

    @abstractmethod
    async def get(self, key: RecordKey) -> Optional[VehicleRecord]:
        """Point lookup. None means not found."""


def _row_to_record(row: VehicleRecordRow) -> VehicleRecord:
    return VehicleRecord(
        license_plate=row.license_plate,
        employee_name=row.employee_name,
        contract_number=row.contract_number,
        vehicle_number=row.vehicle_number,
        images=list(row.images or []),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _apply(row: VehicleRecordRow, record: VehicleRecord) -> None:
    """Full replace: every document field comes from the new record."""
    row.employee_name = record.employee_name
    row.contract_number = record.contract_number
    row.vehicle_number = record.vehicle_number
    row.images = list(record.images)


class SqlRecordStore(RecordStore):
    def __init__(self, db: Session):
        self.db = db

    def _find(self, key: RecordKey) -> Optional[VehicleRecordRow]:
        return (
            self.db.query(VehicleRecordRow)
            .filter(
                VehicleRecordRow.owner_id == key.owner_id,
                VehicleRecordRow.license_plate == key.license_plate,
            )
            .first()
        )

    def _write(self, key: RecordKey, record: VehicleRecord):
        """Insert, or overwrite in place. Returns (row, overwrote)."""
        row = self._find(key)
        if row is None:
            row = VehicleRecordRow(owner_id=key.owner_id, license_plate=key.license_plate)
            _apply(row, record)
            self.db.add(row)
            try:
                self.db.commit()
                self.db.refresh(row)
                return row, False
            except IntegrityError:
                # Another save created the key in between; last write wins
                self.db.rollback()
                row = self._find(key)
                if row is None:
                    raise

        row.updated_at = func.now()
        _apply(row, record)
        self.db.commit()
        self.db.refresh(row)
        return row, True

    def _put_sync(self, key: RecordKey, record: VehicleRecord) -> VehicleRecord:
        try:
            row, overwrite = self._write(key, record)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[RECORDS] put failed for {key.license_plate}: {e}")
            raise StoreFailure(str(e)) from e

        logger.info(
            f"[RECORDS] {'Overwrote' if overwrite else 'Saved'} {key.license_plate} "
            f"owner={key.owner_id} images={len(record.images)}"
        )
        return _row_to_record(row)

    def _get_sync(self, key: RecordKey) -> Optional[VehicleRecord]:
        try:
            row = self._find(key)
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.error(f"[RECORDS] get failed for {key.license_plate}: {e}")
            raise StoreFailure(str(e)) from e

        if row is None:
            logger.info(f"[RECORDS] No record for {key.license_plate} owner={key.owner_id}")
            return None
        return _row_to_record(row)

    # Session calls block, so they run off the event loop
    async def put(self, key: RecordKey, record: VehicleRecord) -> VehicleRecord:
        return await run_in_threadpool(self._put_sync, key, record)

    async def get(self, key: RecordKey) -> Optional[VehicleRecord]:
        return await run_in_threadpool(self._get_sync, key)
