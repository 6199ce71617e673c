# app/routers/records.py
"""
Vehicle intake records: save and look up by license plate.
Every call is scoped to the owner namespace carried by the signed
X-Session-Token header, obtained from POST /session.
Each request runs one intake_flow transition on a per-request state.
"""

from fastapi import APIRouter, Depends, Header, HTTPException
from sqlalchemy.orm import Session
from typing import Optional
from app.database import get_db
from app.exceptions import InvalidSession, MissingField, RentalIntakeError
from app.schemas.vehicle_record import VehicleRecordIn, SaveRecordOut, LookupOut
from app.services import intake_flow
from app.services.identity_service import SessionContext, session_from_token
from app.services.intake_flow import IntakeState
from app.services.record_codec import image_payload_size, to_document
from app.services.record_store import RecordStore, SqlRecordStore

router = APIRouter()


def get_record_store(db: Session = Depends(get_db)) -> RecordStore:
    return SqlRecordStore(db)


def require_session(x_session_token: Optional[str] = Header(None)) -> SessionContext:
    """Store operations are blocked until POST /session has issued a token."""
    try:
        return session_from_token(x_session_token)
    except InvalidSession as e:
        raise HTTPException(status_code=401, detail=e.user_message)


def _http_error(error: RentalIntakeError) -> HTTPException:
    if isinstance(error, MissingField):
        return HTTPException(status_code=422, detail={"message": error.user_message, "fields": error.fields})
    if isinstance(error, InvalidSession):
        return HTTPException(status_code=401, detail=error.user_message)
    return HTTPException(status_code=503, detail=error.user_message)


@router.post("/records", response_model=SaveRecordOut, summary="Save a vehicle intake record")
async def save_record(body: VehicleRecordIn, session: SessionContext = Depends(require_session),
                      store: RecordStore = Depends(get_record_store)):
    """
    Validate and persist a record. Saving an existing plate replaces it.
    Oversized photo sets are saved anyway and come back with a warning.
    """
    state = IntakeState(session=session, images=tuple(body.images))
    state = await intake_flow.save_record(state, store, body.license_plate,
                                          body.employee_name, body.contract_number)
    if state.error:
        raise _http_error(state.error)

    return {
        "status": "saved",
        "license_plate": state.saved.license_plate,
        "record": to_document(state.saved),
        "warning": state.warning,
        "total_image_bytes": image_payload_size(state.saved.images),
    }


@router.get("/records/lookup", response_model=LookupOut, summary="Look up a record by plate")
async def lookup_record(plate: str = "", session: SessionContext = Depends(require_session),
                        store: RecordStore = Depends(get_record_store)):
    """Exact match on the canonical plate. A miss is a normal result, not an error."""
    state = IntakeState(session=session, view=intake_flow.VIEW_LOOKUP)
    state = await intake_flow.lookup_record(state, store, plate)
    if state.error:
        raise _http_error(state.error)

    if state.found is None:
        return {"plate": state.searched_plate, "found": False}
    return {"plate": state.searched_plate, "found": True, "record": to_document(state.found)}
