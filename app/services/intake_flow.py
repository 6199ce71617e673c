# app/services/intake_flow.py
"""
Operator workflow as an explicit state value.

Each transition takes the current IntakeState and returns a new one. Errors
raised by the codec, store or identity provider are caught here and land on
state.error / state.message, never re-raised to the caller. The record
routers build a state per request and run these same transitions.
"""

from dataclasses import dataclass, replace
from typing import Optional

from app.exceptions import InitializationFailure, InvalidSession, RentalIntakeError
from app.services.identity_service import IdentityProvider, SessionContext, bootstrap_session
from app.services.record_codec import (
    VehicleRecord, canonical_plate, key_for, normalize_search_key, validate_for_save,
)
from app.services.record_store import RecordStore
from app.utils.logger import get_logger

logger = get_logger(__name__)

VIEW_INTAKE = "intake"
VIEW_LOOKUP = "lookup"
VIEWS = (VIEW_INTAKE, VIEW_LOOKUP)

SESSION_NOT_READY = "Session is not ready yet."


@dataclass(frozen=True)
class IntakeState:
    view: str = VIEW_INTAKE
    session: Optional[SessionContext] = None
    session_failed: bool = False
    images: tuple = ()
    message: Optional[str] = None
    warning: Optional[str] = None
    error: Optional[RentalIntakeError] = None
    saved: Optional[VehicleRecord] = None
    searched_plate: Optional[str] = None
    found: Optional[VehicleRecord] = None

    @property
    def ready(self) -> bool:
        return self.session is not None


def _failed(state: IntakeState, error: RentalIntakeError, **changes) -> IntakeState:
    return replace(state, error=error, message=error.user_message, **changes)


async def start_session(state: IntakeState, provider: IdentityProvider) -> IntakeState:
    try:
        session = await bootstrap_session(provider)
    except InitializationFailure as e:
        return _failed(state, e, session=None, session_failed=True)
    return replace(state, session=session, session_failed=False, message=None, error=None)


def show_view(state: IntakeState, view: str) -> IntakeState:
    if view not in VIEWS:
        raise ValueError(f"Unknown view: {view}")
    return replace(state, view=view, message=None, warning=None, error=None, found=None)


def add_image(state: IntakeState, payload: str) -> IntakeState:
    return replace(state, images=state.images + (payload,))


def remove_image(state: IntakeState, index: int) -> IntakeState:
    if not 0 <= index < len(state.images):
        raise IndexError(f"No image at position {index}")
    return replace(state, images=state.images[:index] + state.images[index + 1:])


async def save_record(state: IntakeState, store: RecordStore, license_plate: str,
                      employee_name: str, contract_number: str) -> IntakeState:
    """Validate the draft and write it. Draft images are cleared on success."""
    if not state.ready:
        return replace(state, error=InvalidSession(), message=SESSION_NOT_READY, saved=None)

    try:
        validated = validate_for_save(license_plate, employee_name, contract_number, state.images)
        record = validated.record
        stored = await store.put(key_for(state.session.owner_id, record.license_plate), record)
    except RentalIntakeError as e:
        return _failed(state, e, warning=None, saved=None)

    warning = validated.size_warning.message if validated.size_warning else None
    if warning:
        logger.warning(f"[INTAKE] {record.license_plate}: {warning}")
    return replace(state, images=(), error=None, saved=stored,
                   message=f"Saved {record.license_plate}.", warning=warning)


async def lookup_record(state: IntakeState, store: RecordStore, license_plate: str) -> IntakeState:
    searched = canonical_plate(license_plate)
    if not state.ready:
        return replace(state, error=InvalidSession(), message=SESSION_NOT_READY,
                       searched_plate=searched, found=None)

    try:
        key = normalize_search_key(state.session.owner_id, license_plate)
        record = await store.get(key)
    except RentalIntakeError as e:
        return _failed(state, e, searched_plate=searched, found=None)

    if record is None:
        return replace(state, error=None, searched_plate=searched, found=None,
                       message=f"No record found for {searched}.")
    return replace(state, error=None, searched_plate=searched, found=record, message=None)
