# app/routers/session.py
"""Session bootstrap: issues the signed token that scopes all record calls."""

from fastapi import APIRouter, Depends, HTTPException
from app.exceptions import InitializationFailure
from app.schemas.vehicle_record import SessionOut
from app.services.identity_service import IdentityProvider, bootstrap_session, provider_from_settings

router = APIRouter()


def get_identity_provider() -> IdentityProvider:
    return provider_from_settings()


@router.post("/session", response_model=SessionOut, summary="Start an operator session")
async def start_session(provider: IdentityProvider = Depends(get_identity_provider)):
    """Single sign-in attempt. Send the returned token as X-Session-Token afterwards."""
    try:
        session = await bootstrap_session(provider)
    except InitializationFailure as e:
        raise HTTPException(status_code=503, detail=e.user_message)
    return {"owner_id": session.owner_id, "provider": session.provider,
            "started_at": session.started_at, "token": session.token}
