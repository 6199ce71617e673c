# app/routers/health.py
"""
System health check endpoint.
Returns status of backend + DB + intake camera reachability.
"""

import requests
from requests.auth import HTTPDigestAuth
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session
from sqlalchemy import text
from app.database import get_db
from app.config import settings
from datetime import datetime, timezone

router = APIRouter()


@router.get("/health", summary="System health check")
def health_check(db: Session = Depends(get_db)):
    """
    Returns:
    - Backend status
    - Database connectivity
    - Intake camera reachability (snapshot URL)
    - Configured identity provider
    """
    result = {
        "status": "ok",
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "backend": "ok",
        "database": "unknown",
        "camera": "unknown",
        "identity_provider": settings.IDENTITY_PROVIDER,
    }

    try:
        db.execute(text("SELECT 1"))
        result["database"] = "ok"
    except Exception as e:
        result["database"] = f"error: {str(e)}"
        result["status"] = "degraded"

    # The camera is optional for lookups, so it never marks the service degraded
    auth = HTTPDigestAuth(settings.CAMERA_USER, settings.CAMERA_PASSWORD) if settings.CAMERA_USER else None
    try:
        resp = requests.get(settings.CAMERA_SNAPSHOT_URL, auth=auth, timeout=3)
        result["camera"] = "ok" if resp.status_code == 200 else f"http_{resp.status_code}"
    except requests.exceptions.ConnectionError:
        result["camera"] = "unreachable"
    except requests.exceptions.RequestException as e:
        result["camera"] = f"error: {str(e)}"

    return result
