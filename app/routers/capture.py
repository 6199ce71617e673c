# app/routers/capture.py
"""Still-frame capture from the intake camera."""

from fastapi import APIRouter, Depends, HTTPException
from app.exceptions import CaptureError
from app.schemas.vehicle_record import CaptureOut
from app.services.image_capture import CameraFeed

router = APIRouter()


def get_camera_feed() -> CameraFeed:
    return CameraFeed.from_settings()


@router.post("/capture", response_model=CaptureOut, summary="Capture one photo")
def capture_photo(feed: CameraFeed = Depends(get_camera_feed)):
    """
    Grab a single JPEG and return it as a data URL. The client keeps or
    discards it and sends the kept ones with POST /records.
    """
    try:
        with feed:
            frame = feed.capture_still()
    except CaptureError as e:
        raise HTTPException(status_code=502, detail=e.user_message)
    return {"image": frame.as_data_url(), "content_type": frame.content_type,
            "size_bytes": frame.size_bytes}
