# app/services/image_capture.py
"""
Image capture. Pulls still JPEG frames from the intake camera and encodes
them as data URLs ready to attach to a vehicle record.

Endpoint: GET {CAMERA_SNAPSHOT_URL}  (Hikvision: /ISAPI/Streaming/channels/1/picture)

The feed is a scoped resource:

    with CameraFeed.from_settings() as feed:
        frame = feed.capture_still()

The HTTP client is released on every exit path (stop(), leaving the block,
or an exception).
"""

import base64
from dataclasses import dataclass
from typing import Optional

import httpx

from app.config import settings
from app.exceptions import CaptureError
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class CapturedFrame:
    data: bytes
    content_type: str = "image/jpeg"

    @property
    def size_bytes(self) -> int:
        return len(self.data)

    def as_data_url(self) -> str:
        return encode_image(self.data, self.content_type)


def encode_image(data: bytes, content_type: str = "image/jpeg") -> str:
    """Encode raw image bytes into the string payload stored on a record."""
    return f"data:{content_type};base64,{base64.b64encode(data).decode('ascii')}"


class CameraFeed:
    def __init__(self, snapshot_url: str, user: Optional[str] = None,
                 password: Optional[str] = None, timeout: float = 10.0,
                 transport: Optional[httpx.BaseTransport] = None):
        self.snapshot_url = snapshot_url
        self.user = user
        self.password = password
        self.timeout = timeout
        self._transport = transport
        self._client: Optional[httpx.Client] = None

    @classmethod
    def from_settings(cls) -> "CameraFeed":
        return cls(
            snapshot_url=settings.CAMERA_SNAPSHOT_URL,
            user=settings.CAMERA_USER,
            password=settings.CAMERA_PASSWORD,
            timeout=settings.CAMERA_TIMEOUT_SECONDS,
        )

    @property
    def is_running(self) -> bool:
        return self._client is not None

    def start(self) -> "CameraFeed":
        if self._client is None:
            auth = httpx.DigestAuth(self.user, self.password) if self.user else None
            self._client = httpx.Client(auth=auth, timeout=self.timeout, transport=self._transport)
            logger.debug(f"[CAPTURE] Feed opened for {self.snapshot_url}")
        return self

    def stop(self) -> None:
        """Release the camera connection. Safe to call more than once."""
        client, self._client = self._client, None
        if client is not None:
            client.close()
            logger.debug(f"[CAPTURE] Feed closed for {self.snapshot_url}")

    def __enter__(self) -> "CameraFeed":
        return self.start()

    def __exit__(self, exc_type, exc, tb) -> None:
        self.stop()

    def capture_still(self) -> CapturedFrame:
        """Fetch one complete frame into memory."""
        if self._client is None:
            raise CaptureError("camera feed is not running")

        try:
            response = self._client.get(self.snapshot_url)
        except httpx.HTTPError as e:
            logger.error(f"[CAPTURE] Request to {self.snapshot_url} failed: {e}")
            raise CaptureError(str(e)) from e

        if response.status_code != 200:
            logger.warning(f"[CAPTURE] Camera returned HTTP {response.status_code}")
            raise CaptureError(f"camera returned HTTP {response.status_code}")
        if not response.content:
            raise CaptureError("camera returned an empty frame")

        content_type = response.headers.get("content-type", "image/jpeg").split(";")[0].strip()
        frame = CapturedFrame(data=response.content, content_type=content_type or "image/jpeg")
        logger.info(f"[CAPTURE] Frame captured ({frame.size_bytes} bytes, {frame.content_type})")
        return frame
