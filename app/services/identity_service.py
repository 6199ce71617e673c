# app/services/identity_service.py
"""
Session bootstrap. Obtains the opaque owner id that namespaces records.

local: anonymous ids generated in-process (no network).
http:  anonymous sign-up against an external identity endpoint, e.g.
       POST https://identitytoolkit.googleapis.com/v1/accounts:signUp?key=...
       The owner id is read from IDENTITY_OWNER_FIELD ("localId").

One attempt only. Any failure becomes InitializationFailure.

The issued owner id travels back as an HMAC-signed session token
("<owner>.<provider>.<unix ts>.<sig>"). Only ids signed here are accepted.
"""

import hashlib
import hmac
import secrets
import uuid
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

import httpx

from app.config import settings
from app.exceptions import InitializationFailure, InvalidSession
from app.utils.logger import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class SessionContext:
    owner_id: str
    provider: str
    started_at: datetime
    token: str = ""          # signed; sent back as X-Session-Token


class IdentityProvider(ABC):
    name = "abstract"

    @abstractmethod
    async def sign_in(self) -> str:
        """Return an opaque owner id."""


class LocalIdentityProvider(IdentityProvider):
    name = "local"

    async def sign_in(self) -> str:
        return uuid.uuid4().hex


class HttpIdentityProvider(IdentityProvider):
    name = "http"

    def __init__(self, signup_url: str, api_key: Optional[str] = None,
                 owner_field: str = "localId", timeout: float = 10.0,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        self.signup_url = signup_url
        self.api_key = api_key
        self.owner_field = owner_field
        self.timeout = timeout
        self._transport = transport

    async def sign_in(self) -> str:
        params = {"key": self.api_key} if self.api_key else None
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            response = await client.post(self.signup_url, params=params,
                                         json={"returnSecureToken": True})
        response.raise_for_status()
        return response.json()[self.owner_field]


def provider_from_settings() -> IdentityProvider:
    if settings.IDENTITY_PROVIDER == "http":
        return HttpIdentityProvider(
            signup_url=settings.IDENTITY_SIGNUP_URL,
            api_key=settings.IDENTITY_API_KEY,
            owner_field=settings.IDENTITY_OWNER_FIELD,
            timeout=settings.IDENTITY_TIMEOUT_SECONDS,
        )
    if settings.IDENTITY_PROVIDER != "local":
        logger.warning(f"[SESSION] Unknown IDENTITY_PROVIDER={settings.IDENTITY_PROVIDER!r}, using local")
    return LocalIdentityProvider()


async def bootstrap_session(provider: IdentityProvider) -> SessionContext:
    """Single sign-in attempt. Raises InitializationFailure on any error."""
    try:
        owner_id = await provider.sign_in()
    except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
        logger.error(f"[SESSION] {provider.name} sign-in failed: {e}")
        raise InitializationFailure(str(e)) from e

    if not isinstance(owner_id, str) or not owner_id:
        logger.error(f"[SESSION] {provider.name} returned no owner id")
        raise InitializationFailure("identity provider returned no owner id")

    started_at = datetime.now(timezone.utc)
    token = issue_session_token(owner_id, provider.name, started_at)
    logger.info(f"[SESSION] Started owner={owner_id} via {provider.name}")
    return SessionContext(owner_id=owner_id, provider=provider.name,
                          started_at=started_at, token=token)


_SECRET = (settings.SESSION_SECRET or secrets.token_hex(32)).encode("utf-8")


def _sign(payload: str) -> str:
    return hmac.new(_SECRET, payload.encode("utf-8"), hashlib.sha256).hexdigest()


def issue_session_token(owner_id: str, provider: str, started_at: datetime) -> str:
    payload = f"{owner_id}.{provider}.{int(started_at.timestamp())}"
    return f"{payload}.{_sign(payload)}"


def session_from_token(token: Optional[str]) -> SessionContext:
    """Verify a token from issue_session_token. Raises InvalidSession."""
    token = (token or "").strip()
    parts = token.rsplit(".", 3)
    if len(parts) != 4 or not parts[0]:
        raise InvalidSession("missing or malformed session token")

    owner_id, provider, issued, signature = parts
    if not hmac.compare_digest(signature, _sign(f"{owner_id}.{provider}.{issued}")):
        logger.warning(f"[SESSION] Rejected token for owner={owner_id}")
        raise InvalidSession("session token signature mismatch")
    try:
        started_at = datetime.fromtimestamp(int(issued), timezone.utc)
    except (ValueError, OverflowError, OSError) as e:
        raise InvalidSession("bad session token timestamp") from e

    return SessionContext(owner_id=owner_id, provider=provider, started_at=started_at, token=token)
