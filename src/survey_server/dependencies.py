"""FastAPI dependency injection — DB sessions, the service, and caller identity.

Each request that touches the database gets a fresh ``AsyncSession`` via
``get_db()``.  ``SurveyService`` commits its own transactions, so this
dependency only guarantees the session is rolled back and closed when a
request fails.

Identity is never authenticated here: the API gateway in front of the
server validates credentials and forwards the caller in headers.
"""

import asyncio
import hmac
import logging
from typing import AsyncGenerator, Awaitable, TypeVar

from fastapi import Depends, Header, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.ext.asyncio import AsyncSession

from survey_db.engine import get_session_factory
from survey_core.models.identity import AdminIdentity, UserIdentity
from survey_core.service import SurveyService

from survey_server.config import ServerSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")


# ------------------------------------------------------------------
# Database session
# ------------------------------------------------------------------

async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Yield an async DB session; roll back on error."""
    factory = get_session_factory()
    async with factory() as session:
        try:
            yield session
        except Exception:
            await session.rollback()
            raise


# ------------------------------------------------------------------
# Service & settings — stashed on app.state during lifespan
# ------------------------------------------------------------------

def get_service(request: Request) -> SurveyService:
    """Return the SurveyService singleton from ``app.state``."""
    return request.app.state.service


def get_settings(request: Request) -> ServerSettings:
    return request.app.state.settings


async def bounded(settings: ServerSettings, call: Awaitable[T]) -> T:
    """Await a service call under the configured request timeout.

    On timeout the call is cancelled, which rolls back its open
    transaction, and the client receives 504.
    """
    try:
        return await asyncio.wait_for(call, timeout=settings.request_timeout)
    except asyncio.TimeoutError:
        logger.error("Service call exceeded %.1fs and was cancelled", settings.request_timeout)
        raise HTTPException(status_code=504, detail="Request timed out") from None


# ------------------------------------------------------------------
# Caller identity — injected by the trusted API gateway
# ------------------------------------------------------------------

def _check_proxy_secret(settings: ServerSettings, x_proxy_secret: str | None) -> None:
    """Reject identity headers that did not come through the gateway.

    Only enforced when ``TRUSTED_PROXY_SECRET`` is configured.
    """
    expected = settings.trusted_proxy_secret
    if not expected:
        return
    if not x_proxy_secret:
        raise HTTPException(status_code=403, detail="X-Proxy-Secret header is required")
    # Constant-time comparison to prevent timing side-channels.
    if not hmac.compare_digest(x_proxy_secret, expected):
        raise HTTPException(status_code=403, detail="Invalid proxy secret")


async def get_admin(
    settings: ServerSettings = Depends(get_settings),
    x_admin_id: str | None = Header(None, alias="X-Admin-ID"),
    x_admin_username: str | None = Header(None, alias="X-Admin-Username"),
    x_admin_role: str | None = Header(None, alias="X-Admin-Role"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> AdminIdentity:
    """Build the admin identity from ``X-Admin-*`` headers.

    Returns 401 when the admin id is missing and 400 when the headers do
    not form a valid identity.
    """
    if not x_admin_id:
        raise HTTPException(status_code=401, detail="X-Admin-ID header is required")
    _check_proxy_secret(settings, x_proxy_secret)
    try:
        return AdminIdentity(
            id=x_admin_id,
            username=x_admin_username or "",
            role=x_admin_role or "normal",
        )
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid admin identity headers") from None


async def get_user(
    settings: ServerSettings = Depends(get_settings),
    x_user_id: str | None = Header(None, alias="X-User-ID"),
    x_user_type: str | None = Header(None, alias="X-User-Type"),
    x_proxy_secret: str | None = Header(None, alias="X-Proxy-Secret"),
) -> UserIdentity | None:
    """Build the respondent identity, or ``None`` for anonymous callers.

    Whether anonymity is acceptable is decided per survey by the service.
    """
    if not x_user_id:
        return None
    _check_proxy_secret(settings, x_proxy_secret)
    try:
        return UserIdentity(username=x_user_id, user_type=x_user_type)
    except ValidationError:
        raise HTTPException(status_code=400, detail="Invalid user identity headers") from None
