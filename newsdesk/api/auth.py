"""Authentication and authorization dependencies for the Newsdesk REST API.

The ``get_current_user`` FastAPI dependency:
1. Reads the access token from ``Authorization: Bearer <jwt>`` or, when the
   header is absent, from the auth provider's session cookie.
2. Verifies it with ``decode_token`` (HS256, audience check).
3. Returns the ``AuthContext`` for downstream dependencies.

``get_current_profile`` loads the caller's ``profiles`` row; the role string
on that row is what ``require_permission`` feeds to the Casbin enforcer.

Cron endpoints authenticate with a shared secret instead of a user token
(``require_cron_secret``).
"""

from __future__ import annotations

import hmac

from fastapi import Depends, Header, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.config import settings
from newsdesk.db.models import Profile
from newsdesk.db.session import AsyncSessionFactory
from newsdesk.security.rbac import enforce
from newsdesk.server.auth import AuthContext, decode_token

# auto_error=False so a missing header falls through to the cookie lookup
BEARER = HTTPBearer(auto_error=False)


# ---------------------------------------------------------------------------
# Session dependency
# ---------------------------------------------------------------------------


async def get_async_session() -> AsyncSession:
    """FastAPI dependency that yields a fresh AsyncSession for each request."""
    async with AsyncSessionFactory() as session:
        yield session


# ---------------------------------------------------------------------------
# Authentication
# ---------------------------------------------------------------------------


def extract_token(
    request: Request, credentials: HTTPAuthorizationCredentials | None
) -> str | None:
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return request.cookies.get(settings.auth_cookie_name)


async def get_optional_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(BEARER),
) -> AuthContext | None:
    """Like ``get_current_user`` but returns None when no token was sent.

    A token that is present but invalid is still rejected with 401.
    """
    token = extract_token(request, credentials)
    if not token:
        return None
    try:
        return decode_token(token)
    except ValueError:
        raise HTTPException(status_code=401, detail="Invalid or expired access token")


async def get_current_user(
    user: AuthContext | None = Depends(get_optional_user),
) -> AuthContext:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


async def get_current_profile(
    user: AuthContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> Profile:
    """Load the caller's profile.  Users without a profile are forbidden."""
    profile = await session.get(Profile, user.user_id)
    if profile is None:
        raise HTTPException(status_code=403, detail="User profile not found")
    return profile


# ---------------------------------------------------------------------------
# Authorization
# ---------------------------------------------------------------------------


def require_permission(resource: str, action: str):
    """Build a dependency that admits callers whose role may do *action* on *resource*.

    Usage:
        @router.post("", dependencies=[Depends(require_permission("tags", "write"))])

    or, when the handler needs the profile:
        profile: Profile = Depends(require_permission("tags", "write"))
    """

    async def _check(profile: Profile = Depends(get_current_profile)) -> Profile:
        if not enforce(profile.role.value, resource, action):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return profile

    return _check


async def require_cron_secret(
    x_cron_secret: str | None = Header(default=None, alias="X-Cron-Secret"),
) -> None:
    if not settings.cron_secret:
        raise HTTPException(status_code=501, detail="Cron endpoints are not configured")
    if not x_cron_secret or not hmac.compare_digest(
        x_cron_secret.encode(), settings.cron_secret.encode()
    ):
        raise HTTPException(status_code=401, detail="Invalid cron secret")
