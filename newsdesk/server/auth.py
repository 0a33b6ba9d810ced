"""Access-token verification for Newsdesk.

Tokens are HS256 JWTs issued by the hosted auth provider.  The ``sub``
claim carries the user UUID (the ``profiles.id`` primary key) and the
``aud`` claim must match ``settings.auth_jwt_audience``.  Roles are never
read from the token; they live on the profile row.

Design decisions:
- decode_token() raises ValueError for invalid/missing tokens so callers can
  map failures to a 401 without importing python-jose
- create_token() is provided for testing and CLI use only
"""

from __future__ import annotations

import datetime
import uuid
from dataclasses import dataclass, field

from jose import JWTError, jwt

from newsdesk.config import settings


@dataclass
class AuthContext:
    """Authentication context extracted from a verified JWT.

    Attributes:
        user_id: Auth-provider user id, also the profile primary key.
        email:   Email claim when present.
    """

    user_id: uuid.UUID
    email: str | None = field(default=None)


def decode_token(token: str) -> AuthContext:
    """Decode a HS256 JWT and return an AuthContext.

    Args:
        token: Raw JWT string (without 'Bearer ' prefix).

    Raises:
        ValueError: If the token is invalid, expired, issued for another
                    audience or missing a UUID ``sub`` claim.
    """
    try:
        payload = jwt.decode(
            token,
            settings.auth_jwt_secret,
            algorithms=["HS256"],
            audience=settings.auth_jwt_audience,
        )
    except JWTError as exc:
        raise ValueError(f"Invalid token: {exc}") from exc

    subject = payload.get("sub")
    if not subject:
        raise ValueError("Token missing required claim: sub")
    try:
        user_id = uuid.UUID(str(subject))
    except ValueError as exc:
        raise ValueError("Token claim 'sub' is not a valid UUID") from exc

    return AuthContext(user_id=user_id, email=payload.get("email"))


def create_token(
    user_id: uuid.UUID | str,
    email: str | None = None,
    expires_in: datetime.timedelta = datetime.timedelta(hours=1),
) -> str:
    """Create a HS256 JWT shaped like the auth provider's access tokens.

    This is a utility function for testing and CLI use only.
    """
    now = datetime.datetime.now(datetime.timezone.utc)
    claims = {
        "sub": str(user_id),
        "aud": settings.auth_jwt_audience,
        "iat": int(now.timestamp()),
        "exp": int((now + expires_in).timestamp()),
    }
    if email:
        claims["email"] = email
    return jwt.encode(claims, settings.auth_jwt_secret, algorithm="HS256")
