"""User role management (admin only, ``roles:manage``).

- PUT /admin/users/{user_id}/role          : change a user's role, with an audit entry
- GET /admin/users/{user_id}/role-history  : audit entries, newest first
"""

from __future__ import annotations

import datetime
import logging
import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.db.models import Profile, RoleAuditLog, UserRole, as_utc
from newsdesk.security.rbac import get_implicit_roles

logger = logging.getLogger(__name__)

roles_router = APIRouter(prefix="/admin/users", tags=["admin-users"])

_manage = require_permission("roles", "manage")


class RoleUpdate(BaseModel):
    role: UserRole
    reason: str | None = Field(default=None, max_length=500)


class RoleOut(BaseModel):
    user_id: uuid.UUID
    old_role: UserRole
    role: UserRole
    inherited_roles: list[str]


class RoleAuditOut(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    old_role: str | None = None
    new_role: str
    changed_by: uuid.UUID | None = None
    reason: str | None = None
    created_at: datetime.datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime.datetime) -> datetime.datetime:
        return as_utc(value)


async def _get_profile_or_404(session: AsyncSession, user_id: uuid.UUID) -> Profile:
    profile = await session.get(Profile, user_id)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"User '{user_id}' not found.")
    return profile


@roles_router.put(
    "/{user_id}/role",
    response_model=Envelope[RoleOut],
    operation_id="update_user_role",
    summary="Change a user's role",
)
async def update_role_endpoint(
    user_id: uuid.UUID,
    body: RoleUpdate,
    admin: Profile = Depends(_manage),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    if user_id == admin.id and body.role != UserRole.admin:
        raise HTTPException(status_code=400, detail="Admins cannot remove their own admin role")

    target = await _get_profile_or_404(session, user_id)
    old_role = target.role
    if old_role == body.role:
        raise HTTPException(status_code=400, detail=f"User already has role '{body.role.value}'")

    target.role = body.role
    session.add(
        RoleAuditLog(
            user_id=user_id,
            old_role=old_role.value,
            new_role=body.role.value,
            changed_by=admin.id,
            reason=body.reason,
        )
    )
    await session.commit()

    logger.info(
        "Role changed: user=%s %s -> %s by %s", user_id, old_role.value, body.role.value, admin.id
    )
    return ok(
        {
            "user_id": user_id,
            "old_role": old_role,
            "role": body.role,
            "inherited_roles": get_implicit_roles(body.role.value),
        }
    )


@roles_router.get(
    "/{user_id}/role-history",
    response_model=Envelope[list[RoleAuditOut]],
    operation_id="get_user_role_history",
    summary="Role change history of a user",
)
async def role_history_endpoint(
    user_id: uuid.UUID,
    admin: Profile = Depends(_manage),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    await _get_profile_or_404(session, user_id)
    rows = (
        await session.execute(
            sa.select(RoleAuditLog)
            .where(RoleAuditLog.user_id == user_id)
            .order_by(RoleAuditLog.created_at.desc())
        )
    ).scalars().all()
    return ok([RoleAuditOut.model_validate(r) for r in rows])
