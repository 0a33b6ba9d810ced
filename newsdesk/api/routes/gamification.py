"""Gamification and citizenship endpoints.

Gamification:
- POST /admin/gamification/points               : award points for a contribution (gamification:award)
- GET  /gamification/me/stats                   : caller's totals and achievements
- GET  /gamification/me/contributions           : caller's recent contributions
- GET  /gamification/me/breakdown               : caller's base / bonus point split
- POST /gamification/me/achievements/check      : award any newly met achievements
- GET  /gamification/leaderboard                : contributors ranked by content points

Citizenship:
- GET  /citizenship/progress                    : caller's progress toward citizenship
- POST /citizenship/check                       : promote the caller when eligible
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, get_current_profile, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.db.models import ContributionType, Profile, as_utc
from newsdesk.gamification.achievements import check_and_award_achievements
from newsdesk.gamification.citizenship import (
    check_and_update_citizenship,
    get_citizenship_progress,
)
from newsdesk.gamification.points import (
    award_content_points,
    contributor_summary,
    leaderboard,
    list_contributions,
    points_breakdown,
)

logger = logging.getLogger(__name__)

gamification_router = APIRouter(prefix="/gamification", tags=["gamification"])
admin_gamification_router = APIRouter(prefix="/admin/gamification", tags=["admin-gamification"])
citizenship_router = APIRouter(prefix="/citizenship", tags=["citizenship"])


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class AwardRequest(BaseModel):
    user_id: uuid.UUID
    content_id: uuid.UUID
    content_type: Literal["article", "news", "proposal", "translation"]
    contribution_type: ContributionType
    base_points: int | None = Field(default=None, ge=0, le=1000)
    quality_score: float | None = Field(default=None, ge=0.0, le=5.0)
    metadata: dict = Field(default_factory=dict)


class ContributionOut(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    content_id: uuid.UUID
    content_type: str
    contribution_type: ContributionType
    base_points: int
    bonus_points: int
    total_points: int
    quality_score: float | None = None
    created_at: datetime.datetime

    @field_validator("created_at")
    @classmethod
    def _utc(cls, value: datetime.datetime) -> datetime.datetime:
        return as_utc(value)


class AwardResponse(BaseModel):
    contribution: ContributionOut
    user_total_points: int


class AchievementOut(BaseModel):
    type: str
    name: str
    description: str | None = None
    icon: str | None = None
    color: str | None = None


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------


@admin_gamification_router.post(
    "/points",
    response_model=Envelope[AwardResponse],
    operation_id="award_points",
    summary="Award contribution points",
    description=(
        "Base points default to the contribution type's base value.  A quality score of "
        "3.5 or more adds a bonus.  The recipient's citizenship status is re-checked."
    ),
    status_code=201,
)
async def award_points_endpoint(
    body: AwardRequest,
    profile: Profile = Depends(require_permission("gamification", "award")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    awarded_by = profile.id
    metadata = {**body.metadata, "awarded_by": str(awarded_by)}
    try:
        contribution = await session.run_sync(
            lambda s: award_content_points(
                s,
                user_id=body.user_id,
                content_id=body.content_id,
                content_type=body.content_type,
                contribution_type=body.contribution_type,
                base_points=body.base_points,
                quality_score=body.quality_score,
                metadata=metadata,
            )
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    recipient = await session.get(Profile, body.user_id)
    await session.commit()
    return ok(
        {
            "contribution": ContributionOut.model_validate(contribution),
            "user_total_points": recipient.total_points,
        }
    )


@gamification_router.get(
    "/me/stats",
    response_model=Envelope[dict],
    operation_id="get_my_gamification_stats",
    summary="Caller's points, counters and achievements",
)
async def my_stats_endpoint(
    profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    return ok(await session.run_sync(contributor_summary, profile.id))


@gamification_router.get(
    "/me/contributions",
    response_model=Envelope[list[ContributionOut]],
    operation_id="list_my_contributions",
    summary="Caller's recent contributions",
)
async def my_contributions_endpoint(
    limit: int = Query(20, ge=1, le=100),
    profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    rows = await session.run_sync(list_contributions, profile.id, limit)
    return ok([ContributionOut.model_validate(r) for r in rows])


@gamification_router.get(
    "/me/breakdown",
    response_model=Envelope[dict],
    operation_id="get_my_points_breakdown",
    summary="Caller's base and bonus points",
)
async def my_breakdown_endpoint(
    profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    return ok(await session.run_sync(points_breakdown, profile.id))


@gamification_router.post(
    "/me/achievements/check",
    response_model=Envelope[list[AchievementOut]],
    operation_id="check_my_achievements",
    summary="Award newly met achievements",
    description="Returns only the achievements awarded by this call.",
)
async def check_achievements_endpoint(
    profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    awarded = await session.run_sync(check_and_award_achievements, profile.id)
    result = [
        {
            "type": a.achievement_type,
            "name": a.name,
            "description": a.description,
            "icon": a.icon,
            "color": a.color,
        }
        for a in awarded
    ]
    await session.commit()
    return ok(result)


@gamification_router.get(
    "/leaderboard",
    response_model=Envelope[list[dict]],
    operation_id="get_leaderboard",
    summary="Contributor leaderboard",
)
async def leaderboard_endpoint(
    limit: int = Query(50, ge=1, le=100),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    return ok(await session.run_sync(leaderboard, limit))


# ---------------------------------------------------------------------------
# Citizenship
# ---------------------------------------------------------------------------


@citizenship_router.get(
    "/progress",
    response_model=Envelope[dict],
    operation_id="get_citizenship_progress",
    summary="Caller's citizenship progress",
)
async def citizenship_progress_endpoint(
    profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    return ok(await session.run_sync(get_citizenship_progress, profile.id))


@citizenship_router.post(
    "/check",
    response_model=Envelope[dict],
    operation_id="check_citizenship",
    summary="Check citizenship and promote when eligible",
    description="An eligible student becomes a citizen; the change is written to the role audit log.",
)
async def citizenship_check_endpoint(
    profile: Profile = Depends(get_current_profile),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    progress = await session.run_sync(check_and_update_citizenship, profile.id)
    await session.commit()
    return ok(progress)
