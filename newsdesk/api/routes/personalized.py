"""Personalized news feed endpoint.

Endpoint:
- GET /news/personalized : news ranked for the signed-in user, paginated (0-based pages)
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, get_current_user
from newsdesk.api.errors import Envelope, ok
from newsdesk.api.routes.news import NewsOut
from newsdesk.scoring.personalization import personalized_feed
from newsdesk.server.auth import AuthContext

personalized_router = APIRouter(prefix="/news/personalized", tags=["personalized"])


class PersonalizedItem(NewsOut):
    personalization_score: float


class FeedPagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next_page: bool
    has_prev_page: bool
    next_page: int | None
    prev_page: int | None


class PersonalizationMetadata(BaseModel):
    user_interests: list[str]
    preferred_categories: list[str]
    articles_personalized: int
    average_personalization_score: float


class PersonalizedResponse(BaseModel):
    articles: list[PersonalizedItem]
    pagination: FeedPagination
    personalization: PersonalizationMetadata


@personalized_router.get(
    "",
    response_model=Envelope[PersonalizedResponse],
    operation_id="get_personalized_news",
    summary="Personalized news feed",
    description=(
        "Ranks relevant news by the caller's interests (activity and subscriptions), "
        "excluding items they recently viewed."
    ),
)
async def get_personalized_endpoint(
    page: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=50),
    user: AuthContext = Depends(get_current_user),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    feed = await session.run_sync(personalized_feed, user.user_id, page, limit)

    articles = []
    for news, score in feed["items"]:
        item = NewsOut.model_validate(news).model_dump()
        item["personalization_score"] = score
        articles.append(item)

    return ok(
        {
            "articles": articles,
            "pagination": feed["pagination"],
            "personalization": feed["personalization"],
        }
    )
