"""Trending news REST endpoints.

Endpoints:
- GET  /news/trending : rank recent news by trending score (public)
- POST /news/trending : recompute and persist scores for given ids (news:write)

Scores of the returned items are persisted before the response is sent.
"""

from __future__ import annotations

import datetime
import logging
import uuid

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.api.routes.news import NewsOut
from newsdesk.config import settings
from newsdesk.db.models import Profile, utcnow
from newsdesk.scoring.trending import rank_trending, recompute_trending_scores

logger = logging.getLogger(__name__)

trending_router = APIRouter(prefix="/news/trending", tags=["trending"])


class TrendingMetricsOut(BaseModel):
    views: int
    likes: int
    shares: int
    comments: int
    velocity: float


class TrendingItem(NewsOut):
    trending_metrics: TrendingMetricsOut


class TrendingMetadata(BaseModel):
    time_window: int
    category: str | None
    min_score: float
    articles_analyzed: int
    trending_articles_found: int
    average_trending_score: float
    last_updated: datetime.datetime


class TrendingResponse(BaseModel):
    articles: list[TrendingItem]
    metadata: TrendingMetadata


class RecomputeRequest(BaseModel):
    article_ids: list[uuid.UUID] = Field(..., description="News ids to rescore")
    time_window: int = Field(default=24, ge=1, le=24 * 30)


class RecomputeResponse(BaseModel):
    updated: int
    total: int
    message: str


@trending_router.get(
    "",
    response_model=Envelope[TrendingResponse],
    operation_id="get_trending_news",
    summary="Trending news",
    description=(
        "Scores news published within twice the time window by engagement, "
        "recency and interaction velocity; returns items at or above min_score."
    ),
)
async def get_trending_endpoint(
    limit: int = Query(20, ge=1, le=50),
    time_window: int = Query(settings.trending_window_hours, ge=1, le=24 * 30),
    category: str | None = Query(None, description="Category slug"),
    min_score: float = Query(settings.trending_min_score, ge=0.0, le=10.0),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    ranked, analysed = await session.run_sync(
        rank_trending, time_window, min_score, limit, category_slug=category
    )

    articles = []
    for entry in ranked:
        item = NewsOut.model_validate(entry["news"]).model_dump()
        item["trending_score"] = entry["trending_score"]
        item["trending_metrics"] = entry["trending_metrics"]
        articles.append(item)

    average = (
        sum(a["trending_score"] for a in articles) / len(articles) if articles else 0.0
    )

    return ok(
        {
            "articles": articles,
            "metadata": {
                "time_window": time_window,
                "category": category,
                "min_score": min_score,
                "articles_analyzed": analysed,
                "trending_articles_found": len(articles),
                "average_trending_score": round(average, 2),
                "last_updated": utcnow(),
            },
        }
    )


@trending_router.post(
    "",
    response_model=Envelope[RecomputeResponse],
    operation_id="recompute_trending_scores",
    summary="Recompute trending scores",
)
async def recompute_trending_endpoint(
    body: RecomputeRequest,
    profile: Profile = Depends(require_permission("news", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(
        recompute_trending_scores, body.article_ids, body.time_window
    )
    logger.info("Trending recompute requested by %s: %s", profile.id, result)
    return ok(
        {
            **result,
            "message": f"Updated trending scores for {result['updated']} articles",
        }
    )
