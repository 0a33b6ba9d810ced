"""Admin analytics endpoints (analytics:read).

- GET /admin/analytics/news        : per-item news performance and source summary
- GET /admin/analytics/articles    : status counts, top articles, reading time
- GET /admin/analytics/engagement  : interaction totals and a daily series
- GET /admin/analytics/authors     : per-author productivity and performance
- GET /admin/analytics/trends      : time series, growth, trending topics and activity patterns
"""

from __future__ import annotations

import uuid
from typing import Literal

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.content.analytics import (
    article_analytics,
    author_analytics,
    engagement_analytics,
    news_analytics,
    trend_analytics,
)

analytics_router = APIRouter(
    prefix="/admin/analytics",
    tags=["analytics"],
    dependencies=[Depends(require_permission("analytics", "read"))],
)


@analytics_router.get(
    "/news",
    response_model=Envelope[dict],
    operation_id="news_analytics",
    summary="News performance analytics",
)
async def news_analytics_endpoint(
    days: int = Query(30, ge=1, le=365),
    category_id: uuid.UUID | None = Query(None),
    source_name: str | None = Query(None, max_length=200),
    processed: bool | None = Query(None),
    sort_by: Literal["trending_score", "created_at", "published_at", "views", "engagement_rate"] = Query(
        "trending_score"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(50, ge=1, le=200),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(
        lambda s: news_analytics(
            s,
            days=days,
            category_id=category_id,
            source_name=source_name,
            processed=processed,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    )
    result["filters"] = {
        "days": days,
        "category_id": category_id,
        "source_name": source_name,
        "processed": processed,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    return ok(result)


@analytics_router.get(
    "/articles",
    response_model=Envelope[dict],
    operation_id="article_analytics",
    summary="Article analytics",
)
async def article_analytics_endpoint(
    category_id: uuid.UUID | None = Query(None),
    author_id: uuid.UUID | None = Query(None),
    top: int = Query(10, ge=1, le=50),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(
        lambda s: article_analytics(s, category_id=category_id, author_id=author_id, top_limit=top)
    )
    return ok(result)


@analytics_router.get(
    "/engagement",
    response_model=Envelope[dict],
    operation_id="engagement_analytics",
    summary="Engagement analytics",
    description="Counts interactions by type over the last `days` days, with one entry per day.",
)
async def engagement_analytics_endpoint(
    days: int = Query(30, ge=1, le=90),
    content_type: Literal["news", "article"] | None = Query(None),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(
        lambda s: engagement_analytics(s, days=days, content_type=content_type)
    )
    return ok(result)


@analytics_router.get(
    "/authors",
    response_model=Envelope[dict],
    operation_id="author_analytics",
    summary="Author analytics",
    description=(
        "Productivity and performance of every author.  Recent counts and recent_productivity "
        "cover the last `days` days.  engagement_rate is likes per 100 views."
    ),
)
async def author_analytics_endpoint(
    days: int = Query(30, ge=1, le=365),
    author_id: uuid.UUID | None = Query(None),
    sort_by: Literal[
        "total_articles",
        "published_articles",
        "total_views",
        "avg_views_per_article",
        "engagement_rate",
        "recent_productivity",
    ] = Query("total_articles"),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(20, ge=1, le=100),
    offset: int = Query(0, ge=0),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(
        lambda s: author_analytics(
            s,
            days=days,
            author_id=author_id,
            sort_by=sort_by,
            sort_order=sort_order,
            limit=limit,
            offset=offset,
        )
    )
    result["filters"] = {
        "days": days,
        "author_id": author_id,
        "sort_by": sort_by,
        "sort_order": sort_order,
    }
    return ok(result)


@analytics_router.get(
    "/trends",
    response_model=Envelope[dict],
    operation_id="trend_analytics",
    summary="Content trends",
)
async def trend_analytics_endpoint(
    days: int = Query(90, ge=1, le=365),
    content_type: Literal["all", "articles", "news"] = Query("all"),
    granularity: Literal["daily", "weekly", "monthly"] = Query("daily"),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(
        lambda s: trend_analytics(s, days=days, content_type=content_type, granularity=granularity)
    )
    result["filters"] = {"days": days, "content_type": content_type, "granularity": granularity}
    return ok(result)
