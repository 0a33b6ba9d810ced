"""Cron endpoints for an external scheduler.

Each endpoint runs one maintenance job synchronously and returns its result.
Requests must carry the ``X-Cron-Secret`` header.

- POST /cron/trending           : recompute trending scores
- POST /cron/publish-scheduled  : publish articles whose schedule has passed
- POST /cron/tags/cleanup       : delete old unused tags
- POST /cron/popularity         : award popularity milestone points to authors
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_cron_secret
from newsdesk.api.errors import Envelope, ok
from newsdesk.content.publishing import publish_scheduled_articles
from newsdesk.content.tags import cleanup_unused_tags
from newsdesk.gamification.points import award_popularity_milestones
from newsdesk.scoring.trending import recompute_trending_scores

logger = logging.getLogger(__name__)

cron_router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(require_cron_secret)],
)


@cron_router.post(
    "/trending",
    response_model=Envelope[dict],
    operation_id="cron_recompute_trending",
    summary="Recompute trending scores",
)
async def cron_trending_endpoint(
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(recompute_trending_scores)
    logger.info("Cron trending: %s", result)
    return ok(result)


@cron_router.post(
    "/publish-scheduled",
    response_model=Envelope[dict],
    operation_id="cron_publish_scheduled",
    summary="Publish scheduled articles",
)
async def cron_publish_scheduled_endpoint(
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(publish_scheduled_articles)
    logger.info("Cron publish-scheduled: %d published", result["published_count"])
    return ok(result)


@cron_router.post(
    "/tags/cleanup",
    response_model=Envelope[dict],
    operation_id="cron_cleanup_tags",
    summary="Delete unused tags",
)
async def cron_cleanup_tags_endpoint(
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    return ok(await session.run_sync(cleanup_unused_tags))


@cron_router.post(
    "/popularity",
    response_model=Envelope[dict],
    operation_id="cron_award_popularity",
    summary="Award popularity milestones",
    description="Milestones already paid for an item are not paid again.",
)
async def cron_popularity_endpoint(
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(award_popularity_milestones)
    logger.info("Cron popularity: %d award(s)", result["awarded_count"])
    return ok(result)
