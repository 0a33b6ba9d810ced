"""Duplicate news detection REST endpoints.

Endpoints:
- GET  /admin/news/duplicates  : scan recent news and return duplicate groups
- POST /admin/news/duplicates  : resolve a group by keeping one item and deleting the rest

Both require the ``news_duplicates:manage`` permission (editor and above).
The scan compares every pair in a bounded candidate pool (newest first), so
its cost is quadratic in ``settings.duplicate_candidate_pool``.
"""

from __future__ import annotations

import datetime
import logging
import uuid

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.config import settings
from newsdesk.db.models import Profile
from newsdesk.similarity.duplicates import DetectionConfig
from newsdesk.similarity.scan import resolve_duplicates, scan_duplicates

logger = logging.getLogger(__name__)

duplicates_router = APIRouter(prefix="/admin/news/duplicates", tags=["duplicates"])

RESOLVE_ACTION = "resolve_duplicates"


# ---------------------------------------------------------------------------
# Response / request schemas
# ---------------------------------------------------------------------------


class NewsSummary(BaseModel):
    id: str
    title: str
    source_url: str | None = None
    source_name: str | None = None
    published_at: datetime.datetime | None = None
    created_at: datetime.datetime | None = None
    processed: bool = False


class DetectionDetail(BaseModel):
    id: str
    similarity: float
    confidence: float
    reasons: list[str]
    title: str


class GroupStatistics(BaseModel):
    total_items: int
    avg_similarity: float
    avg_confidence: float
    min_similarity: float
    max_similarity: float


class DuplicateGroupOut(BaseModel):
    group_id: str
    primary_item: NewsSummary
    duplicate_items: list[NewsSummary]
    detection_details: list[DetectionDetail]
    group_statistics: GroupStatistics
    recommended_action: str
    risk_level: str


class DuplicateScanStats(BaseModel):
    total_checked: int
    duplicates_found: int
    total_duplicate_items: int
    by_source: dict[str, int]
    similarity_threshold: float
    date_range_days: int


class DuplicateScanResponse(BaseModel):
    duplicates: list[DuplicateGroupOut]
    stats: DuplicateScanStats
    has_more: bool


class ResolveDuplicatesRequest(BaseModel):
    action: str = Field(..., description=f"Must be '{RESOLVE_ACTION}'")
    group_id: str | None = Field(default=None, description="Group id from the scan, echoed back")
    keep_id: uuid.UUID = Field(..., description="News item to keep")
    delete_ids: list[uuid.UUID] = Field(..., min_length=1, description="News items to delete")


class KeptItem(BaseModel):
    id: str
    title: str


class ResolveDuplicatesResponse(BaseModel):
    message: str
    group_id: str | None
    kept_item: KeptItem
    deleted_count: int
    deleted_ids: list[str]


# ---------------------------------------------------------------------------
# Endpoints
# ---------------------------------------------------------------------------


@duplicates_router.get(
    "",
    response_model=Envelope[DuplicateScanResponse],
    operation_id="scan_duplicates",
    summary="Detect duplicate news items",
    description=(
        "Compares recent news pairwise (text similarity, source URL, publication "
        "time, content length) and returns groups with a suggested primary item."
    ),
)
async def scan_duplicates_endpoint(
    similarity_threshold: float = Query(0.8, ge=0.0, le=1.0),
    include_processed: bool = Query(True),
    date_range_days: int = Query(30, ge=1, le=365),
    limit: int = Query(50, ge=1, le=100),
    profile: Profile = Depends(require_permission("news_duplicates", "manage")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    config = DetectionConfig.from_settings(similarity_threshold=similarity_threshold)

    groups, stats = await session.run_sync(
        scan_duplicates,
        config,
        include_processed,
        date_range_days,
        settings.duplicate_candidate_pool,
    )

    logger.info(
        "Duplicate scan by %s: checked=%d groups=%d",
        profile.id,
        stats["total_checked"],
        stats["duplicates_found"],
    )

    return ok(
        {
            "duplicates": [group.to_dict() for group in groups[:limit]],
            "stats": stats,
            "has_more": len(groups) > limit,
        }
    )


@duplicates_router.post(
    "",
    response_model=Envelope[ResolveDuplicatesResponse],
    operation_id="resolve_duplicates",
    summary="Resolve a duplicate group",
    description="Keeps one news item and deletes the listed duplicates.",
)
async def resolve_duplicates_endpoint(
    body: ResolveDuplicatesRequest,
    profile: Profile = Depends(require_permission("news_duplicates", "manage")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    if body.action != RESOLVE_ACTION:
        raise HTTPException(status_code=400, detail=f"Invalid action '{body.action}'")

    try:
        result = await session.run_sync(resolve_duplicates, body.keep_id, body.delete_ids)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    logger.info(
        "Duplicate group %s resolved by %s: deleted=%d",
        body.group_id,
        profile.id,
        result["deleted_count"],
    )

    return ok(
        {
            "message": "Duplicates resolved successfully",
            "group_id": body.group_id,
            **result,
        }
    )
