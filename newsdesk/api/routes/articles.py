"""Article REST endpoints.

Admin (articles:write):
- GET    /admin/articles               : filtered, sorted, paginated list with per-status stats
- POST   /admin/articles               : create
- GET    /admin/articles/{article_id}  : detail with tags and history
- PUT    /admin/articles/{article_id}  : update (history entry)
- DELETE /admin/articles/{article_id}  : delete

Review:
- GET  /admin/articles/pending-review                : review queue with priorities and stats (articles:review)
- POST /admin/articles/{article_id}/assign-reviewer  : assign an editor or admin (articles:assign)
- POST /admin/articles/{article_id}/review           : approve, reject or request changes (articles:review)
- POST /admin/articles/{article_id}/approve          : publish now or schedule (articles:approve)
- POST /admin/articles/{article_id}/reject           : back to draft with feedback (articles:review)
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Literal

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field, field_validator
from slugify import slugify
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.api.utils import pagination, reading_time_minutes
from newsdesk.content.publishing import (
    approve_article,
    assign_reviewer,
    pending_review_queue,
    reject_article,
    submit_review,
)
from newsdesk.content.tags import recount_usage, set_article_tags
from newsdesk.db.models import (
    Article,
    ArticleHistory,
    ArticleStatus,
    ArticleTag,
    Category,
    Language,
    Profile,
    ReviewPriority,
    Tag,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

articles_router = APIRouter(prefix="/admin/articles", tags=["admin-articles"])

_write = require_permission("articles", "write")

_SORT_COLUMNS = {
    "created_at": Article.created_at,
    "updated_at": Article.updated_at,
    "published_at": Article.published_at,
    "title": Article.title,
    "view_count": Article.view_count,
}


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class ArticleOut(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    title: str
    slug: str
    content: str
    excerpt: str | None = None
    status: ArticleStatus
    language: Language
    category_id: uuid.UUID | None = None
    author_id: uuid.UUID | None = None
    featured_image_url: str | None = None
    seo_title: str | None = None
    seo_description: str | None = None
    reading_time: int
    view_count: int
    like_count: int
    share_count: int
    published_at: datetime.datetime | None = None
    scheduled_at: datetime.datetime | None = None
    reviewed_by: uuid.UUID | None = None
    reviewed_at: datetime.datetime | None = None
    assigned_reviewer_id: uuid.UUID | None = None
    review_priority: ReviewPriority | None = None
    review_deadline: datetime.datetime | None = None
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @field_validator(
        "published_at", "scheduled_at", "reviewed_at", "review_deadline", "created_at", "updated_at"
    )
    @classmethod
    def _utc(cls, value: datetime.datetime | None) -> datetime.datetime | None:
        return as_utc(value)


class ArticleTagOut(BaseModel):
    id: uuid.UUID
    name: str
    slug: str


class HistoryOut(BaseModel):
    model_config = {"from_attributes": True}

    action: str
    changed_by: uuid.UUID | None = None
    previous_status: str | None = None
    new_status: str | None = None
    notes: str | None = None
    changes: dict = Field(default_factory=dict)
    created_at: datetime.datetime


class ArticleDetail(ArticleOut):
    tags: list[ArticleTagOut] = Field(default_factory=list)
    history: list[HistoryOut] = Field(default_factory=list)


class StatusStats(BaseModel):
    total: int = 0
    draft: int = 0
    review: int = 0
    published: int = 0
    archived: int = 0


class ArticleList(BaseModel):
    items: list[ArticleOut]
    pagination: dict
    stats: StatusStats


class ArticleCreate(BaseModel):
    title: str = Field(..., min_length=10, max_length=300)
    content: str = Field(..., min_length=100)
    excerpt: str | None = Field(default=None, max_length=500)
    status: ArticleStatus = ArticleStatus.draft
    language: Language = Language.es
    category_id: uuid.UUID | None = None
    tag_ids: list[uuid.UUID] = Field(default_factory=list)
    featured_image_url: str | None = None
    seo_title: str | None = Field(default=None, max_length=300)
    seo_description: str | None = Field(default=None, max_length=500)


class ArticleUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=10, max_length=300)
    slug: str | None = Field(default=None, max_length=320)
    content: str | None = Field(default=None, min_length=100)
    excerpt: str | None = Field(default=None, max_length=500)
    status: ArticleStatus | None = None
    language: Language | None = None
    category_id: uuid.UUID | None = None
    tag_ids: list[uuid.UUID] | None = None
    featured_image_url: str | None = None
    seo_title: str | None = Field(default=None, max_length=300)
    seo_description: str | None = Field(default=None, max_length=500)
    notes: str | None = Field(default=None, max_length=1000)


class ApproveRequest(BaseModel):
    publish_immediately: bool = True
    scheduled_at: datetime.datetime | None = None
    notes: str | None = Field(default=None, max_length=1000)


class RejectRequest(BaseModel):
    reason: str = Field(..., min_length=20, max_length=1000)
    feedback: str = Field(..., min_length=10, max_length=5000)


class AssignReviewerRequest(BaseModel):
    reviewer_id: uuid.UUID
    priority: ReviewPriority = ReviewPriority.medium
    deadline: datetime.datetime | None = None
    assignment_notes: str | None = Field(default=None, max_length=1000)
    review_type: Literal["content", "technical", "seo", "full"] = "content"
    estimated_review_time: int = Field(default=30, ge=5, le=480, description="Minutes")


class SuggestedChange(BaseModel):
    section: str = Field(..., max_length=200)
    comment: str = Field(..., max_length=2000)
    priority: ReviewPriority = ReviewPriority.medium


class ReviewRequest(BaseModel):
    action: Literal["approve", "reject", "request_changes"]
    feedback: str = Field(..., min_length=10, max_length=5000)
    reviewer_notes: str | None = Field(default=None, max_length=5000)
    suggested_changes: list[SuggestedChange] = Field(default_factory=list)
    quality_score: float | None = Field(default=None, ge=1, le=5)
    assign_to: uuid.UUID | None = None


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_article_or_404(session: AsyncSession, article_id: uuid.UUID) -> Article:
    article = await session.get(Article, article_id)
    if article is None:
        raise HTTPException(status_code=404, detail=f"Article '{article_id}' not found.")
    return article


async def _unique_slug(
    session: AsyncSession, base: str, exclude_id: uuid.UUID | None = None
) -> str:
    """*base*, or *base* with the lowest free numeric suffix."""
    stmt = sa.select(Article.slug).where(
        sa.or_(Article.slug == base, Article.slug.like(f"{base}-%"))
    )
    if exclude_id is not None:
        stmt = stmt.where(Article.id != exclude_id)
    taken = set((await session.execute(stmt)).scalars())
    if base not in taken:
        return base
    suffix = 2
    while f"{base}-{suffix}" in taken:
        suffix += 1
    return f"{base}-{suffix}"


async def _ensure_category(session: AsyncSession, category_id: uuid.UUID | None) -> None:
    if category_id is not None and await session.get(Category, category_id) is None:
        raise HTTPException(status_code=400, detail=f"Category '{category_id}' does not exist")


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@articles_router.get(
    "",
    response_model=Envelope[ArticleList],
    operation_id="list_articles",
    summary="List articles",
    description="Filters combine with AND.  Stats count every article by status, ignoring filters.",
)
async def list_articles_endpoint(
    status: ArticleStatus | None = Query(None),
    author_id: uuid.UUID | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    search: str | None = Query(None, max_length=200),
    date_from: datetime.datetime | None = Query(None),
    date_to: datetime.datetime | None = Query(None),
    sort_by: Literal["created_at", "updated_at", "published_at", "title", "view_count"] = Query(
        "created_at"
    ),
    sort_order: Literal["asc", "desc"] = Query("desc"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    filters = []
    if status is not None:
        filters.append(Article.status == status)
    if author_id is not None:
        filters.append(Article.author_id == author_id)
    if category_id is not None:
        filters.append(Article.category_id == category_id)
    if search:
        pattern = f"%{search}%"
        filters.append(sa.or_(Article.title.ilike(pattern), Article.excerpt.ilike(pattern)))
    if date_from is not None:
        filters.append(Article.created_at >= date_from)
    if date_to is not None:
        filters.append(Article.created_at <= date_to)

    column = _SORT_COLUMNS[sort_by]
    order = column.asc() if sort_order == "asc" else column.desc()

    total = (
        await session.execute(sa.select(sa.func.count(Article.id)).where(*filters))
    ).scalar_one()
    rows = (
        await session.execute(
            sa.select(Article)
            .where(*filters)
            .order_by(order, Article.id)
            .offset((page - 1) * limit)
            .limit(limit)
        )
    ).scalars().all()

    stats = StatusStats()
    for row_status, count in await session.execute(
        sa.select(Article.status, sa.func.count(Article.id)).group_by(Article.status)
    ):
        setattr(stats, ArticleStatus(row_status).value, count)
        stats.total += count

    return ok(
        {
            "items": [ArticleOut.model_validate(r) for r in rows],
            "pagination": pagination(page, limit, total),
            "stats": stats,
        }
    )


@articles_router.post(
    "",
    response_model=Envelope[ArticleOut],
    operation_id="create_article",
    summary="Create an article",
    description="The slug is derived from the title; reading time assumes 200 words per minute.",
    status_code=201,
)
async def create_article_endpoint(
    body: ArticleCreate,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    base_slug = slugify(body.title)
    if not base_slug:
        raise HTTPException(status_code=400, detail="Title must contain letters or digits")
    await _ensure_category(session, body.category_id)

    article = Article(
        **body.model_dump(exclude={"tag_ids"}),
        slug=await _unique_slug(session, base_slug),
        author_id=profile.id,
        reading_time=reading_time_minutes(body.content),
        translations={},
    )
    if body.status == ArticleStatus.published:
        article.published_at = utcnow()
    session.add(article)
    await session.flush()

    if body.tag_ids:
        await session.run_sync(lambda s: set_article_tags(s, article.id, body.tag_ids))
    session.add(
        ArticleHistory(
            article_id=article.id,
            changed_by=profile.id,
            action="created",
            new_status=body.status.value,
            changes={},
        )
    )
    await session.commit()
    await session.refresh(article)

    logger.info("Article created: %s (%s) by %s", article.slug, article.id, profile.id)
    return ok(ArticleOut.model_validate(article))


@articles_router.get(
    "/pending-review",
    response_model=Envelope[dict],
    operation_id="pending_review_queue",
    summary="Review queue",
    description=(
        "Articles in review.  Priority is the one set at assignment, otherwise high after "
        "more than 3 days without an update and medium after more than 1.  Stats cover the "
        "whole queue."
    ),
)
async def pending_review_endpoint(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    priority: ReviewPriority | None = Query(None),
    author_id: uuid.UUID | None = Query(None),
    category_id: uuid.UUID | None = Query(None),
    days_pending: int | None = Query(None, ge=0),
    assigned_to: uuid.UUID | None = Query(None),
    sort_by: Literal["created_at", "updated_at", "priority", "author"] = Query("updated_at"),
    sort_order: Literal["asc", "desc"] = Query("asc"),
    profile: Profile = Depends(require_permission("articles", "review")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    result = await session.run_sync(
        lambda s: pending_review_queue(
            s,
            page=page,
            limit=limit,
            priority=priority,
            author_id=author_id,
            category_id=category_id,
            days_pending=days_pending,
            assigned_to=assigned_to,
            sort_by=sort_by,
            sort_order=sort_order,
        )
    )
    result["pagination"] = pagination(page, limit, result.pop("total"))
    return ok(result)


@articles_router.get(
    "/{article_id}",
    response_model=Envelope[ArticleDetail],
    operation_id="get_article",
    summary="Get an article",
)
async def get_article_endpoint(
    article_id: uuid.UUID,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    article = await _get_article_or_404(session, article_id)
    tags = (
        await session.execute(
            sa.select(Tag)
            .join(ArticleTag, ArticleTag.tag_id == Tag.id)
            .where(ArticleTag.article_id == article_id)
            .order_by(Tag.name)
        )
    ).scalars().all()
    history = (
        await session.execute(
            sa.select(ArticleHistory)
            .where(ArticleHistory.article_id == article_id)
            .order_by(ArticleHistory.created_at.desc())
        )
    ).scalars().all()

    detail = ArticleOut.model_validate(article).model_dump()
    detail["tags"] = [{"id": t.id, "name": t.name, "slug": t.slug} for t in tags]
    detail["history"] = [HistoryOut.model_validate(h) for h in history]
    return ok(detail)


@articles_router.put(
    "/{article_id}",
    response_model=Envelope[ArticleOut],
    operation_id="update_article",
    summary="Update an article",
)
async def update_article_endpoint(
    article_id: uuid.UUID,
    body: ArticleUpdate,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    article = await _get_article_or_404(session, article_id)
    updates = body.model_dump(exclude_unset=True)
    notes = updates.pop("notes", None)
    tag_ids = updates.pop("tag_ids", None)

    if updates.get("slug") is not None:
        slug = slugify(updates["slug"])
        if not slug:
            raise HTTPException(status_code=400, detail="Slug cannot be empty")
        if await _unique_slug(session, slug, exclude_id=article_id) != slug:
            raise HTTPException(status_code=409, detail=f"Article slug '{slug}' already exists")
        updates["slug"] = slug
    if "category_id" in updates:
        await _ensure_category(session, updates["category_id"])
    if updates.get("content") is not None:
        updates["reading_time"] = reading_time_minutes(updates["content"])

    previous_status = article.status
    new_status = updates.get("status")
    if new_status == ArticleStatus.published and article.published_at is None:
        updates["published_at"] = utcnow()

    changed = sorted(k for k, v in updates.items() if getattr(article, k) != v)
    for key, value in updates.items():
        setattr(article, key, value)
    if tag_ids is not None:
        await session.run_sync(lambda s: set_article_tags(s, article_id, tag_ids))
        changed.append("tags")

    session.add(
        ArticleHistory(
            article_id=article_id,
            changed_by=profile.id,
            action="updated",
            previous_status=previous_status.value,
            new_status=article.status.value,
            notes=notes,
            changes={"fields": changed},
        )
    )
    await session.commit()
    await session.refresh(article)
    return ok(ArticleOut.model_validate(article))


@articles_router.delete(
    "/{article_id}",
    response_model=Envelope[dict],
    operation_id="delete_article",
    summary="Delete an article",
)
async def delete_article_endpoint(
    article_id: uuid.UUID,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    article = await _get_article_or_404(session, article_id)
    tag_ids = list(
        (
            await session.execute(
                sa.select(ArticleTag.tag_id).where(ArticleTag.article_id == article_id)
            )
        ).scalars()
    )

    await session.execute(sa.delete(ArticleTag).where(ArticleTag.article_id == article_id))
    await session.execute(sa.delete(ArticleHistory).where(ArticleHistory.article_id == article_id))
    await session.delete(article)
    await session.flush()
    await session.run_sync(recount_usage, tag_ids)
    await session.commit()

    logger.info("Article deleted: %s by %s", article_id, profile.id)
    return ok({"id": str(article_id), "deleted": True})


# ---------------------------------------------------------------------------
# Review workflow
# ---------------------------------------------------------------------------


@articles_router.post(
    "/{article_id}/approve",
    response_model=Envelope[ArticleOut],
    operation_id="approve_article",
    summary="Approve an article",
    description=(
        "Publishes immediately, or with publish_immediately=false keeps the article in "
        "review until scheduled_at.  Only draft and review articles can be approved."
    ),
)
async def approve_article_endpoint(
    article_id: uuid.UUID,
    body: ApproveRequest,
    profile: Profile = Depends(require_permission("articles", "approve")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    reviewer_id = profile.id
    try:
        article = await session.run_sync(
            approve_article,
            article_id,
            reviewer_id,
            body.publish_immediately,
            body.scheduled_at,
            body.notes,
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return ok(ArticleOut.model_validate(article))


@articles_router.post(
    "/{article_id}/reject",
    response_model=Envelope[ArticleOut],
    operation_id="reject_article",
    summary="Reject an article",
    description="Returns the article to draft with a reason (20+ chars) and feedback (10+ chars).",
)
async def reject_article_endpoint(
    article_id: uuid.UUID,
    body: RejectRequest,
    profile: Profile = Depends(require_permission("articles", "review")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    reviewer_id = profile.id
    try:
        article = await session.run_sync(
            reject_article, article_id, reviewer_id, body.reason, body.feedback
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return ok(ArticleOut.model_validate(article))


@articles_router.post(
    "/{article_id}/assign-reviewer",
    response_model=Envelope[ArticleOut],
    operation_id="assign_reviewer",
    summary="Assign a reviewer",
    description=(
        "Moves a draft or review article into the review queue of an editor or admin.  "
        "The author cannot review their own article.  The deadline defaults to 3 days."
    ),
)
async def assign_reviewer_endpoint(
    article_id: uuid.UUID,
    body: AssignReviewerRequest,
    profile: Profile = Depends(require_permission("articles", "assign")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    assigned_by = profile.id
    try:
        article = await session.run_sync(
            lambda s: assign_reviewer(
                s,
                article_id,
                body.reviewer_id,
                assigned_by,
                priority=body.priority,
                deadline=body.deadline,
                review_type=body.review_type,
                estimated_review_time=body.estimated_review_time,
                notes=body.assignment_notes,
            )
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return ok(ArticleOut.model_validate(article))


@articles_router.post(
    "/{article_id}/review",
    response_model=Envelope[ArticleOut],
    operation_id="review_article",
    summary="Submit a review",
    description=(
        "approve publishes the article; reject and request_changes return it to draft.  "
        "The reviewer earns reviewer points.  A quality_score on an approval gives the "
        "author a quality bonus.  assign_to hands the article to another editor or admin."
    ),
)
async def review_article_endpoint(
    article_id: uuid.UUID,
    body: ReviewRequest,
    profile: Profile = Depends(require_permission("articles", "review")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    reviewer_id = profile.id
    try:
        article = await session.run_sync(
            lambda s: submit_review(
                s,
                article_id,
                reviewer_id,
                body.action,
                body.feedback,
                reviewer_notes=body.reviewer_notes,
                suggested_changes=[c.model_dump(mode="json") for c in body.suggested_changes],
                quality_score=body.quality_score,
                assign_to=body.assign_to,
            )
        )
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return ok(ArticleOut.model_validate(article))
