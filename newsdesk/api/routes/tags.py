"""Tag REST endpoints (admin only, ``tags:write``).

- GET    /admin/tags                   : list, optional name search, most used first
- POST   /admin/tags                   : create
- GET    /admin/tags/{tag_id}          : tag with the articles using it
- PUT    /admin/tags/{tag_id}          : update name / slug / description / color
- DELETE /admin/tags/{tag_id}          : delete an unused tag
- POST   /admin/tags/merge             : fold source tags into a target tag
- POST   /admin/tags/merge-duplicates  : merge tags sharing a name
- POST   /admin/tags/cleanup           : delete old unused tags
"""

from __future__ import annotations

import datetime
import logging
import uuid

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, Field
from slugify import slugify
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.content.tags import cleanup_unused_tags, merge_duplicate_tags, merge_tags
from newsdesk.db.models import Article, ArticleTag, Profile, Tag

logger = logging.getLogger(__name__)

tags_router = APIRouter(prefix="/admin/tags", tags=["admin-tags"])

_write = require_permission("tags", "write")


class TagOut(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    slug: str
    description: str | None = None
    color: str | None = None
    usage_count: int
    created_at: datetime.datetime


class TagArticle(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    title: str
    slug: str
    status: str


class TagDetail(TagOut):
    articles: list[TagArticle] = Field(default_factory=list)


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    slug: str | None = Field(default=None, max_length=60)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, max_length=20)


class TagUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=50)
    slug: str | None = Field(default=None, max_length=60)
    description: str | None = Field(default=None, max_length=500)
    color: str | None = Field(default=None, max_length=20)


class MergeRequest(BaseModel):
    source_ids: list[uuid.UUID] = Field(..., min_length=1)
    target_id: uuid.UUID


class CleanupRequest(BaseModel):
    older_than_days: int | None = Field(default=None, ge=0)


async def _get_tag_or_404(session: AsyncSession, tag_id: uuid.UUID) -> Tag:
    tag = await session.get(Tag, tag_id)
    if tag is None:
        raise HTTPException(status_code=404, detail=f"Tag '{tag_id}' not found.")
    return tag


async def _ensure_unique(
    session: AsyncSession, name: str | None, slug: str | None, exclude_id: uuid.UUID | None = None
) -> None:
    conditions = []
    if name is not None:
        conditions.append(sa.func.lower(Tag.name) == name.strip().lower())
    if slug is not None:
        conditions.append(Tag.slug == slug)
    if not conditions:
        return
    stmt = sa.select(Tag.id).where(sa.or_(*conditions))
    if exclude_id is not None:
        stmt = stmt.where(Tag.id != exclude_id)
    if (await session.execute(stmt)).first() is not None:
        raise HTTPException(status_code=409, detail="A tag with this name or slug already exists")


@tags_router.get(
    "",
    response_model=Envelope[list[TagOut]],
    operation_id="list_tags",
    summary="List tags",
)
async def list_tags_endpoint(
    search: str | None = Query(None, max_length=100),
    limit: int = Query(100, ge=1, le=500),
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    stmt = sa.select(Tag)
    if search:
        stmt = stmt.where(Tag.name.ilike(f"%{search}%"))
    rows = (
        await session.execute(stmt.order_by(Tag.usage_count.desc(), Tag.name.asc()).limit(limit))
    ).scalars().all()
    return ok([TagOut.model_validate(r) for r in rows])


@tags_router.post(
    "",
    response_model=Envelope[TagOut],
    operation_id="create_tag",
    summary="Create a tag",
    status_code=201,
)
async def create_tag_endpoint(
    body: TagCreate,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    slug = body.slug or slugify(body.name)
    if not slug:
        raise HTTPException(status_code=400, detail="Tag slug cannot be empty")
    await _ensure_unique(session, body.name, slug)

    tag = Tag(
        name=body.name.strip(),
        slug=slug,
        description=body.description,
        color=body.color,
        usage_count=0,
    )
    session.add(tag)
    await session.commit()
    await session.refresh(tag)
    logger.info("Tag created: %s (%s) by %s", tag.slug, tag.id, profile.id)
    return ok(TagOut.model_validate(tag))


# Static paths are declared before /{tag_id} so they are not captured by it.


@tags_router.post(
    "/merge",
    response_model=Envelope[dict],
    operation_id="merge_tags",
    summary="Merge tags into a target tag",
    description="Article links move to the target, the sources are deleted and usage is recounted.",
)
async def merge_tags_endpoint(
    body: MergeRequest,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    try:
        result = await session.run_sync(merge_tags, body.source_ids, body.target_id)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    except LookupError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return ok(result)


@tags_router.post(
    "/merge-duplicates",
    response_model=Envelope[dict],
    operation_id="merge_duplicate_tags",
    summary="Merge tags that share a name",
)
async def merge_duplicates_endpoint(
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    return ok(await session.run_sync(merge_duplicate_tags))


@tags_router.post(
    "/cleanup",
    response_model=Envelope[dict],
    operation_id="cleanup_tags",
    summary="Delete unused tags",
    description="Deletes tags with no articles created more than older_than_days ago.",
)
async def cleanup_tags_endpoint(
    body: CleanupRequest | None = None,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    older_than_days = body.older_than_days if body else None
    return ok(await session.run_sync(cleanup_unused_tags, older_than_days))


@tags_router.get(
    "/{tag_id}",
    response_model=Envelope[TagDetail],
    operation_id="get_tag",
    summary="Get a tag and its articles",
)
async def get_tag_endpoint(
    tag_id: uuid.UUID,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    tag = await _get_tag_or_404(session, tag_id)
    articles = (
        await session.execute(
            sa.select(Article)
            .join(ArticleTag, ArticleTag.article_id == Article.id)
            .where(ArticleTag.tag_id == tag_id)
            .order_by(Article.created_at.desc())
        )
    ).scalars().all()

    detail = TagOut.model_validate(tag).model_dump()
    detail["articles"] = [
        {"id": a.id, "title": a.title, "slug": a.slug, "status": a.status.value} for a in articles
    ]
    return ok(detail)


@tags_router.put(
    "/{tag_id}",
    response_model=Envelope[TagOut],
    operation_id="update_tag",
    summary="Update a tag",
)
async def update_tag_endpoint(
    tag_id: uuid.UUID,
    body: TagUpdate,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    tag = await _get_tag_or_404(session, tag_id)
    updates = body.model_dump(exclude_unset=True)
    if "name" in updates:
        updates["name"] = updates["name"].strip()
        if "slug" not in updates:
            updates["slug"] = slugify(updates["name"])
    await _ensure_unique(session, updates.get("name"), updates.get("slug"), exclude_id=tag_id)

    for key, value in updates.items():
        setattr(tag, key, value)
    await session.commit()
    await session.refresh(tag)
    return ok(TagOut.model_validate(tag))


@tags_router.delete(
    "/{tag_id}",
    response_model=Envelope[dict],
    operation_id="delete_tag",
    summary="Delete an unused tag",
)
async def delete_tag_endpoint(
    tag_id: uuid.UUID,
    profile: Profile = Depends(_write),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    tag = await _get_tag_or_404(session, tag_id)
    if tag.usage_count > 0:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete tag used by {tag.usage_count} article(s). Merge it instead.",
        )
    await session.delete(tag)
    await session.commit()
    logger.info("Tag deleted: %s by %s", tag_id, profile.id)
    return ok({"id": str(tag_id), "deleted": True})
