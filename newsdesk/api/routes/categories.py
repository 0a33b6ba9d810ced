"""Category REST endpoints.

Public:
- GET /categories                    : all categories ordered by sort_order, name

Admin (categories:write):
- POST   /admin/categories           : create (slug derived from name when omitted)
- PUT    /admin/categories/{id}      : update
- DELETE /admin/categories/{id}      : delete an empty category
- POST   /admin/bulk/categories      : reorder / merge / delete / update many categories

Bulk operations apply each item in its own transaction and report per-item
failures instead of aborting the whole request.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Literal

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field
from slugify import slugify
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import get_async_session, require_permission
from newsdesk.api.errors import Envelope, ok
from newsdesk.db.models import Article, Category, News, Profile

logger = logging.getLogger(__name__)

categories_router = APIRouter(prefix="/categories", tags=["categories"])
admin_categories_router = APIRouter(prefix="/admin/categories", tags=["admin-categories"])
bulk_router = APIRouter(prefix="/admin/bulk", tags=["bulk"])

HAS_CONTENT_ERROR = "Cannot delete category with content or subcategories"


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class CategoryOut(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    name: str
    slug: str
    description: str | None = None
    color: str | None = None
    icon: str | None = None
    parent_id: uuid.UUID | None = None
    sort_order: int
    created_at: datetime.datetime


class CategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=120)
    description: str | None = None
    color: str | None = Field(default=None, max_length=20)
    icon: str | None = Field(default=None, max_length=50)
    parent_id: uuid.UUID | None = None
    sort_order: int = 0


class CategoryUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=100)
    slug: str | None = Field(default=None, max_length=120)
    description: str | None = None
    color: str | None = Field(default=None, max_length=20)
    icon: str | None = Field(default=None, max_length=50)
    parent_id: uuid.UUID | None = None
    sort_order: int | None = None


class OrderEntry(BaseModel):
    id: uuid.UUID
    sort_order: int


class BulkUpdates(BaseModel):
    color: str | None = Field(default=None, max_length=20)
    parent_id: uuid.UUID | None = None


class BulkData(BaseModel):
    new_order: list[OrderEntry] | None = None
    target_category_id: uuid.UUID | None = None
    updates: BulkUpdates | None = None


class BulkCategoriesRequest(BaseModel):
    category_ids: list[uuid.UUID] = Field(default_factory=list)
    operation: Literal["reorder", "merge", "delete", "update"]
    data: BulkData | None = None


class BulkResults(BaseModel):
    success: int = 0
    failed: int = 0
    errors: list[str] = Field(default_factory=list)
    processed_ids: list[str] = Field(default_factory=list)


class BulkResponse(BaseModel):
    message: str
    results: BulkResults


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _get_category_or_404(session: AsyncSession, category_id: uuid.UUID) -> Category:
    category = await session.get(Category, category_id)
    if category is None:
        raise HTTPException(status_code=404, detail=f"Category '{category_id}' not found.")
    return category


async def _slug_taken(
    session: AsyncSession, slug: str, exclude_id: uuid.UUID | None = None
) -> bool:
    stmt = sa.select(Category.id).where(Category.slug == slug)
    if exclude_id is not None:
        stmt = stmt.where(Category.id != exclude_id)
    return (await session.execute(stmt)).first() is not None


async def category_has_content(session: AsyncSession, category_id: uuid.UUID) -> bool:
    """True when any article, news item or child category references the category."""
    checks = (
        sa.select(Article.id).where(Article.category_id == category_id).limit(1),
        sa.select(News.id).where(News.category_id == category_id).limit(1),
        sa.select(Category.id).where(Category.parent_id == category_id).limit(1),
    )
    for stmt in checks:
        if (await session.execute(stmt)).first() is not None:
            return True
    return False


# ---------------------------------------------------------------------------
# CRUD
# ---------------------------------------------------------------------------


@categories_router.get(
    "",
    response_model=Envelope[list[CategoryOut]],
    operation_id="list_categories",
    summary="List categories",
)
async def list_categories_endpoint(
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    rows = (
        await session.execute(
            sa.select(Category).order_by(Category.sort_order.asc(), Category.name.asc())
        )
    ).scalars().all()
    return ok([CategoryOut.model_validate(r) for r in rows])


@admin_categories_router.post(
    "",
    response_model=Envelope[CategoryOut],
    operation_id="create_category",
    summary="Create a category",
    status_code=201,
)
async def create_category_endpoint(
    body: CategoryCreate,
    profile: Profile = Depends(require_permission("categories", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    slug = body.slug or slugify(body.name)
    if not slug:
        raise HTTPException(status_code=400, detail="Category slug cannot be empty")
    if await _slug_taken(session, slug):
        raise HTTPException(status_code=409, detail=f"Category slug '{slug}' already exists")
    if body.parent_id is not None:
        await _get_category_or_404(session, body.parent_id)

    category = Category(**body.model_dump(exclude={"slug"}), slug=slug)
    session.add(category)
    await session.commit()
    await session.refresh(category)
    logger.info("Category created: %s (%s) by %s", category.slug, category.id, profile.id)
    return ok(CategoryOut.model_validate(category))


@admin_categories_router.put(
    "/{category_id}",
    response_model=Envelope[CategoryOut],
    operation_id="update_category",
    summary="Update a category",
)
async def update_category_endpoint(
    category_id: uuid.UUID,
    body: CategoryUpdate,
    profile: Profile = Depends(require_permission("categories", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    category = await _get_category_or_404(session, category_id)
    updates = body.model_dump(exclude_unset=True)

    if "name" in updates and "slug" not in updates:
        updates["slug"] = slugify(updates["name"])
    if updates.get("slug") and await _slug_taken(session, updates["slug"], exclude_id=category_id):
        raise HTTPException(status_code=409, detail=f"Category slug '{updates['slug']}' already exists")
    if updates.get("parent_id") == category_id:
        raise HTTPException(status_code=400, detail="A category cannot be its own parent")

    for key, value in updates.items():
        setattr(category, key, value)
    await session.commit()
    await session.refresh(category)
    return ok(CategoryOut.model_validate(category))


@admin_categories_router.delete(
    "/{category_id}",
    response_model=Envelope[dict],
    operation_id="delete_category",
    summary="Delete a category",
    description="Refused while articles, news or child categories reference it.",
)
async def delete_category_endpoint(
    category_id: uuid.UUID,
    profile: Profile = Depends(require_permission("categories", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    category = await _get_category_or_404(session, category_id)
    if await category_has_content(session, category_id):
        raise HTTPException(status_code=400, detail=HAS_CONTENT_ERROR)
    await session.delete(category)
    await session.commit()
    logger.info("Category deleted: %s by %s", category_id, profile.id)
    return ok({"id": str(category_id), "deleted": True})


# ---------------------------------------------------------------------------
# Bulk operations
# ---------------------------------------------------------------------------


async def _reorder(session: AsyncSession, category_id: uuid.UUID, sort_order: int) -> None:
    category = await session.get(Category, category_id)
    if category is None:
        raise LookupError("Category not found")
    category.sort_order = sort_order


async def _merge(session: AsyncSession, category_id: uuid.UUID, target_id: uuid.UUID) -> None:
    source = await session.get(Category, category_id)
    if source is None:
        raise LookupError("Category not found")
    source_parent_id = source.parent_id
    await session.execute(
        sa.update(Article).where(Article.category_id == category_id).values(category_id=target_id)
    )
    await session.execute(
        sa.update(News).where(News.category_id == category_id).values(category_id=target_id)
    )
    await session.execute(
        sa.update(Category)
        .where(Category.parent_id == category_id, Category.id != target_id)
        .values(parent_id=target_id)
    )
    # A target nested under the source moves up to the source's parent
    await session.execute(
        sa.update(Category)
        .where(Category.id == target_id, Category.parent_id == category_id)
        .values(parent_id=source_parent_id)
    )
    await session.execute(sa.delete(Category).where(Category.id == category_id))


async def _update(session: AsyncSession, category_id: uuid.UUID, updates: dict) -> None:
    category = await session.get(Category, category_id)
    if category is None:
        raise LookupError("Category not found")
    if updates.get("parent_id") == category_id:
        raise ValueError("A category cannot be its own parent")
    for key, value in updates.items():
        setattr(category, key, value)


async def _delete(session: AsyncSession, category_id: uuid.UUID) -> None:
    category = await session.get(Category, category_id)
    if category is None:
        raise LookupError("Category not found")
    if await category_has_content(session, category_id):
        raise ValueError(HAS_CONTENT_ERROR)
    await session.delete(category)


@bulk_router.post(
    "/categories",
    response_model=Envelope[BulkResponse],
    operation_id="bulk_categories",
    summary="Apply one operation to many categories",
    description=(
        "reorder uses data.new_order; merge moves content and children of every "
        "listed category into data.target_category_id and deletes the sources; "
        "update applies data.updates; delete removes empty categories."
    ),
)
async def bulk_categories_endpoint(
    body: BulkCategoriesRequest,
    profile: Profile = Depends(require_permission("categories", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    actor_id = profile.id
    data = body.data or BulkData()

    # (category id, coroutine factory) pairs, applied one transaction each
    if body.operation == "reorder":
        if not data.new_order:
            raise HTTPException(status_code=400, detail="data.new_order is required for reorder")
        steps = [(e.id, lambda e=e: _reorder(session, e.id, e.sort_order)) for e in data.new_order]
    elif body.operation == "merge":
        target_id = data.target_category_id
        if target_id is None:
            raise HTTPException(status_code=400, detail="data.target_category_id is required for merge")
        await _get_category_or_404(session, target_id)
        steps = [
            (cid, lambda cid=cid: _merge(session, cid, target_id))
            for cid in body.category_ids
            if cid != target_id
        ]
    elif body.operation == "update":
        if data.updates is None:
            raise HTTPException(status_code=400, detail="data.updates is required for update")
        updates = data.updates.model_dump(exclude_unset=True)
        steps = [(cid, lambda cid=cid: _update(session, cid, updates)) for cid in body.category_ids]
    else:
        steps = [(cid, lambda cid=cid: _delete(session, cid)) for cid in body.category_ids]

    results = BulkResults()
    for category_id, step in steps:
        try:
            await step()
            await session.commit()
        except (LookupError, ValueError, SQLAlchemyError) as exc:
            await session.rollback()
            logger.warning(
                "Bulk %s failed for category %s: %s", body.operation, category_id, exc
            )
            results.failed += 1
            message = exc.args[0] if exc.args else str(exc)
            results.errors.append(f"Category {category_id}: {message}")
            continue
        results.success += 1
        results.processed_ids.append(str(category_id))

    logger.info(
        "Bulk category %s by %s: success=%d failed=%d",
        body.operation,
        actor_id,
        results.success,
        results.failed,
    )

    return ok(
        {
            "message": (
                f"Bulk operation completed. {results.success} successful, "
                f"{results.failed} failed."
            ),
            "results": results,
        }
    )
