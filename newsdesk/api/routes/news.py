"""News REST endpoints.

Public:
- GET  /news                      : list published news (category, language, pagination)
- GET  /news/{news_id}            : news detail
- POST /news/{news_id}/interactions : record a view (anonymous) or like/share/comment

Admin (news:write):
- POST   /admin/news              : create a news item
- PUT    /admin/news/{news_id}    : update a news item
- DELETE /admin/news/{news_id}    : delete a news item

Translations (translations:write; authors only on their own items):
- PUT /news/{news_id}/translation : store a translation for one locale.  Errors
  use ``TranslationErrorCode`` and carry a timestamp and request id.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from typing import Literal

import sqlalchemy as sa
from fastapi import APIRouter, Depends, HTTPException, Query, Request, Security
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import BaseModel, Field, ValidationError, field_validator
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from newsdesk.api.auth import (
    BEARER,
    extract_token,
    get_async_session,
    get_current_user,
    get_optional_user,
    require_permission,
)
from newsdesk.api.errors import Envelope, TranslationError, TranslationErrorCode, ok
from newsdesk.api.utils import pagination
from newsdesk.db.models import (
    Category,
    ContentInteraction,
    InteractionType,
    Language,
    News,
    Profile,
    as_utc,
    utcnow,
)
from newsdesk.security.rbac import enforce
from newsdesk.server.auth import AuthContext, decode_token

logger = logging.getLogger(__name__)

news_router = APIRouter(prefix="/news", tags=["news"])
admin_news_router = APIRouter(prefix="/admin/news", tags=["admin-news"])

LOCALES = ("es", "en")


# ---------------------------------------------------------------------------
# Schemas
# ---------------------------------------------------------------------------


class NewsOut(BaseModel):
    model_config = {"from_attributes": True}

    id: uuid.UUID
    title: str
    summary: str | None = None
    content: str | None = None
    source_url: str | None = None
    source_name: str | None = None
    image_url: str | None = None
    category_id: uuid.UUID | None = None
    author_id: uuid.UUID | None = None
    language: Language
    processed: bool
    published_at: datetime.datetime | None = None
    relevance_score: float
    engagement_score: float
    trending_score: float
    keywords: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)
    translations: dict = Field(default_factory=dict)
    created_at: datetime.datetime
    updated_at: datetime.datetime

    @field_validator("published_at", "created_at", "updated_at")
    @classmethod
    def _utc(cls, value: datetime.datetime | None) -> datetime.datetime | None:
        return as_utc(value)


class NewsList(BaseModel):
    items: list[NewsOut]
    pagination: dict


class NewsCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    summary: str | None = Field(default=None, max_length=1000)
    content: str | None = None
    source_url: str | None = None
    source_name: str | None = Field(default=None, max_length=200)
    image_url: str | None = None
    category_id: uuid.UUID | None = None
    language: Language = Language.es
    published_at: datetime.datetime | None = None
    relevance_score: float = Field(default=0.0, ge=0.0, le=10.0)
    keywords: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)


class NewsUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=500)
    summary: str | None = Field(default=None, max_length=1000)
    content: str | None = None
    source_url: str | None = None
    source_name: str | None = Field(default=None, max_length=200)
    image_url: str | None = None
    category_id: uuid.UUID | None = None
    processed: bool | None = None
    published_at: datetime.datetime | None = None
    relevance_score: float | None = Field(default=None, ge=0.0, le=10.0)
    engagement_score: float | None = Field(default=None, ge=0.0, le=10.0)
    keywords: list[str] | None = None
    categories: list[str] | None = None


class InteractionRequest(BaseModel):
    interaction_type: InteractionType


class InteractionOut(BaseModel):
    id: uuid.UUID
    content_id: uuid.UUID
    interaction_type: InteractionType


class TranslationUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=500)
    content: str = Field(..., min_length=1, max_length=50000)
    locale: Literal["es", "en"]
    summary: str | None = Field(default=None, max_length=1000)
    ai_translated: bool = False
    translation_confidence: float | None = Field(default=None, ge=0.0, le=1.0)


class TranslationOut(BaseModel):
    id: uuid.UUID
    locale: str
    title: str
    summary: str | None
    content: str
    ai_translated: bool
    updated_at: datetime.datetime


async def _get_news_or_404(session: AsyncSession, news_id: uuid.UUID) -> News:
    news = await session.get(News, news_id)
    if news is None:
        raise HTTPException(status_code=404, detail=f"News item '{news_id}' not found.")
    return news


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@news_router.get(
    "",
    response_model=Envelope[NewsList],
    operation_id="list_news",
    summary="List published news",
)
async def list_news_endpoint(
    category: str | None = Query(None, description="Category slug"),
    language: Language | None = Query(None),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=50),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    filters = [News.published_at.is_not(None), News.published_at <= utcnow()]
    if language is not None:
        filters.append(News.language == language)

    stmt = sa.select(News).where(*filters)
    count_stmt = sa.select(sa.func.count(News.id)).where(*filters)
    if category:
        stmt = stmt.join(Category, Category.id == News.category_id).where(Category.slug == category)
        count_stmt = count_stmt.join(Category, Category.id == News.category_id).where(
            Category.slug == category
        )

    total = (await session.execute(count_stmt)).scalar_one()
    rows = (
        await session.execute(
            stmt.order_by(News.published_at.desc()).offset((page - 1) * limit).limit(limit)
        )
    ).scalars().all()

    return ok(
        {
            "items": [NewsOut.model_validate(r) for r in rows],
            "pagination": pagination(page, limit, total),
        }
    )


@news_router.get(
    "/{news_id}",
    response_model=Envelope[NewsOut],
    operation_id="get_news",
    summary="Get a news item",
)
async def get_news_endpoint(
    news_id: uuid.UUID,
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    news = await _get_news_or_404(session, news_id)
    return ok(NewsOut.model_validate(news))


@news_router.post(
    "/{news_id}/interactions",
    response_model=Envelope[InteractionOut],
    operation_id="record_news_interaction",
    summary="Record an interaction with a news item",
    description="Views may be anonymous; likes, shares and comments require a signed-in user.",
    status_code=201,
)
async def record_interaction_endpoint(
    news_id: uuid.UUID,
    body: InteractionRequest,
    user: AuthContext | None = Depends(get_optional_user),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    if user is None and body.interaction_type != InteractionType.view:
        raise HTTPException(status_code=401, detail="Authentication required")

    await _get_news_or_404(session, news_id)

    interaction = ContentInteraction(
        user_id=user.user_id if user else None,
        content_id=news_id,
        content_type="news",
        interaction_type=body.interaction_type,
    )
    session.add(interaction)
    await session.commit()

    return ok(
        {
            "id": interaction.id,
            "content_id": news_id,
            "interaction_type": body.interaction_type,
        }
    )


# ---------------------------------------------------------------------------
# Translation
# ---------------------------------------------------------------------------


@news_router.put(
    "/{news_id}/translation",
    response_model=Envelope[TranslationOut],
    operation_id="update_news_translation",
    summary="Store a translation of a news item",
    openapi_extra={
        "requestBody": {
            "required": True,
            "content": {"application/json": {"schema": TranslationUpdate.model_json_schema()}},
        }
    },
    description=(
        "Admins and editors may translate any item; authors only items they own. "
        "AI translations record confidence and translator in ai_metadata."
    ),
)
async def update_translation_endpoint(
    news_id: str,
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Security(BEARER),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    token = extract_token(request, credentials)
    if not token:
        raise TranslationError(TranslationErrorCode.UNAUTHORIZED, "Authentication required")
    try:
        user = decode_token(token)
    except ValueError:
        raise TranslationError(
            TranslationErrorCode.UNAUTHORIZED, "Invalid or expired access token"
        )

    profile = await session.get(Profile, user.user_id)
    if profile is None or not enforce(profile.role.value, "translations", "write"):
        raise TranslationError(
            TranslationErrorCode.FORBIDDEN, "Insufficient permissions to edit translations"
        )

    try:
        news_uuid = uuid.UUID(news_id)
    except ValueError:
        raise TranslationError(
            TranslationErrorCode.VALIDATION_ERROR, f"Invalid news id: '{news_id}'"
        )

    try:
        payload = await request.json()
    except ValueError:
        raise TranslationError(
            TranslationErrorCode.VALIDATION_ERROR, "Request body must be valid JSON"
        )

    try:
        body = TranslationUpdate.model_validate(payload)
    except ValidationError as exc:
        raise TranslationError(
            TranslationErrorCode.VALIDATION_ERROR,
            "Invalid translation payload",
            details=exc.errors(include_url=False, include_context=False),
        )

    news = await session.get(News, news_uuid)
    if news is None:
        raise TranslationError(
            TranslationErrorCode.NEWS_NOT_FOUND, f"News item '{news_id}' not found"
        )

    # Roles without general news write access may only translate their own items
    if not enforce(profile.role.value, "news", "write") and news.author_id != profile.id:
        raise TranslationError(
            TranslationErrorCode.FORBIDDEN, "Authors can only translate their own news"
        )

    now = utcnow()
    translations = dict(news.translations or {})
    translations[body.locale] = {
        "title": body.title,
        "content": body.content,
        "summary": body.summary,
        "updated_at": now.isoformat(),
    }
    news.translations = translations

    if body.ai_translated:
        source_locale = "en" if body.locale == "es" else "es"
        ai_metadata = dict(news.ai_metadata or {})
        ai_metadata["translation"] = {
            **(ai_metadata.get("translation") or {}),
            body.locale: {
                "confidence": body.translation_confidence,
                "translated_at": now.isoformat(),
                "translated_by": str(profile.id),
                "source_locale": source_locale,
            },
        }
        news.ai_metadata = ai_metadata

    try:
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.exception("Failed to store translation for news %s", news_id)
        raise TranslationError(
            TranslationErrorCode.DATABASE_ERROR, "Failed to store translation"
        ) from exc

    logger.info(
        "Translation stored: news=%s locale=%s ai=%s by=%s",
        news_id,
        body.locale,
        body.ai_translated,
        profile.id,
    )

    return ok(
        {
            "id": news.id,
            "locale": body.locale,
            "title": body.title,
            "summary": body.summary,
            "content": body.content,
            "ai_translated": body.ai_translated,
            "updated_at": now,
        }
    )


# ---------------------------------------------------------------------------
# Admin endpoints
# ---------------------------------------------------------------------------


@admin_news_router.post(
    "",
    response_model=Envelope[NewsOut],
    operation_id="create_news",
    summary="Create a news item",
    status_code=201,
)
async def create_news_endpoint(
    body: NewsCreate,
    profile: Profile = Depends(require_permission("news", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    news = News(**body.model_dump(), author_id=profile.id)
    session.add(news)
    await session.commit()
    await session.refresh(news)
    logger.info("News created: id=%s by=%s", news.id, profile.id)
    return ok(NewsOut.model_validate(news))


@admin_news_router.put(
    "/{news_id}",
    response_model=Envelope[NewsOut],
    operation_id="update_news",
    summary="Update a news item",
)
async def update_news_endpoint(
    news_id: uuid.UUID,
    body: NewsUpdate,
    profile: Profile = Depends(require_permission("news", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    news = await _get_news_or_404(session, news_id)
    for key, value in body.model_dump(exclude_unset=True).items():
        setattr(news, key, value)
    await session.commit()
    await session.refresh(news)
    return ok(NewsOut.model_validate(news))


@admin_news_router.delete(
    "/{news_id}",
    response_model=Envelope[dict],
    operation_id="delete_news",
    summary="Delete a news item",
)
async def delete_news_endpoint(
    news_id: uuid.UUID,
    profile: Profile = Depends(require_permission("news", "write")),
    session: AsyncSession = Depends(get_async_session),
) -> dict:
    news = await _get_news_or_404(session, news_id)
    await session.delete(news)
    await session.execute(
        sa.delete(ContentInteraction).where(
            ContentInteraction.content_type == "news",
            ContentInteraction.content_id == news_id,
        )
    )
    await session.commit()
    logger.info("News deleted: id=%s by=%s", news_id, profile.id)
    return ok({"id": str(news_id), "deleted": True})
