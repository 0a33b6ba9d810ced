"""Personalized news ranking.

Each candidate gets a score on a 0-10 scale:

    0.4 * relevance_score
    + min(2.5 * matching categories, 2.5)
    + min(2 * matching keywords, 2)
    + 0.1 * trending_score
    + 0.05 * engagement_score
    - 1 per excluded keyword
    + 0.5 when published less than 24 hours ago

Interests come from the keywords and topic labels of news the user viewed,
liked or shared, plus their tag and category subscriptions.  News the user
has already viewed recently is excluded from the pool.
"""

from __future__ import annotations

import datetime
import logging
import math
import uuid
from dataclasses import dataclass, field

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.config import settings
from newsdesk.db.models import (
    ContentInteraction,
    InteractionType,
    News,
    UserSubscription,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

_INTEREST_INTERACTIONS = (InteractionType.view, InteractionType.like, InteractionType.share)


@dataclass
class PersonalizationFactors:
    user_interests: list[str] = field(default_factory=list)
    reading_history: list[str] = field(default_factory=list)
    preferred_categories: list[str] = field(default_factory=list)
    exclude_keywords: list[str] = field(default_factory=list)
    min_relevance_score: float = 6.0


def _lowered(values) -> list[str]:
    return [str(v).lower() for v in (values or [])]


def compute_personalization_score(
    news: News,
    factors: PersonalizationFactors,
    now: datetime.datetime,
) -> float:
    """Score one news item for one user, clipped to [0, 10]."""
    interests = set(factors.user_interests)
    preferred = set(factors.preferred_categories)
    excluded = set(factors.exclude_keywords)
    keywords = _lowered(news.keywords)

    score = (news.relevance_score or 0.0) * 0.4

    category_matches = sum(1 for c in (news.categories or []) if c in preferred)
    score += min(category_matches * 2.5, 2.5)

    keyword_matches = sum(1 for k in keywords if k in interests)
    score += min(keyword_matches * 2, 2)

    score += (news.trending_score or 0.0) * 0.1
    score += (news.engagement_score or 0.0) * 0.05

    score -= sum(1 for k in keywords if k in excluded)

    published_at = as_utc(news.published_at)
    if published_at is not None and (now - published_at).total_seconds() < 24 * 3600:
        score += 0.5

    return max(0.0, min(10.0, score))


# ---------------------------------------------------------------------------
# Database helpers (sync Session)
# ---------------------------------------------------------------------------


def get_user_interests(session: Session, user_id: uuid.UUID) -> list[str]:
    """Unique lowercased keywords and topic labels from the user's activity."""
    interacted_ids = (
        sa.select(ContentInteraction.content_id)
        .where(
            ContentInteraction.user_id == user_id,
            ContentInteraction.content_type == "news",
            ContentInteraction.interaction_type.in_(_INTEREST_INTERACTIONS),
        )
        .scalar_subquery()
    )
    rows = session.execute(
        sa.select(News.keywords, News.categories).where(News.id.in_(interacted_ids))
    ).all()

    interests: list[str] = []
    for keywords, categories in rows:
        interests.extend(_lowered(keywords))
        interests.extend(_lowered(categories))

    unique = list(dict.fromkeys(interests))
    return unique[: settings.personalization_max_interests]


def get_reading_history(session: Session, user_id: uuid.UUID) -> list[str]:
    rows = session.execute(
        sa.select(ContentInteraction.content_id)
        .where(
            ContentInteraction.user_id == user_id,
            ContentInteraction.content_type == "news",
            ContentInteraction.interaction_type == InteractionType.view,
        )
        .order_by(ContentInteraction.created_at.desc())
        .limit(settings.personalization_history_size)
    ).scalars().all()
    return [str(content_id) for content_id in dict.fromkeys(rows)]


def load_personalization_factors(session: Session, user_id: uuid.UUID) -> PersonalizationFactors:
    subscriptions = session.execute(
        sa.select(UserSubscription.subscription_type, UserSubscription.target).where(
            UserSubscription.user_id == user_id
        )
    ).all()
    preferred_categories = [t for kind, t in subscriptions if kind == "category"]
    preferred_tags = [t for kind, t in subscriptions if kind == "tag"]

    all_interests = (
        get_user_interests(session, user_id)
        + _lowered(preferred_tags)
        + _lowered(preferred_categories)
    )

    return PersonalizationFactors(
        user_interests=list(dict.fromkeys(all_interests)),
        reading_history=get_reading_history(session, user_id),
        preferred_categories=preferred_categories,
        min_relevance_score=settings.personalization_min_relevance,
    )


def personalized_feed(
    session: Session,
    user_id: uuid.UUID,
    page: int,
    limit: int,
    now: datetime.datetime | None = None,
) -> dict:
    """Rank the candidate pool for *user_id* and return one page of it."""
    now = now or utcnow()
    factors = load_personalization_factors(session, user_id)

    stmt = (
        sa.select(News)
        .where(News.relevance_score >= factors.min_relevance_score)
        .order_by(News.published_at.desc())
        .limit(settings.personalization_candidate_pool)
    )
    if factors.reading_history:
        stmt = stmt.where(News.id.not_in([uuid.UUID(i) for i in factors.reading_history]))

    rows = session.execute(stmt).scalars().all()

    scored = sorted(
        ((row, compute_personalization_score(row, factors, now)) for row in rows),
        key=lambda pair: pair[1],
        reverse=True,
    )

    total = len(scored)
    start = page * limit
    total_pages = math.ceil(total / limit) if limit else 0
    has_next = page < total_pages - 1
    has_prev = page > 0

    average = sum(score for _, score in scored) / total if total else 0.0
    logger.debug(
        "Personalized feed for %s: pool=%d interests=%d", user_id, total, len(factors.user_interests)
    )

    return {
        "items": scored[start:start + limit],
        "pagination": {
            "page": page,
            "limit": limit,
            "total": total,
            "total_pages": total_pages,
            "has_next_page": has_next,
            "has_prev_page": has_prev,
            "next_page": page + 1 if has_next else None,
            "prev_page": page - 1 if has_prev else None,
        },
        "personalization": {
            "user_interests": factors.user_interests[:10],
            "preferred_categories": factors.preferred_categories,
            "articles_personalized": total,
            "average_personalization_score": average,
        },
    }
