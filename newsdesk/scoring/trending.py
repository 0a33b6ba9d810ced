"""Trending score computation for news items.

The score is a weighted sum on a 0-10 scale:

    40% engagement  (0.1*views + 2*likes + 3*shares + 1.5*comments) / 10
    30% recency     max(0, (W - hours_since_published) / W) * 3
    20% velocity    2 * sum over interactions of max(0, (W - hours_ago) / W)
    10% quality     fixed 0.5 baseline

W is the time window in hours.  Only interactions inside the window count.

``compute_trending_score`` and ``aggregate_interactions`` are pure.  The
remaining functions take a sync ``Session`` so they can run from async routes
(``run_sync``), the CLI and the Celery worker alike.
"""

from __future__ import annotations

import datetime
import logging
import uuid
from dataclasses import asdict, dataclass
from typing import Iterable

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.config import settings
from newsdesk.db.models import (
    Category,
    ContentInteraction,
    News,
    SystemSetting,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

QUALITY_BASELINE = 0.5
MAX_SCORE = 10.0

LAST_RUN_KEY = "trending_last_run"


@dataclass
class TrendingMetrics:
    views: int = 0
    likes: int = 0
    shares: int = 0
    comments: int = 0
    velocity: float = 0.0

    def as_dict(self) -> dict:
        return asdict(self)


_COUNTER_BY_TYPE = {
    "view": "views",
    "like": "likes",
    "share": "shares",
    "comment": "comments",
}


def _hours_between(later: datetime.datetime, earlier: datetime.datetime) -> float:
    return (later - earlier).total_seconds() / 3600


def aggregate_interactions(
    content_ids: Iterable[str],
    interactions: Iterable[tuple[str, str, datetime.datetime]],
    window_hours: float,
    now: datetime.datetime,
) -> dict[str, TrendingMetrics]:
    """Fold ``(content_id, interaction_type, created_at)`` rows into metrics.

    Every id in *content_ids* gets an entry, zeroed when it has no
    interactions.  Interactions older than the window or for unknown ids are
    ignored.
    """
    metrics = {content_id: TrendingMetrics() for content_id in content_ids}
    window_start = now - datetime.timedelta(hours=window_hours)

    for content_id, interaction_type, created_at in interactions:
        entry = metrics.get(content_id)
        if entry is None:
            continue
        created_at = as_utc(created_at)
        if created_at < window_start:
            continue

        counter = _COUNTER_BY_TYPE.get(interaction_type)
        if counter is not None:
            setattr(entry, counter, getattr(entry, counter) + 1)

        hours_ago = _hours_between(now, created_at)
        entry.velocity += max(0.0, (window_hours - hours_ago) / window_hours)

    return metrics


def compute_trending_score(
    published_at: datetime.datetime | None,
    metrics: TrendingMetrics,
    window_hours: float,
    now: datetime.datetime,
) -> float:
    """Return the trending score in [0, 10] for one item.

    Parameters
    ----------
    published_at : datetime or None
        Publication time.  Unpublished items get no recency boost.
    metrics : TrendingMetrics
        Interaction counts and velocity inside the window.
    window_hours : float
        Time window W in hours.
    now : datetime
        Reference time (timezone-aware).
    """
    engagement = (
        metrics.views * 0.1
        + metrics.likes * 2
        + metrics.shares * 3
        + metrics.comments * 1.5
    ) / 10

    recency = 0.0
    if published_at is not None:
        hours_ago = _hours_between(now, as_utc(published_at))
        recency = max(0.0, (window_hours - hours_ago) / window_hours) * 3

    velocity = metrics.velocity * 2

    total = (
        engagement * 0.4
        + recency * 0.3
        + velocity * 0.2
        + QUALITY_BASELINE * 0.1
    )
    return min(MAX_SCORE, max(0.0, total))


# ---------------------------------------------------------------------------
# Database helpers (sync Session)
# ---------------------------------------------------------------------------


def fetch_interaction_metrics(
    session: Session,
    news_ids: list[uuid.UUID],
    window_hours: float,
    now: datetime.datetime,
) -> dict[str, TrendingMetrics]:
    if not news_ids:
        return {}

    window_start = now - datetime.timedelta(hours=window_hours)
    rows = session.execute(
        sa.select(
            ContentInteraction.content_id,
            ContentInteraction.interaction_type,
            ContentInteraction.created_at,
        ).where(
            ContentInteraction.content_type == "news",
            ContentInteraction.content_id.in_(news_ids),
            ContentInteraction.created_at >= window_start,
        )
    ).all()

    return aggregate_interactions(
        [str(i) for i in news_ids],
        [(str(cid), _type_value(itype), created) for cid, itype, created in rows],
        window_hours,
        now,
    )


def _type_value(interaction_type) -> str:
    return getattr(interaction_type, "value", interaction_type)


def _store_last_run(session: Session, now: datetime.datetime) -> None:
    record = session.get(SystemSetting, LAST_RUN_KEY)
    if record is None:
        session.add(SystemSetting(key=LAST_RUN_KEY, value=now.isoformat()))
    else:
        record.value = now.isoformat()


def rank_trending(
    session: Session,
    window_hours: float,
    min_score: float,
    limit: int,
    category_slug: str | None = None,
    pool_size: int | None = None,
    now: datetime.datetime | None = None,
) -> tuple[list[dict], int]:
    """Score recent news, keep those above *min_score* and persist their scores.

    The candidate pool is news published within twice the window, newest
    first.  Returns ``(items, analysed_count)`` where each item is a dict
    with the news row under ``"news"`` plus ``"trending_score"`` and
    ``"trending_metrics"``.
    """
    now = now or utcnow()
    pool_size = pool_size or settings.trending_candidate_pool
    pool_start = now - datetime.timedelta(hours=window_hours * 2)

    stmt = (
        sa.select(News)
        .where(News.published_at >= pool_start)
        .order_by(News.published_at.desc())
        .limit(pool_size)
    )
    if category_slug:
        stmt = stmt.join(Category, Category.id == News.category_id).where(
            Category.slug == category_slug
        )

    rows = session.execute(stmt).scalars().all()
    if not rows:
        return [], 0

    metrics_map = fetch_interaction_metrics(session, [r.id for r in rows], window_hours, now)

    scored = []
    for row in rows:
        metrics = metrics_map.get(str(row.id), TrendingMetrics())
        score = compute_trending_score(row.published_at, metrics, window_hours, now)
        if score >= min_score:
            scored.append(
                {"news": row, "trending_score": score, "trending_metrics": metrics.as_dict()}
            )

    scored.sort(key=lambda entry: entry["trending_score"], reverse=True)
    ranked = scored[:limit]

    for entry in ranked:
        entry["news"].trending_score = entry["trending_score"]
    session.commit()

    logger.debug(
        "Trending ranking: analysed=%d above_threshold=%d returned=%d",
        len(rows),
        len(scored),
        len(ranked),
    )
    return ranked, len(rows)


def recompute_trending_scores(
    session: Session,
    news_ids: list[uuid.UUID] | None = None,
    window_hours: float | None = None,
    now: datetime.datetime | None = None,
) -> dict:
    """Recompute and persist ``trending_score`` for the given news ids.

    When *news_ids* is None, every item published within twice the window is
    rescored.  The run time is recorded under ``trending_last_run`` in
    ``system_settings``.
    """
    now = now or utcnow()
    window_hours = window_hours or settings.trending_window_hours

    stmt = sa.select(News)
    if news_ids is None:
        stmt = stmt.where(
            News.published_at >= now - datetime.timedelta(hours=window_hours * 2)
        )
    else:
        stmt = stmt.where(News.id.in_(news_ids))

    rows = session.execute(stmt).scalars().all()
    metrics_map = fetch_interaction_metrics(session, [r.id for r in rows], window_hours, now)

    for row in rows:
        metrics = metrics_map.get(str(row.id), TrendingMetrics())
        row.trending_score = compute_trending_score(row.published_at, metrics, window_hours, now)

    _store_last_run(session, now)
    session.commit()

    total = len(news_ids) if news_ids is not None else len(rows)
    logger.info("Trending scores recomputed: updated=%d total=%d", len(rows), total)
    return {"updated": len(rows), "total": total}
