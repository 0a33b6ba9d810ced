"""Admin analytics aggregated from stored content and interactions.

Engagement rate is ``(likes + shares) / views * 100``, rounded to two
decimals, and 0 when an item has no views.
"""

from __future__ import annotations

import datetime
import logging
import math
import uuid
from collections import defaultdict

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.db.models import (
    Article,
    ArticleStatus,
    ContentInteraction,
    InteractionType,
    News,
    Profile,
    as_utc,
    utcnow,
)

logger = logging.getLogger(__name__)

NEWS_SORT_FIELDS = ("trending_score", "created_at", "published_at", "views", "engagement_rate")


def engagement_rate(views: int, likes: int, shares: int) -> float:
    if views <= 0:
        return 0.0
    return round((likes + shares) / views * 100, 2)


def _type_value(interaction_type) -> str:
    return getattr(interaction_type, "value", interaction_type)


def interaction_counts(
    session: Session, content_type: str, content_ids: list[uuid.UUID]
) -> dict[uuid.UUID, dict[str, int]]:
    """``{content_id: {"view": n, "like": n, "share": n, "comment": n}}``."""
    counts: dict[uuid.UUID, dict[str, int]] = {
        cid: {t.value: 0 for t in InteractionType} for cid in content_ids
    }
    if not content_ids:
        return counts
    rows = session.execute(
        sa.select(
            ContentInteraction.content_id,
            ContentInteraction.interaction_type,
            sa.func.count(),
        )
        .where(
            ContentInteraction.content_type == content_type,
            ContentInteraction.content_id.in_(content_ids),
        )
        .group_by(ContentInteraction.content_id, ContentInteraction.interaction_type)
    ).all()
    for content_id, interaction_type, count in rows:
        counts[content_id][_type_value(interaction_type)] = count
    return counts


# ---------------------------------------------------------------------------
# News
# ---------------------------------------------------------------------------


def _sort_value(item: dict, sort_by: str):
    if sort_by in ("views", "engagement_rate"):
        return item["performance"][sort_by]
    value = item[sort_by]
    if value is None:
        return datetime.datetime.min.replace(tzinfo=datetime.timezone.utc)
    return value


def news_analytics(
    session: Session,
    days: int = 30,
    category_id: uuid.UUID | None = None,
    source_name: str | None = None,
    processed: bool | None = None,
    sort_by: str = "trending_score",
    sort_order: str = "desc",
    limit: int = 50,
    offset: int = 0,
    now: datetime.datetime | None = None,
) -> dict:
    """Per-item performance of news created in the last *days*, plus a summary."""
    if sort_by not in NEWS_SORT_FIELDS:
        raise ValueError(f"sort_by must be one of {', '.join(NEWS_SORT_FIELDS)}")
    now = now or utcnow()
    since = now - datetime.timedelta(days=days)

    stmt = sa.select(News).where(News.created_at >= since)
    if category_id is not None:
        stmt = stmt.where(News.category_id == category_id)
    if source_name:
        stmt = stmt.where(News.source_name == source_name)
    if processed is not None:
        stmt = stmt.where(News.processed.is_(processed))
    rows = session.execute(stmt).scalars().all()

    counts = interaction_counts(session, "news", [r.id for r in rows])
    items = []
    for row in rows:
        c = counts[row.id]
        items.append(
            {
                "id": str(row.id),
                "title": row.title,
                "source_name": row.source_name,
                "category_id": str(row.category_id) if row.category_id else None,
                "language": row.language.value,
                "processed": row.processed,
                "trending_score": row.trending_score,
                "published_at": as_utc(row.published_at),
                "created_at": as_utc(row.created_at),
                "performance": {
                    "views": c["view"],
                    "likes": c["like"],
                    "shares": c["share"],
                    "comments": c["comment"],
                    "engagement_rate": engagement_rate(c["view"], c["like"], c["share"]),
                },
            }
        )

    items.sort(key=lambda item: _sort_value(item, sort_by), reverse=sort_order == "desc")

    sources: dict[str, dict] = {}
    for item in items:
        name = item["source_name"] or "unknown"
        entry = sources.setdefault(name, {"name": name, "total": 0, "processed": 0, "scores": []})
        entry["total"] += 1
        if item["processed"]:
            entry["processed"] += 1
        if item["trending_score"]:
            entry["scores"].append(item["trending_score"])

    source_performance = []
    for entry in sources.values():
        scores = entry.pop("scores")
        entry["avg_trending_score"] = round(sum(scores) / len(scores), 2) if scores else 0.0
        entry["processing_rate"] = round(entry["processed"] / entry["total"] * 100)
        source_performance.append(entry)
    source_performance.sort(key=lambda e: e["avg_trending_score"], reverse=True)

    total = len(items)
    summary = {
        "total_news": total,
        "processed_news": sum(1 for i in items if i["processed"]),
        "pending_news": sum(1 for i in items if not i["processed"]),
        "avg_trending_score": (
            round(sum(i["trending_score"] for i in items) / total, 2) if total else 0.0
        ),
        "total_views": sum(i["performance"]["views"] for i in items),
        "total_engagement": sum(
            i["performance"]["likes"] + i["performance"]["shares"] for i in items
        ),
        "avg_engagement_rate": (
            round(sum(i["performance"]["engagement_rate"] for i in items) / total, 2)
            if total
            else 0.0
        ),
        "source_performance": source_performance,
    }

    return {
        "news": items[offset : offset + limit],
        "summary": summary,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


# ---------------------------------------------------------------------------
# Articles
# ---------------------------------------------------------------------------


def article_analytics(
    session: Session,
    category_id: uuid.UUID | None = None,
    author_id: uuid.UUID | None = None,
    top_limit: int = 10,
) -> dict:
    filters = []
    if category_id is not None:
        filters.append(Article.category_id == category_id)
    if author_id is not None:
        filters.append(Article.author_id == author_id)

    status_counts = {s.value: 0 for s in ArticleStatus}
    for status, count in session.execute(
        sa.select(Article.status, sa.func.count(Article.id))
        .where(*filters)
        .group_by(Article.status)
    ):
        status_counts[ArticleStatus(status).value] = count

    totals = session.execute(
        sa.select(
            sa.func.avg(Article.reading_time),
            sa.func.coalesce(sa.func.sum(Article.view_count), 0),
            sa.func.coalesce(sa.func.sum(Article.like_count), 0),
            sa.func.coalesce(sa.func.sum(Article.share_count), 0),
        ).where(*filters)
    ).one()
    avg_reading_time, total_views, total_likes, total_shares = totals

    top = session.execute(
        sa.select(Article)
        .where(*filters, Article.status == ArticleStatus.published)
        .order_by(Article.view_count.desc(), Article.published_at.desc())
        .limit(top_limit)
    ).scalars().all()

    return {
        "total_articles": sum(status_counts.values()),
        "status_counts": status_counts,
        "avg_reading_time": round(float(avg_reading_time), 1) if avg_reading_time else 0.0,
        "total_views": int(total_views),
        "avg_engagement_rate": engagement_rate(
            int(total_views), int(total_likes), int(total_shares)
        ),
        "top_articles": [
            {
                "id": str(a.id),
                "title": a.title,
                "slug": a.slug,
                "views": a.view_count,
                "likes": a.like_count,
                "shares": a.share_count,
                "engagement_rate": engagement_rate(a.view_count, a.like_count, a.share_count),
                "published_at": as_utc(a.published_at),
            }
            for a in top
        ],
    }


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------


def engagement_analytics(
    session: Session,
    days: int = 30,
    content_type: str | None = None,
    now: datetime.datetime | None = None,
) -> dict:
    """Interaction totals by type and a per-day series, oldest day first."""
    now = now or utcnow()
    today = now.date()
    first_day = today - datetime.timedelta(days=days - 1)
    since = datetime.datetime.combine(first_day, datetime.time.min, tzinfo=datetime.timezone.utc)

    stmt = sa.select(
        ContentInteraction.interaction_type,
        ContentInteraction.user_id,
        ContentInteraction.created_at,
    ).where(ContentInteraction.created_at >= since)
    if content_type:
        stmt = stmt.where(ContentInteraction.content_type == content_type)
    rows = session.execute(stmt).all()

    totals = {t.value: 0 for t in InteractionType}
    per_day: dict[datetime.date, dict[str, int]] = defaultdict(
        lambda: {t.value: 0 for t in InteractionType}
    )
    users = set()
    for interaction_type, user_id, created_at in rows:
        kind = _type_value(interaction_type)
        totals[kind] += 1
        per_day[as_utc(created_at).date()][kind] += 1
        if user_id is not None:
            users.add(user_id)

    daily = []
    for offset in range(days):
        day = first_day + datetime.timedelta(days=offset)
        daily.append({"date": day.isoformat(), **per_day.get(day, {t.value: 0 for t in InteractionType})})

    return {
        "days": days,
        "totals": {**totals, "total": sum(totals.values())},
        "unique_users": len(users),
        "engagement_rate": engagement_rate(totals["view"], totals["like"], totals["share"]),
        "daily": daily,
    }


# ---------------------------------------------------------------------------
# Authors
# ---------------------------------------------------------------------------

AUTHOR_SORT_FIELDS = {
    "total_articles": ("productivity", "total_articles"),
    "published_articles": ("productivity", "published_articles"),
    "recent_productivity": ("productivity", "recent_productivity"),
    "total_views": ("performance", "total_views"),
    "avg_views_per_article": ("performance", "avg_views_per_article"),
    "engagement_rate": ("performance", "engagement_rate"),
}


def _author_entry(profile, articles: list[Article], since, days: int, now) -> dict:
    recent = [a for a in articles if as_utc(a.created_at) >= since]
    published = [a for a in articles if a.status == ArticleStatus.published]
    views = sum(a.view_count for a in published)
    likes = sum(a.like_count for a in published)
    days_active = max(1, math.ceil((now - as_utc(profile.created_at)).total_seconds() / 86400))

    categories: dict[str, int] = defaultdict(int)
    for a in published:
        categories[str(a.category_id) if a.category_id else "uncategorized"] += 1

    def per_article(total: int) -> int:
        return math.floor(total / len(published) + 0.5) if published else 0

    return {
        "id": str(profile.id),
        "name": profile.full_name,
        "email": profile.email,
        "joined_at": as_utc(profile.created_at),
        "productivity": {
            "total_articles": len(articles),
            "published_articles": len(published),
            "draft_articles": sum(1 for a in articles if a.status == ArticleStatus.draft),
            "review_articles": sum(1 for a in articles if a.status == ArticleStatus.review),
            "recent_articles": len(recent),
            "recent_published": sum(1 for a in recent if a.status == ArticleStatus.published),
            "articles_per_day": round(len(articles) / days_active, 2),
            "recent_productivity": round(len(recent) / days, 2),
        },
        "performance": {
            "total_views": views,
            "total_likes": likes,
            "avg_views_per_article": per_article(views),
            "avg_likes_per_article": per_article(likes),
            "avg_reading_time": per_article(sum(a.reading_time for a in published)),
            "engagement_rate": round(likes / views * 100, 2) if views else 0.0,
        },
        "content": {
            "category_distribution": dict(categories),
            "top_articles": [
                {
                    "id": str(a.id),
                    "title": a.title,
                    "views": a.view_count,
                    "likes": a.like_count,
                    "published_at": as_utc(a.published_at),
                }
                for a in sorted(published, key=lambda a: a.view_count, reverse=True)[:5]
            ],
        },
    }


def author_analytics(
    session: Session,
    days: int = 30,
    author_id: uuid.UUID | None = None,
    sort_by: str = "total_articles",
    sort_order: str = "desc",
    limit: int = 20,
    offset: int = 0,
    now: datetime.datetime | None = None,
) -> dict:
    """Productivity and performance of every profile that has written an article.

    Views and likes come from the counters of published articles.  The
    engagement rate here is ``likes / views * 100``.
    """
    if sort_by not in AUTHOR_SORT_FIELDS:
        raise ValueError(f"sort_by must be one of {', '.join(AUTHOR_SORT_FIELDS)}")
    now = now or utcnow()
    since = now - datetime.timedelta(days=days)

    stmt = sa.select(Article).where(Article.author_id.is_not(None))
    if author_id is not None:
        stmt = stmt.where(Article.author_id == author_id)
    by_author: dict[uuid.UUID, list[Article]] = defaultdict(list)
    for article in session.execute(stmt).scalars():
        by_author[article.author_id].append(article)

    profiles = []
    if by_author:
        profiles = session.execute(
            sa.select(Profile).where(Profile.id.in_(list(by_author)))
        ).scalars().all()
    authors = [_author_entry(p, by_author[p.id], since, days, now) for p in profiles]

    group, field = AUTHOR_SORT_FIELDS[sort_by]
    ranked = sorted(authors, key=lambda a: a[group][field], reverse=sort_order == "desc")

    total = len(authors)
    by_views = sorted(authors, key=lambda a: a["performance"]["total_views"], reverse=True)
    summary = {
        "total_authors": total,
        "active_authors": sum(1 for a in authors if a["productivity"]["recent_articles"] > 0),
        "total_articles": sum(a["productivity"]["total_articles"] for a in authors),
        "total_published": sum(a["productivity"]["published_articles"] for a in authors),
        "total_views": sum(a["performance"]["total_views"] for a in authors),
        "total_likes": sum(a["performance"]["total_likes"] for a in authors),
        "avg_productivity": (
            round(sum(a["productivity"]["articles_per_day"] for a in authors) / total, 2)
            if total
            else 0.0
        ),
        "top_performers": [
            {
                "id": a["id"],
                "name": a["name"],
                "total_views": a["performance"]["total_views"],
                "total_articles": a["productivity"]["total_articles"],
            }
            for a in by_views[:5]
        ],
    }

    return {
        "authors": ranked[offset : offset + limit],
        "summary": summary,
        "pagination": {
            "total": total,
            "limit": limit,
            "offset": offset,
            "has_more": offset + limit < total,
        },
    }


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

GRANULARITIES = ("daily", "weekly", "monthly")
TREND_CONTENT_TYPES = ("all", "articles", "news")
TOP_TOPICS = 20


def bucket_key(moment: datetime.datetime, granularity: str) -> str:
    """Day, ISO-week Monday or month a moment falls in, as a string."""
    day = as_utc(moment).date()
    if granularity == "weekly":
        return (day - datetime.timedelta(days=day.weekday())).isoformat()
    if granularity == "monthly":
        return f"{day.year:04d}-{day.month:02d}"
    return day.isoformat()


def growth_rate(first: int, second: int) -> float:
    """Percent change from the first half of a period to the second."""
    if first == 0:
        return 100.0 if second > 0 else 0.0
    return round((second - first) / first * 100, 1)


def _empty_bucket() -> dict:
    return {
        "articles": {"created": 0, "published": 0, "views": 0, "likes": 0},
        "news": {"created": 0, "processed": 0, "trending": 0},
        "engagement": {"views": 0, "likes": 0, "shares": 0},
    }


def trend_analytics(
    session: Session,
    days: int = 90,
    content_type: str = "all",
    granularity: str = "daily",
    now: datetime.datetime | None = None,
) -> dict:
    """Time series, category trends, growth, trending topics and activity patterns.

    The window is split in two halves for growth rates.  A topic's score is
    its mention count times the mean relevance of the news mentioning it,
    which is the summed relevance.
    Peak hours are the hours with more than 80% of the busiest hour's
    interactions.
    """
    if granularity not in GRANULARITIES:
        raise ValueError(f"granularity must be one of {', '.join(GRANULARITIES)}")
    if content_type not in TREND_CONTENT_TYPES:
        raise ValueError(f"content_type must be one of {', '.join(TREND_CONTENT_TYPES)}")
    now = now or utcnow()
    since = now - datetime.timedelta(days=days)
    midpoint = since + (now - since) / 2

    series: dict[str, dict] = {}
    day = since.date()
    while day <= now.date():
        moment = datetime.datetime.combine(day, datetime.time.min, tzinfo=datetime.timezone.utc)
        series.setdefault(bucket_key(moment, granularity), _empty_bucket())
        day += datetime.timedelta(days=1)

    def bucket(moment: datetime.datetime) -> dict:
        return series.setdefault(bucket_key(moment, granularity), _empty_bucket())

    halves = {"articles": [0, 0], "news": [0, 0], "interactions": [0, 0]}
    categories: dict[str, list[int]] = defaultdict(lambda: [0, 0])

    def half(moment: datetime.datetime) -> int:
        return 0 if as_utc(moment) < midpoint else 1

    include_articles = content_type in ("all", "articles")
    include_news = content_type in ("all", "news")

    if include_articles:
        for article in session.execute(
            sa.select(Article).where(Article.created_at >= since)
        ).scalars():
            entry = bucket(article.created_at)["articles"]
            entry["created"] += 1
            entry["views"] += article.view_count
            entry["likes"] += article.like_count
            halves["articles"][half(article.created_at)] += 1
            if article.category_id is not None:
                categories[str(article.category_id)][half(article.created_at)] += 1
        for published_at in session.execute(
            sa.select(Article.published_at).where(Article.published_at >= since)
        ).scalars():
            bucket(published_at)["articles"]["published"] += 1

    topics: dict[str, dict] = {}
    if include_news:
        for news in session.execute(sa.select(News).where(News.created_at >= since)).scalars():
            entry = bucket(news.created_at)["news"]
            entry["created"] += 1
            if news.processed:
                entry["processed"] += 1
            if news.trending_score > 0:
                entry["trending"] += 1
            halves["news"][half(news.created_at)] += 1
            if news.category_id is not None:
                categories[str(news.category_id)][half(news.created_at)] += 1
            for keyword in {k.strip().lower() for k in news.keywords or [] if k and k.strip()}:
                topic = topics.setdefault(keyword, {"mentions": 0, "relevance": 0.0})
                topic["mentions"] += 1
                topic["relevance"] += news.relevance_score or 0.0

    stmt = sa.select(
        ContentInteraction.interaction_type, ContentInteraction.created_at
    ).where(ContentInteraction.created_at >= since)
    if content_type != "all":
        stmt = stmt.where(
            ContentInteraction.content_type == ("article" if include_articles else "news")
        )
    hourly = [0] * 24
    weekly = [0] * 7
    for interaction_type, created_at in session.execute(stmt):
        kind = _type_value(interaction_type)
        engagement = bucket(created_at)["engagement"]
        if kind in ("view", "like", "share"):
            engagement[f"{kind}s"] += 1
        created_at = as_utc(created_at)
        hourly[created_at.hour] += 1
        weekly[created_at.weekday()] += 1
        halves["interactions"][half(created_at)] += 1

    busiest = max(hourly)
    trending_topics = sorted(
        (
            {
                "keyword": keyword,
                "mentions": t["mentions"],
                "avg_relevance": round(t["relevance"] / t["mentions"], 2),
                "score": round(t["relevance"], 2),
            }
            for keyword, t in topics.items()
        ),
        key=lambda t: (-t["score"], -t["mentions"], t["keyword"]),
    )[:TOP_TOPICS]

    category_trends = sorted(
        (
            {
                "category_id": category_id,
                "total": first + second,
                "previous": first,
                "current": second,
                "growth_rate": growth_rate(first, second),
            }
            for category_id, (first, second) in categories.items()
        ),
        key=lambda c: (-c["total"], c["category_id"]),
    )

    time_series = [{"period": key, **values} for key, values in sorted(series.items())]
    busiest_period = max(
        time_series,
        key=lambda p: p["articles"]["created"] + p["news"]["created"],
        default=None,
    )
    return {
        "time_series": time_series,
        "category_trends": category_trends,
        "growth_rates": {name: growth_rate(*counts) for name, counts in halves.items()},
        "trending_topics": trending_topics,
        "engagement_patterns": {
            "hourly": hourly,
            "weekly": weekly,
            "peak_hours": [h for h, n in enumerate(hourly) if busiest and n > 0.8 * busiest],
        },
        "summary": {
            "articles_created": sum(halves["articles"]),
            "articles_published": sum(p["articles"]["published"] for p in time_series),
            "news_created": sum(halves["news"]),
            "news_processed": sum(p["news"]["processed"] for p in time_series),
            "interactions": sum(halves["interactions"]),
            "busiest_period": busiest_period["period"] if busiest_period else None,
        },
    }
