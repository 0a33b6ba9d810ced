"""Tests for admin analytics aggregation and translation completeness."""

import datetime
import uuid

import pytest

from newsdesk.content.analytics import (
    article_analytics,
    author_analytics,
    bucket_key,
    engagement_analytics,
    engagement_rate,
    growth_rate,
    news_analytics,
    trend_analytics,
)
from newsdesk.content.translation import (
    NEWS_FIELDS,
    content_translation_stats,
    global_translation_stats,
    locale_percentage,
)
from newsdesk.db.models import (
    Article,
    ArticleStatus,
    ContentInteraction,
    InteractionType,
    Language,
    News,
    utcnow,
)


def _interactions(db, content_id, content_type="news", **counts):
    for kind, n in counts.items():
        for _ in range(n):
            db.add(
                ContentInteraction(
                    user_id=uuid.uuid4(),
                    content_id=content_id,
                    content_type=content_type,
                    interaction_type=InteractionType(kind),
                )
            )
    db.commit()


def _article(db, status=ArticleStatus.published, **fields):
    article = Article(
        title=fields.pop("title", "Guia de seguridad para exchanges"),
        slug=fields.pop("slug", f"guia-{uuid.uuid4().hex[:8]}"),
        content=fields.pop("content", "texto " * 120),
        status=status,
        **fields,
    )
    db.add(article)
    db.commit()
    return article


def test_engagement_rate():
    assert engagement_rate(0, 5, 5) == 0.0
    assert engagement_rate(200, 3, 1) == 2.0
    assert engagement_rate(3, 1, 0) == 33.33


# ---------------------------------------------------------------------------
# News analytics
# ---------------------------------------------------------------------------


def test_news_analytics_summary_and_sorting(db, make_news):
    popular = make_news("Popular", source_name="Reuters", processed=True, trending_score=6.0)
    quiet = make_news("Tranquila", source_name="Reuters", trending_score=2.0)
    other = make_news("Otra", trending_score=0.0)
    _interactions(db, popular.id, view=10, like=2, share=1)
    _interactions(db, quiet.id, view=4)

    result = news_analytics(db, sort_by="views", limit=2)

    assert [item["id"] for item in result["news"]] == [str(popular.id), str(quiet.id)]
    assert result["news"][0]["performance"] == {
        "views": 10,
        "likes": 2,
        "shares": 1,
        "comments": 0,
        "engagement_rate": 30.0,
    }
    summary = result["summary"]
    assert summary["total_news"] == 3
    assert summary["processed_news"] == 1
    assert summary["pending_news"] == 2
    assert summary["total_views"] == 14
    assert summary["total_engagement"] == 3
    assert summary["avg_trending_score"] == pytest.approx(2.67)
    reuters = next(s for s in summary["source_performance"] if s["name"] == "Reuters")
    assert reuters == {
        "name": "Reuters",
        "total": 2,
        "processed": 1,
        "avg_trending_score": 4.0,
        "processing_rate": 50,
    }
    assert result["pagination"] == {"total": 3, "limit": 2, "offset": 0, "has_more": True}
    assert str(other.id) not in [item["id"] for item in result["news"]]


def test_news_analytics_filters(db, make_news):
    make_news("Procesada", processed=True, source_name="EFE")
    make_news("Pendiente", source_name="EFE")
    make_news("Antigua", created_at=utcnow() - datetime.timedelta(days=90))

    assert news_analytics(db, processed=True)["summary"]["total_news"] == 1
    assert news_analytics(db, source_name="EFE")["summary"]["total_news"] == 2
    assert news_analytics(db, days=30)["summary"]["total_news"] == 2


def test_news_analytics_rejects_unknown_sort(db):
    with pytest.raises(ValueError):
        news_analytics(db, sort_by="likes")


# ---------------------------------------------------------------------------
# Article and engagement analytics
# ---------------------------------------------------------------------------


def test_article_analytics(db):
    _article(db, view_count=100, like_count=5, share_count=5, reading_time=4)
    _article(db, view_count=300, like_count=10, share_count=0, reading_time=2)
    _article(db, status=ArticleStatus.draft, reading_time=3)

    result = article_analytics(db, top_limit=1)

    assert result["total_articles"] == 3
    assert result["status_counts"] == {"draft": 1, "review": 0, "published": 2, "archived": 0}
    assert result["avg_reading_time"] == 3.0
    assert result["total_views"] == 400
    assert result["avg_engagement_rate"] == 5.0
    assert len(result["top_articles"]) == 1
    assert result["top_articles"][0]["views"] == 300


def test_engagement_analytics_daily_series(db, make_news):
    now = utcnow()
    news = make_news()
    db.add_all(
        [
            ContentInteraction(
                user_id=None,
                content_id=news.id,
                content_type="news",
                interaction_type=InteractionType.view,
                created_at=now,
            ),
            ContentInteraction(
                user_id=uuid.uuid4(),
                content_id=news.id,
                content_type="news",
                interaction_type=InteractionType.like,
                created_at=now - datetime.timedelta(days=1),
            ),
            ContentInteraction(
                user_id=uuid.uuid4(),
                content_id=uuid.uuid4(),
                content_type="article",
                interaction_type=InteractionType.share,
                created_at=now,
            ),
        ]
    )
    db.commit()

    result = engagement_analytics(db, days=7, now=now)

    assert result["totals"] == {"view": 1, "like": 1, "share": 1, "comment": 0, "total": 3}
    assert result["unique_users"] == 2
    assert len(result["daily"]) == 7
    assert result["daily"][-1]["date"] == now.date().isoformat()
    assert result["daily"][-1]["view"] == 1
    assert result["daily"][-2]["like"] == 1

    news_only = engagement_analytics(db, days=7, content_type="news", now=now)
    assert news_only["totals"]["total"] == 2


# ---------------------------------------------------------------------------
# Author and trend analytics
# ---------------------------------------------------------------------------


def test_author_analytics_productivity_and_performance(db, make_profile):
    now = utcnow()
    writer = make_profile("author", created_at=now - datetime.timedelta(days=10))
    veteran = make_profile("editor", created_at=now - datetime.timedelta(days=100))
    make_profile("student")
    popular = _article(
        db,
        author_id=writer.id,
        view_count=300,
        like_count=3,
        reading_time=6,
        created_at=now - datetime.timedelta(days=1),
    )
    older = _article(
        db,
        author_id=writer.id,
        view_count=100,
        like_count=10,
        reading_time=4,
        created_at=now - datetime.timedelta(days=40),
    )
    _article(db, ArticleStatus.draft, author_id=writer.id, created_at=now - datetime.timedelta(days=2))
    _article(
        db, ArticleStatus.review, author_id=veteran.id, created_at=now - datetime.timedelta(days=60)
    )

    result = author_analytics(db, days=30, now=now)

    assert [a["id"] for a in result["authors"]] == [str(writer.id), str(veteran.id)]
    first = result["authors"][0]
    assert first["productivity"] == {
        "total_articles": 3,
        "published_articles": 2,
        "draft_articles": 1,
        "review_articles": 0,
        "recent_articles": 2,
        "recent_published": 1,
        "articles_per_day": 0.3,
        "recent_productivity": 0.07,
    }
    assert first["performance"] == {
        "total_views": 400,
        "total_likes": 13,
        "avg_views_per_article": 200,
        "avg_likes_per_article": 7,
        "avg_reading_time": 5,
        "engagement_rate": 3.25,
    }
    assert [a["id"] for a in first["content"]["top_articles"]] == [str(popular.id), str(older.id)]

    summary = result["summary"]
    assert summary["total_authors"] == 2
    assert summary["active_authors"] == 1
    assert summary["total_articles"] == 4
    assert summary["top_performers"][0]["id"] == str(writer.id)
    assert result["pagination"] == {"total": 2, "limit": 20, "offset": 0, "has_more": False}


def test_author_analytics_sorting_and_filter(db, make_profile):
    writer = make_profile("author")
    quiet = make_profile("author")
    _article(db, author_id=writer.id, view_count=50, like_count=5)
    _article(db, ArticleStatus.draft, author_id=quiet.id)

    by_engagement = author_analytics(db, sort_by="engagement_rate", sort_order="asc")
    assert [a["id"] for a in by_engagement["authors"]] == [str(quiet.id), str(writer.id)]

    only = author_analytics(db, author_id=quiet.id)
    assert [a["id"] for a in only["authors"]] == [str(quiet.id)]

    with pytest.raises(ValueError):
        author_analytics(db, sort_by="likes")


@pytest.mark.parametrize(
    "granularity, expected",
    [("daily", "2026-03-18"), ("weekly", "2026-03-16"), ("monthly", "2026-03")],
)
def test_bucket_key(granularity, expected):
    moment = datetime.datetime(2026, 3, 18, 23, 30, tzinfo=datetime.timezone.utc)
    assert bucket_key(moment, granularity) == expected


def test_growth_rate():
    assert growth_rate(0, 0) == 0.0
    assert growth_rate(0, 3) == 100.0
    assert growth_rate(4, 3) == -25.0


def test_trend_analytics_weekly(db, make_news):
    utc = datetime.timezone.utc
    now = datetime.datetime(2026, 3, 18, 15, 0, tzinfo=utc)
    markets, regulation = uuid.uuid4(), uuid.uuid4()

    _article(
        db,
        category_id=markets,
        created_at=datetime.datetime(2026, 3, 6, tzinfo=utc),
        published_at=datetime.datetime(2026, 3, 7, tzinfo=utc),
    )
    for day in (16, 17):
        _article(
            db,
            ArticleStatus.draft,
            category_id=markets,
            created_at=datetime.datetime(2026, 3, day, tzinfo=utc),
        )
    fresh = make_news(
        "ETF de bitcoin aprobado",
        category_id=regulation,
        processed=True,
        trending_score=2.0,
        relevance_score=0.8,
        keywords=["Bitcoin", "ETF"],
        created_at=datetime.datetime(2026, 3, 17, 10, 0, tzinfo=utc),
    )
    make_news(
        "Bitcoin lateral",
        relevance_score=0.4,
        keywords=["bitcoin"],
        created_at=datetime.datetime(2026, 3, 5, tzinfo=utc),
    )
    for hour, kind in ((14, "view"), (14, "view"), (14, "view"), (9, "like")):
        db.add(
            ContentInteraction(
                content_id=fresh.id,
                content_type="news",
                interaction_type=InteractionType(kind),
                created_at=datetime.datetime(2026, 3, 17, hour, 0, tzinfo=utc),
            )
        )
    db.commit()

    result = trend_analytics(db, days=14, granularity="weekly", now=now)

    series = result["time_series"]
    assert [p["period"] for p in series] == ["2026-03-02", "2026-03-09", "2026-03-16"]
    assert [p["articles"]["created"] for p in series] == [1, 0, 2]
    assert [p["articles"]["published"] for p in series] == [1, 0, 0]
    assert series[2]["news"] == {"created": 1, "processed": 1, "trending": 1}
    assert series[2]["engagement"] == {"views": 3, "likes": 1, "shares": 0}

    assert result["growth_rates"] == {"articles": 100.0, "news": 0.0, "interactions": 100.0}
    assert [(t["keyword"], t["mentions"], t["avg_relevance"]) for t in result["trending_topics"]] == [
        ("bitcoin", 2, 0.6),
        ("etf", 1, 0.8),
    ]
    assert [(c["category_id"], c["previous"], c["current"]) for c in result["category_trends"]] == [
        (str(markets), 1, 2),
        (str(regulation), 0, 1),
    ]

    patterns = result["engagement_patterns"]
    assert patterns["peak_hours"] == [14]
    assert patterns["weekly"][1] == 4
    assert result["summary"]["busiest_period"] == "2026-03-16"
    assert result["summary"]["interactions"] == 4


def test_trend_analytics_article_only_and_validation(db, make_news):
    make_news(created_at=utcnow())

    result = trend_analytics(db, days=7, content_type="articles")

    assert result["summary"]["news_created"] == 0
    assert result["trending_topics"] == []
    with pytest.raises(ValueError):
        trend_analytics(db, granularity="yearly")


# ---------------------------------------------------------------------------
# Translation completeness
# ---------------------------------------------------------------------------


def test_locale_percentage_uses_source_columns_for_own_language():
    news = News(
        title="Titulo",
        summary="Resumen",
        content=None,
        language=Language.es,
        translations={"en": {"title": "Title", "summary": " ", "content": "Body"}},
    )
    assert locale_percentage(news, NEWS_FIELDS, "es") == pytest.approx(200 / 3)
    assert locale_percentage(news, NEWS_FIELDS, "en") == pytest.approx(200 / 3)


def test_content_translation_stats_for_news(db, make_news):
    news = make_news(
        "Bitcoin sube",
        summary="Resumen",
        content="Contenido",
        translations={
            "en": {
                "title": "Bitcoin rises",
                "summary": "Summary",
                "content": "Content",
                "updated_at": "2026-03-01T10:00:00+00:00",
            }
        },
    )

    stats = content_translation_stats(db, news.id)

    assert stats["fully_translated"] == 2
    assert stats["by_locale"]["en"] == {"translated": 3, "pending": 0, "percentage": 100.0}
    assert stats["by_content_type"] == {"news": {"total": 1, "translated": 2, "pending": 0}}
    assert stats["recent_activity"][0]["target_locale"] == "en"


def test_content_translation_stats_for_article_uses_summary_key(db):
    article = _article(
        db,
        excerpt="Resumen",
        translations={"en": {"title": "Guide", "content": "Text"}},
    )

    stats = content_translation_stats(db, article.id)

    assert stats["by_locale"]["en"]["translated"] == 2
    assert stats["partially_translated"] == 1
    assert "article" in stats["by_content_type"]


def test_content_translation_stats_unknown_id(db):
    with pytest.raises(LookupError):
        content_translation_stats(db, uuid.uuid4())


def test_global_translation_stats_counts_published_articles_and_news(db, make_news):
    _article(db, excerpt="Resumen", translations={
        "en": {"title": "T", "content": "C", "summary": "S"}
    })
    _article(db, status=ArticleStatus.draft)
    make_news("Solo espanol", summary="Resumen", content="Contenido")

    stats = global_translation_stats(db)

    assert stats["total_content"] == 2
    assert stats["fully_translated"] == 1
    assert stats["partially_translated"] == 1
    assert stats["by_content_type"]["articles"] == {"total": 1, "translated": 1, "pending": 0}
    assert stats["by_content_type"]["news"] == {"total": 1, "translated": 0, "pending": 1}
    assert stats["by_locale"]["es"]["percentage"] == 100.0
    assert stats["by_locale"]["en"]["percentage"] == 50.0
