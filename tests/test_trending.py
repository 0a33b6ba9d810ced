"""Tests for trending score computation and persistence."""

import datetime

import pytest

from newsdesk.db.models import ContentInteraction, InteractionType, SystemSetting
from newsdesk.scoring.trending import (
    LAST_RUN_KEY,
    TrendingMetrics,
    aggregate_interactions,
    compute_trending_score,
    rank_trending,
    recompute_trending_scores,
)

NOW = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)
WINDOW = 24


def _ago(hours):
    return NOW - datetime.timedelta(hours=hours)


def test_score_of_fresh_item_without_interactions():
    # recency 3 * 0.3 + quality 0.5 * 0.1
    score = compute_trending_score(NOW, TrendingMetrics(), WINDOW, NOW)
    assert score == pytest.approx(0.95)


def test_score_combines_engagement_recency_and_velocity():
    metrics = TrendingMetrics(views=10, likes=2, shares=1, comments=2, velocity=1.5)
    score = compute_trending_score(_ago(12), metrics, WINDOW, NOW)

    engagement = (10 * 0.1 + 2 * 2 + 1 * 3 + 2 * 1.5) / 10
    recency = 0.5 * 3
    velocity = 1.5 * 2
    expected = engagement * 0.4 + recency * 0.3 + velocity * 0.2 + 0.05
    assert score == pytest.approx(expected)


def test_unpublished_and_old_items_get_no_recency():
    assert compute_trending_score(None, TrendingMetrics(), WINDOW, NOW) == pytest.approx(0.05)
    assert compute_trending_score(_ago(48), TrendingMetrics(), WINDOW, NOW) == pytest.approx(0.05)


def test_score_is_capped_at_ten():
    metrics = TrendingMetrics(shares=1000, velocity=500)
    assert compute_trending_score(NOW, metrics, WINDOW, NOW) == 10.0


def test_aggregate_interactions_counts_inside_window():
    rows = [
        ("n1", "view", _ago(1)),
        ("n1", "like", _ago(12)),
        ("n1", "share", _ago(30)),  # outside window
        ("unknown", "view", _ago(1)),
    ]

    metrics = aggregate_interactions(["n1", "n2"], rows, WINDOW, NOW)

    assert metrics["n1"].views == 1
    assert metrics["n1"].likes == 1
    assert metrics["n1"].shares == 0
    assert metrics["n1"].velocity == pytest.approx(23 / 24 + 12 / 24)
    assert metrics["n2"] == TrendingMetrics()
    assert "unknown" not in metrics


def test_rank_trending_filters_by_min_score_and_persists(db, make_news):
    hot = make_news("Noticia caliente", published_at=_ago(1))
    make_news("Noticia tranquila", published_at=_ago(40))
    for _ in range(5):
        db.add(
            ContentInteraction(
                content_id=hot.id,
                content_type="news",
                interaction_type=InteractionType.share,
                created_at=_ago(0.5),
            )
        )
    db.commit()

    ranked, analysed = rank_trending(db, WINDOW, min_score=1.0, limit=10, now=NOW)

    assert analysed == 2
    assert [entry["news"].id for entry in ranked] == [hot.id]
    assert ranked[0]["trending_metrics"]["shares"] == 5
    db.refresh(hot)
    assert hot.trending_score == pytest.approx(ranked[0]["trending_score"])


def test_recompute_updates_scores_and_records_last_run(db, make_news):
    recent = make_news(published_at=_ago(2))
    make_news(published_at=_ago(100))

    result = recompute_trending_scores(db, window_hours=WINDOW, now=NOW)

    assert result == {"updated": 1, "total": 1}
    db.refresh(recent)
    assert recent.trending_score > 0
    assert db.get(SystemSetting, LAST_RUN_KEY).value == NOW.isoformat()


def test_recompute_explicit_ids(db, make_news):
    old = make_news(published_at=_ago(100))

    result = recompute_trending_scores(db, news_ids=[old.id], window_hours=WINDOW, now=NOW)

    assert result == {"updated": 1, "total": 1}
    db.refresh(old)
    assert old.trending_score == pytest.approx(0.05)
