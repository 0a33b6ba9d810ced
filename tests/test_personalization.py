"""Tests for personalized ranking."""

import datetime

import pytest

from newsdesk.db.models import ContentInteraction, InteractionType, News, UserSubscription
from newsdesk.scoring.personalization import (
    PersonalizationFactors,
    compute_personalization_score,
    load_personalization_factors,
    personalized_feed,
)

NOW = datetime.datetime(2026, 3, 1, 12, 0, tzinfo=datetime.timezone.utc)


def _news(**fields):
    fields.setdefault("title", "Noticia")
    fields.setdefault("relevance_score", 8.0)
    fields.setdefault("trending_score", 0.0)
    fields.setdefault("engagement_score", 0.0)
    fields.setdefault("keywords", [])
    fields.setdefault("categories", [])
    fields.setdefault("published_at", NOW - datetime.timedelta(days=3))
    return News(**fields)


def test_score_adds_every_signal():
    news = _news(
        categories=["crypto"],
        keywords=["Bitcoin", "ETF"],
        trending_score=5.0,
        engagement_score=4.0,
        published_at=NOW - datetime.timedelta(hours=1),
    )
    factors = PersonalizationFactors(
        user_interests=["bitcoin"],
        preferred_categories=["crypto"],
        exclude_keywords=["etf"],
    )

    # 3.2 relevance + 2.5 category + 2 keyword + 0.5 trending + 0.2 engagement
    # - 1 excluded + 0.5 fresh
    assert compute_personalization_score(news, factors, NOW) == pytest.approx(7.9)


def test_category_and_keyword_boosts_are_capped():
    news = _news(
        relevance_score=0.0,
        categories=["crypto", "defi"],
        keywords=["bitcoin", "ethereum", "solana"],
    )
    factors = PersonalizationFactors(
        user_interests=["bitcoin", "ethereum", "solana"],
        preferred_categories=["crypto", "defi"],
    )
    assert compute_personalization_score(news, factors, NOW) == pytest.approx(4.5)


def test_category_match_is_case_sensitive():
    news = _news(relevance_score=0.0, categories=["Crypto"])

    exact = PersonalizationFactors(preferred_categories=["Crypto"])
    other_case = PersonalizationFactors(preferred_categories=["crypto"])

    assert compute_personalization_score(news, exact, NOW) == pytest.approx(2.5)
    assert compute_personalization_score(news, other_case, NOW) == 0.0


def test_score_is_clipped_to_range():
    low = _news(relevance_score=0.0, keywords=["spam", "scam"])
    factors = PersonalizationFactors(exclude_keywords=["spam", "scam"])
    assert compute_personalization_score(low, factors, NOW) == 0.0

    high = _news(
        relevance_score=10.0,
        categories=["crypto"],
        keywords=["bitcoin"],
        trending_score=10.0,
        engagement_score=10.0,
        published_at=NOW,
    )
    factors = PersonalizationFactors(user_interests=["bitcoin"], preferred_categories=["crypto"])
    assert compute_personalization_score(high, factors, NOW) == 10.0


def test_factors_merge_activity_and_subscriptions(db, make_profile, make_news):
    user = make_profile()
    read = make_news("Bitcoin sube", keywords=["Bitcoin"], categories=["Mercados"])
    db.add_all(
        [
            ContentInteraction(
                user_id=user.id,
                content_id=read.id,
                content_type="news",
                interaction_type=InteractionType.view,
            ),
            UserSubscription(user_id=user.id, subscription_type="tag", target="DeFi"),
            UserSubscription(user_id=user.id, subscription_type="category", target="crypto"),
        ]
    )
    db.commit()

    factors = load_personalization_factors(db, user.id)

    assert factors.user_interests == ["bitcoin", "mercados", "defi", "crypto"]
    assert factors.reading_history == [str(read.id)]
    assert factors.preferred_categories == ["crypto"]


def test_feed_excludes_read_and_low_relevance_items(db, make_profile, make_news):
    user = make_profile()
    fresh = make_news("Nueva regulacion cripto", keywords=["bitcoin"], relevance_score=8.0)
    read = make_news("Bitcoin sube", keywords=["bitcoin"], relevance_score=9.0)
    make_news("Irrelevante", relevance_score=3.0)
    db.add(
        ContentInteraction(
            user_id=user.id,
            content_id=read.id,
            content_type="news",
            interaction_type=InteractionType.view,
        )
    )
    db.commit()

    feed = personalized_feed(db, user.id, page=0, limit=10)

    assert [news.id for news, _ in feed["items"]] == [fresh.id]
    assert feed["pagination"]["total"] == 1
    assert feed["pagination"]["has_next_page"] is False
    assert feed["pagination"]["next_page"] is None
    assert "bitcoin" in feed["personalization"]["user_interests"]
    assert feed["personalization"]["articles_personalized"] == 1
