"""Tests for points, achievements and citizenship."""

import uuid

import pytest
import sqlalchemy as sa

from newsdesk.db.models import (
    Article,
    ArticleStatus,
    ContentContribution,
    ContentInteraction,
    ContributorAchievement,
    ContributorStats,
    InteractionType,
    Profile,
    RoleAuditLog,
    UserRole,
)
from newsdesk.gamification.achievements import check_and_award_achievements
from newsdesk.gamification.citizenship import (
    CitizenshipRequirements,
    check_and_update_citizenship,
    compute_citizenship_progress,
)
from newsdesk.gamification.points import (
    award_content_points,
    award_editorial_points,
    award_popularity_bonus,
    award_popularity_milestones,
    award_quality_follow_up,
    contributor_summary,
    leaderboard,
    points_breakdown,
    popularity_bonus,
    quality_bonus_points,
    quality_tier_bonus,
)


# ---------------------------------------------------------------------------
# Pure rules
# ---------------------------------------------------------------------------


@pytest.mark.parametrize(
    "base, quality, expected",
    [
        (15, 4.8, 8),   # 7.5 rounds half up
        (10, 4.2, 3),
        (15, 3.6, 2),   # 1.5 rounds half up
        (15, 3.0, 0),
        (15, None, 0),
        (5, 4.5, 3),    # 2.5 rounds half up
    ],
)
def test_quality_bonus_points(base, quality, expected):
    assert quality_bonus_points(base, quality) == expected


def test_quality_tier_bonus():
    assert quality_tier_bonus(4.7) == 10
    assert quality_tier_bonus(4.0) == 7
    assert quality_tier_bonus(3.5) == 3
    assert quality_tier_bonus(2.0) == 0


def test_popularity_milestones_are_cumulative():
    assert popularity_bonus(0, 0, 0) == 0
    assert popularity_bonus(1000, 0, 0) == 10
    assert popularity_bonus(5000, 100, 25) == 10 + 20 + 5 + 10 + 15


def test_citizenship_progress_and_next_milestone():
    requirements = CitizenshipRequirements()

    progress = compute_citizenship_progress(50, 5, 4.0, 0, requirements)

    assert progress["is_eligible"] is False
    # (0.5 + 1 + 1 + 0) / 4
    assert progress["progress_percentage"] == 63
    assert progress["next_milestone"] == {
        "requirement": "Content Points",
        "current": 50,
        "target": 100,
        "points_value": 50,
    }


def test_citizenship_only_quality_unmet_has_no_milestone():
    progress = compute_citizenship_progress(100, 5, 3.0, 3, CitizenshipRequirements())
    assert progress["is_eligible"] is False
    assert progress["next_milestone"] is None


def test_citizenship_eligible():
    progress = compute_citizenship_progress(120, 6, 4.0, 3, CitizenshipRequirements())
    assert progress["is_eligible"] is True
    assert progress["progress_percentage"] == 100
    assert progress["next_milestone"] is None


# ---------------------------------------------------------------------------
# Database operations
# ---------------------------------------------------------------------------


def test_award_records_contribution_and_updates_totals(db, make_profile):
    user = make_profile("author")

    contribution = award_content_points(
        db, user.id, uuid.uuid4(), "article", "author", quality_score=4.6
    )
    db.commit()

    assert contribution.base_points == 15
    assert contribution.bonus_points == 8
    assert contribution.total_points == 23
    db.refresh(user)
    assert user.total_points == 23

    stats = db.get(ContributorStats, user.id)
    assert stats.total_content_points == 23
    assert stats.total_articles == 1
    assert stats.average_quality_score == pytest.approx(4.6)
    assert stats.last_contribution_at is not None

    earned = db.scalars(sa.select(ContributorAchievement.achievement_type)).all()
    assert earned == ["first_article"]


def test_award_unknown_profile(db):
    with pytest.raises(LookupError):
        award_content_points(db, uuid.uuid4(), uuid.uuid4(), "article", "author")


def test_running_quality_average(db, make_profile):
    user = make_profile("author")
    award_content_points(db, user.id, uuid.uuid4(), "article", "author", quality_score=4.0)
    award_content_points(db, user.id, uuid.uuid4(), "article", "author", quality_score=3.0)
    award_content_points(db, user.id, uuid.uuid4(), "article", "author")

    stats = db.get(ContributorStats, user.id)
    assert stats.average_quality_score == pytest.approx(3.5)
    assert stats.scored_contributions == 2
    assert stats.total_articles == 3


def test_quality_follow_up_does_not_count_article(db, make_profile):
    user = make_profile("author")
    article_id = uuid.uuid4()

    assert award_quality_follow_up(db, article_id, user.id, 2.0) is None
    contribution = award_quality_follow_up(db, article_id, user.id, 4.1)

    assert contribution.base_points == 7
    stats = db.get(ContributorStats, user.id)
    assert stats.total_articles == 0


def test_editorial_points_only_for_reviewers_and_editors(db, make_profile):
    user = make_profile("editor")
    contribution = award_editorial_points(db, user.id, uuid.uuid4(), "reviewer")
    assert contribution.total_points == 5
    assert db.get(ContributorStats, user.id).total_reviews == 1

    with pytest.raises(ValueError):
        award_editorial_points(db, user.id, uuid.uuid4(), "translator")


def _interactions(db, content_id, content_type, kind, count):
    db.add_all(
        ContentInteraction(
            user_id=uuid.uuid4(),
            content_id=content_id,
            content_type=content_type,
            interaction_type=InteractionType(kind),
        )
        for _ in range(count)
    )
    db.flush()


def test_popularity_bonus_pays_each_milestone_once(db, make_profile):
    author = make_profile("author")
    article_id = uuid.uuid4()

    assert award_popularity_bonus(db, article_id, "article", author.id) is None

    _interactions(db, article_id, "article", "like", 50)
    first = award_popularity_bonus(db, article_id, "article", author.id)
    assert first.total_points == 5
    assert first.contribution_metadata["engagement"] == {"like": 50}
    assert award_popularity_bonus(db, article_id, "article", author.id) is None

    _interactions(db, article_id, "article", "like", 50)
    second = award_popularity_bonus(db, article_id, "article", author.id)
    assert second.total_points == 10
    assert second.contribution_metadata["milestone_points"] == 15
    assert db.get(ContributorStats, author.id).total_articles == 0


def test_award_popularity_milestones_job(db, make_profile, make_news):
    author = make_profile("author")
    published = Article(
        title="Guia de carteras frias",
        slug="guia-carteras",
        content="texto",
        status=ArticleStatus.published,
        author_id=author.id,
    )
    draft = Article(
        title="Borrador popular",
        slug="borrador-popular",
        content="texto",
        status=ArticleStatus.draft,
        author_id=author.id,
    )
    db.add_all([published, draft])
    db.flush()
    news = make_news(author_id=author.id)
    make_news("Sin autor")
    _interactions(db, published.id, "article", "share", 25)
    _interactions(db, draft.id, "article", "share", 25)
    _interactions(db, news.id, "news", "like", 50)

    first = award_popularity_milestones(db)
    second = award_popularity_milestones(db)

    assert first == {"checked": 2, "awarded_count": 2, "points_awarded": 20}
    assert second == {"checked": 2, "awarded_count": 0, "points_awarded": 0}
    assert db.get(Profile, author.id).total_points == 20


def test_achievements_are_awarded_once(db, make_profile):
    user = make_profile()
    db.add(
        ContributorStats(
            user_id=user.id,
            total_content_points=600,
            total_articles=10,
            total_reviews=30,
            total_translations=0,
            average_quality_score=4.2,
            scored_contributions=10,
        )
    )
    db.flush()

    first = check_and_award_achievements(db, user.id)
    second = check_and_award_achievements(db, user.id)

    assert {a.achievement_type for a in first} == {
        "first_article",
        "prolific_writer",
        "quality_contributor",
        "content_master",
        "helpful_reviewer",
    }
    assert second == []


def test_student_is_promoted_once_eligible(db, make_profile):
    user = make_profile("student")
    db.add(
        ContributorStats(
            user_id=user.id,
            total_content_points=150,
            total_articles=5,
            total_reviews=3,
            total_translations=0,
            average_quality_score=4.0,
            scored_contributions=5,
        )
    )
    db.flush()

    progress = check_and_update_citizenship(db, user.id)

    assert progress["promoted"] is True
    assert user.role == UserRole.citizen
    audit = db.scalars(sa.select(RoleAuditLog)).one()
    assert (audit.old_role, audit.new_role) == ("student", "citizen")

    again = check_and_update_citizenship(db, user.id)
    assert again["promoted"] is False


def test_non_student_is_not_promoted(db, make_profile):
    user = make_profile("editor")
    db.add(
        ContributorStats(
            user_id=user.id,
            total_content_points=150,
            total_articles=5,
            total_reviews=3,
            total_translations=0,
            average_quality_score=4.0,
            scored_contributions=5,
        )
    )
    db.flush()

    assert check_and_update_citizenship(db, user.id)["promoted"] is False
    assert user.role == UserRole.editor


def test_breakdown_leaderboard_and_summary(db, make_profile):
    top = make_profile("author", full_name="Ana")
    other = make_profile("author", full_name="Luis")
    award_content_points(db, top.id, uuid.uuid4(), "article", "author", quality_score=4.5)
    award_content_points(db, other.id, uuid.uuid4(), "translation", "translator")
    db.commit()

    breakdown = points_breakdown(db, top.id)
    assert breakdown["base_points"] == 15
    assert breakdown["quality_bonus"] == 8
    assert breakdown["breakdown"][0]["source"] == "author - article"

    board = leaderboard(db, limit=10)
    assert [row["user_name"] for row in board] == ["Ana", "Luis"]
    assert board[0]["rank_position"] == 1
    assert board[0]["achievements"] == ["first_article"]

    summary = contributor_summary(db, other.id)
    assert summary["total_translations"] == 1
    assert summary["total_points"] == 8
    assert summary["achievements"] == []
    assert db.scalar(sa.select(sa.func.count()).select_from(ContentContribution)) == 2

    with pytest.raises(LookupError):
        contributor_summary(db, uuid.uuid4())
