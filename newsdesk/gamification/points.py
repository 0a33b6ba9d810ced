"""Content contribution points.

Base points per contribution type:

    author 15, reviewer 5, editor 3, translator 8

An award adds a quality bonus as a fraction of the base points (50% for a
quality score of at least 4.5, 30% from 4.0, 10% from 3.5), records a
``content_contributions`` row and updates the profile total and the
contributor stats.  Awards are followed by a citizenship check.

Functions that touch the database take a sync ``Session`` and flush without
committing; callers own the transaction.  Async routes run them through
``AsyncSession.run_sync``.  The periodic ``award_popularity_milestones`` job
is the exception and commits.
"""

from __future__ import annotations

import logging
import math
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.db.models import (
    Article,
    ArticleStatus,
    ContentContribution,
    ContentInteraction,
    ContributionType,
    ContributorAchievement,
    ContributorStats,
    News,
    Profile,
    utcnow,
)
from newsdesk.gamification.citizenship import check_and_update_citizenship

logger = logging.getLogger(__name__)

BASE_POINTS = {
    ContributionType.author: 15,
    ContributionType.reviewer: 5,
    ContributionType.editor: 3,
    ContributionType.translator: 8,
}

# (minimum quality score, fraction of base points)
_QUALITY_BONUS_RATES = ((4.5, 0.5), (4.0, 0.3), (3.5, 0.1))

# (minimum quality score, flat bonus) used for the publication follow-up award
_QUALITY_TIER_BONUS = ((4.5, 10), (4.0, 7), (3.5, 3))


def base_points_for(contribution_type: ContributionType | str) -> int:
    return BASE_POINTS.get(ContributionType(contribution_type), 0)


def quality_bonus_points(base_points: int, quality_score: float | None) -> int:
    """Bonus as a fraction of *base_points*, rounded half up."""
    if not quality_score:
        return 0
    for threshold, rate in _QUALITY_BONUS_RATES:
        if quality_score >= threshold:
            return math.floor(base_points * rate + 0.5)
    return 0


def quality_tier_bonus(quality_score: float | None) -> int:
    if not quality_score:
        return 0
    for threshold, bonus in _QUALITY_TIER_BONUS:
        if quality_score >= threshold:
            return bonus
    return 0


def popularity_bonus(views: int, likes: int, shares: int) -> int:
    """Milestone bonus for popular content.  Milestones are cumulative."""
    bonus = 0
    if views >= 1000:
        bonus += 10
    if views >= 5000:
        bonus += 20
    if likes >= 50:
        bonus += 5
    if likes >= 100:
        bonus += 10
    if shares >= 25:
        bonus += 15
    return bonus


# ---------------------------------------------------------------------------
# Database operations (sync Session)
# ---------------------------------------------------------------------------


def get_or_create_stats(session: Session, user_id: uuid.UUID) -> ContributorStats:
    stats = session.get(ContributorStats, user_id)
    if stats is None:
        stats = ContributorStats(
            user_id=user_id,
            total_content_points=0,
            total_articles=0,
            total_reviews=0,
            total_translations=0,
            average_quality_score=0.0,
            scored_contributions=0,
        )
        session.add(stats)
    return stats


def _bump_counters(
    stats: ContributorStats, contribution_type: ContributionType, content_type: str
) -> None:
    if contribution_type == ContributionType.author and content_type == "article":
        stats.total_articles += 1
    elif contribution_type == ContributionType.reviewer:
        stats.total_reviews += 1
    elif contribution_type == ContributionType.translator:
        stats.total_translations += 1


def award_content_points(
    session: Session,
    user_id: uuid.UUID,
    content_id: uuid.UUID,
    content_type: str,
    contribution_type: ContributionType | str,
    base_points: int | None = None,
    quality_score: float | None = None,
    metadata: dict | None = None,
    count_contribution: bool = True,
) -> ContentContribution:
    """Record a contribution and credit its points to the user.

    ``count_contribution=False`` credits points without bumping the article,
    review or translation counters (used for follow-up bonuses on content
    that was already counted).

    Raises:
        LookupError: If the user has no profile.
    """
    profile = session.get(Profile, user_id)
    if profile is None:
        raise LookupError(f"Profile '{user_id}' not found")

    contribution_type = ContributionType(contribution_type)
    if base_points is None:
        base_points = base_points_for(contribution_type)
    bonus = quality_bonus_points(base_points, quality_score)
    total = base_points + bonus
    now = utcnow()

    contribution = ContentContribution(
        user_id=user_id,
        content_id=content_id,
        content_type=content_type,
        contribution_type=contribution_type,
        base_points=base_points,
        bonus_points=bonus,
        total_points=total,
        quality_score=quality_score,
        contribution_metadata=metadata or {},
        created_at=now,
    )
    session.add(contribution)

    profile.total_points = (profile.total_points or 0) + total

    stats = get_or_create_stats(session, user_id)
    stats.total_content_points += total
    stats.last_contribution_at = now
    if count_contribution:
        _bump_counters(stats, contribution_type, content_type)
    if quality_score:
        # Running mean over contributions that carried a quality score
        scored = stats.scored_contributions + 1
        stats.average_quality_score += (quality_score - stats.average_quality_score) / scored
        stats.scored_contributions = scored

    session.flush()

    logger.info(
        "Points awarded: user=%s type=%s content=%s/%s base=%d bonus=%d",
        user_id,
        contribution_type.value,
        content_type,
        content_id,
        base_points,
        bonus,
    )

    check_and_update_citizenship(session, user_id)
    return contribution


def award_publication_points(
    session: Session, article_id: uuid.UUID, author_id: uuid.UUID
) -> ContentContribution:
    return award_content_points(
        session,
        user_id=author_id,
        content_id=article_id,
        content_type="article",
        contribution_type=ContributionType.author,
        base_points=BASE_POINTS[ContributionType.author],
        metadata={"reason": "publication"},
    )


def award_quality_follow_up(
    session: Session, article_id: uuid.UUID, author_id: uuid.UUID, quality_score: float
) -> ContentContribution | None:
    """Flat quality bonus once a published article has been rated."""
    bonus = quality_tier_bonus(quality_score)
    if bonus == 0:
        return None
    return award_content_points(
        session,
        user_id=author_id,
        content_id=article_id,
        content_type="article",
        contribution_type=ContributionType.author,
        base_points=bonus,
        quality_score=quality_score,
        metadata={"reason": "quality_follow_up"},
        count_contribution=False,
    )


def popularity_points_paid(
    session: Session, content_id: uuid.UUID, content_type: str, author_id: uuid.UUID
) -> int:
    """Points already credited to *author_id* for popularity milestones of one item."""
    rows = session.execute(
        sa.select(ContentContribution.base_points, ContentContribution.contribution_metadata)
        .where(
            ContentContribution.user_id == author_id,
            ContentContribution.content_id == content_id,
            ContentContribution.content_type == content_type,
        )
    ).all()
    return sum(points for points, metadata in rows if (metadata or {}).get("reason") == "popularity")


def award_popularity_bonus(
    session: Session, content_id: uuid.UUID, content_type: str, author_id: uuid.UUID
) -> ContentContribution | None:
    """Credit the milestone points reached since the last popularity award.

    Milestones already paid for are not paid again, so calling this repeatedly
    for the same item awards nothing until a new milestone is crossed.
    """
    rows = session.execute(
        sa.select(ContentInteraction.interaction_type, sa.func.count())
        .where(
            ContentInteraction.content_id == content_id,
            ContentInteraction.content_type == content_type,
        )
        .group_by(ContentInteraction.interaction_type)
    ).all()
    counts = {getattr(kind, "value", kind): n for kind, n in rows}

    earned = popularity_bonus(counts.get("view", 0), counts.get("like", 0), counts.get("share", 0))
    bonus = earned - popularity_points_paid(session, content_id, content_type, author_id)
    if bonus <= 0:
        return None
    return award_content_points(
        session,
        user_id=author_id,
        content_id=content_id,
        content_type=content_type,
        contribution_type=ContributionType.author,
        base_points=bonus,
        metadata={"reason": "popularity", "engagement": counts, "milestone_points": earned},
        count_contribution=False,
    )


def award_popularity_milestones(session: Session) -> dict:
    """Periodic job: popularity awards for every published article and authored news item.

    Commits once at the end.
    """
    candidates = [
        ("article", content_id, author_id)
        for content_id, author_id in session.execute(
            sa.select(Article.id, Article.author_id).where(
                Article.status == ArticleStatus.published, Article.author_id.is_not(None)
            )
        )
    ]
    candidates += [
        ("news", content_id, author_id)
        for content_id, author_id in session.execute(
            sa.select(News.id, News.author_id).where(News.author_id.is_not(None))
        )
    ]

    awarded = []
    for content_type, content_id, author_id in candidates:
        contribution = award_popularity_bonus(session, content_id, content_type, author_id)
        if contribution is not None:
            awarded.append(contribution)
    session.commit()

    points = sum(c.total_points for c in awarded)
    if awarded:
        logger.info("Popularity milestones: %d award(s), %d point(s)", len(awarded), points)
    return {
        "checked": len(candidates),
        "awarded_count": len(awarded),
        "points_awarded": points,
    }


def award_editorial_points(
    session: Session,
    user_id: uuid.UUID,
    content_id: uuid.UUID,
    contribution_type: ContributionType | str,
    content_type: str = "article",
) -> ContentContribution:
    contribution_type = ContributionType(contribution_type)
    if contribution_type not in (ContributionType.reviewer, ContributionType.editor):
        raise ValueError("Editorial points are only awarded to reviewers and editors")
    return award_content_points(
        session,
        user_id=user_id,
        content_id=content_id,
        content_type=content_type,
        contribution_type=contribution_type,
        metadata={"reason": "review"},
    )


def list_contributions(
    session: Session, user_id: uuid.UUID, limit: int = 20
) -> list[ContentContribution]:
    return list(
        session.execute(
            sa.select(ContentContribution)
            .where(ContentContribution.user_id == user_id)
            .order_by(ContentContribution.created_at.desc())
            .limit(limit)
        ).scalars()
    )


def points_breakdown(session: Session, user_id: uuid.UUID) -> dict:
    """Summarise the user's last 100 contributions."""
    contributions = list_contributions(session, user_id, limit=100)
    base = sum(c.base_points for c in contributions)
    bonus = sum(c.bonus_points for c in contributions)
    return {
        "base_points": base,
        "quality_bonus": bonus,
        "total_points": base + bonus,
        "breakdown": [
            {
                "source": f"{c.contribution_type.value} - {c.content_type}",
                "points": c.total_points,
                "description": f"{c.contribution_type.value} contribution",
            }
            for c in contributions
        ],
    }


def leaderboard(session: Session, limit: int = 50) -> list[dict]:
    rows = session.execute(
        sa.select(ContributorStats, Profile)
        .join(Profile, Profile.id == ContributorStats.user_id)
        .order_by(ContributorStats.total_content_points.desc())
        .limit(limit)
    ).all()

    user_ids = [stats.user_id for stats, _ in rows]
    achievements: dict[uuid.UUID, list[str]] = {uid: [] for uid in user_ids}
    if user_ids:
        for user_id, achievement_type in session.execute(
            sa.select(ContributorAchievement.user_id, ContributorAchievement.achievement_type)
            .where(ContributorAchievement.user_id.in_(user_ids))
        ):
            achievements[user_id].append(achievement_type)

    return [
        {
            "rank_position": position,
            "user_id": str(stats.user_id),
            "user_name": profile.full_name,
            "total_points": stats.total_content_points,
            "total_articles": stats.total_articles,
            "average_quality_score": stats.average_quality_score,
            "achievements": achievements[stats.user_id],
        }
        for position, (stats, profile) in enumerate(rows, start=1)
    ]


def contributor_summary(session: Session, user_id: uuid.UUID) -> dict:
    """Profile total, contributor stats and earned achievements of one user."""
    profile = session.get(Profile, user_id)
    if profile is None:
        raise LookupError(f"Profile '{user_id}' not found")
    stats = session.get(ContributorStats, user_id)
    achievements = session.execute(
        sa.select(ContributorAchievement)
        .where(ContributorAchievement.user_id == user_id)
        .order_by(ContributorAchievement.earned_at.asc())
    ).scalars().all()

    return {
        "user_id": str(user_id),
        "role": profile.role.value,
        "total_points": profile.total_points,
        "total_content_points": stats.total_content_points if stats else 0,
        "total_articles": stats.total_articles if stats else 0,
        "total_reviews": stats.total_reviews if stats else 0,
        "total_translations": stats.total_translations if stats else 0,
        "average_quality_score": stats.average_quality_score if stats else 0.0,
        "last_contribution_at": stats.last_contribution_at if stats else None,
        "achievements": [
            {
                "type": a.achievement_type,
                "name": a.name,
                "description": a.description,
                "icon": a.icon,
                "color": a.color,
                "earned_at": a.earned_at,
            }
            for a in achievements
        ],
    }
