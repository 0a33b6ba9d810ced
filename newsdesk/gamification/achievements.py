"""Contributor achievements.

Each achievement is awarded once per user, when every threshold it defines
is met by the user's contributor stats.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.db.models import ContributorAchievement, ContributorStats

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AchievementDefinition:
    type: str
    name: str
    description: str
    icon: str
    color: str
    points_threshold: int | None = None
    article_threshold: int | None = None
    quality_threshold: float | None = None
    review_threshold: int | None = None


ACHIEVEMENTS: tuple[AchievementDefinition, ...] = (
    AchievementDefinition(
        type="first_article",
        name="First Contribution",
        description="Published your first article",
        icon="edit",
        color="#00FF88",
        article_threshold=1,
    ),
    AchievementDefinition(
        type="prolific_writer",
        name="Prolific Writer",
        description="Published 10 articles",
        icon="book",
        color="#FFD93D",
        article_threshold=10,
    ),
    AchievementDefinition(
        type="quality_contributor",
        name="Quality Contributor",
        description="Maintain 4.0+ average quality score",
        icon="star",
        color="#FF6B6B",
        quality_threshold=4.0,
        article_threshold=5,
    ),
    AchievementDefinition(
        type="content_master",
        name="Content Master",
        description="Earned 500+ content points",
        icon="trophy",
        color="#6BCF7F",
        points_threshold=500,
    ),
    AchievementDefinition(
        type="helpful_reviewer",
        name="Helpful Reviewer",
        description="Completed 25 content reviews",
        icon="check-circle",
        color="#4D96FF",
        review_threshold=25,
    ),
)


def meets_requirements(stats: ContributorStats, definition: AchievementDefinition) -> bool:
    if definition.points_threshold is not None and stats.total_content_points < definition.points_threshold:
        return False
    if definition.article_threshold is not None and stats.total_articles < definition.article_threshold:
        return False
    if definition.quality_threshold is not None and stats.average_quality_score < definition.quality_threshold:
        return False
    if definition.review_threshold is not None and stats.total_reviews < definition.review_threshold:
        return False
    return True


def check_and_award_achievements(
    session: Session, user_id: uuid.UUID
) -> list[ContributorAchievement]:
    """Award every achievement the user now qualifies for and has not earned yet.

    Flushes but does not commit.
    """
    stats = session.get(ContributorStats, user_id)
    if stats is None:
        return []

    earned = set(
        session.execute(
            sa.select(ContributorAchievement.achievement_type).where(
                ContributorAchievement.user_id == user_id
            )
        ).scalars()
    )

    awarded = []
    for definition in ACHIEVEMENTS:
        if definition.type in earned or not meets_requirements(stats, definition):
            continue
        achievement = ContributorAchievement(
            user_id=user_id,
            achievement_type=definition.type,
            name=definition.name,
            description=definition.description,
            icon=definition.icon,
            color=definition.color,
        )
        session.add(achievement)
        awarded.append(achievement)

    if awarded:
        session.flush()
        logger.info(
            "Achievements awarded to %s: %s",
            user_id,
            ", ".join(a.achievement_type for a in awarded),
        )
    return awarded
