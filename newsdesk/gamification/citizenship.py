"""Citizenship progress and promotion.

A student becomes eligible for citizenship once they reach the configured
content points, published articles, average quality score and completed
reviews.  Progress is the mean of the four capped ratios.
"""

from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from sqlalchemy.orm import Session

from newsdesk.config import settings
from newsdesk.db.models import ContributorStats, Profile, RoleAuditLog, UserRole
from newsdesk.gamification.achievements import check_and_award_achievements

logger = logging.getLogger(__name__)

_ARTICLE_POINTS = 15
_REVIEW_POINTS = 5


@dataclass(frozen=True)
class CitizenshipRequirements:
    content_points: int = 100
    articles: int = 5
    quality_score: float = 3.5
    reviews: int = 3

    @classmethod
    def from_settings(cls) -> "CitizenshipRequirements":
        return cls(
            content_points=settings.citizenship_min_points,
            articles=settings.citizenship_min_articles,
            quality_score=settings.citizenship_min_quality,
            reviews=settings.citizenship_min_reviews,
        )


def _ratio(current: float, required: float) -> float:
    if required <= 0:
        return 1.0
    return min(1.0, current / required)


def compute_citizenship_progress(
    total_content_points: int,
    articles_published: int,
    average_quality_score: float,
    reviews_completed: int,
    requirements: CitizenshipRequirements,
) -> dict:
    """Eligibility, progress percentage and the next unmet milestone.

    ``next_milestone`` is the first unmet of content points, articles and
    reviews, with ``points_value`` estimating the points still to earn.  It
    is None when eligible or when only the quality requirement is unmet.
    """
    eligible = (
        total_content_points >= requirements.content_points
        and articles_published >= requirements.articles
        and average_quality_score >= requirements.quality_score
        and reviews_completed >= requirements.reviews
    )

    factors = [
        _ratio(total_content_points, requirements.content_points),
        _ratio(articles_published, requirements.articles),
        _ratio(average_quality_score, requirements.quality_score),
        _ratio(reviews_completed, requirements.reviews),
    ]
    percentage = min(100, int(sum(factors) / len(factors) * 100 + 0.5))

    next_milestone = None
    if not eligible:
        milestones = [
            {
                "requirement": "Content Points",
                "current": total_content_points,
                "target": requirements.content_points,
                "points_value": requirements.content_points - total_content_points,
            },
            {
                "requirement": "Articles Published",
                "current": articles_published,
                "target": requirements.articles,
                "points_value": (requirements.articles - articles_published) * _ARTICLE_POINTS,
            },
            {
                "requirement": "Reviews Completed",
                "current": reviews_completed,
                "target": requirements.reviews,
                "points_value": (requirements.reviews - reviews_completed) * _REVIEW_POINTS,
            },
        ]
        unmet = [m for m in milestones if m["current"] < m["target"]]
        if unmet:
            next_milestone = unmet[0]

    return {
        "total_content_points": total_content_points,
        "required_content_points": requirements.content_points,
        "articles_published": articles_published,
        "required_articles": requirements.articles,
        "average_quality_score": average_quality_score,
        "required_quality_score": requirements.quality_score,
        "reviews_completed": reviews_completed,
        "required_reviews": requirements.reviews,
        "is_eligible": eligible,
        "progress_percentage": percentage,
        "next_milestone": next_milestone,
    }


def get_citizenship_progress(session: Session, user_id: uuid.UUID) -> dict:
    stats = session.get(ContributorStats, user_id)
    requirements = CitizenshipRequirements.from_settings()
    if stats is None:
        progress = compute_citizenship_progress(0, 0, 0.0, 0, requirements)
    else:
        progress = compute_citizenship_progress(
            stats.total_content_points,
            stats.total_articles,
            stats.average_quality_score,
            stats.total_reviews,
            requirements,
        )
    progress["user_id"] = str(user_id)
    return progress


def check_and_update_citizenship(
    session: Session, user_id: uuid.UUID, changed_by: uuid.UUID | None = None
) -> dict:
    """Promote an eligible student to citizen and award pending achievements.

    Returns the progress dict with an extra ``promoted`` flag.  Flushes but
    does not commit.
    """
    check_and_award_achievements(session, user_id)
    progress = get_citizenship_progress(session, user_id)
    progress["promoted"] = False

    profile = session.get(Profile, user_id)
    if profile is not None and progress["is_eligible"] and profile.role == UserRole.student:
        session.add(
            RoleAuditLog(
                user_id=user_id,
                old_role=UserRole.student.value,
                new_role=UserRole.citizen.value,
                changed_by=changed_by,
                reason="citizenship requirements met",
            )
        )
        profile.role = UserRole.citizen
        session.flush()
        progress["promoted"] = True
        logger.info("User %s promoted to citizen", user_id)

    return progress
