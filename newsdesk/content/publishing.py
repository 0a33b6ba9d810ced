"""Article review workflow: queue, assignment, verdicts and scheduled publication.

Status transitions:

    draft / review --approve (immediate)--> published
    draft / review --approve (scheduled)--> review, scheduled_at set
    review (scheduled_at <= now) --publish_scheduled_articles--> published
    draft / review --reject--> draft
    draft / review --assign_reviewer--> review
    draft / review --submit_review(approve)--> published
    draft / review --submit_review(reject, request_changes)--> draft

Every transition writes an ``article_history`` row.  Publishing awards the
author their publication points; a submitted review awards the reviewer.
"""

from __future__ import annotations

import datetime
import logging
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.db.models import (
    Article,
    ArticleHistory,
    ArticleStatus,
    ContributionType,
    Profile,
    ReviewPriority,
    UserRole,
    as_utc,
    utcnow,
)
from newsdesk.gamification.points import (
    award_editorial_points,
    award_publication_points,
    award_quality_follow_up,
)

logger = logging.getLogger(__name__)

_REVIEWABLE = (ArticleStatus.draft, ArticleStatus.review)


def record_history(
    session: Session,
    article: Article,
    action: str,
    changed_by: uuid.UUID | None,
    previous_status: ArticleStatus | None,
    notes: str | None = None,
    changes: dict | None = None,
) -> ArticleHistory:
    entry = ArticleHistory(
        article_id=article.id,
        changed_by=changed_by,
        action=action,
        previous_status=previous_status.value if previous_status else None,
        new_status=article.status.value,
        notes=notes,
        changes=changes or {},
    )
    session.add(entry)
    return entry


def _publish(session: Session, article: Article, now: datetime.datetime) -> None:
    article.status = ArticleStatus.published
    article.published_at = now
    article.scheduled_at = None
    if article.author_id is not None:
        award_publication_points(session, article.id, article.author_id)


def _get_article(session: Session, article_id: uuid.UUID) -> Article:
    article = session.get(Article, article_id)
    if article is None:
        raise LookupError(f"Article '{article_id}' not found")
    return article


def approve_article(
    session: Session,
    article_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    publish_immediately: bool = True,
    scheduled_at: datetime.datetime | None = None,
    notes: str | None = None,
) -> Article:
    """Approve a draft or in-review article.

    Raises:
        LookupError: If the article does not exist.
        ValueError:  If the article is not reviewable or the schedule is invalid.
    """
    article = _get_article(session, article_id)
    if article.status not in _REVIEWABLE:
        raise ValueError(
            f"Only draft or review articles can be approved (current status: {article.status.value})"
        )

    now = utcnow()
    previous = article.status
    article.reviewed_by = reviewer_id
    article.reviewed_at = now

    if publish_immediately:
        _publish(session, article, now)
        action = "approved"
    else:
        if scheduled_at is None:
            raise ValueError("scheduled_at is required when not publishing immediately")
        scheduled_at = as_utc(scheduled_at)
        if scheduled_at <= now:
            raise ValueError("scheduled_at must be in the future")
        article.status = ArticleStatus.review
        article.scheduled_at = scheduled_at
        action = "scheduled"

    record_history(
        session,
        article,
        action,
        reviewer_id,
        previous,
        notes=notes,
        changes={"scheduled_at": scheduled_at.isoformat()} if scheduled_at else None,
    )
    session.commit()

    logger.info("Article %s %s by %s", article_id, action, reviewer_id)
    return article


def reject_article(
    session: Session,
    article_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    reason: str,
    feedback: str,
) -> Article:
    """Send a draft or in-review article back to draft with feedback.

    Raises:
        LookupError: If the article does not exist.
        ValueError:  If the article is not reviewable.
    """
    article = _get_article(session, article_id)
    if article.status not in _REVIEWABLE:
        raise ValueError(
            f"Only draft or review articles can be rejected (current status: {article.status.value})"
        )

    previous = article.status
    article.status = ArticleStatus.draft
    article.scheduled_at = None
    article.reviewed_by = reviewer_id
    article.reviewed_at = utcnow()

    record_history(
        session,
        article,
        "rejected",
        reviewer_id,
        previous,
        notes=reason,
        changes={"feedback": feedback},
    )
    session.commit()

    logger.info("Article %s rejected by %s", article_id, reviewer_id)
    return article


def publish_scheduled_articles(
    session: Session, now: datetime.datetime | None = None
) -> dict:
    """Publish every in-review article whose ``scheduled_at`` has passed."""
    now = now or utcnow()
    due = session.execute(
        sa.select(Article).where(
            Article.status == ArticleStatus.review,
            Article.scheduled_at.is_not(None),
            Article.scheduled_at <= now,
        )
    ).scalars().all()

    for article in due:
        _publish(session, article, now)
        record_history(
            session,
            article,
            "published",
            None,
            ArticleStatus.review,
            notes="scheduled publication",
        )
    session.commit()

    if due:
        logger.info("Scheduled publication: %d article(s) published", len(due))
    return {
        "published_count": len(due),
        "published_ids": [str(a.id) for a in due],
    }


# ---------------------------------------------------------------------------
# Review queue and reviewer assignment
# ---------------------------------------------------------------------------

REVIEWER_ROLES = (UserRole.admin, UserRole.editor)
REVIEW_ACTIONS = ("approve", "reject", "request_changes")
QUEUE_SORT_FIELDS = ("created_at", "updated_at", "priority", "author")
DEFAULT_REVIEW_DEADLINE = datetime.timedelta(days=3)


def priority_for_age(days_pending: int) -> ReviewPriority:
    """More than three days waiting is high priority, more than one medium."""
    if days_pending > 3:
        return ReviewPriority.high
    if days_pending > 1:
        return ReviewPriority.medium
    return ReviewPriority.low


def _days_pending(article: Article, now: datetime.datetime) -> int:
    since = as_utc(article.updated_at or article.created_at) or now
    return max((now - since).days, 0)


def _author_name(authors: dict[uuid.UUID, Profile], article: Article) -> str:
    author = authors.get(article.author_id)
    return (author.full_name or "") if author else ""


def pending_review_queue(
    session: Session,
    page: int = 1,
    limit: int = 20,
    priority: ReviewPriority | str | None = None,
    author_id: uuid.UUID | None = None,
    category_id: uuid.UUID | None = None,
    days_pending: int | None = None,
    assigned_to: uuid.UUID | None = None,
    sort_by: str = "updated_at",
    sort_order: str = "asc",
    now: datetime.datetime | None = None,
) -> dict:
    """Articles in ``review`` status with their queue metadata.

    An article's priority is the one set at assignment, or else derived from
    how long it has waited since its last update.  The priority filter is
    applied before paging.  ``stats`` covers the whole queue regardless of
    filters.
    """
    if sort_by not in QUEUE_SORT_FIELDS:
        raise ValueError(f"sort_by must be one of {', '.join(QUEUE_SORT_FIELDS)}")
    now = now or utcnow()
    wanted = ReviewPriority(priority) if priority else None

    queue = session.execute(
        sa.select(Article).where(Article.status == ArticleStatus.review)
    ).scalars().all()

    authors = {
        p.id: p
        for p in session.execute(
            sa.select(Profile).where(
                Profile.id.in_([a.author_id for a in queue if a.author_id is not None])
            )
        ).scalars()
    }

    entries = []
    for article in queue:
        days = _days_pending(article, now)
        entries.append((article, days, article.review_priority or priority_for_age(days)))

    by_priority = {p.value: 0 for p in ReviewPriority}
    by_age = {"today": 0, "this_week": 0, "older": 0}
    for _, days, effective in entries:
        by_priority[effective.value] += 1
        if days == 0:
            by_age["today"] += 1
        elif days <= 7:
            by_age["this_week"] += 1
        else:
            by_age["older"] += 1
    stats = {
        "total_pending": len(entries),
        "by_priority": by_priority,
        "by_age": by_age,
        "average_days_pending": (
            round(sum(days for _, days, _ in entries) / len(entries)) if entries else 0
        ),
    }

    selected = []
    for article, days, effective in entries:
        if author_id is not None and article.author_id != author_id:
            continue
        if category_id is not None and article.category_id != category_id:
            continue
        if assigned_to is not None and article.assigned_reviewer_id != assigned_to:
            continue
        if days_pending is not None and days < days_pending:
            continue
        if wanted is not None and effective != wanted:
            continue
        selected.append((article, days, effective))

    rank = {ReviewPriority.low: 0, ReviewPriority.medium: 1, ReviewPriority.high: 2}
    sort_keys = {
        "created_at": lambda e: as_utc(e[0].created_at),
        "updated_at": lambda e: as_utc(e[0].updated_at),
        "priority": lambda e: (rank[e[2]], e[1]),
        "author": lambda e: _author_name(authors, e[0]).lower(),
    }
    selected.sort(key=sort_keys[sort_by], reverse=sort_order == "desc")

    total = len(selected)
    items = []
    for article, days, effective in selected[(page - 1) * limit : page * limit]:
        author = authors.get(article.author_id)
        items.append(
            {
                "id": str(article.id),
                "title": article.title,
                "slug": article.slug,
                "excerpt": article.excerpt,
                "status": article.status.value,
                "category_id": str(article.category_id) if article.category_id else None,
                "author": (
                    {"id": str(author.id), "full_name": author.full_name, "email": author.email}
                    if author
                    else None
                ),
                "created_at": as_utc(article.created_at),
                "updated_at": as_utc(article.updated_at),
                "review_metadata": {
                    "priority": effective.value,
                    "days_in_review": days,
                    "assigned_reviewer_id": (
                        str(article.assigned_reviewer_id) if article.assigned_reviewer_id else None
                    ),
                    "review_deadline": as_utc(article.review_deadline),
                    "overdue": bool(
                        article.review_deadline and as_utc(article.review_deadline) < now
                    ),
                    "estimated_read_time": article.reading_time or 5,
                    "word_count": len(article.content.split()) if article.content else 0,
                },
            }
        )

    return {
        "items": items,
        "total": total,
        "stats": stats,
        "queue_info": {
            "total_in_queue": total,
            "oldest_pending": max((days for _, days, _ in selected), default=0),
            "newest_pending": min((days for _, days, _ in selected), default=0),
        },
    }


def _get_reviewer(session: Session, reviewer_id: uuid.UUID) -> Profile:
    reviewer = session.get(Profile, reviewer_id)
    if reviewer is None:
        raise LookupError(f"Reviewer '{reviewer_id}' not found")
    if reviewer.role not in REVIEWER_ROLES:
        raise ValueError("Reviewer must be an editor or an admin")
    return reviewer


def assign_reviewer(
    session: Session,
    article_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    assigned_by: uuid.UUID,
    priority: ReviewPriority | str = ReviewPriority.medium,
    deadline: datetime.datetime | None = None,
    review_type: str = "content",
    estimated_review_time: int = 30,
    notes: str | None = None,
    now: datetime.datetime | None = None,
) -> Article:
    """Put a draft or in-review article in *reviewer_id*'s queue.

    The article moves to ``review``.  The deadline defaults to three days
    from now.

    Raises:
        LookupError: If the article or the reviewer does not exist.
        ValueError:  If the article is not reviewable, the reviewer is not an
                     editor or admin, the reviewer wrote the article, or the
                     deadline has already passed.
    """
    article = _get_article(session, article_id)
    if article.status not in _REVIEWABLE:
        raise ValueError(
            f"Only draft or review articles can be assigned (current status: {article.status.value})"
        )
    reviewer = _get_reviewer(session, reviewer_id)
    if reviewer.id == article.author_id:
        raise ValueError("An author cannot review their own article")

    now = now or utcnow()
    deadline = as_utc(deadline) if deadline is not None else now + DEFAULT_REVIEW_DEADLINE
    if deadline <= now:
        raise ValueError("deadline must be in the future")

    previous = article.status
    article.status = ArticleStatus.review
    article.assigned_reviewer_id = reviewer.id
    article.review_priority = ReviewPriority(priority)
    article.review_deadline = deadline

    record_history(
        session,
        article,
        "reviewer_assigned",
        assigned_by,
        previous,
        notes=notes,
        changes={
            "reviewer_id": str(reviewer.id),
            "priority": article.review_priority.value,
            "deadline": deadline.isoformat(),
            "review_type": review_type,
            "estimated_review_time": estimated_review_time,
        },
    )
    session.commit()

    logger.info(
        "Article %s assigned to reviewer %s by %s (priority=%s)",
        article_id,
        reviewer.id,
        assigned_by,
        article.review_priority.value,
    )
    return article


def submit_review(
    session: Session,
    article_id: uuid.UUID,
    reviewer_id: uuid.UUID,
    action: str,
    feedback: str,
    reviewer_notes: str | None = None,
    suggested_changes: list[dict] | None = None,
    quality_score: float | None = None,
    assign_to: uuid.UUID | None = None,
) -> Article:
    """Record a reviewer's verdict on a draft or in-review article.

    ``approve`` publishes the article.  ``reject`` and ``request_changes``
    return it to draft.  The reviewer earns reviewer points for every
    verdict, and an approval that carries a *quality_score* gives the author
    the quality follow-up bonus.  *assign_to* hands the article to another
    editor or admin.

    Raises:
        LookupError: If the article or the new reviewer does not exist.
        ValueError:  If the action is unknown, the article is not reviewable,
                     or the new reviewer is not an editor or admin.
    """
    if action not in REVIEW_ACTIONS:
        raise ValueError(f"action must be one of {', '.join(REVIEW_ACTIONS)}")
    article = _get_article(session, article_id)
    if article.status not in _REVIEWABLE:
        raise ValueError(
            f"Only draft or review articles can be reviewed (current status: {article.status.value})"
        )
    new_reviewer = None
    if assign_to is not None and assign_to != reviewer_id:
        new_reviewer = _get_reviewer(session, assign_to)

    now = utcnow()
    previous = article.status
    article.reviewed_by = reviewer_id
    article.reviewed_at = now
    if action == "approve":
        _publish(session, article, now)
    else:
        article.status = ArticleStatus.draft
        article.published_at = None
        article.scheduled_at = None

    record_history(
        session,
        article,
        f"review_{action}",
        reviewer_id,
        previous,
        notes=feedback,
        changes={
            "reviewer_notes": reviewer_notes,
            "suggested_changes": suggested_changes or [],
            "quality_score": quality_score,
        },
    )

    award_editorial_points(session, reviewer_id, article.id, ContributionType.reviewer)
    if action == "approve" and quality_score is not None and article.author_id is not None:
        award_quality_follow_up(session, article.id, article.author_id, quality_score)

    if new_reviewer is not None:
        article.assigned_reviewer_id = new_reviewer.id
        record_history(
            session,
            article,
            "reviewer_assigned",
            reviewer_id,
            article.status,
            notes="reassigned by reviewer",
            changes={"reviewer_id": str(new_reviewer.id), "previous_reviewer_id": str(reviewer_id)},
        )
    session.commit()

    logger.info("Article %s review_%s by %s", article_id, action, reviewer_id)
    return article
