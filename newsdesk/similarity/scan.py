"""Database-facing duplicate scan and resolution.

Written against a sync ``Session`` so the same code serves the admin API
(through ``AsyncSession.run_sync``) and the interactive CLI review.
"""

from __future__ import annotations

import datetime
import logging
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.db.models import ContentInteraction, News, as_utc, utcnow
from newsdesk.similarity.duplicates import (
    DetectionConfig,
    DuplicateGroup,
    NewsCandidate,
    find_duplicate_groups,
    summarise_groups,
)

logger = logging.getLogger(__name__)


def to_candidate(row: News) -> NewsCandidate:
    return NewsCandidate(
        id=str(row.id),
        title=row.title,
        content=row.content or "",
        source_url=row.source_url,
        source_name=row.source_name,
        published_at=as_utc(row.published_at),
        created_at=as_utc(row.created_at),
        processed=row.processed,
    )


def load_candidates(
    session: Session,
    date_range_days: int,
    include_processed: bool,
    pool_size: int,
    now: datetime.datetime | None = None,
) -> list[NewsCandidate]:
    """News created within the date range, newest first, capped at *pool_size*."""
    now = now or utcnow()
    date_from = now - datetime.timedelta(days=date_range_days)

    stmt = (
        sa.select(News)
        .where(News.created_at >= date_from)
        .order_by(News.created_at.desc())
        .limit(pool_size)
    )
    if not include_processed:
        stmt = stmt.where(News.processed.is_(False))

    rows = session.execute(stmt).scalars().all()
    return [to_candidate(row) for row in rows]


def scan_duplicates(
    session: Session,
    config: DetectionConfig,
    include_processed: bool,
    date_range_days: int,
    pool_size: int,
) -> tuple[list[DuplicateGroup], dict]:
    """Load candidates and group them.  Returns ``(groups, stats)``."""
    candidates = load_candidates(session, date_range_days, include_processed, pool_size)

    if len(candidates) < 2:
        groups: list[DuplicateGroup] = []
    else:
        logger.info(
            "Starting duplicate detection for %d items with threshold %.2f",
            len(candidates),
            config.similarity_threshold,
        )
        groups = find_duplicate_groups(candidates, config)
        logger.info("Duplicate detection completed: %d group(s) found", len(groups))

    stats = summarise_groups(
        groups,
        total_checked=len(candidates),
        similarity_threshold=config.similarity_threshold,
        date_range_days=date_range_days,
    )
    return groups, stats


def resolve_duplicates(
    session: Session, keep_id: uuid.UUID, delete_ids: list[uuid.UUID]
) -> dict:
    """Keep one news item and delete the others of its group.

    Raises:
        ValueError:  If *keep_id* is also listed for deletion.
        LookupError: If the item to keep does not exist.
    """
    if keep_id in delete_ids:
        raise ValueError("keep_id cannot also be listed in delete_ids")

    kept = session.get(News, keep_id)
    if kept is None:
        raise LookupError(f"News item '{keep_id}' to keep not found")

    if delete_ids:
        session.execute(
            sa.delete(ContentInteraction).where(
                ContentInteraction.content_type == "news",
                ContentInteraction.content_id.in_(delete_ids),
            )
        )
        session.execute(sa.delete(News).where(News.id.in_(delete_ids)))
    session.commit()

    logger.info("Resolved duplicates: kept %s, deleted %d item(s)", keep_id, len(delete_ids))

    return {
        "kept_item": {"id": str(kept.id), "title": kept.title},
        "deleted_count": len(delete_ids),
        "deleted_ids": [str(i) for i in delete_ids],
    }
