"""Tag maintenance: merging, usage recount and cleanup of unused tags.

All functions take a sync ``Session`` so they can be called from the admin
API (``run_sync``), cron endpoints, the CLI and Celery beat.  The merge and
cleanup jobs commit their own work; ``set_article_tags`` leaves the commit
to the caller.
"""

from __future__ import annotations

import datetime
import logging
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import Session

from newsdesk.config import settings
from newsdesk.db.models import ArticleTag, Tag, utcnow

logger = logging.getLogger(__name__)


def recount_usage(session: Session, tag_ids: list[uuid.UUID]) -> None:
    """Set ``usage_count`` from the number of article links of each tag."""
    for tag_id in tag_ids:
        count = session.execute(
            sa.select(sa.func.count()).select_from(ArticleTag).where(ArticleTag.tag_id == tag_id)
        ).scalar_one()
        session.execute(sa.update(Tag).where(Tag.id == tag_id).values(usage_count=count))


def set_article_tags(
    session: Session, article_id: uuid.UUID, tag_ids: list[uuid.UUID]
) -> list[uuid.UUID]:
    """Replace the tag links of an article and recount every affected tag.

    Unknown tag ids are ignored.  Flushes but does not commit.  Returns the
    ids actually linked.
    """
    previous = set(
        session.execute(
            sa.select(ArticleTag.tag_id).where(ArticleTag.article_id == article_id)
        ).scalars()
    )
    wanted = list(
        session.execute(sa.select(Tag.id).where(Tag.id.in_(tag_ids))).scalars()
    ) if tag_ids else []

    session.execute(
        sa.delete(ArticleTag)
        .where(ArticleTag.article_id == article_id)
        .execution_options(synchronize_session=False)
    )
    for tag_id in wanted:
        session.add(ArticleTag(article_id=article_id, tag_id=tag_id))
    session.flush()

    recount_usage(session, list(previous | set(wanted)))
    return wanted


def _repoint_links(session: Session, source_id: uuid.UUID, target_id: uuid.UUID) -> None:
    """Move article links from source to target, dropping links the target already has."""
    already_linked = sa.select(ArticleTag.article_id).where(ArticleTag.tag_id == target_id)
    session.execute(
        sa.delete(ArticleTag).where(
            ArticleTag.tag_id == source_id,
            ArticleTag.article_id.in_(already_linked),
        )
        .execution_options(synchronize_session=False)
    )
    session.execute(
        sa.update(ArticleTag).where(ArticleTag.tag_id == source_id).values(tag_id=target_id)
    )


def merge_tags(session: Session, source_ids: list[uuid.UUID], target_id: uuid.UUID) -> dict:
    """Fold *source_ids* into *target_id* and delete the sources.

    Raises:
        LookupError: If the target tag does not exist.
        ValueError:  If the target is also listed as a source.
    """
    if target_id in source_ids:
        raise ValueError("target_id cannot also be a source tag")
    if session.get(Tag, target_id) is None:
        raise LookupError(f"Tag '{target_id}' not found")

    existing = list(
        session.execute(sa.select(Tag.id).where(Tag.id.in_(source_ids))).scalars()
    )
    for source_id in existing:
        _repoint_links(session, source_id, target_id)
    if existing:
        session.execute(sa.delete(Tag).where(Tag.id.in_(existing)))
    recount_usage(session, [target_id])
    session.commit()

    logger.info("Merged %d tag(s) into %s", len(existing), target_id)
    return {"target_id": str(target_id), "merged_count": len(existing), "merged_ids": [str(i) for i in existing]}


def merge_duplicate_tags(session: Session) -> dict:
    """Merge tags sharing a case-insensitive name into the oldest of them."""
    tags = session.execute(sa.select(Tag).order_by(Tag.created_at.asc())).scalars().all()

    keepers: dict[str, Tag] = {}
    merged = 0
    touched: set[uuid.UUID] = set()
    for tag in tags:
        key = tag.name.strip().lower()
        keeper = keepers.get(key)
        if keeper is None:
            keepers[key] = tag
            continue
        _repoint_links(session, tag.id, keeper.id)
        session.delete(tag)
        touched.add(keeper.id)
        merged += 1

    session.flush()
    recount_usage(session, list(touched))
    session.commit()

    logger.info("Duplicate tag merge: %d tag(s) merged", merged)
    return {"merged_count": merged}


def cleanup_unused_tags(
    session: Session,
    older_than_days: int | None = None,
    now: datetime.datetime | None = None,
) -> dict:
    """Delete tags with zero usage created more than *older_than_days* ago."""
    now = now or utcnow()
    days = settings.tag_cleanup_age_days if older_than_days is None else older_than_days
    cutoff = now - datetime.timedelta(days=days)

    result = session.execute(
        sa.delete(Tag).where(Tag.usage_count == 0, Tag.created_at < cutoff)
        .execution_options(synchronize_session=False)
    )
    session.commit()

    deleted = result.rowcount or 0
    logger.info("Unused tag cleanup: %d tag(s) deleted (older than %d days)", deleted, days)
    return {"deleted_count": deleted}
