"""Synchronous database client for Newsdesk CLI commands and Celery tasks.

Uses a SQLAlchemy sync engine instead of the async engine used by the HTTP
server, so Typer commands and Celery workers can call the shared service
functions without an event loop.

The sync URL is derived from settings.database_url by stripping the +asyncpg
driver suffix so psycopg2 (or any sync driver) is used instead.
"""

from __future__ import annotations

import uuid

from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from newsdesk.config import settings
from newsdesk.content.publishing import publish_scheduled_articles
from newsdesk.content.tags import cleanup_unused_tags
from newsdesk.gamification.points import award_popularity_milestones
from newsdesk.scoring.trending import recompute_trending_scores
from newsdesk.similarity.duplicates import DetectionConfig, DuplicateGroup
from newsdesk.similarity.scan import resolve_duplicates, scan_duplicates

# ---------------------------------------------------------------------------
# Sync engine + session factory
# ---------------------------------------------------------------------------
# e.g. "postgresql+asyncpg://..." -> "postgresql://..."
_sync_url = settings.database_url.replace("+asyncpg", "")

_engine = create_engine(_sync_url, pool_pre_ping=True)
SessionFactory = sessionmaker(bind=_engine, expire_on_commit=False)


# ---------------------------------------------------------------------------
# Duplicates
# ---------------------------------------------------------------------------


def find_groups(
    similarity_threshold: float | None = None,
    date_range_days: int | None = None,
    include_processed: bool = False,
) -> tuple[list[DuplicateGroup], dict]:
    config = DetectionConfig.from_settings(similarity_threshold)
    with SessionFactory() as session:
        return scan_duplicates(
            session,
            config,
            include_processed=include_processed,
            date_range_days=date_range_days or settings.duplicate_date_range_days,
            pool_size=settings.duplicate_candidate_pool,
        )


def resolve_group(keep_id: str, delete_ids: list[str]) -> dict:
    with SessionFactory() as session:
        return resolve_duplicates(
            session, uuid.UUID(keep_id), [uuid.UUID(i) for i in delete_ids]
        )


# ---------------------------------------------------------------------------
# Maintenance jobs
# ---------------------------------------------------------------------------


def run_recompute_trending() -> dict:
    with SessionFactory() as session:
        return recompute_trending_scores(session)


def run_publish_scheduled() -> dict:
    with SessionFactory() as session:
        return publish_scheduled_articles(session)


def run_cleanup_tags(older_than_days: int | None = None) -> dict:
    with SessionFactory() as session:
        return cleanup_unused_tags(session, older_than_days)


def run_award_popularity() -> dict:
    with SessionFactory() as session:
        return award_popularity_milestones(session)
