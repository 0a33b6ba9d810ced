"""SQLAlchemy ORM models for Newsdesk.

Tables:
- profiles                 : one row per auth-provider user, carries the role string
- role_audit_log           : history of role changes made by admins
- categories               : hierarchical content categories (parent_id)
- tags / article_tags      : free-form article tags with a denormalized usage_count
- articles                 : long-form editorial content with a review workflow
- article_history          : status transitions and edits of an article
- news                     : aggregated news items with ranking signals
- content_interactions     : views / likes / shares / comments on news and articles
- user_subscriptions       : tag and category subscriptions feeding the personalized feed
- content_contributions    : point awards for authoring, reviewing, editing and translating
- contributor_stats        : per-user aggregates of contributions
- contributor_achievements : achievements earned by contributors
- system_settings          : key/value bookkeeping for periodic jobs

Enum columns are stored as plain strings (native_enum=False) so the same models
work on PostgreSQL and on the SQLite database used by the test-suite.
"""

from __future__ import annotations

import datetime
import enum
import uuid

import sqlalchemy as sa
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


class Base(DeclarativeBase):
    pass


def utcnow() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime | None) -> datetime.datetime | None:
    """Attach UTC to naive datetimes read back from drivers that drop tzinfo."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class UserRole(str, enum.Enum):
    student = "student"
    citizen = "citizen"
    genesis = "genesis"
    author = "author"
    editor = "editor"
    admin = "admin"


class ArticleStatus(str, enum.Enum):
    draft = "draft"
    review = "review"
    published = "published"
    archived = "archived"


class Language(str, enum.Enum):
    es = "es"
    en = "en"


class InteractionType(str, enum.Enum):
    view = "view"
    like = "like"
    share = "share"
    comment = "comment"


class ContributionType(str, enum.Enum):
    author = "author"
    reviewer = "reviewer"
    editor = "editor"
    translator = "translator"


class ReviewPriority(str, enum.Enum):
    low = "low"
    medium = "medium"
    high = "high"


def _enum_column(enum_cls: type[enum.Enum]) -> sa.Enum:
    return sa.Enum(
        enum_cls,
        native_enum=False,
        length=20,
        values_callable=lambda members: [m.value for m in members],
    )


# ---------------------------------------------------------------------------
# Users and roles
# ---------------------------------------------------------------------------


class Profile(Base):
    __tablename__ = "profiles"

    # Same UUID as the auth provider's user id (JWT "sub" claim)
    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True)
    email: Mapped[str | None] = mapped_column(sa.String(320))
    full_name: Mapped[str | None] = mapped_column(sa.String(200))
    role: Mapped[UserRole] = mapped_column(
        _enum_column(UserRole), default=UserRole.student, nullable=False
    )
    total_points: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class RoleAuditLog(Base):
    __tablename__ = "role_audit_log"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    old_role: Mapped[str | None] = mapped_column(sa.String(20))
    new_role: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    changed_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid)
    reason: Mapped[str | None] = mapped_column(sa.Text)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Taxonomy
# ---------------------------------------------------------------------------


class Category(Base):
    __tablename__ = "categories"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    slug: Mapped[str] = mapped_column(sa.String(120), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(sa.Text)
    color: Mapped[str | None] = mapped_column(sa.String(20))
    icon: Mapped[str | None] = mapped_column(sa.String(50))
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("categories.id", ondelete="SET NULL")
    )
    sort_order: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class Tag(Base):
    __tablename__ = "tags"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    slug: Mapped[str] = mapped_column(sa.String(60), nullable=False, unique=True)
    description: Mapped[str | None] = mapped_column(sa.Text)
    color: Mapped[str | None] = mapped_column(sa.String(20))
    usage_count: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class ArticleTag(Base):
    __tablename__ = "article_tags"

    article_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("articles.id", ondelete="CASCADE"), primary_key=True
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True
    )


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------


class Article(Base):
    __tablename__ = "articles"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(sa.String(300), nullable=False)
    slug: Mapped[str] = mapped_column(sa.String(320), nullable=False, unique=True)
    content: Mapped[str] = mapped_column(sa.Text, nullable=False)
    excerpt: Mapped[str | None] = mapped_column(sa.Text)
    status: Mapped[ArticleStatus] = mapped_column(
        _enum_column(ArticleStatus), default=ArticleStatus.draft, nullable=False, index=True
    )
    language: Mapped[Language] = mapped_column(
        _enum_column(Language), default=Language.es, nullable=False
    )
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("categories.id", ondelete="SET NULL"), index=True
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="SET NULL"), index=True
    )
    featured_image_url: Mapped[str | None] = mapped_column(sa.Text)
    seo_title: Mapped[str | None] = mapped_column(sa.String(300))
    seo_description: Mapped[str | None] = mapped_column(sa.Text)
    reading_time: Mapped[int] = mapped_column(sa.Integer, default=1, nullable=False)
    view_count: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    like_count: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    share_count: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    # {"en": {"title": ..., "content": ..., "summary": ...}}
    translations: Mapped[dict] = mapped_column(sa.JSON, default=dict, nullable=False)
    published_at: Mapped[datetime.datetime | None] = mapped_column(sa.DateTime(timezone=True))
    scheduled_at: Mapped[datetime.datetime | None] = mapped_column(sa.DateTime(timezone=True))
    reviewed_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid)
    reviewed_at: Mapped[datetime.datetime | None] = mapped_column(sa.DateTime(timezone=True))
    assigned_reviewer_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="SET NULL"), index=True
    )
    review_priority: Mapped[ReviewPriority | None] = mapped_column(_enum_column(ReviewPriority))
    review_deadline: Mapped[datetime.datetime | None] = mapped_column(sa.DateTime(timezone=True))
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class ArticleHistory(Base):
    __tablename__ = "article_history"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    article_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("articles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    changed_by: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid)
    action: Mapped[str] = mapped_column(sa.String(30), nullable=False)
    previous_status: Mapped[str | None] = mapped_column(sa.String(20))
    new_status: Mapped[str | None] = mapped_column(sa.String(20))
    notes: Mapped[str | None] = mapped_column(sa.Text)
    changes: Mapped[dict] = mapped_column(sa.JSON, default=dict, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )


class News(Base):
    __tablename__ = "news"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(sa.String(500), nullable=False)
    summary: Mapped[str | None] = mapped_column(sa.Text)
    content: Mapped[str | None] = mapped_column(sa.Text)
    source_url: Mapped[str | None] = mapped_column(sa.Text)
    source_name: Mapped[str | None] = mapped_column(sa.String(200))
    image_url: Mapped[str | None] = mapped_column(sa.Text)
    category_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("categories.id", ondelete="SET NULL"), index=True
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="SET NULL")
    )
    language: Mapped[Language] = mapped_column(
        _enum_column(Language), default=Language.es, nullable=False
    )
    processed: Mapped[bool] = mapped_column(sa.Boolean, default=False, nullable=False)
    published_at: Mapped[datetime.datetime | None] = mapped_column(
        sa.DateTime(timezone=True), index=True
    )
    # Ranking signals on a 0-10 scale
    relevance_score: Mapped[float] = mapped_column(sa.Float, default=0.0, nullable=False)
    engagement_score: Mapped[float] = mapped_column(sa.Float, default=0.0, nullable=False)
    trending_score: Mapped[float] = mapped_column(sa.Float, default=0.0, nullable=False)
    keywords: Mapped[list] = mapped_column(sa.JSON, default=list, nullable=False)
    # Topic labels assigned by the ingestion pipeline (distinct from category_id)
    categories: Mapped[list] = mapped_column(sa.JSON, default=list, nullable=False)
    translations: Mapped[dict] = mapped_column(sa.JSON, default=dict, nullable=False)
    ai_metadata: Mapped[dict] = mapped_column(sa.JSON, default=dict, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Engagement
# ---------------------------------------------------------------------------


class ContentInteraction(Base):
    __tablename__ = "content_interactions"
    __table_args__ = (
        sa.Index("ix_content_interactions_content", "content_type", "content_id"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID | None] = mapped_column(sa.Uuid, index=True)
    content_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)
    content_type: Mapped[str] = mapped_column(sa.String(20), default="news", nullable=False)
    interaction_type: Mapped[InteractionType] = mapped_column(
        _enum_column(InteractionType), nullable=False
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False, index=True
    )


class UserSubscription(Base):
    __tablename__ = "user_subscriptions"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    # "tag" or "category"
    subscription_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    target: Mapped[str] = mapped_column(sa.String(120), nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Gamification
# ---------------------------------------------------------------------------


class ContentContribution(Base):
    __tablename__ = "content_contributions"

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    content_id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, nullable=False)
    content_type: Mapped[str] = mapped_column(sa.String(20), nullable=False)
    contribution_type: Mapped[ContributionType] = mapped_column(
        _enum_column(ContributionType), nullable=False
    )
    base_points: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    bonus_points: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    total_points: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    quality_score: Mapped[float | None] = mapped_column(sa.Float)
    contribution_metadata: Mapped[dict] = mapped_column(sa.JSON, default=dict, nullable=False)
    created_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )


class ContributorStats(Base):
    __tablename__ = "contributor_stats"

    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="CASCADE"), primary_key=True
    )
    total_content_points: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    total_articles: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    total_reviews: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    total_translations: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    average_quality_score: Mapped[float] = mapped_column(sa.Float, default=0.0, nullable=False)
    scored_contributions: Mapped[int] = mapped_column(sa.Integer, default=0, nullable=False)
    last_contribution_at: Mapped[datetime.datetime | None] = mapped_column(
        sa.DateTime(timezone=True)
    )
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )


class ContributorAchievement(Base):
    __tablename__ = "contributor_achievements"
    __table_args__ = (
        sa.UniqueConstraint("user_id", "achievement_type", name="uq_achievement_user_type"),
    )

    id: Mapped[uuid.UUID] = mapped_column(sa.Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        sa.Uuid, sa.ForeignKey("profiles.id", ondelete="CASCADE"), nullable=False, index=True
    )
    achievement_type: Mapped[str] = mapped_column(sa.String(50), nullable=False)
    name: Mapped[str] = mapped_column(sa.String(100), nullable=False)
    description: Mapped[str | None] = mapped_column(sa.Text)
    icon: Mapped[str | None] = mapped_column(sa.String(50))
    color: Mapped[str | None] = mapped_column(sa.String(20))
    earned_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, nullable=False
    )


# ---------------------------------------------------------------------------
# Job bookkeeping
# ---------------------------------------------------------------------------


class SystemSetting(Base):
    __tablename__ = "system_settings"

    key: Mapped[str] = mapped_column(sa.String(100), primary_key=True)
    value: Mapped[str] = mapped_column(sa.Text, nullable=False)
    updated_at: Mapped[datetime.datetime] = mapped_column(
        sa.DateTime(timezone=True), default=utcnow, onupdate=utcnow, nullable=False
    )
