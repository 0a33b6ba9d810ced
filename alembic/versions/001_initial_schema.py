"""Initial schema: users, taxonomy, content, engagement, gamification.

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates:
- profiles, role_audit_log                         : users (id = auth provider user id) and role changes
- categories, tags, article_tags                   : taxonomy
- articles, article_history                        : editorial content and its review trail
- news                                             : aggregated news with ranking signals
- content_interactions, user_subscriptions         : engagement and interests
- content_contributions, contributor_stats,
  contributor_achievements                         : gamification
- system_settings                                  : key/value bookkeeping for periodic jobs

Enum columns are stored as VARCHAR(20) holding the enum value, so new values
do not need a type migration.
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers used by Alembic
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    ]


def upgrade() -> None:
    # 1. Users and roles
    op.create_table(
        "profiles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("email", sa.String(320)),
        sa.Column("full_name", sa.String(200)),
        sa.Column("role", sa.String(20), nullable=False, server_default="student"),
        sa.Column("total_points", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "role_audit_log",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid,
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("old_role", sa.String(20)),
        sa.Column("new_role", sa.String(20), nullable=False),
        sa.Column("changed_by", sa.Uuid),
        sa.Column("reason", sa.Text),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_role_audit_log_user_id", "role_audit_log", ["user_id"])

    # 2. Taxonomy
    op.create_table(
        "categories",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("slug", sa.String(120), nullable=False, unique=True),
        sa.Column("description", sa.Text),
        sa.Column("color", sa.String(20)),
        sa.Column("icon", sa.String(50)),
        sa.Column("parent_id", sa.Uuid, sa.ForeignKey("categories.id", ondelete="SET NULL")),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )
    op.create_table(
        "tags",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("slug", sa.String(60), nullable=False, unique=True),
        sa.Column("description", sa.Text),
        sa.Column("color", sa.String(20)),
        sa.Column("usage_count", sa.Integer, nullable=False, server_default="0"),
        *_timestamps(),
    )

    # 3. Articles
    op.create_table(
        "articles",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("title", sa.String(300), nullable=False),
        sa.Column("slug", sa.String(320), nullable=False, unique=True),
        sa.Column("content", sa.Text, nullable=False),
        sa.Column("excerpt", sa.Text),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("language", sa.String(20), nullable=False, server_default="es"),
        sa.Column("category_id", sa.Uuid, sa.ForeignKey("categories.id", ondelete="SET NULL")),
        sa.Column("author_id", sa.Uuid, sa.ForeignKey("profiles.id", ondelete="SET NULL")),
        sa.Column("featured_image_url", sa.Text),
        sa.Column("seo_title", sa.String(300)),
        sa.Column("seo_description", sa.Text),
        sa.Column("reading_time", sa.Integer, nullable=False, server_default="1"),
        sa.Column("view_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("like_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("share_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("translations", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("published_at", sa.DateTime(timezone=True)),
        sa.Column("scheduled_at", sa.DateTime(timezone=True)),
        sa.Column("reviewed_by", sa.Uuid),
        sa.Column("reviewed_at", sa.DateTime(timezone=True)),
        *_timestamps(),
    )
    op.create_index("ix_articles_status", "articles", ["status"])
    op.create_index("ix_articles_category_id", "articles", ["category_id"])
    op.create_index("ix_articles_author_id", "articles", ["author_id"])

    op.create_table(
        "article_tags",
        sa.Column(
            "article_id",
            sa.Uuid,
            sa.ForeignKey("articles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column(
            "tag_id",
            sa.Uuid,
            sa.ForeignKey("tags.id", ondelete="CASCADE"),
            primary_key=True,
        ),
    )
    op.create_table(
        "article_history",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "article_id",
            sa.Uuid,
            sa.ForeignKey("articles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("changed_by", sa.Uuid),
        sa.Column("action", sa.String(30), nullable=False),
        sa.Column("previous_status", sa.String(20)),
        sa.Column("new_status", sa.String(20)),
        sa.Column("notes", sa.Text),
        sa.Column("changes", sa.JSON, nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_article_history_article_id", "article_history", ["article_id"])

    # 4. News
    op.create_table(
        "news",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("summary", sa.Text),
        sa.Column("content", sa.Text),
        sa.Column("source_url", sa.Text),
        sa.Column("source_name", sa.String(200)),
        sa.Column("image_url", sa.Text),
        sa.Column("category_id", sa.Uuid, sa.ForeignKey("categories.id", ondelete="SET NULL")),
        sa.Column("author_id", sa.Uuid, sa.ForeignKey("profiles.id", ondelete="SET NULL")),
        sa.Column("language", sa.String(20), nullable=False, server_default="es"),
        sa.Column("processed", sa.Boolean, nullable=False, server_default=sa.false()),
        sa.Column("published_at", sa.DateTime(timezone=True)),
        sa.Column("relevance_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("engagement_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("trending_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("keywords", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("categories", sa.JSON, nullable=False, server_default="[]"),
        sa.Column("translations", sa.JSON, nullable=False, server_default="{}"),
        sa.Column("ai_metadata", sa.JSON, nullable=False, server_default="{}"),
        *_timestamps(),
    )
    op.create_index("ix_news_category_id", "news", ["category_id"])
    op.create_index("ix_news_published_at", "news", ["published_at"])
    op.create_index("ix_news_created_at", "news", ["created_at"])

    # 5. Engagement
    op.create_table(
        "content_interactions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column("user_id", sa.Uuid),
        sa.Column("content_id", sa.Uuid, nullable=False),
        sa.Column("content_type", sa.String(20), nullable=False, server_default="news"),
        sa.Column("interaction_type", sa.String(20), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_content_interactions_user_id", "content_interactions", ["user_id"])
    op.create_index("ix_content_interactions_created_at", "content_interactions", ["created_at"])
    op.create_index(
        "ix_content_interactions_content",
        "content_interactions",
        ["content_type", "content_id"],
    )

    op.create_table(
        "user_subscriptions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid,
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("subscription_type", sa.String(20), nullable=False),
        sa.Column("target", sa.String(120), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_user_subscriptions_user_id", "user_subscriptions", ["user_id"])

    # 6. Gamification
    op.create_table(
        "content_contributions",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid,
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("content_id", sa.Uuid, nullable=False),
        sa.Column("content_type", sa.String(20), nullable=False),
        sa.Column("contribution_type", sa.String(20), nullable=False),
        sa.Column("base_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("bonus_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("quality_score", sa.Float),
        sa.Column("contribution_metadata", sa.JSON, nullable=False, server_default="{}"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )
    op.create_index("ix_content_contributions_user_id", "content_contributions", ["user_id"])

    op.create_table(
        "contributor_stats",
        sa.Column(
            "user_id",
            sa.Uuid,
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("total_content_points", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_articles", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_reviews", sa.Integer, nullable=False, server_default="0"),
        sa.Column("total_translations", sa.Integer, nullable=False, server_default="0"),
        sa.Column("average_quality_score", sa.Float, nullable=False, server_default="0"),
        sa.Column("scored_contributions", sa.Integer, nullable=False, server_default="0"),
        sa.Column("last_contribution_at", sa.DateTime(timezone=True)),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )

    op.create_table(
        "contributor_achievements",
        sa.Column("id", sa.Uuid, primary_key=True),
        sa.Column(
            "user_id",
            sa.Uuid,
            sa.ForeignKey("profiles.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("achievement_type", sa.String(50), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text),
        sa.Column("icon", sa.String(50)),
        sa.Column("color", sa.String(20)),
        sa.Column(
            "earned_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("user_id", "achievement_type", name="uq_achievement_user_type"),
    )
    op.create_index(
        "ix_contributor_achievements_user_id", "contributor_achievements", ["user_id"]
    )

    # 7. Job bookkeeping
    op.create_table(
        "system_settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
    )


def downgrade() -> None:
    op.drop_table("system_settings")
    op.drop_index("ix_contributor_achievements_user_id", table_name="contributor_achievements")
    op.drop_table("contributor_achievements")
    op.drop_table("contributor_stats")
    op.drop_index("ix_content_contributions_user_id", table_name="content_contributions")
    op.drop_table("content_contributions")
    op.drop_index("ix_user_subscriptions_user_id", table_name="user_subscriptions")
    op.drop_table("user_subscriptions")
    op.drop_index("ix_content_interactions_content", table_name="content_interactions")
    op.drop_index("ix_content_interactions_created_at", table_name="content_interactions")
    op.drop_index("ix_content_interactions_user_id", table_name="content_interactions")
    op.drop_table("content_interactions")
    op.drop_index("ix_news_created_at", table_name="news")
    op.drop_index("ix_news_published_at", table_name="news")
    op.drop_index("ix_news_category_id", table_name="news")
    op.drop_table("news")
    op.drop_index("ix_article_history_article_id", table_name="article_history")
    op.drop_table("article_history")
    op.drop_table("article_tags")
    op.drop_index("ix_articles_author_id", table_name="articles")
    op.drop_index("ix_articles_category_id", table_name="articles")
    op.drop_index("ix_articles_status", table_name="articles")
    op.drop_table("articles")
    op.drop_table("tags")
    op.drop_table("categories")
    op.drop_index("ix_role_audit_log_user_id", table_name="role_audit_log")
    op.drop_table("role_audit_log")
    op.drop_table("profiles")
