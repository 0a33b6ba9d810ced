"""Article review assignment: assigned reviewer, priority and deadline.

Revision ID: 002
Revises: 001
Create Date: 2026-10-17
"""

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers used by Alembic
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    with op.batch_alter_table("articles") as batch:
        batch.add_column(
            sa.Column(
                "assigned_reviewer_id",
                sa.Uuid,
                sa.ForeignKey(
                    "profiles.id",
                    name="fk_articles_assigned_reviewer_id",
                    ondelete="SET NULL",
                ),
            )
        )
        batch.add_column(sa.Column("review_priority", sa.String(20)))
        batch.add_column(sa.Column("review_deadline", sa.DateTime(timezone=True)))
    op.create_index("ix_articles_assigned_reviewer_id", "articles", ["assigned_reviewer_id"])


def downgrade() -> None:
    op.drop_index("ix_articles_assigned_reviewer_id", table_name="articles")
    with op.batch_alter_table("articles") as batch:
        batch.drop_column("review_deadline")
        batch.drop_column("review_priority")
        batch.drop_column("assigned_reviewer_id")
