"""Create user stories and upvote ledger

Revision ID: c4e7d2a9f310
Revises: a1c0f3e2b901
Create Date: 2025-09-16 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "c4e7d2a9f310"
down_revision = "a1c0f3e2b901"
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "user_stories",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("title", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("submitted_by", sa.String(length=100), nullable=True),
        sa.Column("impact", sa.Integer(), nullable=False),
        sa.Column("confidence", sa.Integer(), nullable=False),
        sa.Column("ease", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="submitted"),
        sa.Column("session_token", sa.String(length=64), nullable=True),
        sa.Column("merged_into_id", sa.String(length=36), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint("impact BETWEEN 1 AND 10", name="ck_user_stories_impact_range"),
        sa.CheckConstraint("confidence BETWEEN 1 AND 10", name="ck_user_stories_confidence_range"),
        sa.CheckConstraint("ease BETWEEN 1 AND 10", name="ck_user_stories_ease_range"),
        sa.CheckConstraint(
            "status IN ('submitted','in_review','accepted','in_progress','on_hold','done')",
            name="ck_user_stories_status_valid",
        ),
        sa.ForeignKeyConstraint(["merged_into_id"], ["user_stories.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_stories_merged_into_id", "user_stories", ["merged_into_id"], unique=False)

    op.create_table(
        "user_story_upvotes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_story_id", sa.String(length=36), nullable=False),
        sa.Column("session_token", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["user_story_id"], ["user_stories.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("user_story_id", "session_token", name="uq_user_story_upvotes_story_token"),
    )
    op.create_index("ix_user_story_upvotes_user_story_id", "user_story_upvotes", ["user_story_id"], unique=False)

def downgrade():
    op.drop_index("ix_user_story_upvotes_user_story_id", table_name="user_story_upvotes")
    op.drop_table("user_story_upvotes")
    op.drop_index("ix_user_stories_merged_into_id", table_name="user_stories")
    op.drop_table("user_stories")
