"""Create courses, class sessions, submissions and rate limits

Revision ID: a1c0f3e2b901
Revises:
Create Date: 2025-09-02 00:00:00.000000
"""
from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "a1c0f3e2b901"
down_revision = None
branch_labels = None
depends_on = None

def upgrade():
    op.create_table(
        "courses",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("code", sa.String(length=32), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("code", name="uq_courses_code"),
    )

    op.create_table(
        "class_sessions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("session_date", sa.Date(), nullable=False),
        sa.Column("access_token", sa.String(length=64), nullable=False),
        sa.Column("expires_at", sa.DateTime(), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("access_token", name="uq_class_sessions_access_token"),
    )
    op.create_index("ix_class_sessions_course_id", "class_sessions", ["course_id"], unique=False)
    op.create_index(
        "ix_class_sessions_course_active", "class_sessions", ["course_id", "is_active", "expires_at"], unique=False
    )

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("course_id", sa.String(length=36), nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("topic", sa.String(length=200), nullable=False),
        sa.Column("confusion", sa.Text(), nullable=False),
        sa.Column("difficulty_level", sa.String(length=16), nullable=False),
        sa.Column("ip_address_hash", sa.String(length=64), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.CheckConstraint(
            "difficulty_level IN ('slightly','very','completely')",
            name="ck_submissions_difficulty_valid",
        ),
        sa.ForeignKeyConstraint(["course_id"], ["courses.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["session_id"], ["class_sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_submissions_course_id", "submissions", ["course_id"], unique=False)
    op.create_index("ix_submissions_session_id", "submissions", ["session_id"], unique=False)
    op.create_index("ix_submissions_created_at", "submissions", ["created_at"], unique=False)

    op.create_table(
        "submission_rate_limits",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("session_id", sa.String(length=36), nullable=False),
        sa.Column("ip_address_hash", sa.String(length=64), nullable=False),
        sa.Column("submission_count", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_submission_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["session_id"], ["class_sessions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("session_id", "ip_address_hash", name="uq_submission_rate_limits_session_ip"),
    )
    op.create_index("ix_submission_rate_limits_session_id", "submission_rate_limits", ["session_id"], unique=False)

def downgrade():
    op.drop_index("ix_submission_rate_limits_session_id", table_name="submission_rate_limits")
    op.drop_table("submission_rate_limits")
    op.drop_index("ix_submissions_created_at", table_name="submissions")
    op.drop_index("ix_submissions_session_id", table_name="submissions")
    op.drop_index("ix_submissions_course_id", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_class_sessions_course_active", table_name="class_sessions")
    op.drop_index("ix_class_sessions_course_id", table_name="class_sessions")
    op.drop_table("class_sessions")
    op.drop_table("courses")
