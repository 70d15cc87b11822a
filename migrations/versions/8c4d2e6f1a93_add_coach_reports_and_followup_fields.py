"""add coach_reports and follow-up email fields

Revision ID: 8c4d2e6f1a93
Revises: 3f1a9c2e7b40
Create Date: 2026-09-20 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

revision: str = "8c4d2e6f1a93"
down_revision: Union[str, None] = "3f1a9c2e7b40"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.add_column("applications", sa.Column("follow_up_email_subject", sa.Text(), nullable=True))
    op.add_column("applications", sa.Column("follow_up_email_body", sa.Text(), nullable=True))

    op.create_table(
        "coach_reports",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("range_days", sa.Integer(), nullable=False),
        sa.Column("total_applications", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("by_status", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("daily_created", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("funnel", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("avg_days_in_pipeline", sa.Float(), server_default=sa.text("0"), nullable=False),
        sa.Column("avg_time_per_stage", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("reached_count", sa.Integer(), server_default=sa.text("0"), nullable=False),
        sa.Column("title", sa.Text(), nullable=True),
        sa.Column("summary", sa.Text(), nullable=True),
        sa.Column("priorities", postgresql.JSONB(astext_type=sa.Text()), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("range_days IN (7, 30)", name="ck_coach_reports_range_days"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_coach_reports_range_created",
        "coach_reports",
        ["range_days", "created_at"],
    )


def downgrade() -> None:
    op.drop_index("ix_coach_reports_range_created", table_name="coach_reports")
    op.drop_table("coach_reports")
    op.drop_column("applications", "follow_up_email_body")
    op.drop_column("applications", "follow_up_email_subject")
