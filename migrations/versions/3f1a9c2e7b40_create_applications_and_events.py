"""create applications and application_events

Revision ID: 3f1a9c2e7b40
Revises:
Create Date: 2026-09-02 10:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '3f1a9c2e7b40'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table('applications',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('company', sa.Text(), nullable=False),
        sa.Column('role', sa.Text(), nullable=False),
        sa.Column('status', sa.Text(), server_default=sa.text("'APPLIED'"), nullable=False),
        sa.Column('order', sa.Integer(), server_default=sa.text('0'), nullable=False),
        sa.Column('location', sa.Text(), nullable=True),
        sa.Column('job_url', sa.Text(), nullable=True),
        sa.Column('ai_summary', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint(
            "status IN ('APPLIED', 'INTERVIEW', 'OFFER', 'REJECTED')",
            name='ck_applications_status',
        ),
        sa.CheckConstraint('"order" >= 0', name='ck_applications_order_non_negative'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_applications_status_order', 'applications', ['status', 'order'])

    op.create_table('application_events',
        sa.Column('id', sa.Integer(), autoincrement=True, nullable=False),
        sa.Column('application_id', sa.Integer(), nullable=False),
        sa.Column('type', sa.Text(), nullable=False),
        sa.Column('from_status', sa.Text(), nullable=True),
        sa.Column('to_status', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.CheckConstraint("type IN ('CREATED', 'STATUS_CHANGE')", name='ck_application_events_type'),
        sa.ForeignKeyConstraint(['application_id'], ['applications.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(
        'ix_application_events_app_created',
        'application_events',
        ['application_id', 'created_at'],
    )


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('ix_application_events_app_created', table_name='application_events')
    op.drop_table('application_events')
    op.drop_index('ix_applications_status_order', table_name='applications')
    op.drop_table('applications')
