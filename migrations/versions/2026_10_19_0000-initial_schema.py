"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy import inspect

# revision identifiers, used by Alembic.
revision: str = '001_initial'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """
    Create initial database schema:
    - urls table: Short code mappings with validity window and access counter
    - analytics table: One row per successful redirect

    analytics.short_code is intentionally not a foreign key.
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    if 'urls' not in existing_tables:
        op.create_table(
            'urls',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('original_url', sa.Text(), nullable=False),
            sa.Column('short_code', sa.String(length=20), nullable=False),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
            sa.Column('access_count', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('last_accessed', sa.DateTime(timezone=True), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )

        op.create_index('ix_urls_short_code', 'urls', ['short_code'], unique=True)
        op.create_index('ix_urls_created_at', 'urls', ['created_at'])

    if 'analytics' not in existing_tables:
        op.create_table(
            'analytics',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('short_code', sa.String(length=20), nullable=False),
            sa.Column('accessed_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('ip_address', sa.String(length=45), nullable=True),
            sa.Column('user_agent', sa.String(length=500), nullable=True),
            sa.Column('referrer', sa.Text(), nullable=True),
            sa.Column('location', sa.String(length=100), nullable=False, server_default='Unknown'),
            sa.PrimaryKeyConstraint('id')
        )

        op.create_index('ix_analytics_short_code', 'analytics', ['short_code'])
        op.create_index('ix_analytics_accessed_at', 'analytics', ['accessed_at'])


def downgrade() -> None:
    """Drop all tables and indexes."""
    op.drop_index('ix_analytics_accessed_at', table_name='analytics')
    op.drop_index('ix_analytics_short_code', table_name='analytics')
    op.drop_table('analytics')

    op.drop_index('ix_urls_created_at', table_name='urls')
    op.drop_index('ix_urls_short_code', table_name='urls')
    op.drop_table('urls')
