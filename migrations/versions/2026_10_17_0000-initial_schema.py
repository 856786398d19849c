"""Initial schema

Revision ID: 001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

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
    - short_urls table: canonical short code -> URL records
    - click_events table: click history for analytics
    """
    bind = op.get_bind()
    existing_tables = inspect(bind).get_table_names()

    if 'short_urls' not in existing_tables:
        op.create_table(
            'short_urls',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('original_url', sa.Text(), nullable=False),
            sa.Column('short_code', sa.String(length=20), nullable=False),
            sa.Column('clicks', sa.Integer(), nullable=False, server_default='0'),
            sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('expires_at', sa.DateTime(timezone=True), nullable=True),
            sa.Column('category', sa.String(length=100), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_short_urls_short_code', 'short_urls', ['short_code'], unique=True)
        op.create_index('ix_short_urls_original_url', 'short_urls', ['original_url'])
        op.create_index('ix_short_urls_created_at', 'short_urls', ['created_at'])
        op.create_index('ix_short_urls_expires_at', 'short_urls', ['expires_at'])
        op.create_index('ix_short_urls_category', 'short_urls', ['category'])

    if 'click_events' not in existing_tables:
        op.create_table(
            'click_events',
            sa.Column('id', sa.Integer(), nullable=False, autoincrement=True),
            sa.Column('short_code', sa.String(length=20), nullable=False),
            sa.Column('clicked_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('ip_address', sa.String(length=45), nullable=True),
            sa.Column('user_agent', sa.String(length=500), nullable=True),
            sa.PrimaryKeyConstraint('id')
        )
        op.create_index('ix_click_events_short_code', 'click_events', ['short_code'])
        op.create_index('ix_click_events_clicked_at', 'click_events', ['clicked_at'])


def downgrade() -> None:
    """Drop all tables and indexes."""
    op.drop_index('ix_click_events_clicked_at', table_name='click_events')
    op.drop_index('ix_click_events_short_code', table_name='click_events')
    op.drop_table('click_events')

    op.drop_index('ix_short_urls_category', table_name='short_urls')
    op.drop_index('ix_short_urls_expires_at', table_name='short_urls')
    op.drop_index('ix_short_urls_created_at', table_name='short_urls')
    op.drop_index('ix_short_urls_original_url', table_name='short_urls')
    op.drop_index('ix_short_urls_short_code', table_name='short_urls')
    op.drop_table('short_urls')
