"""
Archiving and moderation fields

Revision ID: 003_archive_and_flag
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '003_archive_and_flag'
down_revision = '002_ledgers_and_sync'
version = 3


def upgrade() -> None:
    """Add archived/flagged flags, defaulted to false."""
    op.add_column('reports', sa.Column('archived', sa.Boolean(), nullable=False, server_default='0'))
    op.add_column('reports', sa.Column('archived_at', sa.BigInteger()))
    op.add_column('reports', sa.Column('flagged', sa.Boolean(), nullable=False, server_default='0'))

    op.create_index('idx_report_archived', 'reports', ['archived'])
    op.create_index('idx_report_flagged', 'reports', ['flagged'])
