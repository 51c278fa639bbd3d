"""
No-glass-found moderation flag

Revision ID: 004_no_glass_found
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '004_no_glass_found'
down_revision = '003_archive_and_flag'
version = 4


def upgrade() -> None:
    """Add the no_glass_found flag, defaulted to false."""
    op.add_column('reports', sa.Column('no_glass_found', sa.Boolean(), nullable=False, server_default='0'))

    op.create_index('idx_report_no_glass_found', 'reports', ['no_glass_found'])
