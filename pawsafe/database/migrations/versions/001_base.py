"""
Base schema - hazard reports table

Revision ID: 001_base
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '001_base'
down_revision = None
version = 1


def upgrade() -> None:
    """Create the reports table."""
    op.create_table(
        'reports',
        sa.Column('id', sa.String(64), primary_key=True),
        sa.Column('lat', sa.Float(), nullable=False),
        sa.Column('lng', sa.Float(), nullable=False),
        sa.Column('description', sa.Text(), nullable=False, server_default=''),
        sa.Column('photo_base64', sa.Text()),
        sa.Column('photo_url', sa.String(2048)),
        sa.Column('created_at', sa.DateTime(), nullable=False, server_default=sa.func.now()),
        sa.Column('cleared_count', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('resolved', sa.Boolean(), nullable=False, server_default='0'),
    )

    op.create_index('idx_report_lat', 'reports', ['lat'])
    op.create_index('idx_report_lng', 'reports', ['lng'])
    op.create_index('idx_report_created_at', 'reports', ['created_at'])
    op.create_index('idx_report_resolved', 'reports', ['resolved'])
