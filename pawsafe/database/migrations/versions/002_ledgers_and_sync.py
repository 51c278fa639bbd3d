"""
Confirmation ledgers and sync bookkeeping

Revision ID: 002_ledgers_and_sync
Create Date: 2026-10-18
"""

import time

from alembic import op
import sqlalchemy as sa

# Revision identifiers
revision = '002_ledgers_and_sync'
down_revision = '001_base'
version = 2


def upgrade() -> None:
    """Add vote ledgers and sync fields, backfilling existing rows."""
    op.add_column('reports', sa.Column('still_there_count', sa.Integer(), nullable=False, server_default='0'))
    op.add_column('reports', sa.Column('still_there_confirmations', sa.JSON(), nullable=False, server_default='[]'))
    op.add_column('reports', sa.Column('cleared_confirmations', sa.JSON(), nullable=False, server_default='[]'))
    op.add_column('reports', sa.Column('sync_status', sa.String(16), nullable=False, server_default='pending'))
    op.add_column('reports', sa.Column('last_modified', sa.BigInteger()))
    op.add_column('reports', sa.Column('remote_ref', sa.String(128)))

    op.create_index('idx_report_sync_status', 'reports', ['sync_status'])

    # Existing rows count as modified now so they get pushed once
    op.execute(
        sa.text(
            "UPDATE reports SET last_modified = :now WHERE last_modified IS NULL"
        ).bindparams(now=int(time.time() * 1000))
    )
