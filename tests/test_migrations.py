"""
Tests for schema migrations
"""
from types import SimpleNamespace

import pytest
import sqlalchemy as sa
from alembic import op

from pawsafe.core.constants import SCHEMA_VERSION
from pawsafe.core.exceptions import MigrationFailure
from pawsafe.crowdsource.report import SyncStatus
from pawsafe.database import migrations
from pawsafe.database.connection import DatabaseConnection
from pawsafe.database.store import EntityStore


def _columns(engine):
    return {column["name"] for column in sa.inspect(engine).get_columns("reports")}


def _user_version(engine):
    with engine.connect() as conn:
        return migrations.current_version(conn)


class TestMigrationLoading:
    """Test suite for migration discovery."""

    def test_versions_are_contiguous(self):
        """Test every version from 1 to latest is present once."""
        versions = [m.version for m in migrations.load_migrations()]
        assert versions == list(range(1, SCHEMA_VERSION + 1))


class TestMigrationUpgrade:
    """Test suite for applying migrations."""

    def setup_method(self):
        self.database = None

    def teardown_method(self):
        if self.database is not None:
            self.database.close()

    def _open(self, database_url):
        self.database = DatabaseConnection(database_url, echo=False)
        return self.database.engine

    def test_fresh_database(self, database_url):
        """Test a new file ends up with every column."""
        engine = self._open(database_url)

        assert migrations.upgrade(engine) == SCHEMA_VERSION
        assert _user_version(engine) == SCHEMA_VERSION
        assert {
            "still_there_confirmations", "cleared_confirmations", "sync_status",
            "last_modified", "archived", "archived_at", "flagged", "no_glass_found",
        } <= _columns(engine)

    def test_upgrade_to_target(self, database_url):
        """Test stopping at an intermediate version."""
        engine = self._open(database_url)

        assert migrations.upgrade(engine, target=1) == 1
        assert "sync_status" not in _columns(engine)

    def test_v1_rows_backfilled(self, database_url, clock):
        """Test a v1 row survives v1 -> v4 with defaults filled in."""
        engine = self._open(database_url)
        migrations.upgrade(engine, target=1)

        with engine.begin() as conn:
            conn.execute(
                sa.text(
                    "INSERT INTO reports (id, lat, lng, description, created_at, cleared_count, resolved) "
                    "VALUES (:id, :lat, :lng, :desc, :created_at, 0, 0)"
                ),
                {
                    "id": "legacy-1",
                    "lat": -22.5,
                    "lng": -45.5,
                    "desc": "Glass near the park gate",
                    "created_at": "2025-06-01 08:15:00.000000",
                },
            )

        store = EntityStore(self.database, clock=clock)
        assert store.init() == SCHEMA_VERSION

        report = store.get("legacy-1")
        assert report.id == "legacy-1"
        assert report.lat == -22.5
        assert report.lng == -45.5
        assert report.description == "Glass near the park gate"
        assert report.created_at.year == 2025
        assert report.created_at.hour == 8
        assert report.cleared_confirmations == []
        assert report.still_there_confirmations == []
        assert report.sync_status == SyncStatus.PENDING
        assert report.last_modified > 0
        assert report.archived is False
        assert report.archived_at is None
        assert report.flagged is False
        assert report.no_glass_found is False

    def test_v1_cleared_count_not_carried_over(self, database_url, clock):
        """Test a legacy tally without voter ids restarts at zero."""
        engine = self._open(database_url)
        migrations.upgrade(engine, target=1)

        with engine.begin() as conn:
            conn.execute(
                sa.text(
                    "INSERT INTO reports (id, lat, lng, description, created_at, cleared_count, resolved) "
                    "VALUES ('legacy-2', -22.5, -45.5, '', '2025-06-01 08:15:00.000000', 2, 0)"
                )
            )

        store = EntityStore(self.database, clock=clock)
        store.init()

        report = store.get("legacy-2")
        assert report.cleared_count == 0
        assert report.resolved is False

    def test_failed_migration_rolls_back(self, database_url):
        """Test a failing version leaves the previous schema intact."""
        engine = self._open(database_url)
        migrations.upgrade(engine)

        def broken_upgrade():
            op.add_column("reports", sa.Column("half_done", sa.Integer()))
            raise RuntimeError("disk full")

        broken = SimpleNamespace(version=SCHEMA_VERSION + 1, revision="broken", upgrade=broken_upgrade)

        with pytest.raises(MigrationFailure) as exc_info:
            migrations.upgrade(engine, migrations=[broken])

        assert exc_info.value.version == SCHEMA_VERSION + 1
        assert isinstance(exc_info.value.cause, RuntimeError)
        assert _user_version(engine) == SCHEMA_VERSION
        assert "half_done" not in _columns(engine)
