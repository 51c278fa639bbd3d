"""
Additive schema migrations for the local report store.

Each module under ``versions`` declares an integer ``version`` and an
``upgrade()`` written against ``alembic.op``. Versions are applied in order,
each inside its own transaction, and the applied version is recorded in
SQLite's ``PRAGMA user_version``.
"""

import importlib
import logging
import pkgutil
from types import ModuleType
from typing import List, Optional, Sequence

from alembic.migration import MigrationContext
from alembic.operations import Operations
from sqlalchemy.engine import Connection, Engine

from pawsafe.core.exceptions import MigrationFailure

logger = logging.getLogger(__name__)

VERSIONS_PACKAGE = "pawsafe.database.migrations.versions"


def load_migrations() -> List[ModuleType]:
    """Import every migration module, ordered by version."""
    package = importlib.import_module(VERSIONS_PACKAGE)
    modules = [
        importlib.import_module(f"{VERSIONS_PACKAGE}.{info.name}")
        for info in pkgutil.iter_modules(package.__path__)
    ]
    modules.sort(key=lambda module: module.version)
    return modules


def current_version(connection: Connection) -> int:
    """Schema version recorded in the database file."""
    return int(connection.exec_driver_sql("PRAGMA user_version").scalar() or 0)


def upgrade(
    engine: Engine,
    target: Optional[int] = None,
    migrations: Optional[Sequence] = None
) -> int:
    """
    Bring the schema up to ``target`` (default: latest).

    Args:
        engine: Engine bound to the local store
        target: Highest version to apply
        migrations: Migration modules, defaults to ``load_migrations()``

    Returns:
        Schema version after upgrading

    Raises:
        MigrationFailure: A version failed; its changes were rolled back and
            earlier versions remain applied.
    """
    steps = list(migrations) if migrations is not None else load_migrations()

    with engine.connect() as conn:
        version = current_version(conn)

    for migration in steps:
        if migration.version <= version:
            continue
        if target is not None and migration.version > target:
            break

        logger.info(f"Applying schema migration v{migration.version} ({migration.revision})")

        try:
            with engine.begin() as conn:
                context = MigrationContext.configure(conn)
                with Operations.context(context):
                    migration.upgrade()
                conn.exec_driver_sql(f"PRAGMA user_version = {int(migration.version)}")
        except Exception as e:
            logger.error(f"Schema migration v{migration.version} failed: {e}")
            raise MigrationFailure(migration.version, e) from e

        version = migration.version

    return version
