"""Migration framework for Voltmap.

Sequential, versioned database migrations with:
- Auto-discovery from a migrations directory
- State tracking in a `_migrations` table
- Checksums for drift detection
- Dry-run mode

Each migration file must define:
    version: str       # e.g. "001"
    description: str   # human-readable name
    def up(conn) -> None:    # apply migration (receives psycopg2 connection)
    def down(conn) -> None:  # rollback migration

Usage:
    runner = MigrationRunner(migrations_dir="/path/to/migrations")
    runner.up()          # apply all pending
    runner.status()      # list applied/pending
"""

from __future__ import annotations

import hashlib
import importlib.util
import logging
from collections.abc import Callable
from contextlib import AbstractContextManager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from types import ModuleType
from typing import Any

from psycopg2.extras import RealDictCursor

logger = logging.getLogger(__name__)

MIGRATIONS_TABLE = "_migrations"


@dataclass
class MigrationInfo:
    """Metadata about a discovered migration."""

    version: str
    description: str
    checksum: str
    file_path: Path
    module: ModuleType

    def __lt__(self, other: MigrationInfo) -> bool:
        return self.version < other.version


@dataclass
class MigrationStatus:
    """Status of a single migration: applied, pending, or checksum mismatch."""

    version: str
    description: str
    state: str  # "applied", "pending", "checksum_mismatch"
    applied_at: datetime | None = None


class MigrationRunner:
    """Discovers, tracks, and applies database migrations.

    Args:
        migrations_dir: Directory containing NNN_description.py files.
            Defaults to <repo_root>/migrations.
        connection_factory: Callable returning a context manager that yields
            a psycopg2 connection. Defaults to voltmap.core.db.get_connection.
    """

    def __init__(
        self,
        migrations_dir: str | Path | None = None,
        connection_factory: Callable[[], AbstractContextManager[Any]] | None = None,
    ):
        if migrations_dir is None:
            migrations_dir = Path(__file__).resolve().parent.parent.parent.parent / "migrations"
        self.migrations_dir = Path(migrations_dir)
        self._connection_factory = connection_factory
        self._migrations: list[MigrationInfo] | None = None

    def _connection(self) -> AbstractContextManager[Any]:
        if self._connection_factory:
            return self._connection_factory()
        from .db import get_connection

        return get_connection()

    @staticmethod
    def _compute_checksum(file_path: Path) -> str:
        return hashlib.sha256(file_path.read_bytes()).hexdigest()[:16]

    @staticmethod
    def _load_module(file_path: Path) -> ModuleType:
        module_name = f"voltmap_migration_{file_path.stem}"
        spec = importlib.util.spec_from_file_location(module_name, file_path)
        if spec is None or spec.loader is None:
            raise ValueError(f"Cannot load migration: {file_path}")
        module = importlib.util.module_from_spec(spec)
        spec.loader.exec_module(module)
        return module

    def discover(self) -> list[MigrationInfo]:
        """Discover all migration files in migrations_dir, sorted by version."""
        if self._migrations is not None:
            return self._migrations

        migrations: list[MigrationInfo] = []
        if not self.migrations_dir.is_dir():
            logger.warning("Migrations directory not found: %s", self.migrations_dir)
            self._migrations = []
            return []

        for path in sorted(self.migrations_dir.glob("*.py")):
            parts = path.stem.split("_", 1)
            if len(parts) < 2 or not parts[0].isdigit():
                logger.debug("Skipping non-migration file: %s", path.name)
                continue

            module = self._load_module(path)
            for attr in ("version", "description", "up", "down"):
                if not hasattr(module, attr):
                    raise ValueError(f"Migration {path.name} missing required attribute: {attr}")

            migrations.append(
                MigrationInfo(
                    version=module.version,
                    description=module.description,
                    checksum=self._compute_checksum(path),
                    file_path=path,
                    module=module,
                )
            )

        migrations.sort()
        self._migrations = migrations
        return migrations

    def _applied(self, conn: Any) -> dict[str, dict[str, Any]]:
        """Create the tracking table if needed and return applied rows by version."""
        with conn.cursor(cursor_factory=RealDictCursor) as cur:
            cur.execute(f"""
                CREATE TABLE IF NOT EXISTS {MIGRATIONS_TABLE} (
                    version TEXT PRIMARY KEY,
                    description TEXT NOT NULL,
                    checksum TEXT NOT NULL,
                    applied_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
                )
            """)
            cur.execute(f"SELECT version, checksum, applied_at FROM {MIGRATIONS_TABLE} ORDER BY version")
            rows = cur.fetchall()
        conn.commit()
        return {row["version"]: row for row in rows}

    def status(self) -> list[MigrationStatus]:
        """Return status of all migrations (applied/pending/checksum_mismatch)."""
        migrations = self.discover()
        with self._connection() as conn:
            applied = self._applied(conn)

        result: list[MigrationStatus] = []
        for m in migrations:
            row = applied.get(m.version)
            if row is None:
                result.append(MigrationStatus(m.version, m.description, "pending"))
            else:
                state = "applied" if row["checksum"] == m.checksum else "checksum_mismatch"
                result.append(MigrationStatus(m.version, m.description, state, row["applied_at"]))
        return result

    def up(self, *, dry_run: bool = False) -> list[str]:
        """Apply pending migrations in version order.

        Each migration runs in its own transaction together with its
        tracking row, so a failure leaves earlier migrations applied.

        Returns:
            List of applied (or, in dry-run mode, would-be-applied) versions.
        """
        migrations = self.discover()
        done: list[str] = []

        with self._connection() as conn:
            applied = self._applied(conn)
            pending = [m for m in migrations if m.version not in applied]
            if not pending:
                logger.info("No pending migrations to apply.")
                return []

            for migration in pending:
                if dry_run:
                    logger.info("[DRY RUN] Would apply: %s %s", migration.version, migration.description)
                    done.append(migration.version)
                    continue

                logger.info("Applying migration %s: %s", migration.version, migration.description)
                try:
                    migration.module.up(conn)
                    with conn.cursor() as cur:
                        cur.execute(
                            f"INSERT INTO {MIGRATIONS_TABLE} (version, description, checksum) VALUES (%s, %s, %s)",
                            (migration.version, migration.description, migration.checksum),
                        )
                    conn.commit()
                except Exception:
                    conn.rollback()
                    logger.exception("Migration %s failed", migration.version)
                    raise
                done.append(migration.version)

        return done
