"""
Forward-only schema migrations for the state DB.

Each module in this package named NNN_<name>.py defines VERSION, NAME and
upgrade(conn). Applied versions are recorded in `migrations`.
"""

import importlib
import logging
import sqlite3
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path

logger = logging.getLogger(__name__)

PACKAGE = "housing_match.state_store.migrations"


@dataclass(frozen=True)
class Migration:
    version: int
    name: str
    upgrade: Callable[[sqlite3.Connection], None]


def get_all_migrations() -> list[Migration]:
    """Every migration module in this package, in version order."""
    modules = [
        importlib.import_module(f"{PACKAGE}.{path.stem}")
        for path in Path(__file__).parent.glob("[0-9][0-9][0-9]_*.py")
    ]
    return sorted(
        (Migration(m.VERSION, m.NAME, m.upgrade) for m in modules),
        key=lambda m: m.version,
    )


class MigrationRunner:
    """Brings one connection's schema up to the latest migration."""

    def __init__(self, conn: sqlite3.Connection):
        self.conn = conn
        with self.conn:
            self.conn.execute(
                """
                CREATE TABLE IF NOT EXISTS migrations (
                    version INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    applied_at TEXT NOT NULL
                )
            """
            )

    def get_applied_versions(self) -> set[int]:
        return {row[0] for row in self.conn.execute("SELECT version FROM migrations")}

    def get_current_version(self) -> int:
        """Highest applied version, 0 for a fresh database."""
        return max(self.get_applied_versions(), default=0)

    def pending(self) -> list[Migration]:
        applied = self.get_applied_versions()
        return [m for m in get_all_migrations() if m.version not in applied]

    def run_pending(self) -> list[int]:
        """
        Apply pending migrations in version order.

        Each migration commits together with its `migrations` row. A failing
        one is not recorded and stops the run.

        Returns:
            Versions applied by this call.
        """
        applied: list[int] = []
        for migration in self.pending():
            logger.info("Applying migration %03d: %s", migration.version, migration.name)
            with self.conn:
                migration.upgrade(self.conn)
                self.conn.execute(
                    "INSERT INTO migrations (version, name, applied_at) VALUES (?, ?, ?)",
                    (
                        migration.version,
                        migration.name,
                        datetime.now(timezone.utc).isoformat().replace("+00:00", "Z"),
                    ),
                )
            applied.append(migration.version)

        if applied:
            logger.info("Applied %d migration(s): %s", len(applied), applied)
        return applied
