"""
SQLite-based state store implementation.

Tables:
- employee_cache: Snapshot of unassigned employees from the backend
- unit_cache: Snapshot of vacant units from the backend
- match_runs: One row per matching run (migration 001)
- pairing_proposals: Proposed pairings and their review status (migration 002)
"""

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from datetime import datetime, timezone
from enum import Enum
from pathlib import Path
from typing import Any

from ..schemas.records import EmployeeRecord, UnitRecord, UnitStatus


class ProposalStatus(str, Enum):
    """Review status of a pairing proposal."""

    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    REJECTED = "REJECTED"
    FAILED = "FAILED"  # backend confirmation failed; may be confirmed again
    SUPERSEDED = "SUPERSEDED"  # replaced by a newer matching run


OPEN_STATUSES = (ProposalStatus.PENDING.value, ProposalStatus.FAILED.value)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


class StateStore:
    """
    SQLite-based state store for housing-match.

    Provides persistent tracking of:
    - Employee and unit snapshots used as matching input
    - Matching runs
    - Pairing proposals and their review outcome

    Thread-safe for single-writer scenarios.
    """

    SCHEMA_VERSION = 1

    def __init__(self, db_path: Path | str, run_migrations: bool = True):
        """
        Initialize state store.

        Args:
            db_path: Path to SQLite database file
            run_migrations: Whether to run pending migrations (default True)
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)
        self._init_db()
        if run_migrations:
            self._run_migrations()

    def _get_connection(self) -> sqlite3.Connection:
        """Get a database connection with row factory."""
        conn = sqlite3.connect(str(self.db_path))
        conn.row_factory = sqlite3.Row
        conn.execute("PRAGMA foreign_keys = ON")
        return conn

    @contextmanager
    def _transaction(self) -> Iterator[sqlite3.Connection]:
        """Context manager for database transactions."""
        conn = self._get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        """Initialize base schema (cache tables)."""
        with self._transaction() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS schema_version (
                    version INTEGER PRIMARY KEY
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS employee_cache (
                    employee_id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,  -- backend order
                    name TEXT NOT NULL,
                    email TEXT,
                    gender TEXT NOT NULL,
                    sleep_schedule TEXT NOT NULL,
                    hobbies TEXT,  -- JSON array
                    unit_id TEXT,
                    is_assigned INTEGER NOT NULL DEFAULT 0,
                    synced_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS unit_cache (
                    unit_id TEXT PRIMARY KEY,
                    position INTEGER NOT NULL,  -- assignment priority
                    unit_number TEXT NOT NULL,
                    complex_id TEXT,
                    status TEXT NOT NULL,
                    bedrooms INTEGER,
                    synced_at TEXT NOT NULL
                )
            """
            )

            conn.execute(
                "INSERT OR REPLACE INTO schema_version (version) VALUES (?)", (self.SCHEMA_VERSION,)
            )

    def _run_migrations(self) -> None:
        """Run pending database migrations."""
        from .migrations import MigrationRunner

        conn = self._get_connection()
        try:
            MigrationRunner(conn).run_pending()
        finally:
            conn.close()

    # === Snapshot cache ===

    def replace_employee_cache(self, employees: list[EmployeeRecord]) -> int:
        """Replace the employee snapshot, keeping the given order. Returns row count."""
        now = _now()
        with self._transaction() as conn:
            conn.execute("DELETE FROM employee_cache")
            for position, employee in enumerate(employees):
                conn.execute(
                    """
                    INSERT INTO employee_cache
                    (employee_id, position, name, email, gender, sleep_schedule, hobbies,
                     unit_id, is_assigned, synced_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        employee.id,
                        position,
                        employee.name,
                        employee.email,
                        employee.gender,
                        employee.sleep_schedule,
                        json.dumps(employee.hobbies),
                        employee.unit_id,
                        int(employee.is_assigned),
                        now,
                    ),
                )
        return len(employees)

    def replace_unit_cache(self, units: list[UnitRecord]) -> int:
        """Replace the unit snapshot, keeping the given order. Returns row count."""
        now = _now()
        with self._transaction() as conn:
            conn.execute("DELETE FROM unit_cache")
            for position, unit in enumerate(units):
                conn.execute(
                    """
                    INSERT INTO unit_cache
                    (unit_id, position, unit_number, complex_id, status, bedrooms, synced_at)
                    VALUES (?, ?, ?, ?, ?, ?, ?)
                """,
                    (
                        unit.id,
                        position,
                        unit.unit_number,
                        unit.complex_id,
                        unit.status,
                        unit.bedrooms,
                        now,
                    ),
                )
        return len(units)

    def get_unassigned_employees(self) -> list[EmployeeRecord]:
        """Cached employees not assigned to housing, in backend order."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM employee_cache WHERE is_assigned = 0 ORDER BY position"
            ).fetchall()
            return [EmployeeRecord.from_row(row) for row in rows]

    def get_vacant_units(self) -> list[UnitRecord]:
        """Cached vacant units in assignment-priority order."""
        with self._transaction() as conn:
            rows = conn.execute(
                "SELECT * FROM unit_cache WHERE status = ? ORDER BY position",
                (UnitStatus.VACANT.value,),
            ).fetchall()
            return [UnitRecord.from_row(row) for row in rows]

    def get_employee(self, employee_id: str) -> EmployeeRecord | None:
        """Get a cached employee by ID."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM employee_cache WHERE employee_id = ?", (employee_id,)
            ).fetchone()
            return EmployeeRecord.from_row(row) if row else None

    def get_unit(self, unit_id: str) -> UnitRecord | None:
        """Get a cached unit by ID."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM unit_cache WHERE unit_id = ?", (unit_id,)).fetchone()
            return UnitRecord.from_row(row) if row else None

    # === Match runs ===

    def create_match_run(
        self,
        candidate_count: int,
        unit_count: int,
        pairing_count: int,
        dropped_ids: list[str] | None = None,
        leftover_id: str | None = None,
    ) -> int:
        """Record a matching run. Returns the run ID."""
        with self._transaction() as conn:
            cursor = conn.execute(
                """
                INSERT INTO match_runs
                (candidate_count, unit_count, pairing_count, dropped_ids, leftover_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    candidate_count,
                    unit_count,
                    pairing_count,
                    json.dumps(dropped_ids or []),
                    leftover_id,
                    _now(),
                ),
            )
            return cursor.lastrowid or 0

    def get_match_run(self, run_id: int) -> dict[str, Any] | None:
        """Get a matching run by ID."""
        with self._transaction() as conn:
            row = conn.execute("SELECT * FROM match_runs WHERE id = ?", (run_id,)).fetchone()
            if not row:
                return None
            run = dict(row)
            run["dropped_ids"] = json.loads(run["dropped_ids"]) if run["dropped_ids"] else []
            return run

    # === Pairing proposals ===

    def create_pairing_proposal(
        self,
        run_id: int,
        employee1_id: str,
        employee2_id: str,
        unit_id: str | None,
        match_score: int,
        signals: list[dict[str, Any]] | None = None,
    ) -> int:
        """Create a pairing proposal. Returns the proposal ID."""
        with self._transaction() as conn:
            return self._insert_proposal(
                conn,
                run_id,
                {
                    "employee1_id": employee1_id,
                    "employee2_id": employee2_id,
                    "unit_id": unit_id,
                    "match_score": match_score,
                    "signals": signals,
                },
            )

    def _insert_proposal(
        self, conn: sqlite3.Connection, run_id: int, proposal: dict[str, Any]
    ) -> int:
        cursor = conn.execute(
            """
            INSERT INTO pairing_proposals
            (run_id, employee1_id, employee2_id, unit_id, match_score, signals, created_at)
            VALUES (?, ?, ?, ?, ?, ?, ?)
        """,
            (
                run_id,
                proposal["employee1_id"],
                proposal["employee2_id"],
                proposal.get("unit_id"),
                proposal["match_score"],
                json.dumps(proposal.get("signals") or []),
                _now(),
            ),
        )
        return cursor.lastrowid or 0

    def _supersede_open(self, conn: sqlite3.Connection) -> int:
        cursor = conn.execute(
            f"""
            UPDATE pairing_proposals
            SET status = ?, reviewed_at = ?
            WHERE status IN ({",".join("?" * len(OPEN_STATUSES))})
        """,
            (ProposalStatus.SUPERSEDED.value, _now(), *OPEN_STATUSES),
        )
        return cursor.rowcount

    def supersede_open_proposals(self) -> int:
        """Mark every PENDING or FAILED proposal SUPERSEDED. Returns count."""
        with self._transaction() as conn:
            return self._supersede_open(conn)

    def record_match_run(
        self,
        candidate_count: int,
        unit_count: int,
        proposals: list[dict[str, Any]],
        dropped_ids: list[str] | None = None,
        leftover_id: str | None = None,
    ) -> tuple[int, int]:
        """
        Replace the open proposals with a new run, in one transaction.

        Supersedes every PENDING or FAILED proposal, records the run and
        inserts its proposals. If any write fails nothing is changed.

        Args:
            proposals: Dicts with employee1_id, employee2_id, unit_id,
                match_score and signals.

        Returns:
            (run ID, number of proposals superseded)
        """
        with self._transaction() as conn:
            superseded = self._supersede_open(conn)
            cursor = conn.execute(
                """
                INSERT INTO match_runs
                (candidate_count, unit_count, pairing_count, dropped_ids, leftover_id, created_at)
                VALUES (?, ?, ?, ?, ?, ?)
            """,
                (
                    candidate_count,
                    unit_count,
                    len(proposals),
                    json.dumps(dropped_ids or []),
                    leftover_id,
                    _now(),
                ),
            )
            run_id = cursor.lastrowid or 0
            for proposal in proposals:
                self._insert_proposal(conn, run_id, proposal)

        return run_id, superseded

    @staticmethod
    def _proposal_from_row(row: sqlite3.Row) -> dict[str, Any]:
        proposal = dict(row)
        proposal["signals"] = json.loads(proposal["signals"]) if proposal["signals"] else []
        return proposal

    def get_pending_proposals(self) -> list[dict[str, Any]]:
        """Proposals awaiting a decision (PENDING or FAILED), best score first.

        Joins cached names and unit labels where the snapshot still has them.
        """
        with self._transaction() as conn:
            rows = conn.execute(
                f"""
                SELECT pp.*, e1.name AS employee1_name, e2.name AS employee2_name,
                       uc.unit_number
                FROM pairing_proposals pp
                LEFT JOIN employee_cache e1 ON pp.employee1_id = e1.employee_id
                LEFT JOIN employee_cache e2 ON pp.employee2_id = e2.employee_id
                LEFT JOIN unit_cache uc ON pp.unit_id = uc.unit_id
                WHERE pp.status IN ({",".join("?" * len(OPEN_STATUSES))})
                ORDER BY pp.match_score DESC, pp.id ASC
            """,
                OPEN_STATUSES,
            ).fetchall()
            return [self._proposal_from_row(row) for row in rows]

    def get_proposal_by_id(self, proposal_id: int) -> dict[str, Any] | None:
        """Get a pairing proposal by ID."""
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT * FROM pairing_proposals WHERE id = ?", (proposal_id,)
            ).fetchone()
            return self._proposal_from_row(row) if row else None

    def update_proposal_status(
        self,
        proposal_id: int,
        status: ProposalStatus,
        error_message: str | None = None,
    ) -> None:
        """Update proposal status and stamp the review time."""
        with self._transaction() as conn:
            conn.execute(
                """
                UPDATE pairing_proposals
                SET status = ?, error_message = ?, reviewed_at = ?
                WHERE id = ?
            """,
                (ProposalStatus(status).value, error_message, _now(), proposal_id),
            )

    def mark_proposal_failed(self, proposal_id: int, error_message: str) -> None:
        """Record a failed confirmation attempt."""
        self.update_proposal_status(proposal_id, ProposalStatus.FAILED, error_message)

    def find_confirmation_conflicts(
        self,
        employee1_id: str,
        employee2_id: str,
        unit_id: str,
        exclude_proposal_id: int | None = None,
    ) -> list[str]:
        """
        Check the local view for reasons a confirmation would collide.

        Looks at the cached snapshot and at proposals already confirmed from
        this store. Returns human-readable reasons (empty if none).
        """
        reasons: list[str] = []
        exclude = exclude_proposal_id if exclude_proposal_id is not None else -1

        with self._transaction() as conn:
            unit = conn.execute(
                "SELECT status FROM unit_cache WHERE unit_id = ?", (unit_id,)
            ).fetchone()
            if unit and unit["status"] != UnitStatus.VACANT.value:
                reasons.append(f"unit {unit_id} is {unit['status']}")

            unit_taken = conn.execute(
                """
                SELECT id FROM pairing_proposals
                WHERE unit_id = ? AND status = ? AND id != ?
            """,
                (unit_id, ProposalStatus.CONFIRMED.value, exclude),
            ).fetchone()
            if unit_taken:
                reasons.append(f"unit {unit_id} already confirmed in proposal {unit_taken['id']}")

            for employee_id in (employee1_id, employee2_id):
                employee = conn.execute(
                    "SELECT is_assigned FROM employee_cache WHERE employee_id = ?", (employee_id,)
                ).fetchone()
                if employee and employee["is_assigned"]:
                    reasons.append(f"employee {employee_id} is already assigned")
                    continue

                paired = conn.execute(
                    """
                    SELECT id FROM pairing_proposals
                    WHERE (employee1_id = ? OR employee2_id = ?) AND status = ? AND id != ?
                """,
                    (employee_id, employee_id, ProposalStatus.CONFIRMED.value, exclude),
                ).fetchone()
                if paired:
                    reasons.append(
                        f"employee {employee_id} already confirmed in proposal {paired['id']}"
                    )

        return reasons

    def apply_confirmed_pairing(self, proposal_id: int, backend_pairing_id: str | None) -> None:
        """
        Record a backend-confirmed pairing locally, in one transaction.

        Marks the proposal CONFIRMED, both cached employees assigned to the
        unit, and the cached unit occupied.
        """
        with self._transaction() as conn:
            row = conn.execute(
                "SELECT employee1_id, employee2_id, unit_id FROM pairing_proposals WHERE id = ?",
                (proposal_id,),
            ).fetchone()
            if row is None:
                raise KeyError(f"Pairing proposal {proposal_id} not found")

            conn.execute(
                """
                UPDATE pairing_proposals
                SET status = ?, error_message = NULL, backend_pairing_id = ?, reviewed_at = ?
                WHERE id = ?
            """,
                (ProposalStatus.CONFIRMED.value, backend_pairing_id, _now(), proposal_id),
            )
            conn.execute(
                """
                UPDATE employee_cache
                SET is_assigned = 1, unit_id = ?
                WHERE employee_id IN (?, ?)
            """,
                (row["unit_id"], row["employee1_id"], row["employee2_id"]),
            )
            conn.execute(
                "UPDATE unit_cache SET status = ? WHERE unit_id = ?",
                (UnitStatus.OCCUPIED.value, row["unit_id"]),
            )

    # === Statistics ===

    def get_stats(self) -> dict[str, Any]:
        """Get cache and proposal statistics."""
        with self._transaction() as conn:
            employees = conn.execute(
                "SELECT COUNT(*) AS count FROM employee_cache WHERE is_assigned = 0"
            ).fetchone()
            units = conn.execute(
                "SELECT COUNT(*) AS count FROM unit_cache WHERE status = ?",
                (UnitStatus.VACANT.value,),
            ).fetchone()
            runs = conn.execute("SELECT COUNT(*) AS count FROM match_runs").fetchone()
            by_status = {
                row["status"]: row["count"]
                for row in conn.execute(
                    "SELECT status, COUNT(*) AS count FROM pairing_proposals GROUP BY status"
                ).fetchall()
            }

            return {
                "employees_unassigned": employees["count"] if employees else 0,
                "units_vacant": units["count"] if units else 0,
                "match_runs": runs["count"] if runs else 0,
                "proposals_pending": by_status.get(ProposalStatus.PENDING.value, 0),
                "proposals_failed": by_status.get(ProposalStatus.FAILED.value, 0),
                "proposals_confirmed": by_status.get(ProposalStatus.CONFIRMED.value, 0),
                "proposals_rejected": by_status.get(ProposalStatus.REJECTED.value, 0),
                "proposals_superseded": by_status.get(ProposalStatus.SUPERSEDED.value, 0),
            }
