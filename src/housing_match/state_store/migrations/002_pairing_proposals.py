"""
Migration 002: Add pairing_proposals table.

Proposed roommate pairings awaiting a manager decision.
"""

import sqlite3

VERSION = 2
NAME = "pairing_proposals"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create pairing_proposals table."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS pairing_proposals (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            run_id INTEGER NOT NULL,
            employee1_id TEXT NOT NULL,
            employee2_id TEXT NOT NULL,
            unit_id TEXT,  -- NULL when units ran out
            match_score INTEGER NOT NULL,
            signals TEXT,  -- JSON: [{"signal": "gender", "points": 50, ...}, ...]
            status TEXT NOT NULL DEFAULT 'PENDING',
            error_message TEXT,
            backend_pairing_id TEXT,
            created_at TEXT NOT NULL,
            reviewed_at TEXT,
            FOREIGN KEY (run_id) REFERENCES match_runs(id)
        )
    """
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_pairing_proposals_status ON pairing_proposals(status)"
    )
    conn.execute(
        "CREATE INDEX IF NOT EXISTS idx_pairing_proposals_unit ON pairing_proposals(unit_id)"
    )
