"""
Migration 001: Add match_runs table.

One row per matching engine run, including the candidates it could not pair.
"""

import sqlite3

VERSION = 1
NAME = "match_runs"


def upgrade(conn: sqlite3.Connection) -> None:
    """Create match_runs table."""
    conn.execute(
        """
        CREATE TABLE IF NOT EXISTS match_runs (
            id INTEGER PRIMARY KEY AUTOINCREMENT,
            candidate_count INTEGER NOT NULL,
            unit_count INTEGER NOT NULL,
            pairing_count INTEGER NOT NULL,
            dropped_ids TEXT,  -- JSON: candidates with no compatible roommate
            leftover_id TEXT,  -- odd one out, if any
            created_at TEXT NOT NULL
        )
    """
    )
