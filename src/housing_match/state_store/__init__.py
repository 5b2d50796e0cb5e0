"""
State Store (SQLite-based).

Lightweight persistent DB for tracking:
- Employee and unit snapshots pulled from the backend
- Matching runs
- Pairing proposals and their review status
"""

from .sqlite_store import (
    ProposalStatus,
    StateStore,
)

__all__ = [
    "ProposalStatus",
    "StateStore",
]
