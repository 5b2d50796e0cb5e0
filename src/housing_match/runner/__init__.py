"""
CLI runner module.

Provides commands:
- init-config: Write a default config file
- sync: Refresh the employee/unit snapshot
- match: Generate pairing proposals
- proposals: List proposals awaiting a decision
- confirm / reject: Decide on a proposal
- status: Snapshot and proposal statistics
- backend-sql: SQL for the backend confirmation function
"""

from .main import create_cli, main

__all__ = [
    "create_cli",
    "main",
]
