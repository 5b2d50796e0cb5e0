"""Housing backend snapshot synchronization service.

Pulls unassigned employees and vacant units from the backend into the
local cache, which is the input snapshot for every matching run.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from housing_match.backend_client import BackendError

if TYPE_CHECKING:
    from housing_match.backend_client import HousingBackendClient
    from housing_match.state_store import StateStore

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    """Result of a snapshot sync."""

    employees_synced: int = 0
    units_synced: int = 0
    duration_ms: int = 0
    errors: list[str] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True if both snapshots were refreshed."""
        return len(self.errors) == 0


class HousingSyncService:
    """Refreshes the employee and unit snapshots from the backend.

    Each snapshot is replaced only when its fetch succeeds, so a failed
    fetch leaves the previous snapshot intact.
    """

    def __init__(
        self,
        backend_client: HousingBackendClient,
        state_store: StateStore,
    ) -> None:
        self.backend = backend_client
        self.store = state_store

    def sync(self) -> SyncResult:
        """Sync unassigned employees and vacant units to the local cache."""
        start_time = time.time()
        result = SyncResult()

        try:
            employees = [
                e for e in self.backend.list_unassigned_employees() if not e.is_assigned
            ]
            result.employees_synced = self.store.replace_employee_cache(employees)
        except BackendError as e:
            logger.warning("Employee sync failed: %s", e)
            result.errors.append(f"Employee sync failed: {e}")

        try:
            units = [u for u in self.backend.list_vacant_units() if u.is_vacant]
            result.units_synced = self.store.replace_unit_cache(units)
        except BackendError as e:
            logger.warning("Unit sync failed: %s", e)
            result.errors.append(f"Unit sync failed: {e}")

        result.duration_ms = int((time.time() - start_time) * 1000)
        logger.info(
            "Synced %d employee(s) and %d unit(s) in %dms",
            result.employees_synced,
            result.units_synced,
            result.duration_ms,
        )
        return result
