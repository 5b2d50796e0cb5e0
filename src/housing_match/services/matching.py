"""Smart matching orchestration service.

Runs the matching pipeline end to end:
- Refreshes the employee/unit snapshot from the backend
- Runs the greedy matching engine over the snapshot
- Persists the run and its pairing proposals for manager review
- Confirms an accepted proposal with one atomic backend call
- Rejects proposals without touching the backend

The engine itself stays pure; every read and write happens here.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Any

from housing_match.backend_client import BackendError, PairingConflictError
from housing_match.matching.engine import CandidateProfile, MatchingEngine, ProposedPairing
from housing_match.services.housing_sync import HousingSyncService
from housing_match.state_store.sqlite_store import OPEN_STATUSES, ProposalStatus

if TYPE_CHECKING:
    from housing_match.backend_client import HousingBackendClient
    from housing_match.config import Config
    from housing_match.state_store import StateStore

logger = logging.getLogger(__name__)


class MatchingServiceError(Exception):
    """Base exception for matching service errors."""

    pass


class ProposalNotFoundError(MatchingServiceError):
    """No proposal with the given ID."""

    def __init__(self, proposal_id: int):
        self.proposal_id = proposal_id
        super().__init__(f"Pairing proposal {proposal_id} not found")


class PairingNotConfirmableError(MatchingServiceError):
    """The proposal cannot be confirmed (no unit, or already decided)."""

    pass


class ProposalClosedError(MatchingServiceError):
    """The proposal was already confirmed, rejected or superseded."""

    pass


class MatchingState(str, Enum):
    """Possible states for a matching run."""

    SYNCING = "SYNCING"
    MATCHING = "MATCHING"
    PROPOSING = "PROPOSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


@dataclass
class MatchingRunResult:
    """Result of a matching run."""

    state: MatchingState
    employees_synced: int = 0
    units_synced: int = 0
    pairings_proposed: int = 0
    pairings_without_unit: int = 0
    candidates_unpaired: int = 0
    proposals_superseded: int = 0
    run_id: int | None = None
    duration_ms: int = 0
    errors: list[str] = field(default_factory=list)
    pairings: list[ProposedPairing] = field(default_factory=list)
    unpaired: list[CandidateProfile] = field(default_factory=list)

    @property
    def success(self) -> bool:
        """Return True if the run completed."""
        return self.state == MatchingState.COMPLETED


@dataclass
class ConfirmationResult:
    """Outcome of one confirmation attempt."""

    proposal_id: int
    success: bool
    backend_pairing_id: str | None = None
    conflict: bool = False
    error: str | None = None


class MatchingService:
    """Orchestrates matching runs and proposal decisions.

    Usage:
        service = MatchingService(backend_client, state_store, config)
        result = service.run_matching()
        service.confirm_proposal(proposal_id)
    """

    def __init__(
        self,
        backend_client: HousingBackendClient,
        state_store: StateStore,
        config: Config,
    ) -> None:
        """Initialize the matching service.

        Args:
            backend_client: Client for the housing backend.
            state_store: State store for snapshots and proposals.
            config: Application configuration.
        """
        self.backend = backend_client
        self.store = state_store
        self.config = config

        self.sync_service = HousingSyncService(backend_client, state_store)
        self.engine = MatchingEngine(config.matching)

    def run_matching(self, skip_sync: bool = False, dry_run: bool = False) -> MatchingRunResult:
        """Run the matching pipeline.

        1. Refresh the snapshot (unless skip_sync=True)
        2. Run the engine over the cached snapshot
        3. Supersede older open proposals and persist the new ones

        Args:
            skip_sync: Match against the cached snapshot without calling the backend.
            dry_run: Compute pairings but persist nothing.

        Returns:
            MatchingRunResult with statistics, pairings and unpaired candidates.
        """
        start_time = time.time()
        result = MatchingRunResult(state=MatchingState.SYNCING)

        try:
            if skip_sync:
                logger.info("Skipping sync - matching against cached snapshot")
            else:
                sync_result = self.sync_service.sync()
                result.employees_synced = sync_result.employees_synced
                result.units_synced = sync_result.units_synced
                if not sync_result.success:
                    result.errors.extend(sync_result.errors)
                    result.state = MatchingState.FAILED
                    result.duration_ms = int((time.time() - start_time) * 1000)
                    return result

            result.state = MatchingState.MATCHING
            candidates = [e.to_candidate() for e in self.store.get_unassigned_employees()]
            units = [u.to_vacant_unit() for u in self.store.get_vacant_units()]
            run = self.engine.run(candidates, units)

            result.pairings = run.pairings
            result.unpaired = run.unpaired
            result.pairings_proposed = len(run.pairings)
            result.pairings_without_unit = len(run.pairings_without_unit)
            result.candidates_unpaired = len(run.unpaired)

            if run.unpaired:
                logger.info(
                    "%d candidate(s) not paired: %s",
                    len(run.unpaired),
                    ", ".join(c.label for c in run.unpaired),
                )

            result.state = MatchingState.PROPOSING
            if dry_run:
                logger.info("Dry run - %d pairing(s) not persisted", len(run.pairings))
            else:
                proposals = [
                    {
                        "employee1_id": pairing.employee1.id,
                        "employee2_id": pairing.employee2.id,
                        "unit_id": pairing.unit.id if pairing.unit else None,
                        "match_score": pairing.match_score,
                        "signals": [s.to_dict() for s in pairing.signals],
                    }
                    for pairing in run.pairings
                ]
                result.run_id, result.proposals_superseded = self.store.record_match_run(
                    candidate_count=len(candidates),
                    unit_count=len(units),
                    proposals=proposals,
                    dropped_ids=[c.id for c in run.dropped],
                    leftover_id=run.leftover.id if run.leftover else None,
                )

            result.state = MatchingState.COMPLETED

        except Exception as e:
            logger.exception("Matching run failed: %s", e)
            result.state = MatchingState.FAILED
            result.errors.append(f"Fatal error: {e}")

        result.duration_ms = int((time.time() - start_time) * 1000)
        return result

    def list_pending(self) -> list[dict[str, Any]]:
        """Proposals awaiting a decision, best score first."""
        return self.store.get_pending_proposals()

    def _get_proposal(self, proposal_id: int) -> dict[str, Any]:
        proposal = self.store.get_proposal_by_id(proposal_id)
        if proposal is None:
            raise ProposalNotFoundError(proposal_id)
        return proposal

    def confirm_proposal(self, proposal_id: int) -> ConfirmationResult:
        """Confirm a proposal against the backend.

        Preconditions (raise PairingNotConfirmableError, nothing is written):
        - the proposal has a unit
        - the proposal is PENDING or FAILED

        A local conflict or a backend failure marks the proposal FAILED and
        is reported in the result. Nothing is retried automatically.
        """
        proposal = self._get_proposal(proposal_id)

        if not proposal["unit_id"]:
            raise PairingNotConfirmableError(
                f"Proposal {proposal_id} has no unit; vacant units ran out before this pairing"
            )
        if proposal["status"] not in OPEN_STATUSES:
            raise PairingNotConfirmableError(
                f"Proposal {proposal_id} is {proposal['status']} and cannot be confirmed"
            )

        conflicts = self.store.find_confirmation_conflicts(
            employee1_id=proposal["employee1_id"],
            employee2_id=proposal["employee2_id"],
            unit_id=proposal["unit_id"],
            exclude_proposal_id=proposal_id,
        )
        if conflicts:
            message = "; ".join(conflicts)
            logger.warning("Proposal %d conflicts locally: %s", proposal_id, message)
            self.store.mark_proposal_failed(proposal_id, message)
            return ConfirmationResult(
                proposal_id=proposal_id, success=False, conflict=True, error=message
            )

        try:
            pairing = self.backend.confirm_pairing(
                employee1_id=proposal["employee1_id"],
                employee2_id=proposal["employee2_id"],
                unit_id=proposal["unit_id"],
                match_score=proposal["match_score"],
            )
        except BackendError as e:
            logger.warning("Confirmation of proposal %d failed: %s", proposal_id, e)
            self.store.mark_proposal_failed(proposal_id, str(e))
            return ConfirmationResult(
                proposal_id=proposal_id,
                success=False,
                conflict=isinstance(e, PairingConflictError),
                error=str(e),
            )

        try:
            self.store.apply_confirmed_pairing(proposal_id, pairing.id)
        except sqlite3.Error as e:
            # The backend already committed; the next sync repairs the snapshot.
            logger.exception("Proposal %d confirmed remotely but not recorded locally", proposal_id)
            return ConfirmationResult(
                proposal_id=proposal_id,
                success=True,
                backend_pairing_id=pairing.id,
                error=f"Local state not updated ({e}); run sync",
            )

        logger.info("Proposal %d confirmed as backend pairing %s", proposal_id, pairing.id)
        return ConfirmationResult(
            proposal_id=proposal_id, success=True, backend_pairing_id=pairing.id
        )

    def reject_proposal(self, proposal_id: int) -> None:
        """Reject an open proposal. The backend is not contacted."""
        proposal = self._get_proposal(proposal_id)
        if proposal["status"] not in OPEN_STATUSES:
            raise ProposalClosedError(
                f"Proposal {proposal_id} is {proposal['status']} and cannot be rejected"
            )

        self.store.update_proposal_status(proposal_id, ProposalStatus.REJECTED)
        logger.info("Proposal %d rejected", proposal_id)
