"""Services for snapshot sync, matching runs and proposal decisions."""

from housing_match.services.housing_sync import HousingSyncService, SyncResult
from housing_match.services.matching import (
    ConfirmationResult,
    MatchingRunResult,
    MatchingService,
    MatchingServiceError,
    MatchingState,
    PairingNotConfirmableError,
    ProposalClosedError,
    ProposalNotFoundError,
)

__all__ = [
    "ConfirmationResult",
    "HousingSyncService",
    "MatchingRunResult",
    "MatchingService",
    "MatchingServiceError",
    "MatchingState",
    "PairingNotConfirmableError",
    "ProposalClosedError",
    "ProposalNotFoundError",
    "SyncResult",
]
