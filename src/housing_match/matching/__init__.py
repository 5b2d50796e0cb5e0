"""Smart matching engine for pairing unassigned employees as roommates."""

from housing_match.matching.engine import (
    CandidateProfile,
    MatchingEngine,
    MatchRun,
    MatchScore,
    ProposedPairing,
    VacantUnit,
    assign_units,
    score,
    score_breakdown,
)

__all__ = [
    "CandidateProfile",
    "MatchingEngine",
    "MatchRun",
    "MatchScore",
    "ProposedPairing",
    "VacantUnit",
    "assign_units",
    "score",
    "score_breakdown",
]
