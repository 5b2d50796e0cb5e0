"""Roommate matching engine for pairing unassigned employees into vacant units.

The engine is a pure function over two snapshots (unassigned employees and
vacant units). It greedily pairs employees by a weighted compatibility score
and hands out units by position. It performs no I/O; persisting a proposal
and confirming it against the backend happen in the services layer.

Scoring signals (defaults, see MatchingConfig):
- gender: +50 when both profiles report the same gender
- sleep_schedule: +30 when both profiles share a sleep schedule
- hobbies: +5 per shared hobby tag, capped at 20

The pairing strategy is first-fit greedy and order-dependent. It is not a
globally optimal matching and must not be turned into one silently: tie
breaks and drop-on-zero are part of the observable behavior.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from housing_match.config import MatchingConfig

logger = logging.getLogger(__name__)

VACANT = "vacant"


@dataclass
class CandidateProfile:
    """An employee eligible for roommate pairing."""

    id: str
    gender: str
    sleep_schedule: str
    hobbies: list[str] = field(default_factory=list)
    is_assigned: bool = False
    unit_id: str | None = None
    name: str | None = None

    @property
    def label(self) -> str:
        """Human-readable label for logs and CLI output."""
        return self.name or self.id


@dataclass
class VacantUnit:
    """A housing unit that can receive a pairing."""

    id: str
    unit_number: str
    status: str = VACANT


@dataclass
class MatchScore:
    """Individual signal contribution to a compatibility score."""

    signal: str
    points: int
    max_points: int
    detail: str

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "signal": self.signal,
            "points": self.points,
            "max_points": self.max_points,
            "detail": self.detail,
        }


@dataclass
class ProposedPairing:
    """A tentative two-person match with an optional unit suggestion."""

    employee1: CandidateProfile
    employee2: CandidateProfile
    match_score: int
    unit: VacantUnit | None = None
    signals: list[MatchScore] = field(default_factory=list)

    @property
    def has_unit(self) -> bool:
        """Return True if a unit was handed to this pairing."""
        return self.unit is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "employee1_id": self.employee1.id,
            "employee2_id": self.employee2.id,
            "match_score": self.match_score,
            "unit_id": self.unit.id if self.unit else None,
            "unit_number": self.unit.unit_number if self.unit else None,
            "signals": [s.to_dict() for s in self.signals],
        }


@dataclass
class MatchRun:
    """Outcome of one engine invocation.

    `pairings` is the engine's answer. The other fields report who and what
    was left over, so callers can tell a full pairing from silent drops
    without diffing input against output.
    """

    pairings: list[ProposedPairing] = field(default_factory=list)
    dropped: list[CandidateProfile] = field(default_factory=list)
    leftover: CandidateProfile | None = None
    units_unassigned: list[VacantUnit] = field(default_factory=list)

    @property
    def unpaired(self) -> list[CandidateProfile]:
        """Candidates that do not appear in any pairing."""
        if self.leftover is None:
            return list(self.dropped)
        return [*self.dropped, self.leftover]

    @property
    def pairings_without_unit(self) -> list[ProposedPairing]:
        """Pairings formed after the vacant units ran out."""
        return [p for p in self.pairings if p.unit is None]


def score_breakdown(
    a: CandidateProfile,
    b: CandidateProfile,
    config: MatchingConfig | None = None,
) -> list[MatchScore]:
    """Compute the per-signal compatibility of two candidates.

    Hobby lists are compared as sets with case-sensitive exact matching, so
    a tag repeated in one profile counts once.
    """
    gender_weight = config.gender_weight if config else 50
    sleep_weight = config.sleep_schedule_weight if config else 30
    hobby_points = config.hobby_points if config else 5
    hobby_cap = config.hobby_cap if config else 20

    signals: list[MatchScore] = []

    if a.gender == b.gender:
        signals.append(MatchScore("gender", gender_weight, gender_weight, f"same: {a.gender}"))
    else:
        signals.append(MatchScore("gender", 0, gender_weight, f"{a.gender} vs {b.gender}"))

    if a.sleep_schedule == b.sleep_schedule:
        signals.append(
            MatchScore("sleep_schedule", sleep_weight, sleep_weight, f"same: {a.sleep_schedule}")
        )
    else:
        signals.append(
            MatchScore(
                "sleep_schedule", 0, sleep_weight, f"{a.sleep_schedule} vs {b.sleep_schedule}"
            )
        )

    shared = set(a.hobbies) & set(b.hobbies)
    hobby_score = min(hobby_points * len(shared), hobby_cap)
    detail = f"shared: {', '.join(sorted(shared))}" if shared else "none shared"
    signals.append(MatchScore("hobbies", hobby_score, hobby_cap, detail))

    return signals


def score(
    a: CandidateProfile,
    b: CandidateProfile,
    config: MatchingConfig | None = None,
) -> int:
    """Symmetric compatibility score of two candidates (0-100 with default weights)."""
    return sum(s.points for s in score_breakdown(a, b, config))


def assign_units(
    pairings: list[ProposedPairing],
    vacant_units: list[VacantUnit],
) -> tuple[list[ProposedPairing], list[VacantUnit]]:
    """Hand out vacant units to pairings by position.

    The k-th pairing (in the order given, which must be emission order)
    receives vacant_units[k]. Units are NOT chosen for fit; priority is the
    order of the unit source. Pairings past the unit count get no unit.

    Returns:
        (new pairings with units set, units that were not handed out)
    """
    assigned: list[ProposedPairing] = []
    for index, pairing in enumerate(pairings):
        unit = vacant_units[index] if index < len(vacant_units) else None
        assigned.append(replace(pairing, unit=unit))

    return assigned, list(vacant_units[len(pairings):])


class MatchingEngine:
    """Greedy roommate matcher.

    Algorithm (per run):
    1. Copy eligible candidates into a queue, keeping input order.
    2. While two or more remain, take the head and scan the rest once.
       Only a strictly greater score replaces the best match, so the
       earliest candidate wins ties.
    3. A best score above zero forms a pairing; a best score of zero drops
       the head from this run.
    4. Hand out units by emission order (see assign_units).
    5. Stable-sort pairings by score, highest first.
    """

    def __init__(self, config: MatchingConfig | None = None) -> None:
        """Initialize the matching engine.

        Args:
            config: Compatibility weights. Defaults to 50/30/5/20.
        """
        self.config = config

    def score(self, a: CandidateProfile, b: CandidateProfile) -> int:
        """Score two candidates with this engine's weights."""
        return score(a, b, self.config)

    def generate_pairings(
        self,
        candidates: list[CandidateProfile],
        vacant_units: list[VacantUnit],
    ) -> list[ProposedPairing]:
        """Propose roommate pairings, highest score first."""
        return self.run(candidates, vacant_units).pairings

    def run(
        self,
        candidates: list[CandidateProfile],
        vacant_units: list[VacantUnit],
    ) -> MatchRun:
        """Pair candidates, assign units, and report everyone left over."""
        units = self._eligible_units(vacant_units)
        result = self.pair_candidates(candidates)

        result.pairings, result.units_unassigned = assign_units(result.pairings, units)
        # list.sort is stable: equal scores keep emission order
        result.pairings.sort(key=lambda p: p.match_score, reverse=True)

        logger.info(
            "Matching run: %d pairing(s), %d dropped, %s leftover, %d without unit",
            len(result.pairings),
            len(result.dropped),
            1 if result.leftover else 0,
            len(result.pairings_without_unit),
        )
        return result

    def pair_candidates(self, candidates: list[CandidateProfile]) -> MatchRun:
        """Greedily pair candidates in emission order, without units."""
        queue = self._eligible_candidates(candidates)
        result = MatchRun()

        while len(queue) >= 2:
            head = queue.pop(0)
            best_index = 0
            best_score = 0

            for index, other in enumerate(queue):
                candidate_score = self.score(head, other)
                if candidate_score > best_score:
                    best_index = index
                    best_score = candidate_score

            if best_score > 0:
                partner = queue.pop(best_index)
                result.pairings.append(
                    ProposedPairing(
                        employee1=head,
                        employee2=partner,
                        match_score=best_score,
                        signals=score_breakdown(head, partner, self.config),
                    )
                )
            else:
                logger.debug("No compatible roommate for %s, dropping from run", head.label)
                result.dropped.append(head)

        if queue:
            result.leftover = queue[0]

        return result

    def _eligible_candidates(self, candidates: list[CandidateProfile]) -> list[CandidateProfile]:
        """Unassigned candidates in input order, first occurrence of each id."""
        eligible: list[CandidateProfile] = []
        seen: set[str] = set()

        for candidate in candidates:
            if candidate.is_assigned:
                logger.debug("Skipping assigned employee %s", candidate.label)
                continue
            if candidate.id in seen:
                logger.warning("Duplicate candidate %s in input, ignoring repeat", candidate.id)
                continue
            seen.add(candidate.id)
            eligible.append(candidate)

        return eligible

    def _eligible_units(self, vacant_units: list[VacantUnit]) -> list[VacantUnit]:
        """Vacant units in input order, first occurrence of each id."""
        eligible: list[VacantUnit] = []
        seen: set[str] = set()

        for unit in vacant_units:
            if unit.status != VACANT:
                logger.debug("Skipping unit %s with status %s", unit.unit_number, unit.status)
                continue
            if unit.id in seen:
                logger.warning("Duplicate unit %s in input, ignoring repeat", unit.id)
                continue
            seen.add(unit.id)
            eligible.append(unit)

        return eligible
