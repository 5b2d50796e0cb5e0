"""
Housing backend records and intake normalization.

Rows arrive from two places: the REST backend (JSON objects) and the local
state store (sqlite rows). Both are normalized here so the matching engine
only ever sees fixed categories.

Missing data is defaulted at intake, the same way the data-entry forms do:
- gender → "prefer_not_to_say"
- sleep_schedule → "flexible"
- hobbies → []

Sentinel values are ordinary categories afterwards: two "flexible" sleepers
score the schedule bonus like any other equal pair.
"""

from __future__ import annotations

import json
import logging
import re
import sqlite3
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from housing_match.matching.engine import CandidateProfile, VacantUnit

logger = logging.getLogger(__name__)

_HOBBY_SEPARATORS = re.compile(r"[;,]")


class Gender(str, Enum):
    """Gender categories collected at intake."""

    MALE = "male"
    FEMALE = "female"
    NON_BINARY = "non_binary"
    PREFER_NOT_TO_SAY = "prefer_not_to_say"


class SleepSchedule(str, Enum):
    """Sleep-schedule categories collected at intake."""

    EARLY_RISER = "early_riser"
    NIGHT_OWL = "night_owl"
    FLEXIBLE = "flexible"


class UnitStatus(str, Enum):
    """Occupancy status of a unit."""

    OCCUPIED = "occupied"
    VACANT = "vacant"
    MAINTENANCE = "maintenance"


def _slug(value: str) -> str:
    """Lower-case and join words with underscores ("Night Owl" → "night_owl")."""
    return re.sub(r"[\s\-]+", "_", value.strip().lower())


def normalize_gender(value: str | None) -> str:
    """Normalize a gender value, defaulting missing or unknown input to the sentinel."""
    if not value or not value.strip():
        return Gender.PREFER_NOT_TO_SAY.value

    slug = _slug(value)
    try:
        return Gender(slug).value
    except ValueError:
        logger.warning("Unknown gender %r, using %s", value, Gender.PREFER_NOT_TO_SAY.value)
        return Gender.PREFER_NOT_TO_SAY.value


def normalize_sleep_schedule(value: str | None) -> str:
    """Normalize a sleep schedule, defaulting missing or unknown input to flexible."""
    if not value or not value.strip():
        return SleepSchedule.FLEXIBLE.value

    slug = _slug(value)
    try:
        return SleepSchedule(slug).value
    except ValueError:
        logger.warning("Unknown sleep schedule %r, using %s", value, SleepSchedule.FLEXIBLE.value)
        return SleepSchedule.FLEXIBLE.value


def normalize_hobbies(value: list[str] | str | None) -> list[str]:
    """Normalize hobby tags into an ordered list of non-empty stripped strings.

    Case is preserved: hobby matching is case-sensitive.
    """
    if value is None:
        return []
    if isinstance(value, str):
        parts = _HOBBY_SEPARATORS.split(value)
    else:
        parts = [str(v) for v in value if v is not None]
    return [p.strip() for p in parts if p and p.strip()]


@dataclass
class EmployeeRecord:
    """Employee row from the housing backend."""

    id: str
    name: str
    gender: str
    sleep_schedule: str
    hobbies: list[str] = field(default_factory=list)
    email: str | None = None
    unit_id: str | None = None
    is_assigned: bool = False
    lease_start: str | None = None
    lease_end: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> EmployeeRecord:
        """Create from a backend JSON row."""
        return cls(
            id=str(data["id"]),
            name=data.get("name") or "",
            gender=normalize_gender(data.get("gender")),
            sleep_schedule=normalize_sleep_schedule(data.get("sleep_schedule")),
            hobbies=normalize_hobbies(data.get("hobbies")),
            email=data.get("email"),
            unit_id=data.get("unit_id"),
            is_assigned=bool(data.get("is_assigned", False)),
            lease_start=data.get("lease_start"),
            lease_end=data.get("lease_end"),
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> EmployeeRecord:
        """Create from a state store row."""
        return cls(
            id=row["employee_id"],
            name=row["name"],
            gender=row["gender"],
            sleep_schedule=row["sleep_schedule"],
            hobbies=json.loads(row["hobbies"]) if row["hobbies"] else [],
            email=row["email"],
            unit_id=row["unit_id"],
            is_assigned=bool(row["is_assigned"]),
        )

    def to_candidate(self) -> CandidateProfile:
        """Convert to the matching engine's candidate profile."""
        return CandidateProfile(
            id=self.id,
            gender=self.gender,
            sleep_schedule=self.sleep_schedule,
            hobbies=list(self.hobbies),
            is_assigned=self.is_assigned,
            unit_id=self.unit_id,
            name=self.name or None,
        )


@dataclass
class UnitRecord:
    """Unit row from the housing backend."""

    id: str
    unit_number: str
    status: str
    complex_id: str | None = None
    bedrooms: int | None = None
    bathrooms: int | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> UnitRecord:
        """Create from a backend JSON row."""
        return cls(
            id=str(data["id"]),
            unit_number=str(data.get("unit_number") or ""),
            status=(data.get("status") or UnitStatus.VACANT.value).lower(),
            complex_id=data.get("complex_id"),
            bedrooms=data.get("bedrooms"),
            bathrooms=data.get("bathrooms"),
        )

    @classmethod
    def from_row(cls, row: sqlite3.Row) -> UnitRecord:
        """Create from a state store row."""
        return cls(
            id=row["unit_id"],
            unit_number=row["unit_number"],
            status=row["status"],
            complex_id=row["complex_id"],
            bedrooms=row["bedrooms"],
        )

    @property
    def is_vacant(self) -> bool:
        return self.status == UnitStatus.VACANT.value

    def to_vacant_unit(self) -> VacantUnit:
        """Convert to the matching engine's unit."""
        return VacantUnit(id=self.id, unit_number=self.unit_number, status=self.status)


@dataclass
class RoommatePairingRecord:
    """Confirmed pairing row as stored by the backend."""

    id: str
    employee1_id: str
    employee2_id: str
    unit_id: str | None
    match_score: int | None
    confirmed: bool
    created_at: str | None = None

    @classmethod
    def from_api_response(cls, data: dict[str, Any]) -> RoommatePairingRecord:
        """Create from a backend JSON row."""
        return cls(
            id=str(data["id"]),
            employee1_id=str(data["employee1_id"]),
            employee2_id=str(data["employee2_id"]),
            unit_id=data.get("unit_id"),
            match_score=data.get("match_score"),
            confirmed=bool(data.get("confirmed", False)),
            created_at=data.get("created_at"),
        )
