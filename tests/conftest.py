"""Test fixtures and utilities."""

from pathlib import Path

import pytest

from housing_match.matching import CandidateProfile, VacantUnit
from housing_match.schemas import EmployeeRecord, UnitRecord


@pytest.fixture
def temp_db(tmp_path: Path) -> Path:
    """Create a temporary database path."""
    return tmp_path / "test_state.db"


def make_profile(
    id: str,
    gender: str = "male",
    sleep_schedule: str = "early_riser",
    hobbies: list[str] | None = None,
    is_assigned: bool = False,
    name: str | None = None,
) -> CandidateProfile:
    """Build a candidate profile with sensible defaults."""
    return CandidateProfile(
        id=id,
        gender=gender,
        sleep_schedule=sleep_schedule,
        hobbies=list(hobbies or []),
        is_assigned=is_assigned,
        name=name,
    )


def make_unit(id: str, unit_number: str | None = None, status: str = "vacant") -> VacantUnit:
    """Build a vacant unit."""
    return VacantUnit(id=id, unit_number=unit_number or id, status=status)


def make_employee(
    id: str,
    name: str | None = None,
    gender: str = "male",
    sleep_schedule: str = "early_riser",
    hobbies: list[str] | None = None,
    is_assigned: bool = False,
) -> EmployeeRecord:
    """Build an employee record as the backend client returns it."""
    return EmployeeRecord(
        id=id,
        name=name or f"Employee {id}",
        gender=gender,
        sleep_schedule=sleep_schedule,
        hobbies=list(hobbies or []),
        email=f"{id}@example.com",
        is_assigned=is_assigned,
    )


def make_unit_record(id: str, unit_number: str | None = None, status: str = "vacant") -> UnitRecord:
    """Build a unit record as the backend client returns it."""
    return UnitRecord(id=id, unit_number=unit_number or id, status=status, complex_id="c1")


@pytest.fixture
def sample_employee_rows() -> list[dict]:
    """Employee rows as returned by the backend REST API."""
    return [
        {
            "id": "e1",
            "name": "Ada",
            "email": "ada@example.com",
            "gender": "female",
            "sleep_schedule": "early_riser",
            "hobbies": ["Yoga", "Reading"],
            "is_assigned": False,
            "unit_id": None,
            "created_at": "2024-05-01T09:00:00Z",
        },
        {
            "id": "e2",
            "name": "Grace",
            "email": "grace@example.com",
            "gender": "Female",
            "sleep_schedule": "Early Riser",
            "hobbies": ["Yoga"],
            "is_assigned": False,
            "unit_id": None,
            "created_at": "2024-05-02T09:00:00Z",
        },
        {
            "id": "e3",
            "name": "Linus",
            "email": None,
            "gender": None,
            "sleep_schedule": None,
            "hobbies": None,
            "is_assigned": False,
            "unit_id": None,
            "created_at": "2024-05-03T09:00:00Z",
        },
    ]


@pytest.fixture
def sample_unit_rows() -> list[dict]:
    """Unit rows as returned by the backend REST API."""
    return [
        {
            "id": "u1",
            "unit_number": "101",
            "status": "vacant",
            "complex_id": "c1",
            "bedrooms": 2,
            "bathrooms": 1,
        },
        {
            "id": "u2",
            "unit_number": "102",
            "status": "VACANT",
            "complex_id": "c1",
            "bedrooms": 2,
            "bathrooms": 2,
        },
    ]
