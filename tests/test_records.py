"""Tests for backend records and intake normalization."""

import pytest

from housing_match.schemas import (
    EmployeeRecord,
    RoommatePairingRecord,
    UnitRecord,
    normalize_gender,
    normalize_hobbies,
    normalize_sleep_schedule,
)


class TestNormalization:
    """Tests for intake defaults and category cleanup."""

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("male", "male"),
            ("Female", "female"),
            ("Non-Binary", "non_binary"),
            ("prefer not to say", "prefer_not_to_say"),
            (None, "prefer_not_to_say"),
            ("", "prefer_not_to_say"),
            ("   ", "prefer_not_to_say"),
            ("robot", "prefer_not_to_say"),
        ],
    )
    def test_normalize_gender(self, raw, expected):
        assert normalize_gender(raw) == expected

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("early_riser", "early_riser"),
            ("Night Owl", "night_owl"),
            ("FLEXIBLE", "flexible"),
            (None, "flexible"),
            ("whenever", "flexible"),
        ],
    )
    def test_normalize_sleep_schedule(self, raw, expected):
        assert normalize_sleep_schedule(raw) == expected

    def test_unknown_gender_logs_warning(self, caplog):
        with caplog.at_level("WARNING"):
            normalize_gender("robot")
        assert "Unknown gender" in caplog.text

    def test_normalize_hobbies_list(self):
        assert normalize_hobbies([" Yoga ", "", None, "Gaming"]) == ["Yoga", "Gaming"]

    def test_normalize_hobbies_string(self):
        assert normalize_hobbies("Yoga; Gaming,Reading ,") == ["Yoga", "Gaming", "Reading"]

    def test_normalize_hobbies_missing(self):
        assert normalize_hobbies(None) == []

    def test_normalize_hobbies_keeps_case(self):
        assert normalize_hobbies(["yoga", "Yoga"]) == ["yoga", "Yoga"]


class TestEmployeeRecord:
    """Tests for employee records."""

    def test_from_api_response(self, sample_employee_rows):
        record = EmployeeRecord.from_api_response(sample_employee_rows[1])

        assert record.id == "e2"
        assert record.name == "Grace"
        assert record.gender == "female"
        assert record.sleep_schedule == "early_riser"
        assert record.hobbies == ["Yoga"]
        assert record.is_assigned is False

    def test_from_api_response_defaults_missing_fields(self, sample_employee_rows):
        record = EmployeeRecord.from_api_response(sample_employee_rows[2])

        assert record.gender == "prefer_not_to_say"
        assert record.sleep_schedule == "flexible"
        assert record.hobbies == []
        assert record.email is None

    def test_numeric_id_becomes_string(self):
        record = EmployeeRecord.from_api_response({"id": 42, "name": "Numeric"})
        assert record.id == "42"

    def test_to_candidate(self, sample_employee_rows):
        record = EmployeeRecord.from_api_response(sample_employee_rows[0])

        candidate = record.to_candidate()

        assert candidate.id == "e1"
        assert candidate.label == "Ada"
        assert candidate.hobbies == ["Yoga", "Reading"]
        assert candidate.hobbies is not record.hobbies
        assert candidate.is_assigned is False

    def test_candidate_label_falls_back_to_id(self):
        record = EmployeeRecord(id="e9", name="", gender="male", sleep_schedule="flexible")
        assert record.to_candidate().label == "e9"


class TestUnitRecord:
    """Tests for unit records."""

    def test_from_api_response(self, sample_unit_rows):
        record = UnitRecord.from_api_response(sample_unit_rows[1])

        assert record.id == "u2"
        assert record.unit_number == "102"
        assert record.status == "vacant"
        assert record.is_vacant
        assert record.bathrooms == 2

    def test_occupied_is_not_vacant(self):
        record = UnitRecord.from_api_response({"id": "u3", "unit_number": "103", "status": "occupied"})
        assert not record.is_vacant

    def test_to_vacant_unit(self, sample_unit_rows):
        unit = UnitRecord.from_api_response(sample_unit_rows[0]).to_vacant_unit()

        assert unit.id == "u1"
        assert unit.unit_number == "101"
        assert unit.status == "vacant"


class TestRoommatePairingRecord:
    """Tests for confirmed pairing rows."""

    def test_from_api_response(self):
        record = RoommatePairingRecord.from_api_response(
            {
                "id": "p1",
                "employee1_id": "e1",
                "employee2_id": "e2",
                "unit_id": "u1",
                "match_score": 85,
                "confirmed": True,
                "created_at": "2024-05-04T10:00:00Z",
            }
        )

        assert record.id == "p1"
        assert record.unit_id == "u1"
        assert record.match_score == 85
        assert record.confirmed is True
