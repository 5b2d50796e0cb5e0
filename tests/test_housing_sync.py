"""Tests for the snapshot sync service."""

from unittest.mock import MagicMock

import pytest

from conftest import make_employee, make_unit_record
from housing_match.backend_client import BackendConnectionError
from housing_match.services import HousingSyncService
from housing_match.state_store import StateStore


@pytest.fixture
def store(temp_db):
    return StateStore(temp_db)


@pytest.fixture
def backend():
    client = MagicMock()
    client.list_unassigned_employees.return_value = [
        make_employee("e1"),
        make_employee("e2"),
    ]
    client.list_vacant_units.return_value = [make_unit_record("u1", "101")]
    return client


class TestHousingSyncService:
    """Tests for HousingSyncService.sync()."""

    def test_sync_populates_cache(self, backend, store):
        result = HousingSyncService(backend, store).sync()

        assert result.success
        assert result.employees_synced == 2
        assert result.units_synced == 1
        assert [e.id for e in store.get_unassigned_employees()] == ["e1", "e2"]
        assert [u.id for u in store.get_vacant_units()] == ["u1"]

    def test_sync_filters_rows_the_backend_should_not_send(self, backend, store):
        backend.list_unassigned_employees.return_value = [
            make_employee("e1"),
            make_employee("e2", is_assigned=True),
        ]
        backend.list_vacant_units.return_value = [
            make_unit_record("u1"),
            make_unit_record("u2", status="occupied"),
        ]

        result = HousingSyncService(backend, store).sync()

        assert result.employees_synced == 1
        assert result.units_synced == 1

    def test_failed_fetch_keeps_previous_snapshot(self, backend, store):
        HousingSyncService(backend, store).sync()
        backend.list_unassigned_employees.side_effect = BackendConnectionError("down")
        backend.list_vacant_units.return_value = []

        result = HousingSyncService(backend, store).sync()

        assert not result.success
        assert "Employee sync failed" in result.errors[0]
        assert [e.id for e in store.get_unassigned_employees()] == ["e1", "e2"]
        assert store.get_vacant_units() == []
