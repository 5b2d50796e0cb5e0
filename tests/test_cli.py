"""Tests for CLI commands.

These tests verify that all CLI commands are properly registered and callable.
"""

from unittest.mock import MagicMock, patch

import pytest

from housing_match.matching import CandidateProfile, MatchingEngine, VacantUnit
from housing_match.runner.main import create_cli, main
from housing_match.services import ConfirmationResult, MatchingRunResult, MatchingState


class TestCLICommandRegistry:
    """Tests for CLI command registration."""

    def test_all_commands_registered(self):
        parser = create_cli()
        subparsers = next(a for a in parser._actions if a.dest == "command")

        assert set(subparsers.choices) == {
            "init-config",
            "sync",
            "match",
            "proposals",
            "confirm",
            "reject",
            "status",
            "backend-sql",
        }

    def test_match_defaults(self):
        args = create_cli().parse_args(["match"])
        assert args.sync is True
        assert args.dry_run is False
        assert args.json is False

    def test_match_options(self):
        args = create_cli().parse_args(["match", "--no-sync", "--dry-run"])
        assert args.sync is False
        assert args.dry_run is True

    def test_confirm_requires_integer_id(self):
        args = create_cli().parse_args(["confirm", "7"])
        assert args.proposal_id == 7

        with pytest.raises(SystemExit):
            create_cli().parse_args(["confirm", "seven"])

    def test_global_options(self, tmp_path):
        args = create_cli().parse_args(["-c", str(tmp_path / "x.yaml"), "-v", "status"])
        assert args.config == tmp_path / "x.yaml"
        assert args.verbose is True


class TestMain:
    """Tests for main() routing."""

    @pytest.fixture
    def config_path(self, tmp_path, monkeypatch):
        monkeypatch.delenv("HOUSING_BACKEND_URL", raising=False)
        monkeypatch.setenv("HOUSING_STATE_DB", str(tmp_path / "state.db"))
        path = tmp_path / "config.yaml"
        assert main(["-c", str(path), "init-config"]) == 0
        return path

    def test_no_command_prints_help(self, capsys):
        assert main([]) == 1
        assert "usage" in capsys.readouterr().out

    def test_init_config_refuses_overwrite(self, config_path, capsys):
        assert main(["-c", str(config_path), "init-config"]) == 1
        assert "already exists" in capsys.readouterr().out

    def test_invalid_config(self, tmp_path, capsys):
        path = tmp_path / "bad.yaml"
        path.write_text("matching:\n  gender_weight: 90\n")

        assert main(["-c", str(path), "status"]) == 1
        assert "Invalid config" in capsys.readouterr().out

    def test_status_on_empty_store(self, config_path, capsys):
        assert main(["-c", str(config_path), "status"]) == 0
        assert "Housing Match Status" in capsys.readouterr().out

    def test_proposals_empty(self, config_path, capsys):
        assert main(["-c", str(config_path), "proposals"]) == 0
        assert "No proposals" in capsys.readouterr().out

    def test_match_prints_pairings(self, config_path, capsys):
        a = CandidateProfile(id="e1", gender="male", sleep_schedule="flexible", name="Ada")
        b = CandidateProfile(id="e2", gender="male", sleep_schedule="flexible", name="Grace")
        run = MatchingEngine().run([a, b], [VacantUnit(id="u1", unit_number="101")])
        result = MatchingRunResult(
            state=MatchingState.COMPLETED, pairings_proposed=1, pairings=run.pairings
        )

        with patch("housing_match.runner.main.MatchingService") as service_cls:
            service_cls.return_value.run_matching.return_value = result
            code = main(["-c", str(config_path), "match", "--no-sync"])

        assert code == 0
        service_cls.return_value.run_matching.assert_called_once_with(skip_sync=True, dry_run=False)
        out = capsys.readouterr().out
        assert "Ada & Grace" in out
        assert "Unit 101" in out

    def test_confirm_conflict_exit_code(self, config_path, capsys):
        service = MagicMock()
        service.confirm_proposal.return_value = ConfirmationResult(
            proposal_id=3, success=False, conflict=True, error="unit u1 is occupied"
        )

        with patch("housing_match.runner.main.MatchingService", return_value=service):
            code = main(["-c", str(config_path), "confirm", "3"])

        assert code == 1
        assert "Conflict" in capsys.readouterr().out

    def test_reject_unknown_proposal(self, config_path, capsys):
        assert main(["-c", str(config_path), "reject", "99"]) == 1
        assert "not found" in capsys.readouterr().out

    def test_backend_sql_needs_no_config(self, tmp_path, capsys):
        assert main(["-c", str(tmp_path / "absent.yaml"), "backend-sql"]) == 0
        assert "function public.confirm_roommate_pairing" in capsys.readouterr().out
