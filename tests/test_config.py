"""Tests for configuration loading and validation."""

from pathlib import Path

import pytest

from housing_match.config import (
    BackendConfig,
    Config,
    MatchingConfig,
    create_default_config,
    load_config,
)


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for var in (
        "HOUSING_BACKEND_URL",
        "HOUSING_BACKEND_KEY",
        "HOUSING_BACKEND_TIMEOUT",
        "HOUSING_STATE_DB",
    ):
        monkeypatch.delenv(var, raising=False)


class TestLoadConfig:
    """Tests for load_config()."""

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config(tmp_path / "absent.yaml")

        assert config.backend.base_url == "http://localhost:54321"
        assert config.backend.timeout_seconds == 30
        assert config.matching.max_score == 100
        assert config.state_db_path == Path("data/state.db")

    def test_yaml_values(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            """
backend:
  base_url: "https://housing.example.com"
  api_key: "secret"
  timeout_seconds: 10
matching:
  gender_weight: 40
  sleep_schedule_weight: 40
state_db_path: "/tmp/match.db"
"""
        )

        config = load_config(path)

        assert config.backend.base_url == "https://housing.example.com"
        assert config.backend.api_key == "secret"
        assert config.backend.timeout_seconds == 10
        assert config.matching.gender_weight == 40
        assert config.matching.hobby_cap == 20
        assert config.state_db_path == Path("/tmp/match.db")

    def test_empty_sections_use_defaults(self, tmp_path):
        """A section key with no value behaves like a missing section."""
        path = tmp_path / "config.yaml"
        path.write_text("backend:\nmatching:\n")

        config = load_config(path)

        assert config.backend.base_url == "http://localhost:54321"
        assert config.matching.gender_weight == 50
        assert config.validate() == []

    def test_env_overrides(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOUSING_BACKEND_URL", "http://env.test")
        monkeypatch.setenv("HOUSING_BACKEND_KEY", "env-key")
        monkeypatch.setenv("HOUSING_BACKEND_TIMEOUT", "5")
        monkeypatch.setenv("HOUSING_STATE_DB", str(tmp_path / "env.db"))

        config = load_config(tmp_path / "absent.yaml")

        assert config.backend.base_url == "http://env.test"
        assert config.backend.api_key == "env-key"
        assert config.backend.timeout_seconds == 5
        assert config.state_db_path == tmp_path / "env.db"

    def test_invalid_timeout_env_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("HOUSING_BACKEND_TIMEOUT", "soon")
        assert load_config(tmp_path / "absent.yaml").backend.timeout_seconds == 30

    def test_default_config_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.yaml"

        create_default_config(path)
        config = load_config(path)

        assert config.backend.api_key == "YOUR_SERVICE_KEY"
        assert config.validate() == []


class TestValidate:
    """Tests for Config.validate()."""

    def _config(self, **matching):
        return Config(
            backend=BackendConfig(base_url="http://backend.test", api_key="k"),
            matching=MatchingConfig(**matching),
        )

    def test_defaults_valid(self):
        assert self._config().validate() == []

    def test_missing_base_url(self):
        config = Config(backend=BackendConfig(base_url="", api_key="k"))
        assert "backend.base_url is required" in config.validate()

    def test_weights_must_sum_to_100(self):
        errors = self._config(gender_weight=60).validate()
        assert any("must equal 100" in e for e in errors)

    def test_negative_weight(self):
        errors = self._config(hobby_points=-1).validate()
        assert "matching.hobby_points must not be negative" in errors
