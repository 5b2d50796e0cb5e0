"""
Configuration management (SSOT).

This module defines ALL configuration for the housing-match application.
All config keys are defined here; no other module should invent config keys.

Key invariants:
- The backend is the system of record; the local state DB only caches
  snapshots and proposals.
- Matching weights must add up to 100 so compatibility scores stay in [0, 100].
"""

import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


@dataclass
class BackendConfig:
    """Hosted housing backend (REST API over the relational store).

    - base_url: Project URL, e.g. https://housing.example.com
    - api_key: Service key sent as both `apikey` and bearer token
    """

    base_url: str
    api_key: str
    # Request timeout (seconds)
    timeout_seconds: int = 30
    # Max retries for transient failures (429/5xx)
    max_retries: int = 3


@dataclass
class MatchingConfig:
    """Roommate compatibility weights."""

    # Same gender (highest-weighted signal)
    gender_weight: int = 50
    # Same sleep schedule
    sleep_schedule_weight: int = 30
    # Points per shared hobby
    hobby_points: int = 5
    # Cap on hobby points
    hobby_cap: int = 20

    @property
    def max_score(self) -> int:
        """Highest attainable compatibility score."""
        return self.gender_weight + self.sleep_schedule_weight + self.hobby_cap


@dataclass
class Config:
    """Application configuration (SSOT).

    All configuration is centralized here. No other module should define
    configuration keys or defaults.
    """

    backend: BackendConfig
    matching: MatchingConfig = field(default_factory=MatchingConfig)
    state_db_path: Path = field(default_factory=lambda: Path("data/state.db"))

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not self.backend.base_url:
            errors.append("backend.base_url is required")
        if self.backend.timeout_seconds <= 0:
            errors.append("backend.timeout_seconds must be positive")

        weights = {
            "gender_weight": self.matching.gender_weight,
            "sleep_schedule_weight": self.matching.sleep_schedule_weight,
            "hobby_points": self.matching.hobby_points,
            "hobby_cap": self.matching.hobby_cap,
        }
        for name, value in weights.items():
            if value < 0:
                errors.append(f"matching.{name} must not be negative")

        if self.matching.max_score != 100:
            errors.append(
                "matching.gender_weight + sleep_schedule_weight + hobby_cap must equal 100 "
                f"(got {self.matching.max_score})"
            )

        return errors


def load_config(config_path: Path) -> Config:
    """
    Load configuration from YAML file.

    Environment variables can override config values:
    - HOUSING_BACKEND_URL
    - HOUSING_BACKEND_KEY
    - HOUSING_BACKEND_TIMEOUT (request timeout in seconds)
    - HOUSING_STATE_DB (path to the local state database)
    """
    if config_path.exists():
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
    else:
        data = {}

    # Backend config
    backend_data = data.get("backend") or {}
    timeout = backend_data.get("timeout_seconds", 30)
    timeout_env = os.environ.get("HOUSING_BACKEND_TIMEOUT", "")
    if timeout_env:
        try:
            timeout = int(timeout_env)
        except ValueError:
            pass  # Keep configured value

    backend = BackendConfig(
        base_url=os.environ.get(
            "HOUSING_BACKEND_URL", backend_data.get("base_url", "http://localhost:54321")
        ),
        api_key=os.environ.get("HOUSING_BACKEND_KEY", backend_data.get("api_key", "")),
        timeout_seconds=timeout,
        max_retries=backend_data.get("max_retries", 3),
    )

    # Matching weights
    matching_data = data.get("matching") or {}
    matching = MatchingConfig(
        gender_weight=matching_data.get("gender_weight", 50),
        sleep_schedule_weight=matching_data.get("sleep_schedule_weight", 30),
        hobby_points=matching_data.get("hobby_points", 5),
        hobby_cap=matching_data.get("hobby_cap", 20),
    )

    # State DB
    state_db = os.environ.get("HOUSING_STATE_DB", data.get("state_db_path", "data/state.db"))

    return Config(
        backend=backend,
        matching=matching,
        state_db_path=Path(state_db),
    )


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# housing-match configuration
#
# The hosted backend is the system of record for employees, units and
# confirmed roommate pairings. The local state DB only holds snapshots and
# pending proposals.

backend:
  base_url: "http://localhost:54321"      # Backend project URL
  api_key: "YOUR_SERVICE_KEY"
  timeout_seconds: 30
  max_retries: 3

# Roommate compatibility weights (gender + sleep schedule + hobby cap = 100)
matching:
  gender_weight: 50                       # Same gender
  sleep_schedule_weight: 30               # Same sleep schedule
  hobby_points: 5                         # Per shared hobby
  hobby_cap: 20                           # Max hobby points

# State database path
state_db_path: "data/state.db"
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
