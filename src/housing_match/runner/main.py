"""
CLI main entry point.
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from ..backend_client import HousingBackendClient, load_confirm_function_sql
from ..config import Config, ConfigValidationError, create_default_config, load_config
from ..services import (
    MatchingRunResult,
    MatchingService,
    MatchingServiceError,
)
from ..state_store import StateStore

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False) -> None:
    """Configure logging."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def create_cli() -> argparse.ArgumentParser:
    """Create CLI argument parser."""
    parser = argparse.ArgumentParser(
        prog="housing-match",
        description="Propose and confirm roommate pairings for corporate housing",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=Path("config.yaml"),
        help="Path to config file (default: config.yaml)",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # init-config command
    subparsers.add_parser("init-config", help="Write a default config file")

    # sync command
    subparsers.add_parser(
        "sync", help="Refresh unassigned employees and vacant units from the backend"
    )

    # match command
    match_parser = subparsers.add_parser("match", help="Generate roommate pairing proposals")
    match_parser.add_argument(
        "--no-sync",
        dest="sync",
        action="store_false",
        default=True,
        help="Match against the cached snapshot without calling the backend",
    )
    match_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Show pairings without saving proposals",
    )
    match_parser.add_argument(
        "--json",
        action="store_true",
        help="Print pairings as JSON",
    )

    # proposals command
    subparsers.add_parser("proposals", help="List proposals awaiting a decision")

    # confirm command
    confirm_parser = subparsers.add_parser(
        "confirm", help="Confirm a proposal (assign both employees to its unit)"
    )
    confirm_parser.add_argument("proposal_id", type=int, help="Proposal ID")

    # reject command
    reject_parser = subparsers.add_parser("reject", help="Reject a proposal")
    reject_parser.add_argument("proposal_id", type=int, help="Proposal ID")

    # status command
    subparsers.add_parser("status", help="Show snapshot and proposal statistics")

    # backend-sql command
    subparsers.add_parser(
        "backend-sql", help="Print the SQL that installs the confirmation function"
    )

    return parser


def _load_valid_config(config_path: Path) -> Config:
    """Load config and raise ConfigValidationError if it is inconsistent."""
    config = load_config(config_path)
    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))
    return config


def _build_service(config: Config) -> MatchingService:
    backend = HousingBackendClient(
        base_url=config.backend.base_url,
        api_key=config.backend.api_key,
        timeout=config.backend.timeout_seconds,
        max_retries=config.backend.max_retries,
    )
    store = StateStore(config.state_db_path)
    return MatchingService(backend_client=backend, state_store=store, config=config)


def cmd_init_config(config_path: Path) -> int:
    """Write a default configuration file."""
    if config_path.exists():
        print(f"❌ {config_path} already exists")
        return 1

    create_default_config(config_path)
    print(f"✓ Wrote default config to {config_path}")
    return 0


def cmd_backend_sql() -> int:
    """Print the confirmation function definition for the backend."""
    print(load_confirm_function_sql(), end="")
    return 0


def cmd_sync(config: Config) -> int:
    """Refresh the local snapshot."""
    print("🔄 Syncing from housing backend...")

    service = _build_service(config)
    result = service.sync_service.sync()

    print(f"  Employees (unassigned): {result.employees_synced}")
    print(f"  Units (vacant):         {result.units_synced}")

    if result.errors:
        print("⚠️  Errors encountered:")
        for error in result.errors:
            print(f"   - {error}")
        return 1

    print("✓ Sync completed")
    return 0


def _print_run(result: MatchingRunResult) -> None:
    print()
    print("🏠 Suggested Pairings")
    print("=" * 40)
    for pairing in result.pairings:
        unit = f"Unit {pairing.unit.unit_number}" if pairing.unit else "no unit available"
        print(
            f"  {pairing.match_score:3d}%  {pairing.employee1.label} & "
            f"{pairing.employee2.label}  → {unit}"
        )
    if not result.pairings:
        print("  (none)")

    if result.unpaired:
        print()
        print(f"  Not paired: {', '.join(c.label for c in result.unpaired)}")
    print()


def cmd_match(config: Config, sync: bool, dry_run: bool, as_json: bool = False) -> int:
    """Run the matching pipeline."""
    if not as_json:
        print("🧩 Generating roommate pairings...")
        if dry_run:
            print("  ℹ️  DRY RUN mode - proposals will not be saved")

    service = _build_service(config)
    result = service.run_matching(skip_sync=not sync, dry_run=dry_run)

    if as_json:
        print(
            json.dumps(
                {
                    "state": result.state.value,
                    "run_id": result.run_id,
                    "pairings": [p.to_dict() for p in result.pairings],
                    "unpaired": [c.id for c in result.unpaired],
                    "errors": result.errors,
                },
                indent=2,
            )
        )
        return 0 if result.success else 1

    if result.success:
        _print_run(result)
        print(f"  Proposals saved:       {0 if dry_run else result.pairings_proposed}")
        print(f"  Without unit:          {result.pairings_without_unit}")
        print(f"  Superseded proposals:  {result.proposals_superseded}")
        print(f"  Duration:              {result.duration_ms}ms")
        print("✓ Matching completed")
        return 0

    print("❌ Matching failed")
    for error in result.errors:
        print(f"   - {error}")
    return 1


def cmd_proposals(config: Config) -> int:
    """List proposals awaiting a decision."""
    store = StateStore(config.state_db_path)
    proposals = store.get_pending_proposals()

    if not proposals:
        print("No proposals awaiting a decision")
        return 0

    print(f"\n📋 {len(proposals)} proposal(s) awaiting a decision")
    print("=" * 40)
    for p in proposals:
        name1 = p.get("employee1_name") or p["employee1_id"]
        name2 = p.get("employee2_name") or p["employee2_id"]
        unit = p.get("unit_number") or p["unit_id"] or "no unit"
        flag = f"  ⚠ {p['error_message']}" if p["status"] == "FAILED" else ""
        print(f"  [{p['id']}] {p['match_score']:3d}%  {name1} & {name2}  → {unit}{flag}")
    print()
    return 0


def cmd_confirm(config: Config, proposal_id: int) -> int:
    """Confirm one proposal."""
    service = _build_service(config)

    try:
        result = service.confirm_proposal(proposal_id)
    except MatchingServiceError as e:
        print(f"❌ {e}")
        return 1

    if not result.success:
        label = "Conflict" if result.conflict else "Failed to confirm pairing"
        print(f"❌ {label}: {result.error}")
        return 1

    print(f"✓ Proposal {proposal_id} confirmed (pairing {result.backend_pairing_id})")
    if result.error:
        print(f"  ⚠ {result.error}")
    return 0


def cmd_reject(config: Config, proposal_id: int) -> int:
    """Reject one proposal."""
    service = _build_service(config)

    try:
        service.reject_proposal(proposal_id)
    except MatchingServiceError as e:
        print(f"❌ {e}")
        return 1

    print(f"✓ Proposal {proposal_id} rejected")
    return 0


def cmd_status(config: Config) -> int:
    """Show snapshot and proposal statistics."""
    store = StateStore(config.state_db_path)
    stats = store.get_stats()

    print("\n📊 Housing Match Status")
    print("=" * 40)
    print(f"  Unassigned employees:   {stats['employees_unassigned']}")
    print(f"  Vacant units:           {stats['units_vacant']}")
    print(f"  Matching runs:          {stats['match_runs']}")
    print(f"  Proposals pending:      {stats['proposals_pending']}")
    print(f"  Proposals failed:       {stats['proposals_failed']}")
    print(f"  Proposals confirmed:    {stats['proposals_confirmed']}")
    print(f"  Proposals rejected:     {stats['proposals_rejected']}")
    print(f"  Proposals superseded:   {stats['proposals_superseded']}")
    print()

    return 0


def main(args: list[str] | None = None) -> int:
    """Main entry point."""
    parser = create_cli()
    parsed = parser.parse_args(args)

    setup_logging(parsed.verbose)

    if not parsed.command:
        parser.print_help()
        return 1

    if parsed.command == "init-config":
        return cmd_init_config(parsed.config)
    if parsed.command == "backend-sql":
        return cmd_backend_sql()

    try:
        config = _load_valid_config(parsed.config)
    except ConfigValidationError as e:
        print(f"❌ Invalid config: {e}")
        return 1
    except Exception as e:
        print(f"❌ Failed to load config: {e}")
        return 1

    if parsed.command == "sync":
        return cmd_sync(config)
    elif parsed.command == "match":
        return cmd_match(config, parsed.sync, parsed.dry_run, parsed.json)
    elif parsed.command == "proposals":
        return cmd_proposals(config)
    elif parsed.command == "confirm":
        return cmd_confirm(config, parsed.proposal_id)
    elif parsed.command == "reject":
        return cmd_reject(config, parsed.proposal_id)
    elif parsed.command == "status":
        return cmd_status(config)
    else:
        parser.print_help()
        return 1


if __name__ == "__main__":
    sys.exit(main())
