"""Command line interface for Resource Governor migration."""

import argparse
import logging
import sys
from typing import Any, Dict, List, Optional

from . import __version__
from .config import build_config
from .exceptions import ConfigurationError, GovernorMigrationError
from .models.migration import MigrationConfig, MigrationRun
from .orchestrator import MigrationOrchestrator

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FAILED = 1
EXIT_USAGE = 2


def _add_connection_arguments(parser: argparse.ArgumentParser, destination_required: bool):
    parser.add_argument("--config", help="Path to a JSON migration config file")
    parser.add_argument("--source", help="Source SQL Server instance")
    parser.add_argument("--source-user", help="SQL login for the source (default: trusted connection)")
    parser.add_argument("--source-password", help="Password for --source-user")
    parser.add_argument(
        "--destination",
        help="Destination SQL Server instance" + ("" if destination_required else " (used for name substitution)"),
    )
    parser.add_argument("--destination-user", help="SQL login for the destination (default: trusted connection)")
    parser.add_argument("--destination-password", help="Password for --destination-user")
    parser.add_argument("--driver", help="ODBC driver name (default: ODBC Driver 18 for SQL Server)")
    parser.add_argument(
        "--trust-server-certificate",
        action="store_true",
        help="Accept self-signed server certificates",
    )
    parser.add_argument("--verbose", "-v", action="store_true", help="Verbose output")


def _add_selection_arguments(parser: argparse.ArgumentParser):
    parser.add_argument(
        "--pool",
        action="append",
        metavar="NAME",
        help="Resource pool to copy (repeatable; default: all non-reserved pools)",
    )
    parser.add_argument(
        "--exclude-pool",
        action="append",
        metavar="NAME",
        help="Resource pool to leave out (repeatable)",
    )
    parser.add_argument(
        "--reserved-pool",
        action="append",
        metavar="NAME",
        help="System pool that is never copied (repeatable; default: internal, default)",
    )
    parser.add_argument(
        "--skip-classifier",
        action="store_true",
        help="Do not copy the classifier function",
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rgmigrate",
        description="Copy SQL Server Resource Governor pools and workload groups between instances",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    # Run migration
    run_parser = subparsers.add_parser("run", help="Copy Resource Governor configuration")
    _add_connection_arguments(run_parser, destination_required=True)
    _add_selection_arguments(run_parser)
    run_parser.add_argument(
        "--force",
        action="store_true",
        help="Drop and recreate pools (and the classifier) that already exist on the destination",
    )
    run_parser.add_argument("--dry-run", action="store_true", help="Describe changes without making them")
    run_parser.add_argument("--min-version", type=int, help="Minimum supported major version (default: 10)")
    run_parser.add_argument("--output-dir", help="Directory for the JSON migration report")

    # Compatibility check
    check_parser = subparsers.add_parser("check", help="Check that both servers support Resource Governor")
    _add_connection_arguments(check_parser, destination_required=True)
    check_parser.add_argument("--min-version", type=int, help="Minimum supported major version (default: 10)")

    # Script only
    script_parser = subparsers.add_parser("script", help="Print the source configuration as T-SQL")
    _add_connection_arguments(script_parser, destination_required=False)
    _add_selection_arguments(script_parser)
    script_parser.add_argument("--target-version", type=int, help="Major version the script must run on")
    script_parser.add_argument("--no-settings", action="store_true", help="Script pools only")
    script_parser.add_argument("--output", help="Write the script to a file instead of stdout")

    return parser


def _overrides_from_args(args: argparse.Namespace) -> Dict[str, Any]:
    """Turn parsed arguments into config overrides (None means not given)."""
    trust = True if args.trust_server_certificate else None
    return {
        "source": {
            "server": args.source,
            "user": args.source_user,
            "password": args.source_password,
            "driver": args.driver,
            "trust_server_certificate": trust,
        },
        "destination": {
            "server": args.destination,
            "user": args.destination_user,
            "password": args.destination_password,
            "driver": args.driver if args.destination else None,
            "trust_server_certificate": trust if args.destination else None,
        },
        "pools": getattr(args, "pool", None),
        "exclude_pools": getattr(args, "exclude_pool", None),
        "reserved_pools": getattr(args, "reserved_pool", None),
        "copy_classifier": False if getattr(args, "skip_classifier", False) else None,
        "force": True if getattr(args, "force", False) else None,
        "dry_run": True if getattr(args, "dry_run", False) else None,
        "min_major_version": getattr(args, "min_version", None),
        "output_dir": getattr(args, "output_dir", None),
    }


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = build_parser()
    args = parser.parse_args(argv)

    # Set up logging
    log_level = logging.DEBUG if getattr(args, "verbose", False) else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )

    if not args.command:
        parser.print_help()
        return EXIT_USAGE

    try:
        config = build_config(
            args.config,
            _overrides_from_args(args),
            require_destination=args.command != "script",
        )
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE

    try:
        if args.command == "run":
            return run_migration(config)
        elif args.command == "check":
            return run_check(config)
        elif args.command == "script":
            return run_script(config, args)
    except ConfigurationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_USAGE
    except GovernorMigrationError as e:
        print(f"Error: {e}", file=sys.stderr)
        return EXIT_FAILED

    parser.print_help()
    return EXIT_USAGE


def print_summary(run: MigrationRun) -> None:
    """Print a per-object summary of a migration run."""
    print("\n" + "=" * 60)
    print("DRY RUN COMPLETE" if run.dry_run else "MIGRATION COMPLETE")
    print("=" * 60)
    print(f"Source: {run.source}")
    print(f"Destination: {run.destination}")
    print(f"Status: {run.status.value}")

    if run.steps:
        print()
        for step in run.steps:
            print(f"  {step.object_type.value:<28} {step.name:<30} {step.status.value:<10} {step.notes}")

    print()
    print(f"Succeeded: {run.total_succeeded}")
    print(f"Failed: {run.total_failed}")
    print(f"Skipped: {run.total_skipped}")
    if run.dry_run:
        print(f"Dry run: {run.total_dry_run}")
    for error in run.errors:
        print(f"Error ({error.get('phase')}): {error.get('error')}")
    if run.duration_seconds:
        print(f"Duration: {run.duration_seconds:.2f} seconds")


def run_migration(config: MigrationConfig) -> int:
    """Run a migration."""
    orchestrator = MigrationOrchestrator(config)
    run = orchestrator.run_migration()
    print_summary(run)
    return EXIT_FAILED if run.has_failures else EXIT_OK


def run_check(config: MigrationConfig) -> int:
    """Check both servers against the version/edition gate."""
    orchestrator = MigrationOrchestrator(config)
    try:
        report = orchestrator.check_compatibility()
    finally:
        orchestrator.close()

    print("\n=== Compatibility ===")
    for role, info in (("Source", report.source), ("Destination", report.destination)):
        print(f"{role}: {info.name} (version {info.version}, {info.edition})")
    print(f"Minimum major version: {config.min_major_version}")
    print(f"Destination enforces Resource Governor: {'yes' if report.destination_full_support else 'no'}")
    for warning in report.warnings:
        print(f"Warning: {warning}")
    return EXIT_OK


def run_script(config: MigrationConfig, args: argparse.Namespace) -> int:
    """Script the source configuration."""
    orchestrator = MigrationOrchestrator(config)
    script = orchestrator.script_source(
        destination_name=config.destination.server or None,
        target_major_version=args.target_version,
        include_settings=not args.no_settings,
    )

    if args.output:
        with open(args.output, 'w') as f:
            f.write(script)
        print(f"Script saved to {args.output}")
    else:
        print(script)
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
