#!/usr/bin/env python3
"""
Example: copy the reporting pools from SQLPROD01 to SQLPROD02\\REPORTING

This script shows how to drive the orchestrator from Python instead of
the rgmigrate command.

Usage:
    # Describe what would change
    python run_migration.py --dry-run

    # Copy, replacing pools that already exist on the destination
    python run_migration.py --force

    # With a custom config
    python run_migration.py --config my_migration.json

The destination login's password is read from RGMIGRATE_DESTINATION_PASSWORD.
"""

import argparse
import logging
import sys
from pathlib import Path

from rgmigrate.config import build_config
from rgmigrate.exceptions import GovernorMigrationError
from rgmigrate.models.migration import MigrationConfig
from rgmigrate.orchestrator import MigrationOrchestrator

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(),
        logging.FileHandler('migration.log')
    ]
)
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = Path(__file__).parent / "migration.json"


def preview(config: MigrationConfig):
    """Log the T-SQL the migration is based on."""
    orchestrator = MigrationOrchestrator(config)
    script = orchestrator.script_source(destination_name=config.destination.server)
    logger.info("\n=== Source configuration ===\n" + script)


def run_migration(config: MigrationConfig):
    """Run the migration."""
    logger.info("=" * 60)
    logger.info("STARTING MIGRATION")
    logger.info("=" * 60)
    logger.info(f"Source: {config.source.server}")
    logger.info(f"Destination: {config.destination.server}")
    logger.info(f"Pools: {', '.join(config.pools) or 'all'}")
    logger.info(f"Dry Run: {config.dry_run}")

    result = MigrationOrchestrator(config).run_migration()

    logger.info("=" * 60)
    logger.info("MIGRATION COMPLETE")
    logger.info("=" * 60)
    logger.info(f"Status: {result.status.value}")
    logger.info(f"Succeeded: {result.total_succeeded}")
    logger.info(f"Failed: {result.total_failed}")
    logger.info(f"Skipped: {result.total_skipped}")

    if result.duration_seconds:
        logger.info(f"Duration: {result.duration_seconds:.2f} seconds")

    for step in result.steps:
        if step.warnings or step.errors:
            logger.warning(f"  - {step.object_type.value} {step.name}: {step.notes}")

    return result


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(
        description="Copy reporting Resource Governor pools between instances"
    )
    parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Describe changes without making them"
    )
    parser.add_argument(
        "--force",
        action="store_true",
        help="Drop and recreate pools that already exist"
    )
    parser.add_argument(
        "--preview",
        action="store_true",
        help="Only log the source configuration as T-SQL"
    )
    parser.add_argument(
        "--config",
        default=str(DEFAULT_CONFIG),
        help="Path to a JSON migration config file"
    )
    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Verbose output"
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        config = build_config(args.config, {
            "dry_run": True if args.dry_run else None,
            "force": True if args.force else None,
        })
        if args.preview:
            preview(config)
            return
        result = run_migration(config)
    except GovernorMigrationError as e:
        logger.error(str(e))
        sys.exit(1)

    if result.has_failures:
        sys.exit(1)


if __name__ == "__main__":
    main()
