#!/usr/bin/env python3
"""crmsync command line.

Usage:
    crmsync [--config FILE] [-v] show
    crmsync [--config FILE] [-v] render MANIFEST
    crmsync [--config FILE] [-v] apply MANIFEST [--dry-run] [--cib SHADOW]
    crmsync [--config FILE] [-v] destroy NAME

Environment variables:
    CRMSYNC_CONFIG        Settings file (default: ./crmsync.yaml)
    CRMSYNC_CIB_SHADOW    Shadow CIB to load updates into
    CRMSYNC_LOG_LEVEL     Console log level
"""
import argparse
import logging
import sys
from pathlib import Path
from typing import Optional, Sequence

import yaml

from .config import ManifestParser, Settings
from .config_engine import (
    Ensure,
    ParseError,
    PrimitiveController,
    ReconcileOptions,
    StagedState,
    ValidationError,
)
from .utils import ClusterNotReadyError, CommandError, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="crmsync",
        description="Reconcile declared cluster primitives through the crm shell",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Show primitives in the live configuration
    crmsync show

    # Preview what a manifest would change
    crmsync apply primitives.yaml --dry-run

    # Stage into a shadow CIB instead of the live one
    crmsync apply primitives.yaml --cib staging
""",
    )
    parser.add_argument(
        "--config",
        type=Path,
        help="Settings file (default: search ./crmsync.yaml, ~/.config/crmsync/)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("show", help="Print discovered primitives as YAML")

    render = sub.add_parser("render", help="Print crm statements for a manifest")
    render.add_argument("manifest", type=Path)

    apply = sub.add_parser("apply", help="Reconcile the cluster with a manifest")
    apply.add_argument("manifest", type=Path)
    apply.add_argument("--dry-run", action="store_true", help="Preview without applying")
    apply.add_argument("--cib", help="Shadow CIB to load updates into")

    destroy = sub.add_parser("destroy", help="Stop and delete a primitive")
    destroy.add_argument("name")

    return parser


def cmd_show(controller: PrimitiveController) -> int:
    primitives = controller.instances()
    data = {p.name: p.to_dict() for p in primitives}
    print(yaml.safe_dump({"primitives": data}, default_flow_style=False, sort_keys=False), end="")
    return 0


def cmd_render(controller: PrimitiveController, manifest: Path) -> int:
    for item in ManifestParser().parse_file(manifest):
        if item.ensure == Ensure.PRESENT:
            print(controller.render(item.descriptor), end="")
    return 0


def cmd_apply(
    controller: PrimitiveController,
    manifest: Path,
    dry_run: bool,
    cib: Optional[str]
) -> int:
    desired = ManifestParser().parse_file(manifest)
    result = controller.reconcile(desired, ReconcileOptions(dry_run=dry_run, cib=cib))

    if dry_run:
        for statement in result.statements:
            print(statement, end="")
    for change in result.changes_made:
        logger.info(change)

    if not result.success:
        logger.error(result.error)
        if result.error_context:
            logger.error(result.error_context.strip())
        return 1
    return 0


def cmd_destroy(controller: PrimitiveController, name: str) -> int:
    controller.destroy(name, StagedState())
    logger.info(f"Deleted primitive {name}")
    return 0


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the crmsync CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(verbose=args.verbose)

    try:
        settings = Settings.load(args.config)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error(f"Could not load settings: {e}")
        return 1

    controller = PrimitiveController.from_settings(settings)

    try:
        if args.command == "show":
            return cmd_show(controller)
        if args.command == "render":
            return cmd_render(controller, args.manifest)
        if args.command == "apply":
            return cmd_apply(controller, args.manifest, args.dry_run, args.cib)
        if args.command == "destroy":
            return cmd_destroy(controller, args.name)
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except (ParseError, ValidationError, CommandError, ClusterNotReadyError, OSError) as e:
        logger.error(str(e))
        return 1

    return 1


if __name__ == "__main__":
    sys.exit(main())
