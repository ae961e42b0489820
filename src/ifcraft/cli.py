#!/usr/bin/env python3
"""ifcraft command line.

Usage:
    ifcraft [-c interfaces.yaml] validate [NAME ...]
    ifcraft [-c interfaces.yaml] render NAME
    ifcraft [-c interfaces.yaml] diff [NAME ...] [--group GROUP]
    ifcraft [-c interfaces.yaml] apply [NAME ...] [--group GROUP] [--dry-run]
    ifcraft history [--interface NAME] [--limit N]

Environment variables:
    IFCRAFT_SCRIPTS_DIR      Directory holding ifcfg-* files
    IFCRAFT_AUDIT_DIR        Enable the audit log in this directory
    IFCRAFT_LOG_LEVEL        Console log level (default: INFO)
"""
import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

from .config.inventory import HostInventory
from .config.schema import EngineSettings
from .config_engine import ConfigEngine, ValidationError, prepare, summarize_diff
from .config_engine.kinds import InterfaceRequest
from .host.facts import ChainedFactProvider, StaticFactProvider, SysfsFactProvider
from .utils.audit_log import AUDIT_FILE_NAME, default_audit_dir, get_recent_changes
from .utils.logging_config import global_stats, setup_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="ifcraft",
        description="Render and apply ifcfg-* interface files",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Check the inventory
    ifcraft validate

    # Show what would change on eth0
    ifcraft diff eth0

    # Apply the uplinks group without touching live connections
    ifcraft apply --group uplinks --no-reload
""",
    )
    parser.add_argument(
        "-c", "--config",
        type=Path,
        help="Interface inventory (default: first interfaces.yaml on the search path)",
    )
    parser.add_argument(
        "--scripts-dir",
        type=Path,
        help="Override the directory holding ifcfg-* files",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Enable debug logging and print apply timings",
    )

    sub = parser.add_subparsers(dest="command", required=True)

    validate = sub.add_parser("validate", help="Validate interface parameters")
    _add_selection(validate)

    render = sub.add_parser("render", help="Print the rendered file of one interface")
    render.add_argument("name", help="Interface name")

    diff = sub.add_parser("diff", help="Diff rendered files against disk")
    _add_selection(diff)

    apply = sub.add_parser("apply", help="Write files and activate connections")
    _add_selection(apply)
    apply.add_argument(
        "--dry-run",
        action="store_true",
        help="Show planned commands without writing or running anything",
    )
    apply.add_argument(
        "--no-reload",
        action="store_true",
        help="Write files only; skip reload, activation and cleanup",
    )
    apply.add_argument(
        "--no-cleanup",
        action="store_true",
        help="Keep stale connections of the applied interfaces",
    )
    apply.add_argument(
        "--workers",
        type=int,
        help="Interfaces reconciled in parallel (default: from settings)",
    )
    apply.add_argument(
        "--json",
        action="store_true",
        help="Print results as JSON",
    )

    history = sub.add_parser("history", help="Show recent changes from the audit log")
    history.add_argument("--interface", help="Only changes to this interface")
    history.add_argument("--operation", help="Only changes made by this kind preset")
    history.add_argument("--limit", type=int, default=20, help="Maximum entries (default: 20)")
    history.add_argument("--log-file", type=Path, help="Audit log to read")

    return parser


def _add_selection(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("names", nargs="*", help="Interfaces (default: all)")
    parser.add_argument("--group", help="Interfaces of this inventory group")


def _selected_names(inventory: HostInventory, args: argparse.Namespace) -> list[str]:
    names = list(getattr(args, "names", None) or [])
    group = getattr(args, "group", None)
    if group:
        names.extend(n for n in inventory.get_group_members(group) if n not in names)
    return names or inventory.get_interface_names()


def _build_engine(inventory: HostInventory, args: argparse.Namespace) -> ConfigEngine:
    settings = inventory.settings
    if args.scripts_dir:
        settings = settings.merged({"scripts_dir": args.scripts_dir})
    facts = ChainedFactProvider(
        StaticFactProvider(inventory.facts),
        SysfsFactProvider(settings.sysfs_root),
    )
    return ConfigEngine(settings, facts=facts)


def _prepare_all(
    inventory: HostInventory,
    names: list[str],
) -> tuple[list[InterfaceRequest], int]:
    """Prepare requests, reporting preset errors. Returns (requests, failures)."""
    requests = []
    failures = 0
    for kind, params in inventory.get_interfaces(names):
        try:
            requests.append(prepare(kind, params))
        except (ValidationError, ValueError) as e:
            print(f"{params.get('name')}: {e}")
            failures += 1
    return requests, failures


def cmd_validate(engine: ConfigEngine, inventory: HostInventory, args) -> int:
    requests, failures = _prepare_all(inventory, _selected_names(inventory, args))
    for request in requests:
        validation = engine.validate(request)
        if validation.valid:
            print(f"{request.name}: OK")
        else:
            failures += 1
            print(f"{request.name}: INVALID")
            for error in validation.errors:
                print(f"  error: {error}")
        for warning in validation.warnings:
            print(f"  warning: {warning}")
    return 1 if failures else 0


def cmd_render(engine: ConfigEngine, inventory: HostInventory, args) -> int:
    requests, failures = _prepare_all(inventory, [args.name])
    if failures:
        return 1
    request = requests[0]
    try:
        content = engine.render(request)
    except ValidationError as e:
        print(e.message)
        return 1
    print(f"# {engine.target_path(request)}")
    sys.stdout.write(content)
    return 0


def cmd_diff(engine: ConfigEngine, inventory: HostInventory, args) -> int:
    requests, failures = _prepare_all(inventory, _selected_names(inventory, args))
    for request in requests:
        try:
            diff = engine.diff(request)
        except ValidationError as e:
            print(f"{request.name}: {e.message}")
            failures += 1
            continue
        print(summarize_diff(diff))
    return 1 if failures else 0


def cmd_apply(engine: ConfigEngine, inventory: HostInventory, args) -> int:
    requests, failures = _prepare_all(inventory, _selected_names(inventory, args))

    policy = engine.settings.policy(dry_run=args.dry_run)
    if args.no_reload:
        policy.reload = False
    if args.no_cleanup:
        policy.cleanup = False

    results = engine.apply_many(requests, policy=policy, workers=args.workers)

    if args.json:
        print(json.dumps([r.to_dict() for r in results], indent=2))
    else:
        for result in results:
            status = "changed" if result.changed else "unchanged"
            if not result.success:
                status = "FAILED"
            print(f"{result.name}: {status} ({result.state.value})")
            for command in result.commands_executed:
                print(f"  {command}")
            for warning in result.warnings:
                print(f"  warning: {warning}")
            if result.error:
                print(f"  error: {result.error}")
        if args.verbose:
            print(global_stats.summary())

    failures += sum(1 for r in results if not r.success)
    return 1 if failures else 0


def cmd_history(args, settings: EngineSettings) -> int:
    log_file = args.log_file or (settings.audit_dir or default_audit_dir()) / AUDIT_FILE_NAME
    records = get_recent_changes(
        log_file,
        interface=args.interface,
        operation=args.operation,
        limit=args.limit,
    )
    if not records:
        print(f"No changes recorded in {log_file}")
        return 0
    for record in records:
        status = "ok" if record.success else f"FAILED: {record.error}"
        dry = " [dry-run]" if record.dry_run else ""
        print(
            f"{record.timestamp} {record.interface} {record.operation}"
            f" changed={record.changed} {record.state}{dry} {status}"
        )
    return 0


COMMANDS = {
    "validate": cmd_validate,
    "render": cmd_render,
    "diff": cmd_diff,
    "apply": cmd_apply,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the ifcraft CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(level=logging.DEBUG if args.verbose else None)

    if args.command == "history":
        return cmd_history(args, EngineSettings.from_env())

    try:
        inventory = HostInventory(str(args.config) if args.config else None)
    except (FileNotFoundError, ValueError) as e:
        logger.error(str(e))
        return 1

    try:
        engine = _build_engine(inventory, args)
        return COMMANDS[args.command](engine, inventory, args)
    except KeyError as e:
        # Unknown interface or group name
        logger.error(e.args[0] if e.args else str(e))
        return 1
    except ValueError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130


if __name__ == "__main__":
    sys.exit(main())
