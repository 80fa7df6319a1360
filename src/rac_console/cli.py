#!/usr/bin/env python3
"""rac-console command line.

Usage:
    rac-console [--config FILE] run <verb> [params...] [-f FLAG=VALUE ...]
    rac-console [--config FILE] getconfig [-g GROUP] [-o OBJECT]
    rac-console [--config FILE] users
    rac-console [--config FILE] root-creds [--type TYPE --slot SLOT]
    rac-console [--config FILE] converge [--module TYPE] [--no-halt] [--sequential]
    rac-console history [--operation OP] [--limit N]

Environment variables:
    RAC_CONSOLE_CONFIG      Inventory file (default: ./configs/rac.yaml)
    RAC_CONSOLE_PASSWORD    Console password when not in the inventory
    RAC_CONSOLE_AUDIT_DIR   Audit log directory (default: ~/.rac-console)
"""
import argparse
import asyncio
import json
import logging
import os
import sys
from typing import Optional

from .applier import ConfigurationApplier
from .config.inventory import ConsoleInventory
from .console.client import ConsoleClient
from .errors import RacConsoleError
from .orchestrator import ConvergenceOrchestrator
from .utils.audit_log import ChangeTracker, get_recent_changes, setup_audit_logging
from .utils.logging_config import setup_logging

logger = logging.getLogger(__name__)


def _parse_flags(pairs: list[str]) -> dict[str, Optional[str]]:
    """Turn ``["m=server-1", "d"]`` into ``{"m": "server-1", "d": None}``."""
    flags: dict[str, Optional[str]] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        flags[key] = value if sep else None
    return flags


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="rac-console",
        description="Configure a Dell RAC/CMC through racadm and wait for it to converge",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    # Raw command
    rac-console run getniccfg -f m=server-1

    # Put every blade NIC on DHCP and wait until each one answers ping
    rac-console converge --module server
""",
    )
    parser.add_argument("--config", type=str, help="Inventory YAML file")
    parser.add_argument(
        "--audit-dir",
        type=str,
        default=os.environ.get("RAC_CONSOLE_AUDIT_DIR"),
        help="Audit log directory (default: ~/.rac-console)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    run = sub.add_parser("run", help="Run a raw racadm command")
    run.add_argument("verb")
    run.add_argument("params", nargs="*")
    run.add_argument("-f", "--flag", action="append", default=[], help="FLAG=VALUE, repeatable")

    getconfig = sub.add_parser("getconfig", help="Read console configuration")
    getconfig.add_argument("-g", "--group")
    getconfig.add_argument("-o", "--object")

    sub.add_parser("users", help="Provision every user in the inventory")

    creds = sub.add_parser("root-creds", help="Deploy root credentials to modules")
    creds.add_argument("--type", dest="module_type", help="Module type (default: all in inventory)")
    creds.add_argument("--slot", help="Slot (requires --type)")

    converge = sub.add_parser("converge", help="Apply NIC addressing and wait for connectivity")
    converge.add_argument("--module", help="Only this module type")
    converge.add_argument("--no-halt", action="store_true", help="Collect all outcomes instead of stopping at the first timeout")
    converge.add_argument("--sequential", action="store_true", help="Poll targets one at a time")
    converge.add_argument("--json", action="store_true", help="Print the report as JSON")

    history = sub.add_parser("history", help="Show recent audited changes")
    history.add_argument("--operation")
    history.add_argument("--limit", type=int, default=20)

    return parser


def _build_applier(inventory: ConsoleInventory, client: ConsoleClient) -> ConfigurationApplier:
    tracker = ChangeTracker(inventory.get_console_config().display_name)
    return ConfigurationApplier(client, tracker=tracker)


async def _cmd_run(args, inventory: ConsoleInventory) -> int:
    client = ConsoleClient(inventory.create_transport())
    async with client.session():
        result = await client.run(args.verb, _parse_flags(args.flag), args.params, verbose=False)
    print(result.text)
    return 0


async def _cmd_getconfig(args, inventory: ConsoleInventory) -> int:
    client = ConsoleClient(inventory.create_transport())
    async with client.session():
        result = await client.run_get_config(args.group, args.object)
    print(result.text)
    return 0


async def _cmd_users(args, inventory: ConsoleInventory) -> int:
    users = inventory.get_users()
    if not users:
        logger.warning("No users defined in inventory")
        return 0

    client = ConsoleClient(inventory.create_transport())
    applier = _build_applier(inventory, client)
    failed = 0
    async with client.session():
        for user in users:
            result = await applier.set_user(user)
            status = "OK" if result.succeeded else f"FAIL ({', '.join(result.failed_steps)})"
            logger.info(f"  user {user.name} at index {user.index}: {status}")
            failed += 0 if result.succeeded else 1
    return 1 if failed else 0


async def _cmd_root_creds(args, inventory: ConsoleInventory) -> int:
    creds = inventory.get_root_credentials()
    if creds is None:
        logger.error("No root_credentials section in inventory")
        return 1

    if args.module_type:
        slots = [args.slot] if args.slot else creds["modules"].get(args.module_type, [])
        modules = {args.module_type: slots}
    else:
        modules = creds["modules"]

    client = ConsoleClient(inventory.create_transport())
    applier = _build_applier(inventory, client)
    async with client.session():
        for module_type, slots in modules.items():
            for slot in slots:
                output = await applier.set_root_credentials(
                    creds["password"], module_type, slot, creds["snmp_string"]
                )
                print(f"{module_type}-{slot}: {output.text}")
    return 0


async def _cmd_converge(args, inventory: ConsoleInventory) -> int:
    targets = inventory.get_network_targets(args.module)
    if not targets:
        logger.warning("No network targets defined in inventory")
        return 0

    settings = inventory.get_convergence_settings()
    if args.no_halt:
        settings.halt_on_timeout = False
    if args.sequential:
        settings.concurrent = False

    client = ConsoleClient(inventory.create_transport())
    orchestrator = ConvergenceOrchestrator(_build_applier(inventory, client), settings)

    logger.info("=" * 60)
    logger.info(f"Converging {len(targets)} targets on {client.host}")
    logger.info("=" * 60)

    report = await orchestrator.converge(targets)

    if args.json:
        print(json.dumps(report.to_dict(), indent=2))
    for outcome in report.outcomes:
        logger.info(f"  {outcome.target.name}: {outcome.state.value}")
        if outcome.error:
            logger.info(f"    Error: {outcome.error}")

    return 0 if report.all_confirmed else 1


def _cmd_history(args) -> int:
    log_file = os.path.join(args.audit_dir, "audit.log") if args.audit_dir else None
    for record in get_recent_changes(log_file, operation=args.operation, limit=args.limit):
        status = "OK" if record.success else "FAIL"
        print(f"{record.timestamp} {record.console} {record.operation} {record.target} {status}")
    return 0


COMMANDS = {
    "run": _cmd_run,
    "getconfig": _cmd_getconfig,
    "users": _cmd_users,
    "root-creds": _cmd_root_creds,
    "converge": _cmd_converge,
}


def main(argv: Optional[list[str]] = None) -> int:
    """Main entry point for the rac-console CLI."""
    args = build_parser().parse_args(argv)

    setup_logging(logging.DEBUG if args.verbose else None)

    if args.command == "history":
        return _cmd_history(args)

    setup_audit_logging(args.audit_dir)

    try:
        inventory = ConsoleInventory(args.config)
        return asyncio.run(COMMANDS[args.command](args, inventory))
    except KeyboardInterrupt:
        logger.warning("Interrupted by user")
        return 130
    except (RacConsoleError, ConnectionError, FileNotFoundError, KeyError) as e:
        logger.error(str(e))
        return 1


if __name__ == "__main__":
    sys.exit(main())
