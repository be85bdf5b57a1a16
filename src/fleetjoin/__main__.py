"""
fleetjoin CLI entry point.

Usage:
    fleetjoin join [ADDRESS] [--fleet NAME] [--poll-interval MINUTES]
    fleetjoin leave [ADDRESS]
    fleetjoin device pin UUID [COMMIT]
    fleetjoin config show
    fleetjoin config init
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import Optional

from fleetjoin import __version__
from fleetjoin.config.loader import load_config
from fleetjoin.config.schemas import FleetJoinConfig
from fleetjoin.errors import FleetJoinError
from fleetjoin.telemetry.logger import get_logger, setup_logging
from fleetjoin.utils.ux import ErrorFormatter


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="fleetjoin",
        description="Move a local device into or out of a fleet",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  fleetjoin join                           Discover a device and pick a fleet
  fleetjoin join 192.168.1.50 --fleet myorg/myfleet
  fleetjoin leave 192.168.1.50
  fleetjoin device pin 7cf02a6 91165e5
        """,
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "--config",
        type=Path,
        metavar="PATH",
        help="Path to custom configuration file",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Override log level",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    join_parser = subparsers.add_parser("join", help="Move a local device into a fleet")
    join_parser.add_argument("address", nargs="?", help="Device hostname or IP")
    join_parser.add_argument("--fleet", help="Fleet name or slug (namespace/name)")
    join_parser.add_argument(
        "--poll-interval",
        type=int,
        metavar="MINUTES",
        help="How often the device checks for fleet updates",
    )

    leave_parser = subparsers.add_parser("leave", help="Remove a local device from its fleet")
    leave_parser.add_argument("address", nargs="?", help="Device hostname or IP")

    device_parser = subparsers.add_parser("device", help="Registered device commands")
    device_subparsers = device_parser.add_subparsers(dest="device_command")
    pin_parser = device_subparsers.add_parser("pin", help="Pin a device to a release")
    pin_parser.add_argument("uuid", help="UUID of the device")
    pin_parser.add_argument("commit", nargs="?", help="Commit of the release to pin to")

    config_parser = subparsers.add_parser("config", help="Configuration management")
    config_subparsers = config_parser.add_subparsers(dest="config_command")
    config_subparsers.add_parser("show", help="Show current configuration")
    config_subparsers.add_parser("init", help="Initialize default configuration")

    return parser


def _load(config_path: Optional[Path], log_level: Optional[str]) -> Optional[FleetJoinConfig]:
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return None
    if log_level:
        config.log_level = log_level
    setup_logging(config.log_level, config.log_file, config.log_json)
    return config


def _report(exc: FleetJoinError) -> int:
    print(ErrorFormatter(use_color=sys.stderr.isatty()).format_exception(exc), file=sys.stderr)
    return 1


def cmd_config_show(config_path: Optional[Path]) -> int:
    """Show current configuration."""
    try:
        config = load_config(config_path)
    except (OSError, ValueError) as e:
        print(f"Error loading configuration: {e}", file=sys.stderr)
        return 1
    print("Current fleetjoin configuration:")
    print("=" * 50)
    print(config.model_dump_json(indent=2))
    return 0


def cmd_config_init(config_path: Optional[Path]) -> int:
    """Initialize default configuration file."""
    from fleetjoin.config.loader import create_default_config, get_default_config_path

    target_path = config_path or get_default_config_path()
    try:
        create_default_config(target_path)
    except OSError as e:
        print(f"Error creating configuration: {e}", file=sys.stderr)
        return 1
    print(f"Created default configuration at: {target_path}")
    return 0


async def _run_workflow(config: FleetJoinConfig, args: argparse.Namespace) -> None:
    from fleetjoin.fleet.api import HttpFleetApi
    from fleetjoin.fleet.config import ConfigGenerator
    from fleetjoin.fleet.resolver import FleetResolver
    from fleetjoin.orchestrator.coordinator import Coordinator
    from fleetjoin.orchestrator.discovery import ZeroconfDiscovery
    from fleetjoin.orchestrator.locator import DeviceLocator
    from fleetjoin.orchestrator.ssh import RemoteExecClient
    from fleetjoin.utils.prompts import ConsolePrompter

    prompter = ConsolePrompter()
    locator = DeviceLocator.from_config(
        config.discovery,
        ZeroconfDiscovery(config.discovery.service_type),
        prompter,
    )

    async with HttpFleetApi.from_config(config.api) as api:
        coordinator = Coordinator(
            api=api,
            exec_client=RemoteExecClient.from_config(config.ssh),
            locator=locator,
            resolver=FleetResolver(api, prompter),
            generator=ConfigGenerator(
                api,
                prompter,
                connectivity=config.join.connectivity,
                default_poll_interval=config.join.default_poll_interval,
            ),
            config_tool=config.join.config_tool,
        )
        if args.command == "join":
            await coordinator.join(args.address, args.fleet, args.poll_interval)
        else:
            await coordinator.leave(args.address)


async def _pin(config: FleetJoinConfig, uuid: str, commit: Optional[str]) -> None:
    from fleetjoin.errors import NotLoggedIn
    from fleetjoin.fleet.api import HttpFleetApi

    async with HttpFleetApi.from_config(config.api) as api:
        if await api.whoami() is None:
            raise NotLoggedIn()

        if commit:
            await api.pin_device_to_release(uuid, commit)
            print(f"Pinned device {uuid} to release {commit}")
            return

        device = await api.get_device(uuid)
        if device.pinned_commit:
            print(f"This device is currently pinned to {device.pinned_commit}.")
        else:
            print("This device is not currently pinned to any release.")
        print(
            "\nTo see the releases this device can be pinned to, list the releases "
            f"of fleet {device.fleet_slug}."
        )


def cmd_workflow(args: argparse.Namespace) -> int:
    """Run join or leave."""
    config = _load(args.config, args.log_level)
    if config is None:
        return 1
    logger = get_logger(__name__)
    try:
        asyncio.run(_run_workflow(config, args))
    except FleetJoinError as e:
        logger.debug("Workflow failed", command=args.command, error=str(e))
        return _report(e)
    except KeyboardInterrupt:
        print("\nAborted", file=sys.stderr)
        return 130
    return 0


def cmd_device_pin(args: argparse.Namespace) -> int:
    """Show or set the release a device is pinned to."""
    config = _load(args.config, args.log_level)
    if config is None:
        return 1
    try:
        asyncio.run(_pin(config, args.uuid, args.commit))
    except FleetJoinError as e:
        return _report(e)
    return 0


def main() -> int:
    """Main entry point for the CLI."""
    parser = create_parser()
    args = parser.parse_args()

    if args.command in ("join", "leave"):
        return cmd_workflow(args)

    elif args.command == "device":
        if args.device_command == "pin":
            return cmd_device_pin(args)
        parser.parse_args(["device", "--help"])
        return 1

    elif args.command == "config":
        if args.config_command == "show":
            return cmd_config_show(args.config)
        elif args.config_command == "init":
            return cmd_config_init(args.config)
        parser.parse_args(["config", "--help"])
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    sys.exit(main())
