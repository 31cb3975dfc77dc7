#!/usr/bin/env python3
"""
DDNS Panel - Command Line Interface

Main entry point for the DDNS Panel CLI.
"""

import argparse
import asyncio
import logging
import sys
from typing import Dict

import yaml
from rich.console import Console
from rich.prompt import IntPrompt, Prompt

from ..core.panel import ControlPanel, OperationResult
from ..core.panel import load_config as load_panel_config

console = Console()
logger = logging.getLogger(__name__)


def main():
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args()

    config = load_config(args.config)
    config_logger(config, verbose=args.verbose)

    try:
        result = asyncio.run(run_command(args, config))
    except KeyboardInterrupt:
        print("Interrupted")
        sys.exit(1)
    except Exception as e:
        print(f"Error: {e}")
        if args.verbose:
            import traceback

            traceback.print_exc()
        sys.exit(1)

    sys.exit(0 if result.success else 1)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="DDNS Panel - Manage dynamic DNS record bindings"
    )

    parser.add_argument(
        "--config",
        "-c",
        default="configs/config.yaml",
        help="Configuration file path (default: configs/config.yaml)",
    )
    parser.add_argument(
        "--verbose", "-v", action="store_true", help="Enable verbose logging"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    commands.add_parser("list", help="Show configured records")

    add = commands.add_parser("add", help="Add a record binding")
    add.add_argument("--zone-id", required=True)
    add.add_argument("--token", required=True, help="Provider API token")
    add.add_argument("--name", required=True, help="Fully qualified record name")
    add.add_argument("--record-id", help="Provider record id")
    add.add_argument("--ip-type", choices=["ipv4", "ipv6"], default="ipv4")
    add.add_argument("--interval", type=int, default=300, help="Update interval in seconds")

    edit = commands.add_parser("edit", help="Edit a record binding")
    edit.add_argument("record_id")
    edit.add_argument("--token", help="Provider API token")
    edit.add_argument("--name", help="Fully qualified record name")
    edit.add_argument("--ip-type", choices=["ipv4", "ipv6"])
    edit.add_argument("--interval", type=int, help="Update interval in seconds")

    delete = commands.add_parser("delete", help="Delete a record binding")
    delete.add_argument("record_id")

    update = commands.add_parser("update", help="Run the DDNS update now")
    update.add_argument("record_id", nargs="?", help="Limit the update to one record")

    commands.add_parser("status", help="Show service status")

    ip = commands.add_parser("ip", help="Show the currently detected address")
    ip.add_argument("--ip-type", choices=["ipv4", "ipv6"], default="ipv4")

    commands.add_parser("setup", help="Run the interactive setup wizard")
    commands.add_parser("watch", help="Monitor the API connection until interrupted")

    return parser


async def run_command(args, config: Dict) -> OperationResult:
    """Run one CLI command against a freshly started panel."""
    panel = ControlPanel(config)
    try:
        result = await panel.start(monitor=args.command == "watch")
        if not result.success and args.command != "watch":
            return report(result)

        if args.command == "list":
            panel.display_records()
            if panel.needs_setup:
                console.print("[yellow]No records yet - run 'ddns-panel setup'[/yellow]")
            return result

        if args.command == "add":
            return report(
                await panel.add_record(
                    zone_id=args.zone_id,
                    api_token=args.token,
                    record_name=args.name,
                    record_id=args.record_id,
                    ip_type=args.ip_type,
                    update_interval=args.interval,
                )
            )

        if args.command == "edit":
            changes = {
                "api_token": args.token,
                "record_name": args.name,
                "ip_type": args.ip_type,
                "update_interval": args.interval,
            }
            changes = {key: value for key, value in changes.items() if value is not None}
            return report(await panel.edit_record(args.record_id, **changes))

        if args.command == "delete":
            return report(await panel.delete_record(args.record_id))

        if args.command == "update":
            result = report(await panel.update_now(args.record_id))
            if result.success:
                panel.display_records()
            return result

        if args.command == "status":
            result = await panel.get_service_status()
            if result.success:
                for key, value in result.data.items():
                    console.print(f"{key}: {value}")
            return report(result)

        if args.command == "ip":
            return report(await panel.get_current_ip(args.ip_type))

        if args.command == "setup":
            return await run_setup(panel)

        if args.command == "watch":
            return await watch(panel)

        return OperationResult(False, f"Unknown command {args.command}")
    finally:
        await panel.stop()


async def run_setup(panel: ControlPanel) -> OperationResult:
    """Walk the operator through the setup wizard on the terminal."""
    panel.begin_setup()

    while True:
        token = Prompt.ask("Provider API token", password=True)
        if report(panel.submit_token(token)).success:
            break

    zones = await panel.lookup_zones()
    if zones.success:
        for zone in zones.data:
            console.print(f"  zone {zone.get('id')}: {zone.get('name')}")

    while True:
        zone_id = Prompt.ask("Zone ID")
        records = await panel.lookup_zone_records(zone_id)
        if records.success:
            for record in records.data:
                console.print(
                    f"  record {record.get('id')}: {record.get('name')} "
                    f"{record.get('type')} {record.get('content')}"
                )
        record_name = Prompt.ask("Record name")
        record_id = Prompt.ask("Record ID")
        if report(panel.submit_zone_record(zone_id, record_name, record_id)).success:
            break

    while True:
        ip_type = Prompt.ask("IP type", choices=["ipv4", "ipv6"], default="ipv4")
        interval = IntPrompt.ask("Update interval (seconds)", default=300)
        result = report(await panel.finish_setup(ip_type, interval))
        if result.success:
            panel.display_records()
            return result
        if not Prompt.ask("Try again?", choices=["y", "n"], default="y") == "y":
            panel.abort_setup()
            return result


async def watch(panel: ControlPanel):
    """Print connection transitions until interrupted."""

    def show(old, new):
        console.print(f"[bold]Connection {old.value} -> {new.value}[/bold]")

    panel.on_connection_change(show)
    console.print(f"Connection: {panel.connection_status.value} (Ctrl+C to stop)")
    while True:
        await asyncio.sleep(3600)


def report(result: OperationResult) -> OperationResult:
    style = "green" if result.success else "red"
    console.print(f"[{style}]{result.message}[/{style}]")
    return result


def load_config(config_path: str) -> Dict:
    """Load configuration from YAML file, exiting on a parse error."""
    try:
        return load_panel_config(config_path)
    except yaml.YAMLError as e:
        print(f"Error parsing config file: {e}")
        sys.exit(1)


def config_logger(config: Dict, verbose: bool = False):
    """Configure logging."""
    logging_config = config.get("logging", None)
    if logging_config:
        log_level = "DEBUG" if verbose else logging_config.get("level", "INFO")
        log_file = logging_config.get("file", "ddns_panel.log")

        logging.basicConfig(
            level=log_level,
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            handlers=[
                logging.FileHandler(log_file),
                logging.StreamHandler(sys.stdout),
            ],
        )
        return

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler(sys.stdout)],
    )


if __name__ == "__main__":
    main()
