#!/usr/bin/env python3
"""
DDNS Panel - Demo Script

This script demonstrates the DDNS Panel against the in-memory mock API:
first-run setup, editing, a failed save and a reconnect.
"""

import asyncio

from rich.console import Console
from rich.panel import Panel

from ddns_panel.core.panel import ControlPanel

# Initialize rich console
console = Console()

DEMO_CONFIG = {
    "api": {"backend": "mock"},
    "retry": {"max_attempts": 3, "delay_seconds": 0.2},
    "monitor": {"poll_interval_seconds": 30, "settle_delay_seconds": 0.5},
}


def display_demo_header():
    """Display the demo header."""
    console.print(
        Panel.fit(
            "[bold blue]DDNS Panel - Demo[/bold blue]\n"
            "[cyan]Dynamic DNS record management against a mock API[/cyan]",
            border_style="blue",
        )
    )
    console.print()


def show(result):
    mark = "[green]✓" if result.success else "[red]✗"
    console.print(f"{mark} {result.message}[/]")


async def run_setup_demo(panel):
    """Walk through the setup wizard the way a first-time operator would."""
    console.print("[bold]Running Setup Wizard...[/bold]")

    show(panel.submit_token("demo-token-0123456789"))

    zones = await panel.lookup_zones()
    show(zones)
    zone_id = zones.data[0]["id"]

    records = await panel.lookup_zone_records(zone_id)
    show(records)
    record = records.data[0]

    show(panel.submit_zone_record(zone_id, record["name"], record["id"]))

    # Too short, the wizard stays on the policy step
    show(await panel.finish_setup("ipv4", 30))
    show(await panel.finish_setup("ipv4", 300))

    panel.display_records()
    console.print()


async def run_edit_demo(panel, record_id):
    """Edit a record, then show that a rejected save leaves the cache alone."""
    console.print("[bold]Editing Records...[/bold]")
    show(await panel.edit_record(record_id, update_interval=600))

    panel.client.mock_api.reject_saves = True
    show(await panel.delete_record(record_id))
    panel.client.mock_api.reject_saves = False

    show(await panel.update_now(record_id))
    panel.display_records()
    console.print()


async def run_reconnect_demo(panel):
    """Take the API down, then bring it back and signal the reconnect."""
    console.print("[bold]Simulating Connection Loss...[/bold]")
    panel.on_connection_change(
        lambda old, new: console.print(f"[yellow]Connection {old.value} -> {new.value}[/yellow]")
    )

    panel.client.mock_api.healthy = False
    panel.notify_network_offline()
    await asyncio.sleep(0.1)

    panel.client.mock_api.healthy = True
    panel.notify_network_online()
    await asyncio.sleep(panel.monitor.settle_delay + 0.2)
    console.print()


async def run_demo():
    panel = ControlPanel(DEMO_CONFIG)
    try:
        console.print("[blue]Starting DDNS Panel...[/blue]")
        show(await panel.start())
        console.print()

        if panel.needs_setup:
            await run_setup_demo(panel)

        record_id = panel.records[0].record_id
        await run_edit_demo(panel, record_id)
        await run_reconnect_demo(panel)

        show(await panel.get_service_status())
    finally:
        await panel.stop()


def main():
    """Main demo function."""
    display_demo_header()

    try:
        asyncio.run(run_demo())

        console.print(
            Panel.fit(
                "[bold green]Demo Summary[/bold green]\n"
                "✓ Setup wizard completed\n"
                "✓ Record edited and updated\n"
                "✓ Rejected save left the record in place\n"
                "✓ Reconnect confirmed by a health probe\n"
                "✓ Mock API used (no real DNS changes)",
                border_style="green",
            )
        )
    except Exception as e:
        console.print(f"[red]Demo failed with error: {e}[/red]")
        console.print("[yellow]Check the logs for more details[/yellow]")

    console.print()
    console.print("[bold blue]Demo completed![/bold blue]")


if __name__ == "__main__":
    main()
