#!/usr/bin/env python3
"""
DDNS Panel - Control panel for a dynamic-DNS updater

This module wires the request gateway, record store, connection monitor
and setup wizard together from configuration, and exposes every panel
command as a method returning an OperationResult instead of raising.
"""

import copy
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Union

import yaml
from rich.console import Console
from rich.table import Table

from ..exceptions import ApiError, DdnsPanelError, StateError, ValidationError
from ..providers.ddns_client import DEFAULT_BASE_URL, DdnsClient
from ..providers.gateway import ConnectionStatus
from ..utils.validators import mask_token, validate_ipv4, validate_ipv6
from .connection_monitor import ConnectionMonitor
from .models import DEFAULT_UPDATE_INTERVAL, DnsRecordConfig, IpType
from .record_store import RecordStore
from .setup_wizard import SetupWizard

# Initialize rich console and logger
console = Console()
logger = logging.getLogger(__name__)

DEFAULT_CONFIG = {
    "api": {"backend": "http", "base_url": DEFAULT_BASE_URL, "timeout": 10},
    "retry": {"max_attempts": 3, "delay_seconds": 1.0},
    "monitor": {"poll_interval_seconds": 30, "settle_delay_seconds": 2},
    "logging": {"level": "INFO", "file": "ddns_panel.log"},
}


@dataclass
class OperationResult:
    """Outcome of a panel command."""

    success: bool
    message: str = ""
    data: Any = None

    def __bool__(self) -> bool:
        return self.success


class ControlPanel:
    """Main panel class that orchestrates the DDNS components."""

    def __init__(self, config: Union[Dict, str, None] = "configs/config.yaml", client: Optional[DdnsClient] = None):
        """Initialize the panel with a configuration dict or YAML path."""
        if isinstance(config, dict) or config is None:
            self.config = merge_config(DEFAULT_CONFIG, config or {})
        else:
            self.config = load_config(config)

        monitor_config = self.config["monitor"]
        self.client = client or DdnsClient(self.config)
        self.record_store = RecordStore(self.client)
        self.monitor = ConnectionMonitor(
            self.client.gateway,
            record_store=self.record_store,
            poll_interval=monitor_config["poll_interval_seconds"],
            settle_delay=monitor_config["settle_delay_seconds"],
        )
        self.wizard: Optional[SetupWizard] = None

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------
    async def start(self, monitor: bool = True) -> OperationResult:
        """Load the records, open the wizard on first run and start monitoring."""
        result = await self.refresh()
        if result.success and self.record_store.is_empty:
            logger.info("No records configured, opening setup wizard")
            self.wizard = SetupWizard(self.record_store)
        if monitor:
            await self.monitor.start()
        return result

    async def stop(self):
        await self.monitor.stop()
        await self.client.aclose()

    @property
    def needs_setup(self) -> bool:
        return self.wizard is not None and not self.wizard.finished

    @property
    def records(self) -> List[DnsRecordConfig]:
        return self.record_store.records

    @property
    def connection_status(self) -> ConnectionStatus:
        return self.monitor.state

    def on_connection_change(self, listener: Callable) -> Callable[[], None]:
        return self.monitor.subscribe(listener)

    def notify_network_online(self):
        self.monitor.notify_network_online()

    def notify_network_offline(self):
        self.monitor.notify_network_offline()

    # ------------------------------------------------------------------
    # Record commands
    # ------------------------------------------------------------------
    async def refresh(self) -> OperationResult:
        async def load():
            records = await self.record_store.load()
            return OperationResult(True, f"Loaded {len(records)} records", records)

        return await self._run("Loading records", load)

    async def add_record(
        self,
        zone_id: str,
        api_token: str,
        record_name: str,
        record_id: Optional[str] = None,
        ip_type: str = IpType.IPV4.value,
        update_interval: int = DEFAULT_UPDATE_INTERVAL,
    ) -> OperationResult:
        """Create a record; a missing record id leaves it pending until the next load."""

        async def add():
            config = DnsRecordConfig(
                zone_id=zone_id,
                api_token=api_token,
                record_name=record_name,
                record_id=record_id or None,
                ip_type=self._ip_type(ip_type),
                update_interval=update_interval,
            )
            stored = await self.record_store.upsert(config)
            return OperationResult(True, f"Record {stored.record_name} created", stored)

        return await self._run("Creating record", add)

    async def edit_record(self, record_id: str, **changes) -> OperationResult:
        """
        Change fields of a cached record and save the full set.

        ``record_type`` ("A"/"AAAA") is accepted in place of ``ip_type``.
        The zone of an existing record cannot change.
        """

        async def edit():
            existing = self.record_store.get(record_id)
            if existing is None:
                raise StateError(f"Record {record_id} not found")

            if "record_type" in changes:
                changes["ip_type"] = IpType.from_record_type(changes.pop("record_type"))
            if "ip_type" in changes:
                changes["ip_type"] = self._ip_type(changes["ip_type"])
            if changes.get("zone_id", existing.zone_id) != existing.zone_id:
                raise ValidationError("Zone ID cannot be changed", field="zone_id")
            if changes.get("record_id", record_id) != record_id:
                raise ValidationError("Record ID cannot be changed", field="record_id")

            unknown = set(changes) - {
                "api_token", "record_name", "ip_type", "update_interval", "zone_id", "record_id",
            }
            if unknown:
                raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")

            stored = await self.record_store.upsert(existing.copy(**changes), key=record_id)
            return OperationResult(True, f"Record {stored.record_name} updated", stored)

        return await self._run("Updating record", edit)

    async def delete_record(self, record_id: str) -> OperationResult:
        async def delete():
            await self.record_store.remove(record_id)
            return OperationResult(True, f"Record {record_id} deleted")

        return await self._run("Deleting record", delete)

    async def update_now(self, record_id: Optional[str] = None) -> OperationResult:
        """Trigger the remote updater, then reload to pick up new addresses."""

        async def update():
            record_name = remote_id = None
            if record_id is not None:
                record = self.record_store.get(record_id)
                if record is None:
                    raise StateError(f"Record {record_id} not found")
                record_name, remote_id = record.record_name, record.record_id

            response = await self.record_store.trigger_remote_update(
                record_name=record_name, record_id=remote_id
            )
            records = await self.record_store.load()
            message = response.get("message") or "DDNS update triggered"
            return OperationResult(True, message, records)

        return await self._run("Updating DDNS records", update)

    async def validate_record(self, config: DnsRecordConfig) -> OperationResult:
        async def validate():
            await self.record_store.validate(config)
            return OperationResult(True, f"Configuration for {config.record_name} is valid")

        return await self._run("Validating configuration", validate)

    async def get_service_status(self) -> OperationResult:
        async def status():
            body = await self.client.get_status()
            return OperationResult(True, body.get("message", "Status retrieved"), body)

        return await self._run("Fetching status", status)

    async def get_current_ip(self, ip_type: str = IpType.IPV4.value) -> OperationResult:
        async def current_ip():
            family = self._ip_type(ip_type)
            body = await self.client.get_ip(family.value)
            address = body.get("ip") if isinstance(body, dict) else body
            check = validate_ipv6 if family == IpType.IPV6 else validate_ipv4
            if not check(address):
                raise ApiError(
                    200, body, message=f"API returned an invalid {family.value} address: {address!r}"
                )
            return OperationResult(True, str(address), address)

        return await self._run("Fetching current IP", current_ip)

    # ------------------------------------------------------------------
    # Setup wizard
    # ------------------------------------------------------------------
    def begin_setup(self) -> OperationResult:
        """Open a fresh wizard, replacing an unfinished one."""
        self.wizard = SetupWizard(self.record_store)
        return OperationResult(True, "Setup wizard started", self.wizard.step)

    def submit_token(self, api_token: str) -> OperationResult:
        return self._run_wizard("Token step", lambda w: w.submit_token(api_token))

    def submit_zone_record(self, zone_id: str, record_name: str, record_id: str) -> OperationResult:
        return self._run_wizard(
            "Record step", lambda w: w.submit_zone_record(zone_id, record_name, record_id)
        )

    def wizard_back(self) -> OperationResult:
        return self._run_wizard("Going back", lambda w: w.back())

    def abort_setup(self) -> OperationResult:
        return self._run_wizard("Aborting setup", lambda w: w.abort())

    async def finish_setup(self, ip_type: str = IpType.IPV4.value, update_interval: int = DEFAULT_UPDATE_INTERVAL) -> OperationResult:
        async def finish():
            stored = await self._current_wizard().finish(ip_type, update_interval)
            return OperationResult(True, f"DDNS configuration for {stored.record_name} saved", stored)

        return await self._run("Finishing setup", finish)

    async def lookup_zones(self) -> OperationResult:
        async def zones():
            found = await self._current_wizard().lookup_zones()
            return OperationResult(True, f"Found {len(found)} zones", found)

        return await self._run("Looking up zones", zones)

    async def lookup_zone_records(self, zone_id: str) -> OperationResult:
        async def records():
            found = await self._current_wizard().lookup_records(zone_id)
            return OperationResult(True, f"Found {len(found)} records", found)

        return await self._run("Looking up zone records", records)

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------
    def display_records(self):
        """Print the cached records as a table; tokens are masked."""
        table = Table(title="DDNS Records")
        table.add_column("Record ID", style="cyan")
        table.add_column("Name", style="white")
        table.add_column("Type", style="magenta")
        table.add_column("Current IP", style="green")
        table.add_column("Interval", style="white")
        table.add_column("Last Update", style="white")
        table.add_column("Status", style="yellow")
        table.add_column("Token", style="dim")

        for record in self.record_store.records:
            table.add_row(
                record.record_id or "(pending)",
                record.record_name,
                record.record_type,
                record.current_ip,
                f"{record.update_interval}s",
                record.last_update_time or "never",
                record.status.value,
                mask_token(record.api_token),
            )

        console.print(table)
        console.print(f"[bold]Connection: {self.connection_status.value}[/bold]")

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    async def _run(self, action: str, operation) -> OperationResult:
        try:
            return await operation()
        except DdnsPanelError as e:
            logger.error(f"{action} failed: {e}")
            return OperationResult(False, f"{action} failed: {e}", e)

    def _run_wizard(self, action: str, step) -> OperationResult:
        try:
            wizard = self._current_wizard()
            step(wizard)
            return OperationResult(True, f"{action} done", wizard.step)
        except DdnsPanelError as e:
            logger.warning(f"{action} rejected: {e}")
            return OperationResult(False, f"{action} rejected: {e}", e)

    def _current_wizard(self) -> SetupWizard:
        if self.wizard is None:
            raise StateError("Setup wizard is not open")
        return self.wizard

    @staticmethod
    def _ip_type(value) -> IpType:
        try:
            return IpType(value)
        except ValueError:
            raise ValidationError(f"Unknown IP type {value!r}", field="ip_type")


def load_config(config_path: str) -> Dict:
    """
    Load configuration from YAML file, overlaid on the defaults.

    A missing file yields the defaults; a malformed one raises yaml.YAMLError.
    """
    try:
        with open(config_path, "r") as f:
            loaded = yaml.safe_load(f) or {}
        logger.info(f"Configuration loaded from {config_path}")
    except FileNotFoundError:
        logger.warning(f"Config file {config_path} not found, using defaults")
        loaded = {}
    return merge_config(DEFAULT_CONFIG, loaded)


def merge_config(defaults: Dict, overrides: Dict) -> Dict:
    """Recursively overlay ``overrides`` on a copy of ``defaults``."""
    merged = copy.deepcopy(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = merge_config(merged[key], value)
        else:
            merged[key] = value
    return merged
