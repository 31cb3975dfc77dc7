"""
Setup Wizard - First-run collection of a DDNS record configuration

The wizard walks the operator through three input steps, validates each
step before moving on and finally hands the collected configuration to the
record store. A failed finish keeps everything that was entered.
"""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from ..exceptions import DdnsPanelError, StateError, ValidationError
from ..utils.validators import MIN_UPDATE_INTERVAL, validate_update_interval
from .models import DEFAULT_UPDATE_INTERVAL, DnsRecordConfig, IpType

logger = logging.getLogger(__name__)


class WizardStep(str, Enum):
    COLLECT_TOKEN = "collect_token"
    COLLECT_ZONE_RECORD = "collect_zone_record"
    COLLECT_POLICY = "collect_policy"
    FINALIZING = "finalizing"
    DONE = "done"
    ABORTED = "aborted"


TERMINAL_STEPS = (WizardStep.DONE, WizardStep.ABORTED)


@dataclass
class WizardState:
    api_token: str = ""
    zone_id: str = ""
    record_name: str = ""
    record_id: str = ""
    ip_type: IpType = IpType.IPV4
    update_interval: int = DEFAULT_UPDATE_INTERVAL

    def to_config(self) -> DnsRecordConfig:
        return DnsRecordConfig(
            zone_id=self.zone_id,
            api_token=self.api_token,
            record_name=self.record_name,
            record_id=self.record_id,
            ip_type=self.ip_type,
            update_interval=self.update_interval,
        )


class SetupWizard:
    """State machine gating the creation of the first record."""

    def __init__(self, record_store):
        self.record_store = record_store
        self.step = WizardStep.COLLECT_TOKEN
        self.state: Optional[WizardState] = WizardState()
        self.last_error: Optional[str] = None

    @property
    def finished(self) -> bool:
        return self.step in TERMINAL_STEPS

    def submit_token(self, api_token: str):
        """CollectToken -> CollectZoneRecord."""
        self._require(WizardStep.COLLECT_TOKEN)
        api_token = (api_token or "").strip()
        if not api_token:
            raise ValidationError("API token is required", field="api_token")

        self.state.api_token = api_token
        self.step = WizardStep.COLLECT_ZONE_RECORD
        logger.info("Wizard: token collected")

    def submit_zone_record(self, zone_id: str, record_name: str, record_id: str):
        """CollectZoneRecord -> CollectPolicy."""
        self._require(WizardStep.COLLECT_ZONE_RECORD)
        values = {
            "zone_id": (zone_id or "").strip(),
            "record_name": (record_name or "").strip(),
            "record_id": (record_id or "").strip(),
        }
        missing = [name for name, value in values.items() if not value]
        if missing:
            raise ValidationError(
                f"Required fields missing: {', '.join(missing)}", field=missing[0]
            )

        self.state.zone_id = values["zone_id"]
        self.state.record_name = values["record_name"]
        self.state.record_id = values["record_id"]
        self.step = WizardStep.COLLECT_POLICY
        logger.info(f"Wizard: record {values['record_name']} selected")

    async def finish(self, ip_type=IpType.IPV4, update_interval: int = DEFAULT_UPDATE_INTERVAL) -> DnsRecordConfig:
        """
        CollectPolicy -> Finalizing -> Done.

        Validates the collected configuration remotely and stores it. On
        failure the wizard returns to CollectPolicy with every field kept and
        the error is re-raised.

        Args:
            ip_type: Address family to keep in sync
            update_interval: Refresh interval in seconds, at least 60

        Returns:
            The stored record configuration
        """
        self._require(WizardStep.COLLECT_POLICY)
        if not validate_update_interval(update_interval):
            raise ValidationError(
                f"Update interval must be at least {MIN_UPDATE_INTERVAL} seconds",
                field="update_interval",
            )
        try:
            ip_type = IpType(ip_type)
        except ValueError:
            raise ValidationError(f"Unknown IP type {ip_type!r}", field="ip_type")

        self.state.ip_type = ip_type
        self.state.update_interval = update_interval
        self.step = WizardStep.FINALIZING
        config = self.state.to_config()

        try:
            await self.record_store.validate(config)
            stored = await self.record_store.upsert(config)
        except DdnsPanelError as e:
            self.step = WizardStep.COLLECT_POLICY
            self.last_error = str(e)
            logger.error(f"Wizard: saving configuration failed: {e}")
            raise

        self.step = WizardStep.DONE
        self.state = None
        self.last_error = None
        logger.info(f"Wizard: configuration for {stored.record_name} saved")

        try:
            await self.record_store.load()
        except DdnsPanelError as e:
            logger.warning(f"Wizard: reloading records after setup failed: {e}")

        return stored

    def back(self):
        """Step back one screen, keeping what was entered."""
        if self.step == WizardStep.COLLECT_ZONE_RECORD:
            self.step = WizardStep.COLLECT_TOKEN
        elif self.step == WizardStep.COLLECT_POLICY:
            self.step = WizardStep.COLLECT_ZONE_RECORD
        else:
            raise StateError(f"Cannot go back from {self.step.value}")

    def abort(self):
        if self.finished:
            raise StateError(f"Wizard already {self.step.value}")
        if self.step == WizardStep.FINALIZING:
            raise StateError("Cannot abort while the configuration is being saved")
        self.step = WizardStep.ABORTED
        self.state = None
        logger.info("Wizard: aborted")

    async def lookup_zones(self) -> List[Dict]:
        """Zones the collected token can manage."""
        self._require_token()
        return await self.record_store.client.validate_token(self.state.api_token)

    async def lookup_records(self, zone_id: str) -> List[Dict]:
        """DNS records of one zone, for picking the record id."""
        self._require_token()
        return await self.record_store.client.get_zone_records(self.state.api_token, zone_id)

    def _require(self, step: WizardStep):
        if self.step != step:
            raise StateError(
                f"Wizard is at {self.step.value}, expected {step.value}"
            )

    def _require_token(self):
        if self.state is None or not self.state.api_token:
            raise StateError("API token has not been collected yet")
