"""
Record Store - Local cache of DDNS record configurations

The remote API stores configurations as one complete set, so every create,
edit and delete is computed locally against a snapshot of the cache and
sent as a single full-set save. The cache only changes after the remote
side has accepted the new set.
"""

import asyncio
import logging
import uuid
from typing import Dict, List, Optional

from ..exceptions import StateError, ValidationError
from ..utils.validators import validate_record_config
from .models import DnsRecordConfig, RecordStatus

logger = logging.getLogger(__name__)


class RecordStore:
    """Owns the record cache and keeps it consistent with the remote set."""

    def __init__(self, client):
        """Initialize the record store with a DDNS API client."""
        self.client = client
        self._records: Dict[str, DnsRecordConfig] = {}
        self._loaded = False
        self._lock = asyncio.Lock()

    @property
    def records(self) -> List[DnsRecordConfig]:
        """Snapshot of the cached records in insertion order."""
        return [record.copy() for record in self._records.values()]

    @property
    def is_empty(self) -> bool:
        return not self._records

    @property
    def loaded(self) -> bool:
        """True once a load() has succeeded; before that the cache is not the remote set."""
        return self._loaded

    def __len__(self) -> int:
        return len(self._records)

    def get(self, record_id: str) -> Optional[DnsRecordConfig]:
        record = self._records.get(record_id)
        return record.copy() if record else None

    def reset(self):
        """Forget every cached record."""
        self._records = {}
        self._loaded = False

    async def load(self) -> List[DnsRecordConfig]:
        """
        Replace the cache with the remote configuration set.

        Returns:
            The loaded records

        Raises:
            DdnsPanelError: The fetch failed; the cache is left unchanged
        """
        async with self._lock:
            raw_configs = await self.client.get_configs()
            records = [DnsRecordConfig.from_raw(raw) for raw in raw_configs]
            self._records = self._index(records)
            self._loaded = True
            logger.info(f"Loaded {len(records)} record configs")
            return self.records

    async def save(self, records: List[DnsRecordConfig]) -> Dict:
        """Send the complete desired set to the API. Does not touch the cache."""
        payload = [record.to_payload() for record in records]
        logger.info(f"Saving {len(payload)} record configs")
        return await self.client.save_configs(payload)

    async def upsert(self, config: DnsRecordConfig, key: Optional[str] = None) -> DnsRecordConfig:
        """
        Create or replace a record and persist the resulting set.

        A config whose ``record_id`` (or the explicit cache ``key``) is
        already cached replaces that entry in place; anything else is appended.

        Args:
            config: The record to create or update
            key: Cache key of the entry to replace, for pending records

        Returns:
            The committed record

        Raises:
            ValidationError: The config failed local validation
            StateError: No load() has succeeded yet
            DdnsPanelError: The save failed; the cache is left unchanged
        """
        errors = validate_record_config(config)
        if errors:
            raise ValidationError("; ".join(errors))

        async with self._lock:
            self._require_loaded()
            committed = config.copy(status=RecordStatus.ACTIVE)
            merged = dict(self._records)
            target = key or committed.record_id
            if target and target in merged:
                merged[target] = committed
                action = "Updated"
            else:
                merged[committed.record_id or self._pending_key()] = committed
                action = "Created"

            await self.save(list(merged.values()))
            self._records = merged
            logger.info(f"{action} record config: {committed.record_name}")
            return committed.copy()

    async def remove(self, record_id: str):
        """
        Delete a record by persisting the set without it.

        Raises:
            StateError: No load() has succeeded yet, or no cached record has this id
            DdnsPanelError: The save failed; the record stays cached
        """
        async with self._lock:
            self._require_loaded()
            if record_id not in self._records:
                raise StateError(f"Record {record_id} not found")

            remaining = {
                key: record for key, record in self._records.items() if key != record_id
            }
            await self.save(list(remaining.values()))
            self._records = remaining
            logger.info(f"Deleted record config: {record_id}")

    async def trigger_remote_update(
        self,
        record_name: Optional[str] = None,
        record_id: Optional[str] = None,
        wait_for_result: bool = False,
    ) -> Dict:
        """Ask the remote updater to run now. Call load() afterwards to see the result."""
        result = await self.client.trigger_update(
            domain=record_name, record_id=record_id, wait_for_result=wait_for_result
        )
        logger.info(f"Remote update triggered: {result.get('message', '')}")
        return result

    async def validate(self, config: DnsRecordConfig):
        """Have the API validate a config; a rejection raises ValidationError."""
        await self.client.validate_config(config.to_payload())
        logger.info(f"Config validated: {config.record_name}")

    def _require_loaded(self):
        # Full-set saves start from a loaded copy of the remote set
        if not self._loaded:
            raise StateError("Records have not been loaded from the API yet")

    def _index(self, records: List[DnsRecordConfig]) -> Dict[str, DnsRecordConfig]:
        indexed = {}
        for record in records:
            key = record.record_id or self._pending_key()
            if key in indexed:
                logger.warning(f"Duplicate record id {key} from API, keeping the last one")
            indexed[key] = record
        return indexed

    @staticmethod
    def _pending_key() -> str:
        return f"pending-{uuid.uuid4().hex}"
