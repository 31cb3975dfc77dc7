"""
Connection Monitor - Online/offline tracking for the remote API

The monitor probes the API health endpoint on a fixed interval and whenever
the host reports a connectivity change. Only probe results change the
state; host signals merely schedule a probe.
"""

import asyncio
import logging
from typing import Callable, List, Optional, Set

from ..exceptions import DdnsPanelError
from ..providers.gateway import ConnectionStatus

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 30.0
DEFAULT_SETTLE_DELAY = 2.0

Listener = Callable[[ConnectionStatus, ConnectionStatus], None]


class ConnectionMonitor:
    """Tracks API reachability and notifies subscribers on transitions."""

    def __init__(
        self,
        gateway,
        record_store=None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        settle_delay: float = DEFAULT_SETTLE_DELAY,
    ):
        self.gateway = gateway
        self.record_store = record_store
        self.poll_interval = poll_interval
        self.settle_delay = settle_delay

        self._state = ConnectionStatus.UNKNOWN
        self._listeners: List[Listener] = []
        self._poll_task: Optional[asyncio.Task] = None
        self._signal_tasks: Set[asyncio.Task] = set()
        self._stopped = False

    @property
    def state(self) -> ConnectionStatus:
        return self._state

    @property
    def running(self) -> bool:
        return self._poll_task is not None and not self._poll_task.done()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register ``listener(old, new)``; returns a function that unsubscribes it."""
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    async def start(self):
        """Probe once right away, then keep polling in the background."""
        if self.running:
            return
        self._stopped = False
        await self.check_now()
        self._poll_task = asyncio.create_task(self._poll_loop())
        logger.info(f"Connection monitor started, polling every {self.poll_interval}s")

    async def stop(self):
        """Cancel polling and pending probes; no notifications follow."""
        self._stopped = True
        tasks = list(self._signal_tasks)
        if self._poll_task is not None:
            tasks.append(self._poll_task)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._poll_task = None
        self._signal_tasks.clear()
        logger.info("Connection monitor stopped")

    def notify_network_online(self):
        """Host reports the link is back; confirm with a probe after settling."""
        logger.info(f"Network online signal, probing in {self.settle_delay}s")
        self._schedule_probe(self.settle_delay)

    def notify_network_offline(self):
        """Host reports the link is gone; confirm with an immediate probe."""
        logger.info("Network offline signal, probing now")
        self._schedule_probe(0)

    async def check_now(self) -> ConnectionStatus:
        """Probe the API and apply the result."""
        healthy = await self.gateway.probe_health()
        await self._apply(ConnectionStatus.ONLINE if healthy else ConnectionStatus.OFFLINE)
        return self._state

    async def _poll_loop(self):
        while True:
            await asyncio.sleep(self.poll_interval)
            try:
                await self.check_now()
            except Exception as e:
                logger.error(f"Connection check failed, polling continues: {e!r}")

    def _schedule_probe(self, delay: float):
        if self._stopped:
            return
        task = asyncio.create_task(self._delayed_probe(delay))
        self._signal_tasks.add(task)
        task.add_done_callback(self._signal_tasks.discard)

    async def _delayed_probe(self, delay: float):
        if delay:
            await asyncio.sleep(delay)
        try:
            await self.check_now()
        except Exception as e:
            logger.error(f"Connection check after network signal failed: {e!r}")

    async def _apply(self, new_state: ConnectionStatus):
        if self._stopped or new_state == self._state:
            return

        old_state = self._state
        self._state = new_state
        logger.info(f"Connection state {old_state.value} -> {new_state.value}")

        for listener in list(self._listeners):
            try:
                listener(old_state, new_state)
            except Exception as e:
                logger.error(f"Connection listener {listener!r} failed: {e}")

        if (
            old_state == ConnectionStatus.OFFLINE
            and new_state == ConnectionStatus.ONLINE
            and self.record_store is not None
        ):
            await self._refresh_records()

    async def _refresh_records(self):
        try:
            await self.record_store.load()
            logger.info("Records refreshed after reconnect")
        except DdnsPanelError as e:
            logger.warning(f"Refreshing records after reconnect failed: {e}")
