"""
Request Gateway - HTTP execution against the remote DDNS API

Every request made by the panel goes through :class:`RequestGateway`, which
retries transport failures a bounded number of times and tracks whether the
API was reachable the last time it was probed.
"""

import asyncio
import logging
from enum import Enum
from typing import Any, Dict, Optional

import httpx

from ..exceptions import ApiError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_MAX_ATTEMPTS = 3
DEFAULT_RETRY_DELAY = 1.0
DEFAULT_TIMEOUT = 10.0


class ConnectionStatus(str, Enum):
    UNKNOWN = "unknown"
    ONLINE = "online"
    OFFLINE = "offline"


class RequestGateway:
    """Executes API calls with bounded retry and exposes a health probe."""

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        max_attempts: int = DEFAULT_MAX_ATTEMPTS,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the gateway; ``transport`` replaces the network layer."""
        if max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")

        self.base_url = base_url.rstrip("/")
        self.max_attempts = max_attempts
        self.retry_delay = retry_delay
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )
        self._connection_status = ConnectionStatus.UNKNOWN

    @property
    def connection_status(self) -> ConnectionStatus:
        """Result of the most recent health probe."""
        return self._connection_status

    def reset_connection_status(self):
        self._connection_status = ConnectionStatus.UNKNOWN

    async def call(
        self,
        endpoint: str,
        method: str = "GET",
        json: Any = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Any:
        """
        Issue a request and return the decoded JSON body.

        Args:
            endpoint: Path relative to the API base URL, e.g. ``/configs``
            method: HTTP method
            json: Optional JSON body
            headers: Optional extra request headers

        Returns:
            Decoded JSON body, or None for an empty body

        Raises:
            ApiError: The API responded with a non-success status
            TransportError: No response after ``max_attempts`` attempts
        """
        last_error = None

        for attempt in range(1, self.max_attempts + 1):
            try:
                response = await self._client.request(
                    method, endpoint, json=json, headers=headers
                )
            except httpx.TransportError as e:
                last_error = e
                logger.warning(
                    f"{method} {endpoint} failed (attempt {attempt}/{self.max_attempts}): {e!r}"
                )
                if attempt < self.max_attempts:
                    await asyncio.sleep(self.retry_delay)
                continue

            return self._decode(method, endpoint, response)

        logger.error(f"{method} {endpoint} gave up after {self.max_attempts} attempts")
        raise TransportError(
            f"No response from {self.base_url}{endpoint} after "
            f"{self.max_attempts} attempts: {last_error}",
            attempts=self.max_attempts,
        ) from last_error

    def _decode(self, method: str, endpoint: str, response: httpx.Response) -> Any:
        if not response.is_success:
            try:
                body = response.json()
            except ValueError:
                body = response.text
            logger.error(f"{method} {endpoint} -> {response.status_code}: {body}")
            raise ApiError(response.status_code, body)

        logger.debug(f"{method} {endpoint} -> {response.status_code}")
        if not response.content:
            return None
        try:
            return response.json()
        except ValueError:
            raise ApiError(
                response.status_code,
                response.text,
                message=f"Invalid JSON in response to {method} {endpoint}",
            )

    async def probe_health(self) -> bool:
        """Single uncached request to ``/health``; never raises."""
        try:
            response = await self._client.get(
                "/health", headers={"Cache-Control": "no-cache"}
            )
            healthy = response.is_success
            if not healthy:
                logger.warning(f"Health probe returned HTTP {response.status_code}")
        except httpx.HTTPError as e:
            logger.warning(f"Health probe failed: {e!r}")
            healthy = False

        self._connection_status = (
            ConnectionStatus.ONLINE if healthy else ConnectionStatus.OFFLINE
        )
        return healthy

    async def aclose(self):
        await self._client.aclose()

    async def __aenter__(self) -> "RequestGateway":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.aclose()
