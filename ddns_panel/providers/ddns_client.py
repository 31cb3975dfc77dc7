"""
DDNS Client - Typed interface to the remote DDNS API

This module wraps each endpoint of the remote API and builds the
gateway it talks through from configuration, using either the real
network or the in-memory mock backend.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from ..exceptions import ApiError, ValidationError
from .gateway import DEFAULT_MAX_ATTEMPTS, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT, RequestGateway
from .mock_provider import MockDdnsApi

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://localhost:8080/api"


class DdnsClient:
    """Unified client for the DDNS API endpoints."""

    def __init__(self, config: Dict, gateway: Optional[RequestGateway] = None):
        """Initialize the client from configuration, or around an existing gateway."""
        self.config = config
        self.mock_api = None
        self.gateway = gateway or self._get_gateway()

    def _get_gateway(self) -> RequestGateway:
        """Build the request gateway selected by configuration."""
        api_config = self.config.get("api", {})
        retry_config = self.config.get("retry", {})
        backend = api_config.get("backend", "http")

        transport = None
        if backend == "mock":
            self.mock_api = MockDdnsApi()
            transport = httpx.MockTransport(self.mock_api.handle)
        elif backend != "http":
            logger.warning(f"Unknown backend '{backend}', using http")

        return RequestGateway(
            api_config.get("base_url", DEFAULT_BASE_URL),
            timeout=api_config.get("timeout", DEFAULT_TIMEOUT),
            max_attempts=retry_config.get("max_attempts", DEFAULT_MAX_ATTEMPTS),
            retry_delay=retry_config.get("delay_seconds", DEFAULT_RETRY_DELAY),
            transport=transport,
        )

    async def get_configs(self) -> List[Dict]:
        """Fetch every stored configuration."""
        body = self._expect_success(await self.gateway.call("/configs"), "Fetching configs")
        return body.get("configs") or []

    async def save_configs(self, configs: List[Dict]) -> Dict:
        """Replace the complete remote configuration set."""
        body = await self.gateway.call("/configs", method="POST", json={"configs": configs})
        return self._expect_success(body, "Saving configs")

    async def validate_config(self, config: Dict) -> Dict:
        """
        Ask the API whether a configuration is acceptable.

        Raises:
            ValidationError: The API answered with ``is_valid: false``
            ApiError: The request itself failed
        """
        body = await self.gateway.call(
            "/configs/validate", method="POST", json={"config": config}
        )
        if isinstance(body, dict) and body.get("is_valid") is False:
            raise ValidationError(body.get("message") or "Configuration was rejected")

        body = self._expect_success(body, "Validating config")
        if not body.get("is_valid", False):
            raise ApiError(200, body, message="Validating config failed: no verdict in response")
        return body

    async def trigger_update(
        self,
        domain: Optional[str] = None,
        record_id: Optional[str] = None,
        wait_for_result: bool = False,
    ) -> Dict:
        """Ask the remote updater to refresh now, optionally for one record."""
        request = {}
        if domain:
            request["domain"] = domain
        if record_id:
            request["record_id"] = record_id
        if wait_for_result:
            request["wait_for_result"] = True

        body = await self.gateway.call("/update", method="POST", json=request or None)
        return self._expect_success(body, "Triggering update")

    async def get_status(self) -> Dict:
        body = await self.gateway.call("/status")
        return self._expect_success(body, "Fetching status")

    async def get_ip(self, ip_type: str = "ipv4") -> Any:
        """Current address detected by the remote updater."""
        version = "v6" if ip_type == "ipv6" else "v4"
        return await self.gateway.call(f"/ip/{version}")

    async def validate_token(self, token: str) -> List[Dict]:
        """Check a provider token and list the zones it can manage."""
        body = await self.gateway.call(
            "/wizard/validate-token", method="POST", json={"token": token}
        )
        body = self._expect_success(body, "Validating token")
        return body.get("zones") or []

    async def get_zone_records(self, token: str, zone_id: str) -> List[Dict]:
        """List the DNS records of one zone."""
        body = await self.gateway.call(
            "/wizard/get-records",
            method="POST",
            json={"token": token, "zone_id": zone_id},
        )
        body = self._expect_success(body, "Fetching zone records")
        return body.get("records") or []

    async def aclose(self):
        await self.gateway.aclose()

    def _expect_success(self, body: Any, action: str) -> Dict:
        """The API reports some failures as HTTP 200 with ``success: false``."""
        if not isinstance(body, dict):
            raise ApiError(200, body, message=f"{action} failed: unexpected response")
        if not body.get("success", False):
            reason = body.get("message") or "no reason given"
            raise ApiError(200, body, message=f"{action} failed: {reason}")
        return body
