"""
Mock DDNS API for testing and demonstration.

This module provides an in-memory implementation of the remote DDNS API,
served through ``httpx.MockTransport`` so the panel can run without a
server.
"""

import json
import logging
from collections import defaultdict, deque
from datetime import datetime, timezone
from typing import Callable, Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)


class MockDdnsApi:
    """In-memory DDNS API speaking the same HTTP contract as the real one."""

    def __init__(self, configs: Optional[List[Dict]] = None):
        """Initialize the mock API with an optional starting config set."""
        self.configs = [dict(c) for c in configs or []]
        self.healthy = True
        self.reject_saves = False
        self.detected_ipv4 = "203.0.113.10"
        self.detected_ipv6 = "2001:db8::10"
        self.zones = [{"id": "z1", "name": "example.com"}]
        self.zone_records = {
            "z1": [{"id": "r1", "name": "a.example.com", "type": "A", "content": "203.0.113.1"}]
        }
        self.last_update = None
        self.requests = []  # (method, route, body)

        self._transport_failures = 0
        self._scripted = defaultdict(deque)
        self._routes: List[Tuple[str, str, Callable]] = [
            ("GET", "/health", self._health),
            ("POST", "/configs/validate", self._validate_config),
            ("GET", "/configs", self._get_configs),
            ("POST", "/configs", self._save_configs),
            ("POST", "/update", self._update),
            ("GET", "/status", self._status),
            ("GET", "/ip/v4", self._ipv4),
            ("GET", "/ip/v6", self._ipv6),
            ("POST", "/wizard/validate-token", self._validate_token),
            ("POST", "/wizard/get-records", self._get_zone_records),
        ]
        logger.info("Mock DDNS API initialized")

    def fail_transport(self, times: int = 1):
        """Make the next ``times`` requests fail without a response."""
        self._transport_failures += times

    def fail_next(self, route: str, status_code: int = 500, body: Optional[Dict] = None):
        """Answer the next request to ``route`` with a canned response."""
        self._scripted[route].append((status_code, body or {"success": False, "message": "Injected failure"}))

    def calls_to(self, route: str, method: Optional[str] = None) -> List[Optional[Dict]]:
        """Bodies of the requests received for one route."""
        return [
            body
            for m, r, body in self.requests
            if r == route and (method is None or m == method)
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        """Entry point used by ``httpx.MockTransport``."""
        if self._transport_failures > 0:
            self._transport_failures -= 1
            logger.info(f"Mock: dropping {request.method} {request.url.path}")
            raise httpx.ConnectError("Mock API unreachable", request=request)

        body = json.loads(request.content) if request.content else None
        for method, route, handler in self._routes:
            if request.method == method and request.url.path.endswith(route):
                self.requests.append((method, route, body))
                if self._scripted[route]:
                    status_code, scripted = self._scripted[route].popleft()
                    return httpx.Response(status_code, json=scripted)
                return handler(body)

        return httpx.Response(404, json={"success": False, "message": "Not found"})

    def _health(self, body) -> httpx.Response:
        if not self.healthy:
            return httpx.Response(503, json={"status": "unavailable"})
        return httpx.Response(200, json={"service": "Mock DDNS", "status": "operational"})

    def _get_configs(self, body) -> httpx.Response:
        configs = [{"status": "ok", **c} for c in self.configs]
        logger.info(f"Mock: Retrieved {len(configs)} configs")
        return httpx.Response(
            200,
            json={"success": True, "message": f"Loaded {len(configs)} configs", "configs": configs},
        )

    def _save_configs(self, body) -> httpx.Response:
        if self.reject_saves:
            return httpx.Response(200, json={"success": False, "message": "Saving is disabled"})

        previous = {c.get("record_id"): c for c in self.configs}
        saved = []
        for config in body.get("configs", []):
            kept = previous.get(config.get("record_id"), {})
            saved.append(
                {
                    **config,
                    "current_ip": kept.get("current_ip"),
                    "last_update_time": kept.get("last_update_time"),
                }
            )
        self.configs = saved
        logger.info(f"Mock: Saved {len(saved)} configs")
        return httpx.Response(
            200, json={"success": True, "message": f"Saved {len(saved)} configs"}
        )

    def _validate_config(self, body) -> httpx.Response:
        config = (body or {}).get("config", {})
        missing = [
            name
            for name in ("zone_id", "api_token", "record_name", "record_id")
            if not config.get(name)
        ]
        if missing:
            message = f"Missing fields: {', '.join(missing)}"
        elif int(config.get("update_interval") or 0) < 60:
            message = "Update interval must be at least 60 seconds"
        elif config.get("ip_type") not in ("ipv4", "ipv6"):
            message = f"Unsupported ip_type {config.get('ip_type')!r}"
        else:
            return httpx.Response(200, json={"success": True, "message": "Valid", "is_valid": True})
        return httpx.Response(200, json={"success": False, "message": message, "is_valid": False})

    def _update(self, body) -> httpx.Response:
        body = body or {}
        now = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")
        updated = []
        for config in self.configs:
            if body.get("domain") and config.get("record_name") != body["domain"]:
                continue
            if body.get("record_id") and config.get("record_id") != body["record_id"]:
                continue
            ip = self.detected_ipv6 if config.get("ip_type") == "ipv6" else self.detected_ipv4
            config["current_ip"] = ip
            config["last_update_time"] = now
            updated.append(config)

        if (body.get("domain") or body.get("record_id")) and not updated:
            return httpx.Response(
                400, json={"success": False, "message": "No matching record", "updated": False}
            )

        self.last_update = now
        return httpx.Response(
            200,
            json={
                "success": True,
                "message": f"Updated {len(updated)} records",
                "ip_address": updated[0]["current_ip"] if updated else None,
                "domain": body.get("domain"),
                "updated": bool(updated),
            },
        )

    def _status(self, body) -> httpx.Response:
        return httpx.Response(
            200,
            json={
                "success": True,
                "last_update": self.last_update,
                "config_count": len(self.configs),
            },
        )

    def _ipv4(self, body) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "ip": self.detected_ipv4})

    def _ipv6(self, body) -> httpx.Response:
        return httpx.Response(200, json={"success": True, "ip": self.detected_ipv6})

    def _validate_token(self, body) -> httpx.Response:
        if not (body or {}).get("token"):
            return httpx.Response(200, json={"success": False, "message": "Token is empty"})
        return httpx.Response(
            200, json={"success": True, "message": "Token is valid", "zones": self.zones}
        )

    def _get_zone_records(self, body) -> httpx.Response:
        zone_id = (body or {}).get("zone_id")
        if zone_id not in self.zone_records:
            return httpx.Response(200, json={"success": False, "message": f"Unknown zone {zone_id}"})
        return httpx.Response(
            200,
            json={"success": True, "message": "OK", "records": self.zone_records[zone_id]},
        )
