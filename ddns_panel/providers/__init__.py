"""
Remote API access.

This package contains the request gateway, the typed DDNS API client
and an in-memory mock of the API for tests and demonstrations.
"""

from .ddns_client import DdnsClient
from .gateway import ConnectionStatus, RequestGateway
from .mock_provider import MockDdnsApi

__all__ = ["ConnectionStatus", "DdnsClient", "MockDdnsApi", "RequestGateway"]
