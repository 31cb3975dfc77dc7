"""
DDNS Panel - Control panel core for a dynamic-DNS updater

Keeps a local view of DDNS record bindings in sync with the remote
updater's API, tracks API connectivity and guides first-time setup.
"""

__version__ = "1.0.0"
__author__ = "DDNS Panel Team"
__description__ = "Control panel core for a dynamic-DNS updater"

from .core.panel import ControlPanel, OperationResult
from .core.record_store import RecordStore
from .providers.ddns_client import DdnsClient

__all__ = [
    "ControlPanel",
    "DdnsClient",
    "OperationResult",
    "RecordStore",
]
