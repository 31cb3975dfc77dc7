"""
Core panel functionality.

This package contains the record cache, connection tracking, the setup
wizard and the facade that ties them together.
"""

from .connection_monitor import ConnectionMonitor
from .models import DnsRecordConfig, IpType, RecordStatus
from .panel import ControlPanel, OperationResult
from .record_store import RecordStore
from .setup_wizard import SetupWizard, WizardState, WizardStep

__all__ = [
    "ConnectionMonitor",
    "ControlPanel",
    "DnsRecordConfig",
    "IpType",
    "OperationResult",
    "RecordStatus",
    "RecordStore",
    "SetupWizard",
    "WizardState",
    "WizardStep",
]
