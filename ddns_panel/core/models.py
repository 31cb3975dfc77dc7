"""
Record models shared by the panel components.

The remote API speaks in plain ``RawConfig`` dictionaries; everything inside
the panel works with :class:`DnsRecordConfig` and converts at the edges.
"""

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional

from ..exceptions import ApiError

UNKNOWN_IP = "unknown"
DEFAULT_UPDATE_INTERVAL = 300


class IpType(str, Enum):
    IPV4 = "ipv4"
    IPV6 = "ipv6"

    @property
    def record_type(self) -> str:
        return "A" if self is IpType.IPV4 else "AAAA"

    @classmethod
    def from_record_type(cls, record_type: str) -> "IpType":
        return cls.IPV4 if (record_type or "A").upper() == "A" else cls.IPV6


class RecordStatus(str, Enum):
    ACTIVE = "active"
    UPDATING = "updating"
    ERROR = "error"
    UNKNOWN = "unknown"


@dataclass
class DnsRecordConfig:
    """A DDNS binding between one DNS record and the host's address."""

    zone_id: str
    api_token: str
    record_name: str
    record_id: Optional[str] = None
    ip_type: IpType = IpType.IPV4
    current_ip: str = UNKNOWN_IP
    update_interval: int = DEFAULT_UPDATE_INTERVAL
    last_update_time: Optional[str] = None
    status: RecordStatus = field(default=RecordStatus.UNKNOWN, compare=False)

    def __post_init__(self):
        self.ip_type = IpType(self.ip_type)
        self.status = RecordStatus(self.status)

    @property
    def record_type(self) -> str:
        """DNS record type, always derived from ``ip_type``."""
        return self.ip_type.record_type

    @property
    def is_pending(self) -> bool:
        return not self.record_id

    @classmethod
    def from_raw(cls, raw: Dict[str, Any]) -> "DnsRecordConfig":
        """
        Build a config from the API representation, filling in defaults.

        Raises:
            ApiError: The representation cannot be converted
        """
        try:
            remote_status = raw.get("status")
            if remote_status is None:
                status = RecordStatus.UNKNOWN
            elif remote_status == RecordStatus.ERROR.value:
                status = RecordStatus.ERROR
            else:
                status = RecordStatus.ACTIVE

            interval = raw.get("update_interval") or DEFAULT_UPDATE_INTERVAL
            return cls(
                record_id=raw.get("record_id") or None,
                zone_id=raw.get("zone_id") or "",
                api_token=raw.get("api_token") or "",
                record_name=raw.get("record_name") or "",
                ip_type=raw.get("ip_type") or IpType.IPV4,
                current_ip=raw.get("current_ip") or UNKNOWN_IP,
                update_interval=int(interval),
                last_update_time=raw.get("last_update_time") or None,
                status=status,
            )
        except (AttributeError, TypeError, ValueError) as e:
            raise ApiError(200, raw, message=f"Malformed record config from API: {e}") from e

    def to_payload(self) -> Dict[str, Any]:
        """Representation sent to ``POST /configs`` and ``/configs/validate``."""
        payload = {
            "zone_id": self.zone_id,
            "api_token": self.api_token,
            "record_name": self.record_name,
            "ip_type": self.ip_type.value,
            "update_interval": self.update_interval,
        }
        if self.record_id:
            payload = {"record_id": self.record_id, **payload}
        return payload

    def copy(self, **changes) -> "DnsRecordConfig":
        return replace(self, **changes)
