"""
Utility functions and helpers.

This package contains the local validation rules applied to
record configurations before they reach the remote API.
"""

from .validators import (
    mask_token,
    validate_fqdn,
    validate_ipv4,
    validate_ipv6,
    validate_record_config,
    validate_update_interval,
)

__all__ = [
    "mask_token",
    "validate_fqdn",
    "validate_ipv4",
    "validate_ipv6",
    "validate_record_config",
    "validate_update_interval",
]
