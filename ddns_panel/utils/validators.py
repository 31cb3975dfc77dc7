"""
Validators - Local input validation for DDNS record configurations

This module provides the checks the panel enforces before a configuration
is ever sent to the remote API.
"""

import ipaddress
import logging
import re
from typing import List

logger = logging.getLogger(__name__)

MIN_UPDATE_INTERVAL = 60


def validate_fqdn(fqdn: str) -> bool:
    """
    Validate Fully Qualified Domain Name (FQDN).

    A single trailing dot is accepted, as is a leading wildcard label.

    Args:
        fqdn: The FQDN to validate

    Returns:
        True if valid, False otherwise
    """
    if not fqdn or not isinstance(fqdn, str):
        return False

    if fqdn.endswith("."):
        fqdn = fqdn[:-1]

    # Check length
    if len(fqdn) > 253:
        logger.warning(f"FQDN too long: {fqdn}")
        return False

    labels = fqdn.split(".")

    if len(labels) < 2:
        logger.warning(f"FQDN must have at least 2 labels: {fqdn}")
        return False

    # Check for empty labels (consecutive dots)
    if any(label == "" for label in labels):
        logger.warning(f"FQDN contains empty labels: {fqdn}")
        return False

    for i, label in enumerate(labels):
        if i == 0 and label == "*":
            continue
        if not _validate_label(label):
            logger.warning(f"Invalid label '{label}' in FQDN: {fqdn}")
            return False

    return True


def _validate_label(label: str) -> bool:
    """
    Validate a single domain label.

    Args:
        label: The label to validate

    Returns:
        True if valid, False otherwise
    """
    if len(label) == 0 or len(label) > 63:
        return False

    # Letters, digits, hyphens and underscores; no hyphen at either end
    if not re.match(r"^[a-zA-Z0-9_]([a-zA-Z0-9_-]*[a-zA-Z0-9_])?$", label):
        return False

    return True


def validate_ipv4(ipv4: str) -> bool:
    """Return True when ``ipv4`` is a dotted-quad IPv4 address."""
    if not ipv4 or not isinstance(ipv4, str):
        return False

    try:
        ipaddress.IPv4Address(ipv4.strip())
        return True
    except ipaddress.AddressValueError:
        logger.warning(f"Invalid IPv4 address: {ipv4}")
        return False


def validate_ipv6(ipv6: str) -> bool:
    """Return True when ``ipv6`` is a valid IPv6 address."""
    if not ipv6 or not isinstance(ipv6, str):
        return False

    try:
        ipaddress.IPv6Address(ipv6.strip())
        return True
    except ipaddress.AddressValueError:
        logger.warning(f"Invalid IPv6 address: {ipv6}")
        return False


def validate_update_interval(interval) -> bool:
    """Update intervals are whole seconds and never shorter than a minute."""
    if isinstance(interval, bool) or not isinstance(interval, int):
        return False
    return interval >= MIN_UPDATE_INTERVAL


def validate_record_config(config) -> List[str]:
    """
    Validate a DnsRecordConfig and return any validation errors.

    Args:
        config: The configuration to check

    Returns:
        List of human-readable error messages, empty when valid
    """
    errors = []

    if not (config.zone_id or "").strip():
        errors.append("Zone ID is required")

    if not (config.api_token or "").strip():
        errors.append("API token is required")

    if not (config.record_name or "").strip():
        errors.append("Record name is required")
    elif not validate_fqdn(config.record_name.strip()):
        errors.append(f"Record name '{config.record_name}' is not a valid FQDN")

    if not validate_update_interval(config.update_interval):
        errors.append(
            f"Update interval must be at least {MIN_UPDATE_INTERVAL} seconds, "
            f"got {config.update_interval!r}"
        )

    return errors


def mask_token(token: str) -> str:
    """Render a credential without revealing it."""
    if not token:
        return ""
    if len(token) <= 8:
        return "*" * len(token)
    return f"{token[:4]}{'*' * (len(token) - 8)}{token[-4:]}"
