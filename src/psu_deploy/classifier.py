"""Derive vendor and model tags from a PRTG device display name."""

import re

from psu_deploy.models import DeviceClassification, Vendor

# Devices are named "<Vendor> <Model> ..." in PRTG, e.g. "Arista 7050-48 core-sw1"
_VENDOR_PATTERNS: tuple[tuple[Vendor, re.Pattern[str]], ...] = (
    (Vendor.ARISTA, re.compile(r"^Arista\b\s*(\S+)?")),
    (Vendor.PALO_ALTO, re.compile(r"^Palo Alto\b\s*(\S+)?")),
)


def classify(device_name: str) -> DeviceClassification:
    """Return vendor and model for a device name.

    Examples:
        >>> classify("Arista 7050-48")
        DeviceClassification(vendor=<Vendor.ARISTA: 'Arista'>, model='7050-48')
        >>> classify("core-router-1").vendor
        <Vendor.UNKNOWN: 'Unknown'>
    """
    name = (device_name or "").strip()
    for vendor, pattern in _VENDOR_PATTERNS:
        m = pattern.match(name)
        if m:
            return DeviceClassification(vendor=vendor, model=m.group(1) or "Unknown")
    return DeviceClassification()
