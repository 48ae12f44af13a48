"""Data model for PSU sensor deployment.

Devices, sensors and inventory targets are read from PRTG and never
modified here. Candidates live for one device pass; outcomes are frozen
records collected by the run reporter.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Vendor(str, Enum):
    """Vendors with a known PSU numbering scheme."""

    ARISTA = "Arista"
    PALO_ALTO = "PaloAlto"
    UNKNOWN = "Unknown"


class DeploymentStatus(str, Enum):
    """Terminal status of one device pass."""

    SUCCESS = "Success"
    SKIPPED = "Skipped"
    NO_ACTION = "NoAction"
    ERROR = "Error"


@dataclass(frozen=True)
class Device:
    """A PRTG device (switch, firewall)."""

    id: int
    name: str
    group: str = ""
    host: str = ""


@dataclass(frozen=True)
class SensorInfo:
    """An existing PRTG sensor on a device."""

    id: int
    name: str


@dataclass(frozen=True)
class InventoryTarget:
    """One row of an SNMP library discovery.

    `properties` is the full pipe-separated row as PRTG returns it, so the
    OID path normally appears again as its first element.
    """

    value: str
    properties: tuple[str, ...] = ()

    @property
    def description(self) -> str:
        """All properties joined into one searchable string."""
        return " ".join(self.properties)

    @property
    def raw(self) -> str:
        """Pipe-joined properties, the form addsensor5 expects."""
        return "|".join(self.properties)

    @classmethod
    def from_raw(cls, raw: str) -> InventoryTarget:
        properties = tuple(raw.split("|"))
        return cls(value=properties[0], properties=properties)


@dataclass(frozen=True)
class PsuCandidate:
    label: str
    sort_key: int
    target: InventoryTarget


@dataclass(frozen=True)
class DeviceClassification:
    vendor: Vendor = Vendor.UNKNOWN
    model: str = "Unknown"


@dataclass(frozen=True)
class SensorSpec:
    """Parameters for one SNMP library sensor."""

    name: str
    target: InventoryTarget
    library: str
    tags: str = "psu powersupply snmplibrary"
    priority: int = 3
    sensor_type: str = "snmplibrary"
    interface_number: int = 1

    def to_form(self, device_id: int) -> dict[str, str]:
        """Form body for PRTG's addsensor5.htm."""
        return {
            "id": str(device_id),
            "name_": self.name,
            "sensortype": self.sensor_type,
            "library_": self.library,
            "interfacenumber_": str(self.interface_number),
            "interfacenumber__check": self.target.raw,
            "tags_": self.tags,
            "priority_": str(self.priority),
        }


@dataclass(frozen=True)
class DeploymentOutcome:
    """Result of processing one device. Immutable once recorded."""

    timestamp: datetime
    device_id: int
    device_name: str
    vendor: str
    model: str
    group: str
    psus_found: int
    sensors_created: int
    status: DeploymentStatus
    message: str = ""
    sensor_ids: tuple[int, ...] = field(default_factory=tuple)

    def to_row(self) -> dict[str, str | int]:
        """Flat CSV row keyed by report column name."""
        return {
            "Timestamp": self.timestamp.strftime("%Y-%m-%d %H:%M:%S"),
            "DeviceId": self.device_id,
            "DeviceName": self.device_name,
            "Vendor": self.vendor,
            "Model": self.model,
            "Group": self.group,
            "PsusFound": self.psus_found,
            "SensorsCreated": self.sensors_created,
            "SensorIds": ",".join(str(i) for i in self.sensor_ids),
            "Status": self.status.value,
            "Message": self.message,
        }
