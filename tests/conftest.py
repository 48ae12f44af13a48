"""Pytest configuration and shared fixtures.

Adds `src/` to `sys.path` so tests can import the project package
without requiring installation.
"""

import os
import sys
from datetime import datetime

import pytest

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
SRC_PATH = os.path.join(PROJECT_ROOT, "src")
if SRC_PATH not in sys.path:
    sys.path.insert(0, SRC_PATH)

from psu_deploy.core.exceptions import DeviceNotFoundError, SensorCreationError  # noqa: E402
from psu_deploy.core.settings import EnvSettings  # noqa: E402
from psu_deploy.models import Device, InventoryTarget, SensorInfo  # noqa: E402

OPER = "1.3.6.1.2.1.131.1.1.1.3"
ADMIN = "1.3.6.1.2.1.131.1.1.1.2"


def row(oid: str, *props: str) -> InventoryTarget:
    """Build a discovery row the way PRTG returns it (OID first)."""
    return InventoryTarget(value=oid, properties=(oid, *props))


class FakePrtgClient:
    """In-memory stand-in for PrtgClient that records every call."""

    def __init__(
        self,
        devices=None,
        sensors=None,
        targets=None,
        discovery_errors=None,
        failing_labels=(),
    ):
        self.devices = list(devices or [])
        self.sensors = {k: list(v) for k, v in (sensors or {}).items()}
        self.targets = targets or {}
        self.discovery_errors = discovery_errors or {}
        self.failing_labels = set(failing_labels)
        self.discover_calls = []
        self.create_calls = []
        self.next_id = 5000
        self.closed = False

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        self.closed = True

    def list_devices(self, name_filters=None):
        return list(self.devices)

    def get_device(self, device_id):
        for device in self.devices:
            if device.id == device_id:
                return device
        raise DeviceNotFoundError(device_id)

    def list_sensors(self, device):
        return list(self.sensors.get(device.id, []))

    def discover_targets(self, device, library, timeout=600):
        self.discover_calls.append((device.id, library, timeout))
        if device.id in self.discovery_errors:
            raise self.discovery_errors[device.id]
        return list(self.targets.get(device.id, []))

    def create_sensor(self, device, spec):
        self.create_calls.append((device.id, spec))
        if any(label in spec.name for label in self.failing_labels):
            raise SensorCreationError(f"PRTG rejected sensor '{spec.name}'", 500)
        self.next_id += 1
        self.sensors.setdefault(device.id, []).append(SensorInfo(self.next_id, spec.name))
        return self.next_id


@pytest.fixture
def arista_device() -> Device:
    return Device(id=2045, name="Arista 7050-48 core-sw1", group="Local Probe > Datacenter A")


@pytest.fixture
def palo_device() -> Device:
    return Device(id=3011, name="Palo Alto PA-3220 edge-fw1", group="Local Probe > Firewalls")


@pytest.fixture
def arista_targets() -> list[InventoryTarget]:
    """The three-row example: two PSU oper rows and a fan row."""
    return [
        row(f"{OPER}.1000", "PowerSupply1", "Power supply slot 1"),
        row(f"{OPER}.2000", "PowerSupply2", "Power supply slot 2"),
        row(f"{OPER}.1210", "Fan1", "Fan tray 1"),
    ]


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2026, 10, 19, 8, 30, 0)


@pytest.fixture
def env_settings(tmp_path) -> EnvSettings:
    """Settings isolated from any .env file on the machine."""
    return EnvSettings(
        _env_file=None,
        prtg_username="prtgadmin",
        prtg_password="secret",
        report_dir=str(tmp_path / "reports"),
        log_file="",
        creation_delay=0,
    )
