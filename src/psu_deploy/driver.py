"""Deployment Driver - provision PSU sensors device by device.

Per device:
    Start -> PresenceChecked -> {SkippedExisting | TargetsDiscovered}
          -> {SkippedEmpty | SensorsAttempted} -> Recorded

Exactly one DeploymentOutcome is recorded per device. Failures are contained:
a discovery error marks only that device as Error, a creation error skips
only that PSU. The run is safe to repeat because devices that already carry
PSU sensors are skipped.
"""

from __future__ import annotations

import logging
import re
import time
from collections.abc import Callable, Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol

from rich.markup import escape

from psu_deploy.classifier import classify
from psu_deploy.matcher import match
from psu_deploy.models import (
    DeploymentOutcome,
    DeploymentStatus,
    Device,
    DeviceClassification,
    InventoryTarget,
    PsuCandidate,
    SensorInfo,
    SensorSpec,
)
from psu_deploy.presence import has_existing_psu_sensors
from psu_deploy.reporter import RunReporter

logger = logging.getLogger(__name__)

MSG_EXISTING = "PSU sensors already exist"
MSG_NO_TARGETS = "No PSU targets discovered"

# "Power Supply #2 (rear)" -> "PowerSupply2 (rear)"
_VERBOSE_UNIT = re.compile(r"Power Supply #(\d+)")


class MonitoringClient(Protocol):
    """The PRTG operations the driver depends on."""

    def list_sensors(self, device: Device) -> list[SensorInfo]: ...

    def discover_targets(
        self, device: Device, library: str, timeout: float = ...
    ) -> list[InventoryTarget]: ...

    def create_sensor(self, device: Device, spec: SensorSpec) -> int: ...


@dataclass
class DeploymentOptions:
    dry_run: bool = False
    max_devices: int | None = None
    psu_limit: int | None = None
    library: str = "ENTITY-STATE-MIB.oidlib"
    discovery_timeout: float = 600
    creation_delay: float = 2.0
    sensor_priority: int = 3
    sensor_tags: str = "psu powersupply snmplibrary"


def sensor_name(label: str) -> str:
    """Display name for the ENTITY-STATE sensor of one unit.

    Verbose labels are folded to the compact "PowerSupply<N>" form; names
    must match the existing-sensor check or re-runs would duplicate sensors.
    """
    compact = _VERBOSE_UNIT.sub(r"PowerSupply\1", label)
    return f"ent state: {compact} - ent state oper"


def select_devices(devices: Iterable[Device], max_devices: int | None = None) -> list[Device]:
    """Sort by name and keep the first `max_devices` (None or 0 keeps all)."""
    ordered = sorted(devices, key=lambda d: (d.name.lower(), d.id))
    if max_devices:
        return ordered[:max_devices]
    return ordered


class DeploymentDriver:
    """Runs the per-device deployment and feeds outcomes to a RunReporter."""

    def __init__(
        self,
        client: MonitoringClient,
        options: DeploymentOptions | None = None,
        reporter: RunReporter | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.client = client
        self.options = options or DeploymentOptions()
        self.reporter = reporter if reporter is not None else RunReporter()
        self._sleep = sleep
        self._clock = clock

    def run(self, devices: Sequence[Device]) -> RunReporter:
        selected = select_devices(devices, self.options.max_devices)
        if len(selected) < len(devices):
            logger.info(f"Limiting run to {len(selected)} of {len(devices)} devices")

        for index, device in enumerate(selected, start=1):
            logger.info(f"[bold]\\[{index}/{len(selected)}][/bold] {escape(device.name)} (id {device.id})")
            self.reporter.add(self.deploy_device(device))
        return self.reporter

    def deploy_device(self, device: Device) -> DeploymentOutcome:
        info = classify(device.name)

        try:
            existing = [s.name for s in self.client.list_sensors(device)]
        except Exception as e:
            logger.error(f"  [red]Sensor lookup failed:[/red] {escape(str(e))}")
            return self._outcome(device, info, DeploymentStatus.ERROR, str(e))

        if has_existing_psu_sensors(existing):
            logger.info(f"  [yellow]Skipped:[/yellow] {MSG_EXISTING}")
            return self._outcome(device, info, DeploymentStatus.SKIPPED, MSG_EXISTING)

        try:
            targets = self.client.discover_targets(
                device, self.options.library, timeout=self.options.discovery_timeout
            )
        except Exception as e:
            logger.error(f"  [red]Discovery failed:[/red] {escape(str(e))}")
            return self._outcome(device, info, DeploymentStatus.ERROR, str(e))

        candidates = match(targets, info.vendor)
        logger.info(f"  Found {len(candidates)} PSU target(s) in {len(targets)} discovered row(s)")
        if not candidates:
            return self._outcome(device, info, DeploymentStatus.SKIPPED, MSG_NO_TARGETS)

        found = len(candidates)
        if self.options.psu_limit is not None and found > self.options.psu_limit:
            logger.info(f"  Limiting to the first {self.options.psu_limit} PSU(s)")
            candidates = candidates[: self.options.psu_limit]

        if self.options.dry_run:
            for candidate in candidates:
                logger.info(f"  [cyan]WhatIf:[/cyan] would create '{escape(sensor_name(candidate.label))}'")
            return self._outcome(
                device,
                info,
                DeploymentStatus.NO_ACTION,
                f"WhatIf: would create {len(candidates)} PSU sensors",
                psus_found=found,
            )

        sensor_ids = self._create_sensors(device, candidates)
        failed = len(candidates) - len(sensor_ids)
        if sensor_ids:
            status = DeploymentStatus.SUCCESS
            message = f"Created {len(sensor_ids)} of {len(candidates)} PSU sensors"
        else:
            status = DeploymentStatus.NO_ACTION
            message = f"No sensors created ({failed} failed)"
        return self._outcome(
            device, info, status, message, psus_found=found, sensor_ids=sensor_ids
        )

    def _create_sensors(self, device: Device, candidates: Sequence[PsuCandidate]) -> list[int]:
        sensor_ids: list[int] = []
        for index, candidate in enumerate(candidates):
            if index:
                self._sleep(self.options.creation_delay)

            spec = SensorSpec(
                name=sensor_name(candidate.label),
                target=candidate.target,
                library=self.options.library,
                tags=self.options.sensor_tags,
                priority=self.options.sensor_priority,
            )
            try:
                sensor_id = self.client.create_sensor(device, spec)
            except Exception as e:
                logger.error(f"  [red]Failed[/red] {candidate.label}: {escape(str(e))}")
                continue
            logger.info(f"  [green]Created[/green] {escape(spec.name)} (id {sensor_id})")
            sensor_ids.append(sensor_id)
        return sensor_ids

    def _outcome(
        self,
        device: Device,
        info: DeviceClassification,
        status: DeploymentStatus,
        message: str,
        psus_found: int = 0,
        sensor_ids: Sequence[int] = (),
    ) -> DeploymentOutcome:
        return DeploymentOutcome(
            timestamp=self._clock(),
            device_id=device.id,
            device_name=device.name,
            vendor=info.vendor.value,
            model=info.model,
            group=device.group,
            psus_found=psus_found,
            sensors_created=len(sensor_ids),
            sensor_ids=tuple(sensor_ids),
            status=status,
            message=message,
        )
