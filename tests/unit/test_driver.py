"""
Unit tests for the deployment driver.

Uses an in-memory PRTG client so every path of the per-device state
machine can be exercised without a server.
"""

from datetime import datetime
from unittest.mock import Mock

import pytest

from conftest import OPER, FakePrtgClient, row
from psu_deploy.core.exceptions import DiscoveryTimeoutError, PrtgApiError
from psu_deploy.driver import (
    MSG_EXISTING,
    MSG_NO_TARGETS,
    DeploymentDriver,
    DeploymentOptions,
    select_devices,
    sensor_name,
)
from psu_deploy.models import DeploymentStatus, Device, SensorInfo
from psu_deploy.presence import has_existing_psu_sensors
from psu_deploy.reporter import RunReporter


def make_driver(client, sleep=None, clock=None, **options):
    return DeploymentDriver(
        client,
        DeploymentOptions(**options),
        sleep=sleep or Mock(),
        clock=clock or (lambda: datetime(2026, 10, 19)),
    )


# =============================================================================
# Single device
# =============================================================================


class TestDeployDevice:
    """Tests for DeploymentDriver.deploy_device."""

    def test_example_two_psus_created(self, arista_device, arista_targets, fixed_clock):
        """Test the Arista example creates two sensors in PSU order."""
        client = FakePrtgClient(targets={arista_device.id: arista_targets})
        outcome = make_driver(client, clock=fixed_clock).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.SUCCESS
        assert outcome.psus_found == 2
        assert outcome.sensors_created == 2
        assert outcome.sensor_ids == (5001, 5002)
        assert outcome.vendor == "Arista"
        assert outcome.model == "7050-48"
        assert outcome.group == "Local Probe > Datacenter A"
        assert outcome.timestamp == fixed_clock()
        assert [spec.name for _, spec in client.create_calls] == [
            "ent state: PowerSupply1 - ent state oper",
            "ent state: PowerSupply2 - ent state oper",
        ]

    def test_sensor_spec_contents(self, arista_device, arista_targets):
        """Test the creation parameters sent for each PSU."""
        client = FakePrtgClient(targets={arista_device.id: arista_targets})
        make_driver(
            client, library="ENTITY-STATE-MIB.oidlib", sensor_priority=4
        ).deploy_device(arista_device)

        _, spec = client.create_calls[0]
        assert spec.sensor_type == "snmplibrary"
        assert spec.library == "ENTITY-STATE-MIB.oidlib"
        assert spec.tags == "psu powersupply snmplibrary"
        assert spec.priority == 4
        assert spec.interface_number == 1
        assert spec.target.raw == f"{OPER}.1000|PowerSupply1|Power supply slot 1"

    def test_existing_sensors_skip(self, arista_device, arista_targets):
        """Test an already provisioned device is skipped without discovery."""
        client = FakePrtgClient(
            sensors={arista_device.id: [SensorInfo(10, "ent state: PowerSupply1 - ent state oper")]},
            targets={arista_device.id: arista_targets},
        )
        outcome = make_driver(client).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.SKIPPED
        assert outcome.message == MSG_EXISTING
        assert client.create_calls == []
        assert client.discover_calls == []

    def test_rerun_is_idempotent(self, arista_device, arista_targets):
        """Test a second run against the same device creates nothing."""
        client = FakePrtgClient(targets={arista_device.id: arista_targets})
        driver = make_driver(client)

        first = driver.deploy_device(arista_device)
        second = driver.deploy_device(arista_device)

        assert first.status is DeploymentStatus.SUCCESS
        assert second.status is DeploymentStatus.SKIPPED
        assert len(client.create_calls) == 2

    def test_rerun_is_idempotent_for_verbose_labels(self, palo_device):
        """Test Palo Alto style labels are detected as existing on the next run."""
        targets = [
            row(f"{OPER}.1", "Power Supply #1 (left)"),
            row(f"{OPER}.2", "Power Supply #2 (left)"),
        ]
        client = FakePrtgClient(targets={palo_device.id: targets})
        driver = make_driver(client)

        first = driver.deploy_device(palo_device)
        second = driver.deploy_device(palo_device)

        assert first.status is DeploymentStatus.SUCCESS
        assert second.status is DeploymentStatus.SKIPPED
        assert second.message == MSG_EXISTING
        assert len(client.create_calls) == 2
        assert [spec.name for _, spec in client.create_calls] == [
            "ent state: PowerSupply1 (left) - ent state oper",
            "ent state: PowerSupply2 (left) - ent state oper",
        ]

    def test_no_targets_skipped(self, arista_device):
        """Test zero matching targets records Skipped with a message."""
        client = FakePrtgClient(targets={arista_device.id: [row(f"{OPER}.1210", "Fan1")]})
        outcome = make_driver(client).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.SKIPPED
        assert outcome.message == MSG_NO_TARGETS == "No PSU targets discovered"
        assert outcome.psus_found == 0

    def test_partial_failure_is_success(self, arista_device, arista_targets):
        """Test one failed creation still yields Success with one sensor."""
        client = FakePrtgClient(
            targets={arista_device.id: arista_targets}, failing_labels={"PowerSupply1"}
        )
        outcome = make_driver(client).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.SUCCESS
        assert outcome.psus_found == 2
        assert outcome.sensors_created == 1
        assert len(client.create_calls) == 2

    def test_all_creations_fail_is_no_action(self, arista_device, arista_targets):
        client = FakePrtgClient(
            targets={arista_device.id: arista_targets},
            failing_labels={"PowerSupply1", "PowerSupply2"},
        )
        outcome = make_driver(client).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.NO_ACTION
        assert outcome.sensors_created == 0
        assert outcome.sensor_ids == ()
        assert "2 failed" in outcome.message

    def test_unexpected_creation_exception_contained(self, arista_device, arista_targets):
        """Test non-API exceptions during creation do not abort the device."""
        client = FakePrtgClient(targets={arista_device.id: arista_targets})
        client.create_sensor = Mock(side_effect=[RuntimeError("boom"), 77])
        outcome = make_driver(client).deploy_device(arista_device)

        assert outcome.sensors_created == 1
        assert outcome.sensor_ids == (77,)

    def test_discovery_error_recorded(self, arista_device):
        """Test a discovery timeout marks the device as Error."""
        client = FakePrtgClient(
            discovery_errors={arista_device.id: DiscoveryTimeoutError("timed out after 600s")}
        )
        outcome = make_driver(client).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.ERROR
        assert outcome.message == "timed out after 600s"
        assert client.create_calls == []

    def test_presence_check_error_recorded(self, arista_device):
        client = FakePrtgClient()
        client.list_sensors = Mock(side_effect=PrtgApiError("Authentication failed", 401))
        outcome = make_driver(client).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.ERROR
        assert "Authentication failed" in outcome.message

    def test_dry_run_creates_nothing(self, arista_device, arista_targets):
        """Test WhatIf still discovers and counts but never creates."""
        client = FakePrtgClient(targets={arista_device.id: arista_targets})
        outcome = make_driver(client, dry_run=True).deploy_device(arista_device)

        assert outcome.status is DeploymentStatus.NO_ACTION
        assert outcome.psus_found == 2
        assert outcome.sensors_created == 0
        assert client.create_calls == []
        assert len(client.discover_calls) == 1

    def test_psu_limit_caps_candidates(self, palo_device):
        targets = [row(f"{OPER}.{i}", f"Power Supply #{i}") for i in (1, 2, 3)]
        client = FakePrtgClient(targets={palo_device.id: targets})
        outcome = make_driver(client, psu_limit=2).deploy_device(palo_device)

        assert outcome.psus_found == 3
        assert outcome.sensors_created == 2
        assert [spec.name for _, spec in client.create_calls] == [
            sensor_name("Power Supply #1"),
            sensor_name("Power Supply #2"),
        ]

    def test_pacing_between_creations(self, palo_device):
        """Test the delay is applied between calls, not before or after."""
        targets = [row(f"{OPER}.{i}", f"Power Supply #{i}") for i in (1, 2, 3)]
        client = FakePrtgClient(targets={palo_device.id: targets})
        sleep = Mock()
        make_driver(client, sleep=sleep, creation_delay=1.5).deploy_device(palo_device)

        assert sleep.call_count == 2
        sleep.assert_called_with(1.5)

    def test_discovery_arguments(self, arista_device):
        client = FakePrtgClient()
        make_driver(client, library="custom.oidlib", discovery_timeout=900).deploy_device(arista_device)
        assert client.discover_calls == [(arista_device.id, "custom.oidlib", 900)]


# =============================================================================
# Whole run
# =============================================================================


class TestRun:
    """Tests for DeploymentDriver.run."""

    def test_errors_do_not_stop_the_run(self, arista_device, palo_device, arista_targets):
        client = FakePrtgClient(
            targets={arista_device.id: arista_targets},
            discovery_errors={palo_device.id: PrtgApiError("unreachable")},
        )
        reporter = make_driver(client).run([palo_device, arista_device])

        assert [o.status for o in reporter.outcomes] == [
            DeploymentStatus.SUCCESS,
            DeploymentStatus.ERROR,
        ]
        assert reporter.failed == 1
        assert reporter.total_sensors == 2

    def test_one_outcome_per_device(self, arista_device, palo_device):
        client = FakePrtgClient()
        reporter = make_driver(client).run([arista_device, palo_device])
        assert len(reporter.outcomes) == 2

    def test_max_devices(self):
        devices = [Device(i, name) for i, name in enumerate(["Arista c", "Arista a", "Arista b"])]
        client = FakePrtgClient()
        reporter = make_driver(client, max_devices=2).run(devices)
        assert [o.device_name for o in reporter.outcomes] == ["Arista a", "Arista b"]

    def test_uses_given_reporter(self, arista_device):
        reporter = RunReporter()
        driver = DeploymentDriver(FakePrtgClient(), reporter=reporter, sleep=Mock())
        assert driver.run([arista_device]) is reporter


class TestSensorName:
    """Tests for sensor_name function."""

    @pytest.mark.parametrize(
        "label,expected",
        [
            ("PowerSupply1", "ent state: PowerSupply1 - ent state oper"),
            ("Power Supply #3", "ent state: PowerSupply3 - ent state oper"),
            ("Power Supply #12 (rear)", "ent state: PowerSupply12 (rear) - ent state oper"),
            ("PowerSupply", "ent state: PowerSupply - ent state oper"),
        ],
    )
    def test_names(self, label, expected):
        assert sensor_name(label) == expected

    @pytest.mark.parametrize("label", ["PowerSupply2", "Power Supply #2 (left)", "PowerSupply"])
    def test_names_pass_presence_check(self, label):
        assert has_existing_psu_sensors([sensor_name(label)])


class TestSelectDevices:
    """Tests for select_devices function."""

    def test_sorted_by_name(self):
        devices = [Device(2, "b"), Device(1, "a")]
        assert [d.id for d in select_devices(devices)] == [1, 2]

    @pytest.mark.parametrize("cap", [None, 0])
    def test_unlimited(self, cap):
        devices = [Device(i, f"d{i}") for i in range(5)]
        assert len(select_devices(devices, cap)) == 5

    def test_cap_larger_than_list(self):
        assert len(select_devices([Device(1, "a")], 10)) == 1
