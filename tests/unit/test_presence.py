"""Unit tests for the existing PSU sensor check."""

from psu_deploy.presence import has_existing_psu_sensors


class TestHasExistingPsuSensors:
    """Tests for has_existing_psu_sensors function."""

    def test_prtg_default_name_detected(self):
        assert has_existing_psu_sensors(["Ping", "ent state: PowerSupply1 - ent state oper"])

    def test_arbitrary_text_between(self):
        assert has_existing_psu_sensors(["ent state (custom) PowerSupply2"])

    def test_no_psu_sensors(self):
        assert not has_existing_psu_sensors(["Ping", "SNMP Uptime", "ent state: Fan1 - ent state oper"])

    def test_order_sensitive(self):
        """Test 'PowerSupply' before 'ent state' does not count."""
        assert not has_existing_psu_sensors(["PowerSupply1 ent state"])

    def test_case_sensitive(self):
        assert not has_existing_psu_sensors(["Ent State: powersupply1"])

    def test_empty(self):
        assert not has_existing_psu_sensors([])
