"""Detect PSU monitoring that is already deployed on a device."""

import re
from collections.abc import Iterable

# PRTG names ENTITY-STATE library sensors "ent state: PowerSupply1 - ent state oper"
EXISTING_PSU_SENSOR = re.compile(r"ent state.*PowerSupply")


def has_existing_psu_sensors(sensor_names: Iterable[str]) -> bool:
    """True if any sensor name looks like an ENTITY-STATE PSU sensor."""
    return any(EXISTING_PSU_SENSOR.search(name or "") for name in sensor_names)
