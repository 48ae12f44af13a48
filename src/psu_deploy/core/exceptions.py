"""Exception hierarchy for psu-deploy.

Configuration errors are fatal and end the process before any network
activity. API errors are caught by the deployment driver at device scope
(discovery) or candidate scope (sensor creation).
"""


class PsuDeployError(Exception):
    """Base class for all psu-deploy errors."""


class ConfigurationError(PsuDeployError):
    """Credentials or settings are missing or invalid."""


class DeviceNotFoundError(PsuDeployError):
    """Requested device id does not exist in PRTG."""

    def __init__(self, device_id: int) -> None:
        super().__init__(f"Device {device_id} not found")
        self.device_id = device_id


class PrtgApiError(PsuDeployError):
    """PRTG returned an error or an unexpected response."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class DiscoveryError(PrtgApiError):
    """SNMP library target discovery failed for a device."""


class DiscoveryTimeoutError(DiscoveryError):
    """Target discovery did not finish within the allowed time."""


class SensorCreationError(PrtgApiError):
    """A single sensor could not be created."""
