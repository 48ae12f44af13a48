"""PRTG HTTP API client.

Covers the calls the deployment needs:
- Device and sensor tables (GET /api/table.json)
- SNMP library target discovery (addsensor2 -> progress polling -> addsensor4)
- Sensor creation (POST /addsensor5.htm)

Authentication uses username + password or username + passhash as query
parameters, the scheme every PRTG API endpoint accepts.
"""

from __future__ import annotations

import html
import logging
import re
import time
from collections.abc import Callable, Iterable, Sequence
from fnmatch import fnmatchcase
from typing import Any
from urllib.parse import urlsplit

import requests

from psu_deploy.core.exceptions import (
    DeviceNotFoundError,
    DiscoveryError,
    DiscoveryTimeoutError,
    PrtgApiError,
    SensorCreationError,
)
from psu_deploy.core.settings import Credentials
from psu_deploy.models import Device, InventoryTarget, SensorInfo, SensorSpec

logger = logging.getLogger(__name__)

API = {
    "table": "/api/table.json",
    "discover": "/addsensor2.htm",
    "progress": "/api/getaddsensorprogress.htm",
    "targets": "/addsensor4.htm",
    "create": "/addsensor5.htm",
}

DEVICE_COLUMNS = "objid,device,group,probe,host"
SENSOR_COLUMNS = "objid,sensor"

_TMPID = re.compile(r"[?&]tmpid=(\d+)")
_TARGET_INPUT = re.compile(r"<input\b[^>]*\bname=[\"']interfacenumber__check[\"'][^>]*>", re.IGNORECASE)
_VALUE_ATTR = re.compile(r"\bvalue=(\"([^\"]*)\"|'([^']*)')", re.IGNORECASE)


def normalize_server(server: str, scheme: str = "https") -> str:
    """Turn "prtg01", "prtg01:8443" or "https://prtg01/" into a base URL."""
    server = server.strip().rstrip("/")
    if not server:
        raise ValueError("server must not be empty")
    if "://" not in server:
        server = f"{scheme}://{server}"
    return server


def server_hostname(server: str) -> str:
    """Bare hostname of a server argument, used in report file names."""
    return urlsplit(normalize_server(server)).hostname or server


def parse_targets(page: str) -> list[InventoryTarget]:
    """Extract discovery rows from the addsensor4.htm checkbox list."""
    targets = []
    for tag in _TARGET_INPUT.findall(page):
        m = _VALUE_ATTR.search(tag)
        if not m:
            continue
        raw = html.unescape(m.group(2) if m.group(2) is not None else m.group(3)).strip()
        if raw:
            targets.append(InventoryTarget.from_raw(raw))
    return targets


def _device_from_row(row: dict[str, Any]) -> Device:
    group = str(row.get("group") or "")
    probe = str(row.get("probe") or "")
    return Device(
        id=int(row["objid"]),
        name=str(row.get("device") or row.get("name") or ""),
        group=f"{probe} > {group}" if probe and group else group or probe,
        host=str(row.get("host") or ""),
    )


class PrtgClient:
    """Synchronous PRTG API client backed by a requests session.

    Example:
        with PrtgClient("prtg01", credentials) as client:
            for device in client.list_devices(["Arista*"]):
                print(device.name)
    """

    def __init__(
        self,
        server: str,
        credentials: Credentials,
        verify_ssl: bool = True,
        request_timeout: float = 30,
        poll_interval: float = 5.0,
        scheme: str = "https",
        session: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self.base_url = normalize_server(server, scheme)
        self.credentials = credentials
        self.request_timeout = request_timeout
        self.poll_interval = poll_interval
        self.session = session or requests.Session()
        self.session.verify = verify_ssl
        self._sleep = sleep
        self._monotonic = monotonic

    def __enter__(self) -> PrtgClient:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def close(self) -> None:
        self.session.close()

    # ------------------------------------------------------------------
    # HTTP plumbing
    # ------------------------------------------------------------------

    def _request(
        self,
        method: str,
        endpoint: str,
        params: dict[str, Any] | None = None,
        data: dict[str, Any] | None = None,
    ) -> requests.Response:
        url = self.base_url + endpoint
        query = {**(params or {}), **self.credentials.as_params()}
        try:
            resp = self.session.request(
                method, url, params=query, data=data, timeout=self.request_timeout
            )
        except requests.exceptions.Timeout as e:
            raise PrtgApiError(f"Request timeout after {self.request_timeout}s: {endpoint}") from e
        except requests.exceptions.RequestException as e:
            raise PrtgApiError(f"Connection error calling {endpoint}: {e}") from e

        if resp.status_code in (401, 403):
            raise PrtgApiError(f"Authentication failed for {endpoint}", resp.status_code)
        if not resp.ok:
            raise PrtgApiError(
                f"{method} {endpoint} failed status={resp.status_code}: {resp.text[:200]}",
                resp.status_code,
            )
        return resp

    def _table(self, content: str, columns: str, **filters: Any) -> list[dict[str, Any]]:
        params = {"content": content, "columns": columns, "count": "*", **filters}
        resp = self._request("GET", API["table"], params=params)
        try:
            payload = resp.json()
        except ValueError as e:
            raise PrtgApiError(f"Invalid JSON from table {content}: {resp.text[:200]}") from e
        return list(payload.get(content) or [])

    # ------------------------------------------------------------------
    # Devices and sensors
    # ------------------------------------------------------------------

    def list_devices(self, name_filters: Sequence[str] | None = None) -> list[Device]:
        """List devices, optionally keeping only names matching any glob."""
        devices = [_device_from_row(row) for row in self._table("devices", DEVICE_COLUMNS)]
        if name_filters:
            devices = [d for d in devices if any(fnmatchcase(d.name, f) for f in name_filters)]
        logger.debug(f"Listed {len(devices)} devices (filters={list(name_filters or [])})")
        return devices

    def get_device(self, device_id: int) -> Device:
        rows = self._table("devices", DEVICE_COLUMNS, filter_objid=device_id)
        if not rows:
            raise DeviceNotFoundError(device_id)
        return _device_from_row(rows[0])

    def list_sensors(self, device: Device) -> list[SensorInfo]:
        rows = self._table("sensors", SENSOR_COLUMNS, id=device.id)
        return [SensorInfo(id=int(r["objid"]), name=str(r.get("sensor") or "")) for r in rows]

    # ------------------------------------------------------------------
    # Target discovery
    # ------------------------------------------------------------------

    def discover_targets(
        self, device: Device, library: str, timeout: float = 600
    ) -> list[InventoryTarget]:
        """Run an SNMP library discovery and return every target row.

        Raises:
            DiscoveryTimeoutError: Discovery did not complete within `timeout`
            DiscoveryError: PRTG rejected or aborted the discovery
        """
        try:
            resp = self._request(
                "GET",
                API["discover"],
                params={"id": device.id, "sensortype": "snmplibrary", "library_": library},
            )
        except PrtgApiError as e:
            raise DiscoveryError(f"Could not start discovery: {e}", e.status_code) from e

        tmpid = self._find_tmpid(resp)
        if tmpid is None:
            raise DiscoveryError(f"PRTG returned no discovery id for device {device.id}")
        logger.debug(f"Discovery started for {device.name} (tmpid={tmpid})")

        self._wait_for_discovery(device, tmpid, timeout)

        try:
            page = self._request("GET", API["targets"], params={"id": device.id, "tmpid": tmpid})
        except PrtgApiError as e:
            raise DiscoveryError(f"Could not read discovery results: {e}", e.status_code) from e
        return parse_targets(page.text)

    @staticmethod
    def _find_tmpid(resp: requests.Response) -> str | None:
        # PRTG answers addsensor2 with a redirect carrying the tmpid
        urls: Iterable[str] = [r.url for r in resp.history] + [resp.url]
        for url in urls:
            m = _TMPID.search(url or "")
            if m:
                return m.group(1)
        m = _TMPID.search(resp.text or "")
        return m.group(1) if m else None

    def _wait_for_discovery(self, device: Device, tmpid: str, timeout: float) -> None:
        started = self._monotonic()
        while True:
            try:
                resp = self._request(
                    "GET", API["progress"], params={"id": device.id, "tmpid": tmpid}
                )
                progress = resp.json()
                percent = int(progress.get("progress", 0))
            except PrtgApiError as e:
                raise DiscoveryError(f"Discovery progress check failed: {e}", e.status_code) from e
            except (ValueError, TypeError, AttributeError) as e:
                raise DiscoveryError(f"Invalid discovery progress response: {e}") from e

            if progress.get("errorurl") or percent < 0:
                raise DiscoveryError(f"Discovery failed on device {device.name}")
            if percent >= 100:
                return

            elapsed = self._monotonic() - started
            if elapsed >= timeout:
                raise DiscoveryTimeoutError(
                    f"Discovery on {device.name} timed out after {timeout:.0f}s ({percent}%)"
                )
            self._sleep(self.poll_interval)

    # ------------------------------------------------------------------
    # Sensor creation
    # ------------------------------------------------------------------

    def create_sensor(self, device: Device, spec: SensorSpec) -> int:
        """Create one SNMP library sensor and return its object id.

        PRTG does not return the new id from addsensor5, so it is resolved
        by comparing the device's sensors before and after the call.
        """
        try:
            before = {s.id for s in self.list_sensors(device)}
            resp = self._request("POST", API["create"], data=spec.to_form(device.id))
            if "error.htm" in (resp.url or ""):
                raise SensorCreationError(f"PRTG rejected sensor '{spec.name}'")
            added = [s for s in self.list_sensors(device) if s.id not in before]
        except SensorCreationError:
            raise
        except PrtgApiError as e:
            raise SensorCreationError(
                f"Creating '{spec.name}' failed: {e}", e.status_code
            ) from e

        named = [s for s in added if s.name == spec.name]
        if not (named or added):
            raise SensorCreationError(f"Sensor '{spec.name}' not found after creation")
        return max(s.id for s in (named or added))
