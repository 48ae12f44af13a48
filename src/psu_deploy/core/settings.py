"""Environment settings - loads PRTG credentials and tuning from .env.

Usage:
1. Copy .env.example to .env and fill in PRTG_USERNAME and PRTG_PASSWORD
   (or PRTG_PASSHASH)
2. Every field can be overridden by an environment variable of the same name

Priority:
1. Environment variables (highest priority)
2. .env in the current working directory
3. .env at the project root
4. Default values in this file
"""

from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from psu_deploy.core.exceptions import ConfigurationError

# Project root: src/psu_deploy/core/settings.py -> core/ -> psu_deploy/ -> src/ -> project_root/
PROJECT_ROOT = Path(__file__).parent.parent.parent.parent
ENV_FILE_PATH = PROJECT_ROOT / ".env"


class EnvSettings(BaseSettings):
    """Runtime configuration for the PSU deployment scripts."""

    model_config = SettingsConfigDict(
        env_file=(str(ENV_FILE_PATH), ".env"),
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ============================================
    # PRTG Credentials
    # ============================================
    prtg_username: str = ""
    prtg_password: str = ""
    prtg_passhash: str = ""  # Alternative to password

    # ============================================
    # PRTG Connection
    # ============================================
    prtg_scheme: Literal["http", "https"] = "https"
    prtg_verify_ssl: bool = True
    request_timeout: int = 30  # Seconds per HTTP request
    discovery_timeout: int = 600  # SNMP library probing can take minutes
    discovery_poll_interval: float = 5.0

    # ============================================
    # Sensor Creation
    # ============================================
    snmp_library: str = "ENTITY-STATE-MIB.oidlib"
    sensor_priority: int = 3
    sensor_tags: str = "psu powersupply snmplibrary"
    creation_delay: float = 2.0  # Pause between addsensor calls
    device_name_filters: list[str] = ["Arista*", "Palo Alto*"]

    # ============================================
    # Output
    # ============================================
    report_dir: str = "data/reports"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_file: str = "data/logs/psu_deploy.log"

    @field_validator("sensor_priority")
    @classmethod
    def clamp_priority(cls, value: int) -> int:
        # PRTG priorities are 1 (lowest) to 5 stars
        return max(1, min(5, value))

    @field_validator("creation_delay", "discovery_poll_interval")
    @classmethod
    def non_negative(cls, value: float) -> float:
        if value < 0:
            raise ValueError("delay must not be negative")
        return value

    @field_validator("prtg_scheme", "log_level", mode="before")
    @classmethod
    def normalize_case(cls, value: object) -> object:
        if not isinstance(value, str):
            return value
        value = value.strip()
        return value.upper() if value.upper() in ("DEBUG", "INFO", "WARNING", "ERROR") else value.lower()


@dataclass(frozen=True)
class Credentials:
    """PRTG API credentials. Either password or passhash must be set."""

    username: str
    password: str = ""
    passhash: str = ""

    def as_params(self) -> dict[str, str]:
        """Query parameters PRTG expects on every API call."""
        if self.passhash:
            return {"username": self.username, "passhash": self.passhash}
        return {"username": self.username, "password": self.password}

    def __repr__(self) -> str:
        return f"Credentials(username={self.username!r}, secret=***)"


def load_credentials(env: EnvSettings | None = None) -> Credentials:
    """Build credentials from settings.

    Raises:
        ConfigurationError: If the username or both secrets are missing
    """
    env = env or settings
    username = env.prtg_username.strip()
    password = env.prtg_password
    passhash = env.prtg_passhash.strip()

    missing = []
    if not username:
        missing.append("PRTG_USERNAME")
    if not password and not passhash:
        missing.append("PRTG_PASSWORD or PRTG_PASSHASH")
    if missing:
        raise ConfigurationError(f"Missing PRTG credentials: {', '.join(missing)}")

    return Credentials(username=username, password=password, passhash=passhash)


def get_report_dir(env: EnvSettings | None = None) -> Path:
    """Report directory as an absolute path (relative values resolve against cwd)."""
    env = env or settings
    path = Path(env.report_dir)
    return path if path.is_absolute() else Path.cwd() / path


# =============================================================================
# Global Settings Instance
# =============================================================================

settings = EnvSettings()
