"""Configuration models and loading utilities."""

import logging
import os
from pathlib import Path
from typing import Optional

import yaml
from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger(__name__)


class SpotsConfig(BaseModel):
    """Parking lot layout."""

    count: int = Field(6, ge=1)  # Spots are numbered 1..count


class SensorConfig(BaseModel):
    """Distance sensor interpretation."""

    occupied_threshold_cm: float = 20.0  # Readings below this mean occupied


class ReservationConfig(BaseModel):
    """Reservation lifecycle configuration."""

    ttl_minutes: float = Field(30, gt=0)
    sweep_interval_seconds: float = Field(60, gt=0)


class BroadcastConfig(BaseModel):
    """Live update channel configuration."""

    queue_size: int = Field(100, ge=1)  # Buffered messages per subscriber before dropping it
    send_timeout_seconds: float = Field(10, gt=0)  # Stalled sockets are closed after this


class NotificationConfig(BaseModel):
    """Email alert configuration."""

    smtp_host: Optional[str] = None  # Alerts are only logged when unset
    smtp_port: int = 587
    smtp_username: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_use_tls: bool = True
    sender: str = "parking@localhost"
    alert_recipient: Optional[str] = None  # Receives "spot occupied" alerts
    queue_size: int = Field(100, ge=1)

    @field_validator("smtp_password", "smtp_username", mode="before")
    @classmethod
    def resolve_env_var(cls, v: Optional[str]) -> Optional[str]:
        """Resolve environment variable references like ${VAR_NAME}."""
        if isinstance(v, str) and v.startswith("${") and v.endswith("}"):
            env_var = v[2:-1]
            return os.environ.get(env_var, "")
        return v


class APIConfig(BaseModel):
    """API server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class AppConfig(BaseModel):
    """Main application configuration."""

    spots: SpotsConfig = SpotsConfig()
    sensor: SensorConfig = SensorConfig()
    reservations: ReservationConfig = ReservationConfig()
    broadcast: BroadcastConfig = BroadcastConfig()
    notifications: NotificationConfig = NotificationConfig()
    api: APIConfig = APIConfig()


def load_config(path: str | Path) -> AppConfig:
    """
    Load configuration from a YAML file.

    Args:
        path: Path to the configuration file

    Returns:
        Validated AppConfig instance

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If config is invalid
    """
    config_path = Path(path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path) as f:
        data = yaml.safe_load(f)

    return AppConfig(**(data or {}))


def get_config_path() -> Path:
    """Get the default configuration file path."""
    env_config = os.environ.get("PARKING_LIVE_CONFIG")
    if env_config:
        return Path(env_config)

    # Check for config in current directory first
    local_config = Path("config/config.yaml")
    if local_config.exists():
        return local_config

    # Check for config in parent directory (for Docker)
    parent_config = Path("/app/config/config.yaml")
    if parent_config.exists():
        return parent_config

    return local_config  # Return default even if doesn't exist


def load_config_or_default(path: Optional[str | Path] = None) -> AppConfig:
    """Load configuration, falling back to defaults when no file exists."""
    config_path = Path(path) if path else get_config_path()

    if not config_path.exists():
        logger.warning(f"Configuration file not found: {config_path}, using defaults")
        return AppConfig()

    config = load_config(config_path)
    logger.info(f"Loaded configuration from {config_path}")
    return config
