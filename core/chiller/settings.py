"""
Chiller Configuration Settings

Deployment settings (paths, sampling cadence, sensors, credentials).
User-facing settings are loaded from /data/options.json in production and
from config.yaml during development. These are distinct from the controller
configuration (target temperature, PID gains) managed by ConfigStore.
"""

import json
import logging
import os
import re
from dataclasses import dataclass, field, fields

import yaml
from dotenv import load_dotenv

from .exceptions import ConfigurationError, CorruptDataError
from .models import Configuration
from .recorder import RETENTION_MODES

logger = logging.getLogger(__name__)

OPTIONS_PATH = "/data/options.json"
CONFIG_YAML_PATH = os.path.join(os.path.dirname(__file__), "..", "..", "config.yaml")

SENSOR_BACKENDS = ("w1", "context", "homeassistant")


def _camel_to_snake(name: str) -> str:
    """Convert camelCase to snake_case."""
    s1 = re.sub("(.)([A-Z][a-z]+)", r"\1_\2", name)
    return re.sub("([a-z0-9])([A-Z])", r"\1_\2", s1).lower()


@dataclass
class AppSettings:
    """Settings for one refrigerator deployment."""

    config_path: str = "/etc/fridge.json"
    log_dir: str = "logs"
    retention_days: int = 7
    retention_mode: str = "scan"  # "scan" or "exact_day"
    sweep_interval_hours: float = 24.0
    sample_interval_seconds: float = 1.0
    sensor_backend: str = "w1"  # "w1", "context" or "homeassistant"
    sensors: dict[str, str] = field(
        default_factory=lambda: {"inside": "10-0008039a5582", "outside": "10-0008039e9723"}
    )
    w1_base_path: str = "/sys/bus/w1/devices"
    context_path: str = "/var/log/fridge-status.json"
    ha_url: str = "http://supervisor/core"
    ha_token: str = ""
    api_key: str = ""
    require_all_fields: bool = False  # Reject control updates that omit a field
    pid_enabled: bool = False
    default_config: dict[str, float] = field(
        default_factory=lambda: {"target_temp": 4.0, "p": 8.0, "i": 0.0, "d": 0.0}
    )

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        """Create from dictionary, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        converted = {}
        for key, value in data.items():
            name = _camel_to_snake(key)
            if name in known:
                converted[name] = value
            else:
                logger.warning(f"Ignoring unknown setting: {key}")

        settings = cls(**converted)
        settings.validate()
        return settings

    def validate(self):
        """Raise ConfigurationError on values the services cannot run with."""
        if self.retention_mode not in RETENTION_MODES:
            raise ConfigurationError(f"retention_mode must be one of {RETENTION_MODES}")
        if self.sensor_backend not in SENSOR_BACKENDS:
            raise ConfigurationError(f"sensor_backend must be one of {SENSOR_BACKENDS}")
        if int(self.retention_days) < 1:
            raise ConfigurationError("retention_days must be at least 1")
        if float(self.sample_interval_seconds) <= 0:
            raise ConfigurationError("sample_interval_seconds must be positive")
        if float(self.sweep_interval_hours) <= 0:
            raise ConfigurationError("sweep_interval_hours must be positive")
        if self.sensor_backend != "context" and not self.sensors:
            raise ConfigurationError("sensors must map at least one channel")
        self.default_configuration()

    def default_configuration(self) -> Configuration:
        try:
            return Configuration.from_dict(self.default_config)
        except CorruptDataError as e:
            raise ConfigurationError(f"Invalid default_config: {e}")


def load_settings(options_path: str | None = None, yaml_path: str | None = None) -> AppSettings:
    """Load settings from add-on options (production) or config.yaml (development).

    Environment variables (optionally from a .env file) override secrets:
    CHILLER_API_KEY and HA_TOKEN.
    """
    options_path = options_path or os.environ.get("CHILLER_OPTIONS_PATH", OPTIONS_PATH)
    yaml_path = yaml_path or os.environ.get("CHILLER_CONFIG_YAML", CONFIG_YAML_PATH)

    options = None
    if os.path.exists(options_path):
        try:
            with open(options_path) as f:
                options = json.load(f)
            logger.info(f"Loaded settings from {options_path}")
        except json.JSONDecodeError as e:
            raise ConfigurationError(f"Invalid JSON in {options_path}: {e}")
    elif os.path.exists(yaml_path):
        try:
            with open(yaml_path) as f:
                options = (yaml.safe_load(f) or {}).get("options", {})
            logger.info(f"Loaded settings from {yaml_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(f"Invalid YAML in {yaml_path}: {e}")
    else:
        logger.warning("No options file found, using default settings")

    if options is not None and not isinstance(options, dict):
        raise ConfigurationError("Settings must be a mapping")

    options = dict(options or {})

    load_dotenv()
    if os.environ.get("CHILLER_API_KEY"):
        options["api_key"] = os.environ["CHILLER_API_KEY"]
    if os.environ.get("HA_TOKEN"):
        options["ha_token"] = os.environ["HA_TOKEN"]

    try:
        return AppSettings.from_dict(options)
    except TypeError as e:
        raise ConfigurationError(f"Invalid settings: {e}")
