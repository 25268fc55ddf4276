"""
Sensor Readers

Sources of instantaneous temperature readings. Every reader returns a
SensorResult instead of raising, so a failed read simply skips one tick.

Channels are named ("inside", "outside", ...) and mapped to device ids or
entity ids by configuration.
"""

import json
import logging
import math
import os
import re
from pathlib import Path
from typing import Protocol

from .exceptions import ConfigurationError, SensorError
from .ha_client import HAClient
from .models import SensorReading, SensorResult, Status

logger = logging.getLogger(__name__)

W1_BASE_PATH = "/sys/bus/w1/devices"
W1_TEMPERATURE = re.compile(r"t=(-?\d+)")


class SensorReader(Protocol):
    """Anything that can produce a current sensor reading."""

    def read(self) -> SensorResult:
        ...


class W1SensorReader:
    """DS18B20 probes on the 1-Wire bus, read through sysfs."""

    def __init__(self, channels: dict[str, str], base_path: str | os.PathLike = W1_BASE_PATH):
        """Initialize reader.

        Args:
            channels: Channel name -> 1-Wire device id (e.g. "10-0008039a5582")
            base_path: sysfs directory holding the device folders
        """
        if not channels:
            raise ConfigurationError("At least one 1-Wire sensor channel is required")
        self.channels = dict(channels)
        self.base_path = Path(base_path)

    def read(self) -> SensorResult:
        temperatures = {}
        for channel, device in self.channels.items():
            try:
                temperatures[channel] = self.read_device(device)
            except SensorError as e:
                return SensorResult.failure(f"{channel}: {e}")
        return SensorResult.success(SensorReading(temperatures=temperatures))

    def read_device(self, device: str) -> float:
        """Read one probe in °C, rounded to two decimals.

        Raises:
            SensorError: If the device is missing, the CRC check failed or no
                temperature is present
        """
        path = self.base_path / device / "w1_slave"
        try:
            contents = path.read_text(encoding="utf-8")
        except OSError as e:
            raise SensorError(f"Cannot read {path}: {e}")

        lines = contents.split("\n")
        if len(lines) < 2:
            raise SensorError(f"Cannot read temperature sensor {device}")

        if not lines[0].rstrip().endswith("YES"):
            raise SensorError(f"CRC does not match: {lines[0]}")

        match = W1_TEMPERATURE.search(lines[1])
        if match is None:
            raise SensorError(f"No temperature reading found for {device}")

        return round(int(match.group(1)) / 1000.0, 2)


class ContextFileSensorReader:
    """Reads the status file written by the compressor controller.

    The controller publishes inside/outside temperature, its PID correction
    and the compressor status as a JSON document.
    """

    def __init__(self, path: str | os.PathLike):
        self.path = Path(path)

    def read(self) -> SensorResult:
        try:
            with open(self.path, encoding="utf-8") as f:
                context = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            return SensorResult.failure(f"Cannot read controller context {self.path}: {e}")

        try:
            reading = SensorReading(
                temperatures={
                    "inside": _finite(context["inside_temp"]),
                    "outside": _finite(context["outside_temp"]),
                },
                status=Status(context["status"]) if context.get("status") is not None else None,
                correction=_finite(context["correction"]) if context.get("correction") is not None else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            return SensorResult.failure(f"Invalid controller context {self.path}: {e!r}")

        return SensorResult.success(reading)


class HASensorReader:
    """Temperature sensors exposed as Home Assistant entities."""

    def __init__(self, client: HAClient, channels: dict[str, str]):
        """Initialize reader.

        Args:
            client: Home Assistant client
            channels: Channel name -> entity id (e.g. "sensor.fridge_inside")
        """
        if not channels:
            raise ConfigurationError("At least one Home Assistant sensor channel is required")
        self.client = client
        self.channels = dict(channels)

    def read(self) -> SensorResult:
        temperatures = {}
        for channel, entity_id in self.channels.items():
            try:
                temperatures[channel] = _finite(self.client.get_temperature(entity_id))
            except (ValueError, RuntimeError) as e:
                return SensorResult.failure(f"{channel}: {e}")
        return SensorResult.success(SensorReading(temperatures=temperatures))


def _finite(value) -> float:
    value = float(value)
    if not math.isfinite(value):
        raise ValueError(f"Not a finite temperature: {value}")
    return value


def build_sensor_reader(settings) -> SensorReader:
    """Create the sensor reader selected by settings.sensor_backend."""
    backend = settings.sensor_backend

    if backend == "w1":
        return W1SensorReader(settings.sensors, base_path=settings.w1_base_path)
    if backend == "context":
        return ContextFileSensorReader(settings.context_path)
    if backend == "homeassistant":
        if not settings.ha_token:
            raise ConfigurationError("ha_token is required for the homeassistant sensor backend")
        return HASensorReader(HAClient(settings.ha_url, settings.ha_token), settings.sensors)

    raise ConfigurationError(f"Unknown sensor backend: {backend}")
