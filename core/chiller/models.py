"""
Chiller Data Models

Configuration, status records and sensor readings shared by the
sampling, recording and HTTP layers.
"""

import math
from dataclasses import dataclass, field, fields, replace
from datetime import datetime
from enum import Enum
from typing import Any, Optional

from .exceptions import CorruptDataError

CONFIG_FIELDS = ("target_temp", "p", "i", "d")

# Column order of a daily log line; correction is only written when present
CSV_COLUMNS = (
    "timestamp",
    "status",
    "inside_temp",
    "outside_temp",
    "target_temp",
    "p",
    "i",
    "d",
    "correction",
)


class Status(str, Enum):
    """Operating status of the compressor."""

    IDLE = "Idle"
    COOLING = "Cooling"


def format_number(value: float) -> str:
    """Shortest decimal form: integral values without a fractional part."""
    value = float(value)
    if value.is_integer():
        return str(int(value))
    return repr(value)


def parse_timestamp(timestamp: str) -> datetime:
    """Parse an ISO-8601 timestamp, accepting a trailing 'Z'."""
    if timestamp.endswith("Z"):
        timestamp = timestamp[:-1] + "+00:00"
    return datetime.fromisoformat(timestamp)


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


@dataclass
class Configuration:
    """Persisted controller configuration (target temperature and PID gains)."""

    target_temp: float
    p: float
    i: float
    d: float
    status: Optional[Status] = None

    @classmethod
    def from_dict(cls, data: Any) -> "Configuration":
        """Create from a decoded JSON object.

        Raises:
            CorruptDataError: If a field is missing or not a number
        """
        if not isinstance(data, dict):
            raise CorruptDataError(f"Configuration must be a JSON object, got {type(data).__name__}")

        values = {}
        for name in CONFIG_FIELDS:
            if name not in data:
                raise CorruptDataError(f"Configuration is missing '{name}'")
            if not _is_number(data[name]):
                raise CorruptDataError(f"Configuration field '{name}' is not a number: {data[name]!r}")
            try:
                value = float(data[name])
            except OverflowError:
                value = math.inf
            if not math.isfinite(value):
                raise CorruptDataError(f"Configuration field '{name}' is not finite: {data[name]!r}")
            values[name] = value

        status = data.get("status")
        if status is not None:
            try:
                status = Status(status)
            except ValueError:
                raise CorruptDataError(f"Unknown status in configuration: {status!r}")

        return cls(status=status, **values)

    def to_dict(self) -> dict:
        data = {name: getattr(self, name) for name in CONFIG_FIELDS}
        if self.status is not None:
            data["status"] = self.status.value
        return data


@dataclass
class PartialConfiguration:
    """A configuration update; None marks a field that was not supplied."""

    target_temp: Optional[float] = None
    p: Optional[float] = None
    i: Optional[float] = None
    d: Optional[float] = None

    def supplied(self) -> dict[str, float]:
        return {f.name: getattr(self, f.name) for f in fields(self) if getattr(self, f.name) is not None}

    def missing(self) -> list[str]:
        return [name for name in CONFIG_FIELDS if getattr(self, name) is None]

    def is_empty(self) -> bool:
        return not self.supplied()

    def apply_to(self, config: Configuration) -> Configuration:
        """Overlay supplied fields onto config; explicit zero counts as supplied."""
        return replace(config, **{name: float(value) for name, value in self.supplied().items()})


@dataclass(frozen=True)
class StatusRecord:
    """One sample of the refrigerator state, produced once per tick."""

    timestamp: str  # ISO format
    status: Status
    inside_temp: float
    outside_temp: float
    target_temp: float
    p: float
    i: float
    d: float
    correction: Optional[float] = None

    def to_csv_line(self) -> str:
        """Serialize as one daily-log line (without the line terminator)."""
        tokens = [self.timestamp, self.status.value]
        tokens += [
            format_number(value)
            for value in (self.inside_temp, self.outside_temp, self.target_temp, self.p, self.i, self.d)
        ]
        if self.correction is not None:
            tokens.append(format_number(self.correction))
        return ",".join(tokens)

    @classmethod
    def from_csv_line(cls, line: str) -> "StatusRecord":
        """Parse one daily-log line.

        Raises:
            CorruptDataError: On a wrong column count, unknown status or bad number
        """
        tokens = line.rstrip("\r\n").split(",")
        if len(tokens) not in (len(CSV_COLUMNS) - 1, len(CSV_COLUMNS)):
            raise CorruptDataError(f"Expected 8 or 9 columns, got {len(tokens)}")

        timestamp = tokens[0]
        try:
            parse_timestamp(timestamp)
        except ValueError:
            raise CorruptDataError(f"Invalid timestamp: {timestamp!r}")

        try:
            status = Status(tokens[1])
        except ValueError:
            raise CorruptDataError(f"Unknown status: {tokens[1]!r}")

        numbers = [_parse_number(name, token) for name, token in zip(CSV_COLUMNS[2:], tokens[2:])]
        correction = numbers[6] if len(numbers) == 7 else None

        return cls(timestamp, status, *numbers[:6], correction=correction)

    def to_dict(self) -> dict:
        return {
            "timestamp": self.timestamp,
            "status": self.status.value,
            "inside_temp": self.inside_temp,
            "outside_temp": self.outside_temp,
            "target_temp": self.target_temp,
            "p": self.p,
            "i": self.i,
            "d": self.d,
            "correction": self.correction,
        }


def _parse_number(name: str, token: str) -> float:
    try:
        value = float(token)
    except ValueError:
        raise CorruptDataError(f"Column '{name}' is not a number: {token!r}")
    if not math.isfinite(value):
        raise CorruptDataError(f"Column '{name}' is not finite: {token!r}")
    return value


@dataclass
class SensorReading:
    """Instantaneous sensor values keyed by channel name."""

    temperatures: dict[str, float] = field(default_factory=dict)
    status: Optional[Status] = None
    correction: Optional[float] = None

    @property
    def inside_temp(self) -> Optional[float]:
        return self.temperatures.get("inside")

    @property
    def outside_temp(self) -> Optional[float]:
        return self.temperatures.get("outside")


@dataclass
class SensorResult:
    """Outcome of a sensor read: a reading or an error description."""

    reading: Optional[SensorReading] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.reading is not None and self.error is None

    @classmethod
    def success(cls, reading: SensorReading) -> "SensorResult":
        return cls(reading=reading)

    @classmethod
    def failure(cls, error: str) -> "SensorResult":
        return cls(error=error)
