"""
Shared test fixtures for the Chiller test suite.

Usage:
    def test_example(config_store, recorder):
        config_store.write(Configuration(4, 1, 0, 0))
"""

import logging
from datetime import timezone

import pytest

from core.chiller.config_store import ConfigStore
from core.chiller.history import HistoryReader
from core.chiller.live import LiveChannel
from core.chiller.models import (
    Configuration,
    SensorReading,
    SensorResult,
    Status,
    StatusRecord,
)
from core.chiller.recorder import Recorder

logging.getLogger("core").setLevel(logging.DEBUG)


class FakeSensorReader:
    """Returns queued results, repeating the last one."""

    def __init__(self, *results: SensorResult):
        self.results = list(results)
        self.calls = 0

    def read(self) -> SensorResult:
        self.calls += 1
        if len(self.results) > 1:
            return self.results.pop(0)
        return self.results[0]


def reading(inside: float, outside: float, **kwargs) -> SensorResult:
    return SensorResult.success(SensorReading(temperatures={"inside": inside, "outside": outside}, **kwargs))


def make_record(timestamp: str = "2020-04-19T10:00:00Z", **overrides) -> StatusRecord:
    values = dict(
        timestamp=timestamp,
        status=Status.IDLE,
        inside_temp=3.8,
        outside_temp=22.1,
        target_temp=4.0,
        p=1.0,
        i=0.0,
        d=0.0,
    )
    values.update(overrides)
    return StatusRecord(**values)


@pytest.fixture()
def base_config() -> Configuration:
    return Configuration(target_temp=4.0, p=1.0, i=0.0, d=0.0)


@pytest.fixture()
def config_store(tmp_path, base_config) -> ConfigStore:
    store = ConfigStore(tmp_path / "etc" / "fridge.json")
    store.write(base_config)
    return store


@pytest.fixture()
def log_dir(tmp_path):
    return tmp_path / "logs"


@pytest.fixture()
def recorder(log_dir) -> Recorder:
    return Recorder(log_dir, retention_days=7, tz=timezone.utc)


@pytest.fixture()
def history_reader(log_dir) -> HistoryReader:
    return HistoryReader(log_dir)


@pytest.fixture()
def live_channel() -> LiveChannel:
    return LiveChannel(queue_maxsize=10)
