import json
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from core.chiller.exceptions import ConfigurationError
from core.chiller.models import Status
from core.chiller.sensors import (
    ContextFileSensorReader,
    HASensorReader,
    W1SensorReader,
    build_sensor_reader,
)

GOOD_READING = "72 01 4b 46 7f ff 0e 10 57 : crc=57 YES\n72 01 4b 46 7f ff 0e 10 57 t={}\n"
BAD_CRC = "72 01 4b 46 7f ff 0e 10 57 : crc=57 NO\n72 01 4b 46 7f ff 0e 10 57 t=23125\n"


def _device(base, device_id, contents):
    folder = base / device_id
    folder.mkdir(parents=True)
    (folder / "w1_slave").write_text(contents)


def test_w1_reader_reads_every_channel(tmp_path):
    _device(tmp_path, "10-inside", GOOD_READING.format(3812))
    _device(tmp_path, "10-outside", GOOD_READING.format(22126))
    _device(tmp_path, "10-freezer", GOOD_READING.format(-18062))
    reader = W1SensorReader(
        {"inside": "10-inside", "outside": "10-outside", "freezer": "10-freezer"}, base_path=tmp_path
    )

    result = reader.read()

    assert result.ok
    assert result.reading.temperatures == {"inside": 3.81, "outside": 22.13, "freezer": -18.06}
    assert result.reading.inside_temp == 3.81
    assert result.reading.status is None


@pytest.mark.parametrize(
    "contents, error",
    [
        (BAD_CRC, "CRC"),
        ("72 01 4b 46 7f ff 0e 10 57 : crc=57 YES", "Cannot read"),
        ("72 01 4b 46 7f ff 0e 10 57 : crc=57 YES\n72 01 4b 46 7f ff 0e 10 57\n", "No temperature"),
    ],
)
def test_w1_reader_reports_faults(tmp_path, contents, error):
    _device(tmp_path, "10-inside", contents)

    result = W1SensorReader({"inside": "10-inside"}, base_path=tmp_path).read()

    assert not result.ok
    assert error in result.error
    assert result.error.startswith("inside:")


def test_w1_reader_reports_missing_device(tmp_path):
    result = W1SensorReader({"outside": "10-gone"}, base_path=tmp_path).read()

    assert not result.ok
    assert "outside" in result.error


def test_w1_reader_requires_channels():
    with pytest.raises(ConfigurationError):
        W1SensorReader({})


def test_context_reader_reads_status_and_correction(tmp_path):
    path = tmp_path / "fridge-status.json"
    path.write_text(json.dumps({
        "inside_temp": 4.4,
        "outside_temp": 21.0,
        "correction": -35.5,
        "status": "Cooling",
        "config": {"target_temp": 4, "p": 8, "i": 0, "d": 0},
    }))

    result = ContextFileSensorReader(path).read()

    assert result.ok
    assert result.reading.temperatures == {"inside": 4.4, "outside": 21.0}
    assert result.reading.status == Status.COOLING
    assert result.reading.correction == -35.5


@pytest.mark.parametrize(
    "contents",
    [
        None,
        "{half",
        '{"inside_temp": 4.4}',
        '{"inside_temp": 4.4, "outside_temp": 21, "status": "Defrosting"}',
    ],
)
def test_context_reader_reports_faults(tmp_path, contents):
    path = tmp_path / "fridge-status.json"
    if contents is not None:
        path.write_text(contents)

    assert not ContextFileSensorReader(path).read().ok


def test_ha_reader_reads_entities():
    client = MagicMock()
    client.get_temperature.side_effect = lambda entity_id: {"sensor.in": 3.5, "sensor.out": 19.0}[entity_id]

    result = HASensorReader(client, {"inside": "sensor.in", "outside": "sensor.out"}).read()

    assert result.reading.temperatures == {"inside": 3.5, "outside": 19.0}


def test_ha_reader_reports_connection_errors():
    client = MagicMock()
    client.get_temperature.side_effect = RuntimeError("HA API request failed")

    result = HASensorReader(client, {"inside": "sensor.in"}).read()

    assert not result.ok
    assert "HA API request failed" in result.error


def test_build_sensor_reader_selects_backend(tmp_path):
    settings = SimpleNamespace(
        sensor_backend="context",
        context_path=str(tmp_path / "ctx.json"),
        sensors={},
        w1_base_path=str(tmp_path),
        ha_url="http://ha",
        ha_token="",
    )
    assert isinstance(build_sensor_reader(settings), ContextFileSensorReader)

    settings.sensor_backend = "w1"
    settings.sensors = {"inside": "10-a"}
    assert isinstance(build_sensor_reader(settings), W1SensorReader)

    settings.sensor_backend = "homeassistant"
    with pytest.raises(ConfigurationError):
        build_sensor_reader(settings)

    settings.ha_token = "secret"
    assert isinstance(build_sensor_reader(settings), HASensorReader)
