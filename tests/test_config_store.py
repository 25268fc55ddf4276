import json
import math

import pytest

from core.chiller.config_store import ConfigStore
from core.chiller.exceptions import CorruptDataError, InvalidRequestError, NotFoundError
from core.chiller.models import Configuration, PartialConfiguration, Status


def test_read_missing_file_raises_not_found(tmp_path):
    store = ConfigStore(tmp_path / "missing.json")

    with pytest.raises(NotFoundError):
        store.read()


@pytest.mark.parametrize(
    "contents",
    [
        "{not json",
        "[]",
        '{"target_temp": 4, "p": 1, "i": 0}',
        '{"target_temp": "cold", "p": 1, "i": 0, "d": 0}',
        '{"target_temp": true, "p": 1, "i": 0, "d": 0}',
        '{"target_temp": Infinity, "p": 1, "i": 0, "d": 0}',
        '{"target_temp": 4, "p": 1e999, "i": 0, "d": 0}',
        '{"target_temp": 4, "p": 1, "i": NaN, "d": 0}',
        '{"target_temp": 4, "p": 1, "i": 0, "d": 0, "status": "Heating"}',
    ],
)
def test_read_malformed_file_raises_corrupt_data(tmp_path, contents):
    path = tmp_path / "fridge.json"
    path.write_text(contents)

    with pytest.raises(CorruptDataError):
        ConfigStore(path).read()


def test_write_is_pretty_printed_and_readable(tmp_path):
    path = tmp_path / "nested" / "fridge.json"
    store = ConfigStore(path)

    store.write(Configuration(target_temp=4.5, p=8.0, i=0.1, d=0.0, status=Status.COOLING))

    text = path.read_text()
    assert "\n    " in text
    assert json.loads(text) == {"target_temp": 4.5, "p": 8.0, "i": 0.1, "d": 0.0, "status": "Cooling"}
    assert store.read() == Configuration(4.5, 8.0, 0.1, 0.0, Status.COOLING)


def test_write_leaves_no_temporary_files(tmp_path):
    store = ConfigStore(tmp_path / "fridge.json")

    store.write(Configuration(4, 1, 0, 0))
    store.write(Configuration(5, 1, 0, 0))

    assert [p.name for p in tmp_path.iterdir()] == ["fridge.json"]


def test_read_tolerates_compact_json(tmp_path):
    path = tmp_path / "fridge.json"
    path.write_text('{"d":0,"i":0,"p":1,"target_temp":4}')

    assert ConfigStore(path).read() == Configuration(4.0, 1.0, 0.0, 0.0)


@pytest.mark.parametrize("field", ["target_temp", "p", "i", "d"])
def test_update_replaces_only_the_supplied_field(config_store, base_config, field):
    updated = config_store.update(PartialConfiguration(**{field: 7.5}))

    for name in ("target_temp", "p", "i", "d"):
        expected = 7.5 if name == field else getattr(base_config, name)
        assert getattr(updated, name) == expected
    assert config_store.read() == updated


def test_update_target_only_keeps_pid_gains(config_store):
    config_store.update(PartialConfiguration(target_temp=5))

    assert config_store.read() == Configuration(target_temp=5.0, p=1.0, i=0.0, d=0.0)


def test_update_honors_explicit_zero(config_store):
    updated = config_store.update(PartialConfiguration(target_temp=0, p=0))

    assert updated.target_temp == 0.0
    assert updated.p == 0.0


def test_update_preserves_status(tmp_path):
    store = ConfigStore(tmp_path / "fridge.json")
    store.write(Configuration(4, 1, 0, 0, status=Status.IDLE))

    store.update(PartialConfiguration(d=0.5))

    assert store.read().status == Status.IDLE


def test_update_without_file_uses_default(tmp_path):
    store = ConfigStore(tmp_path / "fridge.json", default=Configuration(4, 8, 0, 0))

    updated = store.update(PartialConfiguration(target_temp=3))

    assert updated == Configuration(3.0, 8.0, 0.0, 0.0)
    assert store.read() == updated


def test_update_without_file_or_default_raises(tmp_path):
    store = ConfigStore(tmp_path / "fridge.json")

    with pytest.raises(NotFoundError):
        store.update(PartialConfiguration(target_temp=3))


def test_update_require_all_rejects_before_writing(config_store, base_config):
    with pytest.raises(InvalidRequestError) as excinfo:
        config_store.update(PartialConfiguration(target_temp=5, p=1, i=0), require_all=True)

    assert excinfo.value.field == "d"
    assert config_store.read() == base_config


def test_update_on_corrupt_file_does_not_overwrite(tmp_path):
    path = tmp_path / "fridge.json"
    path.write_text("garbage")
    store = ConfigStore(path, default=Configuration(4, 1, 0, 0))

    with pytest.raises(CorruptDataError):
        store.update(PartialConfiguration(target_temp=5))

    assert path.read_text() == "garbage"


@pytest.mark.parametrize("value", [math.inf, -math.inf, math.nan])
def test_update_rejects_non_finite_values(config_store, value):
    before = config_store.path.read_text()

    with pytest.raises(InvalidRequestError) as excinfo:
        config_store.update(PartialConfiguration(target_temp=value))

    assert excinfo.value.field == "target_temp"
    assert config_store.path.read_text() == before
    assert config_store.read().target_temp == 4.0
