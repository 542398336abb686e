import pytest
import yaml

from habitual import config
from habitual.core.types import Period


@pytest.fixture
def fresh_config(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "HABITUAL_DIR", tmp_path)
    monkeypatch.setattr(config, "CONFIG_PATH", tmp_path / "config.yaml")
    monkeypatch.setattr(config._config, "_data", {})
    return tmp_path


def test_default_period_is_month(fresh_config):
    assert config.get_default_period() is Period.MONTH


@pytest.mark.parametrize(
    "raw,expected",
    [("week", Period.WEEK), (" Quarter ", Period.QUARTER), ("yearly", Period.MONTH)],
)
def test_default_period_parsing(fresh_config, raw, expected):
    config._config._data["default_period"] = raw
    assert config.get_default_period() is expected


def test_set_default_period_persists(fresh_config):
    config.set_default_period(Period.WEEK)

    saved = yaml.safe_load((fresh_config / "config.yaml").read_text())
    assert saved == {"default_period": "week"}


def test_log_level(fresh_config):
    assert config.get_log_level() == "INFO"
    config._config._data["log_level"] = "debug"
    assert config.get_log_level() == "DEBUG"
