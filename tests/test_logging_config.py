import logging

import pytest

from nesstate import logging_config
from nesstate.settings import LoggingSettings


@pytest.fixture()
def basic_config(monkeypatch):
    calls = []
    monkeypatch.setattr(logging_config.logging, "basicConfig", lambda **kw: calls.append(kw))
    return calls


def test_level_and_format_come_from_settings(basic_config):
    settings = LoggingSettings(level="info", format="%(levelname)s %(message)s")
    logging_config.configure_logging(settings)
    assert basic_config == [{"level": logging.INFO, "format": "%(levelname)s %(message)s"}]


def test_debug_flag_overrides_level(basic_config):
    logging_config.configure_logging(LoggingSettings(level="ERROR"), debug=True)
    assert basic_config[0]["level"] == logging.DEBUG


def test_defaults_without_settings(basic_config):
    logging_config.configure_logging()
    assert basic_config[0]["level"] == logging.WARNING
    assert basic_config[0]["format"] == LoggingSettings().format
