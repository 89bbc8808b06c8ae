from __future__ import annotations

import logging

import pytest
from pydantic import ValidationError

from automemo.settings import MemoSettings


@pytest.mark.unit
def test_defaults():
    settings = MemoSettings.from_env({})

    assert settings.enabled is True
    assert settings.log_level == "INFO"
    assert settings.log_level_number == logging.INFO


@pytest.mark.unit
@pytest.mark.parametrize("raw, expected", [("0", False), ("false", False), ("Off", False), ("1", True), ("yes", True)])
def test_enabled_flag_from_environment(raw, expected):
    assert MemoSettings.from_env({"AUTOMEMO_ENABLED": raw}).enabled is expected


@pytest.mark.unit
def test_log_level_is_normalized():
    settings = MemoSettings.from_env({"AUTOMEMO_LOG_LEVEL": " debug "})

    assert settings.log_level == "DEBUG"
    assert settings.log_level_number == logging.DEBUG


@pytest.mark.unit
def test_unknown_log_level_is_rejected():
    with pytest.raises(ValidationError):
        MemoSettings.from_env({"AUTOMEMO_LOG_LEVEL": "LOUD"})


@pytest.mark.unit
def test_settings_are_frozen():
    settings = MemoSettings()

    with pytest.raises(ValidationError):
        settings.enabled = False


@pytest.mark.unit
def test_reads_process_environment(monkeypatch: pytest.MonkeyPatch):
    monkeypatch.setenv("AUTOMEMO_ENABLED", "no")

    assert MemoSettings.from_env().enabled is False
