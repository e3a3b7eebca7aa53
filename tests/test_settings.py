from __future__ import annotations

import logging
import textwrap
from pathlib import Path

import pytest

from barbuilder.config import BarBuilderSettings
from barbuilder.errors import ConfigError
from barbuilder.logging_config import PACKAGE_LOGGER, configure_logging, resolve_level


def test_builtin_defaults():
    s = BarBuilderSettings.load()
    assert s.total_bars == 10
    assert s.slots_per_bar == 12
    assert s.total_slots == 120
    assert s.default_enabled_bars == [1, 2, 3, 4, 5, 6]
    assert s.spec_count == 5
    assert s.debounce_time == pytest.approx(0.5)
    assert s.restore_delay == pytest.approx(1.0)
    assert s.verify_delay == pytest.approx(1.0)
    assert s.verify_retries == 2
    assert s.spell_aliases == {"Attack": "Auto Attack", "Shoot": "Auto Shot"}


def test_user_file_overrides_and_merges(tmp_path: Path):
    user = tmp_path / "settings.yaml"
    user.write_text(
        textwrap.dedent(
            """
            timing:
              debounce_time: 0.25
              verify_retries: 3
            bars:
              default_enabled_bars: [3, 1, 1]
            spell_aliases:
              Throw: Auto Throw
            """
        ),
        encoding="utf-8",
    )
    s = BarBuilderSettings.load(user)
    assert s.debounce_time == pytest.approx(0.25)
    assert s.verify_retries == 3
    assert s.restore_delay == pytest.approx(1.0)
    assert s.default_enabled_bars == [1, 3]
    assert s.spell_aliases["Throw"] == "Auto Throw"
    assert s.spell_aliases["Attack"] == "Auto Attack"


def test_missing_user_file_uses_defaults(tmp_path: Path):
    s = BarBuilderSettings.load(tmp_path / "nope.yaml")
    assert s.verify_retries == 2


def test_invalid_values_raise_config_error(tmp_path: Path):
    user = tmp_path / "bad.yaml"
    user.write_text("timing:\n  verify_retries: 0\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        BarBuilderSettings.load(user)

    broken = tmp_path / "broken.yaml"
    broken.write_text("timing: [unclosed\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        BarBuilderSettings.load(broken)


@pytest.fixture
def pkg_logger():
    pkg = logging.getLogger(PACKAGE_LOGGER)
    old_handlers, old_level = pkg.handlers[:], pkg.level
    yield pkg
    pkg.handlers = old_handlers
    pkg.setLevel(old_level)


def test_log_level_setting(tmp_path: Path):
    assert BarBuilderSettings.load().log_level == "INFO"

    user = tmp_path / "settings.yaml"
    user.write_text("logging:\n  log_level: debug\n", encoding="utf-8")
    assert BarBuilderSettings.load(user).log_level == "DEBUG"

    user.write_text("logging:\n  log_level: chatty\n", encoding="utf-8")
    with pytest.raises(ConfigError):
        BarBuilderSettings.load(user)


def test_configure_logging_uses_settings_level(pkg_logger, monkeypatch):
    monkeypatch.delenv("BB_LOG_LEVEL", raising=False)
    configure_logging(BarBuilderSettings(log_level="WARNING"))
    assert pkg_logger.level == logging.WARNING
    # Module loggers inherit from the package logger.
    assert logging.getLogger("barbuilder.restore.engine").getEffectiveLevel() == logging.WARNING


def test_configure_logging_env_overrides_settings(pkg_logger, monkeypatch):
    monkeypatch.setenv("BB_LOG_LEVEL", "debug")
    configure_logging(BarBuilderSettings(log_level="WARNING"))
    assert pkg_logger.level == logging.DEBUG

    monkeypatch.setenv("BB_LOG_LEVEL", "nonsense")
    configure_logging(BarBuilderSettings(log_level="ERROR"))
    assert pkg_logger.level == logging.ERROR


def test_configure_logging_adds_handler_only_without_host_config(pkg_logger, monkeypatch):
    root = logging.getLogger()
    monkeypatch.setattr(root, "handlers", [])
    pkg_logger.handlers = []

    configure_logging()
    configure_logging()
    assert len(pkg_logger.handlers) == 1

    pkg_logger.handlers = []
    monkeypatch.setattr(root, "handlers", [logging.NullHandler()])
    configure_logging()
    assert pkg_logger.handlers == []


def test_resolve_level():
    assert resolve_level("info") == logging.INFO
    assert resolve_level(None, logging.ERROR) == logging.ERROR
    assert resolve_level("bogus", logging.WARNING) == logging.WARNING
