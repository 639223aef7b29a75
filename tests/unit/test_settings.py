"""Unit tests for settings and logging setup."""

import logging
from pathlib import Path

import pytest


class TestSettings:
    """Tests for environment-driven settings."""

    def test_defaults(self, monkeypatch):
        from sentry_tui.config import Settings

        for name in ("SENTRY_TUI_MONITOR_INTERVAL", "SENTRY_TUI_DEFAULT_PROJECT", "LOG_LEVEL"):
            monkeypatch.delenv(name, raising=False)

        settings = Settings.from_env()

        assert settings.monitor.monitor_interval == 5.0
        assert settings.monitor.dashboard_limit == 10
        assert settings.default_project == "default"
        assert settings.log_level == "WARNING"

    def test_environment_overrides(self, monkeypatch, tmp_path: Path):
        from sentry_tui.config import Settings

        monkeypatch.setenv("SENTRY_TUI_API_URL", "https://sentry.example.com/api/0/")
        monkeypatch.setenv("SENTRY_TUI_MONITOR_INTERVAL", "2.5")
        monkeypatch.setenv("SENTRY_TUI_CONFIG", str(tmp_path / "c.json"))
        monkeypatch.setenv("SENTRY_TUI_DEFAULT_PROJECT", "backend")

        settings = Settings.from_env()

        assert settings.api.base_url == "https://sentry.example.com/api/0"
        assert settings.monitor.monitor_interval == 2.5
        assert settings.config_path == tmp_path / "c.json"
        assert settings.default_project == "backend"

    @pytest.mark.parametrize(
        "name, value",
        [
            ("SENTRY_TUI_TIMEOUT", "soon"),
            ("SENTRY_TUI_MONITOR_INTERVAL", "fast"),
            ("SENTRY_TUI_REFRESH_INTERVAL", "0"),
        ],
    )
    def test_invalid_seconds_rejected(self, monkeypatch, name, value):
        """Test a bad interval names the variable instead of failing in float()."""
        from sentry_tui.config import Settings, SettingsError

        monkeypatch.setenv(name, value)

        with pytest.raises(SettingsError, match=name):
            Settings.from_env()

    def test_xdg_config_home(self, monkeypatch, tmp_path: Path):
        from sentry_tui.config import default_config_path

        monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path))

        assert default_config_path() == tmp_path / "sentry-tui" / "config.json"

    def test_tui_log_file_default(self, tmp_path: Path):
        from sentry_tui.config import Settings

        settings = Settings(cache_dir=tmp_path)

        assert settings.tui_log_file == tmp_path / "sentry-tui.log"


class TestLogging:
    """Tests for logging setup."""

    def test_file_only_logging(self, tmp_path: Path):
        """Test the interactive runtime's logging never writes to the console."""
        from rich.logging import RichHandler

        from sentry_tui.utils import get_logger, setup_logging

        log_file = tmp_path / "logs" / "sentry-tui.log"
        logger = setup_logging("INFO", log_file, console_output=False)

        assert not any(isinstance(h, RichHandler) for h in logger.handlers)
        assert any(isinstance(h, logging.FileHandler) for h in logger.handlers)

        get_logger("sentry_tui.tests").info("written to file")
        for handler in logger.handlers:
            handler.flush()
        assert "written to file" in log_file.read_text()

        setup_logging("WARNING", console_output=False)

    def test_console_logging(self):
        from rich.logging import RichHandler

        from sentry_tui.utils import setup_logging

        logger = setup_logging("DEBUG")

        assert [type(h) for h in logger.handlers] == [RichHandler]
        assert logger.level == logging.DEBUG
