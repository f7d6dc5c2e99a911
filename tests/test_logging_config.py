# tests/test_logging_config.py
"""
Tests for the tiercache.logging_config module.

Tests the UnifiedLoggingManager singleton, the display filter, file
handlers, runtime level changes and TOML configuration.
"""

import logging
import tempfile
from logging.handlers import RotatingFileHandler
from pathlib import Path

import pytest

from tiercache.logging_config import (
    DEFAULT_LOGGING_CONFIG,
    DisplayFilter,
    UnifiedLoggingManager,
    configure_logging,
    get_log_file_path,
    log_display,
    set_component_level,
    set_console_level,
)


@pytest.fixture
def temp_log_dir():
    """Create a temporary directory for log files."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


def _reset_manager() -> None:
    for handler in (UnifiedLoggingManager._console_handler, UnifiedLoggingManager._file_handler):
        if handler is not None:
            logging.getLogger().removeHandler(handler)
            handler.close()
    UnifiedLoggingManager._instance = None
    UnifiedLoggingManager._configured = False
    UnifiedLoggingManager._log_file_path = None
    UnifiedLoggingManager._console_handler = None
    UnifiedLoggingManager._file_handler = None


@pytest.fixture(autouse=True)
def reset_logging_manager():
    """Reset the logging manager singleton between tests."""
    root = logging.getLogger()
    root_level = root.level
    _reset_manager()
    yield
    _reset_manager()
    root.setLevel(root_level)
    for name in DEFAULT_LOGGING_CONFIG["components"]:
        logging.getLogger(name).setLevel(logging.NOTSET)


def _record(level: int = logging.INFO, display: bool | None = None) -> logging.LogRecord:
    record = logging.LogRecord("tiercache.test", level, __file__, 1, "msg", None, None)
    if display is not None:
        record.display = display
    return record


class TestDefaultLoggingConfig:
    """Tests for the default configuration."""

    def test_library_is_quiet_by_default(self):
        assert DEFAULT_LOGGING_CONFIG["console_enabled"] is False
        assert DEFAULT_LOGGING_CONFIG["file_enabled"] is False

    def test_components(self):
        assert DEFAULT_LOGGING_CONFIG["components"]["tiercache"] == "INFO"


class TestDisplayFilter:
    """Tests for DisplayFilter."""

    def test_global_console_passes_everything(self):
        assert DisplayFilter(console_globally_enabled=True).filter(_record())

    def test_silent_mode_blocks_plain_records(self):
        assert not DisplayFilter().filter(_record())

    def test_silent_mode_passes_display_records(self):
        assert DisplayFilter().filter(_record(display=True))

    def test_display_min_level(self):
        f = DisplayFilter(display_min_level=logging.WARNING)
        assert not f.filter(_record(logging.INFO, display=True))
        assert f.filter(_record(logging.ERROR, display=True))


class TestUnifiedLoggingManager:
    """Tests for the singleton manager."""

    def test_singleton(self):
        assert UnifiedLoggingManager() is UnifiedLoggingManager.get_instance()

    def test_configure_installs_console_handler(self):
        assert configure_logging() is None
        assert UnifiedLoggingManager.is_configured()
        assert UnifiedLoggingManager._console_handler in logging.getLogger().handlers

    def test_configure_is_idempotent(self):
        configure_logging()
        handler = UnifiedLoggingManager._console_handler
        configure_logging(config={"console_enabled": True})
        assert UnifiedLoggingManager._console_handler is handler

    def test_force_reconfigure_replaces_own_handlers_only(self):
        foreign = logging.NullHandler()
        root = logging.getLogger()
        root.addHandler(foreign)
        try:
            configure_logging()
            first = UnifiedLoggingManager._console_handler
            configure_logging(force_reconfigure=True)

            assert first not in root.handlers
            assert UnifiedLoggingManager._console_handler in root.handlers
            assert foreign in root.handlers
        finally:
            root.removeHandler(foreign)

    def test_per_run_file(self, temp_log_dir):
        path = configure_logging(
            app_name="thumbs",
            config={"file_enabled": True, "file_directory": str(temp_log_dir)},
        )
        assert path is not None
        assert path.parent == temp_log_dir
        assert path.name.startswith("thumbs_")
        assert get_log_file_path() == path

        logging.getLogger("tiercache.test").info("written to file")
        UnifiedLoggingManager._file_handler.flush()
        assert "written to file" in path.read_text()

    def test_single_rotating_file(self, temp_log_dir):
        path = configure_logging(
            app_name="thumbs",
            config={
                "file_enabled": True,
                "file_mode": "single",
                "file_directory": str(temp_log_dir),
            },
        )
        assert path == temp_log_dir / "thumbs.log"
        assert isinstance(UnifiedLoggingManager._file_handler, RotatingFileHandler)

    def test_components_levels_applied(self):
        configure_logging(config={"components": {"tiercache.tiers.disk": "DEBUG"}})
        assert logging.getLogger("tiercache.tiers.disk").level == logging.DEBUG
        logging.getLogger("tiercache.tiers.disk").setLevel(logging.NOTSET)

    def test_toml_config(self, tmp_path, temp_log_dir):
        config_file = tmp_path / "app.toml"
        config_file.write_text(
            "[logging]\n"
            "file_enabled = true\n"
            'file_mode = "single"\n'
            f'file_directory = "{temp_log_dir.as_posix()}"\n'
        )
        path = configure_logging(app_name="fromtoml", config_file_path=config_file)
        assert path == temp_log_dir / "fromtoml.log"

    def test_unreadable_toml_falls_back_to_defaults(self, tmp_path):
        assert configure_logging(config_file_path=tmp_path / "missing.toml") is None
        assert UnifiedLoggingManager.is_configured()


class TestRuntimeAdjustments:
    """Tests for runtime level changes and log_display."""

    def test_set_console_level(self):
        configure_logging(config={"console_enabled": True})
        set_console_level("ERROR")
        assert UnifiedLoggingManager._console_handler.level == logging.ERROR

    def test_set_component_level(self):
        set_component_level("tiercache.writeback", "DEBUG")
        assert logging.getLogger("tiercache.writeback").level == logging.DEBUG
        logging.getLogger("tiercache.writeback").setLevel(logging.NOTSET)

    def test_log_display_marks_record(self, caplog):
        logger = logging.getLogger("tiercache.test")
        with caplog.at_level(logging.INFO, logger="tiercache.test"):
            log_display(logger, logging.INFO, "shown %d", 1, extra={"other": "x"})

        record = caplog.records[-1]
        assert record.display is True
        assert record.other == "x"
        assert record.getMessage() == "shown 1"
        assert record.funcName == "test_log_display_marks_record"
