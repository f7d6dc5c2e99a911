# src/tiercache/logging_config.py
"""
Logging configuration for applications embedding tiercache.

The library itself only creates module loggers (``tiercache.tiers.disk``,
``tiercache.writeback`` and so on) and never installs handlers on import.
Applications that want tiercache's output routed somewhere call
:func:`configure_logging` once at startup.

Configuration comes from a dictionary or from the ``[logging]`` section of a
TOML file and supports:

- Console logging gated by :class:`DisplayFilter`
- Optional file logging, either one file per run or a single rotating file
- Per-component log level overrides

Key concepts:

    **Display filter**: with ``console_enabled=False`` (the default) the
    console handler still exists but only passes records that carry
    ``extra={"display": True}``. Operational messages such as "disk cache
    trimmed to 100 files" can reach the user while debug chatter about
    individual keys stays out of the terminal.

    **File modes**: ``file_mode="per_run"`` creates a new timestamped file
    per process; ``file_mode="single"`` appends to one file rotated by a
    ``RotatingFileHandler``.

Usage:
    from tiercache.logging_config import configure_logging, log_display

    configure_logging(app_name="thumbnailer", config={"console_enabled": True})

    import logging
    logger = logging.getLogger("thumbnailer")
    log_display(logger, logging.INFO, "Cache warmed with %d entries", count)
"""

import logging
import os
import sys
from datetime import datetime
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional

# ---------------------------------------------------------------------------
# Default logging configuration
# ---------------------------------------------------------------------------

DEFAULT_LOGGING_CONFIG: dict[str, Any] = {
    "console_enabled": False,
    "console_level": "WARNING",
    "console_format": "%(levelname)s - %(message)s",
    "file_enabled": False,
    "file_level": "DEBUG",
    "file_directory": "~/.local/share/tiercache/logs",
    "file_mode": "per_run",
    "file_name_pattern": "{app}_{timestamp:%Y%m%d_%H%M%S}.log",
    "file_single_name": "{app}.log",
    "file_format": "%(asctime)s [%(levelname)-8s] %(name)-30s - %(message)s (%(filename)s:%(lineno)d)",
    "rotation_max_bytes": 10 * 1024 * 1024,  # 10 MB
    "rotation_backup_count": 5,
    "display_min_level": "INFO",
    "components": {
        "tiercache": "INFO",
        "asyncio": "WARNING",
        "PIL": "WARNING",
    },
}


def _level(value: str | int, default: int) -> int:
    if isinstance(value, int):
        return value
    level = logging.getLevelName(str(value).upper())
    return level if isinstance(level, int) else default


# ---------------------------------------------------------------------------
# DisplayFilter
# ---------------------------------------------------------------------------


class DisplayFilter(logging.Filter):
    """Controls which log records pass through to the console handler.

    Behavior matrix::

        +------------------------+--------------+-----------------+
        | console_global         | display=True | display=False/  |
        |                        |              | absent          |
        +------------------------+--------------+-----------------+
        | True                   | PASS         | PASS            |
        | False (default)        | PASS*        | BLOCK           |
        +------------------------+--------------+-----------------+

        * subject to display_min_level
    """

    def __init__(
        self,
        console_globally_enabled: bool = False,
        display_min_level: int = logging.INFO,
    ) -> None:
        super().__init__()
        self.console_globally_enabled = console_globally_enabled
        self.display_min_level = display_min_level

    def filter(self, record: logging.LogRecord) -> bool:
        if self.console_globally_enabled:
            return True
        if getattr(record, "display", False):
            return record.levelno >= self.display_min_level
        return False


# ---------------------------------------------------------------------------
# UnifiedLoggingManager
# ---------------------------------------------------------------------------


class UnifiedLoggingManager:
    """
    Singleton manager for logging configuration.

    Ensures logging is only configured once and provides methods
    for runtime adjustment of log levels.
    """

    _instance: Optional["UnifiedLoggingManager"] = None
    _configured: bool = False
    _log_file_path: Path | None = None
    _console_handler: logging.Handler | None = None
    _file_handler: logging.Handler | None = None

    def __new__(cls) -> "UnifiedLoggingManager":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @classmethod
    def get_instance(cls) -> "UnifiedLoggingManager":
        """Get the singleton instance."""
        if cls._instance is None:
            cls._instance = cls()
        return cls._instance

    @classmethod
    def is_configured(cls) -> bool:
        return cls._configured

    @classmethod
    def get_log_file_path(cls) -> Path | None:
        return cls._log_file_path

    def configure(
        self,
        app_name: str = "tiercache",
        config: dict[str, Any] | None = None,
        config_file_path: str | Path | None = None,
        force_reconfigure: bool = False,
    ) -> Path | None:
        """
        Configure logging for the application.

        Args:
            app_name: Name of the application (used in log filenames)
            config: Logging configuration dictionary
            config_file_path: TOML file with a ``[logging]`` section (used
                when ``config`` is not given)
            force_reconfigure: If True, reconfigure even if already configured

        Returns:
            Path to the log file, or None when file logging is disabled
        """
        if UnifiedLoggingManager._configured and not force_reconfigure:
            return UnifiedLoggingManager._log_file_path

        log_config = self._load_config(config, config_file_path)

        root_logger = logging.getLogger()
        for handler in (UnifiedLoggingManager._console_handler, UnifiedLoggingManager._file_handler):
            if handler is not None:
                root_logger.removeHandler(handler)
                handler.close()
        UnifiedLoggingManager._console_handler = None
        UnifiedLoggingManager._file_handler = None
        UnifiedLoggingManager._log_file_path = None

        root_logger.setLevel(logging.DEBUG)

        # Console handler always exists; the filter decides what shows.
        console_globally_enabled = bool(log_config.get("console_enabled", False))
        display_filter = DisplayFilter(
            console_globally_enabled=console_globally_enabled,
            display_min_level=_level(log_config.get("display_min_level", "INFO"), logging.INFO),
        )
        console_handler = logging.StreamHandler(sys.stderr)
        if console_globally_enabled:
            console_handler.setLevel(_level(log_config.get("console_level", "WARNING"), logging.WARNING))
        else:
            console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(log_config["console_format"]))
        console_handler.addFilter(display_filter)
        root_logger.addHandler(console_handler)
        UnifiedLoggingManager._console_handler = console_handler

        if log_config.get("file_enabled", False):
            file_handler, log_file_path = self._create_file_handler(log_config, app_name)
            if file_handler is not None:
                root_logger.addHandler(file_handler)
                UnifiedLoggingManager._file_handler = file_handler
                UnifiedLoggingManager._log_file_path = log_file_path

        for component_name, level_str in log_config.get("components", {}).items():
            level = _level(level_str, logging.NOTSET)
            if level != logging.NOTSET:
                logging.getLogger(component_name).setLevel(level)

        UnifiedLoggingManager._configured = True
        logging.getLogger(__name__).debug(
            "Logging configured (log file: %s)", UnifiedLoggingManager._log_file_path
        )
        return UnifiedLoggingManager._log_file_path

    def _load_config(
        self, config: dict[str, Any] | None, config_file_path: str | Path | None
    ) -> dict[str, Any]:
        """Merge the given configuration over the defaults."""
        if config is not None:
            return {**DEFAULT_LOGGING_CONFIG, **config}

        if config_file_path is not None:
            import tomllib

            path = Path(config_file_path).expanduser()
            try:
                with open(path, "rb") as f:
                    section = tomllib.load(f).get("logging", {})
            except (OSError, tomllib.TOMLDecodeError) as e:
                sys.stderr.write(f"Warning: Cannot read logging config {path}: {e}\n")
                section = {}
            return {**DEFAULT_LOGGING_CONFIG, **section}

        return DEFAULT_LOGGING_CONFIG.copy()

    def _create_file_handler(
        self, config: dict[str, Any], app_name: str
    ) -> tuple[logging.Handler | None, Path | None]:
        """Create the file handler for ``per_run`` or ``single`` mode."""
        log_dir = Path(os.path.expanduser(config.get("file_directory", DEFAULT_LOGGING_CONFIG["file_directory"])))
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log directory {log_dir}: {e}\n")
            return None, None

        try:
            if config.get("file_mode", "per_run") == "single":
                try:
                    filename = config.get("file_single_name", "{app}.log").format(app=app_name)
                except (KeyError, ValueError):
                    filename = f"{app_name}.log"
                log_file_path = log_dir / filename
                handler: logging.Handler = RotatingFileHandler(
                    log_file_path,
                    maxBytes=config.get("rotation_max_bytes", 10 * 1024 * 1024),
                    backupCount=config.get("rotation_backup_count", 5),
                    encoding="utf-8",
                )
            else:
                timestamp = datetime.now()
                try:
                    filename = config.get(
                        "file_name_pattern", DEFAULT_LOGGING_CONFIG["file_name_pattern"]
                    ).format(app=app_name, timestamp=timestamp)
                except (KeyError, ValueError):
                    filename = f"{app_name}_{timestamp.strftime('%Y%m%d_%H%M%S')}.log"
                log_file_path = log_dir / filename
                handler = logging.FileHandler(log_file_path, encoding="utf-8")
        except OSError as e:
            sys.stderr.write(f"Warning: Cannot create log file in {log_dir}: {e}\n")
            return None, None

        handler.setLevel(_level(config.get("file_level", "DEBUG"), logging.DEBUG))
        handler.setFormatter(logging.Formatter(config.get("file_format", DEFAULT_LOGGING_CONFIG["file_format"])))
        return handler, log_file_path

    def set_console_level(self, level: str | int) -> None:
        """Change the console handler's log level at runtime."""
        if UnifiedLoggingManager._console_handler is not None:
            UnifiedLoggingManager._console_handler.setLevel(_level(level, logging.WARNING))

    def set_component_level(self, component: str, level: str | int) -> None:
        """Change a specific component's log level at runtime."""
        logging.getLogger(component).setLevel(_level(level, logging.INFO))


# ---------------------------------------------------------------------------
# Public module-level functions
# ---------------------------------------------------------------------------


def configure_logging(
    app_name: str = "tiercache",
    config: dict[str, Any] | None = None,
    config_file_path: str | Path | None = None,
    force_reconfigure: bool = False,
) -> Path | None:
    """
    Configure logging for the application. See :class:`UnifiedLoggingManager`.

    Example:
        configure_logging(
            app_name="thumbnailer",
            config={
                "console_enabled": True,
                "console_level": "INFO",
                "components": {"tiercache.tiers.disk": "DEBUG"},
            },
        )
    """
    return UnifiedLoggingManager.get_instance().configure(
        app_name=app_name,
        config=config,
        config_file_path=config_file_path,
        force_reconfigure=force_reconfigure,
    )


def log_display(
    logger: logging.Logger,
    level: int,
    msg: str,
    *args: Any,
    **kwargs: Any,
) -> None:
    """Log a message that also reaches the console in silent mode.

    Sets ``extra={"display": True}`` (merged with any caller ``extra``).
    ``display_min_level`` still applies.
    """
    extra = kwargs.pop("extra", None) or {}
    extra["display"] = True
    kwargs["extra"] = extra
    kwargs.setdefault("stacklevel", 2)
    logger.log(level, msg, *args, **kwargs)


def get_log_file_path() -> Path | None:
    """Get the current log file path."""
    return UnifiedLoggingManager.get_log_file_path()


def set_console_level(level: str | int) -> None:
    """Change console log level at runtime."""
    UnifiedLoggingManager.get_instance().set_console_level(level)


def set_component_level(component: str, level: str | int) -> None:
    """Change a specific component's log level at runtime."""
    UnifiedLoggingManager.get_instance().set_component_level(component, level)
