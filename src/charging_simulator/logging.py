from __future__ import annotations

import json
import logging
import logging.handlers
import re
from pathlib import Path
from typing import Optional, Union

from charging_simulator.config.models import LoggingConfiguration

_SIMPLE_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"
_DEFAULT_BACKUP_COUNT = 7

# Level names used in configuration files, including the ones without a stdlib twin.
_LEVELS = {
    "error": logging.ERROR,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "info": logging.INFO,
    "http": logging.INFO,
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "silly": logging.DEBUG,
}

_SIZE_UNITS = {"": 1, "k": 1024, "m": 1024**2, "g": 1024**3}

_installed_handlers: list[logging.Handler] = []


class ErrorLevelFilter(logging.Filter):
    """Allow only error-or-higher log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        return record.levelno >= logging.ERROR


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        record_dict = {
            "time": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "module": record.name,
            "message": record.getMessage(),
        }
        if record.exc_info:
            record_dict["exception"] = self.formatException(record.exc_info)
        return json.dumps(record_dict, ensure_ascii=False)


def resolve_level(name: str) -> int:
    return _LEVELS.get(name.strip().lower(), logging.INFO)


def parse_max_size(value: Union[int, str, bool, None]) -> int:
    """Return a byte count from `10485760`, `"20k"`, `"10m"` or `"1g"`. 0 means unset."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(0, value)
    match = re.fullmatch(r"\s*(\d+)\s*([kmg]?)\s*", str(value).lower())
    if not match:
        return 0
    return int(match.group(1)) * _SIZE_UNITS[match.group(2)]


def parse_max_files(value: Union[int, str, bool, None]) -> int:
    """Return a file count from `14` or `"14d"` (one file per day). 0 means unset."""
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        return max(0, value)
    match = re.fullmatch(r"\s*(\d+)\s*d?\s*", str(value).lower())
    return int(match.group(1)) if match else 0


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format.strip().lower() == "json":
        return JsonFormatter()
    return logging.Formatter(_SIMPLE_FORMAT)


def _build_file_handler(path: Path, settings: LoggingConfiguration) -> logging.Handler:
    path.parent.mkdir(parents=True, exist_ok=True)
    if not settings.rotate:
        return logging.FileHandler(path, encoding="utf-8")
    backup_count = parse_max_files(settings.max_files) or _DEFAULT_BACKUP_COUNT
    max_bytes = parse_max_size(settings.max_size)
    if max_bytes > 0:
        return logging.handlers.RotatingFileHandler(
            path, maxBytes=max_bytes, backupCount=backup_count, encoding="utf-8"
        )
    return logging.handlers.TimedRotatingFileHandler(
        path, when="midnight", backupCount=backup_count, encoding="utf-8"
    )


def init_logging(settings: LoggingConfiguration, *, log_dir: Optional[Path] = None) -> None:
    """
    Configure the root logger from the logging section of the configuration.

    Installs a combined log file, an error-only log file and, when enabled, a console
    handler. Calling it again replaces the handlers from the previous call, which is how
    a configuration reload applies new logging settings.
    """
    root_logger = logging.getLogger()
    for handler in _installed_handlers:
        root_logger.removeHandler(handler)
        handler.close()
    _installed_handlers.clear()

    level = resolve_level(settings.level)
    root_logger.setLevel(level)
    formatter = _build_formatter(settings.format)
    base_dir = log_dir or Path.cwd()

    handlers: list[logging.Handler] = []
    combined_handler = _build_file_handler(base_dir / settings.file, settings)
    handlers.append(combined_handler)

    error_handler = _build_file_handler(base_dir / settings.error_file, settings)
    error_handler.setLevel(logging.ERROR)
    error_handler.addFilter(ErrorLevelFilter())
    handlers.append(error_handler)

    if settings.console:
        handlers.append(logging.StreamHandler())

    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
        _installed_handlers.append(handler)
