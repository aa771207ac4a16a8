"""Logging setup for PosterFrame.

Library modules log through ``posterframe.*`` loggers and never attach
handlers. Applications (the CLI, or a host embedding the generator) call
:func:`configure_logging` once to pick a text or JSON format, an optional
rotating log file and per-component levels.

    >>> configure_logging(LogConfig(log_level="DEBUG", log_format="json"))
    >>> get_logger("generator").info("Saved poster", path="ep1.jpg", width=1920)
"""

import json
import logging
import sys
from dataclasses import dataclass, field
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Dict, Optional

ROOT_LOGGER_NAME = "posterframe"
LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
FORMATS = ("text", "json")

# Keyword arguments the stdlib logger understands itself
_LOGGING_KWARGS = ("exc_info", "stack_info", "stacklevel", "extra")


def _level(name: str) -> int:
    return getattr(logging, name.upper())


@dataclass
class LogConfig:
    """Where and how PosterFrame logs.

    ``component_levels`` maps a logger name below ``posterframe`` (for
    example ``processors.letterbox``) to its own level.
    """

    log_level: str = "INFO"
    log_format: str = "text"
    log_file: Optional[str] = None
    component_levels: Dict[str, str] = field(default_factory=dict)
    max_file_size_mb: int = 10
    backup_count: int = 3
    include_timestamp: bool = True
    include_source: bool = False

    def __post_init__(self) -> None:
        if self.log_level.upper() not in LEVELS:
            raise ValueError(f"Invalid log_level '{self.log_level}', expected one of {LEVELS}")
        if self.log_format not in FORMATS:
            raise ValueError(f"Invalid log_format '{self.log_format}', expected one of {FORMATS}")
        bad = [name for name, level in self.component_levels.items() if level.upper() not in LEVELS]
        if bad:
            raise ValueError(f"Invalid log level for component(s): {', '.join(bad)}")

    def formatter(self) -> logging.Formatter:
        if self.log_format == "json":
            return JSONFormatter(include_source=self.include_source)
        return TextFormatter(include_timestamp=self.include_timestamp, include_source=self.include_source)


class JSONFormatter(logging.Formatter):
    """One JSON object per record, structured fields merged at top level."""

    def __init__(self, include_source: bool = False) -> None:
        super().__init__()
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        now = datetime.now(timezone.utc)
        entry: Dict[str, Any] = {
            "timestamp": now.strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z",
            "level": record.levelname,
            "component": record.name.rsplit(".", 1)[-1],
            "message": record.getMessage(),
        }
        if self.include_source:
            entry["source"] = {"file": record.filename, "line": record.lineno, "function": record.funcName}
        entry.update(getattr(record, "extra_fields", {}))
        if record.exc_info:
            entry["exception"] = self.formatException(record.exc_info)
        return json.dumps(entry, default=str, ensure_ascii=False)


class TextFormatter(logging.Formatter):
    """``2026-01-04 10:30:45 | INFO     | posterframe.generator | Saved poster [path=ep1.jpg]``"""

    def __init__(self, include_timestamp: bool = True, include_source: bool = False) -> None:
        fmt = "%(levelname)-8s | %(name)s | %(message)s"
        if include_timestamp:
            fmt = "%(asctime)s | " + fmt
        super().__init__(fmt=fmt, datefmt="%Y-%m-%d %H:%M:%S")
        self.include_source = include_source

    def format(self, record: logging.LogRecord) -> str:
        parts = [super().format(record)]
        fields = getattr(record, "extra_fields", None)
        if fields:
            parts.append("[" + ", ".join(f"{key}={value}" for key, value in fields.items()) + "]")
        if self.include_source:
            parts.append(f"({record.filename}:{record.lineno})")
        return " ".join(parts)


class StructuredLogger(logging.LoggerAdapter):
    """Adapter that moves extra keyword arguments into ``extra_fields``."""

    def process(self, msg: str, kwargs: Dict[str, Any]) -> tuple:
        fields = {key: kwargs.pop(key) for key in list(kwargs) if key not in _LOGGING_KWARGS}
        kwargs.setdefault("extra", {})["extra_fields"] = fields
        return msg, kwargs


_configured_loggers: Dict[str, StructuredLogger] = {}


def configure_logging(config: Optional[LogConfig] = None) -> None:
    """Install handlers on the ``posterframe`` logger, replacing old ones."""
    config = config or LogConfig()
    level = _level(config.log_level)
    formatter = config.formatter()

    root = logging.getLogger(ROOT_LOGGER_NAME)
    root.setLevel(level)
    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    handlers = [logging.StreamHandler(sys.stderr)]
    if config.log_file:
        log_path = Path(config.log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(RotatingFileHandler(
            log_path,
            maxBytes=config.max_file_size_mb * 1024 * 1024,
            backupCount=config.backup_count,
            encoding="utf-8",
        ))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.setLevel(level)
        root.addHandler(handler)

    for component, component_level in config.component_levels.items():
        logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}").setLevel(_level(component_level))

    root.propagate = False


def get_logger(component: str) -> StructuredLogger:
    """Structured logger for ``posterframe.<component>``, cached per name."""
    if component not in _configured_loggers:
        base = logging.getLogger(f"{ROOT_LOGGER_NAME}.{component}")
        _configured_loggers[component] = StructuredLogger(base, {})
    return _configured_loggers[component]


def configure_from_cli(
    log_level: Optional[str] = None,
    log_format: Optional[str] = None,
    log_file: Optional[str] = None,
) -> LogConfig:
    """Build a LogConfig from ``--log-*`` options and apply it.

    Unknown formats fall back to text.
    """
    config = LogConfig(
        log_level=(log_level or "INFO").upper(),
        log_format=log_format if log_format in FORMATS else "text",
        log_file=log_file,
    )
    configure_logging(config)
    return config
