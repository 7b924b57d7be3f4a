"""
Logging configuration for the exchange core.

Every record goes to stdout and to a rotating file. The file defaults to
``exchange_core.log`` under ``paths.logs_dir`` unless ``logging.log_file``
names one. ``logging.format`` selects plain text or JSON lines.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

from pythonjsonlogger import jsonlogger

from exchange_core.utils.config_loader import AppConfig

DEFAULT_LOG_FILENAME = "exchange_core.log"
TEXT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class JSONFormatter(jsonlogger.JsonFormatter):
    """One JSON object per record; conversion context merged in from ``extra_fields``."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict):
        super().add_fields(log_record, record, message_dict)
        log_record.update({
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "location": f"{record.module}.{record.funcName}:{record.lineno}",
        })
        log_record.update(getattr(record, "extra_fields", {}))


def build_formatter(log_format: str) -> logging.Formatter:
    """Return the formatter for ``text`` or ``json``; anything else falls back to text."""
    if log_format.lower() == "json":
        return JSONFormatter("%(level)s %(name)s %(message)s")
    return logging.Formatter(TEXT_FORMAT, datefmt=DATE_FORMAT)


def resolve_log_file(config: AppConfig) -> Path:
    """Explicit ``logging.log_file`` wins; otherwise the default file under ``paths.logs_dir``."""
    if config.logging.log_file:
        return Path(config.logging.log_file)
    return Path(config.paths.logs_dir) / DEFAULT_LOG_FILENAME


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Path | None = None,
    max_bytes: int = 5 * 1024 * 1024,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Replace the root logger's handlers.

    Args:
        level: Log level name; unknown names fall back to INFO.
        log_format: "text" or "json".
        log_file: Rotating log file; None logs to stdout only.
        max_bytes: Size at which the file rotates.
        backup_count: Rotated files kept.

    Returns:
        logging.Logger: The configured root logger.
    """
    formatter = build_formatter(log_format)
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]

    if log_file is not None:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        ))

    root_logger = logging.getLogger()
    for old_handler in list(root_logger.handlers):
        root_logger.removeHandler(old_handler)

    for handler in handlers:
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    root_logger.debug(f"Logging configured: level={level}, format={log_format}, file={log_file}")
    return root_logger


def setup_logging_from_config(config: AppConfig) -> logging.Logger:
    """Configure logging from the ``logging`` and ``paths`` sections of AppConfig."""
    return setup_logging(
        level=config.logging.level,
        log_format=config.logging.format,
        log_file=resolve_log_file(config),
    )
