"""
Structured logging configuration.

Supports text and JSON log formats. Fields attached with LogContext
(tracking ids, request ids, input files) are appended to text lines and
merged into JSON records.
"""

import logging
import logging.handlers
import sys
from pathlib import Path

from pythonjsonlogger import jsonlogger

from src.utils.config_loader import LoggingConfig

SERVICE_NAME = "courier-portal"

NOISY_LOGGERS = ("urllib3", "httpx", "uvicorn.access")


class JSONFormatter(jsonlogger.JsonFormatter):
    """JSON log formatter with standard fields."""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict):
        super().add_fields(log_record, record, message_dict)

        log_record["timestamp"] = self.formatTime(record)
        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["service"] = SERVICE_NAME
        log_record["function"] = record.funcName
        log_record["line"] = record.lineno
        log_record.pop("extra_fields", None)

        if hasattr(record, "extra_fields"):
            log_record.update(record.extra_fields)


class ContextTextFormatter(logging.Formatter):
    """Text formatter that appends LogContext fields as key=value pairs."""

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        fields = getattr(record, "extra_fields", None)
        if fields:
            context = " ".join(f"{key}={value}" for key, value in fields.items())
            line = f"{line} [{context}]"
        return line


def setup_logging(
    level: str = "INFO",
    log_format: str = "text",
    log_file: Path | str | None = None,
    max_bytes: int = 10 * 1024 * 1024,  # 10MB
    backup_count: int = 5,
) -> None:
    """
    Configure application logging.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR).
        log_format: "text" for human-readable, "json" for structured.
        log_file: Optional file path for log output.
        max_bytes: Max log file size before rotation.
        backup_count: Number of backup files to keep.
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    root_logger.handlers.clear()

    if log_format.lower() == "json":
        formatter = JSONFormatter("%(timestamp)s %(level)s %(name)s %(message)s")
    else:
        formatter = ContextTextFormatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s", datefmt="%Y-%m-%d %H:%M:%S"
        )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            log_file,
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    root_logger.info(f"Logging configured: level={level}, format={log_format}")


def configure_logging(config: LoggingConfig, verbose: bool = False) -> None:
    """Apply the logging section of the app config. verbose forces DEBUG."""
    setup_logging(
        level="DEBUG" if verbose else config.level,
        log_format=config.format,
        log_file=config.file,
    )


class LogContext:
    """Context manager for adding structured fields to log messages."""

    def __init__(self, logger: logging.Logger, **fields):
        self.logger = logger
        self.fields = fields
        self.old_factory = None

    def __enter__(self):
        self.old_factory = logging.getLogRecordFactory()
        fields = self.fields

        def record_factory(*args, **kwargs):
            record = self.old_factory(*args, **kwargs)
            record.extra_fields = {**getattr(record, "extra_fields", {}), **fields}
            return record

        logging.setLogRecordFactory(record_factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self.old_factory)
        return False
