"""Logging setup: readable console output plus JSON log files."""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from pythonjsonlogger import jsonlogger

from scraper_service.config import settings

SERVICE_NAME = "product-scraper"

CONSOLE_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
JSON_FORMAT = "%(timestamp)s %(level)s %(name)s %(message)s"

# Third-party loggers that flood DEBUG output with per-request lines
QUIET_LOGGERS = ("httpx", "httpcore", "asyncio")


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter stamping each record with service and source fields."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = datetime.fromtimestamp(
            record.created, tz=timezone.utc
        ).isoformat().replace('+00:00', 'Z')
        log_record['service'] = SERVICE_NAME
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['source'] = f"{record.filename}:{record.lineno}"
        if record.funcName:
            log_record['function'] = record.funcName


def _json_file_handler(path: Path, level: int) -> logging.Handler:
    handler = logging.FileHandler(path, encoding="utf-8")
    handler.setLevel(level)
    handler.setFormatter(CustomJsonFormatter(JSON_FORMAT))
    return handler


def setup_logging(base_dir: str | Path | None = None) -> logging.Logger:
    """Configure the root logger for the service.

    Writes human-readable lines to stdout, every record as JSON to
    ``logs/app.log`` and errors to ``logs/error.log``.

    Args:
        base_dir: Directory to create ``logs/`` in. Defaults to
                  ``settings.log_dir``, then the current working directory.
    """
    base = base_dir or settings.log_dir
    logs_dir = (Path(base) if base else Path.cwd()) / "logs"
    logs_dir.mkdir(parents=True, exist_ok=True)

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, settings.log_level.upper()))
    root_logger.handlers.clear()

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.DEBUG)
    console_handler.setFormatter(logging.Formatter(CONSOLE_FORMAT))
    root_logger.addHandler(console_handler)

    root_logger.addHandler(_json_file_handler(logs_dir / "app.log", logging.DEBUG))
    root_logger.addHandler(_json_file_handler(logs_dir / "error.log", logging.ERROR))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    return root_logger


class LoggerAdapter(logging.LoggerAdapter):
    """Adapter that merges its context into each record's ``extra``."""

    def process(self, msg, kwargs):
        kwargs['extra'] = {**kwargs.get('extra', {}), **self.extra}
        return msg, kwargs


def get_logger(name: str, **context) -> LoggerAdapter:
    """
    Get a logger that tags every record with context fields.

    The fields land as top-level keys in the JSON log files.

    Args:
        name: Logger name (usually __name__)
        **context: Context fields, e.g. product_id='1723000000abc123', index=0

    Returns:
        LoggerAdapter with context
    """
    return LoggerAdapter(logging.getLogger(name), context)
