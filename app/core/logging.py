"""Structured JSON Logging Configuration"""

import logging
import sys
from typing import Optional
from pythonjsonlogger import jsonlogger

from app.config import settings

_HANDLER_NAME = "skillup-stdout"


class SkillUpJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter adding service metadata and the request correlation id"""

    def add_fields(self, log_record: dict, record: logging.LogRecord, message_dict: dict) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record["level"] = record.levelname
        log_record["logger"] = record.name
        log_record["environment"] = settings.ENVIRONMENT
        log_record["app_name"] = settings.APP_NAME

        if hasattr(record, "correlation_id"):
            log_record["correlation_id"] = record.correlation_id


def setup_logging(level: Optional[str] = None) -> None:
    """
    Configure the root logger once.

    Args:
        level: Overrides settings.LOG_LEVEL (used by the maintenance CLI)
    """
    root_logger = logging.getLogger()
    if any(getattr(h, "name", None) == _HANDLER_NAME for h in root_logger.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.name = _HANDLER_NAME

    if settings.LOG_FORMAT == "json":
        formatter = SkillUpJsonFormatter(
            fmt="%(asctime)s %(level)s %(name)s %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )
    else:
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S"
        )

    handler.setFormatter(formatter)
    root_logger.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper()))
    root_logger.addHandler(handler)

    # Reduce noise from third-party libraries
    logging.getLogger("uvicorn.access").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("google").setLevel(logging.WARNING)


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
