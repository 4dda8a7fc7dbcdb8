import logging
import os
import sys
from datetime import datetime, timezone

from pythonjsonlogger import jsonlogger

SERVICE_NAME = "quizit"


class QuizitJsonFormatter(jsonlogger.JsonFormatter):
    """JSON formatter that stamps every record with the service name and a UTC timestamp."""

    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)
        log_record.setdefault("service", SERVICE_NAME)
        log_record["timestamp"] = datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat()


def get_logger(name: str, log_level: str = None):
    """
    Structured logger writing one JSON object per line to stdout.

    Context goes in ``extra={...}``; those keys end up as top-level fields.
    """
    logger = logging.getLogger(name)
    logger.setLevel(log_level or os.getenv("LOG_LEVEL", "INFO"))
    logger.propagate = False

    formatter = QuizitJsonFormatter(
        '%(name)s %(levelname)s %(module)s %(funcName)s %(message)s'
    )

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    return logger


# Default logger instance
logger = get_logger(SERVICE_NAME)
