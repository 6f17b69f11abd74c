"""
Centralized logging utilities for the CDK app.

Emits one JSON object per record so synth logs line up with the Lambda
layer logger output.
"""

import json
import logging
import sys
from datetime import datetime, timezone


def get_logger(name: str = __name__, level: str = "INFO") -> logging.Logger:
    """
    Return a structured logger instance.

    Args:
        name: logger name
        level: log level (DEBUG, INFO, WARNING, ERROR, CRITICAL)

    Returns:
        configured logger instance
    """
    logger = logging.getLogger(name)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(StructuredFormatter())

        logger.addHandler(handler)
        logger.setLevel(getattr(logging, level.upper()))
        logger.propagate = False

    return logger


class StructuredFormatter(logging.Formatter):
    """JSON log formatter"""

    _RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "module": record.module,
            "function": record.funcName,
            "line": record.lineno,
        }

        # fields passed through ``extra=``
        for key, value in vars(record).items():
            if key not in self._RESERVED and key not in log_data:
                log_data[key] = value

        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)

        return json.dumps(log_data, ensure_ascii=False, default=str)
