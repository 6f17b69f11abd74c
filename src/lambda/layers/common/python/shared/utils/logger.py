"""JSON logger for the pipeline's leaf functions.

Every record is one JSON object carrying the function name (when running in
Lambda) and any fields passed through ``extra=``, so the invalidation and
notification logs can be filtered by job id or pipeline in CloudWatch.
"""

from __future__ import annotations

import json
import logging
import os
from typing import Any, Dict, Optional

_RESERVED = frozenset(vars(logging.LogRecord("", 0, "", 0, "", None, None))) | {"message", "asctime"}


class _JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # type: ignore[override]
        payload: Dict[str, Any] = {
            "timestamp": record.created,
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        function_name = os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
        if function_name:
            payload["function_name"] = function_name
        for key, value in vars(record).items():
            if key not in _RESERVED and key not in payload and value is not None:
                payload[key] = value
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


class _Adapter(logging.LoggerAdapter):
    def process(self, msg: Any, kwargs: Dict[str, Any]):  # type: ignore[override]
        extra = self.extra.copy() if isinstance(self.extra, dict) else {}
        if "extra" in kwargs and isinstance(kwargs["extra"], dict):
            extra.update(kwargs["extra"])  # merge per-call extras
        kwargs["extra"] = extra
        return msg, kwargs


def get_logger(name: str, job_id: Optional[str] = None) -> logging.LoggerAdapter:
    """Return a JSON logger adapter, optionally bound to a CodePipeline job id."""
    base = logging.getLogger(name)
    if not base.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(_JsonFormatter())
        base.addHandler(handler)
    base.setLevel(os.environ.get("LOG_LEVEL", "INFO").upper())
    extras: Dict[str, Any] = {}
    if job_id:
        extras["job_id"] = job_id
    return _Adapter(base, extras)
