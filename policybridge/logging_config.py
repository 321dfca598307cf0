from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from typing import Optional

from policybridge.config import get_log_format, get_log_level


PACKAGE_LOGGER = "policybridge"

# Structured context attached by policybridge log calls through ``extra``
CONTEXT_FIELDS = ("iam_action", "policy_name", "owner", "status_code", "error_code", "page", "items")

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

_HANDLER_NAME = "policybridge"


class JsonLogFormatter(logging.Formatter):
    """One JSON object per record, carrying whichever context fields the call supplied."""

    def format(self, record: logging.LogRecord) -> str:
        payload = {
            "ts": datetime.fromtimestamp(record.created, tz=timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "event": record.getMessage(),
        }
        for name in CONTEXT_FIELDS:
            value = getattr(record, name, None)
            if value is not None:
                payload[name] = value
        if record.exc_info:
            payload["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(payload, separators=(",", ":"), ensure_ascii=False, default=str)


def configure_logging(level: Optional[str] = None, log_format: Optional[str] = None) -> logging.Logger:
    """
    Attach a stream handler to the ``policybridge`` logger.

    Only the package logger is touched: it stops propagating so records are
    not emitted twice, and the root logger and its handlers are left as the
    host application set them. Calling it again swaps the formatter in place.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, (level or get_log_level()).upper(), logging.INFO))

    formatter: logging.Formatter
    if (log_format or get_log_format()).lower() == "json":
        formatter = JsonLogFormatter()
    else:
        formatter = logging.Formatter(TEXT_FORMAT)

    handler = next((h for h in logger.handlers if h.get_name() == _HANDLER_NAME), None)
    if handler is None:
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        logger.addHandler(handler)
    handler.setFormatter(formatter)
    logger.propagate = False
    return logger
