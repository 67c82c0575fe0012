"""Logging setup - JSON format in production, human-readable in debug."""

import json
import logging
import sys
from typing import Optional

from inventory_engine.core.config import Settings, settings as default_settings

HUMAN_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


class JSONFormatter(logging.Formatter):
    """One JSON object per log record."""

    def format(self, record):
        payload = {
            "ts": self.formatTime(record, self.datefmt),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
            "module": record.module,
            "line": record.lineno,
        }
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload)


def configure_logging(config: Optional[Settings] = None) -> logging.Handler:
    """Configure the root logger from settings and return the installed handler."""
    config = config or default_settings

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, config.log_level))
    root_logger.handlers.clear()

    if config.debug:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(HUMAN_FORMAT))
    else:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JSONFormatter())

    root_logger.addHandler(handler)
    return handler
