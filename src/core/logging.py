from __future__ import annotations

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any, Dict, Set

from core.config import get_settings


EXTRA_WHITELIST = {"match_stats", "fetch_stats", "corpus_stats"}
_MANAGED_LOGGERS: Set[str] = set()


class JsonFormatter(logging.Formatter):
    """Formatter JSON con supporto campi extra selezionati."""

    def format(self, record: logging.LogRecord) -> str:
        payload: Dict[str, Any] = {
            "ts": datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
            "level": record.levelname,
            "logger": record.name,
            "msg": record.getMessage(),
        }
        # Extra whitelisted
        for key in EXTRA_WHITELIST:
            if hasattr(record, key):
                payload[key] = getattr(record, key)
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False)


def _configured_level() -> int:
    level = logging.getLevelName(get_settings().log_level)
    return level if isinstance(level, int) else logging.INFO


def get_logger(name: str) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        logger.setLevel(_configured_level())
        logger.propagate = False
        _MANAGED_LOGGERS.add(name)
    return logger


def refresh_levels() -> None:
    """Riapplica il livello configurato ai logger già creati (es. dopo il .env)."""
    level = _configured_level()
    for name in _MANAGED_LOGGERS:
        logging.getLogger(name).setLevel(level)
