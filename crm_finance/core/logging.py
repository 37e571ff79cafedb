"""
Structured logging setup.

Every module logs through ``logging.getLogger(__name__)``; this module only
installs one JSON formatter on the root logger at startup so request ids and
request metadata travel with each line.
"""

import json
import logging
import sys
from datetime import datetime, timezone
from typing import Any

# Attributes that middleware or services pass through ``extra=``
_EXTRA_FIELDS = (
    "request_id",
    "user_id",
    "org_id",
    "path",
    "method",
    "status_code",
    "latency_ms",
)


class JsonFormatter(logging.Formatter):
    """Render log records as one JSON object per line."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        for key in _EXTRA_FIELDS:
            if hasattr(record, key):
                payload[key] = getattr(record, key)

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        return json.dumps(payload, default=str)


def configure_logging(level: str = "INFO") -> None:
    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(JsonFormatter())
    logging.basicConfig(
        level=level.upper(),
        handlers=[handler],
        force=True,
    )
    # SQL echo is controlled by DEBUG on the engine, not by the root level
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
