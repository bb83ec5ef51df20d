"""Structured logging configuration.

Uses standard library logging with a JSON formatter. The `resource` and `state`
fields that reconciliation logs pass through `extra=` are lifted to the top of
each line; anything else goes under "extra".
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from typing import Any

PACKAGE_LOGGER = "replicaset_reconciler"

# Per-write chatter from the resource store and the progress annotations.
_STORE_LOGGERS = (
    "replicaset_reconciler.resources.store",
    "replicaset_reconciler.resources.progress",
)

_TOP_LEVEL_FIELDS = ("resource", "state")

_RESERVED_LOG_RECORD_ATTRS: set[str] = set(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__
) | {"message", "asctime", "taskName"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record, keyed for filtering by resource and state."""

    def format(self, record: logging.LogRecord) -> str:  # noqa: A003 (record)
        payload: dict[str, Any] = {
            "timestamp": datetime.fromtimestamp(record.created, tz=UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }

        extra: dict[str, Any] = {}
        for key, value in record.__dict__.items():
            if key in _RESERVED_LOG_RECORD_ATTRS or key.startswith("_"):
                continue
            if key in _TOP_LEVEL_FIELDS:
                payload[key] = value
            else:
                extra[key] = value
        if extra:
            payload["extra"] = extra

        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)

        # Spec and status snapshots may hold values json cannot encode.
        return json.dumps(payload, ensure_ascii=False, default=str)


def configure_logging(level: str, *, debug: bool = False) -> None:
    """Configure root logging with structured JSON output.

    With `debug`, this package logs at DEBUG regardless of `level`, store
    loggers included. Otherwise the store loggers stay at INFO or above.
    """

    root = logging.getLogger()

    # Drop existing handlers so re-configuring doesn't duplicate output.
    for handler in list(root.handlers):
        root.removeHandler(handler)

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(JsonFormatter())

    root.addHandler(handler)
    root.setLevel(level.upper())

    package = logging.getLogger(PACKAGE_LOGGER)
    package.setLevel(logging.DEBUG if debug else logging.NOTSET)
    for name in _STORE_LOGGERS:
        logging.getLogger(name).setLevel(
            logging.NOTSET if debug else max(root.level, logging.INFO)
        )
