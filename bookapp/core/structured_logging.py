"""JSON-line logging helpers.

Every event is a single JSON object so any log collector can ingest it
without a custom parser.
"""

from __future__ import annotations

import json
import logging
from datetime import UTC, datetime
from typing import Any

from bookapp.core.request_context import get_request_id

SERVICE_NAME = "bookapp"


def configure_logging(level: str = "INFO") -> None:
    """Install a bare message formatter on the root logger.

    Log records already carry their own JSON payload, so the handler only
    writes the message.
    """

    root = logging.getLogger()
    if not any(getattr(h, "_bookapp_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter("%(message)s"))
        handler._bookapp_handler = True  # type: ignore[attr-defined]
        root.addHandler(handler)
    root.setLevel(level.upper())


def redact_code(code: str) -> str:
    """Shorten an invitation code so a log line cannot be used to redeem it."""

    if len(code) <= 3:
        return "***"
    return f"{code[:3]}***"


def log_json(
    logger: logging.Logger,
    level: int,
    event: str,
    **fields: Any,
) -> None:
    """Emit a single JSON log line tagged with the request correlation ID."""

    payload: dict[str, Any] = {
        "timestamp": datetime.now(UTC).isoformat(),
        "service": SERVICE_NAME,
        "event": event,
    }
    request_id = get_request_id()
    if request_id:
        payload["request_id"] = request_id

    payload.update(fields)
    logger.log(level, json.dumps(payload, default=str))
