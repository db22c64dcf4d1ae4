"""In-process ring buffer of structured log events for the /ops console.

Any log record carrying ``extra={"event_type": ..., "ops_payload": {...}}`` is
captured. Member contact details and free-text interest notes never reach the
buffer unredacted.
"""

from __future__ import annotations

import logging
import re
from collections import deque
from contextvars import ContextVar, Token
from datetime import UTC, datetime
from threading import Lock
from typing import Any, Literal, TypedDict
from uuid import uuid4

EventLevel = Literal["info", "warning", "error"]

REDACTED = "[REDACTED]"
CORRELATION_ID_HEADER = "x-request-id"

_EMAIL_RE = re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b")
# Portuguese mobile/landline numbers, with or without the +351 prefix.
_PHONE_RE = re.compile(r"(?:\+351[\s-]?)?\b[29]\d{2}[\s-]?\d{3}[\s-]?\d{3}\b")
_SENSITIVE_KEYS = ("email", "phone", "note", "token", "password", "secret", "api_key", "authorization")

_correlation_id: ContextVar[str | None] = ContextVar("correlation_id", default=None)


class OpsEvent(TypedDict):
    timestamp: str
    level: EventLevel
    component: str
    event_type: str
    message: str
    correlation_id: str | None
    payload: dict[str, Any]


def iso_now() -> str:
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def redact_text(value: str) -> str:
    return _PHONE_RE.sub(REDACTED, _EMAIL_RE.sub(REDACTED, value))


def sanitize_value(value: Any, key_hint: str | None = None) -> Any:
    if key_hint is not None and any(key in key_hint.lower() for key in _SENSITIVE_KEYS):
        return REDACTED
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, dict):
        return {key: sanitize_value(nested, str(key)) for key, nested in value.items()}
    if isinstance(value, (list, tuple)):
        return [sanitize_value(item) for item in value]
    return value


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def set_correlation_id(correlation_id: str) -> Token[str | None]:
    return _correlation_id.set(correlation_id)


def reset_correlation_id(token: Token[str | None]) -> None:
    _correlation_id.reset(token)


def new_correlation_id() -> str:
    return uuid4().hex


def _level_for(record: logging.LogRecord) -> EventLevel:
    if record.levelno >= logging.ERROR:
        return "error"
    if record.levelno >= logging.WARNING:
        return "warning"
    return "info"


class OpsEventBuffer:
    def __init__(self, max_size: int = 500) -> None:
        self._events: deque[OpsEvent] = deque(maxlen=max_size)
        self._lock = Lock()

    def add(self, event: OpsEvent) -> None:
        with self._lock:
            self._events.append(event)

    def recent(
        self,
        *,
        limit: int,
        level: EventLevel | None = None,
        event_type: str | None = None,
        correlation_id: str | None = None,
    ) -> list[OpsEvent]:
        """Newest first. ``event_type`` and ``correlation_id`` match as substrings."""
        with self._lock:
            snapshot = list(self._events)
        matches = [
            event
            for event in snapshot
            if (level is None or event["level"] == level)
            and (event_type is None or event_type in event["event_type"])
            and (correlation_id is None or correlation_id in (event["correlation_id"] or ""))
        ]
        return matches[::-1][:limit]


ops_event_buffer = OpsEventBuffer()


class OpsEventHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        payload = sanitize_value(getattr(record, "ops_payload", None) or {})
        if not isinstance(payload, dict):
            payload = {"value": payload}
        ops_event_buffer.add(
            {
                "timestamp": iso_now(),
                "level": _level_for(record),
                "component": record.name,
                "event_type": str(getattr(record, "event_type", record.name)),
                "message": redact_text(record.getMessage()),
                "correlation_id": getattr(record, "correlation_id", None) or get_correlation_id(),
                "payload": payload,
            }
        )


def configure_ops_event_logging(max_size: int) -> None:
    """Reset the buffer and attach the capture handler to the root logger once."""
    global ops_event_buffer
    ops_event_buffer = OpsEventBuffer(max_size=max_size)

    root_logger = logging.getLogger()
    if not any(isinstance(handler, OpsEventHandler) for handler in root_logger.handlers):
        root_logger.addHandler(OpsEventHandler())
