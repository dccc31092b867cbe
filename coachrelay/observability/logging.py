"""Structured relay events as single key=value log lines."""

from __future__ import annotations

from coachrelay.util.logger import get_logger

_events = get_logger("events")


def format_fields(payload: dict[str, object]) -> str:
    parts = []
    for key in sorted(payload):
        value = payload[key]
        text = "" if value is None else str(value)
        if not text or any(ch.isspace() or ch in '="' for ch in text):
            text = '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
        parts.append(f"{key}={text}")
    return " ".join(parts)


def log_event(event: str, **payload: object) -> None:
    fields = format_fields(payload)
    if fields:
        _events.info("event=%s %s", event, fields)
    else:
        _events.info("event=%s", event)
