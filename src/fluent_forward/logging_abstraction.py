"""Opt-in log output for fluent forward.

The library logs through plain module loggers under ``fluent_forward`` and
never installs handlers or levels on its own. Applications that want the
JSON or human-readable output (with correlation ids) call
``configure_logging()`` once at startup.
"""

from __future__ import annotations

import json
import logging
import sys
from datetime import UTC, datetime
from pathlib import Path
from typing import override

from fluent_forward.const import (
    FLUENT_FORWARD_DEBUG,
    FLUENT_FORWARD_LOG_FORMAT,
    FLUENT_FORWARD_LOG_HUMAN_OUTPUT,
    FLUENT_FORWARD_LOG_JSON_FILE,
)
from fluent_forward.correlation import get_correlation_id

__all__ = [
    "HumanReadableFormatter",
    "JSONFormatter",
    "configure_logging",
    "record_context",
]

_RECORD_ATTRS = frozenset(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {
    "message",
    "asctime",
    "correlation_id",
}


def record_context(record: logging.LogRecord) -> dict[str, object]:
    """Return the fields passed via ``extra={...}`` on a log call."""
    return {key: value for key, value in vars(record).items() if key not in _RECORD_ATTRS}


class JSONFormatter(logging.Formatter):
    """One JSON document per line."""

    @override
    def format(self, record: logging.LogRecord) -> str:
        log_data: dict[str, object] = {
            "timestamp": datetime.now(UTC).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "function": record.funcName,
            "line": record.lineno,
            "message": record.getMessage(),
            "correlation_id": get_correlation_id(),
        }
        if context := record_context(record):
            log_data["context"] = context
        if record.exc_info:
            log_data["exception"] = self.formatException(record.exc_info)
        return json.dumps(log_data, default=str)


class HumanReadableFormatter(logging.Formatter):
    """Single-line output with a short correlation id and trailing context."""

    def __init__(self) -> None:
        super().__init__(
            fmt="%(asctime)s.%(msecs)03d %(levelname)s [%(module)s:%(lineno)d] %(correlation_id)s > %(message)s",
            datefmt="%m/%d/%y %H:%M:%S",
        )

    @override
    def format(self, record: logging.LogRecord) -> str:
        context = record_context(record)
        correlation_id = get_correlation_id()
        # Last 8 chars: UUID v7 prefixes are timestamps and barely vary
        record.correlation_id = f"[{correlation_id[-8:]}]" if correlation_id else "[--------]"

        formatted = super().format(record)
        if context:
            formatted += " | " + " | ".join(f"{k}={v}" for k, v in context.items())
        return formatted


def _human_handler(human_output: str) -> logging.Handler:
    if human_output == "stdout":
        return logging.StreamHandler(sys.stdout)
    if human_output == "stderr":
        return logging.StreamHandler(sys.stderr)
    path = Path(human_output)
    path.parent.mkdir(parents=True, exist_ok=True)
    return logging.FileHandler(path, mode="a")


def configure_logging(
    name: str = "fluent_forward",
    log_format: str | None = None,
    json_file: str | Path | None = None,
    human_output: str | None = None,
    debug: bool | None = None,
) -> logging.Logger:
    """Attach fluent forward handlers to ``name``; defaults come from the environment.

    Args:
        name: Logger to configure
        log_format: "json", "human", or "both"
        json_file: JSON output file (JSON output is skipped without one)
        human_output: "stdout", "stderr", or a file path
        debug: Log at DEBUG instead of INFO

    Calling it again for a logger that already has handlers only updates
    the level. Configured loggers stop propagating to the root logger.
    """
    log_format = log_format or FLUENT_FORWARD_LOG_FORMAT
    json_file = json_file or FLUENT_FORWARD_LOG_JSON_FILE
    human_output = human_output or FLUENT_FORWARD_LOG_HUMAN_OUTPUT
    debug = FLUENT_FORWARD_DEBUG if debug is None else debug

    target = logging.getLogger(name)
    target.setLevel(logging.DEBUG if debug else logging.INFO)
    if target.handlers:
        return target

    if log_format in ("json", "both") and json_file:
        json_path = Path(json_file)
        json_path.parent.mkdir(parents=True, exist_ok=True)
        json_handler = logging.FileHandler(json_path, mode="a")
        json_handler.setFormatter(JSONFormatter())
        target.addHandler(json_handler)

    if log_format in ("human", "both"):
        human_handler = _human_handler(human_output)
        human_handler.setFormatter(HumanReadableFormatter())
        target.addHandler(human_handler)

    target.propagate = not target.handlers
    return target
