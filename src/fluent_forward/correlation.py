"""
Correlation ID tracking across async operations.

Provides correlation ID generation and propagation using contextvars so that
every log line written while a record is flushed carries that record's id.
"""

from __future__ import annotations

import contextvars
from collections.abc import Generator
from contextlib import contextmanager

from uuid_extensions import uuid7str

__all__ = [
    "correlation_context",
    "ensure_correlation_id",
    "generate_correlation_id",
    "get_correlation_id",
    "set_correlation_id",
]

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "correlation_id",
    default=None,
)


def generate_correlation_id() -> str:
    """
    Generate a new correlation ID.

    Returns:
        New time-ordered UUID v7 string
    """
    return uuid7str()


def get_correlation_id() -> str | None:
    """Get current correlation ID from context, or None if not set."""
    return _correlation_id.get()


def set_correlation_id(correlation_id: str | None) -> None:
    """Set correlation ID in current context (None clears it)."""
    _correlation_id.set(correlation_id)


@contextmanager
def correlation_context(
    correlation_id: str | None = None,
    auto_generate: bool = True,
) -> Generator[str | None]:
    """
    Context manager for correlation ID scope.

    Generates a correlation ID if none is provided and auto_generate=True.
    Restores the previous correlation ID on exit.

    Example:
        with correlation_context(item.correlation_id):
            logger.debug("Writing record")  # Includes the item's id
    """
    previous_id = get_correlation_id()

    if correlation_id is None and auto_generate:
        correlation_id = generate_correlation_id()

    set_correlation_id(correlation_id)

    try:
        yield correlation_id
    finally:
        set_correlation_id(previous_id)


def ensure_correlation_id() -> str:
    """
    Ensure a correlation ID exists in current context.

    Returns:
        Current or newly generated correlation ID
    """
    current_id = get_correlation_id()
    if current_id is None:
        current_id = generate_correlation_id()
        set_correlation_id(current_id)
    return current_id
