"""Core dataclasses for the forwarding transport.

This module defines the result type handed back to callers of
``FluentSender.emit()``.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class SendResult:
    """Result of one ``emit()`` operation.

    Attributes:
        success: Whether the record was written (and acknowledged, if required)
        correlation_id: UUID v7 for observability and event tracing
        error: Error delivered to the callback, None on success
        reason: Short error reason ("" if success=True)
    """

    success: bool
    correlation_id: str  # UUID v7
    error: Exception | None = None
    reason: str = ""

    @classmethod
    def ok(cls, correlation_id: str) -> SendResult:
        return cls(success=True, correlation_id=correlation_id)

    @classmethod
    def failed(cls, correlation_id: str, error: Exception) -> SendResult:
        return cls(
            success=False,
            correlation_id=correlation_id,
            error=error,
            reason=type(error).__name__,
        )
