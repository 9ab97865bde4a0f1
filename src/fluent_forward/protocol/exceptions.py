"""Custom exception types for fluent forward errors.

This module defines the exception hierarchy for validation and
acknowledgment errors. Validation errors are raised synchronously by the
packet encoder; acknowledgment errors are delivered asynchronously through
the item callback and the ``error`` event. Transport failures are plain
``OSError``/``TimeoutError`` instances and are passed through unchanged.
"""

from __future__ import annotations

from collections.abc import Mapping


class FluentForwardError(Exception):
    """Base exception for all fluent forward errors.

    Attributes:
        options: Context describing the failing record (tag prefix, label, ...)
    """

    def __init__(self, message: str, options: Mapping[str, object] | None = None):
        self.options: dict[str, object] = dict(options or {})
        super().__init__(message)


class MissingTag(FluentForwardError):
    """No routable tag could be resolved from tag prefix and label."""

    def __init__(self, tag_prefix: str | None = None, label: str | None = None):
        self.tag_prefix = tag_prefix
        self.label = label
        super().__init__("tag is missing", {"tag_prefix": tag_prefix, "label": label})


class DataTypeError(FluentForwardError):
    """Record payload is not a composite value (mapping or sequence).

    Attributes:
        record: The rejected payload
    """

    def __init__(
        self,
        reason: str = "data must be an object",
        tag_prefix: str | None = None,
        label: str | None = None,
        record: object = None,
    ):
        self.record = record
        super().__init__(reason, {"tag_prefix": tag_prefix, "label": label, "record": record})


class ResponseError(FluentForwardError):
    """Acknowledgment response did not match the chunk id that was sent.

    Attributes:
        ack: ``ack`` value found in the response (None if absent)
        chunk: Chunk identifier sent with the record
    """

    def __init__(self, ack: object, chunk: str | None):
        self.ack = ack
        self.chunk = chunk
        super().__init__(
            "ack in response and chunk id in sent data are different",
            {"ack": ack, "chunk": chunk},
        )


class ResponseTimeout(FluentForwardError):
    """No acknowledgment arrived within the configured window.

    Attributes:
        timeout_seconds: Timeout value that was exceeded
        chunk: Chunk identifier that was waiting for an ack
    """

    def __init__(self, timeout_seconds: float, chunk: str | None = None):
        self.timeout_seconds = timeout_seconds
        self.chunk = chunk
        super().__init__(
            "ack response timeout",
            {"timeout_seconds": timeout_seconds, "chunk": chunk},
        )


class PacketDecodeError(FluentForwardError):
    """Bytes received from the collector cannot be decoded.

    Attributes:
        reason: Specific failure reason
        data_preview: First 16 bytes of the offending data
    """

    def __init__(self, reason: str, data: bytes = b""):
        self.reason = reason
        self.data_preview = data[:16] if data else b""
        super().__init__(f"Response decode failed: {reason}", {"reason": reason})
