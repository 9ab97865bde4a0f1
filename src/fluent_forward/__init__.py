"""Asyncio client forwarding structured events to a Fluentd-style collector.

Records are encoded as MessagePack ``[tag, time, data(, options)]`` arrays,
queued in FIFO order and written over one persistent TCP or Unix socket
connection, optionally waiting for a per-record acknowledgment.
"""

from fluent_forward.config import SenderConfig
from fluent_forward.events import EVENT_CONNECT, EVENT_ERROR, EventEmitter
from fluent_forward.protocol import (
    DataTypeError,
    EventTime,
    FluentForwardError,
    MissingTag,
    ResponseError,
    ResponseTimeout,
)
from fluent_forward.sender import FluentSender, create_fluent_sender
from fluent_forward.stream import EventStream
from fluent_forward.transport import SendResult

__version__ = "0.4.0"

__all__ = [
    "EVENT_CONNECT",
    "EVENT_ERROR",
    "DataTypeError",
    "EventEmitter",
    "EventStream",
    "EventTime",
    "FluentForwardError",
    "FluentSender",
    "MissingTag",
    "ResponseError",
    "ResponseTimeout",
    "SendResult",
    "SenderConfig",
    "__version__",
    "create_fluent_sender",
]
