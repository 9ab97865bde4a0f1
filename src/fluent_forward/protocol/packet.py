"""Packet encoder: builds and serializes forward-mode wire records.

A record is the MessagePack array ``[tag, time, data]``, extended with a
fourth ``{"chunk": <id>}`` options map when the collector is asked to
acknowledge it.
"""

from __future__ import annotations

import asyncio
import base64
import math
import secrets
import time
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import TYPE_CHECKING, Any, Final

from uuid_extensions import uuid7str

from fluent_forward.protocol import codec
from fluent_forward.protocol.event_time import EventTime
from fluent_forward.protocol.exceptions import DataTypeError, MissingTag

if TYPE_CHECKING:
    from fluent_forward.transport.types import SendResult

CHUNK_ID_BYTES: Final = 16

Timestamp = int | float | EventTime
Callback = Callable[[Exception | None], object]


@dataclass
class PendingItem:
    """One queued, not-yet-acknowledged record.

    Attributes:
        packet: Fully encoded wire record
        tag: Resolved routing key
        time: Epoch value or EventTime that was encoded
        data: Original payload
        options: ``{"chunk": ...}`` when acknowledgment is required, else empty
        callback: Completion callable, called once with None or the error
        correlation_id: UUID v7 for log correlation
        result: Future resolved once with the SendResult
    """

    packet: bytes
    tag: str
    time: Timestamp
    data: Any
    options: dict[str, str] = field(default_factory=dict)
    callback: Callback | None = None
    correlation_id: str = field(default_factory=uuid7str)
    result: asyncio.Future[SendResult] | None = None

    @property
    def chunk(self) -> str | None:
        return self.options.get("chunk")

    def resolve(self, result: SendResult) -> None:
        """Resolve the result future unless it is already done."""
        if self.result is not None and not self.result.done():
            self.result.set_result(result)


def generate_chunk_id() -> str:
    """Random base64 identifier correlating a record with its ack."""
    return base64.b64encode(secrets.token_bytes(CHUNK_ID_BYTES)).decode("ascii")


class PacketEncoder:
    """Validates records and encodes them into PendingItems."""

    def __init__(
        self,
        tag_prefix: str | None = None,
        require_ack_response: bool = False,
        milliseconds: bool = False,
    ):
        self.tag_prefix = tag_prefix
        self.require_ack_response = require_ack_response
        self.milliseconds = milliseconds
        # Divisor applied to epoch milliseconds
        self._time_resolution = 1 if milliseconds else 1000

    def resolve_tag(self, label: str | None) -> str:
        """Join prefix and label with a dot, or use whichever is present.

        Raises:
            MissingTag: If neither prefix nor label is set
        """
        if self.tag_prefix and label:
            return f"{self.tag_prefix}.{label}"
        if self.tag_prefix:
            return self.tag_prefix
        if label:
            return label
        raise MissingTag(tag_prefix=self.tag_prefix, label=label)

    def resolve_time(self, timestamp: Timestamp | datetime | None) -> Timestamp:
        if isinstance(timestamp, (int, float, EventTime)) and not isinstance(timestamp, bool):
            return timestamp
        epoch_ms = timestamp.timestamp() * 1000 if isinstance(timestamp, datetime) else time.time() * 1000
        return math.floor(epoch_ms / self._time_resolution)

    def make_packet_item(
        self,
        label: str | None,
        data: Any,
        timestamp: Timestamp | datetime | None = None,
    ) -> PendingItem:
        """Build a PendingItem for ``data`` under the resolved tag.

        Raises:
            MissingTag: No tag prefix and no label
            DataTypeError: ``data`` is not a mapping/sequence or cannot be serialized
        """
        tag = self.resolve_tag(label)
        if not isinstance(data, (Mapping, list, tuple)):
            raise DataTypeError(tag_prefix=self.tag_prefix, label=label, record=data)

        record_time = self.resolve_time(timestamp)
        packet: list[Any] = [tag, record_time, data]
        options: dict[str, str] = {}
        if self.require_ack_response:
            options = {"chunk": generate_chunk_id()}
            packet.append(options)

        try:
            encoded = codec.encode(packet)
        except (TypeError, ValueError, OverflowError) as e:
            raise DataTypeError(
                f"data is not serializable: {e}",
                tag_prefix=self.tag_prefix,
                label=label,
                record=data,
            ) from e

        return PendingItem(
            packet=encoded,
            tag=tag,
            time=record_time,
            data=data,
            options=options,
        )
