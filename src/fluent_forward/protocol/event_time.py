"""EventTime value type: epoch seconds plus nanoseconds.

Carried on the wire as MessagePack ext type 0 with a fixed 8-byte payload
(big-endian uint32 seconds followed by big-endian uint32 nanoseconds).
"""

from __future__ import annotations

import math
import struct
import time
from dataclasses import dataclass
from typing import Final

EVENT_TIME_EXT_TYPE: Final = 0x00
EVENT_TIME_FORMAT: Final = ">II"
EVENT_TIME_LENGTH: Final = 8
NANOS_PER_SECOND: Final = 1_000_000_000


@dataclass(frozen=True, slots=True)
class EventTime:
    """Sub-second precision timestamp."""

    seconds: int
    nanoseconds: int = 0

    def __post_init__(self) -> None:
        if not 0 <= self.seconds <= 0xFFFFFFFF:
            msg = f"seconds out of range for uint32: {self.seconds}"
            raise ValueError(msg)
        if not 0 <= self.nanoseconds < NANOS_PER_SECOND:
            msg = f"nanoseconds out of range: {self.nanoseconds}"
            raise ValueError(msg)

    @classmethod
    def from_timestamp(cls, timestamp: float) -> EventTime:
        """Build from a float epoch timestamp (e.g. ``time.time()``)."""
        seconds = math.floor(timestamp)
        nanoseconds = round((timestamp - seconds) * NANOS_PER_SECOND)
        if nanoseconds >= NANOS_PER_SECOND:
            seconds += 1
            nanoseconds -= NANOS_PER_SECOND
        return cls(seconds, nanoseconds)

    @classmethod
    def now(cls) -> EventTime:
        """Current wall-clock time with nanosecond resolution."""
        seconds, nanoseconds = divmod(time.time_ns(), NANOS_PER_SECOND)
        return cls(seconds, nanoseconds)

    def pack(self) -> bytes:
        """Encode as the 8-byte ext payload."""
        return struct.pack(EVENT_TIME_FORMAT, self.seconds, self.nanoseconds)

    @classmethod
    def unpack(cls, data: bytes) -> EventTime:
        """Decode the 8-byte ext payload.

        Raises:
            ValueError: If ``data`` is not exactly 8 bytes
        """
        if len(data) != EVENT_TIME_LENGTH:
            msg = f"EventTime payload must be {EVENT_TIME_LENGTH} bytes, got {len(data)}"
            raise ValueError(msg)
        seconds, nanoseconds = struct.unpack(EVENT_TIME_FORMAT, data)
        return cls(seconds, nanoseconds)

    def __float__(self) -> float:
        return self.seconds + self.nanoseconds / NANOS_PER_SECOND
