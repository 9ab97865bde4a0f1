"""Forward protocol package - record encoding, EventTime extension, errors.

Public API:
- EventTime value type (ext type 0)
- MessagePack codec helpers (encode, decode, ResponseDecoder)
- Packet encoder (PacketEncoder, PendingItem)
- Error taxonomy (MissingTag, DataTypeError, ResponseError, ResponseTimeout)
"""

from fluent_forward.protocol.codec import ResponseDecoder, decode, encode
from fluent_forward.protocol.event_time import EVENT_TIME_EXT_TYPE, EventTime
from fluent_forward.protocol.exceptions import (
    DataTypeError,
    FluentForwardError,
    MissingTag,
    PacketDecodeError,
    ResponseError,
    ResponseTimeout,
)
from fluent_forward.protocol.packet import PacketEncoder, PendingItem, generate_chunk_id

__all__ = [
    # Codec
    "EVENT_TIME_EXT_TYPE",
    "EventTime",
    "ResponseDecoder",
    "decode",
    "encode",
    # Packet encoder
    "PacketEncoder",
    "PendingItem",
    "generate_chunk_id",
    # Errors
    "DataTypeError",
    "FluentForwardError",
    "MissingTag",
    "PacketDecodeError",
    "ResponseError",
    "ResponseTimeout",
]
