"""MessagePack codec with the EventTime extension registered.

``encode``/``decode`` handle whole buffers; ``ResponseDecoder`` is the
streaming variant used to pull acknowledgment responses off a socket where
a single read may carry a partial or several messages.
"""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any

import msgpack

from fluent_forward.protocol.event_time import EVENT_TIME_EXT_TYPE, EventTime
from fluent_forward.protocol.exceptions import PacketDecodeError


def _default(obj: object) -> msgpack.ExtType | dict[Any, Any]:
    if isinstance(obj, EventTime):
        return msgpack.ExtType(EVENT_TIME_EXT_TYPE, obj.pack())
    # msgpack only packs real dicts natively
    if isinstance(obj, Mapping):
        return dict(obj)
    msg = f"Object of type {type(obj).__name__} is not MessagePack serializable"
    raise TypeError(msg)


def _ext_hook(code: int, data: bytes) -> EventTime | msgpack.ExtType:
    if code == EVENT_TIME_EXT_TYPE:
        return EventTime.unpack(data)
    return msgpack.ExtType(code, data)


def encode(obj: Any) -> bytes:
    """Serialize ``obj``; EventTime values anywhere in it become ext type 0.

    Other Mapping types are packed as maps.

    Raises:
        TypeError: If ``obj`` contains values MessagePack cannot represent
    """
    return msgpack.packb(obj, default=_default, use_bin_type=True)


def decode(data: bytes) -> Any:
    """Deserialize a single MessagePack document.

    Raises:
        PacketDecodeError: If ``data`` is not exactly one valid document
    """
    try:
        return msgpack.unpackb(data, ext_hook=_ext_hook, raw=False)
    except (msgpack.UnpackException, ValueError) as e:
        raise PacketDecodeError(str(e), data) from e


def _new_unpacker() -> msgpack.Unpacker:
    return msgpack.Unpacker(ext_hook=_ext_hook, raw=False)


class ResponseDecoder:
    """Incremental decoder for collector responses."""

    def __init__(self) -> None:
        self._unpacker = _new_unpacker()

    def feed(self, data: bytes) -> None:
        """Append bytes read from the stream."""
        self._unpacker.feed(data)

    def next_response(self) -> tuple[bool, Any]:
        """Return ``(True, obj)`` for the next complete document, else ``(False, None)``.

        After a decode error the buffer is discarded, so later responses
        decode from the next bytes fed.

        Raises:
            PacketDecodeError: If the buffered bytes are not valid MessagePack
        """
        try:
            return True, self._unpacker.unpack()
        except msgpack.OutOfData:
            return False, None
        except (msgpack.UnpackException, ValueError) as e:
            self._unpacker = _new_unpacker()
            raise PacketDecodeError(str(e)) from e
