"""
Unit tests for the packet encoder.

Tests cover:
- Tag resolution from prefix and label
- Time resolution (explicit, EventTime, datetime, milliseconds mode)
- Payload validation (MissingTag, DataTypeError)
- Chunk id generation when acknowledgment is required
"""

from __future__ import annotations

import asyncio
import base64
from datetime import UTC, datetime
from types import MappingProxyType
from unittest.mock import patch

import pytest

from fluent_forward.protocol import codec
from fluent_forward.protocol.event_time import EventTime
from fluent_forward.protocol.exceptions import DataTypeError, MissingTag
from fluent_forward.protocol.packet import PacketEncoder, PendingItem, generate_chunk_id
from fluent_forward.transport.types import SendResult

# Test constants
FIXED_EPOCH = 1700000000.75


class TestResolveTag:
    """Tests for tag prefix / label joining."""

    @pytest.mark.parametrize(
        ("tag_prefix", "label", "expected"),
        [
            ("app", "access", "app.access"),
            ("app", None, "app"),
            ("app", "", "app"),
            (None, "access", "access"),
            ("", "access", "access"),
        ],
    )
    def test_resolves(self, tag_prefix, label, expected) -> None:
        """Test every prefix/label combination that yields a tag."""
        assert PacketEncoder(tag_prefix).resolve_tag(label) == expected

    @pytest.mark.parametrize(("tag_prefix", "label"), [(None, None), ("", ""), (None, "")])
    def test_missing_tag(self, tag_prefix, label) -> None:
        """Test neither prefix nor label raises MissingTag."""
        with pytest.raises(MissingTag, match="tag is missing") as exc_info:
            PacketEncoder(tag_prefix).resolve_tag(label)

        assert exc_info.value.options == {"tag_prefix": tag_prefix, "label": label}


class TestResolveTime:
    """Tests for record time derivation."""

    def test_explicit_numbers_pass_through(self) -> None:
        """Test int and float timestamps are used unchanged."""
        encoder = PacketEncoder("app")

        assert encoder.resolve_time(1700000000) == 1700000000
        assert encoder.resolve_time(1700000000.5) == 1700000000.5

    def test_event_time_passes_through(self) -> None:
        """Test an EventTime is used unchanged."""
        event_time = EventTime(1700000000, 5)

        assert PacketEncoder("app").resolve_time(event_time) is event_time

    def test_now_in_seconds(self) -> None:
        """Test the default resolution is floored epoch seconds."""
        with patch("fluent_forward.protocol.packet.time.time", return_value=FIXED_EPOCH):
            assert PacketEncoder("app").resolve_time(None) == 1700000000

    def test_now_in_milliseconds(self) -> None:
        """Test milliseconds mode yields floored epoch milliseconds."""
        with patch("fluent_forward.protocol.packet.time.time", return_value=FIXED_EPOCH):
            assert PacketEncoder("app", milliseconds=True).resolve_time(None) == 1700000000750

    def test_datetime_converted(self) -> None:
        """Test datetime values are converted with the configured resolution."""
        moment = datetime(2023, 11, 14, 22, 13, 20, 250000, tzinfo=UTC)

        assert PacketEncoder("app").resolve_time(moment) == 1700000000
        assert PacketEncoder("app", milliseconds=True).resolve_time(moment) == 1700000000250


class TestMakePacketItem:
    """Tests for PendingItem construction."""

    def test_record_without_ack(self) -> None:
        """Test the wire record is the 3-element [tag, time, data] array."""
        item = PacketEncoder("app").make_packet_item("access", {"path": "/"}, 1700000000)

        assert codec.decode(item.packet) == ["app.access", 1700000000, {"path": "/"}]
        assert item.tag == "app.access"
        assert item.options == {}
        assert item.chunk is None

    def test_record_with_ack_carries_chunk(self) -> None:
        """Test acknowledgment mode appends the {"chunk": id} options map."""
        item = PacketEncoder("app", require_ack_response=True).make_packet_item("access", {"a": 1}, 1)

        decoded = codec.decode(item.packet)
        assert len(decoded) == 4
        assert decoded[3] == {"chunk": item.chunk}
        assert item.chunk is not None

    def test_event_time_encoded_as_ext(self) -> None:
        """Test an EventTime record time survives the wire encoding."""
        event_time = EventTime(1700000000, 123456789)
        item = PacketEncoder("app").make_packet_item("access", {"a": 1}, event_time)

        assert codec.decode(item.packet)[1] == event_time

    def test_list_payload_accepted(self) -> None:
        """Test sequence payloads are composite values too."""
        item = PacketEncoder("app").make_packet_item("batch", [1, 2, 3], 1)

        assert codec.decode(item.packet)[2] == [1, 2, 3]

    def test_read_only_mapping_payload_accepted(self) -> None:
        """Test Mapping types other than dict are packed as maps, nested ones too."""
        data = MappingProxyType({"a": 1, "inner": MappingProxyType({"b": 2})})

        item = PacketEncoder("app").make_packet_item("access", data, 1)

        assert codec.decode(item.packet)[2] == {"a": 1, "inner": {"b": 2}}

    @pytest.mark.parametrize("data", ["text", 42, 1.5, True, None, b"raw"])
    def test_primitive_payload_rejected(self, data) -> None:
        """Test primitives and None raise DataTypeError."""
        with pytest.raises(DataTypeError, match="data must be an object") as exc_info:
            PacketEncoder("app").make_packet_item("access", data)

        assert exc_info.value.record == data

    def test_unserializable_payload_rejected(self) -> None:
        """Test values MessagePack cannot encode raise DataTypeError."""
        with pytest.raises(DataTypeError, match="not serializable"):
            PacketEncoder("app").make_packet_item("access", {"value": object()})

    def test_missing_tag_checked_before_data(self) -> None:
        """Test MissingTag wins when both tag and data are invalid."""
        with pytest.raises(MissingTag):
            PacketEncoder(None).make_packet_item(None, "not a mapping")

    def test_each_item_gets_its_own_correlation_id(self) -> None:
        """Test correlation ids are unique per item."""
        encoder = PacketEncoder("app")

        first = encoder.make_packet_item("a", {}, 1)
        second = encoder.make_packet_item("a", {}, 1)

        assert first.correlation_id != second.correlation_id


def test_generate_chunk_id_is_random_base64() -> None:
    """Test chunk ids decode to 16 random bytes."""
    first = generate_chunk_id()
    second = generate_chunk_id()

    assert len(base64.b64decode(first)) == 16
    assert first != second


@pytest.mark.asyncio
async def test_pending_item_resolves_once() -> None:
    """Test resolve() only sets the first result."""
    item = PendingItem(packet=b"", tag="app", time=1, data={})
    item.result = asyncio.get_running_loop().create_future()

    item.resolve(SendResult.ok(item.correlation_id))
    item.resolve(SendResult.failed(item.correlation_id, RuntimeError("late")))

    assert item.result.result().success is True
