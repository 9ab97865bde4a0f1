"""Unit tests for the acknowledgment handshake."""

from __future__ import annotations

import pytest

from fluent_forward.protocol.exceptions import PacketDecodeError, ResponseError, ResponseTimeout
from fluent_forward.protocol.packet import PacketEncoder
from fluent_forward.transport.acknowledgment import AckHandshake, extract_ack
from tests.helpers.expectations import expect_async_exception
from tests.helpers.fakes import FakeConnection


@pytest.fixture
def item():
    return PacketEncoder("app", require_ack_response=True).make_packet_item("access", {"a": 1}, 1)


@pytest.fixture
def conn() -> FakeConnection:
    conn = FakeConnection()
    conn.connected = True
    return conn


@pytest.mark.parametrize(
    ("response", "expected"),
    [({"ack": "abc"}, "abc"), ({"other": 1}, None), (["ack"], None), (None, None)],
)
def test_extract_ack(response, expected):
    """Test only map responses carry an ack."""
    assert extract_ack(response) == expected


@pytest.mark.asyncio
async def test_matching_ack(conn, item):
    """Test a response echoing the chunk completes quietly."""
    conn.responses.put_nowait({"ack": item.chunk})

    await AckHandshake(0.5).wait_for_ack(conn, item)


@pytest.mark.asyncio
async def test_mismatched_ack(conn, item):
    """Test a different ack raises ResponseError with both ids."""
    conn.responses.put_nowait({"ack": "not-it"})

    error = await expect_async_exception(AckHandshake(0.5).wait_for_ack, ResponseError, conn, item)

    assert error.ack == "not-it"
    assert error.chunk == item.chunk


@pytest.mark.asyncio
async def test_response_without_ack(conn, item):
    """Test a response map without ack is a mismatch."""
    conn.responses.put_nowait({})

    error = await expect_async_exception(AckHandshake(0.5).wait_for_ack, ResponseError, conn, item)

    assert error.ack is None


@pytest.mark.asyncio
async def test_timeout(conn, item):
    """Test silence past the timeout raises ResponseTimeout."""
    error = await expect_async_exception(AckHandshake(0.02).wait_for_ack, ResponseTimeout, conn, item)

    assert error.timeout_seconds == 0.02
    assert error.chunk == item.chunk
    assert isinstance(error.__cause__, TimeoutError)


@pytest.mark.asyncio
async def test_undecodable_response(conn, item):
    """Test garbage from the collector counts as a mismatch."""

    async def bad_read(_timeout):
        raise PacketDecodeError("bad", b"\xc1")

    conn.read_response = bad_read

    error = await expect_async_exception(AckHandshake(0.5).wait_for_ack, ResponseError, conn, item)

    assert isinstance(error.__cause__, PacketDecodeError)


@pytest.mark.asyncio
async def test_connection_errors_propagate(conn, item):
    """Test a closed peer is raised unchanged for transport handling."""

    async def closed_read(_timeout):
        raise ConnectionResetError("closed")

    conn.read_response = closed_read

    with pytest.raises(ConnectionResetError):
        await AckHandshake(0.5).wait_for_ack(conn, item)
