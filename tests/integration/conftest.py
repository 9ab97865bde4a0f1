"""Fixtures for integration tests."""

import asyncio
import logging
from collections.abc import AsyncGenerator
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

import msgpack
import pytest
import pytest_asyncio

from fluent_forward.protocol.event_time import EVENT_TIME_EXT_TYPE, EventTime

logger = logging.getLogger(__name__)


class ResponseMode(Enum):
    """Response mode for mock forward server."""

    ACK = "ack"  # Echo the chunk id back
    WRONG_ACK = "wrong_ack"  # Answer with a different ack
    NO_ACK = "no_ack"  # Never answer (simulates ack timeout)
    DISCONNECT = "disconnect"  # Close after the first record
    GARBAGE_ONCE = "garbage_once"  # Answer one record with invalid bytes, then ack


@dataclass
class ReceivedRecord:
    """Represents a record received by the mock server."""

    tag: str
    time: Any
    data: Any
    options: dict[str, Any] = field(default_factory=dict)

    @property
    def chunk(self) -> str | None:
        return self.options.get("chunk")


def _ext_hook(code: int, data: bytes) -> Any:
    if code == EVENT_TIME_EXT_TYPE:
        return EventTime.unpack(data)
    return msgpack.ExtType(code, data)


class MockFluentServer:
    """Mock forward-protocol server for integration testing."""

    def __init__(
        self,
        response_mode: ResponseMode = ResponseMode.ACK,
        host: str = "127.0.0.1",
        port: int = 0,
        path: str | None = None,
    ):
        """Initialize mock server.

        Args:
            response_mode: How the server should answer records carrying a chunk
            host: Host to bind to
            port: Port to bind to (0 = OS assigns)
            path: Unix socket path; listens there instead of TCP when set

        """
        self.response_mode = response_mode
        self.host = host
        self.port = port
        self.path = path
        self.server: asyncio.Server | None = None
        self.received: list[ReceivedRecord] = []
        self.connection_count = 0
        self._record_event = asyncio.Event()

    async def start(self) -> None:
        """Start the mock server."""
        if self.path:
            self.server = await asyncio.start_unix_server(self._handle_client, self.path)
            logger.info("Mock forward server started on unix:%s", self.path)
            return
        self.server = await asyncio.start_server(self._handle_client, self.host, self.port)
        # Get the actual port assigned
        if self.port == 0:
            self.port = self.server.sockets[0].getsockname()[1]
        logger.info("Mock forward server started on %s:%d", self.host, self.port)

    async def stop(self) -> None:
        """Stop the mock server."""
        if self.server:
            self.server.close()
            await self.server.wait_closed()
            logger.info("Mock forward server stopped")

    def set_response_mode(self, mode: ResponseMode) -> None:
        """Change response mode dynamically."""
        self.response_mode = mode

    async def wait_for_records(self, count: int, timeout: float = 2.0) -> list[ReceivedRecord]:
        """Wait until at least ``count`` records have arrived."""
        async with asyncio.timeout(timeout):
            while len(self.received) < count:
                self._record_event.clear()
                await self._record_event.wait()
        return self.received

    async def _send_response(self, writer: asyncio.StreamWriter, record: ReceivedRecord) -> None:
        """Send response based on response mode."""
        if record.chunk is None or self.response_mode == ResponseMode.NO_ACK:
            return
        if self.response_mode == ResponseMode.GARBAGE_ONCE:
            self.response_mode = ResponseMode.ACK
            writer.write(b"\xc1")
            await writer.drain()
            logger.info("Sent undecodable response")
            return
        ack = record.chunk if self.response_mode == ResponseMode.ACK else "wrong-chunk"
        writer.write(msgpack.packb({"ack": ack}))
        await writer.drain()
        logger.info("Sent ack %s", ack)

    async def _handle_client(
        self,
        reader: asyncio.StreamReader,
        writer: asyncio.StreamWriter,
    ) -> None:
        """Handle incoming client connection."""
        self.connection_count += 1
        logger.info("Connection #%d", self.connection_count)
        unpacker = msgpack.Unpacker(raw=False, ext_hook=_ext_hook)

        try:
            while data := await reader.read(65536):
                unpacker.feed(data)
                for message in unpacker:
                    tag, record_time, payload, *rest = message
                    record = ReceivedRecord(tag, record_time, payload, rest[0] if rest else {})
                    self.received.append(record)
                    self._record_event.set()
                    logger.info("Received record for %s", tag)

                    if self.response_mode == ResponseMode.DISCONNECT:
                        return
                    await self._send_response(writer, record)
        except ConnectionError as e:
            logger.warning("Client connection error: %s", e)
        finally:
            writer.close()
            try:
                await writer.wait_closed()
            except ConnectionError as e:
                logger.warning("Error closing writer: %s", e)


@pytest_asyncio.fixture
async def mock_fluent_server() -> AsyncGenerator[MockFluentServer]:
    """Fixture providing a mock forward server that acknowledges records."""
    server = MockFluentServer()
    await server.start()
    yield server
    await server.stop()


@pytest_asyncio.fixture
async def mock_unix_server(tmp_path: Path) -> AsyncGenerator[MockFluentServer]:
    """Fixture providing a mock forward server on a Unix socket."""
    server = MockFluentServer(path=str(tmp_path / "fluent.sock"))
    await server.start()
    yield server
    await server.stop()


@pytest.fixture
def internal_logger() -> logging.Logger:
    """Plain stdlib logger so tests never attach handlers to pytest's streams."""
    return logging.getLogger("fluent_forward.tests.internal")
