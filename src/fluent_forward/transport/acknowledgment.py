"""Acknowledgment handshake: correlate each written record with its ack.

When acknowledgment is required, every record carries a random ``chunk``
id in its options map and the collector answers with ``{"ack": <chunk>}``.
Exactly one record is awaiting its ack at any time.

Known ambiguity: a timed-out wait leaves the socket read pending, so an ack
that arrives late is consumed by the next record's wait and reported there
as a ResponseError (chunk mismatch).
"""

from __future__ import annotations

import logging
import time
from typing import Any

from fluent_forward.metrics import registry
from fluent_forward.protocol.exceptions import PacketDecodeError, ResponseError, ResponseTimeout
from fluent_forward.protocol.packet import PendingItem
from fluent_forward.transport.socket_abstraction import TCPConnection

logger = logging.getLogger(__name__)


def extract_ack(response: Any) -> Any:
    """Return the ``ack`` field of a response map, or None."""
    if isinstance(response, dict):
        return response.get("ack")
    return None


class AckHandshake:
    """Waits for and verifies the ack of one written record."""

    def __init__(self, timeout_seconds: float):
        self.timeout_seconds = timeout_seconds

    async def wait_for_ack(self, conn: TCPConnection, item: PendingItem) -> None:
        """Wait for the response to ``item`` and check its ack.

        Raises:
            ResponseTimeout: No response within timeout_seconds
            ResponseError: Response ack differs from the item's chunk, or
                the response could not be decoded
            ConnectionResetError: Collector closed the connection
            OSError: Read failed
        """
        start_time = time.perf_counter()
        try:
            response = await conn.read_response(self.timeout_seconds)
        except TimeoutError as e:
            registry.record_ack_timeout()
            logger.warning(
                "No ack from %s within %.3fs",
                conn.endpoint,
                self.timeout_seconds,
                extra={"endpoint": conn.endpoint, "chunk": item.chunk, "tag": item.tag},
            )
            raise ResponseTimeout(self.timeout_seconds, item.chunk) from e
        except PacketDecodeError as e:
            registry.record_ack_received("undecodable")
            raise ResponseError(ack=None, chunk=item.chunk) from e

        latency = time.perf_counter() - start_time
        ack = extract_ack(response)
        if ack != item.chunk:
            registry.record_ack_received("mismatched")
            logger.warning(
                "Ack mismatch from %s",
                conn.endpoint,
                extra={"endpoint": conn.endpoint, "ack": ack, "chunk": item.chunk},
            )
            raise ResponseError(ack=ack, chunk=item.chunk)

        registry.record_ack_received("matched")
        registry.record_ack_latency(latency)
        logger.debug(
            "Ack received in %.1fms",
            latency * 1000,
            extra={"chunk": item.chunk, "elapsed_ms": latency * 1000},
        )
