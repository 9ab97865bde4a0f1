"""Transport layer: collector connection, acknowledgment handshake, reconnects."""

from fluent_forward.transport.acknowledgment import AckHandshake, extract_ack
from fluent_forward.transport.connection_manager import ConnectionManager, ConnectionState
from fluent_forward.transport.reconnect import ReconnectSupervisor
from fluent_forward.transport.socket_abstraction import TCPConnection
from fluent_forward.transport.types import SendResult

__all__ = [
    "AckHandshake",
    "ConnectionManager",
    "ConnectionState",
    "ReconnectSupervisor",
    "SendResult",
    "TCPConnection",
    "extract_ack",
]
