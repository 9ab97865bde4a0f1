"""Sender configuration.

Defaults come from the ``FLUENT_FORWARD_*`` environment variables read in
``fluent_forward.const``; explicit keyword arguments override them.
"""

from __future__ import annotations

import dataclasses
from dataclasses import dataclass

from fluent_forward.const import (
    FLUENT_FORWARD_ACK_TIMEOUT,
    FLUENT_FORWARD_HOST,
    FLUENT_FORWARD_MILLISECONDS,
    FLUENT_FORWARD_PATH,
    FLUENT_FORWARD_PORT,
    FLUENT_FORWARD_RECONNECT_INTERVAL,
    FLUENT_FORWARD_REQUIRE_ACK,
    FLUENT_FORWARD_TIMEOUT,
)

_MAX_PORT = 65535


@dataclass(frozen=True)
class SenderConfig:
    """Connection and protocol options for a FluentSender.

    Attributes:
        host: Collector host (ignored when ``path`` is set)
        port: Collector port
        path: Unix domain socket path, takes precedence over host/port
        timeout: Connect timeout in seconds
        reconnect_interval: Delay before automatic reconnect in ms (0 disables)
        require_ack_response: Ask the collector to acknowledge each record
        ack_response_timeout: Ack wait in ms
        milliseconds: Derive record times in epoch milliseconds instead of seconds
    """

    host: str = FLUENT_FORWARD_HOST
    port: int = FLUENT_FORWARD_PORT
    path: str | None = FLUENT_FORWARD_PATH
    timeout: float = FLUENT_FORWARD_TIMEOUT
    reconnect_interval: int = FLUENT_FORWARD_RECONNECT_INTERVAL
    require_ack_response: bool = FLUENT_FORWARD_REQUIRE_ACK
    ack_response_timeout: int = FLUENT_FORWARD_ACK_TIMEOUT
    milliseconds: bool = FLUENT_FORWARD_MILLISECONDS

    def __post_init__(self) -> None:
        if not self.path and not 0 < self.port <= _MAX_PORT:
            msg = f"port must be between 1 and {_MAX_PORT}, got {self.port}"
            raise ValueError(msg)
        if self.timeout <= 0:
            msg = f"timeout must be positive, got {self.timeout}"
            raise ValueError(msg)
        if self.reconnect_interval < 0:
            msg = f"reconnect_interval must not be negative, got {self.reconnect_interval}"
            raise ValueError(msg)
        if self.ack_response_timeout <= 0:
            msg = f"ack_response_timeout must be positive, got {self.ack_response_timeout}"
            raise ValueError(msg)

    @property
    def ack_response_timeout_seconds(self) -> float:
        return self.ack_response_timeout / 1000.0

    @property
    def reconnect_interval_seconds(self) -> float:
        return self.reconnect_interval / 1000.0

    @property
    def endpoint(self) -> str:
        """Human-readable collector address for logs."""
        return f"unix:{self.path}" if self.path else f"{self.host}:{self.port}"

    def replace(self, **overrides: object) -> SenderConfig:
        """Return a copy with ``overrides`` applied (validated again)."""
        return dataclasses.replace(self, **overrides)  # type: ignore[arg-type]
