"""Prometheus metrics registry for event forwarding."""

import threading
from typing import Final

from prometheus_client import (  # type: ignore[import-untyped]
    Counter,
    Gauge,
    Histogram,
    start_http_server,
)

CONNECTION_STATES: Final = ("unconnected", "connecting", "connected")

# Metric definitions
fluent_forward_events_total: Final = Counter(  # type: ignore[assignment]
    "fluent_forward_events_total",
    "Total events submitted to the sender",
    ["outcome"],
)

fluent_forward_packets_sent_total: Final = Counter(  # type: ignore[assignment]
    "fluent_forward_packets_sent_total",
    "Total packets written to the collector",
    ["outcome"],
)

fluent_forward_ack_received_total: Final = Counter(  # type: ignore[assignment]
    "fluent_forward_ack_received_total",
    "Total acknowledgment responses received",
    ["outcome"],
)

fluent_forward_ack_timeout_total: Final = Counter(  # type: ignore[assignment]
    "fluent_forward_ack_timeout_total",
    "Total acknowledgment timeouts",
)

fluent_forward_ack_latency_seconds: Final = Histogram(  # type: ignore[assignment]
    "fluent_forward_ack_latency_seconds",
    "Write-to-acknowledgment latency in seconds",
    buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 5.0, 30.0),
)

fluent_forward_connection_state: Final = Gauge(  # type: ignore[assignment]
    "fluent_forward_connection_state",
    "Current connection state",
    ["state"],
)

fluent_forward_reconnection_total: Final = Counter(  # type: ignore[assignment]
    "fluent_forward_reconnection_total",
    "Total automatic reconnection attempts",
    ["outcome"],
)

fluent_forward_transport_errors_total: Final = Counter(  # type: ignore[assignment]
    "fluent_forward_transport_errors_total",
    "Total transport-level errors",
    ["error_type"],
)

fluent_forward_send_queue_depth: Final = Gauge(  # type: ignore[assignment]
    "fluent_forward_send_queue_depth",
    "Items waiting in the send queue",
)

_server_state = {"started": False}
_server_lock = threading.Lock()


def start_metrics_server(port: int = 9400) -> None:
    """Start Prometheus HTTP metrics server (idempotent)."""
    with _server_lock:
        if not _server_state["started"]:
            start_http_server(port)  # type: ignore[no-untyped-call]
            _server_state["started"] = True


def record_event(outcome: str) -> None:
    """Record a submitted event ("queued", "missing_tag", "invalid_data")."""
    fluent_forward_events_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_packet_sent(outcome: str) -> None:
    """Record a packet write."""
    fluent_forward_packets_sent_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_ack_received(outcome: str) -> None:
    """Record an ack response ("matched" or "mismatched")."""
    fluent_forward_ack_received_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_ack_timeout() -> None:
    """Record an ack timeout."""
    fluent_forward_ack_timeout_total.inc()  # type: ignore[no-untyped-call]


def record_ack_latency(latency_seconds: float) -> None:
    """Record write-to-ack latency."""
    fluent_forward_ack_latency_seconds.observe(latency_seconds)  # type: ignore[no-untyped-call]


def record_connection_state(state: str) -> None:
    """Record connection state change."""
    # Set gauge to 1 for current state, 0 for all others
    for s in CONNECTION_STATES:
        value = 1 if s == state else 0
        fluent_forward_connection_state.labels(state=s).set(value)  # type: ignore[no-untyped-call]


def record_reconnection(outcome: str) -> None:
    """Record an automatic reconnection attempt."""
    fluent_forward_reconnection_total.labels(outcome=outcome).inc()  # type: ignore[no-untyped-call]


def record_transport_error(error_type: str) -> None:
    """Record a transport-level error by exception type name."""
    fluent_forward_transport_errors_total.labels(error_type=error_type).inc()  # type: ignore[no-untyped-call]


def record_queue_depth(depth: int) -> None:
    """Record current send queue depth."""
    fluent_forward_send_queue_depth.set(depth)  # type: ignore[no-untyped-call]
