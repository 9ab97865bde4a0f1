"""Metrics module."""

from .registry import (
    record_ack_latency,
    record_ack_received,
    record_ack_timeout,
    record_connection_state,
    record_event,
    record_packet_sent,
    record_queue_depth,
    record_reconnection,
    record_transport_error,
    start_metrics_server,
)

__all__ = [
    "record_ack_latency",
    "record_ack_received",
    "record_ack_timeout",
    "record_connection_state",
    "record_event",
    "record_packet_sent",
    "record_queue_depth",
    "record_reconnection",
    "record_transport_error",
    "start_metrics_server",
]
