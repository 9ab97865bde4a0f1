import os

__all__ = [
    "FLUENT_FORWARD_ACK_TIMEOUT",
    "FLUENT_FORWARD_DEBUG",
    "FLUENT_FORWARD_HOST",
    "FLUENT_FORWARD_LOG_FORMAT",
    "FLUENT_FORWARD_LOG_HUMAN_OUTPUT",
    "FLUENT_FORWARD_LOG_JSON_FILE",
    "FLUENT_FORWARD_METRICS_PORT",
    "FLUENT_FORWARD_MILLISECONDS",
    "FLUENT_FORWARD_PATH",
    "FLUENT_FORWARD_PORT",
    "FLUENT_FORWARD_RECONNECT_INTERVAL",
    "FLUENT_FORWARD_REQUIRE_ACK",
    "FLUENT_FORWARD_TIMEOUT",
    "YES_ANSWER",
]

YES_ANSWER = ("true", "yes", "y", "t", "1")

# Collector endpoint
FLUENT_FORWARD_HOST: str = os.environ.get("FLUENT_FORWARD_HOST", "localhost")
FLUENT_FORWARD_PORT: int = int(os.environ.get("FLUENT_FORWARD_PORT", "24224"))
# Unix domain socket path, takes precedence over host/port when set
FLUENT_FORWARD_PATH: str | None = os.environ.get("FLUENT_FORWARD_PATH") or None

# Timeouts: connect in seconds, reconnect/ack in milliseconds
FLUENT_FORWARD_TIMEOUT: float = float(os.environ.get("FLUENT_FORWARD_TIMEOUT", "3.0"))
FLUENT_FORWARD_RECONNECT_INTERVAL: int = int(os.environ.get("FLUENT_FORWARD_RECONNECT_INTERVAL", "600000"))
FLUENT_FORWARD_ACK_TIMEOUT: int = int(os.environ.get("FLUENT_FORWARD_ACK_TIMEOUT", "190000"))

FLUENT_FORWARD_REQUIRE_ACK: bool = os.environ.get("FLUENT_FORWARD_REQUIRE_ACK", "0").casefold() in YES_ANSWER
FLUENT_FORWARD_MILLISECONDS: bool = os.environ.get("FLUENT_FORWARD_MILLISECONDS", "0").casefold() in YES_ANSWER

# Logging
FLUENT_FORWARD_DEBUG: bool = os.environ.get("FLUENT_FORWARD_DEBUG", "0").casefold() in YES_ANSWER
FLUENT_FORWARD_LOG_FORMAT: str = os.environ.get("FLUENT_FORWARD_LOG_FORMAT", "human").casefold()
FLUENT_FORWARD_LOG_JSON_FILE: str | None = os.environ.get("FLUENT_FORWARD_LOG_JSON_FILE") or None
FLUENT_FORWARD_LOG_HUMAN_OUTPUT: str = os.environ.get("FLUENT_FORWARD_LOG_HUMAN_OUTPUT", "stderr")

# Prometheus exporter
FLUENT_FORWARD_METRICS_PORT: int = int(os.environ.get("FLUENT_FORWARD_METRICS_PORT", "9400"))
