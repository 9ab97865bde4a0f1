"""
Shared fixtures for unit tests.

Senders built here use FakeConnectionFactory so sender and connection
manager behavior can be exercised without sockets.
"""

from __future__ import annotations

import logging
from typing import Any
from unittest.mock import MagicMock

import pytest

from fluent_forward.config import SenderConfig
from fluent_forward.sender import FluentSender
from tests.helpers.fakes import FakeConnectionFactory


@pytest.fixture
def fake_factory() -> FakeConnectionFactory:
    return FakeConnectionFactory()


@pytest.fixture
def base_config() -> SenderConfig:
    """Config with automatic reconnect disabled and short ack timeout."""
    return SenderConfig(
        host="collector.test",
        port=24224,
        path=None,
        reconnect_interval=0,
        require_ack_response=False,
        ack_response_timeout=50,
        milliseconds=False,
    )


@pytest.fixture
def internal_logger() -> MagicMock:
    return MagicMock(spec=logging.Logger)


@pytest.fixture
def make_sender(fake_factory, base_config, internal_logger):
    """Factory fixture: make_sender(tag_prefix="app", **config_overrides)."""

    def _make(tag_prefix: str | None = "app", **overrides: Any) -> FluentSender:
        return FluentSender(
            tag_prefix,
            base_config,
            internal_logger=internal_logger,
            connection_factory=fake_factory,
            **overrides,
        )

    return _make
