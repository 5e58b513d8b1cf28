"""
Shared pytest fixtures for WhatsApp gateway tests.

This module provides common fixtures including:
- FakeSessionProvider: in-memory provider that records calls and emits events
- FakeClock: controllable UTC clock for expiry tests
- Redis mocks for provider tests
"""

import os
import sys
from datetime import UTC, datetime, timedelta
from typing import Callable, List
from unittest.mock import AsyncMock, MagicMock

import pytest
import pytest_asyncio

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from wagateway.modules.provider import EventHandler, ProviderEvent, ProviderEventType
from wagateway.modules.session import SessionLifecycleManager


# =============================================================================
# Session Provider Fake
# =============================================================================


class FakeSessionProvider:
    """
    In-memory stand-in for the WhatsApp Web worker.

    Commands are AsyncMocks so tests can assert on calls and inject failures
    with side_effect; emit() plays the role of the worker's event stream.

    Usage:
        async def test_something(provider, manager):
            provider.send.side_effect = ProviderSendError("rejected")
            await provider.emit(ProviderEventType.READY)
    """

    def __init__(self):
        self.start = AsyncMock()
        self.send = AsyncMock()
        self.destroy = AsyncMock()
        self.is_connected = AsyncMock(return_value=False)
        self.handlers: List[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        self.handlers.append(handler)

        def unsubscribe() -> None:
            if handler in self.handlers:
                self.handlers.remove(handler)

        return unsubscribe

    async def emit(self, event_type: ProviderEventType, **fields) -> None:
        """Deliver one event to every subscribed handler, validated like a worker payload."""
        event = ProviderEvent.from_dict({"type": event_type.value, **fields})
        for handler in list(self.handlers):
            await handler(event)


class FakeClock:
    """Controllable replacement for datetime.now(UTC)."""

    def __init__(self, start: datetime = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def provider():
    """Create a fake session provider."""
    return FakeSessionProvider()


@pytest.fixture
def clock():
    """Create a controllable clock."""
    return FakeClock()


@pytest_asyncio.fixture
async def manager(provider, clock):
    """Create a SessionLifecycleManager wired to the fake provider."""
    manager = SessionLifecycleManager(provider, pairing_timeout=5, pairing_ttl=90, clock=clock)
    yield manager
    await manager.close()


@pytest_asyncio.fixture
async def connected_manager(manager, provider):
    """SessionLifecycleManager whose session is already paired."""
    await provider.emit(ProviderEventType.READY)
    return manager


# =============================================================================
# Redis Mocking Infrastructure
# =============================================================================


@pytest.fixture
def mock_redis():
    """Create a mock Redis client for async operations."""
    redis = AsyncMock()

    # Basic operations
    redis.get = AsyncMock(return_value=None)
    redis.delete = AsyncMock(return_value=1)
    redis.exists = AsyncMock(return_value=0)

    # Pub/sub
    redis.publish = AsyncMock(return_value=1)
    pubsub = AsyncMock()
    redis.pubsub = MagicMock(return_value=pubsub)

    return redis
