"""
Provider Module - Black Box Interface

Purpose: Reach the external WhatsApp Web session
Interface: start(), is_connected(), send(), destroy(), subscribe()
Hidden: Worker transport, command/reply correlation, event decoding

Any object satisfying SessionProvider can replace the Redis-backed worker bridge.
"""

from .interfaces import (
    EventHandler,
    ProviderError,
    ProviderEvent,
    ProviderEventType,
    ProviderSendError,
    ProviderStartError,
    ProviderTeardownError,
    SessionProvider,
)
from .redis_provider import RedisSessionProvider

__all__ = [
    "EventHandler",
    "ProviderError",
    "ProviderEvent",
    "ProviderEventType",
    "ProviderSendError",
    "ProviderStartError",
    "ProviderTeardownError",
    "RedisSessionProvider",
    "SessionProvider",
]
