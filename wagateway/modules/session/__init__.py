"""
Session Module - Black Box Interface

Purpose: Manage the WhatsApp session lifecycle
Interface: request_pairing_code(), get_status(), disconnect(), send_message()
Hidden: State transitions, QR code caching, single-flight pairing, timeouts

Replaceable with any lifecycle owner that keeps the same error taxonomy.
"""

from .errors import (
    AlreadyConnected,
    DisconnectFailed,
    LifecycleError,
    NotConnected,
    PairingTimeout,
    ProviderStartError,
    SendFailed,
)
from .lifecycle import (
    SessionLifecycleManager,
    SessionState,
    SessionStatus,
    normalize_recipient,
)

__all__ = [
    "AlreadyConnected",
    "DisconnectFailed",
    "LifecycleError",
    "NotConnected",
    "PairingTimeout",
    "ProviderStartError",
    "SendFailed",
    "SessionLifecycleManager",
    "SessionState",
    "SessionStatus",
    "normalize_recipient",
]
