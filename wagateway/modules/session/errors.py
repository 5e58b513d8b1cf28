"""Typed failures of the session lifecycle."""
from typing import Optional

from ..provider import ProviderStartError


class LifecycleError(Exception):
    """Base class for session lifecycle failures surfaced to callers."""

    default_message = "WhatsApp session error"

    def __init__(self, message: Optional[str] = None, detail: Optional[str] = None):
        self.message = message or self.default_message
        self.detail = detail
        super().__init__(self.message if not detail else f"{self.message}: {detail}")


class AlreadyConnected(LifecycleError):
    default_message = "WhatsApp is already connected"


class NotConnected(LifecycleError):
    default_message = "WhatsApp is not connected"


class PairingTimeout(LifecycleError):
    default_message = "Timed out waiting for QR code"

    def __init__(self, timeout: Optional[float] = None):
        detail = f"no QR code issued within {timeout:g}s" if timeout is not None else None
        super().__init__(detail=detail)
        self.timeout = timeout


class DisconnectFailed(LifecycleError):
    default_message = "Failed to disconnect WhatsApp"


class SendFailed(LifecycleError):
    default_message = "Failed to send message"


__all__ = [
    "AlreadyConnected",
    "DisconnectFailed",
    "LifecycleError",
    "NotConnected",
    "PairingTimeout",
    "ProviderStartError",
    "SendFailed",
]
