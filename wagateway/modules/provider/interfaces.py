"""Session provider interfaces following Black Box Design principles."""
import json
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Callable, Dict, Optional, Protocol


class ProviderError(Exception):
    """Base exception for session provider failures."""


class ProviderStartError(ProviderError):
    """The messaging session could not be started."""


class ProviderSendError(ProviderError):
    """The messaging session refused or failed to send a message."""


class ProviderTeardownError(ProviderError):
    """The messaging session could not be destroyed cleanly."""


class ProviderEventType(str, Enum):
    """Lifecycle events emitted by the messaging session."""

    QR = "qr"
    READY = "ready"
    AUTH_FAILURE = "auth_failure"
    DISCONNECTED = "disconnected"


@dataclass(frozen=True)
class ProviderEvent:
    """A single lifecycle event from the messaging session."""

    type: ProviderEventType
    code: Optional[str] = None
    reason: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProviderEvent":
        """
        Parse an event payload.

        Raises:
            ValueError: If the type is unknown or a pairing event has no code
        """
        event_type = ProviderEventType(data.get("type"))
        code = data.get("code")
        if event_type == ProviderEventType.QR and not code:
            raise ValueError("qr event without a code")
        return cls(type=event_type, code=code, reason=data.get("reason"))

    @classmethod
    def from_json(cls, payload: str) -> "ProviderEvent":
        data = json.loads(payload)
        if not isinstance(data, dict):
            raise ValueError("event payload must be a JSON object")
        return cls.from_dict(data)


EventHandler = Callable[[ProviderEvent], Awaitable[None]]


class SessionProvider(Protocol):
    """Protocol for the external messaging session."""

    async def start(self) -> None:
        """
        Ask the messaging session to start (and eventually emit a pairing code).

        Raises:
            ProviderStartError: If the session cannot be started
        """
        ...

    async def is_connected(self) -> bool:
        """Report whether the messaging session is currently authenticated."""
        ...

    async def send(self, address: str, body: str) -> None:
        """
        Send a text message.

        Raises:
            ProviderSendError: If the message was not sent
        """
        ...

    async def destroy(self) -> None:
        """
        Tear the messaging session down.

        Raises:
            ProviderTeardownError: If teardown failed
        """
        ...

    def subscribe(self, handler: EventHandler) -> Callable[[], None]:
        """
        Register a lifecycle event handler.

        Returns:
            Callable that removes the handler
        """
        ...
