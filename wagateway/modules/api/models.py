"""
WhatsApp gateway API models.

These models define the JSON bodies accepted and returned by the HTTP API.
Field names on the wire are fixed (camelCase where clients expect it), so
responses are always serialized through APIModel.dump().
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field

# Enums


class ConnectionStatus(str, Enum):
    """Connection status reported to API clients."""

    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


class APIModel(BaseModel):
    """Base model serializing by alias and without unset optionals."""

    model_config = ConfigDict(populate_by_name=True)

    def dump(self) -> Dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


# Request Models (API Input)


class SendMessageRequest(BaseModel):
    """Request to send a text message."""

    # Optional at the schema level: missing fields are answered with 400, not 422
    number: Optional[str] = Field(None, description="Recipient phone number or WhatsApp chat id")
    message: Optional[str] = Field(None, description="Message text")

    @property
    def is_complete(self) -> bool:
        return bool(self.number) and bool(self.message)


# Response Models (API Output)


class QRCodeResponse(APIModel):
    """QR code ready to be scanned."""

    status: Literal["connecting"] = "connecting"
    qrcode: str = Field(..., description="Raw pairing code to render as a QR image")
    expires_at: datetime = Field(..., alias="expiresAt")
    last_update: datetime = Field(..., alias="lastUpdate")


class QRCodeErrorResponse(APIModel):
    """QR code could not be produced."""

    status: Literal["error"] = "error"
    error: str
    last_update: datetime = Field(..., alias="lastUpdate")


class StatusResponse(APIModel):
    """WhatsApp connection status."""

    status: ConnectionStatus
    last_update: datetime = Field(..., alias="lastUpdate")


class DisconnectResponse(APIModel):
    """Session was torn down."""

    status: Literal["success"] = "success"
    message: str


class SendMessageResponse(APIModel):
    """Message accepted by WhatsApp."""

    success: Literal[True] = True
    message: str


class SendMessageErrorResponse(APIModel):
    """Message could not be sent."""

    success: Literal[False] = False
    error: str
    details: Optional[str] = None


class ServiceStatusResponse(APIModel):
    """Service liveness with WhatsApp connection summary."""

    status: Literal["online"] = "online"
    timestamp: datetime
    whatsapp: ConnectionStatus
    environment: str


# Error Models


class ErrorResponse(APIModel):
    """Standard error response."""

    status: Literal["error"] = "error"
    error: str = Field(..., description="Error message")
    details: Optional[Any] = Field(default=None, description="Additional error details")
