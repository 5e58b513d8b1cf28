"""
API Module - Black Box Interface

Purpose: HTTP request and response contracts
Interface: Pydantic models for every route body
Hidden: Serialization details, wire field aliases

The API layer only orchestrates - it contains no business logic.
All logic is delegated to the session module.
"""

from .models import (
    ConnectionStatus,
    DisconnectResponse,
    ErrorResponse,
    QRCodeErrorResponse,
    QRCodeResponse,
    SendMessageErrorResponse,
    SendMessageRequest,
    SendMessageResponse,
    ServiceStatusResponse,
    StatusResponse,
)

__all__ = [
    "ConnectionStatus",
    "DisconnectResponse",
    "ErrorResponse",
    "QRCodeErrorResponse",
    "QRCodeResponse",
    "SendMessageErrorResponse",
    "SendMessageRequest",
    "SendMessageResponse",
    "ServiceStatusResponse",
    "StatusResponse",
]
