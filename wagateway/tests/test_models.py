"""
Unit tests for WhatsApp gateway API models.
"""

from datetime import UTC, datetime, timedelta

import pytest
from pydantic import ValidationError

from wagateway.modules.api.models import (
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
from wagateway.modules.session import SessionState, SessionStatus
from wagateway.modules.pairing import PairingArtifact

NOW = datetime(2024, 1, 1, 12, 0, tzinfo=UTC)


class TestSendMessageRequest:
    """Test send message request model."""

    def test_complete_request(self):
        request = SendMessageRequest(number="5511999999999", message="hi")
        assert request.is_complete

    @pytest.mark.parametrize(
        "payload",
        [{}, {"number": "5511999999999"}, {"message": "hi"}, {"number": "", "message": "hi"}],
    )
    def test_incomplete_request(self, payload):
        """Missing fields are accepted by the schema but flagged as incomplete."""
        request = SendMessageRequest(**payload)
        assert not request.is_complete

    def test_wrong_type_rejected(self):
        with pytest.raises(ValidationError):
            SendMessageRequest(number=["5511999999999"], message="hi")


class TestResponses:
    """Test response serialization uses the wire field names."""

    def test_qrcode_response(self):
        data = QRCodeResponse(
            qrcode="2@abc", expires_at=NOW + timedelta(seconds=90), last_update=NOW
        ).dump()

        assert data["status"] == "connecting"
        assert data["qrcode"] == "2@abc"
        assert set(data) == {"status", "qrcode", "expiresAt", "lastUpdate"}

    def test_qrcode_error_response(self):
        data = QRCodeErrorResponse(error="WhatsApp is already connected", last_update=NOW).dump()

        assert data["status"] == "error"
        assert "lastUpdate" in data

    def test_status_response(self):
        data = StatusResponse(status=ConnectionStatus.CONNECTED, last_update=NOW).dump()

        assert data["status"] == "connected"
        assert "lastUpdate" in data

    def test_populate_by_alias(self):
        response = StatusResponse(status="disconnected", lastUpdate=NOW)
        assert response.last_update == NOW

    def test_error_response_omits_empty_details(self):
        assert ErrorResponse(error="boom").dump() == {"status": "error", "error": "boom"}
        assert ErrorResponse(error="boom", details=[{"loc": "body"}]).dump()["details"] == [
            {"loc": "body"}
        ]

    def test_send_message_responses(self):
        assert SendMessageResponse(message="Message sent successfully").dump() == {
            "success": True,
            "message": "Message sent successfully",
        }
        assert SendMessageErrorResponse(error="Failed", details="x").dump() == {
            "success": False,
            "error": "Failed",
            "details": "x",
        }

    def test_disconnect_response(self):
        assert DisconnectResponse(message="done").dump() == {"status": "success", "message": "done"}

    def test_service_status_response(self):
        data = ServiceStatusResponse(
            timestamp=NOW, whatsapp=ConnectionStatus.DISCONNECTED, environment="test"
        ).dump()

        assert data["status"] == "online"
        assert data["whatsapp"] == "disconnected"
        assert data["environment"] == "test"


class TestSessionStatus:
    """Test the session snapshot used by the event stream."""

    def test_to_dict_without_artifact(self):
        status = SessionStatus(state=SessionState.DISCONNECTED, last_update=NOW)

        assert status.to_dict() == {
            "state": "disconnected",
            "lastUpdate": NOW.isoformat(),
            "error": None,
            "qrcode": None,
            "expiresAt": None,
        }
        assert not status.connected

    def test_to_dict_with_artifact(self):
        artifact = PairingArtifact.issue("2@abc", ttl=90, now=NOW)
        status = SessionStatus(
            state=SessionState.CONNECTING, last_update=NOW, artifact=artifact
        )

        data = status.to_dict()
        assert data["qrcode"] == "2@abc"
        assert data["expiresAt"] == (NOW + timedelta(seconds=90)).isoformat()
