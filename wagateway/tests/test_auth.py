"""
Unit tests for the authentication module.
"""

import os
from unittest.mock import AsyncMock, patch

import pytest

from wagateway.config.provider import EnvConfigProvider
from wagateway.modules.auth import AuthFactory, AuthModule, DefaultAuthenticationService


@pytest.fixture
def auth_module():
    """Create an AuthModule accepting a single shared token."""
    return AuthModule("secret-token")


@pytest.fixture
def auth_service(auth_module):
    """Create the authentication facade around the real module."""
    return DefaultAuthenticationService(auth_module)


def test_empty_token_rejected():
    """Test that the module refuses to run without a secret."""
    with pytest.raises(ValueError):
        AuthModule("")


@pytest.mark.parametrize(
    "header,expected",
    [
        ("Bearer abc123", "abc123"),
        ("Bearer   abc123  ", "abc123"),
        ("Bearer ", None),
        ("bearer abc123", None),
        ("Basic abc123", None),
        ("abc123", None),
        ("", None),
        (None, None),
    ],
)
def test_extract_bearer_token(header, expected):
    """Test bearer token extraction from header values."""
    assert AuthModule.extract_bearer_token(header) == expected


def test_verify_token(auth_module):
    """Test token comparison."""
    assert auth_module.verify_token("secret-token") is True
    assert auth_module.verify_token("secret-token ") is False
    assert auth_module.verify_token("other") is False


@pytest.mark.asyncio
async def test_verify_credentials_valid(auth_module):
    """Test valid credentials return the client identity."""
    is_valid, identity, method = await auth_module.verify_credentials(bearer_token="secret-token")

    assert is_valid is True
    assert identity == "api_client"
    assert method == "bearer"


@pytest.mark.asyncio
async def test_verify_credentials_invalid(auth_module):
    """Test invalid or missing credentials are rejected."""
    assert await auth_module.verify_credentials(bearer_token="wrong") == (False, None, None)
    assert await auth_module.verify_credentials() == (False, None, None)


@pytest.mark.asyncio
async def test_authenticate_success(auth_service):
    """Test a valid bearer header authenticates."""
    result = await auth_service.authenticate("Bearer secret-token")

    assert result.ok is True
    assert result.identity == "api_client"
    assert result.method == "bearer"
    assert result.status_code == 200


@pytest.mark.asyncio
@pytest.mark.parametrize("header", [None, "", "Token secret-token"])
async def test_authenticate_missing_token(auth_service, header):
    """Test missing credentials map to 401."""
    result = await auth_service.authenticate(header)

    assert result.ok is False
    assert result.status_code == 401
    assert result.error == "Authentication token not provided"


@pytest.mark.asyncio
async def test_authenticate_invalid_token(auth_service):
    """Test wrong credentials map to 403."""
    result = await auth_service.authenticate("Bearer wrong")

    assert result.ok is False
    assert result.status_code == 403
    assert result.error == "Invalid authentication token"


@pytest.mark.asyncio
async def test_authenticate_disabled():
    """Test that disabling auth accepts every request without checking."""
    mock_module = AsyncMock()
    service = DefaultAuthenticationService(mock_module, require_auth=False)

    result = await service.authenticate(None)

    assert result.ok is True
    assert result.method == "none"
    mock_module.verify_credentials.assert_not_called()


@pytest.mark.asyncio
async def test_build_for_testing_with_mock_module():
    """Test the testing factory wires a provided module."""
    mock_module = AsyncMock()
    mock_module.verify_credentials.return_value = (True, "robot", "bearer")
    service = AuthFactory.build_for_testing(mock_auth_module=mock_module)

    result = await service.authenticate("Bearer anything")

    assert result.ok is True
    assert result.identity == "robot"
    mock_module.verify_credentials.assert_awaited_once_with(bearer_token="anything")


@pytest.mark.asyncio
async def test_build_from_environment():
    """Test the factory reads the token from the environment."""
    with patch.dict(os.environ, {"API_TOKEN": "env-token", "REQUIRE_AUTH": "true"}):
        service = AuthFactory.build(EnvConfigProvider())

    assert (await service.authenticate("Bearer env-token")).ok is True
    assert (await service.authenticate("Bearer other")).status_code == 403


def test_build_requires_token():
    """Test the factory fails fast without API_TOKEN."""
    with patch.dict(os.environ, {"API_TOKEN": ""}):
        with pytest.raises(ValueError, match="API_TOKEN"):
            AuthFactory.build(EnvConfigProvider())
