"""
Builds the request authentication used by main.py.

Only the AuthenticationService facade leaves this module; AuthModule and the
token it holds stay behind it.
"""

import logging
from typing import Any, Optional

from .auth import AuthModule
from .service import AuthenticationService, DefaultAuthenticationService
from ...config.provider import ConfigProvider

logger = logging.getLogger(__name__)


class AuthFactory:
    """Composition root for bearer-token authentication."""

    @staticmethod
    def build(config_provider: ConfigProvider) -> AuthenticationService:
        """
        Build authentication from API_TOKEN and REQUIRE_AUTH.

        Args:
            config_provider: Source of AuthConfig

        Returns:
            AuthenticationService checking the configured token

        Raises:
            ValueError: If no API token is configured
        """
        auth_config = config_provider.get_auth_config()

        if not auth_config.require_auth:
            logger.warning("Authentication is disabled (REQUIRE_AUTH=false)")
        else:
            logger.info("Bearer token authentication enabled")

        return DefaultAuthenticationService(
            AuthModule(auth_config.api_token), require_auth=auth_config.require_auth
        )

    @staticmethod
    def build_for_testing(
        api_token: str = "test-token", mock_auth_module: Optional[Any] = None
    ) -> AuthenticationService:
        """
        Build authentication without reading the environment.

        Args:
            api_token: Token to accept
            mock_auth_module: Replaces AuthModule entirely when given

        Returns:
            AuthenticationService that always requires a token
        """
        return DefaultAuthenticationService(mock_auth_module or AuthModule(api_token))
