"""
Authentication module for the WhatsApp gateway API.

Every protected route shares one secret token, sent by clients as
"Authorization: Bearer <token>". The module is a black box that can be
replaced with any other credential check without affecting other modules.
"""

import logging
import secrets
from typing import Optional, Tuple

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


class AuthModule:
    """
    Authentication module for validating bearer tokens.

    Distinguishes missing credentials from wrong ones so the API can answer
    401 and 403 respectively.
    """

    def __init__(self, api_token: str):
        """
        Initialize auth module.

        Args:
            api_token: Shared secret clients must present

        Raises:
            ValueError: If the token is empty
        """
        if not api_token:
            raise ValueError("api_token must not be empty")
        self._api_token = api_token

    @staticmethod
    def extract_bearer_token(authorization: Optional[str]) -> Optional[str]:
        """
        Extract the token from an Authorization header value.

        Args:
            authorization: Raw header value (may be None)

        Returns:
            Token string, or None if the header is absent or not a bearer credential

        Example:
            >>> AuthModule.extract_bearer_token("Bearer abc123")
            'abc123'
        """
        if not authorization or not authorization.startswith(BEARER_PREFIX):
            return None

        token = authorization[len(BEARER_PREFIX):].strip()
        return token or None

    def verify_token(self, token: str) -> bool:
        """Compare a presented token with the shared secret in constant time."""
        return secrets.compare_digest(token.encode("utf-8"), self._api_token.encode("utf-8"))

    async def verify_credentials(
        self, bearer_token: Optional[str] = None
    ) -> Tuple[bool, Optional[str], Optional[str]]:
        """
        Verify credentials.

        Args:
            bearer_token: Token extracted from the Authorization header

        Returns:
            Tuple of (is_valid, identity, auth_method)
        """
        if bearer_token and self.verify_token(bearer_token):
            return True, "api_client", "bearer"

        return False, None, None
