"""
Request authentication for the gateway routes.

main.py only sees AuthenticationService.authenticate(); the header parsing and
the mapping of outcomes to 401/403 live here.
"""

import logging
from dataclasses import dataclass
from typing import Any, Literal, Optional, Protocol

from .auth import AuthModule

logger = logging.getLogger(__name__)


@dataclass
class AuthResult:
    """Outcome of checking one request; status_code is the HTTP code to answer with on failure."""
    ok: bool
    identity: Optional[str]
    method: Optional[Literal["bearer", "none"]]
    error: Optional[str] = None
    status_code: int = 200


class AuthenticationService(Protocol):
    """Anything main.py can ask whether a request may proceed."""

    async def authenticate(self, authorization: Optional[str]) -> AuthResult:
        """
        Check the Authorization header of one request.

        Args:
            authorization: Raw header value, None when absent

        Returns:
            AuthResult; ok is False with status_code 401 or 403 on rejection
        """
        ...


class DefaultAuthenticationService:
    """
    Bearer-token implementation of AuthenticationService.

    Missing credentials are 401, wrong credentials are 403. With require_auth
    off every request passes as "anonymous".
    """

    def __init__(self, auth_module: Any, require_auth: bool = True):
        """
        Wrap a credential checker.

        Args:
            auth_module: Object with an async verify_credentials(bearer_token=...)
            require_auth: When False every request is accepted
        """
        self._auth = auth_module
        self.require_auth = require_auth

    async def authenticate(self, authorization: Optional[str]) -> AuthResult:
        if not self.require_auth:
            return AuthResult(ok=True, identity="anonymous", method="none")

        bearer_token = AuthModule.extract_bearer_token(authorization)
        if bearer_token is None:
            return AuthResult(
                ok=False,
                identity=None,
                method=None,
                error="Authentication token not provided",
                status_code=401,
            )

        ok, identity, method = await self._auth.verify_credentials(bearer_token=bearer_token)
        if not ok:
            logger.warning("Rejected request with invalid bearer token")
            return AuthResult(
                ok=False,
                identity=None,
                method=None,
                error="Invalid authentication token",
                status_code=403,
            )

        return AuthResult(ok=True, identity=identity, method=method)
