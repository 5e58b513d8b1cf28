"""
Authentication Module - Black Box Interface

Purpose: Validate bearer tokens on protected routes
Interface: AuthFactory.build(), AuthenticationService.authenticate()
Hidden: Token storage, comparison logic, header formats

This module can be completely replaced with any other auth implementation
(OAuth, JWT, external service) without affecting other modules.
"""

from .auth import AuthModule
from .factory import AuthFactory
from .service import AuthenticationService, AuthResult, DefaultAuthenticationService

__all__ = [
    "AuthFactory",
    "AuthModule",
    "AuthResult",
    "AuthenticationService",
    "DefaultAuthenticationService",
]
