"""Typed settings for the HTTP layer, read from the environment."""
import os
from dataclasses import dataclass
from typing import List, Protocol


def _flag(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).strip().lower() == "true"


def _csv(name: str, default: str) -> List[str]:
    return [item.strip() for item in os.getenv(name, default).split(",") if item.strip()]


@dataclass
class APIConfig:
    """Bind address and browser access for the HTTP server."""
    port: int
    host: str
    debug: bool
    cors_origins: List[str]


@dataclass
class AuthConfig:
    """Shared bearer token guarding the WhatsApp routes."""
    api_token: str
    require_auth: bool


class ConfigProvider(Protocol):
    """Source of typed settings for main.py and the auth factory."""

    def get_api_config(self) -> APIConfig:
        ...

    def get_auth_config(self) -> AuthConfig:
        ...


class EnvConfigProvider:
    """Reads PORT, API_HOST, DEBUG, CORS_ORIGINS, API_TOKEN and REQUIRE_AUTH."""

    def get_api_config(self) -> APIConfig:
        return APIConfig(
            port=int(os.getenv("PORT", "3000")),
            host=os.getenv("API_HOST", "0.0.0.0"),
            debug=_flag("DEBUG"),
            cors_origins=_csv("CORS_ORIGINS", "*"),
        )

    def get_auth_config(self) -> AuthConfig:
        """
        Get the bearer token settings.

        Raises:
            ValueError: If API_TOKEN is unset or blank
        """
        api_token = os.getenv("API_TOKEN", "").strip()
        if not api_token:
            raise ValueError(
                "API_TOKEN environment variable is required. "
                "Clients send it as 'Authorization: Bearer <API_TOKEN>'."
            )

        return AuthConfig(api_token=api_token, require_auth=_flag("REQUIRE_AUTH", "true"))
