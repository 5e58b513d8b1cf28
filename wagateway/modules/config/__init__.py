"""
Config Module - Black Box Interface

Purpose: Application configuration management
Interface: get_config(), ConfigModule.get(), ConfigModule.get_config_schema()
Hidden: .env loading, environment parsing, validation

Every setting has an environment variable and a default; see ENV_SETTINGS.
"""

import os
from typing import Any, Callable, Dict, Optional, Tuple

from dotenv import load_dotenv


def _parse_bool(value: str) -> bool:
    return value.strip().lower() == "true"


def _parse_port(value: str) -> int:
    # Kubernetes service links inject REDIS_PORT as tcp://host:port
    if value.startswith("tcp://"):
        value = value.rsplit(":", 1)[-1]
    return int(value)


# Configuration Contract: Required and Optional Keys

REQUIRED_CONFIG_KEYS = {
    "redis_host": "Redis server hostname",
    "redis_port": "Redis server port number",
    "redis_db": "Redis database number",
    "host": "API server bind address",
    "port": "API server port",
    "log_level": "Logging level (DEBUG, INFO, WARNING, ERROR)",
    "provider_prefix": "Redis key/channel prefix shared with the WhatsApp session worker",
    "provider_command_timeout": "Seconds to wait for the session worker to answer a command",
    "pairing_timeout": "Seconds to wait for a QR code after requesting one",
    "pairing_ttl": "Seconds a QR code stays valid after it is issued",
}

OPTIONAL_CONFIG_KEYS = {
    "redis_password": {
        "description": "Redis authentication password",
        "default": None,
    },
    "debug": {
        "description": "Enable debug mode (uvicorn reload)",
        "default": False,
    },
    "environment": {
        "description": "Deployment environment name reported by GET /status",
        "default": "development",
    },
    "sse_keepalive": {
        "description": "Seconds of silence before an event stream sends a keepalive",
        "default": 15,
    },
}

# key -> (environment variable, default, parser); a None default stays None
ENV_SETTINGS: Dict[str, Tuple[str, Optional[str], Callable[[str], Any]]] = {
    "redis_host": ("REDIS_HOST", "localhost", str),
    "redis_port": ("REDIS_PORT", "6379", _parse_port),
    "redis_db": ("REDIS_DB", "0", int),
    "redis_password": ("REDIS_PASSWORD", None, str),
    "host": ("API_HOST", "0.0.0.0", str),
    "port": ("PORT", "3000", int),
    "log_level": ("LOG_LEVEL", "INFO", str.upper),
    "debug": ("DEBUG", "false", _parse_bool),
    "environment": ("ENVIRONMENT", "development", str),
    "provider_prefix": ("WHATSAPP_CHANNEL_PREFIX", "whatsapp", str),
    "provider_command_timeout": ("WHATSAPP_COMMAND_TIMEOUT", "30", float),
    "pairing_timeout": ("PAIRING_TIMEOUT", "30", float),
    "pairing_ttl": ("PAIRING_TTL", "90", int),
    "sse_keepalive": ("SSE_KEEPALIVE", "15", float),
}

POSITIVE_KEYS = ("provider_command_timeout", "pairing_timeout", "pairing_ttl", "sse_keepalive")


class ConfigModule:
    """Configuration management module."""

    def __init__(self):
        """Initialize from environment variables (and a .env file when present)."""
        load_dotenv()
        self._config = self._load_from_env()
        self._validate()

    def _load_from_env(self) -> Dict[str, Any]:
        """
        Read every setting in ENV_SETTINGS.

        Raises:
            ValueError: If a value cannot be parsed
        """
        config: Dict[str, Any] = {}
        for key, (env_name, default, parse) in ENV_SETTINGS.items():
            raw = os.getenv(env_name, default)
            if raw is None:
                config[key] = None
                continue
            try:
                config[key] = parse(raw)
            except ValueError as e:
                raise ValueError(f"Invalid value for {env_name}: {raw!r}") from e
        return config

    def _validate(self) -> None:
        """
        Check the configuration contract.

        Raises:
            ValueError: If required keys are missing or durations are not positive
        """
        missing_keys = [key for key in REQUIRED_CONFIG_KEYS if self._config.get(key) is None]
        if missing_keys:
            raise ValueError(
                f"Missing required configuration keys: {', '.join(missing_keys)}. "
                f"Check environment variables and the .env file."
            )

        for key in POSITIVE_KEYS:
            if self._config[key] <= 0:
                raise ValueError(f"{ENV_SETTINGS[key][0]} must be positive, got {self._config[key]}")

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value."""
        return self._config.get(key, default)

    @staticmethod
    def get_config_schema() -> Dict[str, Any]:
        """
        Get the configuration schema (contract) for this module.

        Returns:
            Dictionary with 'required' and 'optional' key specifications

        Example:
            >>> schema = ConfigModule.get_config_schema()
            >>> print(schema['required']['pairing_ttl'])
            'Seconds a QR code stays valid after it is issued'
        """
        return {
            "required": REQUIRED_CONFIG_KEYS.copy(),
            "optional": OPTIONAL_CONFIG_KEYS.copy(),
        }


# Singleton instance
_instance = None


def get_config() -> ConfigModule:
    """Get the configuration module singleton."""
    global _instance
    if _instance is None:
        _instance = ConfigModule()
    return _instance


__all__ = ["get_config", "ConfigModule"]
