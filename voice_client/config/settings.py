"""
Environment-based settings for the voice client.

Values are read from environment variables, optionally seeded from a ``.env``
file in the working directory, and validated with Pydantic so that a bad
timeout or a missing API key is reported before any remote resource is created.
"""

import os
from pathlib import Path
from typing import Mapping, Optional

import dotenv
from pydantic import BaseModel, Field, field_validator

from voice_client.config.constants import (
    DEFAULT_API_BASE_URL,
    DEFAULT_DEVICE_TIMEOUT,
    DEFAULT_MODEL_PATTERN,
    DEFAULT_PLAYBACK_WRITE_TIMEOUT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SESSION_DURATION,
    DEFAULT_SOCKET_CONNECT_TIMEOUT,
)


class Settings(BaseModel):
    """Validated runtime configuration."""

    api_key: str = Field(..., description="Bearer token for the Remote Control API")
    api_base_url: str = Field(DEFAULT_API_BASE_URL, description="Base URL of the API")
    request_timeout: float = Field(DEFAULT_REQUEST_TIMEOUT, gt=0)
    socket_connect_timeout: float = Field(DEFAULT_SOCKET_CONNECT_TIMEOUT, gt=0)
    device_timeout: float = Field(DEFAULT_DEVICE_TIMEOUT, gt=0)
    playback_write_timeout: float = Field(DEFAULT_PLAYBACK_WRITE_TIMEOUT, gt=0)
    session_duration: float = Field(DEFAULT_SESSION_DURATION, ge=0)
    model_pattern: str = DEFAULT_MODEL_PATTERN
    log_level: str = "INFO"

    @field_validator("api_key")
    def validate_api_key(cls, v):
        """Validate that the API key is not blank."""
        if not v.strip():
            raise ValueError("API_KEY cannot be empty")
        return v

    @field_validator("api_base_url")
    def validate_base_url(cls, v):
        """Strip the trailing slash so paths can be appended directly."""
        return v.rstrip("/")


# Environment variable -> Settings field
ENV_FIELDS = {
    "API_KEY": "api_key",
    "API_BASE_URL": "api_base_url",
    "REQUEST_TIMEOUT": "request_timeout",
    "SOCKET_CONNECT_TIMEOUT": "socket_connect_timeout",
    "DEVICE_TIMEOUT": "device_timeout",
    "PLAYBACK_WRITE_TIMEOUT": "playback_write_timeout",
    "SESSION_DURATION": "session_duration",
    "MODEL_PATTERN": "model_pattern",
    "LOG_LEVEL": "log_level",
}


def load_settings(
    environ: Optional[Mapping[str, str]] = None, env_file: Optional[Path] = None
) -> Settings:
    """
    Build Settings from the environment.

    Args:
        environ: Mapping to read from instead of ``os.environ``
        env_file: ``.env`` file to load first (defaults to ``./.env`` if it exists)

    Returns:
        The validated Settings

    Raises:
        ValueError: If API_KEY is not set or a value fails validation
    """
    if environ is None:
        env_path = env_file or Path(".") / ".env"
        if env_path.exists():
            dotenv.load_dotenv(env_path)
        environ = os.environ

    if not environ.get("API_KEY"):
        raise ValueError("API_KEY environment variable not set")

    values = {
        field: environ[name] for name, field in ENV_FIELDS.items() if environ.get(name)
    }
    return Settings(**values)
