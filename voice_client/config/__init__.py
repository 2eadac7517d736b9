"""
Configuration module for the voice client.

This module provides centralized configuration management for the client,
including constants, logging setup, and environment-based settings.

Key components:
- constants: Defines application-wide constants used across modules, including
  API paths, the audio format, default timeouts and teardown step names.
- logging_config: Provides a consistent logging infrastructure with support for
  console and file-based logging with rotation capabilities.
- settings: Loads and validates environment variables (optionally from a .env file).

Usage examples:
```python
from voice_client.config.logging_config import configure_logging
from voice_client.config.settings import load_settings

logger = configure_logging()
settings = load_settings()
logger.info(f"Using API at {settings.api_base_url}")
```
"""

# Config module initialization
