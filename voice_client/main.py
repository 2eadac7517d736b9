"""
Command-line entry point for the voice client.

Loads settings from the environment (and ``.env``), wires the Remote Control
API client, the audio devices and the relay into a SessionController, runs a
single session and exits non-zero if anything failed.

Usage:
    python -m voice_client [--model-pattern PATTERN] [--prompt TEXT]
                           [--duration SECONDS] [--base-url URL] [--log-level LEVEL]
"""

import argparse
import asyncio
import sys
from typing import Optional, Sequence

from voice_client.audio.devices import AudioDeviceBridge
from voice_client.config.constants import DEFAULT_PROMPT
from voice_client.config.logging_config import configure_logging
from voice_client.config.settings import Settings, load_settings
from voice_client.models.session import SessionResult
from voice_client.relay import DuplexAudioRelay
from voice_client.services.control_client import ControlClient
from voice_client.session import SessionController


def parse_args(argv: Optional[Sequence[str]] = None):
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        description="Run a voice session against a remote conversational agent"
    )
    parser.add_argument(
        "--model-pattern",
        help="Regular expression selecting the model (default: MODEL_PATTERN env var or ultravox-70B)",
    )
    parser.add_argument(
        "--prompt",
        default=DEFAULT_PROMPT,
        help="Prompt for the agent",
    )
    parser.add_argument(
        "--duration",
        type=float,
        help="Seconds to keep the session open (default: SESSION_DURATION env var or 60)",
    )
    parser.add_argument(
        "--base-url",
        help="Base URL of the Remote Control API (default: API_BASE_URL env var)",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO or LOG_LEVEL env var)",
    )
    return parser.parse_args(argv)


def apply_overrides(settings: Settings, args) -> Settings:
    """Return settings with command line values taking precedence."""
    overrides = {}
    if args.model_pattern:
        overrides["model_pattern"] = args.model_pattern
    if args.duration is not None:
        overrides["session_duration"] = args.duration
    if args.base_url:
        overrides["api_base_url"] = args.base_url.rstrip("/")
    if args.log_level:
        overrides["log_level"] = args.log_level
    return Settings.model_validate({**settings.model_dump(), **overrides})


def build_controller(settings: Settings) -> SessionController:
    """Wire the client, devices and relay for one session."""
    client = ControlClient(
        settings.api_base_url, settings.api_key, timeout=settings.request_timeout
    )
    devices = AudioDeviceBridge(
        device_timeout=settings.device_timeout,
        write_timeout=settings.playback_write_timeout,
    )
    return SessionController(
        client,
        devices,
        relay_factory=lambda: DuplexAudioRelay(
            devices, connect_timeout=settings.socket_connect_timeout
        ),
    )


async def run(settings: Settings, prompt: str) -> SessionResult:
    """Run one session with the given settings."""
    controller = build_controller(settings)
    try:
        return await controller.run_session(
            settings.model_pattern, prompt, settings.session_duration
        )
    finally:
        controller.client.close()


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point; returns the process exit code."""
    args = parse_args(argv)
    logger = configure_logging(args.log_level)

    try:
        settings = apply_overrides(load_settings(), args)
    except ValueError as e:
        logger.error(f"Invalid configuration: {e}")
        return 1

    if not args.log_level and settings.log_level.upper() != "INFO":
        logger = configure_logging(settings.log_level)

    logger.info(f"Using Remote Control API at {settings.api_base_url}")
    try:
        result = asyncio.run(run(settings, args.prompt))
    except KeyboardInterrupt:
        logger.info("Session interrupted")
        return 130

    return 0 if result.ok else 1


if __name__ == "__main__":
    sys.exit(main())
