"""
Constants and configuration values used throughout the application.

This module defines constants that are used across different parts of the client,
providing a centralized location for configuration values and making it easier to
maintain consistent naming throughout the codebase.
"""

# Logger name used throughout the application
LOGGER_NAME = "voice_client"

# Child logger receiving text/control messages forwarded by the remote agent
REMOTE_LOGGER_NAME = f"{LOGGER_NAME}.remote"

# Remote Control API
DEFAULT_API_BASE_URL = "http://localhost:5000/api"
MODELS_PATH = "/models"
AGENTS_PATH = "/agents"
AGENT_PATH = "/agents/{agent_id}"
LISTEN_PATH = "/agents/{agent_id}/listen"
LISTENER_PATH = "/agents/{agent_id}/listen/{listener_id}"
ROOM_JOIN_PATH = "/rooms/{listener_id}/join"

# Session defaults
DEFAULT_MODEL_PATTERN = "ultravox-70B"
DEFAULT_SESSION_DURATION = 60  # seconds
DEFAULT_PROMPT = (
    "You are a helpful AI assistant. You can help users with various tasks.\n"
    "Be concise and friendly in your responses."
)
DEFAULT_TEMPERATURE = 0.7

# Timeouts (seconds)
DEFAULT_REQUEST_TIMEOUT = 10.0
DEFAULT_SOCKET_CONNECT_TIMEOUT = 10.0
DEFAULT_SOCKET_CLOSE_TIMEOUT = 5.0
DEFAULT_DEVICE_TIMEOUT = 2.0
DEFAULT_PLAYBACK_WRITE_TIMEOUT = 0.5

# Audio format constants: raw PCM, mono, 16-bit signed, 48 kHz
SAMPLE_RATE = 48000
CHANNELS = 1
SAMPLE_WIDTH = 2  # bytes
CHUNK = 960  # 20ms at 48kHz

# WebSocket configuration
WS_MAX_SIZE = 16 * 1024 * 1024  # 16MB - large enough for audio frames

# Teardown step names, in execution order
STEP_CLOSE_RELAY = "close_relay"
STEP_STOP_CAPTURE = "stop_capture"
STEP_CLOSE_PLAYBACK = "close_playback"
STEP_DELETE_LISTENER = "delete_listener"
STEP_DELETE_AGENT = "delete_agent"
TEARDOWN_STEPS = (
    STEP_CLOSE_RELAY,
    STEP_STOP_CAPTURE,
    STEP_CLOSE_PLAYBACK,
    STEP_DELETE_LISTENER,
    STEP_DELETE_AGENT,
)
