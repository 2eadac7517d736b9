"""
Agent Voice Client - websocket audio session against a remote conversational-agent API.

This package provisions an agent through the Remote Control API, activates a
websocket listener for it, joins the room, and relays audio between the local
microphone/speaker and the room's audio websocket for a fixed window before
tearing every resource down again.

Architecture Overview:
- Remote Control API client over HTTP (bearer-token authenticated)
- PyAudio device bridge for capture and playback (raw PCM, mono, 16-bit, 48 kHz)
- Duplex audio relay over a single websocket
- Session controller guaranteeing ordered teardown (listener before agent)

Key Components:
- audio: Local microphone and speaker access
- config: Application-wide constants, logging setup and environment settings
- models: Resource, audio frame, inbound message and session result types
- services: Remote Control API client
- relay: The duplex audio relay
- session: The session lifecycle controller
- main: Command-line entry point

Getting Started:
1. Set up environment variables (or a .env file):
   - API_KEY: Bearer token for the Remote Control API
   - API_BASE_URL: API base URL (default http://localhost:5000/api)
   - LOG_LEVEL: Logging level (default INFO)

2. Run a session:
   ```bash
   python -m voice_client --duration 60
   ```
"""

__version__ = "1.0.0"
