"""
Data models for the voice client.

Key components:
- resources: Pydantic models for Remote Control API options and responses
  (Agent, Listener, RoomJoinInfo, AudioSocket and the option bags).
- audio: The PCM audio format and immutable AudioFrame buffers.
- messages: Classification of inbound websocket frames into control
  messages and audio messages.
- session: Teardown step records and the aggregated SessionResult.
"""

# Models module initialization
