"""
Inbound websocket message types.

The server sends either text frames (JSON control/log objects) or binary
frames (raw PCM audio). Classification depends only on the websocket frame
type: a binary frame is always audio, even when its bytes happen to be valid
JSON.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from voice_client.models.audio import AudioFormat, AudioFrame, PCM16_MONO_48K


@dataclass(frozen=True)
class ControlMessage:
    """A text frame; ``payload`` is set when the text is a JSON object."""

    text: str
    payload: Optional[Dict[str, Any]] = None

    @property
    def is_json(self) -> bool:
        return self.payload is not None

    @property
    def message_type(self) -> Optional[str]:
        if self.payload is None:
            return None
        return self.payload.get("type")


@dataclass(frozen=True)
class AudioMessage:
    """A binary frame carrying one complete audio frame."""

    frame: AudioFrame


InboundMessage = Union[ControlMessage, AudioMessage]


def parse_inbound(
    data: Union[str, bytes], audio_format: AudioFormat = PCM16_MONO_48K
) -> InboundMessage:
    """
    Classify a raw websocket message.

    Args:
        data: ``str`` for a text frame, ``bytes`` for a binary frame (as
            yielded by the websockets library)
        audio_format: Format attached to audio frames

    Returns:
        A ControlMessage for text frames, an AudioMessage for binary frames
    """
    if isinstance(data, (bytes, bytearray, memoryview)):
        return AudioMessage(AudioFrame(bytes(data), audio_format))

    try:
        decoded = json.loads(data)
    except json.JSONDecodeError:
        return ControlMessage(text=data)

    # Valid JSON that is not an object (e.g. a bare string) is kept as opaque text
    if isinstance(decoded, dict):
        return ControlMessage(text=data, payload=decoded)
    return ControlMessage(text=data)
