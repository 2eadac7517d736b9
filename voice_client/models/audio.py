"""
Audio format and frame types.

Frames are raw PCM: mono, 16-bit signed little-endian, 48 kHz. A frame is
immutable once created and carries no header beyond its byte boundary.
"""

from dataclasses import dataclass

import numpy as np

from voice_client.config.constants import CHANNELS, CHUNK, SAMPLE_RATE, SAMPLE_WIDTH


@dataclass(frozen=True)
class AudioFormat:
    """PCM stream parameters shared by capture, playback and the socket."""

    sample_rate: int = SAMPLE_RATE
    channels: int = CHANNELS
    sample_width: int = SAMPLE_WIDTH
    frames_per_buffer: int = CHUNK


PCM16_MONO_48K = AudioFormat()


@dataclass(frozen=True)
class AudioFrame:
    """One discrete buffer of raw PCM samples."""

    data: bytes
    audio_format: AudioFormat = PCM16_MONO_48K

    def __post_init__(self):
        # Normalise bytearray/memoryview payloads into an immutable copy
        if not isinstance(self.data, bytes):
            object.__setattr__(self, "data", bytes(self.data))

    def __len__(self) -> int:
        return len(self.data)

    @property
    def sample_count(self) -> int:
        """Number of whole samples per channel in the frame."""
        fmt = self.audio_format
        return len(self.data) // (fmt.sample_width * fmt.channels)

    @property
    def duration(self) -> float:
        """Playback duration in seconds."""
        return self.sample_count / self.audio_format.sample_rate

    @property
    def header_hex(self) -> str:
        """First four payload bytes in hex, for format diagnostics."""
        return self.data[:4].hex()

    def samples(self) -> np.ndarray:
        """Read-only int16 view of the whole samples in the frame."""
        fmt = self.audio_format
        usable = self.sample_count * fmt.channels * fmt.sample_width
        return np.frombuffer(self.data[:usable], dtype="<i2")

    def peak_level(self) -> int:
        """Absolute peak sample value, 0 for an empty frame."""
        samples = self.samples()
        if samples.size == 0:
            return 0
        return int(np.max(np.abs(samples.astype(np.int32))))
