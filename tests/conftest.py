import asyncio
import logging

import pytest

from voice_client.models.audio import PCM16_MONO_48K, AudioFrame

# Sentinel ending a FakeWebSocket's inbound stream (normal close)
END_OF_STREAM = object()


@pytest.fixture(autouse=True)
def reset_logging():
    """Reset logging configuration before each test"""
    root_logger = logging.getLogger()
    for handler in root_logger.handlers[:]:
        root_logger.removeHandler(handler)
    logging.basicConfig(level=logging.NOTSET)
    app_logger = logging.getLogger("voice_client")
    for handler in app_logger.handlers[:]:
        app_logger.removeHandler(handler)
    app_logger.propagate = True
    yield


class FakeDevices:
    """In-memory stand-in for AudioDeviceBridge recording every call."""

    def __init__(self, calls=None):
        self.audio_format = PCM16_MONO_48K
        self.calls = calls if calls is not None else []
        self.on_frame = None
        self.capturing = False
        self.ready = True
        self.played = []
        self.start_error = None
        self.stop_error = None
        self.close_error = None

    def start_capture(self, on_frame):
        self.calls.append("start_capture")
        if self.start_error:
            raise self.start_error
        self.on_frame = on_frame
        self.capturing = True

    def capture(self, data: bytes):
        """Simulate the microphone delivering one buffer."""
        if self.capturing:
            self.on_frame(AudioFrame(data))

    async def stop_capture(self):
        self.calls.append("stop_capture")
        self.capturing = False
        if self.stop_error:
            raise self.stop_error

    async def write_playback(self, frame):
        if not self.ready:
            return False
        self.played.append(frame)
        return True

    async def close_playback(self):
        self.calls.append("close_playback")
        if self.close_error:
            raise self.close_error


class FakeWebSocket:
    """Minimal websockets connection: records sends, replays queued inbound messages."""

    def __init__(self, incoming=()):
        self.sent = []
        self.close_calls = 0
        self.send_error = None
        self._incoming = asyncio.Queue()
        for item in incoming:
            self._incoming.put_nowait(item)

    def feed(self, item):
        self._incoming.put_nowait(item)

    async def send(self, data):
        if self.send_error:
            raise self.send_error
        self.sent.append(data)

    def __aiter__(self):
        return self

    async def __anext__(self):
        item = await self._incoming.get()
        if item is END_OF_STREAM:
            raise StopAsyncIteration
        if isinstance(item, BaseException):
            raise item
        return item

    async def close(self):
        self.close_calls += 1
        self._incoming.put_nowait(END_OF_STREAM)


async def settle(rounds: int = 10):
    """Let background tasks run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


@pytest.fixture
def fake_devices():
    return FakeDevices()
