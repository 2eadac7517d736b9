"""
Duplex Audio Relay between the local audio devices and the agent's audio websocket.

Once open, the relay:
- forwards every captured microphone frame as one binary websocket message,
  in capture order, with no batching and no drops;
- routes inbound text frames (JSON control/log objects, or opaque text) to a
  log sink and inbound binary frames to the speaker, dropping audio when the
  speaker is not ready.

A socket failure ends the relay with a RelayError available on ``error``; the
relay never reconnects by itself.
"""

import asyncio
import logging
from typing import Callable, Optional

import websockets
from websockets.exceptions import (
    ConnectionClosed,
    ConnectionClosedError,
    ConnectionClosedOK,
    WebSocketException,
)

from voice_client.audio.devices import AudioDeviceBridge
from voice_client.config.constants import (
    DEFAULT_SOCKET_CLOSE_TIMEOUT,
    DEFAULT_SOCKET_CONNECT_TIMEOUT,
    LOGGER_NAME,
    REMOTE_LOGGER_NAME,
    WS_MAX_SIZE,
)
from voice_client.errors import DeviceError, RelayError
from voice_client.models.audio import AudioFrame
from voice_client.models.messages import AudioMessage, ControlMessage, parse_inbound
from voice_client.models.resources import AudioSocket

logger = logging.getLogger(LOGGER_NAME)
remote_logger = logging.getLogger(REMOTE_LOGGER_NAME)

LogSink = Callable[[ControlMessage], None]


def log_control_message(message: ControlMessage) -> None:
    """Default log sink: write remote text frames to the remote logger."""
    if message.is_json:
        remote_logger.info(f"Received text message: {message.payload}")
    else:
        remote_logger.info(f"Received text data: {message.text}")


class DuplexAudioRelay:
    """
    Bridges an AudioDeviceBridge and the remote audio websocket.

    Outbound frames go through an unbounded FIFO drained by a single sender
    task, which keeps wire order equal to capture order. Inbound messages are
    handled one at a time by a receiver task; the speaker write is its only
    suspension point.
    """

    def __init__(
        self,
        devices: AudioDeviceBridge,
        log_sink: Optional[LogSink] = None,
        connect_timeout: float = DEFAULT_SOCKET_CONNECT_TIMEOUT,
        close_timeout: float = DEFAULT_SOCKET_CLOSE_TIMEOUT,
    ):
        self.devices = devices
        self.log_sink = log_sink or log_control_message
        self.connect_timeout = connect_timeout
        self.close_timeout = close_timeout
        self.ws = None
        self.error: Optional[RelayError] = None

        self._outbound: "asyncio.Queue[AudioFrame]" = asyncio.Queue()
        self._send_task: Optional[asyncio.Task] = None
        self._recv_task: Optional[asyncio.Task] = None
        self._closing = False
        self._finished = asyncio.Event()

        self.frames_sent = 0
        self.frames_played = 0
        self.frames_dropped = 0
        self.control_messages = 0

    @property
    def is_open(self) -> bool:
        return self.ws is not None and not self._finished.is_set()

    @property
    def finished(self) -> bool:
        """True once the relay has stopped, by close(), remote close or failure."""
        return self._finished.is_set()

    async def open(self, audio_socket: AudioSocket) -> "DuplexAudioRelay":
        """
        Connect to the audio websocket and start relaying.

        Args:
            audio_socket: Socket descriptor from the room join

        Returns:
            The relay itself

        Raises:
            RelayError: If the relay was already used or the connection fails
            DeviceError: If the microphone cannot be started
        """
        if self._closing or self.ws is not None:
            raise RelayError("Audio relay cannot be reopened")

        logger.info(f"Connecting to audio WebSocket: {audio_socket.url}")
        try:
            ws = await asyncio.wait_for(
                websockets.connect(
                    audio_socket.url,
                    additional_headers=audio_socket.handshake_headers(),
                    max_size=WS_MAX_SIZE,
                    compression=None,
                ),
                timeout=self.connect_timeout,
            )
        except asyncio.TimeoutError as e:
            raise RelayError(
                f"Timed out connecting to audio WebSocket after {self.connect_timeout}s",
                resource_id=audio_socket.url,
                cause=e,
            ) from e
        except (OSError, WebSocketException) as e:
            raise RelayError(
                "Failed to connect to audio WebSocket",
                resource_id=audio_socket.url,
                cause=e,
            ) from e

        if self._closing:
            # close() ran while the handshake was in flight
            await ws.close()
            raise RelayError("Audio relay closed while connecting")

        self.ws = ws
        logger.info("Connected to audio WebSocket")

        self._send_task = asyncio.create_task(self._send_loop())
        self._recv_task = asyncio.create_task(self._recv_loop())
        try:
            self.devices.start_capture(self._on_captured_frame)
        except DeviceError:
            await self.close()
            raise
        return self

    def _on_captured_frame(self, frame: AudioFrame) -> None:
        if not self._closing:
            self._outbound.put_nowait(frame)

    async def _send_loop(self) -> None:
        try:
            while True:
                frame = await self._outbound.get()
                await self.ws.send(frame.data)
                self.frames_sent += 1
        except ConnectionClosedOK:
            logger.info("Audio WebSocket closed normally while sending")
            self._finished.set()
        except (ConnectionClosed, WebSocketException, OSError) as e:
            self._fail("Audio WebSocket failed while sending", e)

    async def _recv_loop(self) -> None:
        try:
            async for data in self.ws:
                await self._handle_message(data)
        except ConnectionClosedError as e:
            self._fail("Audio WebSocket connection lost", e)
        except (WebSocketException, OSError) as e:
            self._fail("Audio WebSocket failed while receiving", e)
        else:
            logger.info("Audio WebSocket connection closed")
            self._finished.set()

    async def _handle_message(self, data) -> None:
        message = parse_inbound(data, self.devices.audio_format)

        if isinstance(message, AudioMessage):
            frame = message.frame
            logger.debug(
                f"Received audio data: {len(frame)} bytes, header {frame.header_hex}, "
                f"peak {frame.peak_level()}"
            )
            if await self.devices.write_playback(frame):
                self.frames_played += 1
            else:
                self.frames_dropped += 1
                logger.debug("Speaker not ready, dropped audio frame")
            return

        self.control_messages += 1
        try:
            self.log_sink(message)
        except Exception as e:
            logger.error(f"Error handling WebSocket text message: {e}")

    def _fail(self, message: str, exc: BaseException) -> None:
        if self._closing:
            logger.debug(f"{message} during close: {exc}")
        elif self.error is None:
            self.error = RelayError(message, cause=exc)
            self.error.__cause__ = exc
            logger.error(f"{message}: {exc}")
        self._finished.set()

    async def wait_closed(self) -> None:
        """Wait until the relay has stopped for any reason."""
        await self._finished.wait()

    async def close(self) -> None:
        """
        Stop capture, then close the socket.

        Idempotent and safe to call before or during ``open()``. The socket
        close is bounded by ``close_timeout``.

        Raises:
            DeviceError: If stopping the microphone failed (the socket is still closed)
            RelayError: If the socket could not be closed cleanly
        """
        if self._closing:
            return
        self._closing = True

        errors = []
        try:
            await self.devices.stop_capture()
        except DeviceError as e:
            logger.error(f"Error stopping capture while closing relay: {e}")
            errors.append(e)

        await self._cancel(self._send_task)

        if self.ws is not None:
            try:
                await asyncio.wait_for(self.ws.close(), timeout=self.close_timeout)
            except asyncio.TimeoutError as e:
                errors.append(
                    RelayError(
                        f"Timed out closing audio WebSocket after {self.close_timeout}s",
                        cause=e,
                    )
                )
            except (WebSocketException, OSError) as e:
                errors.append(RelayError("Failed to close audio WebSocket", cause=e))

        await self._cancel(self._recv_task)
        self._finished.set()
        logger.info(
            f"Audio relay closed: sent={self.frames_sent} played={self.frames_played} "
            f"dropped={self.frames_dropped} text={self.control_messages}"
        )
        if errors:
            raise errors[0]

    @staticmethod
    async def _cancel(task: Optional[asyncio.Task]) -> None:
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass
