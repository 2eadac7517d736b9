"""
Audio Device Bridge over PyAudio.

This module wraps the local microphone (capture) and speaker (playback) behind
a small asynchronous interface used by the audio relay:

- ``start_capture(on_frame)`` delivers microphone buffers on the event loop at
  the device's native cadence.
- ``write_playback(frame)`` plays one frame, or drops it when the speaker is
  not ready.
- ``stop_capture()`` and ``close_playback()`` release the devices; both are
  idempotent and bounded by a timeout so teardown never hangs on a stalled
  device.

The PyAudio handle is owned by the bridge: it is handed over (or created) once
and terminated once, when playback is closed.
"""

import asyncio
import logging
import threading
from typing import Callable, Optional

import pyaudio

from voice_client.config.constants import (
    DEFAULT_DEVICE_TIMEOUT,
    DEFAULT_PLAYBACK_WRITE_TIMEOUT,
    LOGGER_NAME,
)
from voice_client.errors import DeviceError
from voice_client.models.audio import PCM16_MONO_48K, AudioFormat, AudioFrame

logger = logging.getLogger(LOGGER_NAME)

FrameCallback = Callable[[AudioFrame], None]


def run_in_daemon_thread(fn, *args) -> asyncio.Future:
    """
    Run a blocking device call in a daemon thread.

    Returns a future on the running loop resolved with the call's result or
    exception. A call abandoned after a timeout keeps its thread, but the
    thread never holds up interpreter exit.
    """
    loop = asyncio.get_running_loop()
    future = loop.create_future()

    def resolve(result, exc):
        if future.done():
            return
        if exc is not None:
            future.set_exception(exc)
        else:
            future.set_result(result)

    def target():
        try:
            result, exc = fn(*args), None
        except Exception as e:
            result, exc = None, e
        try:
            loop.call_soon_threadsafe(resolve, result, exc)
        except RuntimeError:
            # Event loop already closed
            pass

    worker = threading.Thread(target=target)
    worker.daemon = True
    worker.start()
    return future


class AudioDeviceBridge:
    """
    Capture and playback device pair for one session.

    Capture runs in PortAudio callback mode; each buffer is posted to the
    event loop with ``call_soon_threadsafe``. Playback writes are serialised:
    at most one write is in flight, it runs in a daemon worker thread, and
    while it is pending the speaker reports itself as not ready so the relay
    drops frames instead of queueing them.
    """

    def __init__(
        self,
        audio_format: AudioFormat = PCM16_MONO_48K,
        audio: Optional[pyaudio.PyAudio] = None,
        device_timeout: float = DEFAULT_DEVICE_TIMEOUT,
        write_timeout: float = DEFAULT_PLAYBACK_WRITE_TIMEOUT,
    ):
        """
        Initialize the bridge.

        Args:
            audio_format: PCM format for both directions
            audio: PyAudio handle to take ownership of (created lazily if None)
            device_timeout: Upper bound for stopping or closing a device
            write_timeout: Upper bound the caller waits on a single playback write
        """
        self.audio_format = audio_format
        self.device_timeout = device_timeout
        self.write_timeout = write_timeout
        self._audio = audio
        self._input_stream = None
        self._output_stream = None
        self._pending_write: Optional[asyncio.Future] = None
        self._capturing = False
        self._playback_closed = False
        self._playback_failed = False
        self._terminated = False

    @property
    def capturing(self) -> bool:
        return self._capturing

    @property
    def playback_ready(self) -> bool:
        """True when a frame written now would be accepted."""
        if self._playback_closed or self._playback_failed:
            return False
        return self._pending_write is None or self._pending_write.done()

    def _pyaudio(self) -> pyaudio.PyAudio:
        if self._terminated:
            raise DeviceError("Audio devices already released")
        if self._audio is None:
            self._audio = pyaudio.PyAudio()
        return self._audio

    def _open_stream(self, **kwargs):
        fmt = self.audio_format
        return self._pyaudio().open(
            format=pyaudio.get_format_from_width(fmt.sample_width),
            channels=fmt.channels,
            rate=fmt.sample_rate,
            frames_per_buffer=fmt.frames_per_buffer,
            **kwargs,
        )

    def start_capture(self, on_frame: FrameCallback) -> None:
        """
        Start the microphone and deliver each captured buffer to ``on_frame``.

        Must be called from a running event loop; ``on_frame`` is invoked on
        that loop, in capture order.

        Raises:
            DeviceError: If capture is already running or the device cannot be opened
        """
        if self._capturing:
            raise DeviceError("Capture already started")

        loop = asyncio.get_running_loop()
        fmt = self.audio_format

        def callback(in_data, frame_count, time_info, status):
            if status:
                logger.debug(f"Capture status flags: {status}")
            try:
                loop.call_soon_threadsafe(self._deliver, on_frame, AudioFrame(in_data, fmt))
            except RuntimeError:
                # Event loop already closed
                return (None, pyaudio.paComplete)
            return (None, pyaudio.paContinue)

        try:
            self._input_stream = self._open_stream(input=True, stream_callback=callback)
        except (OSError, ValueError) as e:
            raise DeviceError("Failed to open capture device", cause=e) from e

        self._capturing = True
        logger.info(
            f"Microphone started: {fmt.sample_rate}Hz, {fmt.channels} channel(s)"
        )

    def _deliver(self, on_frame: FrameCallback, frame: AudioFrame) -> None:
        # Buffers already queued on the loop when capture stopped are discarded
        if self._capturing:
            on_frame(frame)

    async def stop_capture(self) -> None:
        """Stop the microphone. Safe to call repeatedly or before start."""
        self._capturing = False
        stream, self._input_stream = self._input_stream, None
        if stream is None:
            return
        await self._run_bounded(self._close_stream, stream, "capture")
        logger.info("Microphone stopped")

    async def write_playback(self, frame: AudioFrame) -> bool:
        """
        Play one frame.

        Returns:
            True if the frame was handed to the speaker, False if it was dropped
        """
        if not self.playback_ready:
            return False

        if self._output_stream is None:
            try:
                self._output_stream = self._open_stream(output=True)
            except (OSError, ValueError, DeviceError) as e:
                self._playback_failed = True
                logger.error(f"Failed to open playback device: {e}")
                return False
            logger.info("Speaker opened")

        task = run_in_daemon_thread(self._output_stream.write, frame.data)
        task.add_done_callback(self._on_write_done)
        self._pending_write = task

        done, _ = await asyncio.wait({task}, timeout=self.write_timeout)
        if not done:
            logger.warning(
                f"Playback write still pending after {self.write_timeout}s; "
                "dropping frames until it completes"
            )
            return True
        return not task.cancelled() and task.exception() is None

    @staticmethod
    def _on_write_done(task: asyncio.Future) -> None:
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Speaker error: {exc}")

    async def close_playback(self) -> None:
        """
        Drain and close the speaker, then release the audio devices.

        Waits (bounded) for an in-flight write before closing. Safe to call
        repeatedly.
        """
        if self._playback_closed:
            return
        self._playback_closed = True

        try:
            pending = self._pending_write
            if pending is not None and not pending.done():
                done, _ = await asyncio.wait({pending}, timeout=self.device_timeout)
                if not done:
                    logger.warning(
                        f"Speaker still busy after {self.device_timeout}s; forcing close"
                    )

            stream, self._output_stream = self._output_stream, None
            if stream is not None:
                await self._run_bounded(self._close_stream, stream, "playback")
                logger.info("Speaker closed")
        finally:
            if self._input_stream is not None:
                await self.stop_capture()
            await self._terminate()

    async def _terminate(self) -> None:
        if self._terminated:
            return
        self._terminated = True
        audio, self._audio = self._audio, None
        if audio is not None:
            await self._run_bounded(audio.terminate, None, "audio system")

    @staticmethod
    def _close_stream(stream) -> None:
        stream.stop_stream()
        stream.close()

    async def _run_bounded(self, fn, arg, what: str) -> None:
        args = () if arg is None else (arg,)
        try:
            await asyncio.wait_for(
                run_in_daemon_thread(fn, *args), timeout=self.device_timeout
            )
        except asyncio.TimeoutError as e:
            raise DeviceError(
                f"Timed out releasing {what} device after {self.device_timeout}s",
                cause=e,
            ) from e
        except OSError as e:
            raise DeviceError(f"Failed to release {what} device", cause=e) from e
