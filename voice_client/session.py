"""
Session Lifecycle Controller.

Stands up a session against the Remote Control API (list models, create the
agent, activate a websocket listener, join the room), relays audio for a
fixed window, and always tears down whatever was created:

    close relay -> stop capture -> close playback -> delete listener -> delete agent

Setup is fail-fast: the first failing step raises its error and skips the
remaining steps. Teardown is log-and-continue: every step is attempted
independently and its outcome recorded on the SessionResult.
"""

import asyncio
import logging
import re
from typing import Any, Callable, Dict, List, Optional, Type

from voice_client.audio.devices import AudioDeviceBridge
from voice_client.config.constants import (
    LOGGER_NAME,
    STEP_CLOSE_PLAYBACK,
    STEP_CLOSE_RELAY,
    STEP_DELETE_AGENT,
    STEP_DELETE_LISTENER,
    STEP_STOP_CAPTURE,
)
from voice_client.errors import (
    ActivationError,
    AgentCreationError,
    ModelNotFoundError,
    RoomJoinError,
    SessionSetupError,
    VoiceClientError,
)
from voice_client.models.resources import AgentOptions, JoinOptions, ListenOptions
from voice_client.models.session import SessionResult, TeardownStep
from voice_client.relay import DuplexAudioRelay
from voice_client.services.control_client import ControlClient

logger = logging.getLogger(LOGGER_NAME)


def select_model(models: Dict[str, Any], pattern: str) -> str:
    """
    Pick the first model name, in server order, matching ``pattern``.

    Args:
        models: Mapping of model name to metadata, as returned by the API
        pattern: Regular expression searched for anywhere in the name

    Raises:
        ModelNotFoundError: If the pattern is invalid or nothing matches
    """
    try:
        regex = re.compile(pattern)
    except re.error as e:
        raise ModelNotFoundError(
            f"Invalid model pattern {pattern!r}", step="list_models", cause=e
        ) from e

    for name in models:
        if regex.search(name):
            return name
    raise ModelNotFoundError(
        f"No model matches pattern {pattern!r} (available: {list(models)})",
        step="list_models",
    )


class SessionController:
    """
    Runs one session: setup, hold, teardown.

    The controller owns the device bridge handed to it and releases it during
    teardown. A controller runs a single session.
    """

    def __init__(
        self,
        client: ControlClient,
        devices: AudioDeviceBridge,
        relay_factory: Optional[Callable[[], DuplexAudioRelay]] = None,
        agent_options: Optional[AgentOptions] = None,
        listen_options: Optional[ListenOptions] = None,
        join_options: Optional[JoinOptions] = None,
    ):
        """
        Initialize the controller.

        Args:
            client: Remote Control API client
            devices: Capture/playback devices, owned by the controller from now on
            relay_factory: Builds the relay once the room yields an audio socket
            agent_options: Options for agent creation
            listen_options: Options for listener activation
            join_options: Options for the room join
        """
        self.client = client
        self.devices = devices
        self.relay_factory = relay_factory or (lambda: DuplexAudioRelay(devices))
        self.agent_options = agent_options or AgentOptions()
        self.listen_options = listen_options or ListenOptions()
        self.join_options = join_options or JoinOptions()

        self.relay: Optional[DuplexAudioRelay] = None
        self.result: Optional[SessionResult] = None
        self._agent_id: Optional[str] = None
        self._listener_id: Optional[str] = None
        self._started = False

    async def run_session(
        self, model_pattern: str, prompt: str, duration_seconds: float
    ) -> SessionResult:
        """
        Stand up a session, hold it for ``duration_seconds``, then tear it down.

        Args:
            model_pattern: Regular expression selecting the model
            prompt: Prompt for the agent
            duration_seconds: How long to keep the session open

        Returns:
            The SessionResult, including the outcome of every teardown step
        """
        if self._started:
            raise VoiceClientError("A SessionController runs a single session")
        self._started = True

        result = SessionResult()
        self.result = result
        try:
            await self._setup(model_pattern, prompt, result)
            await self._hold(duration_seconds)
            result.succeeded = True
        except VoiceClientError as e:
            result.error = e
            logger.error(f"Error in session: {e}")
        finally:
            result.teardown = await self.teardown()

        if result.ok:
            logger.info("Demo completed successfully!")
        else:
            logger.error(result.summary())
        return result

    async def _call(
        self,
        step: str,
        error_cls: Type[SessionSetupError],
        fn: Callable,
        *args,
        resource_id: Optional[str] = None,
    ):
        """Run one blocking remote call off the event loop, mapping its failure."""
        try:
            return await asyncio.to_thread(fn, *args)
        except Exception as e:
            raise error_cls(
                f"Error in step {step}", step=step, resource_id=resource_id, cause=e
            ) from e

    async def _setup(self, model_pattern: str, prompt: str, result: SessionResult) -> None:
        # Step 1: Get available models
        models = await self._call("list_models", ModelNotFoundError, self.client.list_models)
        model_name = select_model(models, model_pattern)
        result.model_name = model_name
        logger.info(f"Selected model: {model_name}")

        # Step 2: Create an agent
        agent = await self._call(
            "create_agent",
            AgentCreationError,
            self.client.create_agent,
            model_name,
            prompt,
            self.agent_options,
        )
        self._agent_id = result.agent_id = agent.id

        # Step 3: Activate the agent
        listener = await self._call(
            "activate_agent",
            ActivationError,
            self.client.activate_agent,
            agent.id,
            self.listen_options,
            resource_id=agent.id,
        )
        self._listener_id = result.listener_id = listener.id

        # Step 4: Get room join information
        room = await self._call(
            "join_room",
            RoomJoinError,
            self.client.join_room,
            listener.id,
            self.join_options,
            resource_id=listener.id,
        )
        logger.info("Agent is ready!")

        # Step 5: Connect to the audio WebSocket
        if room.audio_socket is None:
            logger.info("No audio WebSocket available, continuing in log-only mode")
            return

        self.relay = self.relay_factory()
        await self.relay.open(room.audio_socket)
        result.relay_opened = True

    async def _hold(self, duration_seconds: float) -> None:
        logger.info(f"Agent will run for {duration_seconds} seconds...")
        waiters = {asyncio.create_task(asyncio.sleep(duration_seconds))}
        if self.relay is not None:
            waiters.add(asyncio.create_task(self.relay.wait_closed()))

        try:
            await asyncio.wait(waiters, return_when=asyncio.FIRST_COMPLETED)
        finally:
            for waiter in waiters:
                waiter.cancel()

        if self.relay is not None and self.relay.finished:
            if self.relay.error is not None:
                raise self.relay.error
            logger.info("Audio relay ended before the session window elapsed")

    async def teardown(self) -> List[TeardownStep]:
        """
        Release everything the session holds.

        Every step is attempted independently; a failure is logged and
        recorded, and the next step still runs. Remote deletions are attempted
        at most once per session, so calling this again issues no remote calls.
        """
        steps = [
            (STEP_CLOSE_RELAY, self.relay is not None, self._close_relay),
            (STEP_STOP_CAPTURE, True, self.devices.stop_capture),
            (STEP_CLOSE_PLAYBACK, True, self.devices.close_playback),
            (STEP_DELETE_LISTENER, self._listener_id is not None, self._delete_listener),
            (STEP_DELETE_AGENT, self._agent_id is not None, self._delete_agent),
        ]

        outcomes = []
        for name, needed, action in steps:
            step = TeardownStep(name=name)
            outcomes.append(step)
            if not needed:
                logger.debug(f"Teardown {name}: nothing to release")
                continue

            step.attempted = True
            try:
                await action()
                step.succeeded = True
                logger.debug(f"Teardown {name}: done")
            except Exception as e:
                step.error = str(e)
                logger.error(f"Error cleaning up ({name}): {e}")
        return outcomes

    async def _close_relay(self) -> None:
        await self.relay.close()

    async def _delete_listener(self) -> None:
        agent_id, listener_id = self._agent_id, self._listener_id
        self._listener_id = None
        await asyncio.to_thread(self.client.delete_listener, agent_id, listener_id)

    async def _delete_agent(self) -> None:
        agent_id = self._agent_id
        self._agent_id = None
        await asyncio.to_thread(self.client.delete_agent, agent_id)
