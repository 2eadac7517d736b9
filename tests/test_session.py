"""
Unit tests for the SessionController.

The Remote Control API client is a MagicMock, the devices are FakeDevices and
the relay is FakeRelay, all recording into one shared call log so setup
failure handling and teardown ordering can be asserted end to end.
"""

import asyncio
from unittest.mock import MagicMock

import pytest

from conftest import FakeDevices, settle
from voice_client.errors import (
    ActivationError,
    AgentCreationError,
    ControlClientError,
    DeviceError,
    ModelNotFoundError,
    RelayError,
    RoomJoinError,
    VoiceClientError,
)
from voice_client.models.resources import Agent, Listener, RoomJoinInfo
from voice_client.services.control_client import ControlClient
from voice_client.session import SessionController, select_model

MODELS = {"gpt35": {}, "ultravox-70B-x": {"ctx": 8192}, "ultravox-70B-y": {}}
PROMPT = "You are a helpful AI assistant."


class FakeRelay:
    """Records open/close and can end itself, with or without an error."""

    def __init__(self, calls, open_error=None, end_after=None, end_error=None):
        self.calls = calls
        self.open_error = open_error
        self.end_after = end_after
        self.end_error = end_error
        self.error = None
        self.finished = False
        self.socket = None
        self._done = asyncio.Event()

    async def open(self, audio_socket):
        self.calls.append("relay_open")
        self.socket = audio_socket
        if self.open_error:
            raise self.open_error
        if self.end_after is not None:
            asyncio.get_running_loop().call_later(self.end_after, self._end)

    def _end(self):
        self.error = self.end_error
        self.finished = True
        self._done.set()

    async def wait_closed(self):
        await self._done.wait()

    async def close(self):
        self.calls.append("close_relay")


@pytest.fixture
def calls():
    return []


@pytest.fixture
def client(calls):
    mock = MagicMock(spec=ControlClient)
    mock.list_models.return_value = dict(MODELS)
    mock.create_agent.return_value = Agent(id="agent-1")
    mock.activate_agent.return_value = Listener(id="listener-1")
    mock.join_room.return_value = RoomJoinInfo.model_validate(
        {"audioSocket": {"url": "ws://localhost:5000/audio/abc"}}
    )
    mock.delete_listener.side_effect = lambda *args: calls.append(("delete_listener",) + args)
    mock.delete_agent.side_effect = lambda *args: calls.append(("delete_agent",) + args)
    return mock


@pytest.fixture
def devices(calls):
    return FakeDevices(calls)


def make_controller(client, devices, calls, **relay_kwargs):
    relays = []

    def factory():
        relay = FakeRelay(calls, **relay_kwargs)
        relays.append(relay)
        return relay

    controller = SessionController(client, devices, relay_factory=factory)
    return controller, relays


def teardown_calls(calls):
    return [c for c in calls if c not in ("relay_open", "start_capture")]


# Model selection
def test_select_model_first_match_in_order():
    assert select_model(MODELS, "ultravox-70B") == "ultravox-70B-x"


def test_select_model_scenario():
    assert select_model({"ultravox-70B-x": {}}, "ultravox-70B") == "ultravox-70B-x"


@pytest.mark.parametrize("models", [{}, {"gpt35": {}}])
def test_select_model_no_match(models):
    with pytest.raises(ModelNotFoundError):
        select_model(models, "ultravox-70B")


def test_select_model_invalid_pattern():
    with pytest.raises(ModelNotFoundError):
        select_model(MODELS, "ultravox-(")


# Full session
@pytest.mark.asyncio
async def test_successful_session_runs_full_teardown(client, devices, calls):
    controller, relays = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert result.ok
    assert result.model_name == "ultravox-70B-x"
    assert result.agent_id == "agent-1"
    assert result.listener_id == "listener-1"
    assert result.relay_opened
    assert relays[0].socket.url == "ws://localhost:5000/audio/abc"
    assert teardown_calls(calls) == [
        "close_relay",
        "stop_capture",
        "close_playback",
        ("delete_listener", "agent-1", "listener-1"),
        ("delete_agent", "agent-1"),
    ]
    assert [s.name for s in result.teardown] == [
        "close_relay",
        "stop_capture",
        "close_playback",
        "delete_listener",
        "delete_agent",
    ]
    assert all(s.attempted and s.succeeded for s in result.teardown)


@pytest.mark.asyncio
async def test_remote_calls_use_selected_model_and_options(client, devices, calls):
    controller, _ = make_controller(client, devices, calls)

    await controller.run_session("ultravox-70B", PROMPT, 0)

    model, prompt, options = client.create_agent.call_args[0]
    assert (model, prompt) == ("ultravox-70B-x", PROMPT)
    assert options.temperature == 0.7
    agent_id, listen_options = client.activate_agent.call_args[0]
    assert agent_id == "agent-1"
    assert listen_options.stream_log is True
    assert client.join_room.call_args[0][0] == "listener-1"


@pytest.mark.asyncio
async def test_model_not_found_creates_nothing(client, devices, calls):
    client.list_models.return_value = {"gpt35": {}}
    controller, relays = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert isinstance(result.error, ModelNotFoundError)
    client.create_agent.assert_not_called()
    assert relays == []
    assert teardown_calls(calls) == ["stop_capture", "close_playback"]
    assert not result.step("delete_agent").attempted


@pytest.mark.asyncio
async def test_list_models_transport_failure(client, devices, calls):
    client.list_models.side_effect = ControlClientError("GET", "/models", status_code=500)
    controller, _ = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert isinstance(result.error, ModelNotFoundError)
    assert isinstance(result.error.__cause__, ControlClientError)


@pytest.mark.asyncio
async def test_agent_creation_failure(client, devices, calls):
    cause = ControlClientError("POST", "/agents", status_code=401, body="invalid token")
    client.create_agent.side_effect = cause
    controller, _ = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert isinstance(result.error, AgentCreationError)
    assert result.error.step == "create_agent"
    assert result.error.cause is cause
    assert result.error.__cause__ is cause
    client.delete_agent.assert_not_called()
    client.delete_listener.assert_not_called()
    assert "AgentCreationError" in result.summary()


@pytest.mark.asyncio
async def test_activation_failure_deletes_agent_once(client, devices, calls):
    client.activate_agent.side_effect = ControlClientError("POST", "/agents/agent-1/listen")
    controller, _ = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert isinstance(result.error, ActivationError)
    assert result.error.resource_id == "agent-1"
    client.delete_listener.assert_not_called()
    client.delete_agent.assert_called_once_with("agent-1")


@pytest.mark.asyncio
async def test_room_join_failure_deletes_listener_then_agent(client, devices, calls):
    client.join_room.side_effect = ControlClientError("POST", "/rooms/listener-1/join")
    controller, relays = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert isinstance(result.error, RoomJoinError)
    assert relays == []
    assert teardown_calls(calls) == [
        "stop_capture",
        "close_playback",
        ("delete_listener", "agent-1", "listener-1"),
        ("delete_agent", "agent-1"),
    ]


@pytest.mark.asyncio
async def test_relay_open_failure_tears_everything_down(client, devices, calls):
    controller, _ = make_controller(
        client, devices, calls, open_error=RelayError("Failed to connect to audio WebSocket")
    )

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert isinstance(result.error, RelayError)
    assert not result.relay_opened
    assert teardown_calls(calls) == [
        "close_relay",
        "stop_capture",
        "close_playback",
        ("delete_listener", "agent-1", "listener-1"),
        ("delete_agent", "agent-1"),
    ]


@pytest.mark.asyncio
async def test_capture_device_failure_on_open(client, devices, calls):
    controller, _ = make_controller(
        client, devices, calls, open_error=DeviceError("Failed to open capture device")
    )

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert isinstance(result.error, DeviceError)
    client.delete_agent.assert_called_once_with("agent-1")


@pytest.mark.asyncio
async def test_log_only_mode_without_audio_socket(client, devices, calls):
    client.join_room.return_value = RoomJoinInfo.model_validate({"room": "r1"})
    controller, relays = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert result.ok
    assert relays == []
    assert not result.relay_opened
    assert not result.step("close_relay").attempted
    assert result.step("delete_agent").succeeded


@pytest.mark.asyncio
async def test_teardown_continues_after_step_failure(client, devices, calls):
    devices.close_error = DeviceError("Speaker still busy")
    client.delete_listener.side_effect = ControlClientError(
        "DELETE", "/agents/agent-1/listen/listener-1", status_code=404
    )
    controller, _ = make_controller(client, devices, calls)

    result = await controller.run_session("ultravox-70B", PROMPT, 0)

    assert result.succeeded
    assert not result.ok
    client.delete_agent.assert_called_once_with("agent-1")
    failed = [s.name for s in result.teardown_failures]
    assert failed == ["close_playback", "delete_listener"]
    assert "teardown delete_listener failed" in result.summary()


@pytest.mark.asyncio
async def test_teardown_is_idempotent(client, devices, calls):
    controller, _ = make_controller(client, devices, calls)
    await controller.run_session("ultravox-70B", PROMPT, 0)

    steps = await controller.teardown()

    client.delete_listener.assert_called_once()
    client.delete_agent.assert_called_once()
    assert not any(s.error for s in steps)
    assert not steps[3].attempted and not steps[4].attempted


@pytest.mark.asyncio
async def test_relay_failure_ends_hold_early(client, devices, calls):
    failure = RelayError("Audio WebSocket connection lost")
    controller, _ = make_controller(client, devices, calls, end_after=0.01, end_error=failure)

    result = await asyncio.wait_for(controller.run_session("ultravox-70B", PROMPT, 30), timeout=5)

    assert result.error is failure
    assert not result.succeeded
    client.delete_agent.assert_called_once_with("agent-1")


@pytest.mark.asyncio
async def test_remote_close_ends_hold_without_error(client, devices, calls):
    controller, _ = make_controller(client, devices, calls, end_after=0.01)

    result = await asyncio.wait_for(controller.run_session("ultravox-70B", PROMPT, 30), timeout=5)

    assert result.ok


@pytest.mark.asyncio
async def test_cancellation_during_hold_still_tears_down(client, devices, calls):
    controller, _ = make_controller(client, devices, calls)

    task = asyncio.create_task(controller.run_session("ultravox-70B", PROMPT, 30))
    for _ in range(200):
        await asyncio.sleep(0.01)
        if "relay_open" in calls:
            break
    await settle()
    task.cancel()

    with pytest.raises(asyncio.CancelledError):
        await task

    client.delete_listener.assert_called_once_with("agent-1", "listener-1")
    client.delete_agent.assert_called_once_with("agent-1")
    assert "close_relay" in calls


@pytest.mark.asyncio
async def test_controller_runs_single_session(client, devices, calls):
    controller, _ = make_controller(client, devices, calls)
    await controller.run_session("ultravox-70B", PROMPT, 0)

    with pytest.raises(VoiceClientError):
        await controller.run_session("ultravox-70B", PROMPT, 0)
