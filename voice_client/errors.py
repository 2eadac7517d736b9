"""
Error taxonomy for the voice client.

Setup errors are raised fail-fast by the session controller and carry the
name of the failing step, the id of the resource involved when known, and the
underlying transport error (also chained as ``__cause__``). Teardown never
raises these; it logs and records them instead.
"""

from typing import Optional


class VoiceClientError(Exception):
    """Base class for all errors raised by the voice client."""

    def __init__(
        self,
        message: str,
        step: Optional[str] = None,
        resource_id: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message)
        self.message = message
        self.step = step
        self.resource_id = resource_id
        self.cause = cause

    def __str__(self) -> str:
        details = []
        if self.step:
            details.append(f"step={self.step}")
        if self.resource_id:
            details.append(f"id={self.resource_id}")
        if self.cause is not None:
            details.append(f"cause={self.cause}")
        if details:
            return f"{self.message} ({', '.join(details)})"
        return self.message


class ControlClientError(VoiceClientError):
    """An HTTP call to the Remote Control API failed or was rejected."""

    def __init__(
        self,
        method: str,
        path: str,
        status_code: Optional[int] = None,
        body: Optional[str] = None,
        cause: Optional[BaseException] = None,
    ):
        message = f"{method} {path} failed"
        if status_code is not None:
            message += f" with status {status_code}"
        if body:
            message += f": {body[:200]}"
        super().__init__(message, cause=cause)
        self.method = method
        self.path = path
        self.status_code = status_code
        self.body = body


class SessionSetupError(VoiceClientError):
    """Base class for failures while standing up a session."""


class ModelNotFoundError(SessionSetupError):
    """No available model matched the requested pattern."""


class AgentCreationError(SessionSetupError):
    """The remote API rejected agent creation."""


class ActivationError(SessionSetupError):
    """The agent could not be activated for websocket transport."""


class RoomJoinError(SessionSetupError):
    """Joining the room for a listener failed."""


class RelayError(VoiceClientError):
    """The audio websocket failed to open or failed while running."""


class DeviceError(VoiceClientError):
    """A capture or playback device operation failed."""
