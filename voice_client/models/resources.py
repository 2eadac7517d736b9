"""
Pydantic models for the Remote Control API request options and responses.

Recognised option fields are typed and validated. Unknown fields are accepted
and passed through verbatim, so options the server understands but this client
does not can still be supplied. Response models keep whatever extra fields
the server returns.
"""

from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field

from voice_client.config.constants import DEFAULT_TEMPERATURE


class Options(BaseModel):
    """Base for option bags sent in request bodies."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def to_payload(self) -> Dict[str, Any]:
        """Serialise with the API's camelCase field names, extras included."""
        return self.model_dump(by_alias=True, exclude_none=True)


class AgentOptions(Options):
    """Options for agent creation."""

    temperature: float = Field(DEFAULT_TEMPERATURE, ge=0.0, le=2.0)


class ListenOptions(Options):
    """Options for activating an agent listener."""

    stream_log: bool = Field(True, alias="streamLog")


class JoinOptions(Options):
    """Options for joining a room."""

    stream_log: bool = Field(True, alias="streamLog")


class Resource(BaseModel):
    """Base for server-side resources returned by the API."""

    model_config = ConfigDict(
        extra="allow", populate_by_name=True, coerce_numbers_to_str=True
    )


class Agent(Resource):
    """A server-side conversational agent."""

    id: str
    model_name: Optional[str] = Field(None, alias="modelName")
    prompt: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)


class Listener(Resource):
    """An activation of an agent for websocket transport."""

    id: str
    agent_id: Optional[str] = Field(None, alias="agentId")


class AudioSocket(Resource):
    """Descriptor of the media websocket returned by a room join."""

    url: str
    token: Optional[str] = None

    def handshake_headers(self) -> Dict[str, str]:
        """Headers to send on the websocket handshake."""
        if self.token:
            return {"Authorization": f"Bearer {self.token}"}
        return {}


class RoomJoinInfo(Resource):
    """Room join information; bound to the listener, never deleted separately."""

    audio_socket: Optional[AudioSocket] = Field(None, alias="audioSocket")
