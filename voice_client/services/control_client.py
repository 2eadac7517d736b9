"""
HTTP client for the Remote Control API.

This module provides the authenticated client used to list models, create
and delete agents, activate and delete listeners, and join rooms. Every
request carries the bearer token and the configured timeout, and is attempted
exactly once; failures are raised as ControlClientError with the underlying
``requests`` exception chained.
"""

import logging
from typing import Any, Dict, Optional

import requests

from voice_client.config.constants import (
    AGENT_PATH,
    AGENTS_PATH,
    DEFAULT_REQUEST_TIMEOUT,
    LISTEN_PATH,
    LISTENER_PATH,
    LOGGER_NAME,
    MODELS_PATH,
    ROOM_JOIN_PATH,
)
from voice_client.config.logging_config import mask_secret
from voice_client.errors import ControlClientError
from voice_client.models.resources import (
    Agent,
    AgentOptions,
    JoinOptions,
    ListenOptions,
    Listener,
    RoomJoinInfo,
)

logger = logging.getLogger(LOGGER_NAME)


class ControlClient:
    """
    Client for the Remote Control API.

    The client is synchronous; async callers dispatch its methods with
    ``asyncio.to_thread`` so the event loop keeps serving the audio relay.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        session: Optional[requests.Session] = None,
    ):
        """
        Initialize the Remote Control API client.

        Args:
            base_url: Base URL of the API, e.g. ``http://localhost:5000/api``
            api_key: Bearer token
            timeout: Per-request timeout in seconds
            session: Optional pre-built requests Session
        """
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.update(
            {
                "Content-Type": "application/json",
                "Authorization": f"Bearer {api_key}",
            }
        )
        logger.info(f"Authorization header: Bearer {mask_secret(api_key)}")

    def _request(
        self, method: str, path: str, payload: Optional[Dict[str, Any]] = None
    ) -> Any:
        """
        Issue one request and decode the JSON response.

        Returns:
            The decoded JSON body, or None for an empty body

        Raises:
            ControlClientError: On transport failure or a non-2xx status
        """
        url = f"{self.base_url}{path}"
        logger.debug(f"{method} {url}")
        try:
            response = self.session.request(
                method, url, json=payload, timeout=self.timeout
            )
            response.raise_for_status()
        except requests.HTTPError as e:
            resp = e.response
            raise ControlClientError(
                method,
                path,
                status_code=resp.status_code if resp is not None else None,
                body=resp.text if resp is not None else None,
                cause=e,
            ) from e
        except requests.RequestException as e:
            raise ControlClientError(method, path, cause=e) from e

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ControlClientError(
                method,
                path,
                status_code=response.status_code,
                body=response.text,
                cause=e,
            ) from e

    def list_models(self) -> Dict[str, Any]:
        """
        Get available models.

        Returns:
            Mapping of model name to model metadata, in server order
        """
        models = self._request("GET", MODELS_PATH) or {}
        if not isinstance(models, dict):
            raise ControlClientError(
                "GET", MODELS_PATH, body=f"expected an object, got {type(models).__name__}"
            )
        logger.info(f"Available models: {list(models)}")
        return models

    def create_agent(
        self, model_name: str, prompt: str, options: Optional[AgentOptions] = None
    ) -> Agent:
        """
        Create a new agent.

        Args:
            model_name: The model to use
            prompt: The prompt for the agent
            options: Agent options (temperature defaults to 0.7)
        """
        payload = {
            "modelName": model_name,
            "prompt": prompt,
            "options": (options or AgentOptions()).to_payload(),
        }
        agent = Agent.model_validate(self._request("POST", AGENTS_PATH, payload))
        logger.info(f"Agent created: {agent.id}")
        return agent

    def activate_agent(
        self, agent_id: str, options: Optional[ListenOptions] = None
    ) -> Listener:
        """
        Activate an agent for websocket transport.

        Args:
            agent_id: The ID of the agent to activate
            options: Activation options (streamLog defaults to True)
        """
        payload = {
            "websocket": True,
            "options": (options or ListenOptions()).to_payload(),
        }
        path = LISTEN_PATH.format(agent_id=agent_id)
        listener = Listener.model_validate(self._request("POST", path, payload))
        if listener.agent_id is None:
            listener.agent_id = agent_id
        logger.info(f"Agent activated: listener {listener.id}")
        return listener

    def join_room(
        self, listener_id: str, options: Optional[JoinOptions] = None
    ) -> RoomJoinInfo:
        """
        Get join information for the room of a listener.

        Args:
            listener_id: The ID of the listener
            options: Join options (streamLog defaults to True)
        """
        payload = {"options": (options or JoinOptions()).to_payload()}
        path = ROOM_JOIN_PATH.format(listener_id=listener_id)
        info = RoomJoinInfo.model_validate(self._request("POST", path, payload) or {})
        logger.info(f"Room join info: audio socket {info.audio_socket.url if info.audio_socket else None}")
        return info

    def delete_listener(self, agent_id: str, listener_id: str) -> None:
        """Delete a listener."""
        self._request(
            "DELETE", LISTENER_PATH.format(agent_id=agent_id, listener_id=listener_id)
        )
        logger.info(f"Listener deleted: {listener_id}")

    def delete_agent(self, agent_id: str) -> None:
        """Delete an agent."""
        self._request("DELETE", AGENT_PATH.format(agent_id=agent_id))
        logger.info(f"Agent deleted: {agent_id}")

    def close(self) -> None:
        """Close the underlying HTTP session."""
        self.session.close()
