"""
Services module for external API integrations in the voice client.

Key components:
- control_client: Authenticated HTTP client for the Remote Control API,
  covering model listing, agent creation and deletion, listener activation
  and deletion, and room joins.

Usage examples:
```python
from voice_client.services.control_client import ControlClient

client = ControlClient("http://localhost:5000/api", api_key="...")
models = client.list_models()
agent = client.create_agent(next(iter(models)), "You are a helpful assistant.")
listener = client.activate_agent(agent.id)
room = client.join_room(listener.id)
client.delete_listener(agent.id, listener.id)
client.delete_agent(agent.id)
```
"""

# Services module initialization
