"""
Local audio device access for the voice client.

Key components:
- devices: AudioDeviceBridge, the PyAudio-backed microphone/speaker pair used
  by the duplex audio relay.
"""

# Audio module initialization
