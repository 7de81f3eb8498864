"""
sosmeet: presence-aware relay for group safety alarms and mesh video calls.

Clients hold one WebSocket each. After ``login`` they manage friends and
groups, trigger alarm codes that fan out to every online member, and use the
relay to exchange WebRTC offer/answer/ICE payloads for full-mesh calls.
"""
__version__ = "1.0.0"
