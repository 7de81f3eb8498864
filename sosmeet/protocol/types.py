# sosmeet/protocol/types.py
from __future__ import annotations

# ---- Commands (client -> server) ----
LOGIN = "login"
ADD_FRIEND = "add_friend"
CREATE_GROUP = "create_group"
ADD_MEMBER = "add_member"
CREATE_ALARM_CODE = "create_alarm_code"
TRIGGER_ALARM = "trigger_alarm"
CALL_PRESENCE = "call_presence"
WEBRTC = "webrtc"

# ---- Events (server -> client) ----
STATE = "state"
ERROR = "error"
FRIENDS_UPDATED = "friends_updated"
GROUP_CREATED = "group_created"
GROUP_UPDATED = "group_updated"
ALARM = "alarm"
# CALL_PRESENCE and WEBRTC are reused as event tags for the reply / relayed frame

# ---- Signaling payload kinds (opaque to the relay) ----
KIND_OFFER = "offer"
KIND_ANSWER = "answer"
KIND_ICE = "ice"

# ---- Error messages ----
MSG_INTERNAL = "Internal server error"

MIN_USERNAME_LENGTH = 3

# Minimal shape docs (for human readers)
# Command: { "type": <command tag>, ...camelCase fields }
# Event:   { "type": <event tag>, ...camelCase fields }
