from __future__ import annotations

import json
from typing import Any, Dict, Iterable, Optional

from .types import (
    ALARM,
    CALL_PRESENCE,
    ERROR,
    FRIENDS_UPDATED,
    GROUP_CREATED,
    GROUP_UPDATED,
    STATE,
    WEBRTC,
)

Event = Dict[str, Any]


def encode(event: Event) -> str:
    # compact JSON, keep non-ASCII as UTF-8
    return json.dumps(event, separators=(",", ":"), ensure_ascii=False)


# server side event builders
def ev_state(me: str, friends: Iterable[str], groups: Iterable[Dict[str, Any]]) -> Event:
    return {"type": STATE, "me": me, "friends": list(friends), "groups": list(groups)}

def ev_error(message: str) -> Event:
    return {"type": ERROR, "message": message}

def ev_friends_updated(user_a: str, user_b: str) -> Event:
    return {"type": FRIENDS_UPDATED, "userA": user_a, "userB": user_b}

def ev_group_created(group: Dict[str, Any]) -> Event:
    return {"type": GROUP_CREATED, "group": group}

def ev_group_updated(group: Dict[str, Any]) -> Event:
    return {"type": GROUP_UPDATED, "group": group}

def ev_alarm(alarm: Dict[str, Any]) -> Event:
    return {"type": ALARM, "alarm": alarm}

def ev_call_presence(group_id: str, online_members: Iterable[str]) -> Event:
    return {"type": CALL_PRESENCE, "groupId": group_id, "onlineMembers": list(online_members)}

def ev_webrtc(sender: str, group_id: Optional[str], payload: Any) -> Event:
    return {"type": WEBRTC, "from": sender, "groupId": group_id, "payload": payload}
