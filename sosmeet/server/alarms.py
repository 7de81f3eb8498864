from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sosmeet.ids import new_id, now_ms
from sosmeet.persistence.groups import AlarmCode, GroupRegistry
from sosmeet.protocol.events import ev_alarm
from sosmeet.server.broadcast import BroadcastRouter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AlarmEvent:
    """One firing of an alarm code. Lives only as long as its broadcast."""

    id: str
    group_id: str
    code_id: str
    code_title: str
    color_hex: str
    sound_key: str
    mode: str
    message_text: str
    triggered_by: str
    triggered_at: int

    @classmethod
    def fire(cls, group_id: str, code: AlarmCode, triggered_by: str,
             message_override: Optional[str] = None) -> "AlarmEvent":
        override = (message_override or "").strip()
        return cls(
            id=new_id("alarm_"),
            group_id=group_id,
            code_id=code.id,
            code_title=code.title,
            color_hex=code.color_hex,
            sound_key=code.sound_key,
            mode=code.mode,
            message_text=override or code.message_text,
            triggered_by=triggered_by,
            triggered_at=now_ms(),
        )

    def to_wire(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "groupId": self.group_id,
            "codeId": self.code_id,
            "codeTitle": self.code_title,
            "colorHex": self.color_hex,
            "soundKey": self.sound_key,
            "mode": self.mode,
            "messageText": self.message_text,
            "triggeredBy": self.triggered_by,
            "triggeredAt": self.triggered_at,
        }


class AlarmEngine:
    def __init__(self, groups: GroupRegistry, router: BroadcastRouter) -> None:
        self.groups = groups
        self.router = router

    def trigger_alarm(self, group_id: str, code_id: str, triggered_by: str,
                      message_override: Optional[str] = None) -> Tuple[AlarmEvent, List[str]]:
        """
        Fire ``code_id`` at every current member of ``group_id``.

        Raises NotAMemberError / NotFoundError when the trigger is not allowed;
        nothing is sent in that case. Members without a live session simply
        miss the alarm. Returns the event and the usernames it reached.
        """
        group = self.groups.get_for_member(group_id, triggered_by)
        code = self.groups.get_alarm_code(group, code_id)

        alarm = AlarmEvent.fire(group.id, code, triggered_by, message_override)
        delivered = self.router.deliver(group.member_list(), ev_alarm(alarm.to_wire()))
        logger.info("Alarm %s (%s) by %s in %s reached %d/%d members",
                    alarm.id, code.title, triggered_by, group.id,
                    len(delivered), len(group.members))
        return alarm, delivered
